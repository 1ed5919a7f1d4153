"""
Domain types for the Content Proxy Service.

Request coordinates, backend descriptors, response shapes and the mount table
model. Nothing in here performs I/O.
"""

from .models import BackendDescriptor, BackendResponse, NormalizedResponse, RequestContext
from .mounts import MountConfig, MountPoint, detect_mount_type

__all__ = [
    "BackendDescriptor",
    "BackendResponse",
    "MountConfig",
    "MountPoint",
    "NormalizedResponse",
    "RequestContext",
    "detect_mount_type",
]
