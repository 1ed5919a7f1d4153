"""
Adapters package for the Content Proxy Service.

HTTP clients for the upstream hosts the proxy reads from:

- FstabClient: mount table (fstab.yaml) from the raw-content host
- GitHubClient: documents stored in the repository
- OneDriveClient: mounted Word documents via the conversion service

Each backend reports upstream failures through the status code of its
BackendResponse and only raises when the request itself could not be made.
"""

from .base import ContentBackend, MountResolver
from .fstab_client import FstabClient
from .github_client import GitHubClient
from .onedrive_client import OneDriveClient

__all__ = [
    "ContentBackend",
    "MountResolver",
    "FstabClient",
    "GitHubClient",
    "OneDriveClient",
]
