"""
Backend dispatch for the Content Proxy Service.

Selects the backend for a resolved mount descriptor, fetches through the
memoizing cache and normalizes status codes and cache headers.
"""

from .dispatcher import BackendDispatcher
from .headers import (
    BRANCH_SURROGATE_CONTROL,
    EDGE_CACHE_CONTROL,
    SURROGATE_CONTROL,
    compute_surrogate_key,
    log_level_for_status_code,
    propagate_status_code,
)

__all__ = [
    "BackendDispatcher",
    "BRANCH_SURROGATE_CONTROL",
    "EDGE_CACHE_CONTROL",
    "SURROGATE_CONTROL",
    "compute_surrogate_key",
    "log_level_for_status_code",
    "propagate_status_code",
]
