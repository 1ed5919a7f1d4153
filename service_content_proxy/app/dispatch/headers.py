"""
Status mapping and cache header synthesis.

Responses carry two cache directives. ``cache-control`` is read by the edge
in front of the proxy, which cannot be purged, so it is always kept to one
minute. ``surrogate-control`` is read by the CDN, which is purged on publish,
so documents at a commit sha may stay there for a year. Documents on a branch
ref change without a publish and get the same one minute there. Failures
never get a surrogate directive.
"""

import base64
import hashlib
from typing import Collection, Dict, Optional


EDGE_MAX_AGE = 60
SURROGATE_MAX_AGE = 30758400

EDGE_CACHE_CONTROL = f"max-age={EDGE_MAX_AGE}"
SURROGATE_CONTROL = (
    f"max-age={SURROGATE_MAX_AGE}, "
    f"stale-while-revalidate={SURROGATE_MAX_AGE}, "
    f"stale-if-error={SURROGATE_MAX_AGE}, "
    "immutable"
)
BRANCH_SURROGATE_CONTROL = f"max-age={EDGE_MAX_AGE}"

DEFAULT_PASSTHROUGH_STATUSES = frozenset({404, 503})
BAD_GATEWAY = 502


def compute_surrogate_key(location: str) -> str:
    """Derive the CDN purge key for a content location."""
    digest = hashlib.sha256(location.encode("utf-8")).digest()
    return base64.b64encode(digest).decode("ascii")[:16]


def propagate_status_code(
    status_code: int,
    passthrough: Collection[int] = DEFAULT_PASSTHROUGH_STATUSES,
) -> int:
    """Map an upstream failure status to the status the proxy answers with."""
    if status_code in passthrough:
        return status_code
    return BAD_GATEWAY


def log_level_for_status_code(status_code: int) -> str:
    """Client errors are warnings, everything else is an error."""
    if status_code < 500:
        return "warning"
    return "error"


def success_headers(
    location: str,
    content_type: Optional[str] = None,
    pinned: bool = True,
) -> Dict[str, str]:
    """Headers for a document that was fetched successfully.

    ``pinned`` is false for branch refs, which only get a short CDN lifetime.
    """
    headers = {
        "cache-control": EDGE_CACHE_CONTROL,
        "surrogate-control": SURROGATE_CONTROL if pinned else BRANCH_SURROGATE_CONTROL,
        "x-source-location": location,
        "surrogate-key": compute_surrogate_key(location),
    }
    if content_type:
        headers["content-type"] = content_type
    return headers


def error_headers() -> Dict[str, str]:
    """Headers for any failed response."""
    return {"cache-control": EDGE_CACHE_CONTROL}
