"""
Request, descriptor and response types shared by the dispatcher and backends.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, Optional


COMMIT_REF = re.compile(r"[0-9a-f]{40}")


@dataclass(frozen=True)
class RequestContext:
    """Coordinate of the requested document plus per-request metadata."""

    owner: str
    repo: str
    ref: str
    path: str
    request_id: Optional[str] = None
    github_token: Optional[str] = None

    @property
    def coordinate(self) -> str:
        """``owner/repo/ref/path`` without request id or credentials."""
        return f"{self.owner}/{self.repo}/{self.ref}/{self.path.lstrip('/')}"

    @property
    def source(self) -> str:
        return f"{self.owner}/{self.repo}/{self.ref}"

    @property
    def pinned(self) -> bool:
        """True when ``ref`` is a full commit sha, so the content cannot change."""
        return COMMIT_REF.fullmatch(self.ref) is not None


@dataclass(frozen=True)
class BackendDescriptor:
    """Which backend serves a request, and where the content lives for it."""

    kind: str
    url: Optional[str] = None
    rel_path: Optional[str] = None
    mount_path: Optional[str] = None

    def cache_key(self) -> str:
        return ":".join([self.kind, self.url or "", self.rel_path or ""])


@dataclass
class BackendResponse:
    """Outcome of one backend fetch."""

    status_code: int
    body: str
    url: str
    headers: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


@dataclass
class NormalizedResponse:
    """The proxy's response contract."""

    status_code: int
    body: str
    headers: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300
