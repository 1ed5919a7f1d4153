"""
Interfaces between the dispatcher and its collaborators.
"""

from abc import ABC, abstractmethod
from typing import Optional

from ..domain.models import BackendDescriptor, BackendResponse, RequestContext


class ContentBackend(ABC):
    """A content source the dispatcher can route requests to."""

    name: str = "backend"

    @abstractmethod
    def can_handle(self, descriptor: BackendDescriptor) -> bool:
        """Return True when this backend serves ``descriptor``."""

    @abstractmethod
    async def fetch(self, descriptor: BackendDescriptor, ctx: RequestContext) -> BackendResponse:
        """Fetch the document. Upstream failures are reported through the status code."""


class MountResolver(ABC):
    """Turns a request coordinate into a backend descriptor."""

    @abstractmethod
    async def resolve(self, ctx: RequestContext) -> Optional[BackendDescriptor]:
        """Return the descriptor for ``ctx``, or None when nothing serves it."""
