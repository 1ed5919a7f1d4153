"""
Backend dispatch and response normalization.
"""

import asyncio
from typing import Collection, Iterable, List, Optional, TYPE_CHECKING

from shared.errors import ConfigurationError, ContentProxyError, NotFoundError, UpstreamStatusError
from shared.logging import get_logger

from ..adapters.base import ContentBackend, MountResolver
from ..caching.memoize import LRUStore, memoize
from ..domain.models import BackendDescriptor, BackendResponse, NormalizedResponse, RequestContext
from .headers import (
    BAD_GATEWAY,
    DEFAULT_PASSTHROUGH_STATUSES,
    error_headers,
    log_level_for_status_code,
    propagate_status_code,
    success_headers,
)

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


def _fetch_key(fn, backend: ContentBackend, descriptor: BackendDescriptor, ctx: RequestContext) -> str:
    # Request id and credentials are left out so identical documents share a slot
    return "|".join([backend.name, descriptor.cache_key(), ctx.coordinate])


def _admit_response(response: BackendResponse) -> bool:
    return response.ok


class BackendDispatcher:
    """
    Routes a request to the backend its mount descriptor names and turns
    whatever happens into a NormalizedResponse.

    ``resolve`` never raises. Backend fetches go through a memoized wrapper
    backed by ``store``; only 2xx responses at a commit sha are kept, and
    concurrent misses for the same document share one fetch. Branch refs are
    fetched on every request.

    ``timeout`` bounds one backend fetch including its retries. Exceeding it
    is a transport failure like any other and answers 502.
    """

    def __init__(
        self,
        resolver: MountResolver,
        backends: Iterable[ContentBackend],
        *,
        store: Optional[LRUStore] = None,
        passthrough_statuses: Collection[int] = DEFAULT_PASSTHROUGH_STATUSES,
        timeout: Optional[float] = None,
        metrics: Optional["MetricsCollector"] = None,
    ):
        self.resolver = resolver
        self.backends: List[ContentBackend] = list(backends)
        self.store = store if store is not None else LRUStore()
        self.passthrough_statuses = frozenset(passthrough_statuses)
        self.timeout = timeout
        self.metrics = metrics
        self.logger = get_logger("content_proxy.dispatcher")

        self._fetch = memoize(
            self._invoke,
            hash_fn=_fetch_key,
            cache_result=_admit_response,
            store=self.store,
            coalesce=True,
        )

    def select_backend(self, descriptor: BackendDescriptor) -> Optional[ContentBackend]:
        """Return the first backend that can handle ``descriptor``."""
        for backend in self.backends:
            if backend.can_handle(descriptor):
                return backend
        return None

    async def resolve(self, ctx: RequestContext) -> NormalizedResponse:
        """Fetch the document for ``ctx`` and normalize the outcome."""
        try:
            descriptor = await self.resolver.resolve(ctx)
        except UpstreamStatusError as exc:
            status_code = self._map_status(exc.upstream_status)
            self._log_upstream_failure(exc.service, exc.upstream_status, exc.details.get("url", ""), exc.body)
            return self._error(status_code, f"Unable to fetch mount configuration for {ctx.source}")
        except ConfigurationError as exc:
            self.logger.error("Invalid mount configuration", source=ctx.source, error=exc.message, details=exc.details)
            return self._error(exc.status_code, f"Invalid mount configuration for {ctx.source}: {exc.message}")
        except Exception as exc:
            self.logger.error("Mount resolution failed", source=ctx.source, error=str(exc))
            return self._error(BAD_GATEWAY, f"Unable to resolve mount configuration for {ctx.source}")

        if descriptor is None:
            return self._not_configured(ctx)

        backend = self.select_backend(descriptor)
        if backend is None:
            return self._not_configured(ctx, descriptor)

        fetch = self._fetch if ctx.pinned else self._invoke
        try:
            if self.timeout is not None:
                response = await asyncio.wait_for(fetch(backend, descriptor, ctx), self.timeout)
            else:
                response = await fetch(backend, descriptor, ctx)
        except asyncio.TimeoutError:
            self.logger.error(
                "Backend fetch timed out",
                backend=backend.name,
                coordinate=ctx.coordinate,
                timeout=self.timeout,
            )
            self._count_failure(backend.name, BAD_GATEWAY)
            return self._error(BAD_GATEWAY, f"Timed out fetching {ctx.path} from {backend.name}")
        except ContentProxyError as exc:
            self.logger.error(
                "Backend fetch failed",
                backend=backend.name,
                coordinate=ctx.coordinate,
                code=exc.code,
                error=exc.message,
                details=exc.details,
            )
            self._count_failure(backend.name, exc.status_code)
            return self._error(exc.status_code, f"Unable to fetch {ctx.path} from {backend.name}")
        except Exception as exc:
            self.logger.error(
                "Backend fetch failed",
                backend=backend.name,
                coordinate=ctx.coordinate,
                error=str(exc),
            )
            self._count_failure(backend.name, BAD_GATEWAY)
            return self._error(BAD_GATEWAY, f"Unable to fetch {ctx.path} from {backend.name}")

        if response.ok:
            location = response.headers.get("x-source-location") or response.url
            return NormalizedResponse(
                status_code=response.status_code,
                body=response.body,
                headers=success_headers(location, response.headers.get("content-type"), pinned=ctx.pinned),
            )

        self._log_upstream_failure(backend.name, response.status_code, response.url, response.body)
        self._count_failure(backend.name, response.status_code)
        return NormalizedResponse(
            status_code=self._map_status(response.status_code),
            body=response.body,
            headers=error_headers(),
        )

    async def _invoke(self, backend: ContentBackend, descriptor: BackendDescriptor, ctx: RequestContext) -> BackendResponse:
        return await backend.fetch(descriptor, ctx)

    def _map_status(self, status_code: int) -> int:
        return propagate_status_code(status_code, self.passthrough_statuses)

    def _not_configured(self, ctx: RequestContext, descriptor: Optional[BackendDescriptor] = None) -> NormalizedResponse:
        kind = descriptor.kind if descriptor else None
        self.logger.warning("No content source configured", coordinate=ctx.coordinate, kind=kind)
        if kind:
            error = NotFoundError(f"No content source configured for {ctx.path} (unsupported mount type: {kind})")
        else:
            error = NotFoundError(f"No content source configured for {ctx.path}")
        return self._error(error.status_code, error.message)

    def _log_upstream_failure(self, backend: str, status_code: int, url: str, body: str) -> None:
        level = log_level_for_status_code(status_code)
        getattr(self.logger, level)(
            f"Unable to fetch {url} ({status_code}) from {backend}: {body}",
            backend=backend,
            url=url,
            status_code=status_code,
        )

    def _count_failure(self, backend: str, status_code: int) -> None:
        if self.metrics:
            self.metrics.increment_counter(
                "upstream_errors_total",
                backend=backend,
                status_code=str(status_code),
            )

    @staticmethod
    def _error(status_code: int, body: str) -> NormalizedResponse:
        return NormalizedResponse(status_code=status_code, body=body, headers=error_headers())
