"""
Content Proxy service.
"""

from typing import Any, Dict, Optional

from fastapi import Header, Response

from shared.base_service import BaseService
from shared.config import ServiceConfig
from shared.logging import set_request_id, clear_context

from .adapters import FstabClient, GitHubClient, OneDriveClient
from .adapters.http import fetch_budget
from .caching import LRUStore, configure_cache
from .dispatch import BackendDispatcher
from .domain import RequestContext


SERVICE_NAME = "content_proxy"
DEFAULT_PORT = 8000


class ContentProxyService(BaseService):
    """Serves repository documents with CDN cache headers."""

    def __init__(self, config: Optional[ServiceConfig] = None):
        super().__init__(SERVICE_NAME, DEFAULT_PORT, config=config)

        # Mount tables live in the shared store, documents in the dispatcher's own
        configure_cache(max_size=self.config.cache_max_size)
        self.document_store = LRUStore(self.config.cache_max_size)

        self.fstab_client = FstabClient(
            self.config.raw_content_url,
            self.config.github_token,
            timeout=self.config.fetch_timeout,
        )
        self.github_client = GitHubClient(
            self.config.raw_content_url,
            self.config.github_token,
            timeout=self.config.fetch_timeout,
        )
        self.onedrive_client = OneDriveClient(
            self.config.conversion_service_url,
            timeout=self.config.fetch_timeout,
        )
        self.dispatcher = BackendDispatcher(
            self.fstab_client,
            [self.github_client, self.onedrive_client],
            store=self.document_store,
            passthrough_statuses=self.config.passthrough_statuses,
            timeout=self._dispatch_deadline(),
            metrics=self.metrics,
        )

        self._setup_proxy_routes()

        # Expose service instance via app state for introspection/testing
        self.app.state.content_proxy_service = self

    def _setup_proxy_routes(self):
        """Set up content proxy routes."""

        @self.app.get("/cache/stats")
        async def cache_stats() -> Dict[str, Any]:
            """Statistics of the document cache."""
            return self.document_store.stats()

        @self.app.get("/{owner}/{repo}/{ref}/{path:path}")
        async def get_document(
            owner: str,
            repo: str,
            ref: str,
            path: str,
            x_request_id: Optional[str] = Header(default=None),
            x_github_token: Optional[str] = Header(default=None),
        ) -> Response:
            """Resolve a document and return it with cache headers."""
            request_id = set_request_id(x_request_id)
            try:
                ctx = RequestContext(
                    owner=owner,
                    repo=repo,
                    ref=ref,
                    path="/" + path.lstrip("/"),
                    request_id=request_id,
                    github_token=x_github_token,
                )
                result = await self.dispatcher.resolve(ctx)
                return Response(
                    content=result.body,
                    status_code=result.status_code,
                    headers=result.headers,
                )
            finally:
                clear_context()

    def _dispatch_deadline(self) -> float:
        budget = fetch_budget(self.config.fetch_timeout)
        deadline = self.config.dispatch_timeout
        if deadline is None:
            return budget
        if deadline < budget:
            self.logger.warning(
                "Dispatch timeout is shorter than the retry budget of a fetch",
                dispatch_timeout=deadline,
                retry_budget=budget,
            )
        return deadline

    async def _check_dependencies(self) -> Dict[str, Any]:
        return {"document_cache": self.document_store.stats()}


def create_app(config: Optional[ServiceConfig] = None):
    """Create FastAPI application."""
    service = ContentProxyService(config)
    return service.app


if __name__ == "__main__":
    service = ContentProxyService()
    service.run()
