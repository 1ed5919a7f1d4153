"""
Raw-content backend for documents stored in the repository itself.
"""

from typing import Optional

from shared.logging import get_logger

from ..domain.models import BackendDescriptor, BackendResponse, RequestContext
from . import http
from .base import ContentBackend


class GitHubClient(ContentBackend):
    """Fetches ``owner/repo/ref/path`` from the raw-content host."""

    name = "github"

    def __init__(self, raw_content_url: str, github_token: Optional[str] = None, *, timeout: float = 10.0):
        self.base_url = raw_content_url.rstrip('/')
        self.github_token = github_token
        self.timeout = timeout
        self.logger = get_logger("content_proxy.github_client")

    def can_handle(self, descriptor: BackendDescriptor) -> bool:
        return descriptor.kind == "github"

    def url_for(self, ctx: RequestContext) -> str:
        return f"{self.base_url}/{ctx.coordinate}"

    async def fetch(self, descriptor: BackendDescriptor, ctx: RequestContext) -> BackendResponse:
        url = self.url_for(ctx)
        # A token sent with the request wins over the configured one
        headers = http.github_headers(ctx.github_token or self.github_token, ctx.request_id)
        response = await http.fetch_text(url, headers=headers, timeout=self.timeout)

        if response.is_success:
            self.logger.debug("Fetched document", url=url, status_code=response.status_code)
            return BackendResponse(
                status_code=response.status_code,
                body=response.text,
                url=url,
                headers={
                    "content-type": "text/plain",
                    "x-source-location": url,
                },
            )

        return BackendResponse(status_code=response.status_code, body=response.text, url=url)
