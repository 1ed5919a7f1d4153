"""
OneDrive backend: Word documents converted to markdown by the conversion service.
"""

from typing import Dict

import httpx

from shared.logging import get_logger

from ..domain.models import BackendDescriptor, BackendResponse, RequestContext
from . import http
from .base import ContentBackend


class OneDriveClient(ContentBackend):
    """Fetches mounted OneDrive/SharePoint documents through the conversion service."""

    name = "onedrive"

    def __init__(self, conversion_service_url: str, *, timeout: float = 10.0):
        self.service_url = conversion_service_url
        self.timeout = timeout
        self.logger = get_logger("content_proxy.onedrive_client")

    def can_handle(self, descriptor: BackendDescriptor) -> bool:
        return descriptor.kind == "onedrive"

    def params_for(self, descriptor: BackendDescriptor, ctx: RequestContext) -> Dict[str, str]:
        return {
            "path": f"{descriptor.rel_path}.docx" if descriptor.rel_path else "",
            "shareLink": descriptor.url or "",
            "rid": ctx.request_id or "",
            "src": ctx.source,
        }

    async def fetch(self, descriptor: BackendDescriptor, ctx: RequestContext) -> BackendResponse:
        params = self.params_for(descriptor, ctx)
        url = str(httpx.URL(self.service_url, params=params))
        response = await http.fetch_text(self.service_url, params=params, timeout=self.timeout)

        if response.is_success:
            self.logger.debug("Converted document", url=url, status_code=response.status_code)
            headers = {"content-type": "text/plain"}
            # Without a location from the service the dispatcher falls back to the URL
            location = response.headers.get("x-source-location")
            if location:
                headers["x-source-location"] = location
            return BackendResponse(
                status_code=response.status_code,
                body=response.text,
                url=url,
                headers=headers,
            )

        return BackendResponse(status_code=response.status_code, body=response.text, url=url)
