"""
Mount table client for the Content Proxy.
"""

from typing import Optional

from shared.errors import UpstreamStatusError
from shared.logging import get_logger

from ..caching.memoize import LRUStore, memoize
from ..domain.models import BackendDescriptor, RequestContext
from ..domain.mounts import MountConfig
from . import http
from .base import MountResolver


FSTAB_FILE = "fstab.yaml"
GITHUB_KIND = "github"


def _mount_key(fn, ctx: RequestContext) -> str:
    return f"fstab:{ctx.source}"


class FstabClient(MountResolver):
    """Loads a repository's fstab.yaml from the raw-content host and matches paths against it."""

    def __init__(
        self,
        raw_content_url: str,
        github_token: Optional[str] = None,
        *,
        timeout: float = 10.0,
        store: Optional[LRUStore] = None,
    ):
        self.base_url = raw_content_url.rstrip('/')
        self.github_token = github_token
        self.timeout = timeout
        self.logger = get_logger("content_proxy.fstab_client")

        # Parsed tables are kept per owner/repo/commit; failures are always retried
        self.load = memoize(self._fetch_mount_config, hash_fn=_mount_key, store=store)

    def url_for(self, ctx: RequestContext) -> str:
        return f"{self.base_url}/{ctx.source}/{FSTAB_FILE}"

    async def resolve(self, ctx: RequestContext) -> Optional[BackendDescriptor]:
        """Map the request path to a descriptor; unmounted paths are served from GitHub."""
        if ctx.pinned:
            config = await self.load(ctx)
        else:
            config = await self._fetch_mount_config(ctx)
        mountpoint = config.match(ctx.path)
        if mountpoint is None:
            return BackendDescriptor(kind=GITHUB_KIND)

        self.logger.debug(
            "Path matched mount point",
            path=ctx.path,
            mountpoint=mountpoint.path,
            type=mountpoint.type,
        )
        return BackendDescriptor(
            kind=mountpoint.type,
            url=mountpoint.url,
            rel_path=mountpoint.rel_path,
            mount_path=mountpoint.path,
        )

    async def _fetch_mount_config(self, ctx: RequestContext) -> MountConfig:
        url = self.url_for(ctx)
        headers = http.github_headers(ctx.github_token or self.github_token, ctx.request_id)
        response = await http.fetch_text(url, headers=headers, timeout=self.timeout)

        if response.status_code == 404:
            self.logger.debug("No mount configuration", url=url)
            return MountConfig.empty()

        if response.is_success:
            config = MountConfig.from_yaml(response.text)
            self.logger.info("Loaded mount configuration", url=url, mountpoints=len(config))
            return config

        raise UpstreamStatusError(
            service="raw-content",
            status_code=response.status_code,
            body=response.text,
            details={"url": url},
        )

