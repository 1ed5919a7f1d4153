"""
Shared fixtures for Content Proxy tests.
"""

from typing import Dict, Optional
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from service_content_proxy.app.caching import configure_cache
from service_content_proxy.app.domain import RequestContext


@pytest.fixture(autouse=True)
def reset_shared_cache():
    """Every test starts with an empty shared store."""
    configure_cache()
    yield
    configure_cache()


@pytest.fixture
def no_retry_delay():
    """Skip the backoff sleeps of the retry decorator."""
    with patch("shared.retry.asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
        yield mock_sleep


@pytest.fixture
def request_context() -> RequestContext:
    return RequestContext(
        owner="adobe",
        repo="theblog",
        ref="cb8a0dc5d9d89b800835166783e4130451d3c6a5",
        path="/index.md",
        request_id="fake",
    )


def make_response(
    status_code: int,
    text: str = "",
    headers: Optional[Dict[str, str]] = None,
) -> httpx.Response:
    return httpx.Response(status_code=status_code, text=text, headers=headers or {})
