"""
Outbound HTTP helpers shared by the upstream clients.
"""

from typing import Dict, Optional

import httpx

from shared.errors import TransportError
from shared.logging import get_logger
from shared.retry import retry_on_exception, max_total_delay, RetryConfig, RetryError


USER_AGENT = "content-proxy/1.0"
FETCH_RETRY = RetryConfig(max_attempts=3, base_delay=0.5, max_delay=5.0)

logger = get_logger("content_proxy.http")


@retry_on_exception((httpx.TransportError,), config=FETCH_RETRY)
async def _get(url: str, params: Optional[Dict[str, str]], headers: Dict[str, str], timeout: float) -> httpx.Response:
    async with httpx.AsyncClient(timeout=timeout) as client:
        response = await client.get(url, params=params, headers=headers)
    return response


async def fetch_text(
    url: str,
    *,
    params: Optional[Dict[str, str]] = None,
    headers: Optional[Dict[str, str]] = None,
    timeout: float = 10.0,
) -> httpx.Response:
    """GET ``url`` and return the response with its body read.

    Transport failures are retried; once the attempts are exhausted a
    TransportError is raised. HTTP error statuses are returned, not raised.
    """
    request_headers = {"user-agent": USER_AGENT, **(headers or {})}
    try:
        return await _get(url, params, request_headers, timeout)
    except RetryError as exc:
        logger.error("Upstream request failed", url=url, attempts=exc.attempts, error=str(exc.last_exception))
        raise TransportError(
            service=httpx.URL(url).host,
            message=str(exc.last_exception),
            details={"url": url, "attempts": exc.attempts},
        ) from exc.last_exception


def fetch_budget(timeout: float) -> float:
    """Worst-case duration of one ``fetch_text`` call, retries included.

    httpx applies ``timeout`` to connecting and to reading separately, so one
    attempt can take twice as long.
    """
    return FETCH_RETRY.max_attempts * 2 * timeout + max_total_delay(FETCH_RETRY)


def github_headers(token: Optional[str] = None, request_id: Optional[str] = None) -> Dict[str, str]:
    """Authorization and request id headers for the raw-content host."""
    headers = {}
    if token:
        headers["authorization"] = f"token {token}"
    if request_id:
        headers["x-request-id"] = request_id
    return headers
