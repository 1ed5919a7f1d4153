"""
Shared error handling for the Content Proxy service.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error response format."""

    request_id: Optional[str] = None
    code: str
    message: str
    details: Dict[str, Any] = {}


class ContentProxyError(Exception):
    """Base exception for the Content Proxy service."""

    status_code = 502

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ConfigurationError(ContentProxyError):
    """Mount configuration could not be read or is malformed."""

    def __init__(self, message: str = "Invalid mount configuration", details: Optional[Dict[str, Any]] = None):
        super().__init__("CONFIGURATION_ERROR", message, details)


class NotFoundError(ContentProxyError):
    """No content source is configured for the requested path."""

    status_code = 404

    def __init__(self, message: str = "Not found", details: Optional[Dict[str, Any]] = None):
        super().__init__("NOT_FOUND", message, details)


class UpstreamStatusError(ContentProxyError):
    """An upstream host answered with an unexpected HTTP status."""

    def __init__(self, service: str, status_code: int, body: str = "", details: Optional[Dict[str, Any]] = None):
        self.service = service
        self.upstream_status = status_code
        self.body = body
        super().__init__(
            "UPSTREAM_STATUS_ERROR",
            f"{service}: unexpected status {status_code}",
            {"status_code": status_code, **(details or {})},
        )


class TransportError(ContentProxyError):
    """The request to an upstream host could not be completed."""

    def __init__(self, service: str, message: str = "Transport error", details: Optional[Dict[str, Any]] = None):
        super().__init__("TRANSPORT_ERROR", f"{service}: {message}", details)
