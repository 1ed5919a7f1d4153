"""
Unit tests for status mapping and cache header synthesis.
"""

import base64
import hashlib

import pytest

from service_content_proxy.app.dispatch.headers import (
    EDGE_CACHE_CONTROL,
    SURROGATE_CONTROL,
    compute_surrogate_key,
    error_headers,
    log_level_for_status_code,
    propagate_status_code,
    success_headers,
)


LOCATION = "https://raw.githubusercontent.com/adobe/theblog/cb8a0dc5d9d89b800835166783e4130451d3c6a5/index.md"


def test_surrogate_key_is_truncated_sha256():
    expected = base64.b64encode(hashlib.sha256(LOCATION.encode()).digest()).decode()[:16]
    assert compute_surrogate_key(LOCATION) == expected
    assert len(compute_surrogate_key(LOCATION)) == 16


def test_surrogate_key_is_deterministic():
    assert compute_surrogate_key(LOCATION) == compute_surrogate_key(LOCATION)
    assert compute_surrogate_key(LOCATION) != compute_surrogate_key(LOCATION + "?x")


@pytest.mark.parametrize("status_code, expected", [
    (404, 404),
    (503, 503),
    (500, 502),
    (401, 502),
    (403, 502),
    (429, 502),
])
def test_propagate_status_code(status_code, expected):
    assert propagate_status_code(status_code) == expected


def test_propagate_status_code_with_custom_passthrough():
    assert propagate_status_code(429, passthrough={404, 429, 503}) == 429
    assert propagate_status_code(404, passthrough={503}) == 502


@pytest.mark.parametrize("status_code, level", [
    (400, "warning"),
    (404, "warning"),
    (500, "error"),
    (503, "error"),
])
def test_log_level_for_status_code(status_code, level):
    assert log_level_for_status_code(status_code) == level


def test_success_headers():
    headers = success_headers(LOCATION, "text/plain")

    assert headers["cache-control"] == "max-age=60"
    assert headers["surrogate-control"] == (
        "max-age=30758400, stale-while-revalidate=30758400, stale-if-error=30758400, immutable"
    )
    assert headers["x-source-location"] == LOCATION
    assert headers["surrogate-key"] == compute_surrogate_key(LOCATION)
    assert headers["content-type"] == "text/plain"


def test_success_headers_without_content_type():
    assert "content-type" not in success_headers(LOCATION)


def test_error_headers_have_no_surrogate_control():
    assert error_headers() == {"cache-control": EDGE_CACHE_CONTROL}
    assert "immutable" in SURROGATE_CONTROL


def test_success_headers_for_branch_ref():
    headers = success_headers(LOCATION, "text/plain", pinned=False)

    assert headers["cache-control"] == "max-age=60"
    assert headers["surrogate-control"] == "max-age=60"
    assert headers["surrogate-key"] == compute_surrogate_key(LOCATION)
