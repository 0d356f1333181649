"""Tests for identifier derivation and the standardized 429 response."""

import json

import pytest
from starlette.datastructures import Headers

from app.core.rate_limit import (
    ANONYMOUS_IDENTIFIER,
    build_denial_response,
    build_rate_limit_headers,
    derive_identifier,
    hash_identifier,
)
from app.adapters.rate_limit.base import RateLimitResult


class TestDeriveIdentifier:
    """Identifier resolution priority: user id, forwarded-for, real ip, anonymous."""

    def test_user_id_wins_over_headers(self) -> None:
        headers = {"x-forwarded-for": "203.0.113.5", "x-real-ip": "198.51.100.7"}

        assert derive_identifier(headers, "u1") == "user:u1"

    def test_first_forwarded_address_is_used(self) -> None:
        headers = {"x-forwarded-for": "203.0.113.5, 10.0.0.1"}

        assert derive_identifier(headers) == "ip:203.0.113.5"

    def test_forwarded_address_is_trimmed(self) -> None:
        assert derive_identifier({"x-forwarded-for": "  203.0.113.5  ,10.0.0.1"}) == "ip:203.0.113.5"

    def test_forwarded_wins_over_real_ip(self) -> None:
        headers = {"x-forwarded-for": "203.0.113.5", "x-real-ip": "198.51.100.7"}

        assert derive_identifier(headers) == "ip:203.0.113.5"

    def test_real_ip_used_without_forwarded(self) -> None:
        assert derive_identifier({"x-real-ip": "198.51.100.7"}) == "ip:198.51.100.7"

    def test_empty_first_forwarded_entry_falls_through(self) -> None:
        headers = {"x-forwarded-for": " , 10.0.0.1", "x-real-ip": "198.51.100.7"}

        assert derive_identifier(headers) == "ip:198.51.100.7"

    def test_anonymous_fallback(self) -> None:
        assert derive_identifier({}) == ANONYMOUS_IDENTIFIER == "anonymous"

    def test_empty_user_id_is_ignored(self) -> None:
        assert derive_identifier({"x-real-ip": "198.51.100.7"}, "") == "ip:198.51.100.7"

    def test_plain_dict_lookup_is_case_insensitive(self) -> None:
        assert derive_identifier({"X-Forwarded-For": "203.0.113.5"}) == "ip:203.0.113.5"

    def test_starlette_headers(self) -> None:
        headers = Headers(raw=[(b"x-real-ip", b"198.51.100.7")])

        assert derive_identifier(headers) == "ip:198.51.100.7"


class TestBuildDenialResponse:
    """Standardized 429 response."""

    def test_status_body_and_headers(self) -> None:
        now = 1_700_000_000_000
        reset_at = now + 42_500

        response = build_denial_response(reset_at, {"Access-Control-Allow-Origin": "*"}, now_ms=now)
        body = json.loads(response.body)

        assert response.status_code == 429
        assert body == {
            "error": "Rate limit exceeded",
            "message": "Too many requests. Please try again in 43 seconds.",
            "retryAfter": 43,
        }
        assert response.headers["Retry-After"] == "43"
        assert response.headers["X-RateLimit-Reset"] == "2023-11-14T22:14:02.500Z"
        assert response.headers["Access-Control-Allow-Origin"] == "*"
        assert response.headers["Content-Type"] == "application/json"

    def test_retry_after_floors_at_zero(self) -> None:
        response = build_denial_response(1_000, now_ms=5_000)

        assert json.loads(response.body)["retryAfter"] == 0
        assert response.headers["Retry-After"] == "0"

    def test_cors_headers_are_copied(self) -> None:
        cors = {"Access-Control-Allow-Origin": "https://app.example.com"}

        build_denial_response(10_000, cors, now_ms=0)

        assert cors == {"Access-Control-Allow-Origin": "https://app.example.com"}

    @pytest.mark.parametrize("remaining_ms", [1, 999, 1_000, 60_000])
    def test_retry_after_rounds_up(self, remaining_ms: int) -> None:
        response = build_denial_response(remaining_ms, now_ms=0)

        assert json.loads(response.body)["retryAfter"] == -(-remaining_ms // 1000)


def test_success_headers() -> None:
    headers = build_rate_limit_headers(RateLimitResult(allowed=True, remaining=7, reset_at=60_000))

    assert headers == {
        "X-RateLimit-Remaining": "7",
        "X-RateLimit-Reset": "1970-01-01T00:01:00.000Z",
    }


def test_hash_identifier_hides_address() -> None:
    hashed = hash_identifier("ip:203.0.113.5")

    assert len(hashed) == 16
    assert set(hashed) <= set("0123456789abcdef")
    assert hash_identifier("ip:203.0.113.5") == hashed
    assert hash_identifier("ip:203.0.113.6") != hashed
