"""
Tests for Rate Limiting

The application limiter is disabled for the test run (RATE_LIMIT_ENABLED
is false in conftest), so 429 behaviour is checked on a small app with
its own in-memory limiter and the application's key function and
error handler.
"""

from fastapi import FastAPI, Request, status
from fastapi.testclient import TestClient
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded

from bookshelf.config import get_settings
from bookshelf.services.rate_limiter import (
    get_client_ip,
    limiter,
    rate_limit_exceeded_handler,
)


def make_limited_app(enabled: bool = True) -> FastAPI:
    test_limiter = Limiter(
        key_func=get_client_ip,
        storage_uri="memory://",
        enabled=enabled,
    )

    app = FastAPI()
    app.state.limiter = test_limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

    @app.get("/ping")
    @test_limiter.limit("2/minute")
    def ping(request: Request) -> dict:
        return {"ok": True}

    return app


def make_request(headers: dict[str, str], client_host: str = "10.0.0.9") -> Request:
    scope = {
        "type": "http",
        "method": "GET",
        "path": "/",
        "query_string": b"",
        "headers": [(k.lower().encode(), v.encode()) for k, v in headers.items()],
        "client": (client_host, 52000),
    }
    return Request(scope)


class TestLimitExceeded:
    """Requests over the limit get the standard error body."""

    def test_third_request_is_rejected(self):
        client = TestClient(make_limited_app())

        assert client.get("/ping").status_code == status.HTTP_200_OK
        assert client.get("/ping").status_code == status.HTTP_200_OK

        response = client.get("/ping")

        assert response.status_code == status.HTTP_429_TOO_MANY_REQUESTS
        body = response.json()
        assert body["success"] is False
        assert body["error"] == "rate_limit_exceeded"
        assert "2 per 1 minute" in body["detail"]
        assert response.headers["Retry-After"] == "60"

    def test_limits_are_per_client(self):
        client = TestClient(make_limited_app())
        first = {"X-Forwarded-For": "203.0.113.5"}
        second = {"X-Forwarded-For": "203.0.113.6"}

        for _ in range(2):
            client.get("/ping", headers=first)

        assert client.get("/ping", headers=first).status_code == status.HTTP_429_TOO_MANY_REQUESTS
        assert client.get("/ping", headers=second).status_code == status.HTTP_200_OK

    def test_disabled_limiter_never_rejects(self):
        client = TestClient(make_limited_app(enabled=False))

        codes = {client.get("/ping").status_code for _ in range(5)}

        assert codes == {status.HTTP_200_OK}


class TestClientIp:
    """get_client_ip: X-Forwarded-For, then X-Real-IP, then the socket."""

    def test_forwarded_for_wins(self):
        request = make_request({
            "X-Forwarded-For": "203.0.113.5, 10.0.0.1",
            "X-Real-IP": "198.51.100.7",
        })

        assert get_client_ip(request) == "203.0.113.5"

    def test_real_ip_without_forwarded_for(self):
        request = make_request({"X-Real-IP": " 198.51.100.7 "})

        assert get_client_ip(request) == "198.51.100.7"

    def test_falls_back_to_socket_address(self):
        assert get_client_ip(make_request({})) == "10.0.0.9"


class TestApplicationLimiter:
    """The application's limiter honours RATE_LIMIT_ENABLED=false."""

    def test_disabled_by_settings(self):
        assert get_settings().rate_limit_enabled is False
        assert limiter.enabled is False

    def test_auth_route_never_throttled_when_disabled(self, client):
        # Above the 10/minute auth limit
        codes = {
            client.post(
                "/api/users/forgot-password",
                json={"email": "nobody@example.com"},
            ).status_code
            for _ in range(15)
        }

        assert status.HTTP_429_TOO_MANY_REQUESTS not in codes
        assert codes == {status.HTTP_404_NOT_FOUND}
