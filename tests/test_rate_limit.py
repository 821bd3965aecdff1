# tests/test_rate_limit.py
from fastapi import FastAPI
from fastapi.testclient import TestClient

from api.middleware.rate_limit import RATE_LIMITS, RateLimitMiddleware, RateLimitRule


def build_app(max_requests):
    app = FastAPI()
    app.middleware("http")(RateLimitMiddleware(RateLimitRule(max_requests, 60), bucket="test"))

    @app.get("/ping")
    async def ping():
        return {"ok": True}

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app


def test_requests_over_limit_get_429():
    client = TestClient(build_app(2))

    assert client.get("/ping").status_code == 200
    assert client.get("/ping").status_code == 200
    response = client.get("/ping")

    assert response.status_code == 429
    assert response.json()["detail"] == "Too many requests. Please try again later."
    assert 1 <= int(response.headers["retry-after"]) <= 60


def test_clients_are_tracked_separately():
    client = TestClient(build_app(1))

    assert client.get("/ping", headers={"x-forwarded-for": "10.0.0.1"}).status_code == 200
    assert client.get("/ping", headers={"x-forwarded-for": "10.0.0.1"}).status_code == 429
    assert client.get("/ping", headers={"x-forwarded-for": "10.0.0.2, 172.16.0.1"}).status_code == 200
    assert client.get("/ping", headers={"x-real-ip": "10.0.0.3"}).status_code == 200


def test_health_is_exempt():
    client = TestClient(build_app(1))
    for _ in range(3):
        assert client.get("/health").status_code == 200


def test_limits_are_relaxed_outside_production():
    # conftest runs the suite with APP_ENV=test
    assert RATE_LIMITS["api"].max_requests == 10000
    assert RATE_LIMITS["api"].window_seconds == 60


def test_only_mounted_buckets_are_configured():
    assert set(RATE_LIMITS) == {"api"}
