"""Tests for middleware — security headers, request IDs, rate limiting.

Learn: The test client does not run the app lifespan, so Redis is never
initialized and rate limiting is skipped. The rate limit tests install
a small in-memory stand-in with set_redis() instead.
"""

import pytest

from wedsite.cache import set_redis

from conftest import FakeRedis


@pytest.fixture()
def fake_redis():
    redis = FakeRedis()
    set_redis(redis)
    yield redis
    set_redis(None)


# ═══════════════════════════════════════════════════════════
# Headers
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_security_headers_on_health(client):
    r = await client.get("/api/v1/health")
    assert r.status_code == 200
    assert r.headers["X-Content-Type-Options"] == "nosniff"
    assert r.headers["X-Frame-Options"] == "DENY"
    assert r.headers["Referrer-Policy"] == "strict-origin-when-cross-origin"
    assert "Cache-Control" not in r.headers


@pytest.mark.asyncio
async def test_auth_responses_not_cached(client):
    r = await client.get("/api/v1/auth/me")
    assert r.status_code == 401
    assert r.headers["Cache-Control"] == "no-store"


@pytest.mark.asyncio
async def test_no_hsts_on_http(client):
    """HSTS header is NOT set on HTTP connections (only HTTPS)."""
    r = await client.get("/api/v1/health")
    assert "Strict-Transport-Security" not in r.headers


# ═══════════════════════════════════════════════════════════
# Request IDs
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_request_id_generated(client):
    r1 = await client.get("/api/v1/health")
    r2 = await client.get("/api/v1/health")
    assert r1.headers["X-Request-ID"] != r2.headers["X-Request-ID"]


@pytest.mark.asyncio
async def test_request_id_propagated(client):
    r = await client.get("/api/v1/health", headers={"X-Request-ID": "trace-12345"})
    assert r.headers["X-Request-ID"] == "trace-12345"


@pytest.mark.asyncio
async def test_request_id_truncated(client):
    r = await client.get("/api/v1/health", headers={"X-Request-ID": "x" * 500})
    assert len(r.headers["X-Request-ID"]) == 128


# ═══════════════════════════════════════════════════════════
# Rate limiting
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_no_rate_limit_headers_without_redis(client):
    r = await client.get("/api/v1/health")
    assert "X-RateLimit-Limit" not in r.headers


@pytest.mark.asyncio
async def test_rate_limit_headers(client, fake_redis):
    r = await client.get("/api/v1/health")
    assert r.headers["X-RateLimit-Limit"] == "100"
    assert r.headers["X-RateLimit-Remaining"] == "99"
    assert list(fake_redis.expiry.values()) == [120]


@pytest.mark.asyncio
async def test_login_rate_limited(client, fake_redis):
    body = {"username": "nobody", "password": "guess-guess"}
    for _ in range(10):
        r = await client.post("/api/v1/auth/login", json=body)
        assert r.status_code == 401

    r = await client.post("/api/v1/auth/login", json=body)
    assert r.status_code == 429
    assert r.json()["code"] == "RATE_LIMITED"
    assert r.headers["Retry-After"] == "60"

    # Other routes use their own bucket
    assert (await client.get("/api/v1/health")).status_code == 200


@pytest.mark.asyncio
async def test_redis_errors_let_requests_through(client):
    set_redis(FakeRedis(fail=True))
    try:
        r = await client.get("/api/v1/health")
    finally:
        set_redis(None)
    assert r.status_code == 200
    assert "X-RateLimit-Limit" not in r.headers
