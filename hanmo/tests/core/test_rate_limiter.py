import pytest
from fastapi import HTTPException
from starlette.requests import Request

from hanmo.core.rate_limiter import RateLimiter, get_client_ip, get_endpoint_key


def make_request(
    path: str = "/api/v1/login/access-token",
    headers: dict[str, str] | None = None,
    client: tuple[str, int] = ("10.0.0.1", 5000),
) -> Request:
    raw_headers = [
        (k.lower().encode(), v.encode()) for k, v in (headers or {}).items()
    ]
    return Request(
        {
            "type": "http",
            "method": "GET",
            "path": path,
            "query_string": b"",
            "headers": raw_headers,
            "client": client,
        }
    )


def test_window_allows_up_to_max() -> None:
    limiter = RateLimiter("t", max_attempts=3, window_seconds=60)
    results = [limiter.hit("k", now=1000.0) for _ in range(4)]
    assert [r.allowed for r in results] == [True, True, True, False]
    assert [r.remaining for r in results] == [2, 1, 0, 0]
    assert results[-1].retry_after == 60


def test_window_resets_after_expiry() -> None:
    limiter = RateLimiter("t", max_attempts=1, window_seconds=60)
    assert limiter.hit("k", now=1000.0).allowed
    assert not limiter.hit("k", now=1030.0).allowed
    assert limiter.hit("k", now=1060.0).allowed


def test_keys_are_independent() -> None:
    limiter = RateLimiter("t", max_attempts=1, window_seconds=60)
    assert limiter.hit("a", now=0.0).allowed
    assert limiter.hit("b", now=0.0).allowed
    assert not limiter.hit("a", now=1.0).allowed


def test_reset_clears_windows() -> None:
    limiter = RateLimiter("t", max_attempts=1, window_seconds=60)
    limiter.hit("k", now=0.0)
    limiter.reset()
    assert limiter.hit("k", now=1.0).allowed


def test_client_ip_prefers_proxy_headers() -> None:
    assert get_client_ip(make_request()) == "10.0.0.1"
    assert (
        get_client_ip(make_request(headers={"X-Forwarded-For": "1.1.1.1, 2.2.2.2"}))
        == "1.1.1.1"
    )
    assert get_client_ip(make_request(headers={"X-Real-IP": "3.3.3.3"})) == "3.3.3.3"


def test_endpoint_key_includes_path() -> None:
    key = get_endpoint_key(make_request(path="/api/v1/main-menus/"))
    assert key == "10.0.0.1:/api/v1/main-menus/"


def test_dependency_raises_429() -> None:
    limiter = RateLimiter("dep", max_attempts=1, window_seconds=30)
    request = make_request()
    assert limiter(request).allowed
    with pytest.raises(HTTPException) as exc_info:
        limiter(request)
    assert exc_info.value.status_code == 429
    assert exc_info.value.headers is not None
    assert 1 <= int(exc_info.value.headers["Retry-After"]) <= 30
