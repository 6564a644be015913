"""
Rate Limiting Module

Fixed-window limiters for the sensitive public endpoints (signup, login,
verification, password changes and the public read API). Each limiter keeps
one window per client key in process memory.
"""

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

from fastapi import HTTPException, Request, status
from slowapi.util import get_remote_address

from hanmo.core.observability import RATE_LIMIT_REJECTIONS, get_logger

logger = get_logger(__name__)

# Expired windows are swept at most this often
CLEANUP_INTERVAL_SECONDS = 60


def get_client_ip(request: Request) -> str:
    """Client address, honouring proxy headers before the socket peer."""
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        first = forwarded_for.split(",")[0].strip()
        if first:
            return first
    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()
    return get_remote_address(request)


def get_endpoint_key(request: Request) -> str:
    """Get rate limit key based on endpoint and IP."""
    return f"{get_client_ip(request)}:{request.url.path}"


@dataclass
class RateLimitResult:
    allowed: bool
    remaining: int
    reset_time: float
    retry_after: int = 0


@dataclass
class _Window:
    count: int
    reset_time: float


class RateLimiter:
    """Fixed-window counter keyed by ``key_func(request)``."""

    def __init__(
        self,
        name: str,
        max_attempts: int,
        window_seconds: int,
        key_func: Callable[[Request], str] = get_client_ip,
    ):
        self.name = name
        self.max_attempts = max_attempts
        self.window_seconds = window_seconds
        self.key_func = key_func
        self._windows: dict[str, _Window] = {}
        self._lock = threading.Lock()
        self._last_cleanup = time.time()

    def hit(self, key: str, now: float | None = None) -> RateLimitResult:
        now = time.time() if now is None else now
        with self._lock:
            self._maybe_cleanup(now)
            window = self._windows.get(key)
            if window is None or window.reset_time <= now:
                window = _Window(count=0, reset_time=now + self.window_seconds)
                self._windows[key] = window

            if window.count >= self.max_attempts:
                retry_after = max(1, int(window.reset_time - now + 0.999))
                return RateLimitResult(
                    allowed=False,
                    remaining=0,
                    reset_time=window.reset_time,
                    retry_after=retry_after,
                )

            window.count += 1
            return RateLimitResult(
                allowed=True,
                remaining=self.max_attempts - window.count,
                reset_time=window.reset_time,
            )

    def check(self, request: Request) -> RateLimitResult:
        return self.hit(f"{self.name}:{self.key_func(request)}")

    def _maybe_cleanup(self, now: float) -> None:
        if now - self._last_cleanup < CLEANUP_INTERVAL_SECONDS:
            return
        expired = [k for k, w in self._windows.items() if w.reset_time <= now]
        for key in expired:
            del self._windows[key]
        self._last_cleanup = now

    def reset(self) -> None:
        with self._lock:
            self._windows.clear()

    def __call__(self, request: Request) -> RateLimitResult:
        """FastAPI dependency: raises 429 with ``Retry-After`` once the window is full."""
        result = self.check(request)
        if not result.allowed:
            RATE_LIMIT_REJECTIONS.labels(limiter=self.name).inc()
            logger.warning(
                "Rate limit exceeded",
                limiter=self.name,
                client_ip=get_client_ip(request),
                path=request.url.path,
                retry_after=result.retry_after,
            )
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail="Too many requests, please try again later",
                headers={"Retry-After": str(result.retry_after)},
            )
        return result


signup_limiter = RateLimiter("signup", max_attempts=3, window_seconds=15 * 60)
login_limiter = RateLimiter("login", max_attempts=10, window_seconds=15 * 60)
verify_email_limiter = RateLimiter("verify_email", max_attempts=5, window_seconds=60)
resend_verification_limiter = RateLimiter(
    "resend_verification", max_attempts=3, window_seconds=5 * 60
)
change_password_limiter = RateLimiter(
    "change_password", max_attempts=3, window_seconds=10 * 60
)
public_api_limiter = RateLimiter(
    "public_api", max_attempts=20, window_seconds=60, key_func=get_endpoint_key
)
feedback_limiter = RateLimiter("feedback", max_attempts=5, window_seconds=60 * 60)

ALL_LIMITERS = (
    signup_limiter,
    login_limiter,
    verify_email_limiter,
    resend_verification_limiter,
    change_password_limiter,
    public_api_limiter,
    feedback_limiter,
)


def reset_all_limiters() -> None:
    for limiter in ALL_LIMITERS:
        limiter.reset()
