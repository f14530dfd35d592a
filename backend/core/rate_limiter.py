"""Rate limiting for the punch card API

Fixed-window request counting keyed by client identifier and path. The
limiter is an injected collaborator: it lives on ``app.state.rate_limiter``,
takes its clock as a constructor argument and stores counters either in
Redis or in its own in-memory table.
"""

import logging
import math
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

import redis
from fastapi import Request, status
from fastapi.responses import JSONResponse

from core.config import get_settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitRule:
    """Maximum ``limit`` requests every ``window`` seconds"""

    limit: int
    window: int


# Pre-configured limits for common use cases
RATE_LIMIT_PRESETS: Dict[str, RateLimitRule] = {
    "strict": RateLimitRule(limit=5, window=60),  # sensitive operations
    "standard": RateLimitRule(limit=30, window=60),  # regular API endpoints
    "generous": RateLimitRule(limit=100, window=60),  # public endpoints
    "auth": RateLimitRule(limit=3, window=300),  # authentication endpoints
}


@dataclass
class RateLimitResult:
    allowed: bool
    limit: int
    remaining: int
    reset_at: float
    retry_after: int = 0


class RateLimiter:
    """Fixed-window rate limiter with a pluggable clock and backend"""

    def __init__(
        self,
        redis_client: Optional[redis.Redis] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.redis_client = redis_client
        self.clock = clock
        # key -> (count, reset_at)
        self._windows: Dict[str, Tuple[int, float]] = {}

    def check(self, identifier: str, path: str, rule: RateLimitRule) -> RateLimitResult:
        """Count one request and report whether it is within the limit."""
        key = f"{identifier}:{path}"
        now = self.clock()

        if self.redis_client is not None:
            try:
                return self._check_redis(key, rule, now)
            except redis.RedisError as e:
                logger.error(f"Redis error in rate limiting: {e}")
                # Fail open on Redis errors (allow request)
                return RateLimitResult(
                    allowed=True,
                    limit=rule.limit,
                    remaining=rule.limit,
                    reset_at=now + rule.window,
                )

        return self._check_memory(key, rule, now)

    def _check_memory(self, key: str, rule: RateLimitRule, now: float) -> RateLimitResult:
        self._purge_expired(now)
        count, reset_at = self._windows.get(key, (0, now + rule.window))

        if count >= rule.limit:
            return RateLimitResult(
                allowed=False,
                limit=rule.limit,
                remaining=0,
                reset_at=reset_at,
                retry_after=max(1, math.ceil(reset_at - now)),
            )

        count += 1
        self._windows[key] = (count, reset_at)
        return RateLimitResult(
            allowed=True,
            limit=rule.limit,
            remaining=max(0, rule.limit - count),
            reset_at=reset_at,
        )

    def _check_redis(self, key: str, rule: RateLimitRule, now: float) -> RateLimitResult:
        window_start = int(now // rule.window) * rule.window
        redis_key = f"rate_limit:{key}:{window_start}"

        pipe = self.redis_client.pipeline()
        pipe.incr(redis_key)
        pipe.expire(redis_key, rule.window)
        current_count = pipe.execute()[0]

        reset_at = float(window_start + rule.window)
        allowed = current_count <= rule.limit
        return RateLimitResult(
            allowed=allowed,
            limit=rule.limit,
            remaining=max(0, rule.limit - current_count),
            reset_at=reset_at,
            retry_after=0 if allowed else max(1, math.ceil(reset_at - now)),
        )

    def _purge_expired(self, now: float) -> None:
        expired = [key for key, (_, reset_at) in self._windows.items() if now >= reset_at]
        for key in expired:
            del self._windows[key]

    def reset(self) -> None:
        self._windows.clear()


def build_rate_limiter() -> RateLimiter:
    """Create the limiter configured for this deployment"""
    settings = get_settings()
    if settings.redis_url:
        return RateLimiter(redis_client=redis.Redis.from_url(settings.redis_url))
    return RateLimiter()


def client_identifier(request: Request) -> str:
    """Best-effort client address, honouring common proxy headers"""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()

    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip

    cf_connecting_ip = request.headers.get("cf-connecting-ip")
    if cf_connecting_ip:
        return cf_connecting_ip

    return "unknown"


def rate_limit(preset: str = "standard") -> Callable:
    """
    Build a route dependency enforcing one of ``RATE_LIMIT_PRESETS``.

    Usage:
        @router.post("/punch", dependencies=[Depends(rate_limit("standard"))])
    """
    rule = RATE_LIMIT_PRESETS[preset]

    async def dependency(request: Request) -> None:
        if not get_settings().rate_limit_enabled:
            return

        limiter: Optional[RateLimiter] = getattr(request.app.state, "rate_limiter", None)
        if limiter is None:
            return

        result = limiter.check(client_identifier(request), request.url.path, rule)
        if result.allowed:
            return

        logger.info(
            f"Rate limit exceeded for {client_identifier(request)} on {request.url.path}"
        )
        raise RateLimitExceeded(result)

    return dependency


class RateLimitExceeded(Exception):
    def __init__(self, result: RateLimitResult):
        self.result = result
        super().__init__(f"Rate limit exceeded, retry after {result.retry_after}s")


async def handle_rate_limit_exceeded(
    request: Request, exc: RateLimitExceeded
) -> JSONResponse:
    result = exc.result
    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content={
            "error": "Too many requests",
            "message": (
                f"Rate limit exceeded. Please try again in "
                f"{result.retry_after} seconds."
            ),
            "retryAfter": result.retry_after,
        },
        headers={
            "X-RateLimit-Limit": str(result.limit),
            "X-RateLimit-Remaining": "0",
            "X-RateLimit-Reset": str(int(result.reset_at)),
            "Retry-After": str(result.retry_after),
        },
    )
