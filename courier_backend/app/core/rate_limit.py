"""
Rate Limiting

Fixed-window request counting per (endpoint class, client):

    key = "{endpoint}:{client}"

The counter store sits behind the narrow ``RateLimitStore`` interface:
- InMemoryRateLimitStore: process-local dict, the default. Counters are NOT
  shared between instances; run a single instance or switch to Redis.
- RedisRateLimitStore: INCR/PEXPIRE on a shared Redis, for multi-instance.

Login brute-force protection keeps using SlowAPI (RATE_LIMIT_AUTH).
"""
import logging
import math
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from fastapi import Request, Response
from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from starlette.responses import JSONResponse

from app.core.config import settings
from app.core.exceptions import RateLimitExceededError
from app.core.request_utils import get_client_identifier, extract_client_ip

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitConfig:
    """Requests allowed per fixed window."""
    max_requests: int
    window_seconds: float = 60.0


RATE_LIMIT_CONFIGS: Dict[str, RateLimitConfig] = {
    "tracking": RateLimitConfig(max_requests=30),   # public tracking lookup
    "quotes": RateLimitConfig(max_requests=10),     # public quote form
    "mapbox": RateLimitConfig(max_requests=60),     # geocoder proxy
    "admin": RateLimitConfig(max_requests=200),     # authenticated admin API
    "default": RateLimitConfig(max_requests=100),
}


@dataclass
class RateLimitResult:
    allowed: bool
    remaining: int
    reset_at: float  # unix timestamp (seconds) when the window ends

    def retry_after(self, now: Optional[float] = None) -> int:
        """Whole seconds until the window resets."""
        now = time.time() if now is None else now
        return max(0, math.ceil(self.reset_at - now))

    @property
    def reset_header(self) -> str:
        return str(math.ceil(self.reset_at))


class RateLimitStore:
    """Counter storage contract used by FixedWindowRateLimiter."""

    async def check_and_increment(
        self, key: str, limit: int, window_seconds: float
    ) -> RateLimitResult:
        raise NotImplementedError


@dataclass
class _WindowEntry:
    count: int
    reset_at: float


class InMemoryRateLimitStore(RateLimitStore):
    """
    Process-local fixed-window counters.

    Expired entries are swept opportunistically on access, at most once per
    SWEEP_INTERVAL_SECONDS, so memory stays bounded without a scheduler.
    No lock: all mutation happens between awaits on a single event loop.
    """

    SWEEP_INTERVAL_SECONDS = 60.0

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._entries: Dict[str, _WindowEntry] = {}
        self._last_sweep = clock()

    def __len__(self) -> int:
        return len(self._entries)

    def _sweep_expired(self, now: float) -> None:
        if now - self._last_sweep < self.SWEEP_INTERVAL_SECONDS:
            return
        self._last_sweep = now
        expired = [key for key, entry in self._entries.items() if now > entry.reset_at]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug(f"[RateLimit] Swept {len(expired)} expired windows")

    async def check_and_increment(
        self, key: str, limit: int, window_seconds: float
    ) -> RateLimitResult:
        now = self._clock()
        self._sweep_expired(now)

        entry = self._entries.get(key)
        if entry is None or now > entry.reset_at:
            entry = _WindowEntry(count=0, reset_at=now + window_seconds)
            self._entries[key] = entry

        entry.count += 1

        return RateLimitResult(
            allowed=entry.count <= limit,
            remaining=max(0, limit - entry.count),
            reset_at=entry.reset_at,
        )


class RedisRateLimitStore(RateLimitStore):
    """
    Shared fixed-window counters in Redis.

    The first INCR of a window sets the key's expiry; PTTL gives the reset time.
    """

    KEY_PREFIX = "ratelimit:"

    def __init__(self, client, clock: Callable[[], float] = time.time):
        self._client = client
        self._clock = clock

    async def check_and_increment(
        self, key: str, limit: int, window_seconds: float
    ) -> RateLimitResult:
        redis_key = f"{self.KEY_PREFIX}{key}"
        window_ms = int(window_seconds * 1000)

        async with self._client.pipeline(transaction=True) as pipe:
            pipe.incr(redis_key)
            pipe.pttl(redis_key)
            count, ttl_ms = await pipe.execute()

        if ttl_ms is None or ttl_ms < 0:
            # New window (or a key that lost its expiry)
            await self._client.pexpire(redis_key, window_ms)
            ttl_ms = window_ms

        return RateLimitResult(
            allowed=count <= limit,
            remaining=max(0, limit - count),
            reset_at=self._clock() + ttl_ms / 1000,
        )


class FixedWindowRateLimiter:
    """Applies the per-endpoint policy table on top of a counter store."""

    def __init__(
        self,
        store: Optional[RateLimitStore] = None,
        configs: Optional[Dict[str, RateLimitConfig]] = None,
        enabled: bool = True,
    ):
        self.store = store or InMemoryRateLimitStore()
        self.configs = dict(configs or RATE_LIMIT_CONFIGS)
        self.enabled = enabled

    def use_store(self, store: RateLimitStore) -> None:
        self.store = store
        logger.info(f"[RateLimit] Using {type(store).__name__}")

    def config_for(self, endpoint: str) -> RateLimitConfig:
        return self.configs.get(endpoint) or self.configs["default"]

    async def check(self, client_id: str, endpoint: str = "default") -> RateLimitResult:
        config = self.config_for(endpoint)
        return await self.store.check_and_increment(
            f"{endpoint}:{client_id}", config.max_requests, config.window_seconds
        )


rate_limiter = FixedWindowRateLimiter(enabled=settings.RATE_LIMIT_ENABLED)


def rate_limit(endpoint: str = "default"):
    """
    FastAPI dependency enforcing the fixed-window limit for an endpoint class.

    Sets X-RateLimit-Remaining / X-RateLimit-Reset on allowed responses and
    raises RateLimitExceededError (429 + Retry-After) otherwise.

    Usage:
        @router.get("/tracking", dependencies=[Depends(rate_limit("tracking"))])
    """

    async def check_rate_limit(request: Request, response: Response) -> Optional[RateLimitResult]:
        if not rate_limiter.enabled:
            return None

        result = await rate_limiter.check(get_client_identifier(request), endpoint)
        if not result.allowed:
            logger.warning(
                f"Rate limit exceeded: {get_client_identifier(request)} "
                f"on {request.url.path} [{endpoint}]"
            )
            raise RateLimitExceededError(
                reset_at=result.reset_at,
                retry_after=result.retry_after(),
                details={"endpoint": endpoint},
            )

        response.headers["X-RateLimit-Remaining"] = str(result.remaining)
        response.headers["X-RateLimit-Reset"] = result.reset_header
        return result

    check_rate_limit.__name__ = f"rate_limit_{endpoint}"
    return check_rate_limit


# ----- SlowAPI (login brute-force guard) -----

def get_client_ip(request: Request) -> str:
    """
    Get client IP, respecting proxy headers.
    Falls back to direct IP if no header present.
    """
    return extract_client_ip(request) or get_remote_address(request)


limiter = Limiter(
    key_func=get_client_ip,
    enabled=settings.RATE_LIMIT_ENABLED,
)


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """
    Handler for SlowAPI limits.
    Returns the standard envelope with a retry-after header.
    """
    logger.warning(
        f"Login rate limit exceeded: {get_client_ip(request)} on {request.url.path}"
    )

    return JSONResponse(
        status_code=429,
        content={
            "success": False,
            "error": "Too many requests. Please try again later.",
        },
        headers={"Retry-After": "60"},
    )
