"""
Rate Admission Control

Fixed-window, per-tenant request admission. Each tenant has its own window
and counter, so one tenant's burst never spends another tenant's budget.
"""

import math
import time
from dataclasses import dataclass
from typing import Callable, Optional

import redis.asyncio as redis
from redis.exceptions import RedisError
from structlog import get_logger

from ..errors import DependencyUnavailable

logger = get_logger()

# INCR and PEXPIRE run as one atomic script; the first hit in a window sets
# its expiry
_FIXED_WINDOW_SCRIPT = """
local count = redis.call('INCR', KEYS[1])
if count == 1 then
    redis.call('PEXPIRE', KEYS[1], ARGV[1])
end
local ttl = redis.call('PTTL', KEYS[1])
return {count, ttl}
"""


@dataclass
class RateWindow:
    """Live admission window for one tenant."""

    tenant_id: str
    window_start: float
    count: int = 0


@dataclass(frozen=True)
class Admission:
    """Result of an admission check."""

    allowed: bool
    remaining: int
    retry_after_seconds: Optional[int] = None


class RateAdmissionController:
    """Admits or rejects requests per tenant."""

    def __init__(
        self,
        window_seconds: int,
        limit_per_window: int,
        redis_client: Optional[redis.Redis] = None,
        key_prefix: str = "tenancy:rate",
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize admission controller.

        Args:
            window_seconds: Length of a window
            limit_per_window: Default ceiling of admitted requests per window
            redis_client: Optional Redis client to share windows across processes
            key_prefix: Redis key namespace
            clock: Monotonic time source for in-process windows
        """
        if window_seconds <= 0 or limit_per_window <= 0:
            raise ValueError("window_seconds and limit_per_window must be positive")
        self.window_seconds = window_seconds
        self.limit_per_window = limit_per_window
        self.redis_client = redis_client
        self.key_prefix = key_prefix
        self.clock = clock
        self._windows: dict[str, RateWindow] = {}

    async def admit(self, tenant_id: str, limit: Optional[int] = None) -> Admission:
        """
        Check and count one request for a tenant.

        Args:
            tenant_id: Tenant from the request's TenantContext
            limit: Per-tenant ceiling overriding the default

        Returns:
            Admission decision
        """
        ceiling = limit or self.limit_per_window
        if self.redis_client:
            return await self._admit_redis(tenant_id, ceiling)
        return self._admit_local(tenant_id, ceiling)

    def _admit_local(self, tenant_id: str, ceiling: int) -> Admission:
        # No await between reading and updating the window: checks for the same
        # tenant cannot interleave on the event loop
        now = self.clock()
        window = self._windows.get(tenant_id)

        if window is None or now >= window.window_start + self.window_seconds:
            window = RateWindow(tenant_id=tenant_id, window_start=now)
            self._windows[tenant_id] = window

        if window.count >= ceiling:
            retry_after = max(1, math.ceil(window.window_start + self.window_seconds - now))
            logger.info("rate_limit_rejected", tenant_id=tenant_id, ceiling=ceiling, retry_after=retry_after)
            return Admission(allowed=False, remaining=0, retry_after_seconds=retry_after)

        window.count += 1
        return Admission(allowed=True, remaining=ceiling - window.count)

    async def _admit_redis(self, tenant_id: str, ceiling: int) -> Admission:
        key = f"{self.key_prefix}:{tenant_id}"
        try:
            count, ttl_ms = await self.redis_client.eval(
                _FIXED_WINDOW_SCRIPT,
                1,
                key,
                str(self.window_seconds * 1000),
            )
        except RedisError as e:
            logger.error("rate_limit_store_error", tenant_id=tenant_id, error=str(e))
            raise DependencyUnavailable("Rate limit store unavailable")

        count = int(count)
        if count > ceiling:
            ttl_ms = int(ttl_ms)
            retry_after = max(1, math.ceil(ttl_ms / 1000)) if ttl_ms > 0 else self.window_seconds
            logger.info("rate_limit_rejected", tenant_id=tenant_id, ceiling=ceiling, retry_after=retry_after)
            return Admission(allowed=False, remaining=0, retry_after_seconds=retry_after)

        return Admission(allowed=True, remaining=ceiling - count)

    def current_window(self, tenant_id: str) -> Optional[RateWindow]:
        """Inspect the in-process window for a tenant."""
        return self._windows.get(tenant_id)
