"""Basic in-memory rate limiting utilities.

Notes:
- This is per-process memory. In multi-instance deployments, use a shared store
  (e.g., Redis) to enforce global limits.
- Keys should be stable and privacy-safe (user id preferred; fallback to IP).
"""

from __future__ import annotations

import time
from dataclasses import dataclass

from fastapi import HTTPException, Request, status

from trekmate.core.config import settings


@dataclass
class _Bucket:
    window_start: float
    count: int


# (key, window_seconds) -> bucket
_BUCKETS: dict[tuple[str, int], _Bucket] = {}
_last_prune = 0.0


def _now() -> float:
    return time.time()


def _prune_buckets(now: float, window_seconds: int) -> None:
    """Drop buckets whose window has ended. Runs at most once per window."""
    global _last_prune
    if now - _last_prune < window_seconds:
        return
    _last_prune = now
    expired = [
        key for key, bucket in _BUCKETS.items()
        if now - bucket.window_start >= key[1]
    ]
    for key in expired:
        del _BUCKETS[key]


def _get_client_key(request: Request, user_id: str | None) -> str:
    if user_id:
        return f"user:{user_id}"
    xff = request.headers.get("x-forwarded-for")
    if xff:
        ip = xff.split(",")[0].strip()
    else:
        ip = request.client.host if request.client else "unknown"
    return f"ip:{ip}"


def enforce_rate_limit(
    request: Request,
    *,
    user_id: str | None,
    limit_per_minute: int,
    scope: str,
) -> None:
    """Enforce a fixed-window rate limit.

    Raises:
        HTTPException(429) when exceeded.
    """
    if not settings.rate_limit_enabled:
        return

    window_seconds = 60
    key = f"{scope}:{_get_client_key(request, user_id)}"
    bucket_key = (key, window_seconds)

    now = _now()
    _prune_buckets(now, window_seconds)
    bucket = _BUCKETS.get(bucket_key)
    if bucket is None or now - bucket.window_start >= window_seconds:
        _BUCKETS[bucket_key] = _Bucket(window_start=now, count=1)
        return

    if bucket.count >= limit_per_minute:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Rate limit exceeded",
            headers={
                "Retry-After": str(int(window_seconds - (now - bucket.window_start))),
            },
        )

    bucket.count += 1


class CooldownTracker:
    """Remembers when a key last fired and suppresses repeats inside a window.

    Used for club trek alerts, where the same (club, alert type, member)
    should surface at most once per cooldown.
    """

    def __init__(self, cooldown_seconds: float, clock=_now):
        self.cooldown_seconds = cooldown_seconds
        self._clock = clock
        self._last_fired: dict[str, float] = {}

    def should_fire(self, key: str) -> bool:
        now = self._clock()
        last = self._last_fired.get(key)
        if last is not None and now - last < self.cooldown_seconds:
            return False
        self._last_fired[key] = now
        return True

    def prune(self) -> None:
        """Drop keys whose cooldown has elapsed."""
        now = self._clock()
        expired = [
            key for key, ts in self._last_fired.items()
            if now - ts > self.cooldown_seconds
        ]
        for key in expired:
            del self._last_fired[key]

    def __len__(self) -> int:
        return len(self._last_fired)
