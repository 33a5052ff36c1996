"""
Redis caching layer for computed close series.

One entry per (symbol, session): the complete JSON payload served to the
dashboard, stored under ``FUT:CLOSES:<symbol>:<session>`` with an 8-day
TTL.  Entries are always written whole, so a reader never observes a
partial series.  There is no locking: two concurrent misses both
recompute and the last write wins.

Redis is reached through ``REDIS_URL``.  If it cannot be pinged at import
time, or ``DISABLE_REDIS`` is set, entries live in a process-local dict
with the same TTL semantics instead.
"""

import json
import logging
import os
import time

logger = logging.getLogger("cache")

_DISABLED = os.getenv("DISABLE_REDIS", "").strip().lower() in ("1", "true", "yes")

_r = None
REDIS_AVAILABLE = False

if not _DISABLED:
    try:
        import redis

        _r = redis.from_url(os.getenv("REDIS_URL", "redis://localhost:6379/0"), decode_responses=False)
        _r.ping()
        REDIS_AVAILABLE = True
    except Exception as exc:
        logger.warning("Redis unavailable, series cache falls back to memory: %s", exc)
        _r = None

# key -> (expires_at epoch seconds, payload bytes)
_mem_cache: dict[str, tuple[float, bytes]] = {}

# Series stay valid for 8 days.
TTL_CLOSES = 60 * 60 * 24 * 8

KEY_PREFIX = "FUT:CLOSES"


def closes_key(symbol: str, session) -> str:
    return f"{KEY_PREFIX}:{symbol}:{int(session)}"


def _use_redis() -> bool:
    return REDIS_AVAILABLE and _r is not None


# ---------------------------------------------------------------------------
# Raw bytes
# ---------------------------------------------------------------------------


def cache_get(key: str) -> bytes | None:
    if _use_redis():
        value = _r.get(key)
        return value if isinstance(value, bytes) else None

    hit = _mem_cache.get(key)
    if hit is None:
        return None
    expires_at, data = hit
    if time.time() >= expires_at:
        _mem_cache.pop(key, None)
        return None
    return data


def cache_set(key: str, data: bytes, ttl: int) -> None:
    if _use_redis():
        _r.setex(key, ttl, data)
        return
    _mem_cache[key] = (time.time() + ttl, data)


def cache_delete(key: str) -> None:
    if _use_redis():
        _r.delete(key)
        return
    _mem_cache.pop(key, None)


def cached_keys() -> list[str]:
    """Every series key currently stored, sorted."""
    if _use_redis():
        keys = (k.decode() if isinstance(k, bytes) else k for k in _r.scan_iter(f"{KEY_PREFIX}:*"))
    else:
        now = time.time()
        keys = (k for k, (expires_at, _) in _mem_cache.items() if expires_at > now)
    return sorted(keys)


# ---------------------------------------------------------------------------
# Series payloads
# ---------------------------------------------------------------------------


def get_cached_series(symbol: str, session) -> dict | None:
    """Return the cached payload dict for (symbol, session), or None."""
    raw = cache_get(closes_key(symbol, session))
    return None if raw is None else json.loads(raw.decode("utf-8"))


def set_cached_series(symbol: str, session, payload: dict) -> None:
    data = json.dumps(payload, ensure_ascii=False).encode("utf-8")
    cache_set(closes_key(symbol, session), data, TTL_CLOSES)


def flush_all() -> None:
    """Drop every cached series."""
    for key in cached_keys():
        cache_delete(key)
