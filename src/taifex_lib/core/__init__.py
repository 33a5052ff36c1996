"""
taifex_lib.core — Core infrastructure modules.

Re-exports the public API from each sub-module so callers can do:

    from src.taifex_lib.core import cache_get, cache_set, ClosePoint, Session
"""

from src.taifex_lib.core.cache import (
    REDIS_AVAILABLE,
    TTL_CLOSES,
    cache_delete,
    cache_get,
    cache_set,
    cached_keys,
    closes_key,
    flush_all,
    get_cached_series,
    set_cached_series,
)
from src.taifex_lib.core.errors import (
    AcquisitionError,
    SchemaMismatchError,
    TaifexError,
)
from src.taifex_lib.core.logging_config import get_logger, setup_logging
from src.taifex_lib.core.models import (
    DEFAULT_SYMBOL,
    EXCHANGE_TZ,
    LOOKBACK_GUARD,
    SYMBOLS,
    ClosePoint,
    ContractQuote,
    SeriesRequest,
    SeriesResult,
    Session,
    clamp_days,
)

__all__ = [
    # cache
    "REDIS_AVAILABLE",
    "TTL_CLOSES",
    "cache_delete",
    "cache_get",
    "cache_set",
    "cached_keys",
    "closes_key",
    "flush_all",
    "get_cached_series",
    "set_cached_series",
    # errors
    "AcquisitionError",
    "SchemaMismatchError",
    "TaifexError",
    # logging
    "get_logger",
    "setup_logging",
    # models
    "DEFAULT_SYMBOL",
    "EXCHANGE_TZ",
    "LOOKBACK_GUARD",
    "SYMBOLS",
    "ClosePoint",
    "ContractQuote",
    "SeriesRequest",
    "SeriesResult",
    "Session",
    "clamp_days",
]
