"""
taifex_lib.parsing — Upstream text, CSV and HTML report parsers.

    from src.taifex_lib.parsing import to_number, closes_from_open_data, extract_main_contract
"""

from src.taifex_lib.parsing.daily_report import (
    EXTRACTION_STRATEGIES,
    extract_from_tables,
    extract_from_text,
    extract_main_contract,
    parse_trading_date,
)
from src.taifex_lib.parsing.open_data import (
    FIELD_CANDIDATES,
    closes_from_open_data,
    decode_feed,
    resolve_fields,
)
from src.taifex_lib.parsing.text import norm_text, normalize_date, to_number

__all__ = [
    # daily_report
    "EXTRACTION_STRATEGIES",
    "extract_from_tables",
    "extract_from_text",
    "extract_main_contract",
    "parse_trading_date",
    # open_data
    "FIELD_CANDIDATES",
    "closes_from_open_data",
    "decode_feed",
    "resolve_fields",
    # text
    "norm_text",
    "normalize_date",
    "to_number",
]
