"""
TAIFEX open-data bulk feed: decoding, header mapping and main-contract
selection.

The ``DailyMarketReportFut`` export is a single delimited text file that
covers every futures contract for the last month or so of trading days.
It is served in Big5, its delimiter has changed between releases, and
its column headers carry localized text that TAIFEX has renamed before.
This module therefore:

  1. decodes the bytes (Big5, UTF-8 if Big5 yields next to nothing)
  2. sniffs the delimiter from the first non-blank line
  3. resolves logical fields through ``FIELD_CANDIDATES`` (an explicit,
     ordered list of header fragments per field) and raises
     ``SchemaMismatchError`` when a required one is missing
  4. keeps one row per trading date: the contract month with the largest
     total volume (the "main" contract)
"""

import io
import logging
from dataclasses import dataclass
from typing import Optional

import pandas as pd

from src.taifex_lib.core.errors import SchemaMismatchError
from src.taifex_lib.core.models import ClosePoint, Session
from src.taifex_lib.parsing.text import norm_text, normalize_date, to_number

logger = logging.getLogger("parsing.open_data")

LEGACY_ENCODING = "big5"

# Anything shorter than this after a Big5 decode is treated as a failed
# decode and retried as UTF-8.
MIN_DECODED_LENGTH = 10

# ---------------------------------------------------------------------------
# Header fragments per logical field, in order of preference.
# ---------------------------------------------------------------------------
FIELD_CANDIDATES: dict[str, tuple[str, ...]] = {
    "date": ("日期",),
    "contract": ("契約",),
    "month": ("到期月份",),
    "close": ("最後成交價",),
    "volume": ("合計成交量",),
    "session": ("交易時段",),
}

REQUIRED_FIELDS: tuple[str, ...] = ("date", "contract", "month", "close", "volume")

# Text the session column carries for each market code.
SESSION_MARKERS: dict[Session, tuple[str, ...]] = {
    Session.REGULAR: ("一般",),
    Session.AFTER_HOURS: ("盤後", "夜盤"),
}


@dataclass(frozen=True)
class FieldMap:
    """Resolved header name for each logical field."""

    date: str
    contract: str
    month: str
    close: str
    volume: str
    session: Optional[str] = None


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------


def decode_feed(raw: bytes) -> str:
    text = raw.decode(LEGACY_ENCODING, errors="replace")
    if len(text) < MIN_DECODED_LENGTH:
        text = raw.decode("utf-8", errors="replace")
    return text


def first_non_blank_line(text: str) -> str:
    for line in text.splitlines():
        if line.strip():
            return line
    return ""


def guess_delimiter(first_line: str) -> str:
    if ";" in first_line:
        return ";"
    if "," in first_line:
        return ","
    return ";"


def parse_feed(text: str) -> pd.DataFrame:
    """Parse decoded feed text into a DataFrame of raw string cells."""
    first_line = first_non_blank_line(text)
    if not first_line:
        return pd.DataFrame()

    frame = pd.read_csv(
        io.StringIO(text),
        sep=guess_delimiter(first_line),
        dtype=str,
        keep_default_na=False,
        skip_blank_lines=True,
        index_col=False,
        on_bad_lines="skip",
    )
    frame.columns = pd.Index([norm_text(c) for c in frame.columns])
    return frame


# ---------------------------------------------------------------------------
# Header mapping
# ---------------------------------------------------------------------------


def _find_header(headers: list[str], candidates: tuple[str, ...]) -> str | None:
    for fragment in candidates:
        for header in headers:
            if fragment in header:
                return header
    return None


def resolve_fields(headers) -> FieldMap:
    """Map logical fields to actual header names.

    Raises ``SchemaMismatchError`` naming every required field that could
    not be resolved.
    """
    headers = [str(h) for h in headers]
    resolved = {
        name: _find_header(headers, candidates)
        for name, candidates in FIELD_CANDIDATES.items()
    }
    missing = [name for name in REQUIRED_FIELDS if resolved[name] is None]
    if missing:
        raise SchemaMismatchError(missing, headers)
    return FieldMap(**resolved)


def session_matches(session_text, session: Session) -> bool:
    text = norm_text(session_text)
    if not text:
        return True
    return any(marker in text for marker in SESSION_MARKERS[Session(session)])


# ---------------------------------------------------------------------------
# Row filtering and main-contract selection
# ---------------------------------------------------------------------------


def filter_rows(
    frame: pd.DataFrame, fields: FieldMap, symbol: str, session: Session
) -> pd.DataFrame:
    """Rows for *symbol* traded in *session* (blank session column matches)."""
    if frame.empty:
        return frame
    contract = frame[fields.contract].map(norm_text)
    mask = contract == symbol
    if fields.session is not None:
        mask &= frame[fields.session].map(lambda s: session_matches(s, session))
    return frame[mask]


def pick_main_for_each_date(
    frame: pd.DataFrame, fields: FieldMap, count: int | None = None
) -> list[ClosePoint]:
    """One ``ClosePoint`` per date: the highest-volume contract month.

    Rows with a missing date, a non-numeric close or volume, or a blank
    contract month are discarded.  On equal volume the row that appears
    first in the feed wins.  Output is newest-first, truncated to *count*.
    """
    if frame.empty:
        return []

    work = pd.DataFrame(
        {
            "date": frame[fields.date].map(normalize_date),
            "close": frame[fields.close].map(to_number),
            "volume": frame[fields.volume].map(to_number),
            "contract_month": frame[fields.month].map(norm_text),
        }
    )
    work = work.dropna(subset=["date", "close", "volume"])
    work = work[work["contract_month"] != ""]
    if work.empty:
        return []

    work = work.astype({"close": float, "volume": float})
    best_idx = work.groupby("date", sort=False)["volume"].idxmax()
    main = work.loc[best_idx].sort_values("date", ascending=False, kind="stable")
    if count is not None:
        main = main.head(count)

    return [
        ClosePoint(
            date=row.date,
            close=float(row.close),
            contract_month=row.contract_month,
            volume=int(row.volume),
        )
        for row in main.itertuples(index=False)
    ]


def closes_from_open_data(
    raw: bytes, symbol: str, session: Session, count: int | None = None
) -> list[ClosePoint]:
    """Full bulk-feed pipeline: bytes in, newest-first main-contract closes out."""
    frame = parse_feed(decode_feed(raw))
    fields = resolve_fields(list(frame.columns))
    rows = filter_rows(frame, fields, symbol, session)
    points = pick_main_for_each_date(rows, fields, count)
    logger.debug(
        "Open data: %d rows total, %d for %s/%s, %d dates",
        len(frame),
        len(rows),
        symbol,
        int(session),
        len(points),
    )
    return points
