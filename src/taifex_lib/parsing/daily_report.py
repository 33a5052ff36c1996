"""
Parsers for the per-date TAIFEX futures market report
(``/cht/3/futDailyMarketExcel``).

The report's layout is not stable: some days it is a proper ``<table>``
with a header row, other days the same numbers arrive as loosely
formatted text.  Extraction is therefore an ordered chain of strategies,
each a plain function ``(markup, symbol) -> ContractQuote | None``:

  1. ``extract_from_tables`` — locate the quote table by its header row
     and read columns by header text
  2. ``extract_from_text``   — render to plain text and walk the lines

``extract_main_contract`` returns the first non-None result.  Both
strategies return the contract month with the largest total volume, the
"main" contract, with the first-seen row winning ties.
"""

import logging
import re
from dataclasses import dataclass
from typing import Callable, Optional

from bs4 import BeautifulSoup

from src.taifex_lib.core.models import ContractQuote
from src.taifex_lib.parsing.text import norm_text, to_number

logger = logging.getLogger("parsing.daily_report")

_TRADING_DATE_RE = re.compile(r"日期[:：]\s*(\d{4}/\d{2}/\d{2})")
_MONTH_RE = re.compile(r"^\d{6}$")
_LEADING_DIGIT_RE = re.compile(r"^\d")

# A header row must mention all of these.
HEADER_MARKERS: tuple[str, ...] = ("契約", "最後", "成交", "成交量")

# Header fragments per column, in order of preference.  ``volume`` is a
# priority list: total, then regular session, then after-hours.
REPORT_COLUMN_CANDIDATES: dict[str, tuple[str, ...]] = {
    "contract": ("契約",),
    "month": ("到期月份",),
    "last": ("最後成交價", "最後成交"),
}
VOLUME_COLUMN_PRIORITY: tuple[str, ...] = (
    "合計成交量",
    "一般交易時段成交量",
    "盤後交易時段成交量",
)

# Everything from this heading on is the calendar-spread table.
SPREAD_TABLE_MARKER = "價差行情表"


def parse_trading_date(markup: str) -> str | None:
    """Return the report's own ``yyyy/mm/dd`` trading date, if printed."""
    m = _TRADING_DATE_RE.search(markup)
    return m.group(1) if m else None


# ---------------------------------------------------------------------------
# Strategy 1: table mode
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ReportColumns:
    contract: int
    month: int
    last: int
    volume: tuple[int, ...] = ()


def find_header_index(headers: list[str], fragments: tuple[str, ...]) -> int:
    """Index of the first header containing any fragment (whitespace ignored)."""
    compact = [re.sub(r"\s", "", norm_text(h)) for h in headers]
    for i, header in enumerate(compact):
        for fragment in fragments:
            if re.sub(r"\s", "", fragment) in header:
                return i
    return -1


def is_header_row(texts: list[str]) -> bool:
    joined = " ".join(texts)
    return all(marker in joined for marker in HEADER_MARKERS)


def resolve_report_columns(headers: list[str]) -> ReportColumns | None:
    """Column positions for a quote table, or None if a key column is absent."""
    idx = {
        name: find_header_index(headers, fragments)
        for name, fragments in REPORT_COLUMN_CANDIDATES.items()
    }
    if min(idx.values()) < 0:
        return None
    volume = tuple(
        i
        for i in (find_header_index(headers, (label,)) for label in VOLUME_COLUMN_PRIORITY)
        if i >= 0
    )
    return ReportColumns(
        contract=idx["contract"], month=idx["month"], last=idx["last"], volume=volume
    )


def _cell_texts(row) -> list[str]:
    return [norm_text(cell.get_text()) for cell in row.find_all(["th", "td"])]


def _cell(texts: list[str], i: int) -> str | None:
    return texts[i] if 0 <= i < len(texts) else None


def _row_volume(texts: list[str], columns: ReportColumns) -> float:
    for i in columns.volume:
        value = to_number(_cell(texts, i))
        if value is not None:
            return value
    return 0


def _scan_table(table, symbol: str) -> list[ContractQuote]:
    rows = table.find_all("tr")
    header_idx = -1
    columns: ReportColumns | None = None
    for ri, row in enumerate(rows):
        texts = [t for t in _cell_texts(row) if t]
        if is_header_row(texts):
            header_idx = ri
            columns = resolve_report_columns(texts)
            break
    if columns is None:
        return []

    quotes = []
    for row in rows[header_idx + 1 :]:
        texts = _cell_texts(row)
        if not texts:
            continue
        contract = _cell(texts, columns.contract)
        month = _cell(texts, columns.month) or ""
        if contract != symbol:
            continue
        # Skips calendar spreads such as 202512/202601.
        if not _MONTH_RE.match(month):
            continue
        last = to_number(_cell(texts, columns.last))
        if last is None:
            continue
        quotes.append(
            ContractQuote(
                contract=contract,
                month=month,
                close=last,
                total_volume=_row_volume(texts, columns),
            )
        )
    return quotes


def _max_volume(quotes: list[ContractQuote]) -> ContractQuote | None:
    best = None
    for quote in quotes:
        if best is None or quote.total_volume > best.total_volume:
            best = quote
    return best


def extract_from_tables(markup: str, symbol: str) -> ContractQuote | None:
    soup = BeautifulSoup(markup, "html.parser")
    quotes: list[ContractQuote] = []
    for table in soup.find_all("table"):
        quotes.extend(_scan_table(table, symbol))
    return _max_volume(quotes)


# ---------------------------------------------------------------------------
# Strategy 2: text mode
# ---------------------------------------------------------------------------


def parse_quote_line(line: str) -> tuple[float, float] | None:
    """``(close, volume)`` from a whitespace-separated quote line.

    The first four numeric tokens are open/high/low/last.  Volumes follow
    the change-percent token as after-hours, regular, total; without a
    percent token the largest integer on the line is taken as volume.
    """
    tokens = [t for t in norm_text(line).split(" ") if t]

    prices = []
    for token in tokens:
        value = to_number(token)
        if value is not None:
            prices.append(value)
        if len(prices) >= 4:
            break
    if len(prices) < 4:
        return None
    close = prices[3]

    pct_idx = next((i for i, t in enumerate(tokens) if "%" in t), -1)
    if pct_idx >= 0:
        volume = 0
        for offset in (3, 2, 1):
            j = pct_idx + offset
            value = to_number(tokens[j]) if j < len(tokens) else None
            if value is not None:
                volume = value
                break
    else:
        integers = [
            v for v in (to_number(t) for t in tokens) if v is not None and v.is_integer()
        ]
        volume = max(integers) if integers else 0
    return close, volume


def report_lines(markup: str) -> list[str]:
    """Non-blank normalised text lines, cut before the spread table."""
    text = BeautifulSoup(markup, "html.parser").get_text()
    lines = [norm_text(line) for line in text.splitlines()]
    lines = [line for line in lines if line]
    for i, line in enumerate(lines):
        if SPREAD_TABLE_MARKER in line:
            return lines[:i]
    return lines


def extract_from_lines(lines: list[str], symbol: str) -> ContractQuote | None:
    quotes = []
    n = len(lines)
    for i, line in enumerate(lines):
        if line != symbol:
            continue
        j = i + 1
        while j < n and not _MONTH_RE.match(lines[j]):
            j += 1
        if j >= n:
            continue
        k = j + 1
        while k < n and not _LEADING_DIGIT_RE.match(lines[k]):
            k += 1
        if k >= n:
            continue
        parsed = parse_quote_line(lines[k])
        if parsed is None:
            continue
        close, volume = parsed
        quotes.append(
            ContractQuote(contract=symbol, month=lines[j], close=close, total_volume=volume)
        )
    return _max_volume(quotes)


def extract_from_text(markup: str, symbol: str) -> ContractQuote | None:
    return extract_from_lines(report_lines(markup), symbol)


# ---------------------------------------------------------------------------
# Strategy chain
# ---------------------------------------------------------------------------

Extractor = Callable[[str, str], Optional[ContractQuote]]

EXTRACTION_STRATEGIES: tuple[Extractor, ...] = (
    extract_from_tables,
    extract_from_text,
)


def extract_main_contract(
    markup: str,
    symbol: str,
    strategies: tuple[Extractor, ...] = EXTRACTION_STRATEGIES,
) -> ContractQuote | None:
    for strategy in strategies:
        quote = strategy(markup, symbol)
        if quote is not None:
            logger.debug("%s matched %s %s", strategy.__name__, symbol, quote.month)
            return quote
    return None
