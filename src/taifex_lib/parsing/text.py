"""
Whitespace and number normalisation for TAIFEX text.

TAIFEX pages mix non-breaking spaces, thousands separators and dash
placeholders for "no trade".  Every parser in this package funnels cell
text through these helpers.
"""

import math
import re

_WS_RE = re.compile(r"\s+")
_DATE_RE = re.compile(r"^(\d{4})[/\-](\d{1,2})[/\-](\d{1,2})$")

# Placeholders TAIFEX prints for "no value".
_NULL_TOKENS = frozenset({"", "-", "--", "—"})


def norm_text(value) -> str:
    """Convert NBSPs to spaces, collapse whitespace runs and trim."""
    if value is None:
        return ""
    return _WS_RE.sub(" ", str(value).replace("\u00a0", " ")).strip()


def to_number(value) -> float | None:
    """Parse a locale-formatted number; ``None`` when absent or unparseable.

    ``"1,234"`` -> 1234.0, ``"12.5"`` -> 12.5, ``"-"`` / ``""`` -> None.
    Never raises.
    """
    text = norm_text(value).replace(",", "")
    if text in _NULL_TOKENS or "_" in text:
        return None
    try:
        number = float(text)
    except ValueError:
        return None
    if not math.isfinite(number):
        return None
    return number


def normalize_date(value) -> str | None:
    """``2025/1/2`` or ``2025-01-02`` -> ``2025-01-02``.

    Text that does not look like a date is returned trimmed so the caller
    still groups on it; empty input gives ``None``.
    """
    text = norm_text(value)
    if not text:
        return None
    m = _DATE_RE.match(text)
    if not m:
        return text
    return f"{m.group(1)}-{int(m.group(2)):02d}-{int(m.group(3)):02d}"
