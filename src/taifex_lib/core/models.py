"""
Domain types, symbol allowlist and exchange constants.

Everything the pipeline passes between stages lives here so the parsing
modules, the date walker and the HTTP layer agree on one shape:

  - ``ContractQuote`` — one candidate row pulled out of a daily report
  - ``ClosePoint``    — the selected main contract for one trading date
  - ``SeriesRequest`` — what the caller asked for
  - ``SeriesResult``  — the cached / served artifact
"""

import os
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import IntEnum
from typing import Optional
from zoneinfo import ZoneInfo

# ---------------------------------------------------------------------------
# Exchange constants
# ---------------------------------------------------------------------------
EXCHANGE_TZ = ZoneInfo("Asia/Taipei")

# Contracts served by the dashboard: TAIEX futures, mini and micro.
SYMBOLS: tuple[str, ...] = ("TX", "MTX", "TMF")

SYMBOL_NAMES: dict[str, str] = {
    "TX": "臺股期貨",
    "MTX": "小型臺指",
    "TMF": "微型臺指",
}

DEFAULT_SYMBOL = "TX"
DEFAULT_DAYS = 30
MAX_DAYS = 60

# Calendar days the walker may examine before giving up.
LOOKBACK_GUARD = int(os.getenv("CLOSES_LOOKBACK_GUARD", "170"))


class Session(IntEnum):
    """TAIFEX ``marketCode`` values."""

    REGULAR = 0
    AFTER_HOURS = 1

    @property
    def code(self) -> str:
        return str(int(self))

    @classmethod
    def parse(cls, value) -> "Session":
        """Accept 0/1 as int or str; raise ValueError for anything else."""
        try:
            return cls(int(str(value).strip()))
        except (TypeError, ValueError):
            raise ValueError(f"unknown session code: {value!r}") from None


def clamp_days(days) -> int:
    """Clamp a requested day count to ``[1, MAX_DAYS]`` (default when unparseable)."""
    try:
        n = int(days)
    except (TypeError, ValueError):
        n = DEFAULT_DAYS
    if n <= 0:
        n = DEFAULT_DAYS
    return max(1, min(n, MAX_DAYS))


# ---------------------------------------------------------------------------
# Pipeline types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ContractQuote:
    """A single contract-month row extracted from a daily report."""

    contract: str
    month: str
    close: float
    total_volume: float = 0


@dataclass(frozen=True)
class ClosePoint:
    """Main-contract close for one trading date."""

    date: str  # ISO yyyy-mm-dd, exchange-local
    close: float
    contract_month: str
    volume: int

    def to_dict(self) -> dict:
        return {
            "date": self.date,
            "close": self.close,
            "contractMonth": self.contract_month,
            "volume": self.volume,
        }

    @classmethod
    def from_dict(cls, payload: dict) -> "ClosePoint":
        return cls(
            date=str(payload["date"]),
            close=float(payload["close"]),
            contract_month=str(payload["contractMonth"]),
            volume=int(payload["volume"]),
        )


@dataclass(frozen=True)
class SeriesRequest:
    symbol: str
    session: Session = Session.REGULAR
    count: int = DEFAULT_DAYS
    anchor_date: Optional[date] = None


@dataclass
class SeriesResult:
    """Newest-first main-contract series plus its rolling averages."""

    symbol: str
    session: Session
    fetched_at: datetime
    avg_prev4: Optional[float]
    avg_next4: Optional[float]
    points: list[ClosePoint] = field(default_factory=list)

    def to_payload(self) -> dict:
        """JSON-safe dict in the shape the dashboard consumes."""
        return {
            "symbol": self.symbol,
            "marketCode": int(self.session),
            "fetchedAtTaipei": self.fetched_at.astimezone(EXCHANGE_TZ).isoformat(
                timespec="milliseconds"
            ),
            "avgPrev4": self.avg_prev4,
            "avgNext4": self.avg_next4,
            "data": [p.to_dict() for p in self.points],
        }

    @classmethod
    def from_payload(cls, payload: dict) -> "SeriesResult":
        return cls(
            symbol=payload["symbol"],
            session=Session.parse(payload["marketCode"]),
            fetched_at=datetime.fromisoformat(payload["fetchedAtTaipei"]),
            avg_prev4=payload.get("avgPrev4"),
            avg_next4=payload.get("avgNext4"),
            points=[ClosePoint.from_dict(p) for p in payload.get("data", [])],
        )
