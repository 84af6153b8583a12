"""Converters between raw market-data rows and Bar models.

Raw rows use the market-data service format:
- openTime as a string of UTC milliseconds
- open/high/low/close as decimal strings

Conversion functions also de-duplicate and sort, so the analysis core always
receives a single time-ordered series.
"""

from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Mapping
from zoneinfo import ZoneInfo

from divergence_core.models.bar import Bar


# =============================================================================
# Timestamp conversion helpers
# =============================================================================

def timestamp_to_datetime(ts: int, tz: str | None = None) -> datetime:
    """Convert Unix timestamp (seconds) to an aware datetime.

    Args:
        ts: Unix timestamp in seconds
        tz: IANA timezone name for display (e.g. 'Asia/Tokyo'); UTC if None
    """
    dt = datetime.fromtimestamp(ts, tz=timezone.utc)
    if tz:
        return dt.astimezone(ZoneInfo(tz))
    return dt


# =============================================================================
# Bar conversions
# =============================================================================

def row_to_bar(row: Mapping[str, Any]) -> Bar:
    """Convert a raw market-data row to a Bar.

    Raises:
        ValueError: If a required field is missing or not numeric.
    """
    try:
        return Bar(
            open_time=int(row["openTime"]),
            open=Decimal(str(row["open"])),
            high=Decimal(str(row["high"])),
            low=Decimal(str(row["low"])),
            close=Decimal(str(row["close"])),
        )
    except KeyError as e:
        raise ValueError(f"Bar row missing field {e}") from e
    except (InvalidOperation, TypeError) as e:
        raise ValueError(f"Bar row has non-numeric value: {row!r}") from e


def bars_from_rows(rows: Iterable[Mapping[str, Any]]) -> list[Bar]:
    """Convert raw rows to a de-duplicated, time-sorted list of Bars.

    When several rows share an openTime (overlapping daily pages), the
    first one wins.
    """
    seen: set[int] = set()
    bars: list[Bar] = []
    for row in rows:
        bar = row_to_bar(row)
        if bar.open_time in seen:
            continue
        seen.add(bar.open_time)
        bars.append(bar)
    bars.sort(key=lambda b: b.open_time)
    return bars


def bar_to_row(bar: Bar) -> dict[str, str]:
    """Convert a Bar back to the raw market-data row format."""
    return {
        "openTime": str(bar.open_time),
        "open": str(bar.open),
        "high": str(bar.high),
        "low": str(bar.low),
        "close": str(bar.close),
    }
