"""Price bar (candlestick) data model."""

from decimal import Decimal

from pydantic import BaseModel, ConfigDict


class Bar(BaseModel):
    """OHLC price bar for a currency pair.

    ``open_time`` is the bar's open time in UTC milliseconds.
    """

    model_config = ConfigDict(frozen=True)

    open_time: int
    open: Decimal
    high: Decimal
    low: Decimal
    close: Decimal
    is_closed: bool = True

    @property
    def time(self) -> int:
        """Open time in UTC seconds (the key indicator points are joined on)."""
        return self.open_time // 1000

