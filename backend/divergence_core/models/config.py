"""Divergence, risk and notification configuration models."""

from __future__ import annotations

from datetime import time
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, Field, field_validator, model_validator

from divergence_core.models.signal import DivergenceKind


class Pairing(str, Enum):
    """How same-kind pivots are paired when looking for divergences."""

    ADJACENT = "adjacent"  # (previous, current) only, TradingView style
    ALL_PAIRS = "all_pairs"  # every earlier pivot within range


class DivergenceConfig(BaseModel):
    """RSI / pivot / divergence detection parameters."""

    rsi_period: int = Field(default=14, ge=1)
    lookback_left: int = Field(default=2, ge=1)
    lookback_right: int = Field(default=2, ge=1)

    # Bar distance window between the two pivots (inclusive)
    range_lower: int = Field(default=2, ge=0)
    range_upper: int = Field(default=15, ge=0)

    pairing: Pairing = Pairing.ADJACENT

    @model_validator(mode="after")
    def _validate_range(self):
        if self.range_lower > self.range_upper:
            raise ValueError(
                f"range_lower ({self.range_lower}) must not exceed "
                f"range_upper ({self.range_upper})"
            )
        return self

    @property
    def min_bars(self) -> int:
        """Fewest bars for which divergence detection is attempted."""
        return self.range_upper + self.lookback_left + self.lookback_right


class RiskSettings(BaseModel):
    """Stop-loss / take-profit trade model parameters."""

    stop_loss_pips: Decimal = Field(default=Decimal("30"), gt=0)
    take_profit_pips: Decimal = Field(default=Decimal("50"), gt=0)
    initial_balance: Decimal = Field(default=Decimal("1000000"), gt=0)
    position_size_lots: Decimal = Field(default=Decimal("1"), gt=0)


class PairConvention(BaseModel):
    """Pip size and per-lot pip value for a currency pair.

    units_per_lot is the quote-currency value of one pip on one lot
    (100,000 units): 1000 for JPY-quoted pairs, 10 otherwise.
    """

    pip_size: Decimal = Field(gt=0)
    units_per_lot: Decimal = Field(gt=0)

    def pips_to_price(self, pips: Decimal) -> Decimal:
        return pips * self.pip_size

    def price_to_pips(self, price_diff: Decimal) -> Decimal:
        return price_diff / self.pip_size


JPY_CONVENTION = PairConvention(pip_size=Decimal("0.01"), units_per_lot=Decimal("1000"))
DEFAULT_CONVENTION = PairConvention(pip_size=Decimal("0.0001"), units_per_lot=Decimal("10"))


def pair_convention(symbol: str) -> PairConvention:
    """Return the pip convention for a symbol such as 'USD_JPY' or 'EURUSD'."""
    if symbol.upper().replace("_", "").replace("/", "").endswith("JPY"):
        return JPY_CONVENTION
    return DEFAULT_CONVENTION


class NotificationSettings(BaseModel):
    """Per-user notification preferences.

    Quiet hours are local times of day; a window whose start is later than
    its end wraps past midnight (e.g. 22:00 -> 06:00).
    """

    enabled: bool = True
    enabled_kinds: set[DivergenceKind] = {DivergenceKind.BULLISH, DivergenceKind.BEARISH}
    quiet_hours_start: time | None = None
    quiet_hours_end: time | None = None
    max_per_hour: int = Field(default=5, ge=0)

    monitored_pairs: list[str] = ["USD_JPY"]
    monitored_intervals: list[str] = ["1hour"]

    @field_validator("quiet_hours_start", "quiet_hours_end", mode="before")
    @classmethod
    def _parse_time(cls, value):
        if isinstance(value, str):
            if not value.strip():
                return None
            return time.fromisoformat(value.strip())
        return value

    @field_validator("quiet_hours_start", "quiet_hours_end")
    @classmethod
    def _require_local_time(cls, value: time | None):
        # Quiet hours are a local time of day; an offset cannot be compared
        if value is not None and value.tzinfo is not None:
            raise ValueError(f"quiet hours must not carry a UTC offset, got {value.isoformat()}")
        return value

    @property
    def has_quiet_hours(self) -> bool:
        return self.quiet_hours_start is not None and self.quiet_hours_end is not None

    def is_monitored(self, symbol: str, interval: str) -> bool:
        """Check the currency/interval allow-list."""
        return symbol in self.monitored_pairs and interval in self.monitored_intervals
