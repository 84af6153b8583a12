"""Indicator, pivot and divergence data models."""

import hashlib
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class PivotKind(str, Enum):
    """Which extreme a pivot marks."""

    HIGH = "high"
    LOW = "low"


class DivergenceKind(str, Enum):
    """Divergence direction."""

    BULLISH = "bullish"  # Price lower low, RSI higher low
    BEARISH = "bearish"  # Price higher high, RSI lower high


class Strength(str, Enum):
    """Divergence strength bucket."""

    WEAK = "weak"
    MEDIUM = "medium"
    STRONG = "strong"


class IndicatorPoint(BaseModel):
    """Oscillator value at a bar, keyed by the bar's open time in seconds."""

    model_config = ConfigDict(frozen=True)

    time: int
    value: float


class Pivot(BaseModel):
    """Local price extreme joined to the oscillator value at the same bar."""

    model_config = ConfigDict(frozen=True)

    index: int  # Position in the bar sequence
    time: int
    price: float
    indicator_value: float
    kind: PivotKind


def _generate_divergence_id(kind: DivergenceKind, start_time: int, end_time: int) -> str:
    """Generate deterministic divergence ID.

    The same pivot pair always yields the same ID, so repeated scans of an
    overlapping window can be de-duplicated downstream.
    """
    key = f"{kind.value}:{start_time}:{end_time}"
    return hashlib.sha256(key.encode()).hexdigest()[:32]


class Divergence(BaseModel):
    """Disagreement between price and RSI across two same-kind pivots."""

    id: str = ""  # Will be set in model_post_init
    kind: DivergenceKind
    start_pivot: Pivot
    end_pivot: Pivot
    bar_distance: int
    strength: Strength = Strength.WEAK
    confidence: float = Field(default=0.0, ge=0.0, le=100.0)
    price_change_pct: float = 0.0  # |price delta| / start price * 100
    indicator_diff: float = 0.0  # |RSI delta|

    def model_post_init(self, __context) -> None:
        """Generate deterministic ID after model initialization."""
        if not self.id:
            object.__setattr__(
                self,
                "id",
                _generate_divergence_id(
                    self.kind, self.start_pivot.time, self.end_pivot.time
                ),
            )

    @property
    def start_time(self) -> int:
        return self.start_pivot.time

    @property
    def end_time(self) -> int:
        return self.end_pivot.time

    @property
    def description(self) -> str:
        """Human readable summary, e.g. 'Bullish divergence: price -0.42%, RSI +5.10'."""
        if self.kind == DivergenceKind.BULLISH:
            return (
                f"Bullish divergence: price -{self.price_change_pct:.2f}%, "
                f"RSI +{self.indicator_diff:.2f}"
            )
        return (
            f"Bearish divergence: price +{self.price_change_pct:.2f}%, "
            f"RSI -{self.indicator_diff:.2f}"
        )
