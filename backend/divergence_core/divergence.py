"""Regular RSI divergence classification.

Signal Logic:
- BULLISH: two pivot lows where price makes a lower low while RSI makes a
  higher low
- BEARISH: two pivot highs where price makes a higher high while RSI makes
  a lower high

Only pivot pairs whose bar distance lies in [range_lower, range_upper] are
considered. By default only adjacent same-kind pivots are paired.

Strength:
- STRONG: RSI diff > 7 and price change > 0.5%
- MEDIUM: RSI diff > 3 and price change > 0.2%
- WEAK: otherwise

This module is pure business logic with no I/O dependencies.
"""

import logging
from typing import Iterator, Sequence

from divergence_core.indicators.rsi import OVERBOUGHT, OVERSOLD
from divergence_core.models.config import Pairing
from divergence_core.models.signal import (
    Divergence,
    DivergenceKind,
    Pivot,
    PivotKind,
    Strength,
)

logger = logging.getLogger(__name__)

STRONG_RSI_DIFF = 7.0
STRONG_PRICE_PCT = 0.5
MEDIUM_RSI_DIFF = 3.0
MEDIUM_PRICE_PCT = 0.2

EXTREME_BONUS = 10.0


def classify_strength(indicator_diff: float, price_change_pct: float) -> Strength:
    """Bucket a divergence by RSI difference and price change percentage."""
    if indicator_diff > STRONG_RSI_DIFF and price_change_pct > STRONG_PRICE_PCT:
        return Strength.STRONG
    if indicator_diff > MEDIUM_RSI_DIFF and price_change_pct > MEDIUM_PRICE_PCT:
        return Strength.MEDIUM
    return Strength.WEAK


def calculate_confidence(
    kind: DivergenceKind,
    start: Pivot,
    end: Pivot,
    indicator_diff: float,
    price_change_pct: float,
) -> float:
    """
    Secondary 0-100 score.

    confidence = (rsi_diff * 2 + price_change_pct * 10) / 3, plus a bonus
    when either pivot sits in the overbought (bearish) or oversold
    (bullish) zone, clamped to [0, 100].
    """
    confidence = (indicator_diff * 2 + price_change_pct * 10) / 3

    if kind == DivergenceKind.BEARISH and (
        start.indicator_value > OVERBOUGHT or end.indicator_value > OVERBOUGHT
    ):
        confidence += EXTREME_BONUS
    if kind == DivergenceKind.BULLISH and (
        start.indicator_value < OVERSOLD or end.indicator_value < OVERSOLD
    ):
        confidence += EXTREME_BONUS

    return min(100.0, max(0.0, confidence))


def _pairs(pivots: Sequence[Pivot], pairing: Pairing) -> Iterator[tuple[Pivot, Pivot]]:
    if pairing == Pairing.ADJACENT:
        yield from zip(pivots, pivots[1:])
        return
    for j in range(1, len(pivots)):
        for i in range(j):
            yield pivots[i], pivots[j]


def _match(
    kind: DivergenceKind, previous: Pivot, current: Pivot
) -> Divergence | None:
    """Build a Divergence if the pivot pair disagrees with RSI."""
    if kind == DivergenceKind.BULLISH:
        # RSI higher low, price lower low
        if not (
            current.indicator_value > previous.indicator_value
            and current.price < previous.price
        ):
            return None
    else:
        # RSI lower high, price higher high
        if not (
            current.indicator_value < previous.indicator_value
            and current.price > previous.price
        ):
            return None

    if previous.price <= 0:
        return None

    price_change_pct = abs(current.price - previous.price) / previous.price * 100
    indicator_diff = abs(current.indicator_value - previous.indicator_value)

    return Divergence(
        kind=kind,
        start_pivot=previous,
        end_pivot=current,
        bar_distance=current.index - previous.index,
        strength=classify_strength(indicator_diff, price_change_pct),
        confidence=calculate_confidence(
            kind, previous, current, indicator_diff, price_change_pct
        ),
        price_change_pct=price_change_pct,
        indicator_diff=indicator_diff,
    )


def detect_divergences(
    pivots: Sequence[Pivot],
    range_lower: int = 2,
    range_upper: int = 15,
    pairing: Pairing = Pairing.ADJACENT,
) -> list[Divergence]:
    """
    Detect regular bullish and bearish divergences.

    Args:
        pivots: Pivots sorted by bar index (as returned by find_pivots)
        range_lower: Minimum bar distance between the two pivots
        range_upper: Maximum bar distance between the two pivots
        pairing: ADJACENT (canonical) or ALL_PAIRS

    Returns:
        Divergences sorted by ending pivot time

    Raises:
        ValueError: If the range is negative or inverted
    """
    if range_lower < 0 or range_lower > range_upper:
        raise ValueError(
            f"Invalid bar distance range [{range_lower}, {range_upper}]"
        )

    divergences: list[Divergence] = []
    if len(pivots) < 2:
        return divergences

    by_kind = (
        (DivergenceKind.BULLISH, [p for p in pivots if p.kind == PivotKind.LOW]),
        (DivergenceKind.BEARISH, [p for p in pivots if p.kind == PivotKind.HIGH]),
    )

    for kind, same_kind in by_kind:
        for previous, current in _pairs(same_kind, pairing):
            bar_distance = current.index - previous.index
            if not range_lower <= bar_distance <= range_upper:
                continue
            divergence = _match(kind, previous, current)
            if divergence is not None:
                divergences.append(divergence)

    divergences.sort(key=lambda d: (d.end_time, d.start_time, d.kind.value))
    logger.debug(
        f"Detected {len(divergences)} divergences from {len(pivots)} pivots "
        f"(range {range_lower}-{range_upper}, {pairing.value})"
    )
    return divergences
