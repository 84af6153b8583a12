"""Pivot (local extreme) detection.

Equivalent to TradingView's ta.pivothigh / ta.pivotlow: bar i is a pivot
high when its high is strictly greater than every high in the
``lookback_left`` bars before it and the ``lookback_right`` bars after it
(pivot low mirrors this on lows). Ties disqualify, so a plateau never
produces a pivot.

A candidate is only kept when the RSI series has a value at the same bar
timestamp; candidates inside the RSI warm-up period are dropped.
"""

import logging
from typing import Sequence

from divergence_core.models.bar import Bar
from divergence_core.models.signal import IndicatorPoint, Pivot, PivotKind

logger = logging.getLogger(__name__)


def _is_pivot_high(bars: Sequence[Bar], i: int, left: int, right: int) -> bool:
    current = bars[i].high
    for j in range(i - left, i + right + 1):
        if j != i and bars[j].high >= current:
            return False
    return True


def _is_pivot_low(bars: Sequence[Bar], i: int, left: int, right: int) -> bool:
    current = bars[i].low
    for j in range(i - left, i + right + 1):
        if j != i and bars[j].low <= current:
            return False
    return True


def find_pivots(
    bars: Sequence[Bar],
    rsi: Sequence[IndicatorPoint],
    lookback_left: int = 2,
    lookback_right: int = 2,
) -> list[Pivot]:
    """
    Find pivot highs and lows joined to their RSI values.

    Args:
        bars: Time-ordered bars
        rsi: RSI series (any alignment; joined on timestamp)
        lookback_left: Bars to the left that must be strictly dominated
        lookback_right: Bars to the right that must be strictly dominated

    Returns:
        Pivots sorted by bar index (a high before a low at the same index)

    Raises:
        ValueError: If either lookback is < 1
    """
    if lookback_left < 1 or lookback_right < 1:
        raise ValueError(
            f"lookbacks must be >= 1, got left={lookback_left} right={lookback_right}"
        )

    n = len(bars)
    if n < lookback_left + lookback_right + 1:
        logger.debug(
            f"Not enough bars for pivots: {n} < {lookback_left + lookback_right + 1}"
        )
        return []

    rsi_by_time = {p.time: p.value for p in rsi}
    pivots: list[Pivot] = []

    for i in range(lookback_left, n - lookback_right):
        bar = bars[i]
        value = rsi_by_time.get(bar.time)

        if _is_pivot_high(bars, i, lookback_left, lookback_right) and value is not None:
            pivots.append(
                Pivot(
                    index=i,
                    time=bar.time,
                    price=float(bar.high),
                    indicator_value=value,
                    kind=PivotKind.HIGH,
                )
            )

        if _is_pivot_low(bars, i, lookback_left, lookback_right) and value is not None:
            pivots.append(
                Pivot(
                    index=i,
                    time=bar.time,
                    price=float(bar.low),
                    indicator_value=value,
                    kind=PivotKind.LOW,
                )
            )

    return pivots
