"""Relative Strength Index (RSI) with Wilder smoothing.

Series convention: no neutral padding. The first RSI value belongs to bar
index ``period`` (it needs ``period`` close-to-close changes), so a series of
n bars yields n - period points, each stamped with its own bar's open time.

Zero-volatility convention: when the average loss is exactly zero the RSI is
exactly 100, including a completely flat series.
"""

from decimal import Decimal
from typing import Literal, Sequence

import numpy as np

from divergence_core.models.bar import Bar
from divergence_core.models.signal import IndicatorPoint

OVERSOLD = 30.0
OVERBOUGHT = 70.0


def _rsi_from_averages(avg_gain: float, avg_loss: float) -> float:
    if avg_loss == 0:
        return 100.0
    rs = avg_gain / avg_loss
    return 100.0 - 100.0 / (1.0 + rs)


def rsi_values(closes: Sequence[Decimal | float], period: int = 14) -> np.ndarray:
    """
    Calculate RSI aligned to the input closes.

    Args:
        closes: Sequence of close prices
        period: Smoothing period

    Returns:
        float64 array, same length as input, NaN before index ``period``

    Raises:
        ValueError: If period < 1
    """
    if period < 1:
        raise ValueError(f"RSI period must be >= 1, got {period}")

    arr = np.array([float(v) for v in closes], dtype=np.float64)
    result = np.full(len(arr), np.nan)
    if len(arr) < period + 1:
        return result

    diffs = np.diff(arr)
    gains = np.where(diffs > 0, diffs, 0.0)
    losses = np.where(diffs < 0, -diffs, 0.0)

    # Seed with simple averages of the first `period` changes
    avg_gain = float(np.mean(gains[:period]))
    avg_loss = float(np.mean(losses[:period]))
    result[period] = _rsi_from_averages(avg_gain, avg_loss)

    # Wilder smoothing; change i-1 ends at bar i
    for i in range(period + 1, len(arr)):
        avg_gain = (avg_gain * (period - 1) + gains[i - 1]) / period
        avg_loss = (avg_loss * (period - 1) + losses[i - 1]) / period
        result[i] = _rsi_from_averages(avg_gain, avg_loss)

    return result


def calculate_rsi(bars: Sequence[Bar], period: int = 14) -> list[IndicatorPoint]:
    """
    Calculate the RSI series for a bar sequence.

    Args:
        bars: Time-ordered bars
        period: Smoothing period (default 14)

    Returns:
        One IndicatorPoint per bar from index ``period`` on; empty if there
        are fewer than period + 1 bars
    """
    values = rsi_values([b.close for b in bars], period)
    return [
        IndicatorPoint(time=bars[i].time, value=float(values[i]))
        for i in range(period, len(bars))
    ]


def rsi_status(value: float) -> Literal["oversold", "overbought", "neutral"]:
    """Classify an RSI value against the 30/70 bands."""
    if value <= OVERSOLD:
        return "oversold"
    if value >= OVERBOUGHT:
        return "overbought"
    return "neutral"
