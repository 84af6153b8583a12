"""Divergence analysis pipeline.

Runs the three pure stages in order:
1. RSI over the close series (or a precomputed series)
2. Pivot detection joined to RSI
3. Divergence classification over the pivots
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Sequence

from divergence_core.divergence import detect_divergences
from divergence_core.indicators.rsi import calculate_rsi
from divergence_core.models.bar import Bar
from divergence_core.models.config import DivergenceConfig
from divergence_core.models.signal import (
    Divergence,
    DivergenceKind,
    IndicatorPoint,
    Pivot,
    PivotKind,
    Strength,
)
from divergence_core.pivots import find_pivots

logger = logging.getLogger(__name__)


@dataclass
class AnalysisSummary:
    total_pivots: int = 0
    high_pivots: int = 0
    low_pivots: int = 0
    bullish_divergences: int = 0
    bearish_divergences: int = 0
    strong_divergences: int = 0


@dataclass
class AnalysisResult:
    """Output of one analysis pass over a bar series."""

    rsi: list[IndicatorPoint] = field(default_factory=list)
    pivots: list[Pivot] = field(default_factory=list)
    divergences: list[Divergence] = field(default_factory=list)
    summary: AnalysisSummary = field(default_factory=AnalysisSummary)

    @property
    def has_divergences(self) -> bool:
        return bool(self.divergences)


def summarize(pivots: Sequence[Pivot], divergences: Sequence[Divergence]) -> AnalysisSummary:
    return AnalysisSummary(
        total_pivots=len(pivots),
        high_pivots=sum(1 for p in pivots if p.kind == PivotKind.HIGH),
        low_pivots=sum(1 for p in pivots if p.kind == PivotKind.LOW),
        bullish_divergences=sum(1 for d in divergences if d.kind == DivergenceKind.BULLISH),
        bearish_divergences=sum(1 for d in divergences if d.kind == DivergenceKind.BEARISH),
        strong_divergences=sum(1 for d in divergences if d.strength == Strength.STRONG),
    )


def analyze_divergence(
    bars: Sequence[Bar],
    config: DivergenceConfig | None = None,
    rsi: Sequence[IndicatorPoint] | None = None,
) -> AnalysisResult:
    """
    Run RSI, pivot and divergence detection over a bar series.

    Args:
        bars: Time-ordered, de-duplicated bars
        config: Detection parameters (defaults to DivergenceConfig())
        rsi: Precomputed RSI series, e.g. calculated over a longer history
            than ``bars`` for a better-primed average

    Returns:
        AnalysisResult; divergences are empty when there are fewer than
        range_upper + lookback_left + lookback_right bars
    """
    config = config or DivergenceConfig()

    rsi_points = list(rsi) if rsi is not None else calculate_rsi(bars, config.rsi_period)
    pivots = find_pivots(bars, rsi_points, config.lookback_left, config.lookback_right)

    if len(bars) < config.min_bars:
        logger.debug(
            f"Insufficient data for divergence detection: {len(bars)} bars "
            f"< {config.min_bars}"
        )
        divergences: list[Divergence] = []
    else:
        divergences = detect_divergences(
            pivots, config.range_lower, config.range_upper, config.pairing
        )

    return AnalysisResult(
        rsi=rsi_points,
        pivots=pivots,
        divergences=divergences,
        summary=summarize(pivots, divergences),
    )
