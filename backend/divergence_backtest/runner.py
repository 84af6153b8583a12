"""BacktestRunner: orchestrates the divergence backtest pipeline.

For one (symbol, interval) bar series:
1. Detect divergences (RSI -> pivots -> divergences)
2. Simulate one SL/TP trade per divergence
3. Aggregate statistics

Bars are supplied by the caller; fetching them is out of scope here.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Sequence

from divergence_core.analysis import analyze_divergence
from divergence_core.models.bar import Bar
from divergence_core.models.config import (
    DivergenceConfig,
    PairConvention,
    RiskSettings,
    pair_convention,
)
from divergence_core.models.signal import IndicatorPoint

from divergence_backtest.divergence_config import DivergenceAppConfig
from divergence_backtest.simulator import TradeSimulator
from divergence_backtest.stats import BacktestResult, StatisticsCalculator

logger = logging.getLogger(__name__)


@dataclass
class BacktestConfig:
    """Configuration for a backtest run."""

    symbol: str
    interval: str
    divergence: DivergenceConfig = field(default_factory=DivergenceConfig)
    risk: RiskSettings = field(default_factory=RiskSettings)
    convention: PairConvention | None = None

    def get_convention(self) -> PairConvention:
        return self.convention or pair_convention(self.symbol)

    @classmethod
    def from_app_config(cls, app_config: DivergenceAppConfig) -> "BacktestConfig":
        return cls(
            symbol=app_config.symbol,
            interval=app_config.interval,
            divergence=app_config.divergence,
            risk=app_config.risk,
            convention=app_config.convention,
        )


class BacktestRunner:
    """Run a divergence backtest over one bar series."""

    def __init__(self, config: BacktestConfig):
        self.config = config

    def run(
        self,
        bars: Sequence[Bar],
        rsi: Sequence[IndicatorPoint] | None = None,
    ) -> BacktestResult:
        """Execute the full backtest pipeline.

        Args:
            bars: Time-ordered, de-duplicated bars
            rsi: Optional precomputed RSI series (see analyze_divergence)
        """
        start_time = time.time()
        config = self.config

        logger.info(
            f"Starting backtest: {config.symbol} {config.interval}, "
            f"{len(bars)} bars, range={config.divergence.range_lower}-"
            f"{config.divergence.range_upper}"
        )

        analysis = analyze_divergence(bars, config.divergence, rsi=rsi)
        logger.info(
            f"Analysis: {analysis.summary.total_pivots} pivots, "
            f"{analysis.summary.bullish_divergences} bullish / "
            f"{analysis.summary.bearish_divergences} bearish divergences"
        )

        simulator = TradeSimulator(config.risk, config.get_convention())
        trades = simulator.simulate(bars, analysis.divergences)
        if simulator.skipped_count:
            logger.info(f"Skipped {simulator.skipped_count} divergences without entry bar")

        result = StatisticsCalculator().calculate(
            trades,
            config.risk,
            symbol=config.symbol,
            interval=config.interval,
            start_time=bars[0].time if bars else None,
            end_time=bars[-1].time if bars else None,
        )
        result.analysis = analysis

        elapsed = time.time() - start_time
        logger.info(
            f"Backtest completed in {elapsed:.2f}s: {result.total_trades} closed, "
            f"{result.open_trades} open, PnL={result.total_pnl:+.0f}"
        )
        return result
