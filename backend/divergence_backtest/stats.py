"""Statistics calculator for backtest results.

Computes overall metrics over closed trades, the running equity curve with
maximum drawdown, and per-direction / per-strength breakdowns.

Open trades are reported but excluded from every closed-trade metric.
Equity is accumulated in trade-close order (exit time; ties keep the
simulation order).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal

from divergence_core.analysis import AnalysisResult
from divergence_core.models.config import RiskSettings
from divergence_core.models.signal import Strength
from divergence_core.models.trade import Direction, Trade

logger = logging.getLogger(__name__)

# Reported when there are winners but no losers
PROFIT_FACTOR_CAP = 999.0


@dataclass
class DirectionStats:
    direction: str  # "LONG" or "SHORT"
    total: int = 0
    wins: int = 0
    losses: int = 0
    open: int = 0
    pnl: float = 0.0

    @property
    def win_rate(self) -> float:
        resolved = self.wins + self.losses
        return (self.wins / resolved * 100) if resolved > 0 else 0.0


@dataclass
class StrengthStats:
    strength: str  # "weak", "medium" or "strong"
    total: int = 0
    wins: int = 0
    losses: int = 0
    open: int = 0
    pnl: float = 0.0

    @property
    def win_rate(self) -> float:
        resolved = self.wins + self.losses
        return (self.wins / resolved * 100) if resolved > 0 else 0.0


@dataclass
class EquityPoint:
    time: int  # exit time, seconds
    equity: float
    drawdown_pct: float


@dataclass
class BacktestResult:
    """Complete backtest results."""

    # Metadata
    symbol: str
    interval: str
    initial_balance: float
    start_time: int | None = None
    end_time: int | None = None

    # All trades, including ones still open
    trades: list[Trade] = field(default_factory=list)

    # Overall (closed trades only)
    total_trades: int = 0
    winning_trades: int = 0
    losing_trades: int = 0
    open_trades: int = 0
    win_rate: float = 0.0
    total_pnl: float = 0.0
    total_pips: float = 0.0
    gross_profit: float = 0.0
    gross_loss: float = 0.0
    profit_factor: float = 0.0
    max_drawdown: float = 0.0
    final_balance: float = 0.0

    equity_curve: list[EquityPoint] = field(default_factory=list)

    # Breakdowns
    by_direction: list[DirectionStats] = field(default_factory=list)
    by_strength: list[StrengthStats] = field(default_factory=list)

    # Set by the runner: RSI, pivots and divergences the trades came from
    analysis: AnalysisResult | None = None


class StatisticsCalculator:
    """Calculate backtest statistics from simulated trades."""

    def calculate(
        self,
        trades: list[Trade],
        risk: RiskSettings,
        symbol: str = "",
        interval: str = "",
        start_time: int | None = None,
        end_time: int | None = None,
    ) -> BacktestResult:
        result = BacktestResult(
            symbol=symbol,
            interval=interval,
            initial_balance=float(risk.initial_balance),
            start_time=start_time,
            end_time=end_time,
            trades=trades,
        )
        self._calc_overall(result)
        self._calc_equity(result)
        self._calc_by_direction(result)
        self._calc_by_strength(result)
        return result

    @staticmethod
    def _closed(result: BacktestResult) -> list[Trade]:
        return [t for t in result.trades if t.is_closed]

    def _calc_overall(self, result: BacktestResult) -> None:
        closed = self._closed(result)
        pnls = [float(t.pnl) for t in closed]

        result.total_trades = len(closed)
        result.winning_trades = sum(1 for p in pnls if p > 0)
        result.losing_trades = sum(1 for p in pnls if p < 0)
        result.open_trades = len(result.trades) - len(closed)

        result.total_pnl = float(sum((t.pnl for t in closed), Decimal("0")))
        result.total_pips = float(sum((t.pips for t in closed), Decimal("0")))
        result.gross_profit = sum(p for p in pnls if p > 0)
        result.gross_loss = abs(sum(p for p in pnls if p < 0))

        if result.total_trades > 0:
            result.win_rate = result.winning_trades / result.total_trades * 100

        if result.gross_loss > 0:
            result.profit_factor = result.gross_profit / result.gross_loss
        elif result.gross_profit > 0:
            result.profit_factor = PROFIT_FACTOR_CAP
        else:
            result.profit_factor = 0.0

        result.final_balance = result.initial_balance + result.total_pnl

    def _calc_equity(self, result: BacktestResult) -> None:
        # sorted() is stable: same-bar exits keep simulation order
        closed = sorted(self._closed(result), key=lambda t: t.exit_time)

        equity = Decimal(str(result.initial_balance))
        peak = equity
        max_drawdown = 0.0
        curve: list[EquityPoint] = []

        for trade in closed:
            equity += trade.pnl
            if equity > peak:
                peak = equity
            drawdown = float((peak - equity) / peak * 100)
            if drawdown > max_drawdown:
                max_drawdown = drawdown
            curve.append(
                EquityPoint(
                    time=trade.exit_time,
                    equity=float(equity),
                    drawdown_pct=round(drawdown, 4),
                )
            )

        result.equity_curve = curve
        result.max_drawdown = max_drawdown

    def _calc_by_direction(self, result: BacktestResult) -> None:
        groups: dict[str, DirectionStats] = {}
        for trade in result.trades:
            label = "LONG" if trade.side == Direction.LONG else "SHORT"
            if label not in groups:
                groups[label] = DirectionStats(direction=label)
            stats = groups[label]
            stats.total += 1
            if not trade.is_closed:
                stats.open += 1
                continue
            if trade.pnl > 0:
                stats.wins += 1
            elif trade.pnl < 0:
                stats.losses += 1
            stats.pnl += float(trade.pnl)
        result.by_direction = sorted(groups.values(), key=lambda s: s.direction)

    def _calc_by_strength(self, result: BacktestResult) -> None:
        groups: dict[str, StrengthStats] = {}
        for trade in result.trades:
            label = trade.divergence.strength.value
            if label not in groups:
                groups[label] = StrengthStats(strength=label)
            stats = groups[label]
            stats.total += 1
            if not trade.is_closed:
                stats.open += 1
                continue
            if trade.pnl > 0:
                stats.wins += 1
            elif trade.pnl < 0:
                stats.losses += 1
            stats.pnl += float(trade.pnl)
        order = {Strength.WEAK.value: 0, Strength.MEDIUM.value: 1, Strength.STRONG.value: 2}
        result.by_strength = sorted(groups.values(), key=lambda s: order.get(s.strength, 99))
