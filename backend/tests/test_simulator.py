"""Tests for TradeSimulator (bar-based SL/TP trade resolution)."""

from decimal import Decimal

import pytest

from divergence_core.models.bar import Bar
from divergence_core.models.config import (
    DEFAULT_CONVENTION,
    JPY_CONVENTION,
    RiskSettings,
)
from divergence_core.models.signal import Divergence, DivergenceKind, Pivot, PivotKind
from divergence_core.models.trade import Direction, ExitReason, Trade, TradeStatus
from divergence_backtest.simulator import TradeSimulator, simulate_trades


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

BASE_MS = 1_699_999_200_000
HOUR_MS = 3_600_000


def make_bar(index: int, high: str, low: str, close: str | None = None) -> Bar:
    close = close or str((Decimal(high) + Decimal(low)) / 2)
    return Bar(
        open_time=BASE_MS + index * HOUR_MS,
        open=Decimal(close),
        high=Decimal(high),
        low=Decimal(low),
        close=Decimal(close),
    )


def make_series(entry_close: str, following: list[tuple[str, str]]) -> list[Bar]:
    """Entry bar at index 0 closing at entry_close, then (high, low) bars."""
    bars = [make_bar(0, entry_close, entry_close, entry_close)]
    for i, (h, lo) in enumerate(following, start=1):
        bars.append(make_bar(i, h, lo))
    return bars


def make_divergence(kind: DivergenceKind, end_index: int = 0) -> Divergence:
    pivot_kind = PivotKind.LOW if kind == DivergenceKind.BULLISH else PivotKind.HIGH
    start_index = end_index - 5
    return Divergence(
        kind=kind,
        start_pivot=Pivot(
            index=start_index,
            time=(BASE_MS + start_index * HOUR_MS) // 1000,
            price=150.2,
            indicator_value=25.0,
            kind=pivot_kind,
        ),
        end_pivot=Pivot(
            index=end_index,
            time=(BASE_MS + end_index * HOUR_MS) // 1000,
            price=150.0,
            indicator_value=35.0,
            kind=pivot_kind,
        ),
        bar_distance=5,
    )


def run(bars, divergences, risk=None, convention=JPY_CONVENTION) -> list[Trade]:
    return TradeSimulator(risk or RiskSettings(), convention).simulate(bars, divergences)


# ---------------------------------------------------------------------------
# LONG trades
# ---------------------------------------------------------------------------

class TestLong:
    def test_take_profit_on_second_bar(self):
        bars = make_series("150.00", [("150.40", "149.80"), ("150.60", "150.10")])
        trades = run(bars, [make_divergence(DivergenceKind.BULLISH)])

        assert len(trades) == 1
        t = trades[0]
        assert t.side == Direction.LONG
        assert t.entry_price == Decimal("150.00")
        assert t.stop_loss_price == Decimal("149.70")
        assert t.take_profit_price == Decimal("150.50")
        assert t.status == TradeStatus.CLOSED
        assert t.exit_reason == ExitReason.PROFIT
        assert t.exit_time == bars[2].time
        assert t.exit_price == Decimal("150.50")
        assert t.pips == Decimal("50")
        assert t.pnl == Decimal("50000")

    def test_stop_loss(self):
        bars = make_series("150.00", [("150.20", "149.60")])
        t = run(bars, [make_divergence(DivergenceKind.BULLISH)])[0]

        assert t.exit_reason == ExitReason.LOSS
        assert t.exit_price == Decimal("149.70")
        assert t.pips == Decimal("-30")
        assert t.pnl == Decimal("-30000")

    def test_both_levels_same_bar_is_profit(self):
        bars = make_series("150.00", [("150.60", "149.50")])
        t = run(bars, [make_divergence(DivergenceKind.BULLISH)])[0]
        assert t.exit_reason == ExitReason.PROFIT
        assert t.exit_price == Decimal("150.50")

    def test_touching_level_triggers(self):
        bars = make_series("150.00", [("150.50", "149.90")])
        t = run(bars, [make_divergence(DivergenceKind.BULLISH)])[0]
        assert t.exit_reason == ExitReason.PROFIT

    def test_entry_bar_range_ignored(self):
        # Entry bar itself spans both levels; only later bars count
        bars = [make_bar(0, "151.00", "149.00", "150.00"), make_bar(1, "150.10", "149.90")]
        t = run(bars, [make_divergence(DivergenceKind.BULLISH)])[0]
        assert t.status == TradeStatus.OPEN


# ---------------------------------------------------------------------------
# SHORT trades
# ---------------------------------------------------------------------------

class TestShort:
    def test_take_profit(self):
        bars = make_series("150.00", [("150.20", "149.80"), ("149.90", "149.40")])
        t = run(bars, [make_divergence(DivergenceKind.BEARISH)])[0]

        assert t.side == Direction.SHORT
        assert t.stop_loss_price == Decimal("150.30")
        assert t.take_profit_price == Decimal("149.50")
        assert t.exit_reason == ExitReason.PROFIT
        assert t.exit_price == Decimal("149.50")
        assert t.pips == Decimal("50")
        assert t.pnl > 0

    def test_stop_loss(self):
        bars = make_series("150.00", [("150.35", "149.90")])
        t = run(bars, [make_divergence(DivergenceKind.BEARISH)])[0]
        assert t.exit_reason == ExitReason.LOSS
        assert t.exit_price == Decimal("150.30")
        assert t.pnl == Decimal("-30000")

    def test_both_levels_same_bar_is_profit(self):
        bars = make_series("150.00", [("150.40", "149.40")])
        t = run(bars, [make_divergence(DivergenceKind.BEARISH)])[0]
        assert t.exit_reason == ExitReason.PROFIT


# ---------------------------------------------------------------------------
# Skips, open trades, conventions
# ---------------------------------------------------------------------------

class TestLifecycle:
    def test_unresolved_trade_stays_open(self):
        bars = make_series("150.00", [("150.20", "149.80"), ("150.30", "149.75")])
        t = run(bars, [make_divergence(DivergenceKind.BULLISH)])[0]

        assert t.status == TradeStatus.OPEN
        assert not t.is_closed
        assert t.exit_time is None
        assert t.exit_price is None
        assert t.pnl is None

    def test_missing_entry_bar_skipped(self):
        bars = make_series("150.00", [("150.60", "150.10")])
        simulator = TradeSimulator(RiskSettings(), JPY_CONVENTION)
        trades = simulator.simulate(bars, [make_divergence(DivergenceKind.BULLISH, end_index=40)])
        assert trades == []
        assert simulator.skipped_count == 1

    def test_entry_on_last_bar_skipped(self):
        bars = make_series("150.00", [("150.60", "150.10")])
        simulator = TradeSimulator(RiskSettings(), JPY_CONVENTION)
        trades = simulator.simulate(bars, [make_divergence(DivergenceKind.BULLISH, end_index=1)])
        assert trades == []
        assert simulator.skipped_count == 1

    def test_skipped_count_resets_per_run(self):
        bars = make_series("150.00", [("150.60", "150.10")])
        simulator = TradeSimulator(RiskSettings(), JPY_CONVENTION)
        simulator.simulate(bars, [make_divergence(DivergenceKind.BULLISH, end_index=40)])
        assert simulator.skipped_count == 1

        trades = simulator.simulate(bars, [make_divergence(DivergenceKind.BULLISH)])
        assert len(trades) == 1
        assert simulator.skipped_count == 0

    def test_one_trade_per_divergence(self):
        bars = make_series("150.00", [("150.60", "150.10"), ("150.20", "149.00")])
        divs = [
            make_divergence(DivergenceKind.BULLISH, end_index=0),
            make_divergence(DivergenceKind.BEARISH, end_index=0),
        ]
        trades = run(bars, divs)

        assert [t.side for t in trades] == [Direction.LONG, Direction.SHORT]
        assert trades[0].id != trades[1].id
        assert trades[0].id == f"trade_0_{bars[0].time}"

    def test_trade_keeps_divergence(self):
        div = make_divergence(DivergenceKind.BULLISH)
        bars = make_series("150.00", [("150.60", "150.10")])
        assert run(bars, [div])[0].divergence == div

    def test_non_jpy_convention(self):
        bars = make_series("1.1000", [("1.1060", "1.0990")])
        t = run(bars, [make_divergence(DivergenceKind.BULLISH)], convention=DEFAULT_CONVENTION)[0]

        assert t.stop_loss_price == Decimal("1.0970")
        assert t.take_profit_price == Decimal("1.1050")
        assert t.pips == Decimal("50")
        assert t.pnl == Decimal("500")

    def test_lot_size_scales_pnl(self):
        bars = make_series("150.00", [("150.60", "150.10")])
        risk = RiskSettings(position_size_lots=Decimal("0.1"))
        t = run(bars, [make_divergence(DivergenceKind.BULLISH)], risk=risk)[0]
        assert t.pnl == Decimal("5000")

    def test_custom_pips(self):
        bars = make_series("150.00", [("150.25", "149.95")])
        risk = RiskSettings(stop_loss_pips=Decimal("10"), take_profit_pips=Decimal("20"))
        t = run(bars, [make_divergence(DivergenceKind.BULLISH)], risk=risk)[0]
        assert t.exit_reason == ExitReason.PROFIT
        assert t.exit_price == Decimal("150.20")

    def test_wrapper(self):
        bars = make_series("150.00", [("150.60", "150.10")])
        trades = simulate_trades(
            bars, [make_divergence(DivergenceKind.BULLISH)], RiskSettings(), JPY_CONVENTION
        )
        assert trades[0].exit_reason == ExitReason.PROFIT


# ---------------------------------------------------------------------------
# Trade model
# ---------------------------------------------------------------------------

class TestTradeModel:
    def test_close_twice_raises(self):
        bars = make_series("150.00", [("150.60", "150.10")])
        t = run(bars, [make_divergence(DivergenceKind.BULLISH)])[0]
        with pytest.raises(ValueError):
            t.close(
                exit_time=bars[1].time,
                exit_price=Decimal("150.50"),
                exit_reason=ExitReason.PROFIT,
                convention=JPY_CONVENTION,
                position_size_lots=Decimal("1"),
            )

    def test_close_books_pips_with_convention(self):
        t = Trade(
            id="trade_0_1",
            side=Direction.SHORT,
            entry_time=1,
            entry_price=Decimal("1.1000"),
            stop_loss_price=Decimal("1.1030"),
            take_profit_price=Decimal("1.0950"),
            divergence=make_divergence(DivergenceKind.BEARISH),
        )
        t.close(
            exit_time=2,
            exit_price=Decimal("1.1030"),
            exit_reason=ExitReason.LOSS,
            convention=DEFAULT_CONVENTION,
            position_size_lots=Decimal("2"),
        )

        assert t.is_closed
        assert t.pips == Decimal("-30")
        assert t.pnl == Decimal("-600")

    def test_direction_for_divergence(self):
        assert Direction.for_divergence(DivergenceKind.BULLISH) == Direction.LONG
        assert Direction.for_divergence(DivergenceKind.BEARISH) == Direction.SHORT
