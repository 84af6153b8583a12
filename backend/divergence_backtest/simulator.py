"""Bar-based trade simulation for divergence backtesting.

Each divergence opens a trade at the close of the bar where its ending
pivot formed; the trade is then resolved against the following bars'
high/low.

Rules:
- BULLISH -> LONG, BEARISH -> SHORT
- LONG: high >= tp_price -> PROFIT, else low <= sl_price -> LOSS
- SHORT: low <= tp_price -> PROFIT, else high >= sl_price -> LOSS
- Both hit on the same bar -> PROFIT (take profit is checked first)
- Exit price is the triggered level, not the bar's close
- No trigger before the series ends -> trade stays OPEN
"""

from __future__ import annotations

import logging
from typing import Sequence

from divergence_core.models.bar import Bar
from divergence_core.models.config import PairConvention, RiskSettings
from divergence_core.models.signal import Divergence
from divergence_core.models.trade import Direction, ExitReason, Trade

logger = logging.getLogger(__name__)


class TradeSimulator:
    """Open and resolve one trade per divergence."""

    def __init__(self, risk: RiskSettings, convention: PairConvention):
        self.risk = risk
        self.convention = convention
        self._skipped_count = 0

    def simulate(
        self, bars: Sequence[Bar], divergences: Sequence[Divergence]
    ) -> list[Trade]:
        """
        Simulate trades for divergences in the order supplied.

        Args:
            bars: Time-ordered bars the divergences were detected on
            divergences: Divergences in any order

        Returns:
            Trades (OPEN or CLOSED) in divergence order; divergences without
            a usable entry bar produce no trade
        """
        self._skipped_count = 0
        index_by_time = {bar.time: i for i, bar in enumerate(bars)}
        trades: list[Trade] = []

        for position, divergence in enumerate(divergences):
            entry_index = index_by_time.get(divergence.end_time)

            # Need at least one bar after entry to resolve anything
            if entry_index is None or entry_index >= len(bars) - 1:
                self._skipped_count += 1
                logger.debug(
                    f"Skipping divergence {divergence.id}: no entry bar "
                    f"at t={divergence.end_time}"
                )
                continue

            trade = self._open_trade(position, divergence, bars[entry_index])
            for bar in bars[entry_index + 1 :]:
                if self._check_exit(trade, bar) is not None:
                    break
            trades.append(trade)

        open_count = sum(1 for t in trades if not t.is_closed)
        if open_count > 0:
            logger.info(f"Finalizing {open_count} unresolved trades (remain OPEN)")
        return trades

    def _open_trade(self, position: int, divergence: Divergence, bar: Bar) -> Trade:
        side = Direction.for_divergence(divergence.kind)
        entry_price = bar.close
        sl_distance = self.convention.pips_to_price(self.risk.stop_loss_pips)
        tp_distance = self.convention.pips_to_price(self.risk.take_profit_pips)

        if side == Direction.LONG:
            sl_price = entry_price - sl_distance
            tp_price = entry_price + tp_distance
        else:
            sl_price = entry_price + sl_distance
            tp_price = entry_price - tp_distance

        return Trade(
            id=f"trade_{position}_{bar.time}",
            side=side,
            entry_time=bar.time,
            entry_price=entry_price,
            stop_loss_price=sl_price,
            take_profit_price=tp_price,
            divergence=divergence,
        )

    def _check_exit(self, trade: Trade, bar: Bar) -> ExitReason | None:
        """Check if a trade hits TP or SL on this bar.

        Take profit is checked first: if both levels are inside the bar's
        range, the outcome is PROFIT.
        """
        if trade.side == Direction.LONG:
            if bar.high >= trade.take_profit_price:
                reason, price = ExitReason.PROFIT, trade.take_profit_price
            elif bar.low <= trade.stop_loss_price:
                reason, price = ExitReason.LOSS, trade.stop_loss_price
            else:
                return None
        else:  # SHORT
            if bar.low <= trade.take_profit_price:
                reason, price = ExitReason.PROFIT, trade.take_profit_price
            elif bar.high >= trade.stop_loss_price:
                reason, price = ExitReason.LOSS, trade.stop_loss_price
            else:
                return None

        trade.close(
            exit_time=bar.time,
            exit_price=price,
            exit_reason=reason,
            convention=self.convention,
            position_size_lots=self.risk.position_size_lots,
        )
        return reason

    @property
    def skipped_count(self) -> int:
        """Divergences skipped by the most recent simulate() call."""
        return self._skipped_count


def simulate_trades(
    bars: Sequence[Bar],
    divergences: Sequence[Divergence],
    risk: RiskSettings,
    convention: PairConvention,
) -> list[Trade]:
    """Convenience wrapper around TradeSimulator.simulate()."""
    return TradeSimulator(risk, convention).simulate(bars, divergences)
