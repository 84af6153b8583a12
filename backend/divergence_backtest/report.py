"""Report formatting for backtest results.

Outputs results to console (formatted tables) and JSON files. Timestamps
are stored as UTC seconds and only converted to the display timezone here.
"""

from __future__ import annotations

import json
from datetime import datetime
from decimal import Decimal

from divergence_core.models.converters import timestamp_to_datetime
from divergence_core.models.trade import Direction, Trade

from divergence_backtest.stats import BacktestResult

DEFAULT_DISPLAY_TZ = "Asia/Tokyo"


class DecimalEncoder(json.JSONEncoder):
    def default(self, obj):
        if isinstance(obj, Decimal):
            return float(obj)
        if isinstance(obj, datetime):
            return obj.isoformat()
        return super().default(obj)


def _fmt_time(ts: int | None, tz: str, fmt: str = "%Y-%m-%d %H:%M") -> str:
    if ts is None:
        return "-"
    return timestamp_to_datetime(ts, tz).strftime(fmt)


def _iso(ts: int | None, tz: str) -> str | None:
    if ts is None:
        return None
    return timestamp_to_datetime(ts, tz).isoformat()


class ReportFormatter:
    """Format backtest results for display and export."""

    @staticmethod
    def print_console(result: BacktestResult, display_tz: str = DEFAULT_DISPLAY_TZ) -> None:
        """Print formatted report to console."""
        print("\n" + "=" * 70)
        print("  BACKTEST RESULTS — RSI Divergence")
        print("=" * 70)
        print(f"  Pair: {result.symbol}  Interval: {result.interval}")
        print(
            f"  Period: {_fmt_time(result.start_time, display_tz)} → "
            f"{_fmt_time(result.end_time, display_tz)} ({display_tz})"
        )

        if result.analysis is not None:
            s = result.analysis.summary
            print("\n" + "-" * 70)
            print("  SIGNALS")
            print("-" * 70)
            print(f"  Pivots:         {s.total_pivots} ({s.high_pivots} high / {s.low_pivots} low)")
            print(f"  Bullish:        {s.bullish_divergences}")
            print(f"  Bearish:        {s.bearish_divergences}")
            print(f"  Strong:         {s.strong_divergences}")

        # Overall
        print("\n" + "-" * 70)
        print("  OVERALL")
        print("-" * 70)
        print(f"  Closed trades:  {result.total_trades}")
        print(f"  Wins:           {result.winning_trades} ({result.win_rate:.1f}%)")
        print(f"  Losses:         {result.losing_trades}")
        print(f"  Open:           {result.open_trades}")
        print(f"  Total P&L:      {result.total_pnl:+,.0f}")
        print(f"  Total pips:     {result.total_pips:+.1f}")
        print(f"  Max drawdown:   {result.max_drawdown:.1f}%")
        print(f"  Final balance:  {result.final_balance:,.0f}")
        print(f"  Profit factor:  {result.profit_factor:.2f}")

        # By Direction
        if result.by_direction:
            print("\n" + "-" * 70)
            print("  BY DIRECTION")
            print("-" * 70)
            print(f"  {'Direction':<12} {'Total':>6} {'Wins':>6} {'Losses':>6} {'Open':>6} {'Win%':>8}")
            for s in result.by_direction:
                print(f"  {s.direction:<12} {s.total:>6} {s.wins:>6} {s.losses:>6} {s.open:>6} {s.win_rate:>7.1f}%")

        # By Strength
        if result.by_strength:
            print("\n" + "-" * 70)
            print("  BY STRENGTH")
            print("-" * 70)
            print(f"  {'Strength':<12} {'Total':>6} {'Wins':>6} {'Losses':>6} {'Open':>6} {'Win%':>8}")
            for s in result.by_strength:
                print(f"  {s.strength:<12} {s.total:>6} {s.wins:>6} {s.losses:>6} {s.open:>6} {s.win_rate:>7.1f}%")

        # Last trades
        closed = [t for t in result.trades if t.is_closed]
        if closed:
            print("\n" + "-" * 70)
            print("  TRADES (last 10 closed)")
            print("-" * 70)
            print(f"  {'Entry':<17} {'Side':<6} {'Entry px':>10} {'Exit px':>10} {'Reason':>7} {'Pips':>8}")
            for t in closed[-10:]:
                side = "LONG" if t.side == Direction.LONG else "SHORT"
                print(
                    f"  {_fmt_time(t.entry_time, display_tz):<17} {side:<6} "
                    f"{float(t.entry_price):>10.3f} {float(t.exit_price):>10.3f} "
                    f"{t.exit_reason.value:>7} {float(t.pips):>+8.1f}"
                )

        print("\n" + "=" * 70)

    @staticmethod
    def trade_to_dict(trade: Trade, display_tz: str = DEFAULT_DISPLAY_TZ) -> dict:
        return {
            "id": trade.id,
            "side": "LONG" if trade.side == Direction.LONG else "SHORT",
            "status": trade.status.value,
            "entry_time": _iso(trade.entry_time, display_tz),
            "entry_price": float(trade.entry_price),
            "stop_loss_price": float(trade.stop_loss_price),
            "take_profit_price": float(trade.take_profit_price),
            "exit_time": _iso(trade.exit_time, display_tz),
            "exit_price": float(trade.exit_price) if trade.exit_price is not None else None,
            "exit_reason": trade.exit_reason.value if trade.exit_reason else None,
            "pips": float(trade.pips) if trade.pips is not None else None,
            "pnl": float(trade.pnl) if trade.pnl is not None else None,
            "divergence": {
                "id": trade.divergence.id,
                "kind": trade.divergence.kind.value,
                "strength": trade.divergence.strength.value,
                "confidence": round(trade.divergence.confidence, 2),
                "bar_distance": trade.divergence.bar_distance,
                "description": trade.divergence.description,
            },
        }

    @staticmethod
    def to_dict(result: BacktestResult, display_tz: str = DEFAULT_DISPLAY_TZ) -> dict:
        """Convert results to JSON-serializable dict."""
        return {
            "metadata": {
                "symbol": result.symbol,
                "interval": result.interval,
                "start_time": _iso(result.start_time, display_tz),
                "end_time": _iso(result.end_time, display_tz),
                "display_timezone": display_tz,
                "initial_balance": result.initial_balance,
            },
            "overall": {
                "total_trades": result.total_trades,
                "winning_trades": result.winning_trades,
                "losing_trades": result.losing_trades,
                "open_trades": result.open_trades,
                "win_rate": round(result.win_rate, 2),
                "total_pnl": round(result.total_pnl, 2),
                "total_pips": round(result.total_pips, 2),
                "max_drawdown": round(result.max_drawdown, 2),
                "final_balance": round(result.final_balance, 2),
                "profit_factor": round(result.profit_factor, 2),
            },
            "by_direction": [
                {
                    "direction": s.direction,
                    "total": s.total,
                    "wins": s.wins,
                    "losses": s.losses,
                    "open": s.open,
                    "win_rate": round(s.win_rate, 2),
                    "pnl": round(s.pnl, 2),
                }
                for s in result.by_direction
            ],
            "by_strength": [
                {
                    "strength": s.strength,
                    "total": s.total,
                    "wins": s.wins,
                    "losses": s.losses,
                    "open": s.open,
                    "win_rate": round(s.win_rate, 2),
                    "pnl": round(s.pnl, 2),
                }
                for s in result.by_strength
            ],
            "equity_curve": [
                {
                    "time": _iso(p.time, display_tz),
                    "equity": round(p.equity, 2),
                    "drawdown_pct": p.drawdown_pct,
                }
                for p in result.equity_curve
            ],
            "trades": [
                ReportFormatter.trade_to_dict(t, display_tz) for t in result.trades
            ],
        }

    @staticmethod
    def save_json(
        result: BacktestResult, filepath: str, display_tz: str = DEFAULT_DISPLAY_TZ
    ) -> None:
        """Save results to JSON file."""
        data = ReportFormatter.to_dict(result, display_tz)
        with open(filepath, "w") as f:
            json.dump(data, f, indent=2, cls=DecimalEncoder)
        print(f"\nResults saved to {filepath}")
