"""Backtesting for RSI divergence signals.

Only depends on divergence_core/ for detection logic; bars are supplied by
the caller (CLI reads them from JSON or CSV files).

Usage:
    python -m divergence_backtest --bars usdjpy_1h.json
"""

from divergence_backtest.runner import BacktestConfig, BacktestRunner
from divergence_backtest.stats import BacktestResult

__all__ = ["BacktestConfig", "BacktestRunner", "BacktestResult"]
