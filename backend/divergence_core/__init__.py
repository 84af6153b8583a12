"""Core divergence logic: RSI, pivots, divergence classification, gating.

This package contains pure business logic with no I/O dependencies
(no database, messaging, or network access). It is shared between the
backtesting system (divergence_backtest/) and any live monitor that
feeds it bars.
"""
