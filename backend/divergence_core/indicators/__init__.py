"""Technical indicators (pure math, no I/O)."""

from divergence_core.indicators.rsi import (
    OVERBOUGHT,
    OVERSOLD,
    calculate_rsi,
    rsi_status,
    rsi_values,
)

__all__ = [
    "OVERBOUGHT",
    "OVERSOLD",
    "calculate_rsi",
    "rsi_status",
    "rsi_values",
]
