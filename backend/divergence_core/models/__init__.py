"""Data models for bars, signals, trades and configuration."""

from divergence_core.models.bar import Bar
from divergence_core.models.config import (
    DEFAULT_CONVENTION,
    JPY_CONVENTION,
    DivergenceConfig,
    NotificationSettings,
    PairConvention,
    Pairing,
    RiskSettings,
    pair_convention,
)
from divergence_core.models.signal import (
    Divergence,
    DivergenceKind,
    IndicatorPoint,
    Pivot,
    PivotKind,
    Strength,
)
from divergence_core.models.trade import Direction, ExitReason, Trade, TradeStatus

__all__ = [
    "Bar",
    "DEFAULT_CONVENTION",
    "JPY_CONVENTION",
    "DivergenceConfig",
    "NotificationSettings",
    "PairConvention",
    "Pairing",
    "RiskSettings",
    "pair_convention",
    "Divergence",
    "DivergenceKind",
    "IndicatorPoint",
    "Pivot",
    "PivotKind",
    "Strength",
    "Direction",
    "ExitReason",
    "Trade",
    "TradeStatus",
]
