"""Divergence configuration loaded from divergence.yaml.

Supports:
- Symbol / interval selection for the analysed series
- Detection parameters (RSI period, pivot lookbacks, bar distance range)
- Risk parameters for the SL/TP trade model
- Notification preferences for the monitor
- No YAML file = defaults (USD_JPY 1hour, range 2-15, SL 30 / TP 50 pips)
"""

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel

from divergence_core.models.config import (
    DivergenceConfig,
    NotificationSettings,
    PairConvention,
    RiskSettings,
    pair_convention,
)

logger = logging.getLogger(__name__)


class DivergenceAppConfig(BaseModel):
    """Top-level divergence.yaml configuration."""

    symbol: str = "USD_JPY"
    interval: str = "1hour"
    divergence: DivergenceConfig = DivergenceConfig()
    risk: RiskSettings = RiskSettings()
    notification: NotificationSettings = NotificationSettings()

    # Overrides the symbol-derived pip convention when set
    convention: PairConvention | None = None

    def get_convention(self) -> PairConvention:
        """Resolve the pip convention for the configured symbol."""
        return self.convention or pair_convention(self.symbol)


_DEFAULT_PATH = Path("divergence.yaml")


def load_divergence_config(path: Path | None = None) -> DivergenceAppConfig:
    """Load divergence config from YAML file.

    Falls back to defaults if the file doesn't exist.

    Raises:
        ValueError: If the file content fails validation
        yaml.YAMLError: If the file is not valid YAML
    """
    config_path = path or _DEFAULT_PATH

    if not config_path.exists():
        logger.info("No divergence config found at %s, using defaults", config_path)
        return DivergenceAppConfig()

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    config = DivergenceAppConfig(**raw)
    logger.info(
        "Loaded divergence config: %s %s, rsi=%d, pivots=%d/%d, range=%d-%d, "
        "SL=%s TP=%s pips",
        config.symbol,
        config.interval,
        config.divergence.rsi_period,
        config.divergence.lookback_left,
        config.divergence.lookback_right,
        config.divergence.range_lower,
        config.divergence.range_upper,
        config.risk.stop_loss_pips,
        config.risk.take_profit_pips,
    )
    return config
