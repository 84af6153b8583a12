"""Backtest settings loaded from environment variables.

Only process-level knobs live here (where the YAML config is, how times are
displayed). Detection and risk parameters come from divergence.yaml, see
divergence_backtest.divergence_config.
"""

from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class BacktestSettings(BaseSettings):
    """Backtest configuration loaded from DIVERGENCE_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="DIVERGENCE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # YAML with divergence / risk / notification parameters
    config_file: str = "divergence.yaml"

    # Timestamps are UTC internally; this only affects report rendering
    display_timezone: str = "Asia/Tokyo"

    log_level: str = "INFO"


_settings: BacktestSettings | None = None


def get_backtest_settings() -> BacktestSettings:
    """Get cached backtest settings instance."""
    global _settings
    if _settings is None:
        _settings = BacktestSettings()
    return _settings
