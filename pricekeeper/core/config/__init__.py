"""Configuration management module."""

from pricekeeper.core.config.settings import (
    ConfigManager,
    LoggingConfig,
    PriceKeeperConfig,
    RetentionConfig,
    SchedulerConfig,
    StoreConfig,
    load_config_from_env,
)

__all__ = [
    "ConfigManager",
    "PriceKeeperConfig",
    "load_config_from_env",
    "StoreConfig",
    "RetentionConfig",
    "SchedulerConfig",
    "LoggingConfig",
]
