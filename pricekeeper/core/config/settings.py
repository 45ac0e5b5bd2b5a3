"""Configuration management for the price store and its cleanup service."""

import os
import tomllib
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

from pricekeeper.core.exceptions import ConfigurationError
from pricekeeper.core.logging import logger
from pricekeeper.core.retention.tiers import DAY, HOUR, RetentionTier, cascade, validate_tiers


@dataclass
class StoreConfig:
    """Price store configuration."""

    path: str = str(Path.home() / ".pricekeeper" / "prices.duckdb")
    busy_timeout: float = 30.0
    threads: int = 2
    connect_attempts: int = 3


@dataclass
class RetentionConfig:
    """Tier ladder and cleanup tuning."""

    raw_retention_hours: int = 24
    minute_retention_days: int = 7
    five_minute_retention_days: int = 30
    fifteen_minute_retention_days: int = 365
    batch_size: int = 100
    batch_pause: float = 0.1
    vacuum_threshold: int = 1000
    cascade_tiers: bool = False

    def tiers(self) -> tuple[RetentionTier, ...]:
        """Build the tier ladder described by this configuration."""

        ladder = (
            RetentionTier(
                "1m", 60,
                aggregate_after=self.raw_retention_hours * HOUR,
                retain_for=self.minute_retention_days * DAY,
            ),
            RetentionTier(
                "5m", 300,
                aggregate_after=self.minute_retention_days * DAY,
                retain_for=self.five_minute_retention_days * DAY,
            ),
            RetentionTier(
                "15m", 900,
                aggregate_after=self.five_minute_retention_days * DAY,
                retain_for=self.fifteen_minute_retention_days * DAY,
            ),
        )
        if self.cascade_tiers:
            return cascade(ladder)
        return validate_tiers(ladder)


@dataclass
class SchedulerConfig:
    """Cleanup scheduling and whole-cycle retry policy."""

    interval_hours: float = 24.0
    initial_delay: float = 30.0
    max_attempts: int = 3
    retry_delay: float = 30.0

    def __post_init__(self) -> None:
        if self.interval_hours <= 0:
            raise ConfigurationError(
                "scheduler.interval_hours must be positive", {"interval_hours": self.interval_hours}
            )
        if self.max_attempts < 1:
            raise ConfigurationError(
                "scheduler.max_attempts must be at least 1", {"max_attempts": self.max_attempts}
            )
        if self.initial_delay < 0 or self.retry_delay < 0:
            raise ConfigurationError(
                "scheduler delays cannot be negative",
                {"initial_delay": self.initial_delay, "retry_delay": self.retry_delay},
            )


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"
    file: str | None = None


@dataclass
class PriceKeeperConfig:
    """Top level configuration."""

    store: StoreConfig = field(default_factory=StoreConfig)
    retention: RetentionConfig = field(default_factory=RetentionConfig)
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_dict(cls, config_dict: dict[str, Any]) -> "PriceKeeperConfig":
        """Build a configuration from nested dictionaries."""
        try:
            return cls(
                store=StoreConfig(**config_dict.get("store", {})),
                retention=RetentionConfig(**config_dict.get("retention", {})),
                scheduler=SchedulerConfig(**config_dict.get("scheduler", {})),
                logging=LoggingConfig(**config_dict.get("logging", {})),
            )
        except TypeError as exc:
            raise ConfigurationError(f"unknown configuration key: {exc}") from exc

    def to_dict(self) -> dict[str, Any]:
        return {
            "store": asdict(self.store),
            "retention": asdict(self.retention),
            "scheduler": asdict(self.scheduler),
            "logging": asdict(self.logging),
        }


def _deep_update(target: dict[str, Any], updates: dict[str, Any]) -> dict[str, Any]:
    for key, value in updates.items():
        if isinstance(value, dict):
            target[key] = _deep_update(target.get(key, {}), value)
        else:
            target[key] = value
    return target


class ConfigManager:
    """Loads configuration from a TOML file and the environment."""

    def __init__(self, config_path: Path | None = None, environ: dict[str, str] | None = None):
        """Initialise the manager.

        Args:
            config_path: TOML file to read, defaults to ``~/.pricekeeper/config.toml``
            environ: environment mapping, defaults to ``os.environ``
        """
        self.config_path = config_path or Path.home() / ".pricekeeper" / "config.toml"
        self.environ = os.environ if environ is None else environ
        self.config = self._load_config()

    def _load_config(self) -> PriceKeeperConfig:
        config_dict: dict[str, Any] = {}
        if self.config_path.exists():
            try:
                with open(self.config_path, "rb") as f:
                    config_dict = tomllib.load(f)
            except (OSError, tomllib.TOMLDecodeError) as exc:
                # Fall back to defaults plus environment overrides.
                logger.warning("Failed to load config from {}: {}", self.config_path, exc)
                config_dict = {}
        _deep_update(config_dict, load_config_from_env(self.environ))
        return PriceKeeperConfig.from_dict(config_dict)

    def get_config(self) -> PriceKeeperConfig:
        return self.config

    def update_config(self, **updates: Any) -> None:
        """Apply nested updates, e.g. ``update_config(store={"path": ":memory:"})``."""
        self.config = PriceKeeperConfig.from_dict(_deep_update(self.config.to_dict(), updates))


_ENV_FIELDS: dict[str, tuple[str, str, type]] = {
    "PRICEKEEPER_DB_PATH": ("store", "path", str),
    "PRICEKEEPER_BUSY_TIMEOUT": ("store", "busy_timeout", float),
    "PRICEKEEPER_RAW_RETENTION_HOURS": ("retention", "raw_retention_hours", int),
    "PRICEKEEPER_MINUTE_RETENTION_DAYS": ("retention", "minute_retention_days", int),
    "PRICEKEEPER_FIVE_MINUTE_RETENTION_DAYS": ("retention", "five_minute_retention_days", int),
    "PRICEKEEPER_FIFTEEN_MINUTE_RETENTION_DAYS": ("retention", "fifteen_minute_retention_days", int),
    "PRICEKEEPER_VACUUM_THRESHOLD": ("retention", "vacuum_threshold", int),
    "PRICEKEEPER_CASCADE_TIERS": ("retention", "cascade_tiers", bool),
    "PRICEKEEPER_CLEANUP_INTERVAL_HOURS": ("scheduler", "interval_hours", float),
    "PRICEKEEPER_CLEANUP_MAX_ATTEMPTS": ("scheduler", "max_attempts", int),
    "PRICEKEEPER_CLEANUP_RETRY_DELAY": ("scheduler", "retry_delay", float),
    "PRICEKEEPER_LOGGING_LEVEL": ("logging", "level", str),
    "PRICEKEEPER_LOGGING_FILE": ("logging", "file", str),
}


def load_config_from_env(environ: dict[str, str] | None = None) -> dict[str, Any]:
    """Read ``PRICEKEEPER_*`` overrides into a nested configuration dictionary."""
    env = os.environ if environ is None else environ
    config: dict[str, Any] = {}
    for name, (section, key, kind) in _ENV_FIELDS.items():
        raw = env.get(name)
        if raw is None:
            continue
        try:
            value: Any = raw.lower() == "true" if kind is bool else kind(raw)
        except ValueError as exc:
            raise ConfigurationError(f"invalid value for {name}: {raw!r}") from exc
        config.setdefault(section, {})[key] = value
    return config
