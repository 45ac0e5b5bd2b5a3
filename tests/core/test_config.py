"""Tests for configuration loading."""

from pathlib import Path

import pytest

from pricekeeper.core.config import ConfigManager, PriceKeeperConfig, load_config_from_env
from pricekeeper.core.exceptions import ConfigurationError


class TestPriceKeeperConfig:
    def test_defaults(self):
        config = PriceKeeperConfig()

        assert config.store.busy_timeout == 30.0
        assert config.retention.raw_retention_hours == 24
        assert config.retention.vacuum_threshold == 1000
        assert config.scheduler.interval_hours == 24.0
        assert config.scheduler.max_attempts == 3

    def test_default_ladder(self):
        tiers = PriceKeeperConfig().retention.tiers()

        assert [t.bucket_width for t in tiers] == [60, 300, 900]
        assert tiers[0].aggregate_after == 24 * 3600
        assert tiers[2].retain_for == 365 * 86400
        assert all(t.source_width is None for t in tiers)

    def test_cascade_ladder(self):
        config = PriceKeeperConfig.from_dict({"retention": {"cascade_tiers": True}})

        assert [t.source_width for t in config.retention.tiers()] == [None, 60, 300]

    def test_unknown_key_is_rejected(self):
        with pytest.raises(ConfigurationError):
            PriceKeeperConfig.from_dict({"store": {"colour": "blue"}})

    @pytest.mark.parametrize(
        "scheduler",
        [{"interval_hours": 0}, {"interval_hours": -1.0}, {"max_attempts": 0}, {"retry_delay": -1.0}],
    )
    def test_invalid_scheduler_values_are_rejected(self, scheduler):
        with pytest.raises(ConfigurationError):
            PriceKeeperConfig.from_dict({"scheduler": scheduler})

    def test_zero_interval_from_environment_is_rejected(self, tmp_path: Path):
        with pytest.raises(ConfigurationError):
            ConfigManager(
                config_path=tmp_path / "missing.toml",
                environ={"PRICEKEEPER_CLEANUP_INTERVAL_HOURS": "0"},
            )

    def test_round_trip_through_dict(self):
        config = PriceKeeperConfig.from_dict({"scheduler": {"retry_delay": 5.0}})

        assert PriceKeeperConfig.from_dict(config.to_dict()) == config


class TestEnvironment:
    def test_env_overrides(self):
        env = {
            "PRICEKEEPER_DB_PATH": "/tmp/prices.duckdb",
            "PRICEKEEPER_RAW_RETENTION_HOURS": "12",
            "PRICEKEEPER_CASCADE_TIERS": "TRUE",
            "PRICEKEEPER_CLEANUP_RETRY_DELAY": "2.5",
            "UNRELATED": "x",
        }

        assert load_config_from_env(env) == {
            "store": {"path": "/tmp/prices.duckdb"},
            "retention": {"raw_retention_hours": 12, "cascade_tiers": True},
            "scheduler": {"retry_delay": 2.5},
        }

    def test_invalid_number(self):
        with pytest.raises(ConfigurationError):
            load_config_from_env({"PRICEKEEPER_VACUUM_THRESHOLD": "lots"})


class TestConfigManager:
    def test_missing_file_uses_defaults(self, tmp_path: Path):
        manager = ConfigManager(config_path=tmp_path / "missing.toml", environ={})

        assert manager.get_config() == PriceKeeperConfig()

    def test_toml_then_env(self, tmp_path: Path):
        path = tmp_path / "config.toml"
        path.write_text(
            '[store]\npath = "from-file.duckdb"\n\n[retention]\nbatch_size = 50\n',
            encoding="utf-8",
        )

        manager = ConfigManager(config_path=path, environ={"PRICEKEEPER_DB_PATH": "from-env.duckdb"})
        config = manager.get_config()

        assert config.store.path == "from-env.duckdb"
        assert config.retention.batch_size == 50

    def test_broken_toml_falls_back(self, tmp_path: Path):
        path = tmp_path / "config.toml"
        path.write_text("[store\n", encoding="utf-8")

        config = ConfigManager(config_path=path, environ={}).get_config()

        assert config.retention.batch_size == 100

    def test_update_config(self, tmp_path: Path):
        manager = ConfigManager(config_path=tmp_path / "missing.toml", environ={})

        manager.update_config(store={"path": ":memory:"})

        assert manager.get_config().store.path == ":memory:"
        assert manager.get_config().store.threads == 2
