"""
Tests for startup configuration and the clock adapters.
"""

from datetime import UTC, datetime

import pytest

from newsdesk.adapters.time_zone import FrozenTimeAdapter, ZoneTimeAdapter
from newsdesk.app_shell import config
from newsdesk.app_shell.config import ConfigurationError, validate_ops_rules
from newsdesk.rules.models import OpsRules


class TestValidateOpsRules:
    def test_creates_data_dir(self, rules, tmp_path) -> None:
        data_dir = tmp_path / "data" / "nested"

        validate_ops_rules(rules, data_dir)

        assert data_dir.is_dir()

    def test_missing_env_var(self, rules, tmp_path, monkeypatch) -> None:
        monkeypatch.delenv("NEWSDESK_X_TOKEN", raising=False)
        strict = rules.model_copy(update={"ops": OpsRules(required_env=["NEWSDESK_X_TOKEN"])})

        with pytest.raises(ConfigurationError, match="NEWSDESK_X_TOKEN"):
            validate_ops_rules(strict, tmp_path)

    def test_present_env_var(self, rules, tmp_path, monkeypatch) -> None:
        monkeypatch.setenv("NEWSDESK_X_TOKEN", "secret")
        strict = rules.model_copy(update={"ops": OpsRules(required_env=["NEWSDESK_X_TOKEN"])})

        validate_ops_rules(strict, tmp_path)


class TestPaths:
    def test_env_overrides(self, tmp_path, monkeypatch) -> None:
        monkeypatch.setenv(config.DATA_DIR_ENV, str(tmp_path))
        monkeypatch.setenv(config.RULES_PATH_ENV, str(tmp_path / "rules.yaml"))

        assert config.db_path() == tmp_path / "newsdesk.db"
        assert config.rules_path() == tmp_path / "rules.yaml"

    def test_default_rules_path(self, monkeypatch) -> None:
        monkeypatch.delenv(config.RULES_PATH_ENV, raising=False)

        assert config.rules_path() == config.PROJECT_ROOT / "rules.yaml"


class TestClock:
    def test_local_conversion(self) -> None:
        clock = ZoneTimeAdapter()

        local = clock.to_local(datetime(2025, 6, 10, 21, 0))

        assert (local.hour, local.day) == (0, 11)
        assert clock.to_utc(local) == datetime(2025, 6, 10, 21, 0, tzinfo=UTC)

    def test_frozen_clock_moves_on_request(self) -> None:
        clock = FrozenTimeAdapter(datetime(2025, 6, 10, 9, 0, tzinfo=UTC))

        clock.advance(minutes=90)

        assert clock.now_utc() == datetime(2025, 6, 10, 10, 30, tzinfo=UTC)
        assert clock.now_local().hour == 13
        assert clock.timezone_name == "Europe/Istanbul"
