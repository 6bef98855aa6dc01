"""
Test suite for configuration loading.
"""

import dataclasses
from pathlib import Path

import pytest

from psql_backuper.config import AppConfig, ConnectionProfile, get_app_config


class TestConnectionProfile:
    """Test connection settings from the environment."""

    def test_defaults(self):
        profile = ConnectionProfile()

        assert profile.host == "localhost"
        assert profile.port == 5432
        assert profile.username == "postgres"
        assert profile.password is None

    def test_values_from_environment(self, monkeypatch):
        monkeypatch.setenv("PG_HOST", "db.internal")
        monkeypatch.setenv("PG_PORT", "6543")
        monkeypatch.setenv("PG_USERNAME", "backup")
        monkeypatch.setenv("PG_PASSWORD", "s3cret")

        profile = ConnectionProfile()

        assert (profile.host, profile.port, profile.username, profile.password) == (
            "db.internal", 6543, "backup", "s3cret"
        )

    def test_unparseable_port_falls_back(self, monkeypatch):
        monkeypatch.setenv("PG_PORT", "not-a-port")

        assert ConnectionProfile().port == 5432

    def test_out_of_range_port_rejected(self):
        with pytest.raises(ValueError, match="PG_PORT"):
            ConnectionProfile(host="h", port=70000, username="u")

    def test_password_not_in_repr(self):
        profile = ConnectionProfile(host="h", port=5432, username="u", password="s3cret")

        assert "s3cret" not in repr(profile)


class TestAppConfig:
    """Test application settings from the environment."""

    def test_defaults(self):
        config = AppConfig()

        assert config.save_path == Path("./dumps")
        assert config.restore_path == Path("./dumps")
        assert config.interval is None
        assert config.restore is False
        assert config.webhook_url is None
        assert config.webhook_username == "PSQL BACKUPER"
        assert config.strict_catalog is False
        assert config.tool_timeout is None
        assert config.psql_bin == "psql"
        assert config.pg_dump_bin == "pg_dump"

    def test_interval_parsing(self, monkeypatch):
        monkeypatch.setenv("INTERVAL", "3600")
        assert AppConfig().interval == 3600

        monkeypatch.setenv("INTERVAL", "hourly")
        assert AppConfig().interval is None

    def test_negative_interval_rejected(self, monkeypatch):
        monkeypatch.setenv("INTERVAL", "-1")

        with pytest.raises(ValueError, match="INTERVAL"):
            AppConfig()

    @pytest.mark.parametrize("value,expected", [
        ("true", True),
        ("TRUE", True),
        ("false", False),
        ("1", False),
        ("yes", False),
    ])
    def test_restore_toggle(self, monkeypatch, value, expected):
        monkeypatch.setenv("RESTORE", value)

        assert AppConfig().restore is expected

    def test_blank_webhook_disables_notifications(self, monkeypatch):
        monkeypatch.setenv("WEBHOOK_URL", "   ")

        config = AppConfig()

        assert config.webhook_url is None
        assert not config.notifications_enabled

    def test_invalid_webhook_rejected(self, monkeypatch):
        monkeypatch.setenv("WEBHOOK_URL", "ftp://example.com/hook")

        with pytest.raises(ValueError, match="WEBHOOK_URL"):
            AppConfig()

    @pytest.mark.parametrize("url", ["http://[::1/hook", "https://"])
    def test_malformed_webhook_rejected(self, monkeypatch, url):
        monkeypatch.setenv("WEBHOOK_URL", url)

        with pytest.raises(ValueError, match="WEBHOOK_URL"):
            AppConfig()

    def test_tool_settings(self, monkeypatch):
        monkeypatch.setenv("TOOL_TIMEOUT", "90")
        monkeypatch.setenv("PSQL_BIN", "/opt/pg/psql")
        monkeypatch.setenv("STRICT_CATALOG", "true")

        config = AppConfig()

        assert config.tool_timeout == 90.0
        assert config.psql_bin == "/opt/pg/psql"
        assert config.strict_catalog is True

    def test_describe_masks_password(self, app_config):
        described = app_config.describe()

        assert described["password"] == "********"
        assert "s3cret" not in str(described)
        assert described["interval"] == "run once"
        assert described["webhook"] == "disabled"

    def test_config_is_immutable(self, app_config):
        with pytest.raises(dataclasses.FrozenInstanceError):
            app_config.interval = 10


class TestGetAppConfig:
    """Test overrides on top of the environment."""

    def test_overrides_apply(self, tmp_path):
        config = get_app_config(interval=30, save_path=str(tmp_path / "out"))

        assert config.interval == 30
        assert config.save_path == tmp_path / "out"

    def test_none_overrides_are_ignored(self, monkeypatch):
        monkeypatch.setenv("INTERVAL", "120")

        config = get_app_config(interval=None, webhook_url=None)

        assert config.interval == 120

    def test_unknown_key_rejected(self):
        with pytest.raises(ValueError, match="Unknown configuration key"):
            get_app_config(intervall=5)

    def test_overrides_are_validated(self):
        with pytest.raises(ValueError, match="INTERVAL"):
            get_app_config(interval=-5)
