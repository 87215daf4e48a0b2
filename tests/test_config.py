"""Tests for carpool_sync.config: env-var config loading and validation.

NOT to be confused with test_config_loader.py (hierarchical YAML config)
or test_config_schema.py (Pydantic models). This tests the runtime
bootstrap path: validate_config() and load_config().
"""

import logging

import pytest

from carpool_sync.config import Config, load_config, validate_config

# -------------------------------------------------------------------------
# validate_config()
# -------------------------------------------------------------------------


class TestValidateConfig:
    """Tests for validate_config(): URL format and numeric ranges."""

    def test_valid_config(self):
        config = Config(
            supabase_url="https://project.example.com",
            supabase_key="anon",
        )
        validate_config(config)  # should not raise

    def test_http_url_valid(self):
        config = Config(supabase_url="http://localhost:54321", supabase_key="k")
        validate_config(config)

    def test_invalid_url_no_scheme(self):
        config = Config(supabase_url="project.example.com", supabase_key="k")
        with pytest.raises(
            ValueError, match="must start with http:// or https://"
        ):
            validate_config(config)

    def test_invalid_url_no_hostname(self):
        config = Config(supabase_url="https://", supabase_key="k")
        with pytest.raises(ValueError, match="must include a hostname"):
            validate_config(config)

    def test_trailing_slash_stripped(self):
        config = Config(supabase_url="https://project.example.com/", supabase_key="k")
        validate_config(config)
        assert config.supabase_url == "https://project.example.com"

    def test_empty_table(self):
        with pytest.raises(ValueError, match="table name cannot be empty"):
            validate_config(Config(table="  "))

    def test_empty_storage_key(self):
        with pytest.raises(ValueError, match="storage key cannot be empty"):
            validate_config(Config(storage_key=""))

    @pytest.mark.parametrize("value", [0, -1, 61])
    def test_debounce_out_of_range(self, value):
        with pytest.raises(ValueError, match="debounce_seconds"):
            validate_config(Config(debounce_seconds=value))

    def test_ping_interval_must_be_positive(self):
        with pytest.raises(ValueError, match="ping_interval"):
            validate_config(Config(ping_interval=0))

    def test_negative_payment_value(self):
        with pytest.raises(ValueError, match="payment_value"):
            validate_config(Config(payment_value=-1))

    def test_offline_mode_warns(self, caplog):
        with caplog.at_level(logging.WARNING):
            validate_config(Config())
        assert "Remote store not configured" in caplog.text

    def test_remote_enabled_requires_url_and_key(self):
        assert not Config(supabase_url="https://p.example.com").remote_enabled
        assert not Config(supabase_key="k").remote_enabled
        assert Config(
            supabase_url="https://p.example.com", supabase_key="k"
        ).remote_enabled


# -------------------------------------------------------------------------
# load_config()
# -------------------------------------------------------------------------


class TestLoadConfig:
    """Tests for load_config() precedence: CLI > env > YAML > default."""

    def test_defaults(self):
        config = load_config()
        assert config.supabase_url == ""
        assert config.table == "app_state"
        assert config.row_id == 1
        assert config.state_dir == "~/.carpool_sync"
        assert config.storage_key == "carona_payment_data_v4"
        assert config.debounce_seconds == 1.0
        assert config.payment_value == 5.0
        assert config.debug is False

    def test_env_vars(self, monkeypatch):
        monkeypatch.setenv("CARPOOL_SUPABASE_URL", "https://env.example.com/")
        monkeypatch.setenv("CARPOOL_SUPABASE_KEY", " env-key ")
        monkeypatch.setenv("CARPOOL_TABLE", "caronas")
        monkeypatch.setenv("CARPOOL_ROW_ID", "4")
        monkeypatch.setenv("CARPOOL_DEBOUNCE_SECONDS", "2.5")
        monkeypatch.setenv("CARPOOL_PAYMENT_VALUE", "6")

        config = load_config()

        assert config.supabase_url == "https://env.example.com"
        assert config.supabase_key == "env-key"
        assert config.table == "caronas"
        assert config.row_id == 4
        assert config.debounce_seconds == 2.5
        assert config.payment_value == 6.0

    def test_cli_overrides_env(self, monkeypatch):
        monkeypatch.setenv("CARPOOL_SUPABASE_URL", "https://env.example.com")
        monkeypatch.setenv("CARPOOL_STATE_DIR", "/env/state")

        config = load_config(url="https://cli.example.com", state_dir="/cli/state")

        assert config.supabase_url == "https://cli.example.com"
        assert config.state_dir == "/cli/state"

    def test_env_overrides_yaml(self, monkeypatch):
        monkeypatch.setenv("CARPOOL_TABLE", "from_env")
        config = load_config(
            yaml_fallbacks={"table": "from_yaml", "ping_interval": 12}
        )
        assert config.table == "from_env"
        assert config.ping_interval == 12.0

    def test_yaml_fallbacks_used(self):
        config = load_config(
            yaml_fallbacks={
                "supabase_url": "https://yaml.example.com",
                "supabase_key": "yaml-key",
                "row_id": 9,
                "storage_key": "slot",
                "debug": True,
            }
        )
        assert config.remote_enabled
        assert config.row_id == 9
        assert config.storage_key == "slot"
        assert config.debug is True

    @pytest.mark.parametrize("raw,expected", [("true", True), ("1", True), ("no", False)])
    def test_debug_env(self, monkeypatch, raw, expected):
        monkeypatch.setenv("CARPOOL_DEBUG", raw)
        assert load_config().debug is expected

    def test_debug_flag_wins(self, monkeypatch):
        monkeypatch.setenv("CARPOOL_DEBUG", "false")
        assert load_config(debug=True).debug is True

    def test_non_numeric_env(self, monkeypatch):
        monkeypatch.setenv("CARPOOL_DEBOUNCE_SECONDS", "soon")
        with pytest.raises(ValueError, match="CARPOOL_DEBOUNCE_SECONDS"):
            load_config()

    def test_invalid_env_url(self, monkeypatch):
        monkeypatch.setenv("CARPOOL_SUPABASE_URL", "ftp://files.example.com")
        with pytest.raises(ValueError, match="must start with"):
            load_config()
