"""Tests for the persisted config store."""

import os
import stat

import pytest

from flagship_cli.config.schema import EnvConfig, PersistedConfig
from flagship_cli.config.store import ConfigStore, default_config_path, split_key_path
from flagship_cli.constants import ENV_CONFIG_PATH
from flagship_cli.errors import (
    ConfigError,
    ConfigParseError,
    EnvironmentNotFoundError,
    InvalidKeyPathError,
    UnknownFieldError,
)


def _write(path, text):
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "w", encoding="utf-8") as fh:
        fh.write(text)


# ── load / save ──────────────────────────────────────────────────────────


class TestLoad:
    def test_missing_file_returns_defaults(self, config_path):
        cfg = ConfigStore(config_path).load()
        assert cfg.default_env == "prod"
        assert cfg.environments == {}

    def test_empty_file_returns_defaults(self, config_path):
        _write(config_path, "")
        cfg = ConfigStore(config_path).load()
        assert cfg == PersistedConfig()

    def test_reads_environments(self, config_path):
        _write(
            config_path,
            "default_env: staging\n"
            "environments:\n"
            "  staging:\n"
            "    base_url: https://staging.example.com\n"
            "    api_key: s-key\n",
        )
        cfg = ConfigStore(config_path).load()
        assert cfg.default_env == "staging"
        assert cfg.environments["staging"].base_url == "https://staging.example.com"
        assert cfg.environments["staging"].api_key == "s-key"

    def test_missing_default_env_falls_back_to_prod(self, config_path):
        _write(config_path, "environments: {}\n")
        assert ConfigStore(config_path).load().default_env == "prod"

    def test_blank_field_loads_as_empty_string(self, config_path):
        _write(config_path, "environments:\n  dev:\n    base_url:\n    api_key: k\n")
        cfg = ConfigStore(config_path).load()
        assert cfg.environments["dev"].base_url == ""

    def test_unquoted_numbers_load_as_strings(self, config_path):
        _write(
            config_path,
            "default_env: 2024\n"
            "environments:\n"
            "  prod:\n"
            "    base_url: http://x\n"
            "    api_key: 123456\n",
        )
        cfg = ConfigStore(config_path).load()
        assert cfg.default_env == "2024"
        assert cfg.environments["prod"].api_key == "123456"

    def test_malformed_yaml(self, config_path):
        _write(config_path, "default_env: [unclosed\n")
        with pytest.raises(ConfigParseError) as exc_info:
            ConfigStore(config_path).load()
        assert exc_info.value.path == config_path

    def test_top_level_not_mapping(self, config_path):
        _write(config_path, "- dev\n- prod\n")
        with pytest.raises(ConfigParseError):
            ConfigStore(config_path).load()

    def test_schema_violation(self, config_path):
        _write(config_path, "environments: not-a-map\n")
        with pytest.raises(ConfigParseError) as exc_info:
            ConfigStore(config_path).load()
        assert "environments" in str(exc_info.value)

    def test_parse_error_is_config_error(self):
        assert issubclass(ConfigParseError, ConfigError)


class TestSave:
    def test_roundtrip(self, config_path):
        store = ConfigStore(config_path)
        cfg = PersistedConfig(
            default_env="dev",
            environments={
                "dev": EnvConfig(base_url="http://localhost:8080", api_key="dev-key"),
                "prod": EnvConfig(base_url="https://flags.example.com", api_key="prod-key"),
            },
        )
        store.save(cfg)
        assert store.load() == cfg

    def test_owner_only_permissions(self, config_path):
        ConfigStore(config_path).save(PersistedConfig())
        file_mode = stat.S_IMODE(os.stat(config_path).st_mode)
        dir_mode = stat.S_IMODE(os.stat(os.path.dirname(config_path)).st_mode)
        assert file_mode == 0o600
        assert dir_mode == 0o700

    def test_tightens_existing_file(self, config_path):
        _write(config_path, "default_env: prod\n")
        os.chmod(config_path, 0o644)
        ConfigStore(config_path).save(PersistedConfig())
        assert stat.S_IMODE(os.stat(config_path).st_mode) == 0o600

    def test_init_writes_starter_config(self, config_path):
        store = ConfigStore(config_path)
        store.init()
        cfg = store.load()
        assert cfg.default_env == "prod"
        assert set(cfg.environments) == {"dev", "staging", "prod"}
        assert cfg.environments["dev"].base_url == "http://localhost:8080"


# ── dotted paths ─────────────────────────────────────────────────────────


class TestGetSet:
    def test_set_creates_environment(self, config_path):
        store = ConfigStore(config_path)
        store.set("dev.base_url", "http://x")
        assert store.get("dev.base_url") == "http://x"
        assert store.get("dev.api_key") == ""

    def test_set_keeps_other_values(self, config_path):
        store = ConfigStore(config_path)
        store.set("dev.base_url", "http://x")
        store.set("dev.api_key", "secret")
        store.set("prod.api_key", "prod-secret")
        cfg = store.load()
        assert cfg.environments["dev"] == EnvConfig(base_url="http://x", api_key="secret")
        assert cfg.environments["prod"].api_key == "prod-secret"
        assert cfg.default_env == "prod"

    def test_get_missing_environment(self, config_path):
        with pytest.raises(EnvironmentNotFoundError) as exc_info:
            ConfigStore(config_path).get("qa.base_url")
        assert exc_info.value.env_name == "qa"

    def test_unknown_field(self, config_path):
        store = ConfigStore(config_path)
        with pytest.raises(UnknownFieldError):
            store.get("dev.token")
        with pytest.raises(UnknownFieldError):
            store.set("dev.token", "x")
        assert not os.path.exists(config_path)

    @pytest.mark.parametrize("key_path", ["dev", "dev.base_url.extra", ".base_url"])
    def test_invalid_key_path(self, key_path):
        with pytest.raises(InvalidKeyPathError):
            split_key_path(key_path)


class TestDefaultPath:
    def test_env_override(self, monkeypatch, tmp_path):
        monkeypatch.setenv(ENV_CONFIG_PATH, str(tmp_path / "other.yaml"))
        assert default_config_path() == str(tmp_path / "other.yaml")
        assert ConfigStore().path == str(tmp_path / "other.yaml")

    def test_home_location(self, monkeypatch):
        monkeypatch.delenv(ENV_CONFIG_PATH, raising=False)
        assert default_config_path().endswith(os.path.join(".flagship", "config.yaml"))
