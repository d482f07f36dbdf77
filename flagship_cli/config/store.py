"""Load and save the persisted CLI configuration.

The config file is a small YAML document::

    default_env: prod
    environments:
      dev:
        base_url: http://localhost:8080
        api_key: dev-key-123

A missing file is not an error: :meth:`ConfigStore.load` returns a default
:class:`PersistedConfig` (``default_env: prod``, no environments).  The file
is written with owner-only permissions because it holds API keys.  There is
no locking; the last writer wins.
"""

from __future__ import annotations

import logging
import os
from typing import List, Optional, Tuple

import yaml
from pydantic import ValidationError as SchemaValidationError

from flagship_cli.config.schema import EnvConfig, PersistedConfig
from flagship_cli.constants import (
    CONFIG_DIR_MODE,
    CONFIG_FIELDS,
    CONFIG_FILE,
    CONFIG_FILE_MODE,
    ENV_CONFIG_PATH,
)
from flagship_cli.errors import (
    ConfigError,
    ConfigParseError,
    EnvironmentNotFoundError,
    InvalidKeyPathError,
    UnknownFieldError,
)

logger = logging.getLogger(__name__)


def default_config_path() -> str:
    """Return the config file path, honouring ``FLAGSHIP_CONFIG``."""
    return os.environ.get(ENV_CONFIG_PATH) or CONFIG_FILE


def _format_validation_errors(exc: SchemaValidationError) -> str:
    """Format Pydantic validation errors into a readable multi-line string."""
    lines: List[str] = []
    for err in exc.errors():
        loc = " → ".join(str(part) for part in err["loc"])
        lines.append(f"  • {loc}: {err['msg']}")
    return "\n".join(lines)


def split_key_path(key_path: str) -> Tuple[str, str]:
    """Split ``<environment>.<field>`` and check the field name."""
    parts = key_path.split(".")
    if len(parts) != 2 or not parts[0]:
        raise InvalidKeyPathError(key_path)
    env_name, field = parts
    if field not in CONFIG_FIELDS:
        raise UnknownFieldError(field, CONFIG_FIELDS)
    return env_name, field


class ConfigStore:
    """File-backed store for :class:`PersistedConfig`.

    Parameters
    ----------
    path:
        Config file location.  Defaults to :func:`default_config_path`.
    """

    def __init__(self, path: Optional[str] = None) -> None:
        self._path = path or default_config_path()

    @property
    def path(self) -> str:
        return self._path

    # ── Whole-file operations ───────────────────────────────────

    def load(self) -> PersistedConfig:
        """Read the config file, returning defaults when it does not exist."""
        try:
            with open(self._path, "r", encoding="utf-8") as fh:
                raw_data = yaml.safe_load(fh)
        except FileNotFoundError:
            logger.debug("No config file at %s, using defaults", self._path)
            return PersistedConfig()
        except yaml.YAMLError as exc:
            raise ConfigParseError(self._path, str(exc)) from exc
        except OSError as exc:
            raise ConfigError(f"failed to read config file {self._path}: {exc}") from exc

        if raw_data is None:
            return PersistedConfig()
        if not isinstance(raw_data, dict):
            raise ConfigParseError(
                self._path, "top-level content must be a YAML mapping (dictionary)"
            )

        try:
            cfg = PersistedConfig.model_validate(raw_data)
        except SchemaValidationError as exc:
            raise ConfigParseError(
                self._path,
                f"{len(exc.errors())} error(s):\n{_format_validation_errors(exc)}",
            ) from exc

        logger.debug(
            "Config '%s' loaded: default_env=%s, %d environment(s)",
            self._path,
            cfg.default_env,
            len(cfg.environments),
        )
        return cfg

    def save(self, cfg: PersistedConfig) -> None:
        """Write *cfg* to disk with owner-only permissions."""
        config_dir = os.path.dirname(os.path.abspath(self._path))
        try:
            os.makedirs(config_dir, mode=CONFIG_DIR_MODE, exist_ok=True)
        except OSError as exc:
            raise ConfigError(f"failed to create config directory: {exc}") from exc

        data = yaml.safe_dump(cfg.model_dump(), default_flow_style=False, sort_keys=False)
        try:
            fd = os.open(self._path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, CONFIG_FILE_MODE)
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(data)
            # os.open only applies the mode when the file is created
            os.chmod(self._path, CONFIG_FILE_MODE)
        except OSError as exc:
            raise ConfigError(f"failed to write config file: {exc}") from exc
        logger.info("Config saved to %s", self._path)

    def init(self) -> PersistedConfig:
        """Write the starter config and return it."""
        cfg = PersistedConfig.starter()
        self.save(cfg)
        return cfg

    # ── Dotted-path access ──────────────────────────────────────

    def get(self, key_path: str) -> str:
        """Return the value at ``<environment>.<field>``."""
        env_name, field = split_key_path(key_path)
        cfg = self.load()
        env_cfg = cfg.environments.get(env_name)
        if env_cfg is None:
            raise EnvironmentNotFoundError(env_name)
        return getattr(env_cfg, field)

    def set(self, key_path: str, value: str) -> None:
        """Set ``<environment>.<field>``, creating the environment if needed."""
        env_name, field = split_key_path(key_path)
        cfg = self.load()
        env_cfg = cfg.environments.get(env_name) or EnvConfig()
        cfg.environments[env_name] = env_cfg.model_copy(update={field: value})
        self.save(cfg)
        logger.debug("Config value %s.%s updated", env_name, field)
