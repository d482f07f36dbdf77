"""Persisted CLI configuration and connection resolution."""

from flagship_cli.config.resolver import ResolvedConnection, resolve
from flagship_cli.config.schema import EnvConfig, PersistedConfig
from flagship_cli.config.store import ConfigStore

__all__ = [
    "ConfigStore",
    "EnvConfig",
    "PersistedConfig",
    "ResolvedConnection",
    "resolve",
]
