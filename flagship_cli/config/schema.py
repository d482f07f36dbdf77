"""Pydantic models for the persisted ``~/.flagship/config.yaml`` file."""

from __future__ import annotations

from typing import Dict

from pydantic import BaseModel, Field, field_validator

from flagship_cli.constants import DEFAULT_ENV


def _scalar_as_str(v: object) -> object:
    """Unquoted numbers in a hand-edited file (``api_key: 123456``) are strings."""
    if isinstance(v, (int, float)) and not isinstance(v, bool):
        return str(v)
    return v


class EnvConfig(BaseModel):
    """Connection settings for a single named environment."""

    base_url: str = Field(default="", description="Root URL of the flagship API.")
    api_key: str = Field(default="", description="Bearer credential for the API.")

    @field_validator("base_url", "api_key", mode="before")
    @classmethod
    def _none_as_empty(cls, v: object) -> object:
        # ``base_url:`` with no value loads as None from YAML
        if v is None:
            return ""
        return _scalar_as_str(v)


class PersistedConfig(BaseModel):
    """Top-level config file structure."""

    default_env: str = Field(default=DEFAULT_ENV)
    environments: Dict[str, EnvConfig] = Field(default_factory=dict)

    @field_validator("default_env", mode="before")
    @classmethod
    def _default_env_as_str(cls, v: object) -> object:
        if v is None:
            return DEFAULT_ENV
        return _scalar_as_str(v)

    @field_validator("environments", mode="before")
    @classmethod
    def _none_as_empty_map(cls, v: object) -> object:
        return {} if v is None else v

    @classmethod
    def starter(cls) -> PersistedConfig:
        """Config written by ``flagship config init``."""
        return cls(
            default_env=DEFAULT_ENV,
            environments={
                "dev": EnvConfig(base_url="http://localhost:8080", api_key="dev-key-123"),
                "staging": EnvConfig(
                    base_url="https://staging.example.com", api_key="staging-key-456"
                ),
                "prod": EnvConfig(
                    base_url="https://flagship.example.com", api_key="prod-key-789"
                ),
            },
        )
