"""Connection resolution: which base URL, API key and environment to use.

Three sources are consulted, top to bottom, and the first matching tier wins
completely:

1. ``--base-url`` **and** ``--api-key`` both given on the command line.
2. ``FLAGSHIP_BASE_URL`` **and** ``FLAGSHIP_API_KEY`` both set in the
   process environment.
3. The persisted config file.

Tiers 1 and 2 bypass the config file entirely, so they also require an
explicit ``--env``.  Only tier 3 overrides field by field: an operator may
pass just ``--api-key`` (or just ``FLAGSHIP_BASE_URL``) and keep the other
value from the stored environment.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from flagship_cli.config.store import ConfigStore
from flagship_cli.constants import ENV_API_KEY, ENV_BASE_URL
from flagship_cli.errors import (
    EnvironmentNotFoundError,
    IncompleteConnectionError,
    MissingEnvironmentError,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedConnection:
    """A fully specified connection for one invocation."""

    base_url: str
    api_key: str
    environment_name: str

    def __repr__(self) -> str:
        return (
            f"ResolvedConnection(base_url={self.base_url!r}, api_key='***', "
            f"environment_name={self.environment_name!r})"
        )


def resolve(
    base_url: Optional[str],
    api_key: Optional[str],
    env: Optional[str],
    store: ConfigStore,
    environ: Optional[Mapping[str, str]] = None,
) -> ResolvedConnection:
    """Resolve the connection for this invocation.

    Empty strings count as "not supplied".  *environ* defaults to
    :data:`os.environ`.

    Raises:
        MissingEnvironmentError: A flag or env-var pair was used without *env*.
        EnvironmentNotFoundError: The target environment is not in the store.
        IncompleteConnectionError: The stored environment still lacks a base
            URL or API key after overrides.
        ConfigError: The config file could not be read.
    """
    if environ is None:
        environ = os.environ

    # Tier 1: explicit flag pair
    if base_url and api_key:
        if not env:
            raise MissingEnvironmentError("--base-url and --api-key flags")
        logger.debug("Using connection from --base-url/--api-key for env '%s'", env)
        return ResolvedConnection(base_url=base_url, api_key=api_key, environment_name=env)

    # Tier 2: process environment pair
    env_base_url = environ.get(ENV_BASE_URL, "")
    env_api_key = environ.get(ENV_API_KEY, "")
    if env_base_url and env_api_key:
        if not env:
            raise MissingEnvironmentError(
                f"{ENV_BASE_URL} and {ENV_API_KEY} environment variables"
            )
        logger.debug("Using connection from %s/%s for env '%s'", ENV_BASE_URL, ENV_API_KEY, env)
        return ResolvedConnection(
            base_url=env_base_url, api_key=env_api_key, environment_name=env
        )

    # Tier 3: persisted config, overridden field by field
    cfg = store.load()
    env_name = env or cfg.default_env
    env_cfg = cfg.environments.get(env_name)
    if env_cfg is None:
        raise EnvironmentNotFoundError(env_name)

    resolved_url = base_url or env_base_url or env_cfg.base_url
    resolved_key = api_key or env_api_key or env_cfg.api_key
    if not resolved_url or not resolved_key:
        raise IncompleteConnectionError(env_name)

    logger.debug("Using connection for env '%s' from %s", env_name, store.path)
    return ResolvedConnection(
        base_url=resolved_url, api_key=resolved_key, environment_name=env_name
    )
