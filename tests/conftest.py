"""Shared fixtures: isolate every test from the operator's real config and env."""

import logging

import pytest

from flagship_cli.constants import ENV_API_KEY, ENV_BASE_URL, ENV_CONFIG_PATH

_CLI_HANDLERS = ("console_handler", "file_handler")


def _drop_cli_handlers(lg: logging.Logger) -> None:
    for handler in list(lg.handlers):
        if handler.get_name() in _CLI_HANDLERS:
            lg.removeHandler(handler)
            handler.close()


@pytest.fixture(autouse=True)
def _isolated_env(tmp_path, monkeypatch):
    monkeypatch.delenv(ENV_BASE_URL, raising=False)
    monkeypatch.delenv(ENV_API_KEY, raising=False)
    monkeypatch.setenv(ENV_CONFIG_PATH, str(tmp_path / "flagship" / "config.yaml"))
    yield
    # main() binds stream handlers to this test's captured stderr
    for name in ("flagship_cli", "httpx"):
        lg = logging.getLogger(name)
        _drop_cli_handlers(lg)
        lg.propagate = True
    _drop_cli_handlers(logging.root)


@pytest.fixture
def config_path(tmp_path):
    return str(tmp_path / "flagship" / "config.yaml")
