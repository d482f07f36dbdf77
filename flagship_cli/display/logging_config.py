"""Logging configuration setup."""

import copy
import logging
import logging.config
import re
import sys
from typing import Optional, Set

# ── API key redaction ────────────────────────────────────────────────────

_REDACTED = "***REDACTED***"
_MIN_KEY_LENGTH = 4

_traceback_formatter = logging.Formatter()


class SecretRedactionFilter(logging.Filter):
    """Masks API keys in log records before any handler formats them.

    ``flagship`` registers the key of the resolved connection as soon as it
    is known.  Message text, ``%`` arguments and traceback text are all
    scrubbed, so neither the console nor ``--log-file`` ever shows the key.
    """

    def __init__(self) -> None:
        super().__init__()
        self._keys: Set[str] = set()
        self._pattern: Optional[re.Pattern[str]] = None

    def register(self, api_key: str) -> None:
        if not api_key or len(api_key) < _MIN_KEY_LENGTH:
            return
        self._keys.add(api_key)
        # Longest first, so a key that contains another is masked whole
        alternatives = sorted(self._keys, key=len, reverse=True)
        self._pattern = re.compile("|".join(re.escape(k) for k in alternatives))

    def _scrub(self, value: object) -> object:
        if isinstance(value, str):
            return self._pattern.sub(_REDACTED, value)
        return value

    def filter(self, record: logging.LogRecord) -> bool:
        if self._pattern is None:
            return True
        record.msg = self._scrub(record.msg)
        if isinstance(record.args, dict):
            record.args = {k: self._scrub(v) for k, v in record.args.items()}
        elif isinstance(record.args, tuple):
            record.args = tuple(self._scrub(a) for a in record.args)
        if record.exc_info and not record.exc_text:
            # Formatters reuse exc_text instead of rendering exc_info again
            record.exc_text = _traceback_formatter.formatException(record.exc_info)
        record.exc_text = self._scrub(record.exc_text)
        record.stack_info = self._scrub(record.stack_info)
        return True


# Shared instance; cli.py registers the resolved key on it.
secret_redaction_filter = SecretRedactionFilter()

BASE_LOG_CFG = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "console": {
            "format": "%(levelname)s: %(message)s",
        },
        "simple_file": {
            "format": ("%(asctime)s - %(name)25s:%(lineno)-4d - " "%(levelname)-7s - %(message)s"),
            "datefmt": "%Y-%m-%d %H:%M:%S",
        },
    },
    "handlers": {
        "console_handler": {
            "class": "logging.StreamHandler",
            "level": "WARNING",
            "formatter": "console",
            "stream": "ext://sys.stderr",
        },
    },
    "loggers": {
        "flagship_cli": {
            "handlers": ["console_handler"],
            "propagate": False,
            "level": "WARNING",
        },
        "httpx": {
            "handlers": ["console_handler"],
            "propagate": False,
            "level": "WARNING",
        },
    },
    "root": {
        "handlers": ["console_handler"],
        "level": "WARNING",
    },
}


def setup_logging(verbose: bool = False, log_file: Optional[str] = None) -> str:
    """
    Set up the logging system.

    Console output goes to stderr so it never mixes with command output on
    stdout.

    Args:
        verbose: Log at DEBUG level instead of WARNING.
        log_file: Optional path of a file that receives the same records
            with timestamps.

    Returns:
        The effective log level name.
    """
    log_lvl = "DEBUG" if verbose else "WARNING"

    log_cfg: dict = copy.deepcopy(BASE_LOG_CFG)
    log_cfg["handlers"]["console_handler"]["level"] = log_lvl
    log_cfg["loggers"]["flagship_cli"]["level"] = log_lvl
    log_cfg["loggers"]["httpx"]["level"] = "INFO" if verbose else "WARNING"

    if log_file:
        log_cfg["handlers"]["file_handler"] = {
            "class": "logging.FileHandler",
            "level": "DEBUG",
            "formatter": "simple_file",
            "filename": log_file,
            "encoding": "utf-8",
        }
        for logger_cfg in log_cfg["loggers"].values():
            logger_cfg["handlers"].append("file_handler")
        log_cfg["root"]["handlers"].append("file_handler")
        # The file always gets INFO and above, DEBUG with --verbose
        if not verbose:
            log_cfg["loggers"]["flagship_cli"]["level"] = "INFO"

    try:
        logging.config.dictConfig(log_cfg)
        for handler in logging.getLogger("flagship_cli").handlers + logging.root.handlers:
            if secret_redaction_filter not in handler.filters:
                handler.addFilter(secret_redaction_filter)
    except (ValueError, TypeError, AttributeError, ImportError, OSError) as e_log_cfg:
        print(f"Error applying logging configuration: {e_log_cfg}", file=sys.stderr)

    return log_lvl
