"""Custom exception classes for the Flagship CLI."""

from typing import Optional


class FlagshipError(Exception):
    """Base class for all custom exceptions in the Flagship CLI."""

    pass


# ── Connection resolution ───────────────────────────────────────────────


class ResolutionError(FlagshipError):
    """Raised when no complete connection can be resolved for an invocation."""

    pass


class MissingEnvironmentError(ResolutionError):
    """Raised when a base URL / API key pair is given without an environment name."""

    def __init__(self, source: str):
        self.source = source
        super().__init__(f"--env flag is required when using {source}")


class EnvironmentNotFoundError(ResolutionError):
    """Raised when an environment is not present in the persisted config."""

    def __init__(self, env_name: str):
        self.env_name = env_name
        super().__init__(f"environment '{env_name}' not found in config")


class IncompleteConnectionError(ResolutionError):
    """Raised when an environment lacks a base URL or API key after overrides."""

    def __init__(self, env_name: str):
        self.env_name = env_name
        super().__init__(
            f"base_url and api_key must be configured for environment '{env_name}'"
        )


# ── Persisted configuration ─────────────────────────────────────────────


class ConfigError(FlagshipError):
    """Raised when the persisted configuration cannot be read or addressed."""

    pass


class ConfigParseError(ConfigError):
    """Raised when the config file exists but is not valid."""

    def __init__(self, path: str, detail: str):
        self.path = path
        self.detail = detail
        super().__init__(f"failed to parse config file {path}: {detail}")


class UnknownFieldError(ConfigError):
    """Raised for a dotted config path whose leaf is not a known field."""

    def __init__(self, field: str, valid: tuple):
        self.field = field
        super().__init__(f"unknown key '{field}', valid keys: {', '.join(valid)}")


class InvalidKeyPathError(ConfigError):
    """Raised when a dotted config path does not have exactly two segments."""

    def __init__(self, key_path: str):
        self.key_path = key_path
        super().__init__(
            f"invalid key format '{key_path}', expected 'env.key' (e.g., 'dev.base_url')"
        )


# ── Local validation ────────────────────────────────────────────────────


class ValidationError(FlagshipError):
    """Raised when operator-supplied values fail validation before any request."""

    pass


# ── Remote service ──────────────────────────────────────────────────────


class RemoteError(FlagshipError):
    """Raised when the flagship API returns a non-success status."""

    def __init__(self, status_code: int, body: str = ""):
        self.status_code = status_code
        self.body = body
        super().__init__(f"API error (status {status_code}): {body}")


class FlagNotFoundError(FlagshipError):
    """Raised when a flag key is absent from an environment's snapshot."""

    def __init__(self, key: str, env: str):
        self.key = key
        self.env = env
        super().__init__(f"flag not found: {key} (env: {env})")


class TransportError(FlagshipError):
    """Raised when a request never produced an HTTP response."""

    def __init__(self, message: str, orig_exc: Optional[Exception] = None):
        self.orig_exc = orig_exc
        full_msg = f"request failed: {message}"
        if orig_exc:
            full_msg += f" (original error: {type(orig_exc).__name__})"
        super().__init__(full_msg)


class ImportFailedError(FlagshipError):
    """Raised when one or more records of an import batch were not written."""

    def __init__(self, succeeded: int, failed: int, aborted: bool):
        self.succeeded = succeeded
        self.failed = failed
        self.aborted = aborted
        if aborted:
            message = "import failed, use --force to continue on errors"
        else:
            message = f"import completed with errors ({failed} failed)"
        super().__init__(message)
