"""Flag records, the partial-update merge, and the remote API client."""

from flagship_cli.flags.client import FlagClient
from flagship_cli.flags.merge import UNSET, UpdateOverrides, build_replacement, parse_overrides
from flagship_cli.flags.models import FlagDocument, FlagRecord, Variant

__all__ = [
    "UNSET",
    "FlagClient",
    "FlagDocument",
    "FlagRecord",
    "UpdateOverrides",
    "Variant",
    "build_replacement",
    "parse_overrides",
]
