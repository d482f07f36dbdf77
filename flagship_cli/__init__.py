"""
Flagship CLI - operator tool for managing remote feature flags.

Resolves which flagship service, API key and environment to talk to from
command-line flags, environment variables and ``~/.flagship/config.yaml``,
then creates, reads, updates, deletes, imports and exports flag records
over the service's REST API.
"""

from flagship_cli.constants import PROGRAM_NAME, PROGRAM_VERSION

__version__ = PROGRAM_VERSION
__app_name__ = PROGRAM_NAME

__all__ = [
    "PROGRAM_NAME",
    "PROGRAM_VERSION",
    "__version__",
    "__app_name__",
]
