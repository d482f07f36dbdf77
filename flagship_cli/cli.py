"""CLI argument parsing and main entry point.

Commands:

* ``flagship config init|list|get|set``: manage ``~/.flagship/config.yaml``.
* ``flagship create|get|list|update|delete``: work with single flags.
* ``flagship export|import``: move whole environments to and from files.

Every remote command resolves its connection once, from ``--base-url`` /
``--api-key`` / ``--env``, ``FLAGSHIP_BASE_URL`` / ``FLAGSHIP_API_KEY`` and
the config file (see :mod:`flagship_cli.config.resolver`).
"""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import dataclass
from typing import List, Optional, Tuple

from flagship_cli.config.resolver import ResolvedConnection, resolve
from flagship_cli.config.store import ConfigStore
from flagship_cli.constants import (
    DEFAULT_OUTPUT_FORMAT,
    ENV_API_KEY,
    ENV_BASE_URL,
    OUTPUT_FORMATS,
    PROGRAM_NAME,
    PROGRAM_VERSION,
)
from flagship_cli.display.logging_config import secret_redaction_filter, setup_logging
from flagship_cli.display.output import print_config, print_flag, print_flags
from flagship_cli.errors import FlagshipError, ImportFailedError
from flagship_cli.flags.client import FlagClient
from flagship_cli.flags.merge import UNSET, parse_overrides
from flagship_cli.flags.operations import (
    build_new_record,
    create_flag,
    dump_document,
    export_flags,
    import_flags,
    list_flags,
    load_document,
    update_flag,
)

module_logger = logging.getLogger(__name__)

_TRUE_STRINGS = frozenset({"true", "t", "1", "yes", "y", "on"})
_FALSE_STRINGS = frozenset({"false", "f", "0", "no", "n", "off"})


# ── Per-invocation options ───────────────────────────────────────────────


@dataclass(frozen=True)
class InvocationOptions:
    """Options shared by every command, built once from parsed arguments."""

    base_url: Optional[str] = None
    api_key: Optional[str] = None
    env: Optional[str] = None
    output_format: str = DEFAULT_OUTPUT_FORMAT
    quiet: bool = False
    verbose: bool = False
    log_file: Optional[str] = None

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> InvocationOptions:
        return cls(
            base_url=getattr(args, "base_url", None),
            api_key=getattr(args, "api_key", None),
            env=getattr(args, "env", None),
            output_format=getattr(args, "format", None) or DEFAULT_OUTPUT_FORMAT,
            quiet=bool(getattr(args, "quiet", False)),
            verbose=bool(getattr(args, "verbose", False)),
            log_file=getattr(args, "log_file", None),
        )


def _resolve_connection(opts: InvocationOptions) -> ResolvedConnection:
    conn = resolve(opts.base_url, opts.api_key, opts.env, ConfigStore())
    secret_redaction_filter.register(conn.api_key)
    module_logger.info(
        "Resolved connection: %s (env: %s)", conn.base_url, conn.environment_name
    )
    return conn


def _open_client(conn: ResolvedConnection) -> FlagClient:
    return FlagClient(conn.base_url, conn.api_key)


def _say(opts: InvocationOptions, message: str) -> None:
    if not opts.quiet:
        print(message)


def _parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_STRINGS:
        return True
    if lowered in _FALSE_STRINGS:
        return False
    raise argparse.ArgumentTypeError(f"invalid boolean value: '{value}'")


def _confirm(prompt: str) -> bool:
    try:
        response = input(prompt)
    except EOFError:
        return False
    return response.strip().lower() in ("y", "yes")


# ── ``flagship config`` ──────────────────────────────────────────────────


def _cmd_config_init(args: argparse.Namespace, opts: InvocationOptions) -> None:
    store = ConfigStore()
    store.init()
    print(f"Configuration file created at: {store.path}")
    _say(opts, "\nPlease edit the file to set your API keys and base URLs.")


def _cmd_config_list(args: argparse.Namespace, opts: InvocationOptions) -> None:
    print_config(ConfigStore().load())


def _cmd_config_get(args: argparse.Namespace, opts: InvocationOptions) -> None:
    print(ConfigStore().get(args.key_path))


def _cmd_config_set(args: argparse.Namespace, opts: InvocationOptions) -> None:
    ConfigStore().set(args.key_path, args.value)
    _say(opts, f"Successfully set {args.key_path}")


# ── Flag commands ────────────────────────────────────────────────────────


def _cmd_create(args: argparse.Namespace, opts: InvocationOptions) -> None:
    """Entry-point for ``flagship create``."""
    record = build_new_record(
        args.key,
        enabled=args.enabled,
        rollout=args.rollout,
        description=args.description,
        config_json=args.config,
        expression=args.expression,
        variants_json=args.variants,
    )
    conn = _resolve_connection(opts)
    with _open_client(conn) as client:
        create_flag(client, record, conn.environment_name)
    _say(
        opts,
        f"Successfully created flag '{args.key}' in environment '{conn.environment_name}'",
    )


def _cmd_get(args: argparse.Namespace, opts: InvocationOptions) -> None:
    """Entry-point for ``flagship get``."""
    conn = _resolve_connection(opts)
    with _open_client(conn) as client:
        flag = client.get(args.key, conn.environment_name)
    if not opts.quiet:
        print_flag(flag, opts.output_format)


def _cmd_list(args: argparse.Namespace, opts: InvocationOptions) -> None:
    """Entry-point for ``flagship list``."""
    conn = _resolve_connection(opts)
    with _open_client(conn) as client:
        flags = list_flags(client, conn.environment_name, enabled_only=args.enabled_only)
    if opts.quiet:
        return
    if not flags:
        print("No flags found")
        return
    print_flags(flags, opts.output_format)


def _cmd_update(args: argparse.Namespace, opts: InvocationOptions) -> None:
    """Entry-point for ``flagship update``.

    Overrides are validated before the connection is resolved, so a bad
    ``--config`` never costs a round trip.
    """
    overrides = parse_overrides(
        description=args.description,
        enabled=args.enabled,
        rollout=args.rollout,
        config_json=args.config,
        variants_json=args.variants,
        expression=args.expression,
    )
    conn = _resolve_connection(opts)
    with _open_client(conn) as client:
        update_flag(client, args.key, conn.environment_name, overrides)
    _say(
        opts,
        f"Successfully updated flag '{args.key}' in environment '{conn.environment_name}'",
    )


def _cmd_delete(args: argparse.Namespace, opts: InvocationOptions) -> None:
    """Entry-point for ``flagship delete``."""
    conn = _resolve_connection(opts)
    env_name = conn.environment_name
    if not args.force and not opts.quiet:
        prompt = (
            f"Are you sure you want to delete flag '{args.key}' "
            f"from environment '{env_name}'? (y/N): "
        )
        if not _confirm(prompt):
            print("Deletion cancelled")
            return
    with _open_client(conn) as client:
        client.delete(args.key, env_name)
    _say(opts, f"Successfully deleted flag '{args.key}' from environment '{env_name}'")


def _cmd_export(args: argparse.Namespace, opts: InvocationOptions) -> None:
    """Entry-point for ``flagship export``."""
    conn = _resolve_connection(opts)
    with _open_client(conn) as client:
        doc = export_flags(client, conn.environment_name)
    text = dump_document(doc, opts.output_format)

    if not args.output or args.output == "-":
        sys.stdout.write(text)
        return
    try:
        with open(args.output, "w", encoding="utf-8") as fh:
            fh.write(text)
    except OSError as exc:
        raise FlagshipError(f"failed to create output file: {exc}") from exc
    if not opts.quiet:
        print(
            f"Successfully exported {len(doc.flags)} flag(s) to {args.output}",
            file=sys.stderr,
        )


def _cmd_import(args: argparse.Namespace, opts: InvocationOptions) -> None:
    """Entry-point for ``flagship import``."""
    doc = load_document(args.file)
    if opts.verbose:
        print(f"Found {len(doc.flags)} flag(s) to import")

    if args.dry_run:
        print("Dry run mode - the following flags would be imported:")
        for flag in doc.flags:
            print(
                f"  - {flag.key} (enabled: {str(flag.enabled).lower()}, "
                f"rollout: {flag.rollout}%, env: {flag.env})"
            )
        return

    conn = _resolve_connection(opts)

    def _report_failure(key: str, exc: FlagshipError) -> None:
        print(f"Failed to import flag '{key}': {exc}", file=sys.stderr)

    def _report_start(key: str) -> None:
        if opts.verbose:
            print(f"Importing flag: {key}")

    with _open_client(conn) as client:
        result = import_flags(
            client,
            doc,
            conn.environment_name,
            continue_on_error=args.force,
            on_failure=_report_failure,
            on_start=_report_start,
        )
    _say(opts, f"Import complete: {result.succeeded} succeeded, {result.failed} failed")
    if result.failed:
        raise ImportFailedError(result.succeeded, result.failed, aborted=False)


# ── CLI parser construction ──────────────────────────────────────────────


class _CommandParser(argparse.ArgumentParser):
    """ArgumentParser with boolean flags that take a value only as ``--flag=VALUE``.

    A bare flag in ``bare_true_flags`` means true and never consumes the next
    token, so ``update --enabled my_flag`` keeps ``my_flag`` as the key.
    Subparsers inherit this class.
    """

    bare_true_flags: Tuple[str, ...] = ()

    def parse_known_args(self, args=None, namespace=None):
        if args is not None and self.bare_true_flags:
            args = _attach_bare_flags(list(args), self.bare_true_flags)
        return super().parse_known_args(args, namespace)


def _attach_bare_flags(args: List[str], flags: Tuple[str, ...]) -> List[str]:
    rewritten = []
    for i, token in enumerate(args):
        if token == "--":
            return rewritten + args[i:]
        rewritten.append(f"{token}=true" if token in flags else token)
    return rewritten


def _common_options() -> argparse.ArgumentParser:
    """Options accepted by every subcommand."""
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--base-url",
        type=str,
        default=None,
        help=f"Base URL of the flagship API (or set {ENV_BASE_URL})",
    )
    common.add_argument(
        "--api-key",
        type=str,
        default=None,
        help=f"API key for authentication (or set {ENV_API_KEY})",
    )
    common.add_argument(
        "--env",
        type=str,
        default=None,
        help="Environment (dev, staging, prod). Default: default_env from config",
    )
    common.add_argument(
        "--format",
        type=str,
        default=DEFAULT_OUTPUT_FORMAT,
        choices=list(OUTPUT_FORMATS),
        help=f"Output format (default: {DEFAULT_OUTPUT_FORMAT})",
    )
    common.add_argument("--quiet", action="store_true", default=False, help="Suppress output")
    common.add_argument("--verbose", action="store_true", default=False, help="Verbose output")
    common.add_argument(
        "--log-file",
        type=str,
        default=None,
        metavar="PATH",
        help="Also write log records to PATH",
    )
    return common


def _build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser with config and flag subcommands."""
    parser = _CommandParser(
        prog=PROGRAM_NAME,
        description=f"{PROGRAM_NAME} v{PROGRAM_VERSION} - manage feature flags",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {PROGRAM_VERSION}")
    common = _common_options()

    subparsers = parser.add_subparsers(dest="command")

    # ── config ──────────────────────────────────────────────────
    sp_config = subparsers.add_parser("config", help="Manage configuration")
    sp_config.set_defaults(func=None, help_parser=sp_config)
    config_sub = sp_config.add_subparsers(dest="config_action")

    sp_init = config_sub.add_parser(
        "init", parents=[common], help="Create ~/.flagship/config.yaml with defaults"
    )
    sp_init.set_defaults(func=_cmd_config_init)

    sp_clist = config_sub.add_parser("list", parents=[common], help="Show the configuration")
    sp_clist.set_defaults(func=_cmd_config_list)

    sp_cget = config_sub.add_parser(
        "get", parents=[common], help="Get a value, e.g. dev.base_url"
    )
    sp_cget.add_argument("key_path", metavar="ENV.KEY")
    sp_cget.set_defaults(func=_cmd_config_get)

    sp_cset = config_sub.add_parser(
        "set", parents=[common], help="Set a value, e.g. prod.api_key my-secret-key"
    )
    sp_cset.add_argument("key_path", metavar="ENV.KEY")
    sp_cset.add_argument("value")
    sp_cset.set_defaults(func=_cmd_config_set)

    # ── create ──────────────────────────────────────────────────
    sp_create = subparsers.add_parser(
        "create", parents=[common], help="Create a new feature flag"
    )
    sp_create.add_argument("key")
    sp_create.add_argument("--enabled", action="store_true", default=False, help="Enable the flag")
    sp_create.add_argument(
        "--rollout", type=int, default=100, help="Rollout percentage 0-100 (default: 100)"
    )
    sp_create.add_argument("--config", type=str, default=None, help="Flag configuration as JSON")
    sp_create.add_argument("--description", type=str, default="", help="Flag description")
    sp_create.add_argument("--expression", type=str, default=None, help="Targeting expression")
    sp_create.add_argument(
        "--variants", type=str, default=None, help="Variants as a JSON list"
    )
    sp_create.set_defaults(func=_cmd_create)

    # ── get ─────────────────────────────────────────────────────
    sp_get = subparsers.add_parser("get", parents=[common], help="Get a feature flag")
    sp_get.add_argument("key")
    sp_get.set_defaults(func=_cmd_get)

    # ── list ────────────────────────────────────────────────────
    sp_list = subparsers.add_parser("list", parents=[common], help="List all feature flags")
    sp_list.add_argument(
        "--enabled-only", action="store_true", default=False, help="Show only enabled flags"
    )
    sp_list.set_defaults(func=_cmd_list)

    # ── update ──────────────────────────────────────────────────
    sp_update = subparsers.add_parser(
        "update",
        parents=[common],
        help="Update fields of an existing feature flag",
    )
    sp_update.add_argument("key")
    sp_update.add_argument(
        "--enabled",
        type=_parse_bool,
        default=UNSET,
        metavar="BOOL",
        help="Enable the flag; --enabled=false disables it",
    )
    sp_update.bare_true_flags = ("--enabled",)
    sp_update.add_argument("--rollout", type=int, default=UNSET, help="Rollout percentage 0-100")
    sp_update.add_argument("--description", type=str, default=UNSET, help="Flag description")
    sp_update.add_argument(
        "--config", type=str, default=UNSET, help="Flag configuration as JSON (null clears)"
    )
    sp_update.add_argument(
        "--expression", type=str, default=UNSET, help="Targeting expression ('' clears)"
    )
    sp_update.add_argument(
        "--variants", type=str, default=UNSET, help="Variants as a JSON list (null clears)"
    )
    sp_update.set_defaults(func=_cmd_update)

    # ── delete ──────────────────────────────────────────────────
    sp_delete = subparsers.add_parser("delete", parents=[common], help="Delete a feature flag")
    sp_delete.add_argument("key")
    sp_delete.add_argument(
        "--force", action="store_true", default=False, help="Skip confirmation prompt"
    )
    sp_delete.set_defaults(func=_cmd_delete)

    # ── export ──────────────────────────────────────────────────
    sp_export = subparsers.add_parser(
        "export", parents=[common], help="Export flags to a YAML or JSON file"
    )
    sp_export.add_argument(
        "-o", "--output", type=str, default=None, help="Output file (default: stdout)"
    )
    sp_export.set_defaults(func=_cmd_export)

    # ── import ──────────────────────────────────────────────────
    sp_import = subparsers.add_parser(
        "import", parents=[common], help="Import flags from a YAML or JSON file"
    )
    sp_import.add_argument("file")
    sp_import.add_argument(
        "--dry-run", action="store_true", default=False, help="Validate without importing"
    )
    sp_import.add_argument(
        "--force", action="store_true", default=False, help="Continue on errors"
    )
    sp_import.set_defaults(func=_cmd_import)

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Program entry point: parse arguments and dispatch to subcommand."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    func = getattr(args, "func", None)
    if func is None:
        getattr(args, "help_parser", parser).print_help()
        sys.exit(1)

    opts = InvocationOptions.from_args(args)
    setup_logging(verbose=opts.verbose, log_file=opts.log_file)

    try:
        func(args, opts)
    except FlagshipError as exc:
        module_logger.debug("Command '%s' failed", args.command, exc_info=True)
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)
    except KeyboardInterrupt:
        module_logger.info("%s interrupted by KeyboardInterrupt.", PROGRAM_NAME)
        sys.exit(130)
