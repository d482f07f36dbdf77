"""Render flag records and config for the terminal.

``table`` uses a rich table; ``json`` and ``yaml`` print machine-readable
documents.  Lists are wrapped as ``{"flags": [...]}`` in JSON.
"""

from __future__ import annotations

import json
from typing import Any, List, Optional, Sequence

import yaml
from rich.console import Console
from rich.table import Table

from flagship_cli.config.schema import PersistedConfig
from flagship_cli.constants import DESCRIPTION_MAX_WIDTH
from flagship_cli.errors import ValidationError
from flagship_cli.flags.models import FlagRecord


def _console() -> Console:
    return Console(highlight=False, soft_wrap=True)


def mask_api_key(api_key: str) -> str:
    """Show only the first four characters of an API key."""
    if len(api_key) > 4:
        return api_key[:4] + "***"
    return "***"


def _truncate(text: str, width: int = DESCRIPTION_MAX_WIDTH) -> str:
    if len(text) > width:
        return text[: width - 3] + "..."
    return text


def flags_table(flags: Sequence[FlagRecord]) -> Table:
    table = Table(show_lines=False)
    for header in ("Key", "Enabled", "Rollout", "Env", "Description", "Updated At"):
        table.add_column(header)
    for flag in flags:
        updated = flag.updated_at.strftime("%Y-%m-%d %H:%M") if flag.updated_at else ""
        table.add_row(
            flag.key,
            "true" if flag.enabled else "false",
            f"{flag.rollout}%",
            flag.env,
            _truncate(flag.description),
            updated,
        )
    return table


def _emit(data: Any, fmt: str, console: Console) -> None:
    if fmt == "json":
        console.out(json.dumps(data, indent=2))
    elif fmt == "yaml":
        console.out(
            yaml.safe_dump(data, default_flow_style=False, sort_keys=False, indent=2).rstrip("\n")
        )
    else:
        raise ValidationError(f"unsupported format: {fmt}")


def print_flags(
    flags: List[FlagRecord], fmt: str, console: Optional[Console] = None
) -> None:
    console = console or _console()
    if fmt == "table":
        console.print(flags_table(flags))
        return
    records = [f.to_export_dict() for f in flags]
    _emit({"flags": records} if fmt == "json" else records, fmt, console)


def print_flag(flag: FlagRecord, fmt: str, console: Optional[Console] = None) -> None:
    console = console or _console()
    if fmt == "table":
        console.print(flags_table([flag]))
        return
    _emit(flag.to_export_dict(), fmt, console)


def print_config(cfg: PersistedConfig, console: Optional[Console] = None) -> None:
    """Print the persisted config with API keys masked."""
    console = console or _console()
    console.out(f"Default Environment: {cfg.default_env}\n")
    console.out("Environments:")
    for name, env_cfg in cfg.environments.items():
        console.out(f"  {name}:")
        console.out(f"    base_url: {env_cfg.base_url}")
        console.out(f"    api_key: {mask_api_key(env_cfg.api_key)}")
