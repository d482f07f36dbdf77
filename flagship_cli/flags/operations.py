"""Command workflows built on :class:`FlagClient`.

Each function takes an already-resolved environment name and a client, so
the CLI layer only parses arguments, resolves the connection and prints.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple

import yaml
from pydantic import ValidationError as SchemaValidationError

from flagship_cli.errors import FlagshipError, ImportFailedError, ValidationError
from flagship_cli.flags.client import FlagClient
from flagship_cli.flags.merge import (
    UpdateOverrides,
    build_replacement,
    check_rollout,
    parse_config_json,
    parse_variants_json,
)
from flagship_cli.flags.models import FlagDocument, FlagRecord

logger = logging.getLogger(__name__)


# ── create ───────────────────────────────────────────────────────────────


def build_new_record(
    key: str,
    *,
    enabled: bool = False,
    rollout: int = 100,
    description: str = "",
    config_json: Optional[str] = None,
    expression: Optional[str] = None,
    variants_json: Optional[str] = None,
) -> FlagRecord:
    """Validate ``create`` input and build the record (environment filled in later).

    Raises:
        ValidationError: A value is malformed or out of range.
    """
    if not key:
        raise ValidationError("flag key must not be empty")
    check_rollout(rollout)
    return FlagRecord(
        key=key,
        description=description,
        enabled=enabled,
        rollout=rollout,
        config=parse_config_json(config_json) if config_json else None,
        expression=expression or None,
        variants=parse_variants_json(variants_json) if variants_json else None,
    )


def create_flag(client: FlagClient, record: FlagRecord, env: str) -> FlagRecord:
    target = record.model_copy(update={"env": env})
    client.upsert(target)
    return target


# ── read ─────────────────────────────────────────────────────────────────


def list_flags(client: FlagClient, env: str, *, enabled_only: bool = False) -> List[FlagRecord]:
    flags = client.list_by_environment(env)
    if enabled_only:
        flags = [f for f in flags if f.enabled]
    return flags


# ── update ───────────────────────────────────────────────────────────────


def update_flag(
    client: FlagClient, key: str, env: str, overrides: UpdateOverrides
) -> FlagRecord:
    """Fetch ``(key, env)``, apply *overrides* and upsert the full record.

    Nothing is written if the fetch fails.  There is no protection against a
    concurrent writer changing the record between fetch and upsert.

    Raises:
        ValidationError: *overrides* names no field.
        FlagNotFoundError, RemoteError, TransportError: From the client.
    """
    if overrides.is_empty:
        raise ValidationError(
            "nothing to update; pass at least one of --enabled, --rollout, "
            "--description, --config, --expression, --variants"
        )
    existing = client.get(key, env)
    replacement = build_replacement(existing, overrides, env)
    client.upsert(replacement)
    return replacement


# ── export / import ──────────────────────────────────────────────────────


def export_flags(client: FlagClient, env: str) -> FlagDocument:
    return FlagDocument(flags=client.list_by_environment(env))


def dump_document(doc: FlagDocument, fmt: str) -> str:
    """Serialise *doc* as JSON (``fmt == "json"``) or YAML (anything else)."""
    data = {"flags": [f.to_export_dict() for f in doc.flags]}
    if fmt == "json":
        return json.dumps(data, indent=2) + "\n"
    return yaml.safe_dump(data, default_flow_style=False, sort_keys=False, indent=2)


def load_document(path: str) -> FlagDocument:
    """Read a YAML or JSON ``{flags: [...]}`` file.

    Raises:
        ValidationError: The file is unreadable, malformed or holds no flags.
    """
    try:
        with open(path, "r", encoding="utf-8") as fh:
            raw_data = yaml.safe_load(fh)
    except OSError as exc:
        raise ValidationError(f"failed to read file: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ValidationError(f"failed to parse file: {exc}") from exc

    if not isinstance(raw_data, dict):
        raise ValidationError("failed to parse file: expected a mapping with a 'flags' list")
    if not raw_data.get("flags"):
        raise ValidationError("no flags found in file")

    try:
        doc = FlagDocument.model_validate(raw_data)
    except SchemaValidationError as exc:
        details = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
        )
        raise ValidationError(f"invalid flag in file: {details}") from exc
    logger.debug("Loaded %d flag(s) from %s", len(doc.flags), path)
    return doc


@dataclass
class ImportResult:
    succeeded: int = 0
    failed: int = 0
    failures: List[Tuple[str, FlagshipError]] = field(default_factory=list)


def import_flags(
    client: FlagClient,
    doc: FlagDocument,
    env: str,
    *,
    continue_on_error: bool = False,
    on_failure: Optional[Callable[[str, FlagshipError], None]] = None,
    on_start: Optional[Callable[[str], None]] = None,
) -> ImportResult:
    """Upsert every record of *doc* into *env*.

    By default the first failure stops the batch and raises
    :class:`ImportFailedError`.  With *continue_on_error* every record is
    attempted; the returned result carries the counts and the caller decides
    how to report a partial failure.
    """
    result = ImportResult()
    for flag in doc.flags:
        if on_start is not None:
            on_start(flag.key)
        try:
            client.upsert(flag.model_copy(update={"env": env}))
        except FlagshipError as exc:
            result.failed += 1
            result.failures.append((flag.key, exc))
            logger.warning("Failed to import flag '%s': %s", flag.key, exc)
            if on_failure is not None:
                on_failure(flag.key, exc)
            if not continue_on_error:
                raise ImportFailedError(result.succeeded, result.failed, aborted=True) from exc
        else:
            result.succeeded += 1
    logger.info(
        "Import into env '%s': %d succeeded, %d failed", env, result.succeeded, result.failed
    )
    return result
