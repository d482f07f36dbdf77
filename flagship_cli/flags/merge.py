"""Partial updates on top of a full-replace API.

The flagship API only offers an upsert, so ``flagship update`` fetches the
current record, overlays the fields the operator asked to change and submits
the full result.  Every overridable field is tri-state: :data:`UNSET`
("not provided") is distinct from any explicit value, including ``False``,
``0`` and ``""``.  A field is never reset just because the operator did not
mention it.
"""

from __future__ import annotations

import enum
import json
import logging
from dataclasses import dataclass, fields
from typing import Any, Dict, List, Optional, Union

from pydantic import ValidationError as SchemaValidationError

from flagship_cli.errors import ValidationError
from flagship_cli.flags.models import FlagRecord, Variant

logger = logging.getLogger(__name__)


class _Unset(enum.Enum):
    """Marker type for an override the operator did not provide."""

    UNSET = "UNSET"

    def __repr__(self) -> str:
        return "UNSET"


UNSET = _Unset.UNSET


# ── Value parsing (shared with ``create``) ───────────────────────────────


def check_rollout(value: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"rollout must be an integer, got {value!r}")
    if not 0 <= value <= 100:
        raise ValidationError(f"rollout must be between 0 and 100, got {value}")
    return value


def parse_config_json(raw: str) -> Optional[Dict[str, Any]]:
    """Parse a ``--config`` value.  ``null`` clears the config."""
    try:
        value = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValidationError(f"invalid config JSON: {exc}") from exc
    if value is not None and not isinstance(value, dict):
        raise ValidationError(
            f"invalid config JSON: expected an object, got {type(value).__name__}"
        )
    return value


def parse_variants_json(raw: str) -> Optional[List[Variant]]:
    """Parse a ``--variants`` value (a JSON list of variants).  ``null`` clears them."""
    try:
        value = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValidationError(f"invalid variants JSON: {exc}") from exc
    if value is None:
        return None
    if not isinstance(value, list):
        raise ValidationError(
            f"invalid variants JSON: expected a list, got {type(value).__name__}"
        )
    try:
        variants = [Variant.model_validate(item) for item in value]
    except SchemaValidationError as exc:
        raise ValidationError(f"invalid variant: {exc.errors()[0]['msg']}") from exc
    return check_variants(variants)


def check_variants(variants: List[Variant]) -> List[Variant]:
    """Names must be unique and weights must add up to 100."""
    names = [v.name for v in variants]
    if len(set(names)) != len(names):
        raise ValidationError("variant names must be unique")
    total = sum(v.weight for v in variants)
    if variants and total != 100:
        raise ValidationError(f"variant weights must sum to 100, got {total}")
    return variants


# ── Overrides ────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class UpdateOverrides:
    """Fields an operator asked to change; :data:`UNSET` means "leave as is"."""

    description: Union[str, _Unset] = UNSET
    enabled: Union[bool, _Unset] = UNSET
    rollout: Union[int, _Unset] = UNSET
    config: Union[Optional[Dict[str, Any]], _Unset] = UNSET
    variants: Union[Optional[List[Variant]], _Unset] = UNSET
    expression: Union[Optional[str], _Unset] = UNSET

    def __post_init__(self) -> None:
        if self.enabled is not UNSET and not isinstance(self.enabled, bool):
            raise ValidationError(f"enabled must be true or false, got {self.enabled!r}")
        if self.rollout is not UNSET:
            check_rollout(self.rollout)
        if self.description is not UNSET and not isinstance(self.description, str):
            raise ValidationError(f"description must be a string, got {self.description!r}")
        if self.expression not in (UNSET, None) and not isinstance(self.expression, str):
            raise ValidationError(f"expression must be a string, got {self.expression!r}")
        if self.config not in (UNSET, None) and not isinstance(self.config, dict):
            raise ValidationError(
                f"config must be an object, got {type(self.config).__name__}"
            )
        if self.variants not in (UNSET, None):
            if not isinstance(self.variants, list) or not all(
                isinstance(v, Variant) for v in self.variants
            ):
                raise ValidationError("variants must be a list of Variant")
            check_variants(self.variants)

    def provided(self) -> Dict[str, Any]:
        """Return only the explicitly provided fields."""
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not UNSET
        }

    @property
    def is_empty(self) -> bool:
        return not self.provided()


def parse_overrides(
    *,
    description: Union[str, _Unset] = UNSET,
    enabled: Union[bool, _Unset] = UNSET,
    rollout: Union[int, _Unset] = UNSET,
    config_json: Union[str, _Unset] = UNSET,
    variants_json: Union[str, _Unset] = UNSET,
    expression: Union[str, _Unset] = UNSET,
) -> UpdateOverrides:
    """Validate raw operator input and build :class:`UpdateOverrides`.

    Runs entirely locally so a doomed update never reaches the network.

    Raises:
        ValidationError: A value is malformed or out of range.
    """
    config: Union[Optional[Dict[str, Any]], _Unset] = UNSET
    if config_json is not UNSET:
        config = parse_config_json(config_json)

    variants: Union[Optional[List[Variant]], _Unset] = UNSET
    if variants_json is not UNSET:
        variants = parse_variants_json(variants_json)

    # An explicit empty expression removes targeting by expression
    parsed_expression: Union[Optional[str], _Unset] = expression
    if expression == "":
        parsed_expression = None

    return UpdateOverrides(
        description=description,
        enabled=enabled,
        rollout=rollout,
        config=config,
        variants=variants,
        expression=parsed_expression,
    )


# ── Merge ────────────────────────────────────────────────────────────────


def build_replacement(
    existing: FlagRecord, overrides: UpdateOverrides, target_env: str
) -> FlagRecord:
    """Return the full record to upsert: *existing* with *overrides* applied.

    Pure function.  Fields not present in ``overrides.provided()`` keep the
    existing value, including fields the CLI cannot override such as
    ``targeting_rules``.
    """
    update = overrides.provided()
    if update:
        logger.debug("Overriding %s on flag '%s'", ", ".join(sorted(update)), existing.key)
    update["env"] = target_env
    return existing.model_copy(update=update)
