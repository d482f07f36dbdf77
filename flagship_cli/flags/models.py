"""Data models for flag records exchanged with the flagship API.

Field names follow the API's JSON (``targetingRules``, ``updatedAt``);
Python code uses the snake_case attribute names.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Variant(BaseModel):
    """One arm of an A/B test."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    weight: int = Field(..., ge=0, le=100, description="Percentage weight.")
    config: Optional[Dict[str, Any]] = None


class FlagRecord(BaseModel):
    """A feature flag identified by ``(key, env)``.

    Records are immutable; the merge engine derives new ones with
    :meth:`model_copy`.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    key: str = Field(..., min_length=1)
    description: str = ""
    enabled: bool = False
    rollout: int = Field(default=0, ge=0, le=100, description="Percentage 0-100.")
    expression: Optional[str] = None
    config: Optional[Dict[str, Any]] = None
    variants: Optional[List[Variant]] = None
    targeting_rules: Optional[List[Dict[str, Any]]] = Field(
        default=None, alias="targetingRules"
    )
    env: str = ""
    updated_at: Optional[datetime] = Field(default=None, alias="updatedAt")

    def to_upsert_payload(self) -> Dict[str, Any]:
        """Build the ``POST /v1/flags`` request body."""
        payload: Dict[str, Any] = {
            "key": self.key,
            "description": self.description,
            "enabled": self.enabled,
            "rollout": self.rollout,
            "env": self.env,
            "targetingRules": self.targeting_rules or [],
        }
        if self.expression is not None:
            payload["expression"] = self.expression
        if self.config is not None:
            payload["config"] = self.config
        if self.variants is not None:
            payload["variants"] = [v.model_dump(exclude_none=True) for v in self.variants]
        return payload

    def to_export_dict(self) -> Dict[str, Any]:
        """JSON-safe dict for export and structured output."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class FlagDocument(BaseModel):
    """Container used by ``flagship export`` and ``flagship import``."""

    flags: List[FlagRecord] = Field(default_factory=list)
