from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Entity(BaseModel):
    """Organisation a posting is generated for. Read-only to the generator."""

    model_config = ConfigDict(frozen=True)

    id: str | None = None
    name: str | None = None
    original_name: str | None = None
    description: str | None = None
    goals: str | None = None
    interests: list[str] = Field(default_factory=list)
    registration_category: str | None = None
    web_site_url: str | None = None

    @property
    def display_name(self) -> str:
        return _as_text(self.name) or _as_text(self.original_name) or ""

    @property
    def identifier(self) -> str | None:
        return _as_text(self.id)

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> Entity:
        raw_id = row.get("id")
        return cls(
            id=str(raw_id) if raw_id is not None else None,
            name=_as_text(row.get("name")),
            original_name=_as_text(row.get("original_name")),
            description=_as_text(row.get("description")),
            goals=_as_text(row.get("goals")),
            interests=_coerce_interests(row.get("interests")),
            registration_category=_as_text(row.get("registration_category")),
            web_site_url=_as_text(row.get("web_site_url")),
        )


def has_usable_fields(entity: Entity) -> bool:
    return bool(entity.display_name) and bool(_as_text(entity.web_site_url))


def _as_text(value: Any) -> str | None:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return None


def _coerce_interests(value: Any) -> list[str]:
    if isinstance(value, str):
        raw = value.strip()
        if not raw:
            return []
        if raw.startswith("["):
            try:
                decoded = json.loads(raw)
            except json.JSONDecodeError:
                decoded = None
            if isinstance(decoded, list):
                return _coerce_interests(decoded)
        return [part.strip() for part in raw.split(",") if part.strip()]
    if isinstance(value, (list, tuple)):
        return [item.strip() for item in value if isinstance(item, str) and item.strip()]
    return []
