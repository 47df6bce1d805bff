from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


class CursorStateError(Exception):
    """Raised when the rotation state file cannot be read or written."""


@dataclass(frozen=True, slots=True)
class RotationCursor:
    current_index: int = 0
    last_run: datetime | None = None
    total_generated: int = 0

    def normalized(self, universe_size: int) -> RotationCursor:
        if universe_size < 1:
            raise ValueError("universe_size must be at least 1")
        if 0 <= self.current_index < universe_size:
            return self
        return replace(self, current_index=self.current_index % universe_size)

    def wrapped(self) -> RotationCursor:
        return replace(self, current_index=0)

    def to_json(self) -> dict[str, Any]:
        return {
            "currentIndex": self.current_index,
            "lastRun": _format_timestamp(self.last_run),
            "totalGenerated": self.total_generated,
        }

    @classmethod
    def from_json(cls, payload: Any) -> RotationCursor:
        if not isinstance(payload, dict):
            raise ValueError("rotation state must be a JSON object")
        current_index = _non_negative_int(payload.get("currentIndex", 0), field="currentIndex")
        total_generated = _non_negative_int(payload.get("totalGenerated", 0), field="totalGenerated")
        return cls(
            current_index=current_index,
            last_run=_parse_timestamp(payload.get("lastRun")),
            total_generated=total_generated,
        )


def advance(
    cursor: RotationCursor,
    universe_size: int,
    success_count: int,
    *,
    now: datetime | None = None,
) -> RotationCursor:
    if universe_size < 1:
        raise ValueError("universe_size must be at least 1")
    if success_count < 0:
        raise ValueError("success_count must not be negative")
    return RotationCursor(
        current_index=(cursor.current_index + success_count) % universe_size,
        last_run=now or datetime.now(timezone.utc),
        total_generated=cursor.total_generated + success_count,
    )


class CursorStore:
    """JSON file holding the rotation cursor between scheduled runs."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    def load(self) -> RotationCursor:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return RotationCursor()
        except OSError as exc:
            raise CursorStateError(f"cannot read rotation state {self.path}: {exc}") from exc

        try:
            return RotationCursor.from_json(json.loads(raw))
        except (json.JSONDecodeError, ValueError) as exc:
            logger.warning("rotation state %s is malformed (%s); starting from index 0", self.path, exc)
            return RotationCursor()

    def save(self, cursor: RotationCursor) -> None:
        payload = json.dumps(cursor.to_json(), indent=2)
        directory = self.path.parent
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", suffix=".tmp", dir=directory)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    handle.write(payload)
                    handle.flush()
                    os.fsync(handle.fileno())
                os.replace(tmp_name, self.path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise CursorStateError(f"cannot write rotation state {self.path}: {exc}") from exc


def _non_negative_int(value: Any, *, field: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{field} must be an integer")
    if value < 0:
        raise ValueError(f"{field} must not be negative")
    return value


def _format_timestamp(value: datetime | None) -> str | None:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def _parse_timestamp(value: Any) -> datetime | None:
    if value is None:
        return None
    if not isinstance(value, str) or not value.strip():
        raise ValueError("lastRun must be an ISO-8601 string or null")
    dt = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)
