from __future__ import annotations

import json
import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass
from functools import lru_cache
from typing import Protocol

import asyncpg  # type: ignore[import-untyped]
from asyncpg import exceptions as pg_exc

from jobrotator.core.config import get_settings
from jobrotator.schemas.entities import Entity
from jobrotator.schemas.jobs import JobRecord

logger = logging.getLogger(__name__)

TABLE_NAME_RE = re.compile(r"^[a-z_][a-z0-9_]*(?:\.[a-z_][a-z0-9_]*)?$")

JOB_COLUMNS: tuple[tuple[str, str], ...] = (
    ("title", "text"),
    ("slug", "text"),
    ("description", "text"),
    ("company_name", "text"),
    ("type", "text"),
    ("remote", "text"),
    ("salary", "integer"),
    ("country", "text"),
    ("state", "text"),
    ("city", "text"),
    ("country_id", "text"),
    ("state_id", "text"),
    ("city_id", "text"),
    ("postal_code", "text"),
    ("street", "text"),
    ("contact_email", "text"),
    ("apply_link", "text"),
    ("source", "text"),
    ("seniority", "text"),
    ("plan", "text"),
    ("block_ai_applications", "boolean"),
)


class RepositoryError(Exception):
    """Base repository error."""


class RepositoryUnavailableError(RepositoryError):
    """Raised when the database is unavailable or not configured."""


class EntitySourceUnavailableError(RepositoryUnavailableError):
    """Raised when entities cannot be read at all."""


class SinkUnavailableError(RepositoryUnavailableError):
    """Raised when postings cannot be written at all."""


@dataclass(slots=True)
class InsertOutcome:
    inserted: int = 0
    duplicates: int = 0
    failed: int = 0


class EntitySource(Protocol):
    async def fetch_entities(self, skip: int, limit: int) -> list[Entity]: ...


class JobSink(Protocol):
    async def insert_jobs(self, records: Sequence[JobRecord]) -> InsertOutcome: ...


class PostgresRepository:
    def __init__(
        self,
        database_url: str | None,
        min_pool_size: int,
        max_pool_size: int,
        entity_table: str = "eu_interest_representatives",
        jobs_table: str = "jobs",
    ) -> None:
        self.database_url = database_url
        self.min_pool_size = min_pool_size
        self.max_pool_size = max(min_pool_size, max_pool_size)
        self.entity_table = _checked_table_name(entity_table)
        self.jobs_table = _checked_table_name(jobs_table)
        self._pool: asyncpg.Pool | None = None

    async def close(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None

    async def fetch_entities(self, skip: int, limit: int) -> list[Entity]:
        try:
            pool = await self._get_pool()
            rows = await pool.fetch(
                f"""
                select
                  id::text as id,
                  name,
                  original_name,
                  description,
                  goals,
                  interests,
                  registration_category,
                  web_site_url
                from {self.entity_table}
                where coalesce(nullif(btrim(name), ''), nullif(btrim(original_name), '')) is not null
                  and nullif(btrim(web_site_url), '') is not null
                order by id
                offset $1
                limit $2
                """,
                max(0, skip),
                max(0, limit),
            )
        except RepositoryUnavailableError as exc:
            raise EntitySourceUnavailableError(str(exc)) from exc
        except (OSError, pg_exc.PostgresError, pg_exc.InterfaceError) as exc:
            raise EntitySourceUnavailableError(f"failed to read entities from {self.entity_table}") from exc
        return [Entity.from_row(dict(row)) for row in rows]

    async def insert_jobs(self, records: Sequence[JobRecord]) -> InsertOutcome:
        if not records:
            return InsertOutcome()
        try:
            pool = await self._get_pool()
        except RepositoryUnavailableError as exc:
            raise SinkUnavailableError(str(exc)) from exc

        rows = [record.to_row() for record in records]
        try:
            inserted = await self._insert_rows(pool, rows)
            return InsertOutcome(inserted=inserted, duplicates=len(rows) - inserted)
        except (OSError, pg_exc.InterfaceError, pg_exc.PostgresConnectionError) as exc:
            raise SinkUnavailableError(f"failed to write postings to {self.jobs_table}") from exc
        except pg_exc.PostgresError as exc:
            logger.warning(
                "bulk insert into %s rejected (%s); retrying %s postings one by one",
                self.jobs_table,
                exc.__class__.__name__,
                len(rows),
            )

        outcome = InsertOutcome()
        for row in rows:
            try:
                if await self._insert_rows(pool, [row]):
                    outcome.inserted += 1
                else:
                    outcome.duplicates += 1
            except (OSError, pg_exc.InterfaceError, pg_exc.PostgresConnectionError) as exc:
                raise SinkUnavailableError(f"failed to write postings to {self.jobs_table}") from exc
            except pg_exc.PostgresError as exc:
                outcome.failed += 1
                logger.warning("posting slug=%s rejected: %s", row.get("slug"), exc)
        return outcome

    async def _insert_rows(self, pool: asyncpg.Pool, rows: list[dict[str, object]]) -> int:
        column_list = ", ".join(name for name, _ in JOB_COLUMNS)
        record_shape = ", ".join(f"{name} {sql_type}" for name, sql_type in JOB_COLUMNS)
        inserted = await pool.fetch(
            f"""
            insert into {self.jobs_table} ({column_list})
            select {column_list}
            from jsonb_to_recordset($1::jsonb) as r({record_shape})
            on conflict (slug) do nothing
            returning slug
            """,
            json.dumps(rows),
        )
        return len(inserted)

    async def _get_pool(self) -> asyncpg.Pool:
        if not self.database_url:
            raise RepositoryUnavailableError("JR_DATABASE_URL is required")

        if self._pool is not None:
            return self._pool

        try:
            self._pool = await asyncpg.create_pool(
                dsn=self.database_url,
                min_size=self.min_pool_size,
                max_size=self.max_pool_size,
                command_timeout=30,
            )
            return self._pool
        except Exception as exc:  # pragma: no cover - depends on environment
            raise RepositoryUnavailableError("database unavailable") from exc


def _checked_table_name(value: str) -> str:
    candidate = value.strip().lower()
    if not TABLE_NAME_RE.match(candidate):
        raise ValueError(f"invalid table name: {value!r}")
    return candidate


@lru_cache
def get_repository() -> PostgresRepository:
    settings = get_settings()
    return PostgresRepository(
        database_url=settings.database_url,
        min_pool_size=settings.database_pool_min_size,
        max_pool_size=settings.database_pool_max_size,
        entity_table=settings.entity_table,
        jobs_table=settings.jobs_table,
    )
