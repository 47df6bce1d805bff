from __future__ import annotations

import asyncio
import logging
import math
import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from opentelemetry import trace

from jobrotator.jobs.seniority import SeniorityAllocator
from jobrotator.jobs.synthesizer import AttemptSynthesizer, GenerationAttempt
from jobrotator.schemas.entities import Entity
from jobrotator.schemas.jobs import JobRecord
from jobrotator.services.repository import JobSink, RepositoryError, SinkUnavailableError

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


@dataclass(slots=True)
class BatchStatistics:
    total: int = 0
    processed: int = 0
    succeeded: int = 0
    failed: int = 0
    provider_successes: int = 0
    fallback_uses: int = 0
    by_seniority: dict[str, int] = field(default_factory=dict)
    inserted: int = 0
    duplicates: int = 0
    sink_failures: int = 0
    cancelled: bool = False
    started_at: float = field(default_factory=time.monotonic)

    @classmethod
    def empty(cls, seniority_names: Sequence[str] = ()) -> BatchStatistics:
        return cls(by_seniority={name: 0 for name in seniority_names})

    @property
    def elapsed_seconds(self) -> float:
        return max(0.0, time.monotonic() - self.started_at)

    @property
    def rate_per_minute(self) -> float:
        minutes = self.elapsed_seconds / 60.0
        if minutes <= 0:
            return 0.0
        return self.processed / minutes

    def record(self, attempt: GenerationAttempt) -> None:
        self.processed += 1
        if not attempt.succeeded:
            self.failed += 1
            return
        self.succeeded += 1
        name = attempt.category.name
        self.by_seniority[name] = self.by_seniority.get(name, 0) + 1
        if attempt.used_fallback:
            self.fallback_uses += 1
        else:
            self.provider_successes += 1

    def as_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "processed": self.processed,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "provider_successes": self.provider_successes,
            "fallback_uses": self.fallback_uses,
            "by_seniority": dict(self.by_seniority),
            "inserted": self.inserted,
            "duplicates": self.duplicates,
            "sink_failures": self.sink_failures,
            "cancelled": self.cancelled,
            "elapsed_seconds": round(self.elapsed_seconds, 3),
        }


@dataclass(slots=True)
class BatchResult:
    statistics: BatchStatistics
    records: list[JobRecord]


class BatchRunner:
    """Drives one slice of the rotation through synthesis and into the sink.

    Chunks run strictly one after another. Inside a chunk at most
    ``concurrency_limit`` attempts are in flight, and the chunk's successful
    postings are written in a single ``insert_jobs`` call before the next
    chunk starts.
    """

    def __init__(
        self,
        synthesizer: AttemptSynthesizer,
        allocator: SeniorityAllocator,
        sink: JobSink,
        *,
        chunk_size: int = 50,
        concurrency_limit: int = 10,
        cancel_event: asyncio.Event | None = None,
    ) -> None:
        if chunk_size < 1:
            raise ValueError("chunk_size must be at least 1")
        if concurrency_limit < 1:
            raise ValueError("concurrency_limit must be at least 1")
        self.synthesizer = synthesizer
        self.allocator = allocator
        self.sink = sink
        self.chunk_size = chunk_size
        self.concurrency_limit = concurrency_limit
        self.cancel_event = cancel_event

    async def run(self, entities: Sequence[Entity], *, start_position: int) -> BatchResult:
        statistics = BatchStatistics.empty(self.allocator.names)
        statistics.total = len(entities)
        records: list[JobRecord] = []
        total_chunks = math.ceil(len(entities) / self.chunk_size)

        for chunk_number, offset in enumerate(range(0, len(entities), self.chunk_size), start=1):
            if self.cancel_event is not None and self.cancel_event.is_set():
                logger.warning(
                    "cancellation requested; stopping before chunk %s/%s", chunk_number, total_chunks
                )
                statistics.cancelled = True
                break

            chunk = entities[offset : offset + self.chunk_size]
            logger.info(
                "chunk %s/%s (entities %s-%s)",
                chunk_number,
                total_chunks,
                offset + 1,
                offset + len(chunk),
            )
            with tracer.start_as_current_span("generation.chunk") as span:
                span.set_attribute("chunk.number", chunk_number)
                span.set_attribute("chunk.size", len(chunk))
                attempts = await self._run_chunk(chunk, start_position + offset)
                chunk_records = self._collect(attempts, statistics)
                await self._write(chunk_records, statistics)
            records.extend(chunk_records)

            logger.info(
                "chunk %s complete: success=%s elapsed=%.1fm rate=%.1f jobs/min",
                chunk_number,
                len(chunk_records),
                statistics.elapsed_seconds / 60.0,
                statistics.rate_per_minute,
            )

        return BatchResult(statistics=statistics, records=records)

    async def _run_chunk(self, chunk: Sequence[Entity], chunk_position: int) -> list[GenerationAttempt]:
        semaphore = asyncio.Semaphore(self.concurrency_limit)

        async def attempt(entity: Entity, position: int) -> GenerationAttempt:
            category = self.allocator.category_for(position)
            async with semaphore:
                try:
                    return await self.synthesizer.synthesize(entity, category, position)
                except Exception as exc:
                    logger.exception("synthesis failed unexpectedly for %s", entity.display_name)
                    return GenerationAttempt(
                        entity=entity,
                        position=position,
                        category=category,
                        outcome="failure",
                        error=str(exc) or exc.__class__.__name__,
                    )

        return await asyncio.gather(
            *(attempt(entity, chunk_position + index) for index, entity in enumerate(chunk))
        )

    @staticmethod
    def _collect(attempts: Sequence[GenerationAttempt], statistics: BatchStatistics) -> list[JobRecord]:
        chunk_records: list[JobRecord] = []
        for attempt in attempts:
            statistics.record(attempt)
            if attempt.succeeded and attempt.record is not None:
                chunk_records.append(attempt.record)
            else:
                logger.warning("attempt failed for %s: %s", attempt.entity.display_name or "<unnamed>", attempt.error)
        return chunk_records

    async def _write(self, chunk_records: list[JobRecord], statistics: BatchStatistics) -> None:
        if not chunk_records:
            return
        try:
            outcome = await self.sink.insert_jobs(chunk_records)
        except SinkUnavailableError:
            raise
        except RepositoryError as exc:
            statistics.sink_failures += len(chunk_records)
            logger.warning("some postings may not have been stored: %s", exc)
            return

        statistics.inserted += outcome.inserted
        statistics.duplicates += outcome.duplicates
        statistics.sink_failures += outcome.failed
        if outcome.duplicates or outcome.failed:
            logger.warning(
                "sink stored %s of %s postings (duplicates=%s failed=%s)",
                outcome.inserted,
                len(chunk_records),
                outcome.duplicates,
                outcome.failed,
            )
