from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime, timezone

from opentelemetry import trace

from jobrotator.jobs.batch import BatchRunner, BatchStatistics
from jobrotator.jobs.rotation import CursorStore, RotationCursor, advance
from jobrotator.jobs.seniority import SeniorityAllocator
from jobrotator.jobs.synthesizer import AttemptSynthesizer
from jobrotator.services.repository import EntitySource, JobSink

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class GenerationOrchestrator:
    """Single-shot driver: one call generates one requested batch.

    The cursor is written once, after the batch; if reading entities or
    writing postings fails outright the error propagates and the cursor on
    disk keeps its value from before the run.
    """

    def __init__(
        self,
        *,
        cursor_store: CursorStore,
        entity_source: EntitySource,
        sink: JobSink,
        synthesizer: AttemptSynthesizer,
        allocator: SeniorityAllocator,
        universe_size: int,
        chunk_size: int = 50,
        concurrency_limit: int = 10,
        cancel_event: asyncio.Event | None = None,
        persist_cursor: bool = True,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        if universe_size < 1:
            raise ValueError("universe_size must be at least 1")
        self.cursor_store = cursor_store
        self.entity_source = entity_source
        self.allocator = allocator
        self.universe_size = universe_size
        self.persist_cursor = persist_cursor
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self.runner = BatchRunner(
            synthesizer,
            allocator,
            sink,
            chunk_size=chunk_size,
            concurrency_limit=concurrency_limit,
            cancel_event=cancel_event,
        )
        self.last_cursor: RotationCursor | None = None

    async def run_once(self, requested_count: int) -> BatchStatistics:
        if requested_count < 1:
            raise ValueError("requested_count must be at least 1")

        with tracer.start_as_current_span("generation.run_once") as span:
            span.set_attribute("generation.requested", requested_count)
            cursor = self.cursor_store.load().normalized(self.universe_size)
            logger.info(
                "starting from entity index %s (%s postings generated historically)",
                cursor.current_index,
                cursor.total_generated,
            )

            entities = await self.entity_source.fetch_entities(skip=cursor.current_index, limit=requested_count)
            span.set_attribute("generation.entities", len(entities))
            logger.info("found %s entities to process", len(entities))

            if not entities:
                logger.warning("reached end of entities at index %s; resetting to the beginning", cursor.current_index)
                self._commit(cursor.wrapped())
                return BatchStatistics.empty(self.allocator.names)

            result = await self.runner.run(entities, start_position=cursor.current_index)
            statistics = result.statistics

            next_cursor = advance(cursor, self.universe_size, statistics.succeeded, now=self._clock())
            if len(entities) < requested_count and not statistics.cancelled:
                logger.info(
                    "entity source returned %s of %s requested; next run starts from the beginning",
                    len(entities),
                    requested_count,
                )
                next_cursor = next_cursor.wrapped()
            self._commit(next_cursor)

            span.set_attribute("generation.succeeded", statistics.succeeded)
            span.set_attribute("generation.failed", statistics.failed)
            self._log_summary(statistics, next_cursor)
            return statistics

    def _commit(self, cursor: RotationCursor) -> None:
        self.last_cursor = cursor
        if self.persist_cursor:
            self.cursor_store.save(cursor)
        else:
            logger.info("dry run: rotation state not persisted (next index would be %s)", cursor.current_index)

    @staticmethod
    def _log_summary(statistics: BatchStatistics, cursor: RotationCursor) -> None:
        logger.info("generation complete: succeeded=%s/%s", statistics.succeeded, statistics.processed)
        logger.info(
            "provider=%s template=%s failed=%s total_time=%.1fm",
            statistics.provider_successes,
            statistics.fallback_uses,
            statistics.failed,
            statistics.elapsed_seconds / 60.0,
        )
        for level, count in statistics.by_seniority.items():
            logger.info("seniority %s: %s jobs", level, count)
        logger.info(
            "next run starts from entity index %s; %s postings generated all-time",
            cursor.current_index,
            cursor.total_generated,
        )
