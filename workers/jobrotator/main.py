from __future__ import annotations

import argparse
import asyncio
import logging
import math
import signal
import sys
from collections.abc import Sequence

from jobrotator.core.config import Settings, get_settings
from jobrotator.core.telemetry import (
    configure_generator_logging,
    setup_generator_telemetry,
    shutdown_generator_telemetry,
)
from jobrotator.jobs.batch import BatchStatistics
from jobrotator.jobs.orchestrator import GenerationOrchestrator
from jobrotator.jobs.rate_limiter import RateLimiter
from jobrotator.jobs.rotation import CursorStore
from jobrotator.jobs.seniority import SeniorityAllocator
from jobrotator.jobs.synthesizer import AttemptSynthesizer
from jobrotator.services.generation_client import build_generation_client
from jobrotator.services.repository import JobSink, get_repository
from jobrotator.services.store import InMemoryRepository

logger = logging.getLogger(__name__)

COST_PER_JOB_USD = 0.003
JOBS_PER_MINUTE_ESTIMATE = 20


class ConfigurationError(Exception):
    """Raised when required settings are missing before a run starts."""


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate job postings for the next slice of the entity rotation.")
    parser.add_argument(
        "count",
        nargs="?",
        type=int,
        default=None,
        help="Number of postings to generate (defaults to JR_DEFAULT_BATCH_SIZE)",
    )
    parser.add_argument(
        "--template-only",
        action="store_true",
        help="Skip the generation provider and use template postings only",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Keep generated postings in memory and leave the rotation state untouched",
    )
    args = parser.parse_args(argv)
    if args.count is not None and args.count < 1:
        parser.error("count must be a positive integer")
    return args


async def run_generation(
    requested_count: int,
    *,
    settings: Settings,
    template_only: bool = False,
    dry_run: bool = False,
    cancel_event: asyncio.Event | None = None,
) -> BatchStatistics:
    if not settings.database_url:
        raise ConfigurationError("JR_DATABASE_URL is required")
    if not template_only and not settings.provider_configured:
        raise ConfigurationError(
            "no generation provider configured; set JR_OPENAI_API_KEY or the JR_AZURE_OPENAI_* settings, "
            "or pass --template-only"
        )
    client = None if template_only else build_generation_client(settings)

    repository = get_repository()
    sink: JobSink = InMemoryRepository() if dry_run else repository
    allocator = SeniorityAllocator()
    orchestrator = GenerationOrchestrator(
        cursor_store=CursorStore(settings.state_file),
        entity_source=repository,
        sink=sink,
        synthesizer=AttemptSynthesizer(client, RateLimiter(settings.requests_per_second)),
        allocator=allocator,
        universe_size=settings.universe_size,
        chunk_size=settings.chunk_size,
        concurrency_limit=settings.concurrency_limit,
        cancel_event=cancel_event,
        persist_cursor=not dry_run,
    )
    try:
        return await orchestrator.run_once(requested_count)
    finally:
        if client is not None:
            await client.close()
        await repository.close()
        get_repository.cache_clear()
        logger.info("database connection closed")


async def _main(args: argparse.Namespace, settings: Settings) -> BatchStatistics:
    count = args.count or settings.default_batch_size
    logger.info("generating %s jobs with rotation through %s entities", count, settings.universe_size)
    logger.info(
        "estimated cost: $%.2f USD, estimated time: %s minutes",
        count * COST_PER_JOB_USD,
        math.ceil(count / JOBS_PER_MINUTE_ESTIMATE),
    )
    cancel_event = asyncio.Event()
    _install_cancel_handlers(cancel_event)
    if settings.start_delay_seconds > 0:
        logger.info("starting in %.0f seconds", settings.start_delay_seconds)
        try:
            await asyncio.wait_for(cancel_event.wait(), timeout=settings.start_delay_seconds)
        except asyncio.TimeoutError:
            pass
    if cancel_event.is_set():
        logger.warning("stop requested before generation started; nothing generated")
        return BatchStatistics.empty(SeniorityAllocator().names)

    return await run_generation(
        count,
        settings=settings,
        template_only=args.template_only,
        dry_run=args.dry_run,
        cancel_event=cancel_event,
    )


def _install_cancel_handlers(cancel_event: asyncio.Event) -> None:
    loop = asyncio.get_running_loop()

    def request_cancel() -> None:
        if not cancel_event.is_set():
            logger.warning("stop requested; finishing the current chunk before exiting")
        cancel_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, request_cancel)
        except (NotImplementedError, RuntimeError):
            logger.debug("signal handlers unavailable for %s", sig)


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    settings = get_settings()
    configure_generator_logging(settings.log_level.upper())
    telemetry = setup_generator_telemetry(settings)
    try:
        statistics = asyncio.run(_main(args, settings))
    except Exception as exc:
        logger.exception("generation failed: %s", exc)
        return 1
    finally:
        shutdown_generator_telemetry(telemetry)

    logger.info("generation completed: %s", statistics.as_dict())
    return 0


if __name__ == "__main__":
    sys.exit(main())
