from __future__ import annotations

import asyncio
from typing import Any

import pytest

from jobrotator import main as cli
from jobrotator.core.config import Settings
from jobrotator.jobs.batch import BatchStatistics


def test_parse_args_defaults() -> None:
    args = cli.parse_args([])

    assert args.count is None
    assert args.template_only is False
    assert args.dry_run is False


def test_parse_args_rejects_non_positive_count() -> None:
    with pytest.raises(SystemExit):
        cli.parse_args(["0"])


def test_run_generation_requires_database_url() -> None:
    settings = Settings(database_url=None, openai_api_key="sk-test", _env_file=None)

    with pytest.raises(cli.ConfigurationError):
        asyncio.run(cli.run_generation(5, settings=settings))


def test_run_generation_requires_provider_unless_template_only() -> None:
    settings = Settings(database_url="postgresql://localhost/jobs", _env_file=None)

    with pytest.raises(cli.ConfigurationError):
        asyncio.run(cli.run_generation(5, settings=settings))


def _patch_runtime(monkeypatch: pytest.MonkeyPatch, settings: Settings, run: Any) -> None:
    monkeypatch.setattr(cli, "get_settings", lambda: settings)
    monkeypatch.setattr(cli, "configure_generator_logging", lambda level: None)
    monkeypatch.setattr(cli, "run_generation", run)


def test_main_returns_zero_and_uses_default_batch_size(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: dict[str, Any] = {}
    settings = Settings(default_batch_size=7, start_delay_seconds=0, otel_enabled=False, _env_file=None)

    async def fake_run_generation(requested_count: int, **kwargs: Any) -> BatchStatistics:
        captured["count"] = requested_count
        captured.update(kwargs)
        return BatchStatistics.empty(["intern"])

    _patch_runtime(monkeypatch, settings, fake_run_generation)

    assert cli.main(["--template-only"]) == 0
    assert captured["count"] == 7
    assert captured["template_only"] is True
    assert captured["dry_run"] is False
    assert captured["cancel_event"] is not None


def test_main_returns_one_on_fatal_error(monkeypatch: pytest.MonkeyPatch) -> None:
    settings = Settings(start_delay_seconds=0, otel_enabled=False, _env_file=None)

    async def failing_run_generation(requested_count: int, **kwargs: Any) -> BatchStatistics:
        raise RuntimeError("database unreachable")

    _patch_runtime(monkeypatch, settings, failing_run_generation)

    assert cli.main(["3"]) == 1


def test_stop_requested_during_start_delay_skips_generation(monkeypatch: pytest.MonkeyPatch) -> None:
    settings = Settings(start_delay_seconds=30, otel_enabled=False, _env_file=None)
    calls: list[int] = []

    async def fake_run_generation(requested_count: int, **kwargs: Any) -> BatchStatistics:
        calls.append(requested_count)
        return BatchStatistics.empty(["intern"])

    def stop_immediately(cancel_event: asyncio.Event) -> None:
        cancel_event.set()

    _patch_runtime(monkeypatch, settings, fake_run_generation)
    monkeypatch.setattr(cli, "_install_cancel_handlers", stop_immediately)

    assert cli.main(["5"]) == 0
    assert calls == []


def test_provider_configured_requires_complete_credentials() -> None:
    assert not Settings(_env_file=None).provider_configured
    assert Settings(openai_api_key="sk-test", _env_file=None).provider_configured
    assert not Settings(azure_openai_endpoint="https://example.openai.azure.com", _env_file=None).provider_configured
    assert Settings(
        azure_openai_endpoint="https://example.openai.azure.com",
        azure_openai_api_key="azure-key",
        azure_openai_deployment="jobs-gpt",
        _env_file=None,
    ).provider_configured
