from __future__ import annotations

import pytest

from jobrotator.core.config import Settings
from jobrotator.core.telemetry import (
    generator_resource,
    parse_otlp_headers,
    provider_label,
    resolve_otlp_endpoint,
    setup_generator_telemetry,
    shutdown_generator_telemetry,
)


@pytest.fixture(autouse=True)
def clear_otlp_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("OTEL_EXPORTER_OTLP_ENDPOINT", "OTEL_EXPORTER_OTLP_TRACES_ENDPOINT", "OTEL_EXPORTER_OTLP_HEADERS"):
        monkeypatch.delenv(name, raising=False)


def test_parse_otlp_headers_skips_malformed_entries() -> None:
    assert parse_otlp_headers(None) == {}
    assert parse_otlp_headers("") == {}
    assert parse_otlp_headers("api-key = secret, broken, =orphan,tenant=eu") == {"api-key": "secret", "tenant": "eu"}


def test_resolve_otlp_endpoint_prefers_settings_then_traces_env(monkeypatch: pytest.MonkeyPatch) -> None:
    assert resolve_otlp_endpoint(Settings(_env_file=None)) is None

    monkeypatch.setenv("OTEL_EXPORTER_OTLP_ENDPOINT", "http://collector:4318/")
    assert resolve_otlp_endpoint(Settings(_env_file=None)) == "http://collector:4318/v1/traces"

    monkeypatch.setenv("OTEL_EXPORTER_OTLP_TRACES_ENDPOINT", "http://traces:4318/custom")
    assert resolve_otlp_endpoint(Settings(_env_file=None)) == "http://traces:4318/custom"

    settings = Settings(otel_exporter_otlp_endpoint="http://configured:4318/v1/traces", _env_file=None)
    assert resolve_otlp_endpoint(settings) == "http://configured:4318/v1/traces"


def test_provider_label_reflects_configured_provider() -> None:
    assert provider_label(Settings(_env_file=None)) == "template"
    assert provider_label(Settings(openai_api_key="sk-test", _env_file=None)) == "openai"
    azure = Settings(
        openai_api_key="sk-test",
        azure_openai_endpoint="https://example.openai.azure.com",
        azure_openai_api_key="azure-key",
        azure_openai_deployment="jobs-gpt",
        _env_file=None,
    )
    assert provider_label(azure) == "azure-openai"


def test_generator_resource_describes_the_rotation() -> None:
    settings = Settings(environment="prod", universe_size=500, jobs_table="postings", _env_file=None)

    attributes = generator_resource(settings).attributes

    assert attributes["service.name"] == "jobrotator-generator"
    assert attributes["deployment.environment"] == "prod"
    assert attributes["jobrotator.provider"] == "template"
    assert attributes["jobrotator.jobs_table"] == "postings"
    assert attributes["jobrotator.universe_size"] == 500


def test_disabled_telemetry_is_a_no_op() -> None:
    telemetry = setup_generator_telemetry(Settings(otel_enabled=False, _env_file=None))

    assert telemetry.enabled is False
    assert telemetry.httpx_instrumented is False
    shutdown_generator_telemetry(telemetry)
