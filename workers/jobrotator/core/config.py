from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    environment: str = "dev"
    log_level: str = "INFO"
    database_url: str | None = None
    database_pool_min_size: int = 1
    database_pool_max_size: int = 5
    entity_table: str = "eu_interest_representatives"
    jobs_table: str = "jobs"
    state_file: Path = Path("rotation-state.json")
    universe_size: int = 13000
    default_batch_size: int = 2000
    chunk_size: int = 50
    concurrency_limit: int = 10
    requests_per_second: float = 8.0
    start_delay_seconds: float = 3.0
    openai_api_key: str | None = None
    openai_model: str = "gpt-4o-mini"
    openai_timeout_seconds: float = 60.0
    openai_max_retries: int = 0
    generation_temperature: float = 0.7
    generation_max_tokens: int = 4000
    azure_openai_endpoint: str | None = None
    azure_openai_api_key: str | None = None
    azure_openai_deployment: str | None = None
    azure_openai_api_version: str = "2024-02-15-preview"
    otel_enabled: bool = True
    otel_service_name: str = "jobrotator-generator"
    otel_exporter_otlp_endpoint: str | None = None
    otel_exporter_otlp_headers: str | None = None
    otel_trace_sample_ratio: float = 1.0
    otel_log_correlation: bool = True

    model_config = SettingsConfigDict(env_prefix="JR_", env_file=".env", extra="ignore")

    @property
    def use_azure_openai(self) -> bool:
        return bool(self.azure_openai_endpoint and self.azure_openai_api_key and self.azure_openai_deployment)

    @property
    def provider_configured(self) -> bool:
        return self.use_azure_openai or bool(self.openai_api_key)


@lru_cache
def get_settings() -> Settings:
    return Settings()
