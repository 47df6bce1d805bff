from __future__ import annotations

import json
import logging
import re
import time

import openai
from openai import AsyncAzureOpenAI, AsyncOpenAI
from pydantic import ValidationError

from jobrotator.core.config import Settings
from jobrotator.schemas.jobs import GeneratedJob

logger = logging.getLogger(__name__)

CODE_FENCE_RE = re.compile(r"```(?:json)?[ \t]*\n?", re.IGNORECASE)


class GenerationError(Exception):
    """Base error for the text-generation provider."""


class GenerationUnavailableError(GenerationError):
    """Raised when the provider cannot be reached, times out or rejects the call."""


class GenerationParseError(GenerationError):
    """Raised when the provider answers with empty or unusable content."""


class GenerationClient:
    def __init__(
        self,
        client: AsyncOpenAI,
        *,
        model: str,
        temperature: float = 0.7,
        max_tokens: int = 4000,
    ) -> None:
        self.client = client
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens

    async def complete_job(self, system_prompt: str, user_prompt: str) -> GeneratedJob:
        t0 = time.monotonic()
        try:
            completion = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except openai.APITimeoutError as exc:
            raise GenerationUnavailableError(
                f"provider timed out after {time.monotonic() - t0:.1f}s for model {self.model}"
            ) from exc
        except openai.APIStatusError as exc:
            raise GenerationUnavailableError(
                f"provider returned {exc.status_code} for model {self.model}"
            ) from exc
        except openai.OpenAIError as exc:
            raise GenerationUnavailableError(f"provider request failed: {exc}") from exc

        logger.debug("provider completion for model=%s took %.1fs", self.model, time.monotonic() - t0)
        content = completion.choices[0].message.content if completion.choices else None
        return parse_generated_job(content)

    async def close(self) -> None:
        await self.client.close()


def parse_generated_job(raw: str | None) -> GeneratedJob:
    if raw is None or not raw.strip():
        raise GenerationParseError("provider returned an empty response")

    text = _strip_code_fences(raw)
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise GenerationParseError(f"provider returned invalid JSON: {text[:200]}") from exc

    if not isinstance(payload, dict):
        raise GenerationParseError(f"provider returned {type(payload).__name__}, expected an object")
    try:
        return GeneratedJob.model_validate(payload)
    except ValidationError as exc:
        raise GenerationParseError(f"provider payload is missing required fields: {exc.error_count()} error(s)") from exc


def build_generation_client(settings: Settings) -> GenerationClient | None:
    if settings.use_azure_openai:
        assert settings.azure_openai_endpoint is not None
        azure_client = AsyncAzureOpenAI(
            azure_endpoint=settings.azure_openai_endpoint.rstrip("/"),
            api_key=settings.azure_openai_api_key,
            api_version=settings.azure_openai_api_version,
            azure_deployment=settings.azure_openai_deployment,
            timeout=settings.openai_timeout_seconds,
            max_retries=settings.openai_max_retries,
        )
        return GenerationClient(
            azure_client,
            model=settings.azure_openai_deployment or settings.openai_model,
            temperature=settings.generation_temperature,
            max_tokens=settings.generation_max_tokens,
        )
    if settings.openai_api_key:
        client = AsyncOpenAI(
            api_key=settings.openai_api_key,
            timeout=settings.openai_timeout_seconds,
            max_retries=settings.openai_max_retries,
        )
        return GenerationClient(
            client,
            model=settings.openai_model,
            temperature=settings.generation_temperature,
            max_tokens=settings.generation_max_tokens,
        )
    return None


def _strip_code_fences(raw: str) -> str:
    return CODE_FENCE_RE.sub("", raw).strip()
