from __future__ import annotations

import asyncio
import random
from datetime import date
from typing import Any

from jobrotator.core.urls import build_slug
from jobrotator.jobs.rate_limiter import RateLimiter
from jobrotator.jobs.seniority import SeniorityAllocator
from jobrotator.jobs.synthesizer import AttemptSynthesizer
from jobrotator.schemas.entities import Entity
from jobrotator.schemas.jobs import SOURCE_TAG, GeneratedJob
from jobrotator.services.generation_client import GenerationParseError, GenerationUnavailableError

ALLOCATOR = SeniorityAllocator()


class ScriptedGenerationClient:
    def __init__(self, outcome: Any) -> None:
        self.outcome = outcome
        self.calls: list[tuple[str, str]] = []

    async def complete_job(self, system_prompt: str, user_prompt: str) -> GeneratedJob:
        self.calls.append((system_prompt, user_prompt))
        if isinstance(self.outcome, Exception):
            raise self.outcome
        return self.outcome


class CountingRateLimiter(RateLimiter):
    def __init__(self) -> None:
        super().__init__(1000)
        self.acquired = 0

    async def acquire(self) -> None:
        self.acquired += 1


def _entity(**overrides: Any) -> Entity:
    values: dict[str, Any] = {
        "id": "65a1f0c2d3e4f5a6b7c8d9e0",
        "name": "Green Transition Forum",
        "description": "A network of clean-energy advocates.",
        "goals": "decarbonising European industry",
        "interests": ["Energy", "Climate Action", "Industry", "Trade"],
        "registration_category": "NGOs",
        "web_site_url": "https://www.greenforum.eu",
    }
    values.update(overrides)
    return Entity(**values)


def _synthesizer(client: Any, limiter: RateLimiter | None = None) -> AttemptSynthesizer:
    return AttemptSynthesizer(
        client,
        limiter or CountingRateLimiter(),
        rng=random.Random(42),
        today=date(2026, 1, 15),
    )


def test_provider_success_builds_record_from_provider_text() -> None:
    client = ScriptedGenerationClient(GeneratedJob(title="Policy Intern - Energy", description="Provider body"))
    limiter = CountingRateLimiter()
    category = ALLOCATOR.get("intern")

    attempt = asyncio.run(_synthesizer(client, limiter).synthesize(_entity(), category, 12))

    assert attempt.outcome == "success"
    assert attempt.used_fallback is False
    assert attempt.position == 12
    assert limiter.acquired == 1
    record = attempt.record
    assert record is not None
    assert record.title == "Policy Intern - Energy"
    assert record.description == "Provider body"
    assert record.company_name == "Green Transition Forum"
    assert record.seniority == "intern"
    assert 18000 <= record.salary <= 24000
    assert record.contact_email.endswith("@greenforum.eu")
    assert record.apply_link == "https://greenforum.eu/careers"
    assert record.source == SOURCE_TAG
    assert record.slug == build_slug("Policy Intern - Energy", "Green Transition Forum", "65a1f0c2d3e4f5a6b7c8d9e0")


def test_prompt_embeds_entity_fields_and_category_constraints() -> None:
    client = ScriptedGenerationClient(GeneratedJob(title="Director of Policy", description="Body"))
    category = ALLOCATOR.get("senior")

    asyncio.run(_synthesizer(client).synthesize(_entity(), category, 95))

    system_prompt, user_prompt = client.calls[0]
    assert "senior level positions" in system_prompt
    assert "Green Transition Forum" in user_prompt
    assert "Energy, Climate Action, Industry, Trade" in user_prompt
    assert "Experience: 7+ years" in user_prompt
    assert "€75,000-€120,000" in user_prompt
    assert any(f"Title should include: {prefix}" in user_prompt for prefix in category.title_prefixes)


def test_provider_failures_fall_back_to_template() -> None:
    category = ALLOCATOR.get("junior")
    for failure in (GenerationUnavailableError("timeout"), GenerationParseError("bad json")):
        attempt = asyncio.run(_synthesizer(ScriptedGenerationClient(failure)).synthesize(_entity(), category, 40))

        assert attempt.outcome == "success"
        assert attempt.used_fallback is True
        assert attempt.record is not None
        assert attempt.record.title.endswith("- NGOs at Green Transition Forum")
        assert "junior level professional" in attempt.record.description
        assert "€35,000-€50,000" in attempt.record.description
        assert "Energy, Climate Action, Industry" in attempt.record.description
        assert 35000 <= attempt.record.salary <= 50000


def test_missing_provider_uses_template_without_rate_limiting() -> None:
    limiter = CountingRateLimiter()

    attempt = asyncio.run(_synthesizer(None, limiter).synthesize(_entity(), ALLOCATOR.get("mid-level"), 70))

    assert attempt.outcome == "success"
    assert attempt.used_fallback is True
    assert limiter.acquired == 0


def test_fallback_handles_sparse_entity() -> None:
    entity = Entity(id="abc123", original_name="Lobby Collective", web_site_url=None)

    attempt = asyncio.run(_synthesizer(None).synthesize(entity, ALLOCATOR.get("intern"), 1))

    assert attempt.outcome == "success"
    record = attempt.record
    assert record is not None
    assert record.company_name == "Lobby Collective"
    assert "- EU Affairs at Lobby Collective" in record.title
    assert "committed to excellence in public affairs" in record.description
    assert record.contact_email == ""
    assert record.apply_link == ""


def test_missing_identifier_is_a_per_entity_failure() -> None:
    client = ScriptedGenerationClient(GeneratedJob(title="Analyst", description="Body"))

    attempt = asyncio.run(_synthesizer(client).synthesize(_entity(id="  "), ALLOCATOR.get("junior"), 3))

    assert attempt.outcome == "failure"
    assert attempt.record is None
    assert attempt.error == "entity has no usable identifier"
    assert client.calls == []


def test_same_entity_and_title_give_same_slug_across_attempts() -> None:
    client = ScriptedGenerationClient(GeneratedJob(title="Analyst", description="Body"))
    category = ALLOCATOR.get("junior")
    synthesizer = _synthesizer(client)

    first = asyncio.run(synthesizer.synthesize(_entity(), category, 31))
    second = asyncio.run(synthesizer.synthesize(_entity(), category, 31))
    other = asyncio.run(synthesizer.synthesize(_entity(id="65a1f0c2d3e4f5a6b7c8d9e1"), category, 31))

    assert first.record is not None and second.record is not None and other.record is not None
    assert first.record.slug == second.record.slug
    assert first.record.slug != other.record.slug
