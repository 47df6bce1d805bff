from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from datetime import date
from typing import Literal

from opentelemetry import trace

from jobrotator.core.urls import build_slug, careers_link, extract_domain, hr_contact_email
from jobrotator.jobs import templates
from jobrotator.jobs.rate_limiter import RateLimiter
from jobrotator.jobs.seniority import SeniorityCategory
from jobrotator.schemas.entities import Entity
from jobrotator.schemas.jobs import GeneratedJob, JobRecord
from jobrotator.services.generation_client import GenerationClient, GenerationError

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


@dataclass(slots=True)
class GenerationAttempt:
    entity: Entity
    position: int
    category: SeniorityCategory
    outcome: Literal["success", "failure"]
    record: JobRecord | None = None
    error: str | None = None
    used_fallback: bool = False

    @property
    def succeeded(self) -> bool:
        return self.outcome == "success"


class AttemptSynthesizer:
    def __init__(
        self,
        client: GenerationClient | None,
        rate_limiter: RateLimiter,
        *,
        rng: random.Random | None = None,
        today: date | None = None,
    ) -> None:
        self.client = client
        self.rate_limiter = rate_limiter
        self.rng = rng or random.Random()
        self.today = today

    async def synthesize(self, entity: Entity, category: SeniorityCategory, position: int) -> GenerationAttempt:
        with tracer.start_as_current_span("generation.synthesize") as span:
            span.set_attribute("entity.position", position)
            span.set_attribute("entity.seniority", category.name)
            attempt = await self._synthesize(entity, category, position)
            span.set_attribute("generation.outcome", attempt.outcome)
            span.set_attribute("generation.used_fallback", attempt.used_fallback)
            return attempt

    async def _synthesize(self, entity: Entity, category: SeniorityCategory, position: int) -> GenerationAttempt:
        identifier = entity.identifier
        if identifier is None:
            return GenerationAttempt(
                entity=entity,
                position=position,
                category=category,
                outcome="failure",
                error="entity has no usable identifier",
            )

        title_prefix = self.rng.choice(category.title_prefixes)
        generated = await self._generate_with_provider(entity, category, title_prefix)
        used_fallback = generated is None
        if generated is None:
            generated = templates.render_fallback_job(entity, category, title_prefix, today=self.today)

        try:
            record = self._build_record(entity, category, generated, identifier)
        except ValueError as exc:
            return GenerationAttempt(
                entity=entity,
                position=position,
                category=category,
                outcome="failure",
                error=str(exc),
                used_fallback=used_fallback,
            )
        return GenerationAttempt(
            entity=entity,
            position=position,
            category=category,
            outcome="success",
            record=record,
            used_fallback=used_fallback,
        )

    async def _generate_with_provider(
        self,
        entity: Entity,
        category: SeniorityCategory,
        title_prefix: str,
    ) -> GeneratedJob | None:
        if self.client is None:
            return None

        await self.rate_limiter.acquire()
        system_prompt = templates.build_system_prompt(category)
        user_prompt = templates.build_user_prompt(entity, category, title_prefix, today=self.today)
        try:
            return await self.client.complete_job(system_prompt, user_prompt)
        except GenerationError as exc:
            logger.warning("provider generation failed for %s; using template: %s", entity.display_name, exc)
            return None

    def _build_record(
        self,
        entity: Entity,
        category: SeniorityCategory,
        generated: GeneratedJob,
        identifier: str,
    ) -> JobRecord:
        low, high = category.salary_range
        domain = extract_domain(entity.web_site_url)
        company_name = entity.display_name
        return JobRecord(
            title=generated.title,
            description=generated.description,
            company_name=company_name,
            seniority=category.name,
            salary=self.rng.randint(low, high),
            contact_email=hr_contact_email(domain, rng=self.rng),
            apply_link=careers_link(domain),
            slug=build_slug(generated.title, company_name, identifier),
        )
