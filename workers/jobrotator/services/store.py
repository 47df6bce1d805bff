from collections.abc import Iterable, Sequence

from jobrotator.schemas.entities import Entity, has_usable_fields
from jobrotator.schemas.jobs import JobRecord
from jobrotator.services.repository import InsertOutcome


class InMemoryRepository:
    """List-backed entity source and slug-keyed posting sink.

    Follows the same contract as ``PostgresRepository``: entities without a
    display name or web address are invisible, order is by identifier, and a
    repeated slug counts as a duplicate instead of being written twice.
    """

    def __init__(self, entities: Iterable[Entity] = ()) -> None:
        self.entities: list[Entity] = sorted(
            (entity for entity in entities if has_usable_fields(entity)),
            key=lambda entity: entity.identifier or "",
        )
        self.jobs: dict[str, JobRecord] = {}
        self.insert_calls: list[int] = []

    async def fetch_entities(self, skip: int, limit: int) -> list[Entity]:
        start = max(0, skip)
        return self.entities[start : start + max(0, limit)]

    async def insert_jobs(self, records: Sequence[JobRecord]) -> InsertOutcome:
        self.insert_calls.append(len(records))
        outcome = InsertOutcome()
        for record in records:
            if record.slug in self.jobs:
                outcome.duplicates += 1
                continue
            self.jobs[record.slug] = record
            outcome.inserted += 1
        return outcome
