from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class SeniorityCategory:
    name: str
    weight: int
    salary_range: tuple[int, int]
    experience_years: str
    title_prefixes: tuple[str, ...]


# Declaration order is part of the allocation contract; reordering changes
# which positions map to which level.
SENIORITY_LEVELS: tuple[SeniorityCategory, ...] = (
    SeniorityCategory(
        name="intern",
        weight=30,
        salary_range=(18000, 24000),
        experience_years="0",
        title_prefixes=("Intern", "Trainee", "Graduate Intern", "Policy Intern", "Research Intern"),
    ),
    SeniorityCategory(
        name="junior",
        weight=35,
        salary_range=(35000, 50000),
        experience_years="1-3",
        title_prefixes=("Junior", "Associate", "Analyst", "Coordinator", "Officer"),
    ),
    SeniorityCategory(
        name="mid-level",
        weight=25,
        salary_range=(50000, 75000),
        experience_years="3-7",
        title_prefixes=("Senior", "Manager", "Lead", "Specialist", "Advisor"),
    ),
    SeniorityCategory(
        name="senior",
        weight=10,
        salary_range=(75000, 120000),
        experience_years="7+",
        title_prefixes=("Senior Manager", "Director", "Head of", "Principal", "Senior Advisor"),
    ),
)


class SeniorityAllocator:
    """Maps an absolute rotation position to a seniority level.

    The mapping is periodic with period ``total_weight``: over any run of
    ``total_weight`` consecutive positions each level appears exactly
    ``weight`` times.
    """

    def __init__(self, categories: Sequence[SeniorityCategory] = SENIORITY_LEVELS) -> None:
        self.categories = tuple(categories)
        _validate_categories(self.categories)
        self.total_weight = sum(category.weight for category in self.categories)
        self._by_name = {category.name: category for category in self.categories}

    @property
    def names(self) -> list[str]:
        return [category.name for category in self.categories]

    def get(self, name: str) -> SeniorityCategory:
        return self._by_name[name]

    def category_for(self, position: int) -> SeniorityCategory:
        seed = position % self.total_weight
        cumulative = 0
        for category in self.categories:
            cumulative += category.weight
            if seed < cumulative:
                return category
        return self.categories[-1]


def _validate_categories(categories: tuple[SeniorityCategory, ...]) -> None:
    if not categories:
        raise ValueError("at least one seniority category is required")
    seen: set[str] = set()
    for category in categories:
        if category.name in seen:
            raise ValueError(f"duplicate seniority category: {category.name}")
        seen.add(category.name)
        if not isinstance(category.weight, int) or category.weight <= 0:
            raise ValueError(f"seniority weight must be a positive integer: {category.name}")
        low, high = category.salary_range
        if low > high:
            raise ValueError(f"salary range is inverted for {category.name}: {low} > {high}")
        if not category.title_prefixes:
            raise ValueError(f"seniority category needs title prefixes: {category.name}")
