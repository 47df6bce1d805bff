from collections import Counter

import pytest

from jobrotator.jobs.seniority import SENIORITY_LEVELS, SeniorityAllocator, SeniorityCategory


def test_category_for_follows_declared_weight_boundaries() -> None:
    allocator = SeniorityAllocator()

    assert allocator.total_weight == 100
    assert allocator.category_for(0).name == "intern"
    assert allocator.category_for(29).name == "intern"
    assert allocator.category_for(30).name == "junior"
    assert allocator.category_for(64).name == "junior"
    assert allocator.category_for(65).name == "mid-level"
    assert allocator.category_for(89).name == "mid-level"
    assert allocator.category_for(90).name == "senior"
    assert allocator.category_for(99).name == "senior"
    assert allocator.category_for(100).name == "intern"


def test_category_for_is_stable_across_allocators() -> None:
    first = SeniorityAllocator()
    second = SeniorityAllocator(list(SENIORITY_LEVELS))

    for position in (0, 7, 31, 12_345, 12_999, 10**9 + 7):
        assert first.category_for(position) == first.category_for(position)
        assert first.category_for(position) == second.category_for(position)


def test_distribution_is_exact_over_whole_periods() -> None:
    allocator = SeniorityAllocator()
    periods = 7

    counts = Counter(allocator.category_for(position).name for position in range(250, 250 + 100 * periods))

    assert counts == {"intern": 30 * periods, "junior": 35 * periods, "mid-level": 25 * periods, "senior": 10 * periods}


def test_negative_positions_map_into_range() -> None:
    allocator = SeniorityAllocator()

    assert allocator.category_for(-1).name == "senior"
    assert allocator.category_for(-100).name == "intern"


def test_allocator_rejects_empty_configuration() -> None:
    with pytest.raises(ValueError):
        SeniorityAllocator([])


def test_allocator_rejects_non_positive_weight() -> None:
    broken = SeniorityCategory(
        name="ghost",
        weight=0,
        salary_range=(1, 2),
        experience_years="0",
        title_prefixes=("Ghost",),
    )
    with pytest.raises(ValueError):
        SeniorityAllocator([broken])


def test_allocator_rejects_duplicate_names() -> None:
    with pytest.raises(ValueError):
        SeniorityAllocator([SENIORITY_LEVELS[0], SENIORITY_LEVELS[0]])


def test_get_and_names_follow_declaration_order() -> None:
    allocator = SeniorityAllocator()

    assert allocator.names == ["intern", "junior", "mid-level", "senior"]
    assert allocator.get("senior").salary_range == (75000, 120000)
