from __future__ import annotations

from datetime import UTC, datetime

import pytest

from gearscout.domain.deduplication import find_duplicate_groups, plan_merge, plan_merges
from gearscout.domain.errors import VariantMergeError
from tests.helpers.catalog import make_entry

NOW = datetime(2025, 3, 1, tzinfo=UTC)


def test_plan_backfills_missing_fields_and_unions_used_bounds() -> None:
    keep = make_entry(
        "HD600",
        price_new=400.0,
        price_used_min=220.0,
        price_used_max=320.0,
        image_url="https://example.com/hd600.jpg",
    )
    loser = make_entry(
        "HD 600",
        price_new=350.0,
        price_used_min=180.0,
        price_used_max=300.0,
        description="Open-back reference headphone",
    )
    [group] = find_duplicate_groups([keep, loser], now=NOW)

    plan = plan_merge(group)

    assert plan.keep is keep
    assert plan.delete_ids == (loser.id,)
    assert plan.resolved["price_new"] == 400.0
    assert plan.resolved["description"] == "Open-back reference headphone"
    assert plan.resolved["price_used_min"] == 180.0
    assert plan.resolved["price_used_max"] == 320.0
    assert plan.changes() == {
        "description": "Open-back reference headphone",
        "price_used_min": 180.0,
    }


def test_plan_of_identical_entries_has_no_changes() -> None:
    [group] = find_duplicate_groups([make_entry("HD600"), make_entry("hd600")], now=NOW)

    plan = plan_merge(group)

    assert plan.changes() == {}
    assert len(plan.delete_ids) == 1


def test_variant_groups_are_never_planned() -> None:
    [group] = find_duplicate_groups(
        [
            make_entry("Clear Professional Edition", brand="Focal"),
            make_entry("Clear Profesional Edition", brand="Focal"),
        ],
        now=NOW,
    )

    with pytest.raises(VariantMergeError):
        plan_merge(group)
    assert plan_merges([group]) == []


def test_plan_merges_keeps_exact_groups() -> None:
    groups = find_duplicate_groups(
        [
            make_entry("HD600", price_new=400.0),
            make_entry("HD 600"),
            make_entry("Clear Professional Edition", brand="Focal"),
            make_entry("Clear Profesional Edition", brand="Focal"),
        ],
        now=NOW,
    )

    plans = plan_merges(groups)

    assert len(groups) == 2
    assert [plan.keep.name for plan in plans] == ["HD600"]
