from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from gearscout.domain.deduplication import (
    MergePreview,
    apply_merge_plans,
    find_duplicate_groups,
    plan_merges,
    preview_merge_plans,
)
from gearscout.domain.errors import MergePreconditionError
from gearscout.domain.model import MergeStatus
from tests.helpers.catalog import (
    FakeCatalogRepository,
    FakeListingRepository,
    FakeRepositories,
    FakeSnapshotWriter,
    FakeUnitOfWork,
    make_entry,
    make_posting,
    make_result,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from gearscout.domain.deduplication import MergePlan
    from gearscout.domain.model import CatalogEntry

NOW = datetime(2025, 3, 1, tzinfo=UTC)
SNAPSHOT = Path("/tmp/catalog-snapshot.json")


@pytest.fixture
def keep() -> CatalogEntry:
    return make_entry("HD600", price_new=400.0)


@pytest.fixture
def loser() -> CatalogEntry:
    return make_entry("HD 600", description="Reference open-back headphone from Sennheiser")


@pytest.fixture
def repositories(keep: CatalogEntry, loser: CatalogEntry) -> FakeRepositories:
    listing = make_result(make_posting(permalink="p/1"), entry=loser)
    return FakeRepositories(
        catalog=FakeCatalogRepository([keep, loser]),
        listings=FakeListingRepository([listing]),
    )


def _factory(repositories: FakeRepositories) -> Callable[[], FakeUnitOfWork]:
    return lambda: FakeUnitOfWork(repositories)


def _plans(repositories: FakeRepositories) -> list[MergePlan]:
    return plan_merges(find_duplicate_groups(repositories.catalog.list_all(), now=NOW))


def test_dry_run_previews_without_changes(
    repositories: FakeRepositories, keep: CatalogEntry, loser: CatalogEntry
) -> None:
    plans = _plans(repositories)

    report = apply_merge_plans(plans, unit_of_work_factory=_factory(repositories))

    assert report.dry_run
    [outcome] = report.outcomes
    assert outcome.status is MergeStatus.PREVIEWED
    assert outcome.keep_id == keep.id
    assert outcome.delete_ids == (loser.id,)
    assert outcome.changes == {"description": loser.description}
    assert set(repositories.catalog.items) == {keep.id, loser.id}
    assert keep.description is None


def test_destructive_run_requires_preview(repositories: FakeRepositories) -> None:
    plans = _plans(repositories)

    with pytest.raises(MergePreconditionError, match="dry-run preview"):
        apply_merge_plans(
            plans,
            unit_of_work_factory=_factory(repositories),
            dry_run=False,
            snapshot_writer=FakeSnapshotWriter(SNAPSHOT),
        )


def test_destructive_run_rejects_stale_preview(repositories: FakeRepositories) -> None:
    plans = _plans(repositories)
    stale = MergePreview(fingerprint="0" * 64, groups=1, deletions=1)

    with pytest.raises(MergePreconditionError, match="changed"):
        apply_merge_plans(
            plans,
            unit_of_work_factory=_factory(repositories),
            dry_run=False,
            preview=stale,
            snapshot_writer=FakeSnapshotWriter(SNAPSHOT),
        )
    assert len(repositories.catalog.items) == 2


def test_destructive_run_requires_snapshot_writer(repositories: FakeRepositories) -> None:
    plans = _plans(repositories)

    with pytest.raises(MergePreconditionError, match="snapshot"):
        apply_merge_plans(
            plans,
            unit_of_work_factory=_factory(repositories),
            dry_run=False,
            preview=preview_merge_plans(plans),
        )


def test_merge_updates_survivor_repoints_listings_and_deletes_losers(
    repositories: FakeRepositories, keep: CatalogEntry, loser: CatalogEntry
) -> None:
    plans = _plans(repositories)
    writer = FakeSnapshotWriter(SNAPSHOT)

    report = apply_merge_plans(
        plans,
        unit_of_work_factory=_factory(repositories),
        dry_run=False,
        preview=preview_merge_plans(plans),
        snapshot_writer=writer,
    )

    assert report.snapshot == SNAPSHOT
    assert {entry.id for entry in writer.calls[0]} == {keep.id, loser.id}
    assert report.merged == 1
    assert report.failed == 0
    assert set(repositories.catalog.items) == {keep.id}
    assert keep.description == loser.description
    assert repositories.listings.get("p/1").entry_id == keep.id


def test_update_failure_leaves_group_untouched(
    repositories: FakeRepositories, loser: CatalogEntry
) -> None:
    repositories.catalog.fail_updates = 1
    plans = _plans(repositories)

    report = apply_merge_plans(
        plans,
        unit_of_work_factory=_factory(repositories),
        dry_run=False,
        preview=preview_merge_plans(plans),
        snapshot_writer=FakeSnapshotWriter(SNAPSHOT),
        retry_attempts=1,
    )

    [outcome] = report.outcomes
    assert outcome.status is MergeStatus.UPDATE_FAILED
    assert outcome.error == "database is locked"
    assert loser.id in repositories.catalog.items
    assert repositories.listings.get("p/1").entry_id == loser.id


def test_delete_failure_is_reported_after_update(
    repositories: FakeRepositories, keep: CatalogEntry, loser: CatalogEntry
) -> None:
    repositories.catalog.fail_deletes = 1
    plans = _plans(repositories)

    report = apply_merge_plans(
        plans,
        unit_of_work_factory=_factory(repositories),
        dry_run=False,
        preview=preview_merge_plans(plans),
        snapshot_writer=FakeSnapshotWriter(SNAPSHOT),
        retry_attempts=1,
    )

    [outcome] = report.outcomes
    assert outcome.status is MergeStatus.DELETE_FAILED
    assert report.failed == 1
    assert keep.description == loser.description
    assert loser.id in repositories.catalog.items


def test_missing_survivor_stops_deletion_without_changes() -> None:
    first = make_entry("HD600", price_new=400.0)
    second = make_entry("HD 600", price_new=400.0)
    listing = make_result(make_posting(permalink="p/2"), entry=second)
    repositories = FakeRepositories(
        catalog=FakeCatalogRepository([first, second]),
        listings=FakeListingRepository([listing]),
    )
    [plan] = _plans(repositories)
    assert plan.changes() == {}
    del repositories.catalog.items[plan.keep_id]

    report = apply_merge_plans(
        [plan],
        unit_of_work_factory=_factory(repositories),
        dry_run=False,
        preview=preview_merge_plans([plan]),
        snapshot_writer=FakeSnapshotWriter(SNAPSHOT),
        retry_attempts=1,
    )

    [outcome] = report.outcomes
    assert outcome.status is MergeStatus.DELETE_FAILED
    assert outcome.error == f"Canonical entry {plan.keep_id} no longer exists"
    assert set(repositories.catalog.items) == set(plan.delete_ids)
    assert repositories.listings.get("p/2").entry_id == second.id


def test_transient_failure_is_retried(
    repositories: FakeRepositories, keep: CatalogEntry
) -> None:
    repositories.catalog.fail_deletes = 1
    plans = _plans(repositories)

    report = apply_merge_plans(
        plans,
        unit_of_work_factory=_factory(repositories),
        dry_run=False,
        preview=preview_merge_plans(plans),
        snapshot_writer=FakeSnapshotWriter(SNAPSHOT),
        retry_attempts=2,
    )

    assert report.merged == 1
    assert set(repositories.catalog.items) == {keep.id}


def test_one_failed_group_does_not_stop_the_others(repositories: FakeRepositories) -> None:
    magni = make_entry("Magni 3", brand="Schiit", price_new=100.0)
    magni_dupe = make_entry(
        "Magni3", brand="Schiit", description="Compact headphone amplifier with gain switch"
    )
    repositories.catalog.add(magni)
    repositories.catalog.add(magni_dupe)
    repositories.catalog.fail_updates = 1
    plans = _plans(repositories)

    report = apply_merge_plans(
        plans,
        unit_of_work_factory=_factory(repositories),
        dry_run=False,
        preview=preview_merge_plans(plans),
        snapshot_writer=FakeSnapshotWriter(SNAPSHOT),
        retry_attempts=1,
    )

    assert [outcome.status for outcome in report.outcomes] == [
        MergeStatus.UPDATE_FAILED,
        MergeStatus.MERGED,
    ]
    assert magni_dupe.id in repositories.catalog.items


def test_preview_fingerprint_is_stable_and_round_trips(repositories: FakeRepositories) -> None:
    plans = _plans(repositories)

    preview = preview_merge_plans(plans)

    assert preview.fingerprint == preview_merge_plans(list(reversed(plans))).fingerprint
    assert preview.groups == 1
    assert preview.deletions == 1
    assert MergePreview.from_dict(preview.to_dict()) == preview
