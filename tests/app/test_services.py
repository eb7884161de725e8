from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from gearscout.app import (
    ReviewAction,
    detect_duplicates,
    import_catalog,
    ingest_listings,
    merge_duplicates,
    review_listing,
    run_audit,
)
from gearscout.domain.errors import (
    CatalogEntryNotFoundError,
    ListingNotFoundError,
    MergePreconditionError,
)
from gearscout.domain.model import MergeStatus, ReviewStatus
from tests.helpers.catalog import (
    FakePostingFetcher,
    FakePreviewStore,
    FakeRunLock,
    FakeSnapshotWriter,
    make_entry,
    make_posting,
    make_result,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from gearscout.adapters.sqlalchemy.unit_of_work import SqlAlchemyUnitOfWork
    from gearscout.domain.model import CatalogEntry, MatchResult


def _store(
    uow_factory: Callable[[], SqlAlchemyUnitOfWork],
    entries: Iterable[CatalogEntry],
    results: Iterable[MatchResult] = (),
) -> None:
    with uow_factory() as uow:
        for entry in entries:
            uow.repositories.catalog.add(entry)
        for result in results:
            uow.repositories.listings.add(result)
        uow.commit()


def test_import_then_ingest(
    sqlite_unit_of_work: Callable[[], SqlAlchemyUnitOfWork], tmp_path: Path
) -> None:
    seed = tmp_path / "catalog.json"
    seed.write_text(
        json.dumps(
            [
                {"brand": "Sennheiser", "name": "HD600", "category": "headphone"},
                {"brand": "Schiit", "name": "Magni", "category": "amplifier"},
            ]
        ),
        encoding="utf-8",
    )
    fetcher = FakePostingFetcher(
        [
            [
                make_posting("[WTS] Sennheiser HD600 - $300 shipped", permalink="p/1"),
                make_posting("[WTS] Schiit Magni amp $80", permalink="p/2"),
                make_posting("[WTB] Topping D90", permalink="p/3"),
            ]
        ]
    )

    seeded = import_catalog(seed, unit_of_work_factory=sqlite_unit_of_work)
    reseeded = import_catalog(seed, unit_of_work_factory=sqlite_unit_of_work)
    summary = ingest_listings(
        fetcher=fetcher,
        unit_of_work_factory=sqlite_unit_of_work,
        run_lock=FakeRunLock(),
        page_size=10,
        max_pages=2,
    )

    assert (seeded.added, reseeded.added, reseeded.existing) == (2, 0, 2)
    assert fetcher.calls == [{"page_size": 10, "max_pages": 2}]
    assert summary.matched == 2
    assert summary.skipped == 1
    with sqlite_unit_of_work() as uow:
        stored = {result.permalink: result for result in uow.repositories.listings.list_all()}
    assert set(stored) == {"p/1", "p/2"}
    assert stored["p/2"].price == 80.0


def test_review_actions_persist(sqlite_unit_of_work: Callable[[], SqlAlchemyUnitOfWork]) -> None:
    hd600 = make_entry("HD600")
    hd650 = make_entry("HD650")
    _store(
        sqlite_unit_of_work,
        [hd600, hd650],
        [
            make_result(make_posting(permalink="p/1"), entry=hd600),
            make_result(make_posting(permalink="p/2"), entry=hd600),
        ],
    )

    approved = review_listing(permalink="p/1", action=ReviewAction.APPROVE)
    reassigned = review_listing(
        permalink="p/2",
        action=ReviewAction.REASSIGN,
        entry_id=hd650.id,
        note="Body says HD650",
    )

    assert approved.review_status is ReviewStatus.APPROVED
    assert reassigned.entry_id == hd650.id
    with sqlite_unit_of_work() as uow:
        stored = uow.repositories.listings.get("p/2")
        assert stored is not None
        assert stored.review_status is ReviewStatus.REASSIGNED
        assert stored.alternatives == [hd600.id]
        assert stored.confidence == 1.0


def test_review_errors(sqlite_unit_of_work: Callable[[], SqlAlchemyUnitOfWork]) -> None:
    hd600 = make_entry("HD600")
    _store(sqlite_unit_of_work, [hd600], [make_result(make_posting(permalink="p/1"), entry=hd600)])

    with pytest.raises(ListingNotFoundError):
        review_listing(permalink="p/404", action=ReviewAction.APPROVE)
    with pytest.raises(CatalogEntryNotFoundError):
        review_listing(
            permalink="p/1",
            action=ReviewAction.REASSIGN,
            entry_id=make_entry("HD650").id,
            note="unknown entry",
        )
    with pytest.raises(ValueError, match="entry id"):
        review_listing(permalink="p/1", action=ReviewAction.REASSIGN, note="no target")


@pytest.fixture
def duplicates(sqlite_unit_of_work: Callable[[], SqlAlchemyUnitOfWork]) -> list[CatalogEntry]:
    keep = make_entry("HD600", price_new=400.0)
    loser = make_entry("HD 600", description="Open-back")
    variant_a = make_entry("Clear Professional Edition", brand="Focal")
    variant_b = make_entry("Clear Profesional Edition", brand="Focal")
    _store(
        sqlite_unit_of_work,
        [keep, loser, variant_a, variant_b],
        [make_result(make_posting(permalink="p/1"), entry=loser)],
    )
    return [keep, loser, variant_a, variant_b]


def test_detect_duplicates_reports_exact_and_variant_groups(
    sqlite_unit_of_work: Callable[[], SqlAlchemyUnitOfWork], duplicates: list[CatalogEntry]
) -> None:
    groups = detect_duplicates(unit_of_work_factory=sqlite_unit_of_work)

    assert sorted(group.kind for group in groups) == ["exact", "variant"]


def test_merge_requires_dry_run_then_applies_it(
    sqlite_unit_of_work: Callable[[], SqlAlchemyUnitOfWork], duplicates: list[CatalogEntry]
) -> None:
    keep, loser, *_ = duplicates
    store = FakePreviewStore()
    writer = FakeSnapshotWriter(Path("/tmp/snapshot.json"))
    lock = FakeRunLock()

    with pytest.raises(MergePreconditionError):
        merge_duplicates(
            execute=True,
            unit_of_work_factory=sqlite_unit_of_work,
            preview_store=store,
            snapshot_writer=writer,
            run_lock=lock,
        )

    preview = merge_duplicates(
        unit_of_work_factory=sqlite_unit_of_work, preview_store=store, run_lock=lock
    )
    assert [outcome.status for outcome in preview.outcomes] == [MergeStatus.PREVIEWED]
    assert store.preview is not None

    report = merge_duplicates(
        execute=True,
        unit_of_work_factory=sqlite_unit_of_work,
        preview_store=store,
        snapshot_writer=writer,
        run_lock=lock,
    )

    assert report.merged == 1
    assert store.preview is None
    assert len(writer.calls[0]) == 4
    with sqlite_unit_of_work() as uow:
        catalog_ids = {entry.id for entry in uow.repositories.catalog.list_all()}
        survivor = uow.repositories.catalog.get(keep.id)
        listing = uow.repositories.listings.get("p/1")
    assert loser.id not in catalog_ids
    assert len(catalog_ids) == 3
    assert survivor is not None
    assert survivor.description == "Open-back"
    assert listing is not None
    assert listing.entry_id == keep.id


def test_run_audit_reads_store(sqlite_unit_of_work: Callable[[], SqlAlchemyUnitOfWork]) -> None:
    hd600 = make_entry("HD600", price_new=400.0)
    outlier = make_posting("[WTS] Sennheiser HD600 $5,000", permalink="p/1")
    _store(
        sqlite_unit_of_work,
        [hd600],
        [
            make_result(outlier, entry=hd600, price=5000.0),
            make_result(make_posting("[WTS] Mystery amp $100", permalink="p/2")),
        ],
    )

    report = run_audit(unit_of_work_factory=sqlite_unit_of_work)

    assert report.total == 2
    assert report.matched == 1
    assert [flag.kind for flag in report.flags] == ["price_outlier"]
