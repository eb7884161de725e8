"""Application orchestration entry points."""

from __future__ import annotations

from collections.abc import Callable
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING

from gearscout.adapters.catalog_file import load_catalog_file
from gearscout.adapters.locking import FileRunLock
from gearscout.adapters.reddit import RedditFetcher
from gearscout.adapters.snapshots import JsonPreviewStore, JsonSnapshotWriter
from gearscout.adapters.sqlalchemy.unit_of_work import SqlAlchemyUnitOfWork, is_started, startup
from gearscout.config import get_pipeline_config, get_storage_config
from gearscout.domain import review
from gearscout.domain.audit import AuditReport, audit_matches
from gearscout.domain.deduplication import (
    DuplicateGroup,
    MergeReport,
    apply_merge_plans,
    find_duplicate_groups,
    plan_merges,
    preview_merge_plans,
)
from gearscout.domain.errors import CatalogEntryNotFoundError, ListingNotFoundError
from gearscout.domain.ingestion import IngestionSummary, ingest_postings
from gearscout.domain.lexicon import default_lexicon
from gearscout.domain.matching import MatchPolicy
from gearscout.domain.ports.unit_of_work import CatalogUnitOfWork
from gearscout.domain.seeding import SeedSummary, seed_catalog

if TYPE_CHECKING:
    from pathlib import Path
    from uuid import UUID

    from gearscout.domain.lexicon import Lexicon
    from gearscout.domain.model import MatchResult
    from gearscout.domain.ports.fetching import PostingFetcher
    from gearscout.domain.ports.locking import RunLock
    from gearscout.domain.ports.snapshots import PreviewStore, SnapshotWriter

UnitOfWorkFactory = Callable[[], CatalogUnitOfWork]


log = getLogger(__name__)


class ReviewAction(StrEnum):
    APPROVE = "approve"
    REJECT = "reject"
    REASSIGN = "reassign"


def _ensure_started() -> None:
    if not is_started():
        startup()


def _default_run_lock() -> RunLock:
    return FileRunLock(get_storage_config().lock_path(), ttl=get_pipeline_config().lock_ttl)


def ingest_listings(
    *,
    fetcher: PostingFetcher | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    run_lock: RunLock | None = None,
    lexicon: Lexicon | None = None,
    page_size: int | None = None,
    max_pages: int | None = None,
) -> IngestionSummary:
    """Run one ingestion batch using the configured adapters."""

    _ensure_started()
    pipeline = get_pipeline_config()
    effective_page_size = page_size or pipeline.page_size
    effective_max_pages = max_pages or pipeline.max_pages
    log.info(
        "Starting ingestion: page_size=%s, max_pages=%s",
        effective_page_size,
        effective_max_pages,
    )
    return ingest_postings(
        fetcher=fetcher or RedditFetcher(),
        unit_of_work_factory=unit_of_work_factory or SqlAlchemyUnitOfWork,
        run_lock=run_lock or _default_run_lock(),
        lexicon=lexicon or default_lexicon(),
        match_policy=MatchPolicy(review_threshold=pipeline.review_threshold),
        page_size=effective_page_size,
        max_pages=effective_max_pages,
    )


def import_catalog(
    path: Path,
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> SeedSummary:
    """Add the records of a JSON seed file to the catalog."""

    _ensure_started()
    entries = load_catalog_file(path)
    return seed_catalog(entries, unit_of_work_factory=unit_of_work_factory or SqlAlchemyUnitOfWork)


def detect_duplicates(
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> list[DuplicateGroup]:
    """Group near-duplicate catalog entries without changing anything."""

    _ensure_started()
    with (unit_of_work_factory or SqlAlchemyUnitOfWork)() as uow:
        catalog = uow.repositories.catalog.list_all()
    groups = find_duplicate_groups(catalog)
    log.info(
        "Duplicate detection: %d groups (%d exact) across %d entries",
        len(groups),
        sum(1 for group in groups if group.is_exact),
        len(catalog),
    )
    return groups


def merge_duplicates(
    *,
    execute: bool = False,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    preview_store: PreviewStore | None = None,
    snapshot_writer: SnapshotWriter | None = None,
    run_lock: RunLock | None = None,
) -> MergeReport:
    """Preview merges of exact duplicates, or apply a previously previewed set.

    Without ``execute`` the plans are fingerprinted and the preview is stored.
    With ``execute`` the stored preview must match the freshly computed plans;
    the preview is consumed once the run finishes.
    """

    storage = get_storage_config()
    effective_uow = unit_of_work_factory or SqlAlchemyUnitOfWork
    store = preview_store or JsonPreviewStore(storage.merge_preview_path())
    plans = plan_merges(detect_duplicates(unit_of_work_factory=effective_uow))

    if not execute:
        report = apply_merge_plans(plans, unit_of_work_factory=effective_uow, dry_run=True)
        store.save(preview_merge_plans(plans))
        return report

    with run_lock or _default_run_lock():
        report = apply_merge_plans(
            plans,
            unit_of_work_factory=effective_uow,
            dry_run=False,
            preview=store.load(),
            snapshot_writer=snapshot_writer or JsonSnapshotWriter(storage.snapshot_dir()),
        )
    store.clear()
    return report


def run_audit(
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    lexicon: Lexicon | None = None,
) -> AuditReport:
    """Audit every stored match result against the current catalog."""

    _ensure_started()
    with (unit_of_work_factory or SqlAlchemyUnitOfWork)() as uow:
        entries = {entry.id: entry for entry in uow.repositories.catalog.list_all()}
        results = uow.repositories.listings.list_all()
    return audit_matches(results, entries, lexicon=lexicon or default_lexicon())


def review_listing(
    *,
    permalink: str,
    action: ReviewAction,
    entry_id: UUID | None = None,
    note: str | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> MatchResult:
    """Record a human decision on the match result for ``permalink``."""

    _ensure_started()
    with (unit_of_work_factory or SqlAlchemyUnitOfWork)() as uow:
        result = uow.repositories.listings.get(permalink)
        if result is None:
            raise ListingNotFoundError(f"No match result stored for {permalink}")

        if action is ReviewAction.APPROVE:
            review.approve(result, note=note)
        elif action is ReviewAction.REJECT:
            review.reject(result, note=note)
        else:
            if entry_id is None:
                raise ValueError("Reassigning a match requires an entry id")
            if uow.repositories.catalog.get(entry_id) is None:
                raise CatalogEntryNotFoundError(f"No catalog entry with id {entry_id}")
            review.reassign(result, entry_id, justification=note or "")
        uow.commit()

    log.info("Review %s recorded for %s", action, permalink)
    return result
