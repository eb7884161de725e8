"""Application service for one ingestion run over the posting feed."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from gearscout.domain.bundles import analyze_bundle
from gearscout.domain.classification import extract_location, is_sell_post, is_sold
from gearscout.domain.errors import StoreError
from gearscout.domain.matching import ACCESSORY_ONLY_WARNING, CatalogMatcher, select_match
from gearscout.domain.model import Availability, UpsertOutcome
from gearscout.domain.pricing import extract_price
from gearscout.domain.retry import DEFAULT_RETRY_ATTEMPTS, run_with_retry

if TYPE_CHECKING:
    from collections.abc import Callable

    from gearscout.domain.lexicon import Lexicon
    from gearscout.domain.matching import MatchPolicy
    from gearscout.domain.model import MatchResult, Posting
    from gearscout.domain.ports.fetching import PostingFetcher
    from gearscout.domain.ports.locking import RunLock
    from gearscout.domain.ports.unit_of_work import CatalogUnitOfWork

log = getLogger(__name__)

DEFAULT_PAGE_SIZE = 100


@dataclass(slots=True)
class IngestionSummary:
    """Counts emitted at the end of every ingestion run."""

    fetched: int = 0
    processed: int = 0
    matched: int = 0
    unmatched: int = 0
    flagged: int = 0
    preserved: int = 0
    skipped: int = 0
    failed: int = 0
    pages_fetched: int = 0
    complete: bool = True

    def describe(self) -> str:
        return (
            f"fetched={self.fetched} processed={self.processed} matched={self.matched} "
            f"unmatched={self.unmatched} flagged={self.flagged} preserved={self.preserved} "
            f"skipped={self.skipped} failed={self.failed} pages={self.pages_fetched} "
            f"complete={self.complete}"
        )


def process_posting(posting: Posting, matcher: CatalogMatcher) -> MatchResult:
    """Extract price and bundle data and resolve the posting against the catalog."""

    price = extract_price(posting.title, posting.body)
    bundle = analyze_bundle(posting.title, posting.body, price, lexicon=matcher.lexicon)
    comparable_price = bundle.adjusted_price if bundle.is_bundle else price
    candidates = matcher.candidates(posting, price=comparable_price)
    result = select_match(
        posting,
        candidates,
        price=price,
        bundle=bundle,
        policy=matcher.policy,
    )
    if not candidates and matcher.is_accessory_only(posting):
        result.warnings = [ACCESSORY_ONLY_WARNING]
    result.availability = Availability.SOLD if is_sold(posting) else Availability.AVAILABLE
    result.location = extract_location(posting.title)
    return result


def _store(
    result: MatchResult,
    unit_of_work_factory: Callable[[], CatalogUnitOfWork],
    attempts: int,
) -> UpsertOutcome:
    def upsert() -> UpsertOutcome:
        with unit_of_work_factory() as uow:
            outcome = uow.repositories.listings.upsert(result)
            uow.commit()
            return outcome

    return run_with_retry(upsert, attempts=attempts)


def ingest_postings(
    *,
    fetcher: PostingFetcher,
    unit_of_work_factory: Callable[[], CatalogUnitOfWork],
    run_lock: RunLock,
    lexicon: Lexicon,
    match_policy: MatchPolicy | None = None,
    page_size: int = DEFAULT_PAGE_SIZE,
    max_pages: int | None = None,
    retry_attempts: int = DEFAULT_RETRY_ATTEMPTS,
) -> IngestionSummary:
    """Fetch postings, match them and upsert one result per posting.

    The run holds ``run_lock`` throughout; a held lock raises ``RunLockHeldError``
    before anything is fetched. A posting whose write keeps failing is counted
    as failed and the run moves on.
    """

    with run_lock:
        with unit_of_work_factory() as uow:
            catalog = uow.repositories.catalog.list_all()
        matcher = CatalogMatcher(catalog, lexicon=lexicon, policy=match_policy)
        log.info("Loaded catalog snapshot with %d entries", len(matcher))

        fetched = fetcher(page_size=page_size, max_pages=max_pages)
        summary = IngestionSummary(
            fetched=len(fetched.postings),
            pages_fetched=fetched.pages_fetched,
            complete=fetched.complete,
        )
        if not fetched.complete:
            log.warning(
                "Feed stopped early after %d pages; continuing with partial data",
                fetched.pages_fetched,
            )

        for posting in fetched.postings:
            if not is_sell_post(posting.title):
                summary.skipped += 1
                continue
            result = process_posting(posting, matcher)
            try:
                outcome = _store(result, unit_of_work_factory, retry_attempts)
            except StoreError as exc:
                summary.failed += 1
                log.warning("Failed to store %s: %s", posting.permalink, exc)
                continue

            summary.processed += 1
            if outcome is UpsertOutcome.PRESERVED:
                summary.preserved += 1
                continue
            if result.matched:
                summary.matched += 1
            else:
                summary.unmatched += 1
            if result.requires_manual_review:
                summary.flagged += 1

    log.info("Ingestion finished: %s", summary.describe())
    return summary
