"""Postings from the external feed and the match results derived from them."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from gearscout.domain.model.catalog import new_id, utcnow
from gearscout.domain.model.enums import Availability, ReviewStatus

if TYPE_CHECKING:
    from datetime import datetime
    from uuid import UUID


@dataclass(frozen=True, slots=True)
class Posting:
    """A read-only marketplace posting as delivered by the feed."""

    permalink: str
    title: str
    body: str | None
    source: str
    author: str | None
    posted_at: datetime
    flair: str | None = None

    @property
    def text(self) -> str:
        return "\n".join(part for part in (self.title, self.body) if part)


@dataclass(eq=False, kw_only=True)
class MatchResult:
    """Outcome of resolving one posting against the catalog.

    Keyed by the posting permalink. Once a human has decided on a result
    (``review_status`` other than pending) re-ingestion leaves the match alone.
    """

    id: UUID = field(default_factory=new_id)
    posting: Posting
    entry_id: UUID | None = None
    confidence: float = 0.0
    price: float | None = None
    adjusted_price: float | None = None
    is_bundle: bool = False
    bundle_note: str | None = None
    warnings: list[str] = field(default_factory=list)
    requires_manual_review: bool = False
    alternatives: list[UUID] = field(default_factory=list)
    review_status: ReviewStatus = ReviewStatus.PENDING
    review_note: str | None = None
    reviewed_at: datetime | None = None
    availability: Availability = Availability.AVAILABLE
    location: str | None = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime | None = None

    @property
    def permalink(self) -> str:
        return self.posting.permalink

    @property
    def matched(self) -> bool:
        return self.entry_id is not None

    @property
    def is_pending(self) -> bool:
        return self.review_status is ReviewStatus.PENDING

    @property
    def effective_price(self) -> float | None:
        """Single-item price: the bundle-adjusted figure when there is one."""

        return self.adjusted_price if self.adjusted_price is not None else self.price

    def refresh_from(self, fresh: MatchResult, *, now: datetime | None = None) -> bool:
        """Fold a re-ingested result into this one.

        A pending result takes the fresh match wholesale. A result a human has
        already decided on keeps its match and only picks up availability and
        the posting snapshot. Returns whether the match fields were replaced.
        """

        self.posting = fresh.posting
        self.availability = fresh.availability
        self.updated_at = now or utcnow()
        if not self.is_pending:
            return False
        self.entry_id = fresh.entry_id
        self.confidence = fresh.confidence
        self.price = fresh.price
        self.adjusted_price = fresh.adjusted_price
        self.is_bundle = fresh.is_bundle
        self.bundle_note = fresh.bundle_note
        self.warnings = list(fresh.warnings)
        self.requires_manual_review = fresh.requires_manual_review
        self.alternatives = list(fresh.alternatives)
        self.location = fresh.location
        return True
