"""Human review transitions on match results."""

from __future__ import annotations

from typing import TYPE_CHECKING

from gearscout.domain.errors import ReviewError
from gearscout.domain.model import ReviewStatus, utcnow

if TYPE_CHECKING:
    from datetime import datetime
    from uuid import UUID

    from gearscout.domain.model import MatchResult


def _decide(
    result: MatchResult,
    status: ReviewStatus,
    note: str | None,
    now: datetime | None,
) -> None:
    timestamp = now or utcnow()
    result.review_status = status
    result.review_note = note.strip() if note and note.strip() else None
    result.reviewed_at = timestamp
    result.updated_at = timestamp
    result.requires_manual_review = False


def approve(result: MatchResult, *, note: str | None = None, now: datetime | None = None) -> None:
    """Confirm a pending match."""

    if result.entry_id is None:
        raise ReviewError(f"{result.permalink} has no match to approve")
    if not result.is_pending:
        raise ReviewError(f"{result.permalink} was already {result.review_status}")
    _decide(result, ReviewStatus.APPROVED, note, now)


def reject(result: MatchResult, *, note: str | None = None, now: datetime | None = None) -> None:
    """Mark a match as wrong; re-ingestion keeps it rejected."""

    if result.review_status is ReviewStatus.REJECTED:
        raise ReviewError(f"{result.permalink} is already rejected")
    _decide(result, ReviewStatus.REJECTED, note, now)


def reassign(
    result: MatchResult,
    entry_id: UUID,
    *,
    justification: str,
    now: datetime | None = None,
) -> None:
    """Point a result at a different catalog entry, recording why."""

    if not justification or not justification.strip():
        raise ReviewError("Reassigning a match requires a justification")
    if result.entry_id == entry_id:
        raise ReviewError(f"{result.permalink} is already matched to {entry_id}")
    previous = result.entry_id
    result.entry_id = entry_id
    result.confidence = 1.0
    result.alternatives = [
        alternative
        for alternative in [*result.alternatives, previous]
        if alternative is not None and alternative != entry_id
    ]
    _decide(result, ReviewStatus.REASSIGNED, justification, now)
