"""Canonical selection for exact duplicate groups."""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING, Final

from gearscout.domain.model import utcnow

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import datetime

    from gearscout.domain.model import CatalogEntry

LONG_DESCRIPTION_LENGTH: Final[int] = 50
RECENT_UPDATE_WINDOW: Final[timedelta] = timedelta(days=30)


def completeness_score(entry: CatalogEntry, *, now: datetime | None = None) -> int:
    """Score how much useful data an entry carries."""

    now = now or utcnow()
    score = 0
    if entry.price_new is not None:
        score += 3
    if entry.price_used_min is not None and entry.price_used_max is not None:
        score += 3
    if entry.description and len(entry.description) > LONG_DESCRIPTION_LENGTH:
        score += 2
    if entry.image_url:
        score += 2
    if entry.product_url:
        score += 2
    if entry.impedance is not None:
        score += 1
    if entry.sensitivity is not None:
        score += 1
    if entry.sound_signature:
        score += 1
    if entry.updated_at is not None and now - entry.updated_at < RECENT_UPDATE_WINDOW:
        score += 1
    return score


def choose_canonical(
    members: Sequence[CatalogEntry],
    *,
    now: datetime | None = None,
) -> CatalogEntry:
    """Pick the most complete member; ties keep the earliest in group order."""

    if not members:
        raise ValueError("Cannot choose a canonical entry from an empty group")
    best = members[0]
    best_score = completeness_score(best, now=now)
    for member in members[1:]:
        score = completeness_score(member, now=now)
        if score > best_score:
            best, best_score = member, score
    return best
