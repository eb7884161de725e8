"""Domain model for catalog entries, postings and match results."""

from __future__ import annotations

from .catalog import MERGEABLE_FIELDS, CatalogEntry, new_id, utcnow
from .enums import (
    Availability,
    Category,
    DuplicateKind,
    EvidenceKind,
    MergeStatus,
    ReviewStatus,
    UpsertOutcome,
)
from .listing import MatchResult, Posting

__all__ = [
    "MERGEABLE_FIELDS",
    "Availability",
    "CatalogEntry",
    "Category",
    "DuplicateKind",
    "EvidenceKind",
    "MatchResult",
    "MergeStatus",
    "Posting",
    "ReviewStatus",
    "UpsertOutcome",
    "new_id",
    "utcnow",
]
