"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class Category(StrEnum):
    HEADPHONE = "headphone"
    IN_EAR_MONITOR = "in-ear-monitor"
    DAC = "dac"
    AMPLIFIER = "amplifier"
    DAC_AMP_COMBO = "dac-amp-combo"


class ReviewStatus(StrEnum):
    """Human review state of a match result."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    REASSIGNED = "reassigned"


class Availability(StrEnum):
    AVAILABLE = "available"
    SOLD = "sold"


class EvidenceKind(StrEnum):
    """Model-level evidence backing a candidate match, strongest first."""

    EXACT = "exact"
    FUZZY = "fuzzy"
    WORD_OVERLAP = "word_overlap"


class DuplicateKind(StrEnum):
    EXACT = "exact"
    VARIANT = "variant"


class MergeStatus(StrEnum):
    PREVIEWED = "previewed"
    MERGED = "merged"
    UPDATE_FAILED = "update_failed"
    DELETE_FAILED = "delete_failed"


class UpsertOutcome(StrEnum):
    CREATED = "created"
    UPDATED = "updated"
    PRESERVED = "preserved"
