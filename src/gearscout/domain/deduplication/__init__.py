"""Duplicate detection, merge planning and merge application for the catalog."""

from __future__ import annotations

from .apply import (
    MergeOutcome,
    MergePreview,
    MergeReport,
    apply_merge_plans,
    plans_fingerprint,
    preview_merge_plans,
)
from .detect import GROUP_THRESHOLD, DuplicateGroup, find_duplicate_groups
from .plan import MergePlan, plan_merge, plan_merges
from .policy import choose_canonical, completeness_score
from .similarity import ModelParts, decompose, entry_similarity, model_similarity

__all__ = [
    "GROUP_THRESHOLD",
    "DuplicateGroup",
    "MergeOutcome",
    "MergePlan",
    "MergePreview",
    "MergeReport",
    "ModelParts",
    "apply_merge_plans",
    "choose_canonical",
    "completeness_score",
    "decompose",
    "entry_similarity",
    "find_duplicate_groups",
    "model_similarity",
    "plan_merge",
    "plan_merges",
    "preview_merge_plans",
    "plans_fingerprint",
]
