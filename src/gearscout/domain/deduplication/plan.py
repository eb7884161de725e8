"""Merge planning for exact duplicate groups.

Responsibilities of this stage:
- pick the surviving entry and the entries to delete
- resolve the field values the survivor should carry afterwards
- refuse variant groups, which always go to a human

Planning never touches a store.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from types import MappingProxyType
from typing import TYPE_CHECKING, Final

from gearscout.domain.errors import VariantMergeError
from gearscout.domain.model import MERGEABLE_FIELDS

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence
    from uuid import UUID

    from gearscout.domain.deduplication.detect import DuplicateGroup
    from gearscout.domain.model import CatalogEntry

log = getLogger(__name__)

_USED_BOUNDS: Final[tuple[str, str]] = ("price_used_min", "price_used_max")


@dataclass(frozen=True, slots=True)
class MergePlan:
    keep: CatalogEntry
    delete: tuple[CatalogEntry, ...]
    resolved: Mapping[str, object] = field(default_factory=lambda: MappingProxyType({}))

    @property
    def keep_id(self) -> UUID:
        return self.keep.id

    @property
    def delete_ids(self) -> tuple[UUID, ...]:
        return tuple(entry.id for entry in self.delete)

    def changes(self) -> dict[str, object]:
        """Resolved values that differ from what the surviving entry holds now."""

        current = self.keep.field_values()
        return {name: value for name, value in self.resolved.items() if current[name] != value}


def _union_bounds(members: Sequence[CatalogEntry]) -> tuple[float | None, float | None]:
    bounds = [
        value
        for member in members
        for value in (member.price_used_min, member.price_used_max)
        if value is not None
    ]
    if not bounds:
        return None, None
    return min(bounds), max(bounds)


def plan_merge(group: DuplicateGroup) -> MergePlan:
    """Plan the consolidation of an exact duplicate group into its canonical entry."""

    if not group.is_exact:
        raise VariantMergeError(
            f"Refusing to plan a merge for variant group {group.brand} "
            f"{[member.name for member in group.members]}"
        )

    keep = group.canonical
    losers = tuple(member for member in group.members if member.id != keep.id)

    resolved = keep.field_values()
    for name in MERGEABLE_FIELDS:
        if name in _USED_BOUNDS or resolved[name] is not None:
            continue
        resolved[name] = next(
            (value for loser in losers if (value := getattr(loser, name)) is not None),
            None,
        )
    resolved["price_used_min"], resolved["price_used_max"] = _union_bounds(group.members)

    return MergePlan(keep=keep, delete=losers, resolved=MappingProxyType(resolved))


def plan_merges(groups: Iterable[DuplicateGroup]) -> list[MergePlan]:
    """Plan merges for exact groups; variant groups are skipped and logged."""

    plans: list[MergePlan] = []
    for group in groups:
        if not group.is_exact:
            log.info(
                "Variant group left for manual review: %s",
                ", ".join(member.display_name for member in group.members),
            )
            continue
        plans.append(plan_merge(group))
    return plans
