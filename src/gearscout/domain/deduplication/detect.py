"""Duplicate detection over a catalog snapshot.

Responsibilities of this stage:
- compare entries only within the same brand and category
- group entries whose pairwise similarity clears the threshold
- classify groups as exact or variant and name a canonical member

Detection is pure: it reads entries and returns transient groups.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from itertools import combinations
from logging import getLogger
from typing import TYPE_CHECKING, Final

from gearscout.domain.deduplication.policy import choose_canonical
from gearscout.domain.deduplication.similarity import entry_similarity
from gearscout.domain.model import DuplicateKind
from gearscout.domain.text import normalize, normalize_brand

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence
    from datetime import datetime
    from uuid import UUID

    from gearscout.domain.model import CatalogEntry, Category

log = getLogger(__name__)

GROUP_THRESHOLD: Final[float] = 0.95


@dataclass(frozen=True, slots=True)
class DuplicateGroup:
    brand: str
    category: Category
    canonical: CatalogEntry
    members: tuple[CatalogEntry, ...]
    kind: DuplicateKind
    min_similarity: float

    @property
    def is_exact(self) -> bool:
        return self.kind is DuplicateKind.EXACT

    @property
    def member_ids(self) -> tuple[UUID, ...]:
        return tuple(member.id for member in self.members)


class _SimilarityCache:
    def __init__(self) -> None:
        self._values: dict[tuple[UUID, UUID], float] = {}

    def __call__(self, first: CatalogEntry, second: CatalogEntry) -> float:
        key = (first.id, second.id) if str(first.id) <= str(second.id) else (second.id, first.id)
        if key not in self._values:
            self._values[key] = entry_similarity(first, second)
        return self._values[key]


def _bucket_key(entry: CatalogEntry) -> tuple[str, str]:
    return normalize_brand(entry.brand), str(entry.category)


def _ordered(entries: Iterable[CatalogEntry]) -> list[CatalogEntry]:
    return sorted(
        entries,
        key=lambda e: (normalize(e.name, e.brand), e.created_at.timestamp(), str(e.id)),
    )


def _group_bucket(
    entries: Sequence[CatalogEntry],
    similarity: _SimilarityCache,
    threshold: float,
) -> list[list[CatalogEntry]]:
    assigned: set[UUID] = set()
    groups: list[list[CatalogEntry]] = []
    for index, seed in enumerate(entries):
        if seed.id in assigned:
            continue
        group = [seed]
        for candidate in entries[index + 1 :]:
            if candidate.id in assigned:
                continue
            if all(similarity(candidate, member) >= threshold for member in group):
                group.append(candidate)
        if len(group) > 1:
            assigned.update(member.id for member in group)
            groups.append(group)
    return groups


def find_duplicate_groups(
    catalog: Iterable[CatalogEntry],
    *,
    threshold: float = GROUP_THRESHOLD,
    now: datetime | None = None,
) -> list[DuplicateGroup]:
    """Find groups of near-duplicate catalog entries.

    Every pair inside a returned group has a similarity of at least
    ``threshold``; a group is ``exact`` only when every pair scores 1.0.
    """

    buckets: dict[tuple[str, str], list[CatalogEntry]] = defaultdict(list)
    for entry in catalog:
        buckets[_bucket_key(entry)].append(entry)

    similarity = _SimilarityCache()
    groups: list[DuplicateGroup] = []
    for key in sorted(buckets):
        for members in _group_bucket(_ordered(buckets[key]), similarity, threshold):
            scores = [similarity(a, b) for a, b in combinations(members, 2)]
            kind = DuplicateKind.EXACT if all(s == 1.0 for s in scores) else DuplicateKind.VARIANT
            groups.append(
                DuplicateGroup(
                    brand=members[0].brand,
                    category=members[0].category,
                    canonical=choose_canonical(members, now=now),
                    members=tuple(members),
                    kind=kind,
                    min_similarity=min(scores),
                )
            )

    exact = sum(1 for group in groups if group.is_exact)
    log.info(
        "Found %d duplicate groups (%d exact, %d variant)", len(groups), exact, len(groups) - exact
    )
    return groups
