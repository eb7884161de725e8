"""Ports for persisting catalog entries and match results."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping
    from uuid import UUID

    from gearscout.domain.model import (
        CatalogEntry,
        Category,
        MatchResult,
        ReviewStatus,
        UpsertOutcome,
    )


@runtime_checkable
class Repository[TEntity](Protocol):
    """Minimal repository contract for a persistent aggregate store."""

    def add(self, entity: TEntity) -> None: ...


@runtime_checkable
class CatalogRepository(Repository["CatalogEntry"], Protocol):
    """Persistence contract for catalog entries."""

    def list_all(self) -> list[CatalogEntry]: ...

    def get(self, entry_id: UUID) -> CatalogEntry | None: ...

    def find(self, *, brand: str, name: str, category: Category) -> CatalogEntry | None: ...

    def update_fields(self, entry_id: UUID, values: Mapping[str, object]) -> bool: ...

    def delete(self, entry_ids: Iterable[UUID]) -> int: ...


@runtime_checkable
class ListingRepository(Repository["MatchResult"], Protocol):
    """Persistence contract for match results keyed by posting permalink."""

    def get(self, permalink: str) -> MatchResult | None: ...

    def upsert(self, result: MatchResult) -> UpsertOutcome: ...

    def list_all(self) -> list[MatchResult]: ...

    def query(
        self,
        *,
        status: ReviewStatus | None = None,
        requires_review: bool | None = None,
        max_confidence: float | None = None,
        matched: bool | None = None,
        limit: int | None = None,
    ) -> list[MatchResult]: ...

    def reassign_entries(self, from_ids: Iterable[UUID], to_id: UUID) -> int: ...
