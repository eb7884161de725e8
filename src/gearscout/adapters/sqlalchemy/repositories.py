"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from typing import TYPE_CHECKING, cast

from sqlalchemy import delete, func, select, update

from gearscout.adapters.sqlalchemy.mappings import catalog_entry_table, listing_table
from gearscout.domain.model import CatalogEntry, MatchResult, UpsertOutcome, utcnow

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping
    from uuid import UUID

    from sqlalchemy import CursorResult
    from sqlalchemy.orm import Session

    from gearscout.domain.model import Category, ReviewStatus


class SqlAlchemyCatalogRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: CatalogEntry) -> None:
        self.session.add(entity)

    def list_all(self) -> list[CatalogEntry]:
        stmt = select(CatalogEntry).order_by(
            catalog_entry_table.c.brand,
            catalog_entry_table.c.name,
            catalog_entry_table.c.created_at,
        )
        return list(self.session.execute(stmt).scalars())

    def get(self, entry_id: UUID) -> CatalogEntry | None:
        return self.session.get(CatalogEntry, entry_id)

    def find(self, *, brand: str, name: str, category: Category) -> CatalogEntry | None:
        stmt = (
            select(CatalogEntry)
            .where(func.lower(catalog_entry_table.c.brand) == brand.casefold())
            .where(func.lower(catalog_entry_table.c.name) == name.casefold())
            .where(catalog_entry_table.c.category == category)
            .limit(1)
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def update_fields(self, entry_id: UUID, values: Mapping[str, object]) -> bool:
        entry = self.get(entry_id)
        if entry is None:
            return False
        entry.apply_values(dict(values))
        return True

    def delete(self, entry_ids: Iterable[UUID]) -> int:
        ids = list(entry_ids)
        if not ids:
            return 0
        stmt = delete(CatalogEntry).where(catalog_entry_table.c.id.in_(ids))
        result = cast("CursorResult[object]", self.session.execute(stmt))
        return result.rowcount


class SqlAlchemyListingRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: MatchResult) -> None:
        self.session.add(entity)

    def get(self, permalink: str) -> MatchResult | None:
        stmt = (
            select(MatchResult)
            .where(listing_table.c._posting_permalink == permalink)  # noqa: SLF001
            .limit(1)
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def upsert(self, result: MatchResult) -> UpsertOutcome:
        existing = self.get(result.permalink)
        if existing is None:
            self.session.add(result)
            return UpsertOutcome.CREATED
        if existing.refresh_from(result):
            return UpsertOutcome.UPDATED
        return UpsertOutcome.PRESERVED

    def list_all(self) -> list[MatchResult]:
        stmt = select(MatchResult).order_by(listing_table.c._posting_posted_at.desc())  # noqa: SLF001
        return list(self.session.execute(stmt).scalars())

    def query(
        self,
        *,
        status: ReviewStatus | None = None,
        requires_review: bool | None = None,
        max_confidence: float | None = None,
        matched: bool | None = None,
        limit: int | None = None,
    ) -> list[MatchResult]:
        stmt = select(MatchResult)
        if status is not None:
            stmt = stmt.where(listing_table.c.review_status == status)
        if requires_review is not None:
            stmt = stmt.where(listing_table.c.requires_manual_review.is_(requires_review))
        if max_confidence is not None:
            stmt = stmt.where(listing_table.c.confidence <= max_confidence)
        if matched is True:
            stmt = stmt.where(listing_table.c.entry_id.is_not(None))
        elif matched is False:
            stmt = stmt.where(listing_table.c.entry_id.is_(None))
        stmt = stmt.order_by(
            listing_table.c.confidence.asc(),
            listing_table.c._posting_posted_at.desc(),  # noqa: SLF001
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        return list(self.session.execute(stmt).scalars())

    def reassign_entries(self, from_ids: Iterable[UUID], to_id: UUID) -> int:
        ids = [entry_id for entry_id in from_ids if entry_id != to_id]
        if not ids:
            return 0
        stmt = (
            update(MatchResult)
            .where(listing_table.c.entry_id.in_(ids))
            .values(entry_id=to_id, updated_at=utcnow())
        )
        result = cast("CursorResult[object]", self.session.execute(stmt))
        return result.rowcount
