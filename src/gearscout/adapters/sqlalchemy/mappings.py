"""SQLAlchemy mapping metadata for the catalog and match results."""

from __future__ import annotations

import json
import logging
import uuid
from datetime import UTC, datetime
from enum import StrEnum
from functools import cache
from typing import TYPE_CHECKING, Any, cast

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Dialect,
    Enum,
    Float,
    Index,
    String,
    Table,
    Text,
    TypeDecorator,
    UniqueConstraint,
    Uuid,
    orm,
)
from sqlalchemy.orm import composite

from gearscout.domain.model import (
    Availability,
    CatalogEntry,
    Category,
    MatchResult,
    Posting,
    ReviewStatus,
)

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)

UUIDColumnType = Uuid[uuid.UUID]


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


class StringListType(TypeDecorator[list[str]]):
    impl = Text
    cache_ok = True

    def process_bind_param(self, value: list[str] | None, dialect: Dialect) -> str:
        _ = dialect
        return json.dumps(list(value or []))

    def process_result_value(self, value: str | None, dialect: Dialect) -> list[str]:
        _ = dialect
        if value is None:
            return []
        loaded = json.loads(value)
        if not isinstance(loaded, list):
            return []
        items = cast(list[Any], loaded)
        return [item for item in items if isinstance(item, str)]


class UUIDListType(TypeDecorator[list[uuid.UUID]]):
    impl = Text
    cache_ok = True

    def process_bind_param(self, value: list[uuid.UUID] | None, dialect: Dialect) -> str:
        _ = dialect
        return json.dumps([str(item) for item in value or []])

    def process_result_value(self, value: str | None, dialect: Dialect) -> list[uuid.UUID]:
        _ = dialect
        if value is None:
            return []
        loaded = json.loads(value)
        if not isinstance(loaded, list):
            return []
        items = cast(list[Any], loaded)
        return [uuid.UUID(item) for item in items if isinstance(item, str)]


def _enum_type(enum_cls: type[StrEnum]) -> Enum:
    # persist the string values rather than member names
    return Enum(
        enum_cls,
        native_enum=False,
        values_callable=lambda members: [member.value for member in members],
    )


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

catalog_entry_table = Table(
    "catalog_entry",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("brand", String, nullable=False),
    Column("name", String, nullable=False),
    Column("category", _enum_type(Category), nullable=False),
    Column("price_new", Float, nullable=True),
    Column("price_used_min", Float, nullable=True),
    Column("price_used_max", Float, nullable=True),
    Column("description", Text, nullable=True),
    Column("image_url", String, nullable=True),
    Column("product_url", String, nullable=True),
    Column("impedance", Float, nullable=True),
    Column("sensitivity", Float, nullable=True),
    Column("driver_type", String, nullable=True),
    Column("sound_signature", String, nullable=True),
    Column("created_at", UTCDateTime(), nullable=False),
    Column("updated_at", UTCDateTime(), nullable=True),
    Index("ix_catalog_entry_brand_category", "brand", "category"),
)

# posting columns carry private keys so they only surface through the composite
listing_table = Table(
    "listing",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("permalink", String, key="_posting_permalink", nullable=False),
    Column("title", String, key="_posting_title", nullable=False),
    Column("body", Text, key="_posting_body", nullable=True),
    Column("source", String, key="_posting_source", nullable=False),
    Column("author", String, key="_posting_author", nullable=True),
    Column("posted_at", UTCDateTime(), key="_posting_posted_at", nullable=False),
    Column("flair", String, key="_posting_flair", nullable=True),
    # no foreign key: merges repoint rows and deletions must not cascade into listings
    Column("entry_id", UUIDColumnType, nullable=True),
    Column("confidence", Float, nullable=False, default=0.0),
    Column("price", Float, nullable=True),
    Column("adjusted_price", Float, nullable=True),
    Column("is_bundle", Boolean, nullable=False, default=False),
    Column("bundle_note", Text, nullable=True),
    Column("warnings", StringListType(), nullable=False),
    Column("requires_manual_review", Boolean, nullable=False, default=False),
    Column("alternatives", UUIDListType(), nullable=False),
    Column("review_status", _enum_type(ReviewStatus), nullable=False),
    Column("review_note", Text, nullable=True),
    Column("reviewed_at", UTCDateTime(), nullable=True),
    Column("availability", _enum_type(Availability), nullable=False),
    Column("location", String, nullable=True),
    Column("created_at", UTCDateTime(), nullable=False),
    Column("updated_at", UTCDateTime(), nullable=True),
    UniqueConstraint("_posting_permalink"),
    Index("ix_listing_entry_id", "entry_id"),
    Index("ix_listing_review_status", "review_status"),
)


@cache
def start_mappers() -> orm.registry:
    """Configure SQLAlchemy mappers for the domain model."""

    log.info("Starting SQLAlchemy mappers")

    mapper_registry.map_imperatively(CatalogEntry, catalog_entry_table)

    mapper_registry.map_imperatively(
        MatchResult,
        listing_table,
        properties={
            "posting": composite(
                Posting,
                listing_table.c._posting_permalink,  # noqa: SLF001
                listing_table.c._posting_title,  # noqa: SLF001
                listing_table.c._posting_body,  # noqa: SLF001
                listing_table.c._posting_source,  # noqa: SLF001
                listing_table.c._posting_author,  # noqa: SLF001
                listing_table.c._posting_posted_at,  # noqa: SLF001
                listing_table.c._posting_flair,  # noqa: SLF001
            ),
        },
    )

    return mapper_registry


def create_all_tables(engine: Engine) -> None:
    """Create database tables for the mapped metadata."""

    log.info("Creating all tables")
    mapper_registry.metadata.create_all(engine)
