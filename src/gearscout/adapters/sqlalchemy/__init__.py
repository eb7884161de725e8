"""SQLAlchemy adapter package for gearscout."""

from __future__ import annotations

from .mappings import (
    catalog_entry_table,
    create_all_tables,
    listing_table,
    mapper_registry,
    start_mappers,
)
from .repositories import SqlAlchemyCatalogRepository, SqlAlchemyListingRepository
from .unit_of_work import SqlAlchemyUnitOfWork, StartupError, shutdown, startup

__all__ = [
    "SqlAlchemyCatalogRepository",
    "SqlAlchemyListingRepository",
    "SqlAlchemyUnitOfWork",
    "StartupError",
    "catalog_entry_table",
    "create_all_tables",
    "listing_table",
    "mapper_registry",
    "shutdown",
    "start_mappers",
    "startup",
]
