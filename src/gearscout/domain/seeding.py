"""Seed the catalog from externally curated records."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from gearscout.domain.model import CatalogEntry
    from gearscout.domain.ports.unit_of_work import CatalogUnitOfWork

log = getLogger(__name__)


@dataclass(slots=True)
class SeedSummary:
    added: int = 0
    existing: int = 0


def seed_catalog(
    entries: Iterable[CatalogEntry],
    *,
    unit_of_work_factory: Callable[[], CatalogUnitOfWork],
) -> SeedSummary:
    """Add entries whose ``(brand, name, category)`` is not yet in the catalog.

    Existing entries are left untouched; duplicates that slip in under a
    different spelling are the deduplication pipeline's job.
    """

    summary = SeedSummary()
    with unit_of_work_factory() as uow:
        catalog = uow.repositories.catalog
        for entry in entries:
            if catalog.find(brand=entry.brand, name=entry.name, category=entry.category):
                summary.existing += 1
                continue
            catalog.add(entry)
            summary.added += 1
        uow.commit()
    log.info("Catalog seed: %d added, %d already present", summary.added, summary.existing)
    return summary
