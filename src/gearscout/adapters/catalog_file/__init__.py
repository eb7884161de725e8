"""Read catalog entries from JSON seed files."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from .schema import CatalogFile, CatalogRecord

if TYPE_CHECKING:
    from pathlib import Path

    from gearscout.domain.model import CatalogEntry

log = getLogger(__name__)


def load_catalog_file(path: Path) -> list[CatalogEntry]:
    """Parse a seed file: either ``{"entries": [...]}`` or a bare list of records.

    Raises ``pydantic.ValidationError`` when any record is malformed.
    """

    raw = path.read_text(encoding="utf-8")
    if raw.lstrip().startswith("["):
        raw = f'{{"entries": {raw}}}'
    document = CatalogFile.model_validate_json(raw)
    log.info("Read %d catalog records from %s", len(document.entries), path)
    return [record.to_entry() for record in document.entries]


__all__ = ["CatalogFile", "CatalogRecord", "load_catalog_file"]
