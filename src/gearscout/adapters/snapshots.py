"""JSON files for catalog snapshots and the pending merge preview."""

from __future__ import annotations

import json
from dataclasses import asdict
from enum import Enum
from logging import getLogger
from typing import TYPE_CHECKING, Any, cast
from uuid import UUID

from gearscout.domain.deduplication import MergePreview
from gearscout.domain.model import utcnow

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

    from gearscout.domain.model import CatalogEntry

log = getLogger(__name__)


def _json_default(value: object) -> object:
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, Enum):
        return value.value
    if hasattr(value, "isoformat"):
        return cast(Any, value).isoformat()
    raise TypeError(f"Cannot serialise {type(value).__name__}")


class JsonSnapshotWriter:
    """Write the full catalog to a timestamped JSON file before a destructive merge."""

    def __init__(self, directory: Path) -> None:
        self.directory = directory

    def __call__(self, entries: Sequence[CatalogEntry]) -> Path:
        self.directory.mkdir(parents=True, exist_ok=True)
        stamp = utcnow().strftime("%Y%m%dT%H%M%S%fZ")
        path = self.directory / f"catalog-{stamp}.json"
        payload = {
            "written_at": utcnow().isoformat(),
            "entries": [asdict(entry) for entry in entries],
        }
        path.write_text(
            json.dumps(payload, default=_json_default, indent=2, sort_keys=True),
            encoding="utf-8",
        )
        log.info("Snapshot of %d catalog entries written to %s", len(entries), path)
        return path


class JsonPreviewStore:
    """Keep the last dry-run merge preview on disk."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def save(self, preview: MergePreview) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(preview.to_dict(), indent=2), encoding="utf-8")
        log.info("Saved merge preview %s to %s", preview.fingerprint[:12], self.path)

    def load(self) -> MergePreview | None:
        if not self.path.exists():
            return None
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
            return MergePreview.from_dict(payload)
        except (ValueError, KeyError, TypeError) as exc:
            log.warning("Ignoring unreadable merge preview %s: %s", self.path, exc)
            return None

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)
