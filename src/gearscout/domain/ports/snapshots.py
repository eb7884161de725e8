"""Ports for recovery snapshots and persisted merge previews."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

    from gearscout.domain.deduplication.apply import MergePreview
    from gearscout.domain.model import CatalogEntry


@runtime_checkable
class SnapshotWriter(Protocol):
    """Write a before-state copy of catalog entries and return where it went."""

    def __call__(self, entries: Sequence[CatalogEntry]) -> Path: ...


@runtime_checkable
class PreviewStore(Protocol):
    """Keep the latest dry-run preview between the preview and the destructive run."""

    def save(self, preview: MergePreview) -> None: ...

    def load(self) -> MergePreview | None: ...

    def clear(self) -> None: ...
