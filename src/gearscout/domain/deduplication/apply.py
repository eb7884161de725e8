"""Apply merge plans to the catalog store.

Responsibilities of this stage:
- preview plans without mutating anything and fingerprint the preview
- refuse destructive runs without a matching preview
- snapshot the catalog before the first destructive step
- per group: update the survivor, then repoint listings and delete the losers

Groups are independent. A failure on one group is recorded and the next group
runs; nothing is rolled back across groups. Deletion only happens after the
survivor's update has committed.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass, field
from datetime import datetime
from logging import getLogger
from typing import TYPE_CHECKING

from gearscout.domain.errors import (
    CatalogEntryNotFoundError,
    GearscoutError,
    MergePreconditionError,
)
from gearscout.domain.model import MergeStatus, utcnow
from gearscout.domain.retry import DEFAULT_RETRY_ATTEMPTS, run_with_retry

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from pathlib import Path
    from uuid import UUID

    from gearscout.domain.deduplication.plan import MergePlan
    from gearscout.domain.ports.snapshots import SnapshotWriter
    from gearscout.domain.ports.unit_of_work import CatalogUnitOfWork

log = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class MergePreview:
    """Recorded dry run that authorizes applying the same plans."""

    fingerprint: str
    groups: int
    deletions: int
    created_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict[str, object]:
        return {
            "fingerprint": self.fingerprint,
            "groups": self.groups,
            "deletions": self.deletions,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, payload: dict[str, object]) -> MergePreview:
        return cls(
            fingerprint=str(payload["fingerprint"]),
            groups=int(str(payload["groups"])),
            deletions=int(str(payload["deletions"])),
            created_at=datetime.fromisoformat(str(payload["created_at"])),
        )


@dataclass(frozen=True, slots=True)
class MergeOutcome:
    keep_id: UUID
    delete_ids: tuple[UUID, ...]
    status: MergeStatus
    error: str | None = None
    changes: dict[str, object] = field(default_factory=dict)


@dataclass(slots=True)
class MergeReport:
    dry_run: bool
    outcomes: list[MergeOutcome] = field(default_factory=list)
    snapshot: Path | None = None

    @property
    def merged(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.status is MergeStatus.MERGED)

    @property
    def failed(self) -> int:
        return sum(
            1
            for outcome in self.outcomes
            if outcome.status in {MergeStatus.UPDATE_FAILED, MergeStatus.DELETE_FAILED}
        )


def plans_fingerprint(plans: Sequence[MergePlan]) -> str:
    """Stable digest of what the plans would do."""

    described = sorted(
        (
            {
                "keep": str(plan.keep_id),
                "delete": sorted(str(entry_id) for entry_id in plan.delete_ids),
                "resolved": {name: repr(value) for name, value in sorted(plan.resolved.items())},
            }
            for plan in plans
        ),
        key=lambda item: str(item["keep"]),
    )
    encoded = json.dumps(described, sort_keys=True).encode("utf-8")
    return hashlib.sha256(encoded).hexdigest()


def preview_merge_plans(plans: Sequence[MergePlan]) -> MergePreview:
    return MergePreview(
        fingerprint=plans_fingerprint(plans),
        groups=len(plans),
        deletions=sum(len(plan.delete_ids) for plan in plans),
    )


def apply_merge_plans(
    plans: Sequence[MergePlan],
    *,
    unit_of_work_factory: Callable[[], CatalogUnitOfWork],
    dry_run: bool = True,
    preview: MergePreview | None = None,
    snapshot_writer: SnapshotWriter | None = None,
    retry_attempts: int = DEFAULT_RETRY_ATTEMPTS,
) -> MergeReport:
    """Preview or execute merge plans, recording one outcome per group."""

    if dry_run:
        report = MergeReport(dry_run=True)
        for plan in plans:
            report.outcomes.append(
                MergeOutcome(
                    keep_id=plan.keep_id,
                    delete_ids=plan.delete_ids,
                    status=MergeStatus.PREVIEWED,
                    changes=plan.changes(),
                )
            )
        log.info("Dry run: %d merge groups previewed, nothing changed", len(plans))
        return report

    if preview is None:
        raise MergePreconditionError("Destructive merge requires a prior dry-run preview")
    if preview.fingerprint != plans_fingerprint(plans):
        raise MergePreconditionError(
            "Merge plans changed since the dry-run preview; run the preview again"
        )
    if snapshot_writer is None:
        raise MergePreconditionError("Destructive merge requires a snapshot writer")

    report = MergeReport(dry_run=False)
    with unit_of_work_factory() as uow:
        report.snapshot = snapshot_writer(uow.repositories.catalog.list_all())
    log.info("Wrote catalog snapshot to %s", report.snapshot)

    for plan in plans:
        report.outcomes.append(
            _apply_plan(plan, unit_of_work_factory=unit_of_work_factory, attempts=retry_attempts)
        )

    log.info(
        "Merge finished: %d merged, %d failed, snapshot=%s",
        report.merged,
        report.failed,
        report.snapshot,
    )
    return report


def _apply_plan(
    plan: MergePlan,
    *,
    unit_of_work_factory: Callable[[], CatalogUnitOfWork],
    attempts: int,
) -> MergeOutcome:
    changes = plan.changes()

    def update_canonical() -> None:
        with unit_of_work_factory() as uow:
            if not uow.repositories.catalog.update_fields(plan.keep_id, changes):
                raise CatalogEntryNotFoundError(f"Canonical entry {plan.keep_id} no longer exists")
            uow.commit()

    def delete_losers() -> None:
        with unit_of_work_factory() as uow:
            if uow.repositories.catalog.get(plan.keep_id) is None:
                raise CatalogEntryNotFoundError(f"Canonical entry {plan.keep_id} no longer exists")
            uow.repositories.listings.reassign_entries(plan.delete_ids, plan.keep_id)
            uow.repositories.catalog.delete(plan.delete_ids)
            uow.commit()

    try:
        if changes:
            run_with_retry(update_canonical, attempts=attempts)
    except GearscoutError as exc:
        log.warning("Merge into %s failed at update: %s", plan.keep_id, exc)
        return MergeOutcome(
            keep_id=plan.keep_id,
            delete_ids=plan.delete_ids,
            status=MergeStatus.UPDATE_FAILED,
            error=str(exc),
            changes=changes,
        )

    try:
        run_with_retry(delete_losers, attempts=attempts)
    except GearscoutError as exc:
        log.warning("Merge into %s updated but deletion failed: %s", plan.keep_id, exc)
        return MergeOutcome(
            keep_id=plan.keep_id,
            delete_ids=plan.delete_ids,
            status=MergeStatus.DELETE_FAILED,
            error=str(exc),
            changes=changes,
        )

    log.info("Merged %d entries into %s", len(plan.delete_ids), plan.keep.display_name)
    return MergeOutcome(
        keep_id=plan.keep_id,
        delete_ids=plan.delete_ids,
        status=MergeStatus.MERGED,
        changes=changes,
    )
