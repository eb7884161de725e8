"""Read-only quality audit of committed match results.

The auditor never writes. It looks for statistical anomalies that suggest a
match, or the catalog entry behind several matches, is wrong, and returns a
report for a human to act on.
"""

from __future__ import annotations

from collections import Counter, defaultdict
from dataclasses import dataclass, field
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING

from gearscout.domain.evidence import CategorySignal, category_signal, find_brand, price_gap
from gearscout.domain.model import ReviewStatus
from gearscout.domain.text import normalize

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping
    from uuid import UUID

    from gearscout.domain.lexicon import Lexicon
    from gearscout.domain.model import CatalogEntry, MatchResult

log = getLogger(__name__)


class AuditFlagKind(StrEnum):
    PRICE_OUTLIER = "price_outlier"
    BRAND_ABSENT = "brand_absent"
    CATEGORY_CONTRADICTION = "category_contradiction"
    MISSING_ENTRY = "missing_entry"


@dataclass(frozen=True, slots=True)
class AuditPolicy:
    relative_price_gap: float = 3.0
    absolute_price_gap: float = 10_000.0
    suspect_flag_count: int = 3
    high_confidence: float = 0.8
    medium_confidence: float = 0.6


@dataclass(frozen=True, slots=True)
class AuditFlag:
    kind: AuditFlagKind
    permalink: str
    entry_id: UUID
    detail: str


@dataclass(frozen=True, slots=True)
class SuspectEntry:
    entry_id: UUID
    name: str
    flagged_postings: int
    kinds: tuple[AuditFlagKind, ...]


@dataclass(slots=True)
class SourceStats:
    total: int = 0
    matched: int = 0
    unmatched: int = 0


@dataclass(slots=True)
class AuditReport:
    total: int = 0
    matched: int = 0
    unmatched: int = 0
    pending_review: int = 0
    by_source: dict[str, SourceStats] = field(default_factory=dict)
    confidence: dict[str, int] = field(
        default_factory=lambda: {"high": 0, "medium": 0, "low": 0}
    )
    flags: list[AuditFlag] = field(default_factory=list)
    suspects: list[SuspectEntry] = field(default_factory=list)

    def flags_of(self, kind: AuditFlagKind) -> list[AuditFlag]:
        return [flag for flag in self.flags if flag.kind is kind]


def _bucket(confidence: float, policy: AuditPolicy) -> str:
    if confidence >= policy.high_confidence:
        return "high"
    if confidence >= policy.medium_confidence:
        return "medium"
    return "low"


def _check(
    result: MatchResult,
    entry: CatalogEntry,
    *,
    lexicon: Lexicon,
    policy: AuditPolicy,
) -> list[AuditFlag]:
    flags: list[AuditFlag] = []
    text = normalize(result.posting.text)

    price = result.effective_price
    band = entry.used_price_band()
    if price is not None and band is not None:
        gap = price_gap(price, band)
        if gap is not None and gap.exceeds(
            relative=policy.relative_price_gap, absolute=policy.absolute_price_gap
        ):
            flags.append(
                AuditFlag(AuditFlagKind.PRICE_OUTLIER, result.permalink, entry.id, gap.describe())
            )

    if find_brand(text, entry.brand, lexicon) is None:
        flags.append(
            AuditFlag(
                AuditFlagKind.BRAND_ABSENT,
                result.permalink,
                entry.id,
                f"Posting text no longer mentions {entry.brand} or a known alias",
            )
        )

    if category_signal(text, entry.category, lexicon) is CategorySignal.CONTRADICTED:
        flags.append(
            AuditFlag(
                AuditFlagKind.CATEGORY_CONTRADICTION,
                result.permalink,
                entry.id,
                f"Posting wording contradicts the {entry.category} category",
            )
        )
    return flags


def audit_matches(
    results: Iterable[MatchResult],
    entries_by_id: Mapping[UUID, CatalogEntry],
    *,
    lexicon: Lexicon,
    policy: AuditPolicy | None = None,
) -> AuditReport:
    """Scan committed match results and report anomalies without mutating anything."""

    policy = policy or AuditPolicy()
    report = AuditReport()
    flagged_postings: dict[UUID, set[str]] = defaultdict(set)
    kinds_by_entry: dict[UUID, Counter[AuditFlagKind]] = defaultdict(Counter)

    for result in results:
        report.total += 1
        source = report.by_source.setdefault(result.posting.source or "unknown", SourceStats())
        source.total += 1
        if result.requires_manual_review and result.is_pending:
            report.pending_review += 1
        if result.entry_id is None or result.review_status is ReviewStatus.REJECTED:
            report.unmatched += 1
            source.unmatched += 1
            continue

        report.matched += 1
        source.matched += 1
        report.confidence[_bucket(result.confidence, policy)] += 1

        entry = entries_by_id.get(result.entry_id)
        if entry is None:
            report.flags.append(
                AuditFlag(
                    AuditFlagKind.MISSING_ENTRY,
                    result.permalink,
                    result.entry_id,
                    "Matched catalog entry no longer exists",
                )
            )
            continue

        for flag in _check(result, entry, lexicon=lexicon, policy=policy):
            report.flags.append(flag)
            flagged_postings[entry.id].add(flag.permalink)
            kinds_by_entry[entry.id][flag.kind] += 1

    for entry_id, permalinks in flagged_postings.items():
        if len(permalinks) < policy.suspect_flag_count:
            continue
        entry = entries_by_id[entry_id]
        report.suspects.append(
            SuspectEntry(
                entry_id=entry_id,
                name=entry.display_name,
                flagged_postings=len(permalinks),
                kinds=tuple(sorted(kinds_by_entry[entry_id])),
            )
        )
    report.suspects.sort(key=lambda suspect: (-suspect.flagged_postings, suspect.name))

    log.info(
        "Audited %d results: %d matched, %d flags, %d suspect entries",
        report.total,
        report.matched,
        len(report.flags),
        len(report.suspects),
    )
    return report
