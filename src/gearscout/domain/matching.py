"""Resolve postings to catalog entries.

Matching is a double gate: the entry's brand (or a static alias) must appear in
the posting, and the posting must carry model-level evidence for the entry.
A brand on its own never produces a candidate. Every qualifying entry is
returned; the selection policy decides whether the best one is trustworthy or
needs a human.
"""

from __future__ import annotations

import math
from collections import defaultdict
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, Final

from rapidfuzz.distance import Levenshtein

from gearscout.domain.classification import is_accessory_only
from gearscout.domain.evidence import CategorySignal, category_signal, find_brand, price_gap
from gearscout.domain.model import EvidenceKind, MatchResult
from gearscout.domain.text import digit_runs, normalize, normalize_brand, words

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from gearscout.domain.bundles import BundleAnalysis
    from gearscout.domain.evidence import BrandEvidence
    from gearscout.domain.lexicon import Lexicon
    from gearscout.domain.model import CatalogEntry, Posting

log = getLogger(__name__)

BRAND_WEIGHT: Final[float] = 0.4
EVIDENCE_WEIGHT: Final[float] = 0.5
CATEGORY_WEIGHT: Final[float] = 0.1
SIGNIFICANT_WORD_LENGTH: Final[int] = 2
NO_MATCH_WARNING: Final[str] = "No catalog entry had both brand and model evidence"
ACCESSORY_ONLY_WARNING: Final[str] = "Posting sells accessories only, not the gear itself"


@dataclass(frozen=True, slots=True)
class MatchPolicy:
    """Thresholds and penalties for scoring candidates."""

    fuzzy_threshold: float = 0.80
    review_threshold: float = 0.6
    relative_price_gap: float = 3.0
    absolute_price_gap: float = 2_000.0
    price_penalty: float = 0.6
    category_penalty: float = 0.7
    ambiguity_margin: float = 0.05


@dataclass(frozen=True, slots=True)
class ModelEvidence:
    kind: EvidenceKind
    strength: float


@dataclass(frozen=True, slots=True)
class MatchCandidate:
    entry: CatalogEntry
    evidence: ModelEvidence
    brand: BrandEvidence
    confidence: float
    warnings: tuple[str, ...] = field(default_factory=tuple)

    @property
    def score(self) -> float:
        return self.confidence


@dataclass(frozen=True, slots=True)
class _IndexedEntry:
    entry: CatalogEntry
    model: str
    tokens: tuple[str, ...]
    significant: tuple[str, ...]
    digits: tuple[str, ...]

    @classmethod
    def build(cls, entry: CatalogEntry) -> _IndexedEntry:
        model = normalize(entry.name, entry.brand)
        return cls(
            entry=entry,
            model=model,
            tokens=tuple(model.split()),
            significant=tuple(
                word for word in words(model) if len(word) > SIGNIFICANT_WORD_LENGTH
            ),
            digits=tuple(digit_runs(model)),
        )


@dataclass(slots=True)
class _PostingText:
    text: str
    tokens: list[str]
    word_set: frozenset[str]
    digit_set: frozenset[str]

    @classmethod
    def build(cls, posting: Posting) -> _PostingText:
        text = normalize(posting.text)
        return cls(
            text=text,
            tokens=text.split(),
            word_set=frozenset(words(text)),
            digit_set=frozenset(digit_runs(text)),
        )


def _bounded_occurrence(text: str, needle: str) -> bool:
    """Find ``needle`` in ``text`` with no alphanumeric character on either side."""

    if not needle:
        return False
    start = text.find(needle)
    while start != -1:
        end = start + len(needle)
        before_ok = start == 0 or not text[start - 1].isalnum()
        after_ok = end == len(text) or not text[end].isalnum()
        if before_ok and after_ok:
            return True
        start = text.find(needle, start + 1)
    return False


def _fuzzy_similarity(posting: _PostingText, indexed: _IndexedEntry, cutoff: float) -> float:
    size = len(indexed.tokens)
    if size == 0 or size > len(posting.tokens):
        return 0.0
    model_length = len(indexed.model)
    best = 0.0
    for index in range(len(posting.tokens) - size + 1):
        window = " ".join(posting.tokens[index : index + size])
        # similarity can't reach the cutoff when lengths differ too much
        shorter, longer = sorted((len(window), model_length))
        if longer == 0 or shorter / longer < cutoff:
            continue
        if digit_runs(window) != list(indexed.digits):
            continue
        similarity = Levenshtein.normalized_similarity(window, indexed.model, score_cutoff=cutoff)
        best = max(best, similarity)
    return best


def _word_overlap(posting: _PostingText, indexed: _IndexedEntry) -> float:
    significant = indexed.significant
    if not significant:
        return 0.0
    if not set(indexed.digits) <= posting.digit_set:
        return 0.0
    hits = sum(1 for word in significant if word in posting.word_set)
    required = len(significant) if len(significant) <= 2 else math.ceil(len(significant) / 2)
    if hits < required:
        return 0.0
    return hits / len(significant)


def _model_evidence(
    posting: _PostingText,
    indexed: _IndexedEntry,
    policy: MatchPolicy,
) -> ModelEvidence | None:
    """Return the strongest model-level evidence, or ``None`` when there is none."""

    if _bounded_occurrence(posting.text, indexed.model):
        return ModelEvidence(EvidenceKind.EXACT, 1.0)
    similarity = _fuzzy_similarity(posting, indexed, policy.fuzzy_threshold)
    if similarity >= policy.fuzzy_threshold:
        return ModelEvidence(EvidenceKind.FUZZY, round(similarity * 0.9, 4))
    overlap = _word_overlap(posting, indexed)
    if overlap:
        return ModelEvidence(EvidenceKind.WORD_OVERLAP, round(0.5 + 0.3 * overlap, 4))
    return None


class CatalogMatcher:
    """Match postings against a catalog snapshot loaded once per run."""

    def __init__(
        self,
        entries: Iterable[CatalogEntry],
        *,
        lexicon: Lexicon,
        policy: MatchPolicy | None = None,
    ) -> None:
        self.lexicon = lexicon
        self.policy = policy or MatchPolicy()
        self._by_brand: dict[str, list[_IndexedEntry]] = defaultdict(list)
        self._brand_names: dict[str, str] = {}
        for entry in entries:
            key = normalize_brand(entry.brand)
            self._by_brand[key].append(_IndexedEntry.build(entry))
            self._brand_names.setdefault(key, entry.brand)

    def __len__(self) -> int:
        return sum(len(entries) for entries in self._by_brand.values())

    def is_accessory_only(self, posting: Posting) -> bool:
        return is_accessory_only(
            posting.title, self.lexicon, brands=self._brand_names.values()
        )

    def candidates(self, posting: Posting, *, price: float | None = None) -> list[MatchCandidate]:
        if self.is_accessory_only(posting):
            log.debug("Skipping accessory-only posting %s", posting.permalink)
            return []
        prepared = _PostingText.build(posting)
        found: list[tuple[MatchCandidate, _IndexedEntry]] = []
        for key, indexed_entries in self._by_brand.items():
            brand = find_brand(prepared.text, self._brand_names[key], self.lexicon)
            if brand is None:
                continue
            for indexed in indexed_entries:
                evidence = _model_evidence(prepared, indexed, self.policy)
                if evidence is None:
                    continue
                found.append((self._score(prepared, indexed, brand, evidence, price), indexed))

        kept = _drop_subsumed(found)
        kept.sort(key=lambda c: (-c.confidence, -c.evidence.strength, c.entry.display_name))
        return kept

    def _score(
        self,
        posting: _PostingText,
        indexed: _IndexedEntry,
        brand: BrandEvidence,
        evidence: ModelEvidence,
        price: float | None,
    ) -> MatchCandidate:
        entry = indexed.entry
        signal = category_signal(posting.text, entry.category, self.lexicon)
        confidence = (
            BRAND_WEIGHT * brand.score
            + EVIDENCE_WEIGHT * evidence.strength
            + (CATEGORY_WEIGHT if signal is CategorySignal.SUPPORTED else 0.0)
        )
        warnings: list[str] = []

        band = entry.used_price_band()
        if price is not None and band is not None:
            gap = price_gap(price, band)
            if gap is not None and gap.exceeds(
                relative=self.policy.relative_price_gap,
                absolute=self.policy.absolute_price_gap,
            ):
                confidence *= self.policy.price_penalty
                warnings.append(gap.describe())

        if signal is CategorySignal.CONTRADICTED:
            confidence *= self.policy.category_penalty
            warnings.append(f"Posting wording contradicts the {entry.category} category")

        return MatchCandidate(
            entry=entry,
            evidence=evidence,
            brand=brand,
            confidence=round(min(max(confidence, 0.0), 1.0), 4),
            warnings=tuple(warnings),
        )


def _drop_subsumed(found: Sequence[tuple[MatchCandidate, _IndexedEntry]]) -> list[MatchCandidate]:
    """Drop exact candidates whose model name sits inside a longer exact candidate's."""

    exact_models = [
        indexed.model
        for candidate, indexed in found
        if candidate.evidence.kind is EvidenceKind.EXACT
    ]
    kept: list[MatchCandidate] = []
    for candidate, indexed in found:
        if candidate.evidence.kind is EvidenceKind.EXACT and any(
            indexed.model != other and indexed.model in other for other in exact_models
        ):
            continue
        kept.append(candidate)
    return kept


def match_posting(
    posting: Posting,
    catalog: Iterable[CatalogEntry],
    *,
    lexicon: Lexicon,
    policy: MatchPolicy | None = None,
    price: float | None = None,
) -> list[MatchCandidate]:
    """Return every catalog entry the posting qualifies for, best first."""

    return CatalogMatcher(catalog, lexicon=lexicon, policy=policy).candidates(posting, price=price)


def select_match(
    posting: Posting,
    candidates: Sequence[MatchCandidate],
    *,
    price: float | None,
    bundle: BundleAnalysis,
    policy: MatchPolicy | None = None,
) -> MatchResult:
    """Turn ranked candidates into a match result, flagging anything uncertain."""

    policy = policy or MatchPolicy()
    result = MatchResult(
        posting=posting,
        price=price,
        adjusted_price=bundle.adjusted_price if bundle.is_bundle else None,
        is_bundle=bundle.is_bundle,
        bundle_note=bundle.note,
    )
    if not candidates:
        result.warnings = [NO_MATCH_WARNING]
        return result

    best = candidates[0]
    warnings = list(best.warnings)
    needs_review = best.confidence < policy.review_threshold

    if not bundle.is_bundle:
        rivals = [
            candidate
            for candidate in candidates[1:]
            if candidate.entry.id != best.entry.id
            and best.confidence - candidate.confidence <= policy.ambiguity_margin
        ]
        if rivals:
            names = ", ".join(rival.entry.display_name for rival in rivals)
            warnings.append(f"Ambiguous match: also fits {names}")
            needs_review = True

    if bundle.is_bundle and not bundle.decomposed:
        warnings.append("Bundle price could not be decomposed into a single-item price")
        needs_review = True

    result.entry_id = best.entry.id
    result.confidence = best.confidence
    result.warnings = warnings
    result.alternatives = [candidate.entry.id for candidate in candidates[1:]]
    result.requires_manual_review = needs_review
    if needs_review:
        log.debug("Flagged %s for review: %s", posting.permalink, "; ".join(warnings))
    return result
