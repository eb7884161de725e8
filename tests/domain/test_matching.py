from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from gearscout.domain.bundles import BundleAnalysis
from gearscout.domain.matching import (
    NO_MATCH_WARNING,
    CatalogMatcher,
    MatchPolicy,
    match_posting,
    select_match,
)
from gearscout.domain.model import Category, EvidenceKind
from tests.helpers.catalog import make_entry, make_posting

if TYPE_CHECKING:
    from gearscout.domain.lexicon import Lexicon

NOT_A_BUNDLE = BundleAnalysis(is_bundle=False, adjusted_price=None)


def test_exact_model_match_with_brand(lexicon: Lexicon) -> None:
    entry = make_entry("HD600", price_new=400.0)
    posting = make_posting("[WTS] Sennheiser HD600 - $500 shipped OBO")

    candidates = match_posting(posting, [entry], lexicon=lexicon, price=500.0)

    assert len(candidates) == 1
    candidate = candidates[0]
    assert candidate.entry is entry
    assert candidate.brand.token == "sennheiser"
    assert candidate.evidence.kind is EvidenceKind.EXACT
    assert candidate.confidence == pytest.approx(0.9)
    assert candidate.warnings == ()


def test_spacing_variants_still_match_exactly(lexicon: Lexicon) -> None:
    entry = make_entry("HD 650")
    posting = make_posting("[WTS] Sennheiser HD-650, lightly used")

    candidates = match_posting(posting, [entry], lexicon=lexicon)

    assert [c.evidence.kind for c in candidates] == [EvidenceKind.EXACT]


def test_brand_alias_scores_lower_than_brand_name(lexicon: Lexicon) -> None:
    entry = make_entry("HD650")
    posting = make_posting("[WTS] Senn HD650 $300")

    candidates = match_posting(posting, [entry], lexicon=lexicon)

    assert len(candidates) == 1
    assert candidates[0].brand.score == pytest.approx(0.9)
    assert candidates[0].confidence == pytest.approx(0.86)


def test_brand_without_model_evidence_is_no_candidate(lexicon: Lexicon) -> None:
    entry = make_entry("HD600")
    posting = make_posting("[WTS] Sennheiser Momentum 4 $200")

    assert match_posting(posting, [entry], lexicon=lexicon) == []


def test_accessory_only_posting_is_no_candidate(lexicon: Lexicon) -> None:
    entry = make_entry("HD600", price_new=400.0)
    posting = make_posting("[WTS] Sennheiser HD600 stock cable only - $80 shipped")
    matcher = CatalogMatcher([entry], lexicon=lexicon)

    assert matcher.is_accessory_only(posting)
    assert matcher.candidates(posting, price=80.0) == []


def test_bundle_named_by_brand_alias_still_matches(lexicon: Lexicon) -> None:
    entry = make_entry("HD650")
    posting = make_posting("HD 650 + cable + case - $300")

    candidates = match_posting(posting, [entry], lexicon=lexicon)

    assert [c.evidence.kind for c in candidates] == [EvidenceKind.EXACT]


def test_catalog_brand_clears_accessory_wording(lexicon: Lexicon) -> None:
    entry = make_entry("Aria", brand="Moondrop", price_new=80.0)
    posting = make_posting("[WTS] Moondrop Aria with tips $60")

    candidates = match_posting(posting, [entry], lexicon=lexicon)

    assert [c.entry for c in candidates] == [entry]


def test_model_without_brand_is_no_candidate(lexicon: Lexicon) -> None:
    entry = make_entry("Clear", brand="Focal")
    posting = make_posting("[WTS] Clear acrylic headphone stand $20")

    assert match_posting(posting, [entry], lexicon=lexicon) == []


def test_fuzzy_evidence_tolerates_typos(lexicon: Lexicon) -> None:
    entry = make_entry("Arya Stealth", brand="Hifiman")
    posting = make_posting("[WTS] Hifiman Arya Stelth $900")

    candidates = match_posting(posting, [entry], lexicon=lexicon)

    assert len(candidates) == 1
    assert candidates[0].evidence.kind is EvidenceKind.FUZZY
    assert candidates[0].evidence.strength == pytest.approx(0.825, abs=1e-3)


def test_word_overlap_evidence(lexicon: Lexicon) -> None:
    entry = make_entry("Clear MG Professional", brand="Focal")
    posting = make_posting("[WTS] Focal Professional Clear headphones $800")

    candidates = match_posting(posting, [entry], lexicon=lexicon)

    assert len(candidates) == 1
    assert candidates[0].evidence.kind is EvidenceKind.WORD_OVERLAP
    assert candidates[0].evidence.strength == pytest.approx(0.8)
    # category keyword support adds its weight
    assert candidates[0].confidence == pytest.approx(0.9)


def test_different_model_number_never_matches(lexicon: Lexicon) -> None:
    hd600 = make_entry("HD600")
    hd650 = make_entry("HD650")
    posting = make_posting("[WTS] Sennheiser HD650 $300")

    candidates = match_posting(posting, [hd600, hd650], lexicon=lexicon)

    assert [c.entry for c in candidates] == [hd650]


def test_shorter_exact_name_inside_longer_one_is_dropped(lexicon: Lexicon) -> None:
    hd800 = make_entry("HD800")
    hd800s = make_entry("HD800 S")
    posting = make_posting("[WTS] Sennheiser HD800 S $1,100")

    candidates = match_posting(posting, [hd800, hd800s], lexicon=lexicon)

    assert [c.entry for c in candidates] == [hd800s]


def test_price_far_outside_used_band_lowers_confidence(lexicon: Lexicon) -> None:
    entry = make_entry("HD600", price_new=400.0)
    posting = make_posting("[WTS] Sennheiser HD600 $1,500")

    candidates = match_posting(posting, [entry], lexicon=lexicon, price=1500.0)
    result = select_match(posting, candidates, price=1500.0, bundle=NOT_A_BUNDLE)

    assert candidates[0].confidence == pytest.approx(0.54)
    assert any("expected used range" in warning for warning in candidates[0].warnings)
    assert result.entry_id == entry.id
    assert result.requires_manual_review


def test_category_contradiction_lowers_confidence(lexicon: Lexicon) -> None:
    entry = make_entry("Blessing 2", brand="Moondrop", category=Category.IN_EAR_MONITOR)
    posting = make_posting("[WTS] Moondrop Blessing 2 headphones $250")

    candidates = match_posting(posting, [entry], lexicon=lexicon)

    assert candidates[0].confidence == pytest.approx(0.63)
    assert any("contradicts" in warning for warning in candidates[0].warnings)


def test_matcher_reuses_catalog_snapshot(lexicon: Lexicon) -> None:
    matcher = CatalogMatcher([make_entry("HD600"), make_entry("HD650")], lexicon=lexicon)

    assert len(matcher) == 2
    assert matcher.candidates(make_posting("[WTS] Sennheiser HD600 $300"))
    assert matcher.candidates(make_posting("[WTS] Sennheiser HD650 $300"))


def test_select_match_without_candidates_is_unmatched() -> None:
    posting = make_posting("[WTS] Mystery headphones $100")

    result = select_match(posting, [], price=100.0, bundle=NOT_A_BUNDLE)

    assert result.entry_id is None
    assert result.confidence == 0.0
    assert result.warnings == [NO_MATCH_WARNING]
    assert not result.requires_manual_review


def test_select_match_flags_ambiguous_candidates(lexicon: Lexicon) -> None:
    hd600 = make_entry("HD600")
    he400se = make_entry("HE400se", brand="Hifiman")
    posting = make_posting("[WTS] Sennheiser HD600 / Hifiman HE400se - $250 each")

    candidates = match_posting(posting, [hd600, he400se], lexicon=lexicon)
    result = select_match(posting, candidates, price=250.0, bundle=NOT_A_BUNDLE)

    assert len(candidates) == 2
    assert result.requires_manual_review
    assert any(warning.startswith("Ambiguous match") for warning in result.warnings)
    assert result.alternatives == [candidates[1].entry.id]


def test_select_match_flags_undecomposable_bundle(lexicon: Lexicon) -> None:
    entry = make_entry("HD650")
    posting = make_posting("[WTS] Sennheiser HD650 and Magni combo $350")
    bundle = BundleAnalysis(is_bundle=True, adjusted_price=350.0, confidence=40, note="generic")

    candidates = match_posting(posting, [entry], lexicon=lexicon)
    result = select_match(posting, candidates, price=350.0, bundle=bundle)

    assert result.entry_id == entry.id
    assert result.is_bundle
    assert result.adjusted_price == 350.0
    assert result.bundle_note == "generic"
    assert result.requires_manual_review


def test_review_threshold_is_configurable(lexicon: Lexicon) -> None:
    entry = make_entry("HD650")
    posting = make_posting("[WTS] Senn HD650 $300")
    strict = MatchPolicy(review_threshold=0.95)

    candidates = match_posting(posting, [entry], lexicon=lexicon, policy=strict)
    result = select_match(posting, candidates, price=300.0, bundle=NOT_A_BUNDLE, policy=strict)

    assert result.requires_manual_review
    assert result.confidence == pytest.approx(0.86)
