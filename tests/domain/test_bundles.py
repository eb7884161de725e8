from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from gearscout.domain.bundles import (
    ACCESSORY_CONFIDENCE,
    GENERIC_CONFIDENCE,
    MULTI_PRICE_CONFIDENCE,
    analyze_bundle,
    find_accessories,
    is_bundle_text,
)
from gearscout.domain.pricing import extract_price, prepare_text

if TYPE_CHECKING:
    from gearscout.domain.lexicon import Lexicon


def test_accessory_bundle_subtracts_estimate_per_accessory(lexicon: Lexicon) -> None:
    title = "HD 650 + cable + case - $300"
    price = extract_price(title)

    analysis = analyze_bundle(title, None, price, lexicon=lexicon)

    assert price == 300.0
    assert analysis.is_bundle
    assert analysis.accessories == ("cable", "case")
    assert analysis.adjusted_price == 250.0
    assert analysis.adjusted_price < price
    assert analysis.confidence == ACCESSORY_CONFIDENCE
    assert analysis.note is not None
    assert "cable, case" in analysis.note
    assert analysis.decomposed


def test_accessory_deduction_is_floored(lexicon: Lexicon) -> None:
    title = "HD 650 + cable + case + pads + tips - $100"

    analysis = analyze_bundle(title, None, 100.0, lexicon=lexicon)

    assert len(analysis.accessories) == 4
    assert analysis.adjusted_price == 70.0


def test_multi_item_bundle_uses_highest_price(lexicon: Lexicon) -> None:
    title = "[WTS] Bundle: Sennheiser HD650 $300 + Schiit Magni $80"
    price = extract_price(title)

    analysis = analyze_bundle(title, None, price, lexicon=lexicon)

    assert price == 80.0
    assert analysis.is_bundle
    assert analysis.adjusted_price == 300.0
    assert analysis.confidence == MULTI_PRICE_CONFIDENCE
    assert analysis.note is not None
    assert "$80, $300" in analysis.note


def test_generic_bundle_keeps_listed_price_and_is_not_decomposed(lexicon: Lexicon) -> None:
    title = "[WTS] HD650 and Magni combo - $350"

    analysis = analyze_bundle(title, None, 350.0, lexicon=lexicon)

    assert analysis.is_bundle
    assert analysis.adjusted_price == 350.0
    assert analysis.confidence == GENERIC_CONFIDENCE
    assert analysis.note is not None
    assert not analysis.decomposed


def test_accessories_without_price_fall_back_to_generic(lexicon: Lexicon) -> None:
    analysis = analyze_bundle("HD650 + cable, make an offer", None, None, lexicon=lexicon)

    assert analysis.is_bundle
    assert analysis.adjusted_price is None
    assert analysis.confidence == GENERIC_CONFIDENCE
    assert analysis.accessories == ("cable",)


def test_single_item_is_not_a_bundle(lexicon: Lexicon) -> None:
    analysis = analyze_bundle("[WTS] Sennheiser HD600 - $500", None, 500.0, lexicon=lexicon)

    assert not analysis.is_bundle
    assert analysis.adjusted_price == 500.0
    assert analysis.confidence == 0
    assert analysis.note is None


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("hd600 with original box", True),
        ("hd600 & magni", True),
        ("comes with two cables", True),
        ("hd600 in great condition", False),
        ("without box", False),
        ("slot machine", False),
    ],
)
def test_is_bundle_text_matches_whole_words(lexicon: Lexicon, text: str, expected: bool) -> None:
    assert is_bundle_text(prepare_text(text), lexicon) is expected


def test_find_accessories_prefers_longest_keyword(lexicon: Lexicon) -> None:
    text = prepare_text("HD600 with original box, ear pads and a 4.4mm cable")

    assert find_accessories(text, lexicon) == ["original box", "ear pads", "cable"]
