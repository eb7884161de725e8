"""Bundle detection and single-item price adjustment."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from functools import cache
from typing import TYPE_CHECKING, Final

from gearscout.domain.lexicon import contains_keyword, keyword_pattern
from gearscout.domain.pricing import find_price_candidates, prepare_text

if TYPE_CHECKING:
    from gearscout.domain.lexicon import Lexicon

PER_ACCESSORY_ESTIMATE: Final[float] = 25.0
ACCESSORY_FLOOR_RATIO: Final[float] = 0.7

MULTI_PRICE_CONFIDENCE: Final[int] = 85
ACCESSORY_CONFIDENCE: Final[int] = 65
GENERIC_CONFIDENCE: Final[int] = 40


@dataclass(frozen=True, slots=True)
class BundleAnalysis:
    is_bundle: bool
    adjusted_price: float | None
    confidence: int = 0
    note: str | None = None
    accessories: tuple[str, ...] = field(default_factory=tuple)

    @property
    def decomposed(self) -> bool:
        """Whether a bundle's single-item price could actually be derived."""

        return self.is_bundle and self.confidence > GENERIC_CONFIDENCE


def _is_symbolic(token: str) -> bool:
    return not any(ch.isalnum() for ch in token)


@cache
def _splitter(combinators: tuple[str, ...]) -> re.Pattern[str]:
    symbols = [re.escape(token) for token in combinators if _is_symbolic(token)]
    word_tokens = tuple(token for token in combinators if not _is_symbolic(token))
    alternatives = list(symbols)
    if word_tokens:
        alternatives.append(keyword_pattern(word_tokens).pattern)
    return re.compile(r"\s*+(?:" + "|".join(alternatives) + r")\s*+")


def is_bundle_text(text: str, lexicon: Lexicon) -> bool:
    symbolic = [token for token in lexicon.bundle_indicators if _is_symbolic(token)]
    if any(token in text for token in symbolic):
        return True
    worded = [token for token in lexicon.bundle_indicators if not _is_symbolic(token)]
    return contains_keyword(text, worded)


def find_accessories(text: str, lexicon: Lexicon) -> list[str]:
    """Split bundle text into segments and name the accessory found in each."""

    accessory_pattern = keyword_pattern(lexicon.accessory_keywords)
    accessories: list[str] = []
    for segment in _splitter(lexicon.combinators).split(text):
        match = accessory_pattern.search(segment)
        if match is not None:
            accessories.append(match.group(0))
    return accessories


def _format_price(amount: float) -> str:
    return f"${amount:,.0f}" if amount.is_integer() else f"${amount:,.2f}"


def analyze_bundle(
    title: str,
    body: str | None,
    listed_price: float | None,
    *,
    lexicon: Lexicon,
) -> BundleAnalysis:
    """Detect multi-item postings and derive a conservative single-item price."""

    text = prepare_text(title, body)
    if not is_bundle_text(text, lexicon):
        return BundleAnalysis(is_bundle=False, adjusted_price=listed_price)

    prices = find_price_candidates(title, body)
    if len(prices) > 1:
        highest = prices[-1]
        quoted = ", ".join(_format_price(price) for price in prices)
        return BundleAnalysis(
            is_bundle=True,
            adjusted_price=highest,
            confidence=MULTI_PRICE_CONFIDENCE,
            note=f"Multiple prices quoted ({quoted}); using the highest as the main item price",
        )

    accessories = tuple(find_accessories(text, lexicon))
    if accessories and listed_price is not None:
        deduction = PER_ACCESSORY_ESTIMATE * len(accessories)
        adjusted = round(max(listed_price - deduction, listed_price * ACCESSORY_FLOOR_RATIO), 2)
        return BundleAnalysis(
            is_bundle=True,
            adjusted_price=adjusted,
            confidence=ACCESSORY_CONFIDENCE,
            note=(
                f"Subtracted an estimated {_format_price(PER_ACCESSORY_ESTIMATE)} for each "
                f"accessory ({', '.join(accessories)})"
            ),
            accessories=accessories,
        )

    return BundleAnalysis(
        is_bundle=True,
        adjusted_price=listed_price,
        confidence=GENERIC_CONFIDENCE,
        note="Bundle detected but the items could not be priced separately; listed price kept",
        accessories=accessories,
    )
