"""Evidence checks shared by the matcher and the match auditor."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Final

from gearscout.domain.lexicon import contains_keyword, keyword_pattern
from gearscout.domain.model import Category
from gearscout.domain.text import normalize_brand

if TYPE_CHECKING:
    from gearscout.domain.lexicon import Lexicon

DIRECT_BRAND_SCORE: Final[float] = 1.0
ALIAS_BRAND_SCORE: Final[float] = 0.9

_CONFLICTING: Final[dict[Category, tuple[Category, ...]]] = {
    Category.HEADPHONE: (Category.IN_EAR_MONITOR,),
    Category.IN_EAR_MONITOR: (Category.HEADPHONE,),
    Category.DAC: (Category.HEADPHONE, Category.IN_EAR_MONITOR),
    Category.AMPLIFIER: (Category.HEADPHONE, Category.IN_EAR_MONITOR),
    Category.DAC_AMP_COMBO: (Category.HEADPHONE, Category.IN_EAR_MONITOR),
}


class CategorySignal(StrEnum):
    SUPPORTED = "supported"
    NEUTRAL = "neutral"
    CONTRADICTED = "contradicted"


@dataclass(frozen=True, slots=True)
class BrandEvidence:
    token: str
    score: float


def find_brand(text: str, brand: str, lexicon: Lexicon) -> BrandEvidence | None:
    """Look for the brand, then its aliases, in normalized text.

    A hit must start on a word boundary and may run straight into digits so
    series prefixes such as ``hd`` in ``hd600`` count.
    """

    key = normalize_brand(brand)
    direct = keyword_pattern((key,), digits_may_follow=True).search(text)
    if direct is not None:
        return BrandEvidence(token=direct.group(0), score=DIRECT_BRAND_SCORE)
    aliases = lexicon.brand_aliases.get(key, ())
    if not aliases:
        return None
    alias = keyword_pattern(tuple(aliases), digits_may_follow=True).search(text)
    if alias is not None:
        return BrandEvidence(token=alias.group(0), score=ALIAS_BRAND_SCORE)
    return None


def category_signal(text: str, category: Category, lexicon: Lexicon) -> CategorySignal:
    if contains_keyword(text, lexicon.keywords_for(category)):
        return CategorySignal.SUPPORTED
    for other in _CONFLICTING.get(category, ()):
        if contains_keyword(text, lexicon.keywords_for(other)):
            return CategorySignal.CONTRADICTED
    return CategorySignal.NEUTRAL


@dataclass(frozen=True, slots=True)
class PriceGap:
    """How far a price sits outside an expected band."""

    price: float
    low: float
    high: float
    ratio: float
    absolute: float

    @property
    def direction(self) -> str:
        return "above" if self.price > self.high else "below"

    def exceeds(self, *, relative: float, absolute: float) -> bool:
        return self.ratio > relative or self.absolute > absolute

    def describe(self) -> str:
        return (
            f"Price ${self.price:,.2f} is {self.ratio:.1f}x {self.direction} the expected "
            f"used range ${self.low:,.2f}-${self.high:,.2f}"
        )


def price_gap(price: float, band: tuple[float, float]) -> PriceGap | None:
    low, high = band
    if high > 0 and price > high:
        return PriceGap(price=price, low=low, high=high, ratio=price / high, absolute=price - high)
    if price > 0 and price < low:
        return PriceGap(price=price, low=low, high=high, ratio=low / price, absolute=low - price)
    return None
