"""Static lookup tables used by the text analysis components.

The tables are immutable and built once per process. Components receive a
``Lexicon`` explicitly instead of reaching for module globals so tests can
swap in a reduced vocabulary.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from functools import cache
from types import MappingProxyType
from typing import TYPE_CHECKING

from gearscout.domain.model import Category

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

_BRAND_ALIASES: dict[str, tuple[str, ...]] = {
    "sennheiser": ("senn", "hd"),
    "audio-technica": ("audio technica", "audiotechnica", "ath"),
    "beyerdynamic": ("beyer", "dt"),
    "hifiman": ("hifi man", "he"),
    "audeze": ("lcd",),
    "64 audio": ("64audio",),
    "ultimate ears": ("ue",),
    "final audio": ("final",),
    "campfire audio": ("campfire",),
    "empire ears": ("empire",),
    "jds labs": ("jds", "jdslabs"),
    "tin hifi": ("tin audio", "tinhifi"),
    "softears": ("soft ears",),
    "xenns": ("mangird",),
    "shure": ("se",),
}

_ACCESSORY_KEYWORDS: tuple[str, ...] = (
    "cable",
    "cables",
    "cord",
    "interconnect",
    "case",
    "hard case",
    "carrying case",
    "pouch",
    "bag",
    "box",
    "og box",
    "original box",
    "packaging",
    "tips",
    "eartips",
    "ear tips",
    "foam tips",
    "pads",
    "earpads",
    "ear pads",
    "cushions",
    "adapter",
    "adaptor",
    "dongle",
    "splitter",
    "extender",
    "manual",
    "documentation",
    "paperwork",
    "receipt",
    "warranty card",
    "stand",
    "hanger",
    "holder",
)

# phrasings where an accessory is the item for sale
_ACCESSORY_ONLY_PATTERNS: tuple[str, ...] = (
    r"\b(?:ear)?tips?\s++only\b",
    r"\b\d++\s++pairs?\s++of\s++(?:ear)?tips\b",
    r"\bselling\s++(?:ear)?tips\b",
    r"\b(?:cables?|cords?|case|pads|earpads)\s++only\b",
    r"\b(?:ear)?tips?\s*+\(",
)

_GEAR_KEYWORDS: tuple[str, ...] = (
    "headphone",
    "headphones",
    "iem",
    "iems",
    "dac",
    "amp",
    "amplifier",
    "cans",
    "monitors",
    "earphone",
    "earphones",
    "earbuds",
)

_BUNDLE_INDICATORS: tuple[str, ...] = (
    "+",
    "&",
    "with",
    "includes",
    "including",
    "included",
    "comes with",
    "bundle",
    "bundled",
    "lot",
    "combo",
    "package deal",
    "extras",
    "bonus",
)

# tokens that separate items inside a bundle description
_COMBINATORS: tuple[str, ...] = (
    "+",
    "&",
    ",",
    "/",
    "and",
    "with",
    "includes",
    "including",
    "plus",
)

_CATEGORY_KEYWORDS: dict[Category, tuple[str, ...]] = {
    Category.HEADPHONE: (
        "headphone",
        "headphones",
        "cans",
        "over-ear",
        "over ear",
        "on-ear",
        "open-back",
        "open back",
        "closed-back",
        "closed back",
        "planar",
    ),
    Category.IN_EAR_MONITOR: (
        "iem",
        "iems",
        "in-ear",
        "in ear",
        "in-ears",
        "earphone",
        "earphones",
        "earbud",
        "earbuds",
    ),
    Category.DAC: ("dac", "dacs", "converter", "decoder"),
    Category.AMPLIFIER: ("amp", "amps", "amplifier", "preamp"),
    Category.DAC_AMP_COMBO: ("dac/amp", "dac amp", "combo", "stack", "all-in-one"),
}


@dataclass(frozen=True, slots=True)
class Lexicon:
    """Immutable vocabulary for brand, accessory, bundle and category detection."""

    brand_aliases: Mapping[str, tuple[str, ...]] = field(
        default_factory=lambda: MappingProxyType(_BRAND_ALIASES)
    )
    accessory_keywords: tuple[str, ...] = _ACCESSORY_KEYWORDS
    accessory_only_patterns: tuple[str, ...] = _ACCESSORY_ONLY_PATTERNS
    gear_keywords: tuple[str, ...] = _GEAR_KEYWORDS
    bundle_indicators: tuple[str, ...] = _BUNDLE_INDICATORS
    combinators: tuple[str, ...] = _COMBINATORS
    category_keywords: Mapping[Category, tuple[str, ...]] = field(
        default_factory=lambda: MappingProxyType(_CATEGORY_KEYWORDS)
    )

    def aliases_for(self, brand_key: str) -> tuple[str, ...]:
        """Return the brand key followed by its known aliases."""

        return (brand_key, *self.brand_aliases.get(brand_key, ()))

    def keywords_for(self, category: Category) -> tuple[str, ...]:
        return self.category_keywords.get(category, ())


@cache
def default_lexicon() -> Lexicon:
    return Lexicon()


@cache
def keyword_pattern(
    keywords: tuple[str, ...], *, digits_may_follow: bool = False
) -> re.Pattern[str]:
    """Compile a whole-word alternation over literal keywords.

    Keywords are literal strings, so the alternation never backtracks beyond a
    single keyword length per text position. With ``digits_may_follow`` a keyword
    may run straight into a number (``hd`` in ``hd600``), which is how series
    prefixes appear after normalization.
    """

    ordered = sorted({keyword for keyword in keywords if keyword}, key=len, reverse=True)
    alternation = "|".join(re.escape(keyword) for keyword in ordered)
    tail = r"(?![^\W\d_])" if digits_may_follow else r"(?![^\W_])"
    return re.compile(rf"(?<![^\W_])(?:{alternation}){tail}")


@cache
def phrase_pattern(patterns: tuple[str, ...]) -> re.Pattern[str]:
    return re.compile("|".join(f"(?:{pattern})" for pattern in patterns))


def contains_keyword(text: str, keywords: Iterable[str]) -> bool:
    return keyword_pattern(tuple(keywords)).search(text) is not None
