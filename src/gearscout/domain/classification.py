"""Posting-level classification: sell and accessory-only titles, sold status, location."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Final

from gearscout.domain.lexicon import contains_keyword, keyword_pattern, phrase_pattern
from gearscout.domain.text import normalize_brand

if TYPE_CHECKING:
    from collections.abc import Iterable

    from gearscout.domain.lexicon import Lexicon
    from gearscout.domain.model import Posting

_SELL_MARKERS: Final[tuple[str, ...]] = (
    "[wts]",
    "[w] [s]",
    "wts:",
    "[fs]",
    "fs:",
    "want to sell",
    "for sale",
    "selling",
    "price drop",
    "shipped",
    "obo",
)
_BUY_ONLY: Final = re.compile(r"^\s*+(?:\[[a-z-]{2,5}\]\s*+)*?\[wtb\]", re.IGNORECASE)
_CURRENCY: Final = re.compile(r"\$\s*+\d")
_WANTS_PAYMENT: Final = re.compile(r"\[w\][^\[]*?\b(?:paypal|pp|cash|venmo|zelle)\b")

_SOLD_FLAIR: Final[tuple[str, ...]] = ("closed", "sold", "complete")
_SOLD_TITLE: Final[tuple[str, ...]] = ("[sold]", "(sold)", "sold to", " spf")
_SOLD_BODY: Final[tuple[str, ...]] = ("sold to", "**sold**", "~~sold~~")

_LOCATION: Final = re.compile(r"\[([A-Z]{2}(?:-[A-Z]{2})?)\]")


def is_sell_post(title: str) -> bool:
    lowered = title.casefold()
    if _BUY_ONLY.match(lowered) and "[wts]" not in lowered:
        return False
    if any(marker in lowered for marker in _SELL_MARKERS):
        return True
    return bool(_CURRENCY.search(lowered) or _WANTS_PAYMENT.search(lowered))


def is_sold(posting: Posting) -> bool:
    flair = (posting.flair or "").casefold()
    if any(marker in flair for marker in _SOLD_FLAIR):
        return True
    title = posting.title.casefold()
    if any(marker in title for marker in _SOLD_TITLE):
        return True
    body = (posting.body or "").casefold()
    return any(marker in body for marker in _SOLD_BODY)


def extract_location(title: str) -> str | None:
    """Return a ``US-CA`` style tag from the title, if present."""

    match = _LOCATION.search(title)
    return match.group(1) if match else None


def is_accessory_only(title: str, lexicon: Lexicon, *, brands: Iterable[str] = ()) -> bool:
    """Tell whether the posting sells an accessory rather than the gear itself.

    Explicit phrasings ("cable only", "selling tips") decide on their own. Otherwise
    a title that names an accessory but neither a gear word nor a known brand
    counts as accessory-only. ``brands`` extends the lexicon's brands, typically
    with the brands of the catalog being matched against.
    """

    lowered = title.casefold()
    patterns = lexicon.accessory_only_patterns
    if patterns and phrase_pattern(patterns).search(lowered):
        return True
    if not contains_keyword(lowered, lexicon.accessory_keywords):
        return False
    if contains_keyword(lowered, lexicon.gear_keywords):
        return False
    keys = {*lexicon.brand_aliases, *(normalize_brand(brand) for brand in brands)}
    known = {alias for key in keys for alias in lexicon.aliases_for(key)}
    known.discard("")
    if not known:
        return True
    brand_pattern = keyword_pattern(tuple(sorted(known)), digits_may_follow=True)
    return brand_pattern.search(lowered) is None
