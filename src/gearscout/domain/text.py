"""Text normalization shared by matching, deduplication and auditing.

Every pattern here is either a fixed-width lookaround or a possessive run, so
normalization stays linear in the input length.
"""

from __future__ import annotations

import re
import unicodedata
from typing import Final

_DASH_SPACING: Final = re.compile(r" ?- ?")
_LETTER_SPACE_DIGIT: Final = re.compile(r"(?<=[^\W\d_]) (?=\d)")
_LETTER_DASH_DIGIT: Final = re.compile(r"(?<=[^\W\d_])-(?=\d)")
_WORD: Final = re.compile(r"[^\W_]++")
_DIGITS: Final = re.compile(r"\d++")


def _fold(value: str) -> str:
    text = unicodedata.normalize("NFKC", value)
    text = text.casefold()
    return " ".join(text.split())


def normalize_brand(brand: str) -> str:
    """Return the comparison key for a brand name."""

    return _fold(brand)


def _strip_brand_prefix(text: str, brand: str) -> str:
    key = normalize_brand(brand)
    for prefix in {key, key.replace("-", " "), key.replace(" ", "-")}:
        if not prefix or not text.startswith(prefix):
            continue
        rest = text[len(prefix) :]
        if rest[:1] not in {" ", "-"}:
            continue
        remainder = rest.lstrip(" -")
        if remainder:
            return remainder
    return text


def normalize(name: str, brand: str | None = None) -> str:
    """Canonicalize free text for comparison.

    Case-folds, collapses whitespace, drops a redundant leading ``brand`` and
    joins ``"<word> <number>"`` / ``"<word>-<number>"`` into a single token, so
    ``"Sennheiser HD 600"`` and ``"hd-600"`` both become ``"hd600"``.
    """

    text = _fold(name)
    if brand:
        text = _strip_brand_prefix(text, brand)
    text = _DASH_SPACING.sub("-", text)
    text = _LETTER_SPACE_DIGIT.sub("", text)
    return _LETTER_DASH_DIGIT.sub("", text)


def words(text: str) -> list[str]:
    """Split normalized text into alphanumeric words."""

    return _WORD.findall(text)


def digit_runs(text: str) -> list[str]:
    return _DIGITS.findall(text)
