"""Price extraction from free-text postings.

Each rule is an independent pattern; all candidates are pooled, filtered to a
plausibility band, and the smallest survivor wins. Sellers tend to mention a
higher reference figure ("paid $900") before their actual ask, so the minimum
is the deliberate choice.

All patterns run in linear time. Amounts start behind a fixed-width negative
lookbehind so a digit run is only ever entered at its first digit, runs are
consumed possessively or inside atomic groups, and no quantified group can
match the same text in two ways.
"""

from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass
from typing import Final

MIN_PLAUSIBLE_PRICE: Final[float] = 10.0
MAX_PLAUSIBLE_PRICE: Final[float] = 10_000.0

# digits with optional thousands separators, optional cents
_AMOUNT: Final[str] = (
    r"(?P<amount>(?>\d{1,3}(?:,\d{3})++|\d++)(?!\d)(?:\.\d{1,2}(?!\d))?+)"
)
_NUMBER_START: Final[str] = r"(?<![\w.,])"

_RULES: Final[tuple[tuple[str, re.Pattern[str]], ...]] = (
    ("currency", re.compile(r"\$\s*+" + _AMOUNT)),
    (
        "asking",
        re.compile(
            r"\basking\b[\s:=\-]*+(?:price\b[\s:=\-]*+)?(?:(?:is|of)\s++)?\$?\s*+" + _AMOUNT
        ),
    ),
    ("price", re.compile(r"\bprice\b\s*+[:=\-]?\s*+(?:is\s++)?\$?\s*+" + _AMOUNT)),
    ("selling_for", re.compile(r"\bselling\s++for\s*+\$?\s*+" + _AMOUNT)),
    (
        "shipped",
        re.compile(
            _NUMBER_START + _AMOUNT + r"\s*+(?:shipped|shipping\s++included)\b"
        ),
    ),
    (
        "currency_word",
        re.compile(_NUMBER_START + _AMOUNT + r"\s*+(?:usd|dollars?|bucks)\b"),
    ),
    (
        "wants",
        re.compile(
            r"\[w\][\s:]*+(?:(?:paypal|pp|cash|venmo|zelle)\b[\s,:/\-]*+)?\$?\s*+" + _AMOUNT
        ),
    ),
    ("obo", re.compile(_NUMBER_START + _AMOUNT + r"\s*+(?:obo|or\s++best\s++offer)\b")),
)

_DISCOUNT_AFTER: Final = re.compile(r"[ \t]{0,3}(?:off|discount)\b")
_DISCOUNT_BEFORE: Final = re.compile(r"(?:save|minus|discount of)[ \t]{0,3}\$?[ \t]{0,3}$")
_LOOKBEHIND_WINDOW: Final[int] = 20
_ANY_DIGIT: Final = re.compile(r"\d")


@dataclass(frozen=True, slots=True)
class PriceCandidate:
    rule: str
    amount: float
    start: int
    end: int


def prepare_text(title: str, body: str | None = None) -> str:
    text = "\n".join(part for part in (title, body) if part)
    return unicodedata.normalize("NFKC", text).casefold()


def _parse_amount(raw: str) -> float:
    return float(raw.replace(",", ""))


def _is_discount(text: str, start: int, end: int) -> bool:
    if _DISCOUNT_AFTER.match(text, end):
        return True
    window = text[max(0, start - _LOOKBEHIND_WINDOW) : start]
    return _DISCOUNT_BEFORE.search(window) is not None


def scan_candidates(text: str) -> list[PriceCandidate]:
    """Run every rule over prepared text and return all raw candidates."""

    if _ANY_DIGIT.search(text) is None:
        return []
    candidates: list[PriceCandidate] = []
    for rule, pattern in _RULES:
        for match in pattern.finditer(text):
            start, end = match.span("amount")
            if _is_discount(text, start, end):
                continue
            candidates.append(
                PriceCandidate(
                    rule=rule,
                    amount=_parse_amount(match.group("amount")),
                    start=start,
                    end=end,
                )
            )
    return candidates


def is_plausible(amount: float) -> bool:
    return MIN_PLAUSIBLE_PRICE <= amount <= MAX_PLAUSIBLE_PRICE


def find_price_candidates(title: str, body: str | None = None) -> list[float]:
    """Return the distinct plausible amounts in ascending order."""

    text = prepare_text(title, body)
    return sorted({c.amount for c in scan_candidates(text) if is_plausible(c.amount)})


def extract_price(title: str, body: str | None = None) -> float | None:
    """Return the posting's asking price, or ``None`` when no plausible amount exists."""

    plausible = find_price_candidates(title, body)
    return plausible[0] if plausible else None
