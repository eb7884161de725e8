"""Model-name similarity for catalog entries of the same brand and category."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Final

from rapidfuzz.distance import Levenshtein

from gearscout.domain.text import normalize, words

if TYPE_CHECKING:
    from gearscout.domain.model import CatalogEntry

VARIANT_SIMILARITY: Final[float] = 0.8

# a letter run that starts a word and runs straight into digits: "dt770", "he400"
_SERIES_NUMBER: Final = re.compile(r"(?<![^\W\d_])([^\W\d_]++)(\d++)")


@dataclass(frozen=True, slots=True)
class ModelParts:
    series: str
    number: str | None
    suffix: str


def decompose(name: str, brand: str | None = None) -> ModelParts:
    """Split a model name into series, number and suffix tokens.

    ``"DT770 Pro"`` gives ``("dt", "770", "pro")``. Everything after the number
    counts towards the suffix, punctuation dropped, so ``"DT880 (600 Ohm)"``
    keeps ``"600ohm"`` and stays distinguishable from ``"DT880 Pro"``.
    """

    model = normalize(name, brand)
    match = _SERIES_NUMBER.search(model)
    if match is None:
        return ModelParts(series="".join(words(model)), number=None, suffix="")
    return ModelParts(
        series=match.group(1),
        number=match.group(2),
        suffix="".join(words(model[match.end() :])),
    )


def model_similarity(
    first: str,
    second: str,
    *,
    first_brand: str | None = None,
    second_brand: str | None = None,
) -> float:
    """Return a symmetric similarity in ``[0, 1]`` between two model names."""

    left = normalize(first, first_brand)
    right = normalize(second, second_brand)
    if left == right:
        return 1.0

    left_parts = decompose(first, first_brand)
    right_parts = decompose(second, second_brand)
    if left_parts.number and right_parts.number:
        if left_parts.number != right_parts.number:
            return 0.0
        if left_parts.series == right_parts.series:
            return 1.0 if left_parts.suffix == right_parts.suffix else VARIANT_SIMILARITY

    return Levenshtein.normalized_similarity(left, right)


def entry_similarity(first: CatalogEntry, second: CatalogEntry) -> float:
    return model_similarity(
        first.name,
        second.name,
        first_brand=first.brand,
        second_brand=second.brand,
    )
