"""Catalog entries: canonical reference records for sellable products."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, ClassVar, Final
from uuid import UUID, uuid4

if TYPE_CHECKING:
    from gearscout.domain.model.enums import Category


def new_id() -> UUID:
    return uuid4()


def utcnow() -> datetime:
    return datetime.now(UTC)


# fields a merge may backfill on the surviving entry
MERGEABLE_FIELDS: Final[tuple[str, ...]] = (
    "price_new",
    "price_used_min",
    "price_used_max",
    "description",
    "image_url",
    "product_url",
    "impedance",
    "sensitivity",
    "driver_type",
    "sound_signature",
)


@dataclass(eq=False, kw_only=True)
class CatalogEntry:
    """A canonical product record.

    ``(brand, name, category)`` should be unique; duplicates are what the
    deduplication pipeline detects and repairs. The id never changes.
    """

    id: UUID = field(default_factory=new_id)
    brand: str
    name: str
    category: Category
    price_new: float | None = None
    price_used_min: float | None = None
    price_used_max: float | None = None
    description: str | None = None
    image_url: str | None = None
    product_url: str | None = None
    impedance: float | None = None
    sensitivity: float | None = None
    driver_type: str | None = None
    sound_signature: str | None = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime | None = None

    USED_LOW_FACTOR: ClassVar[float] = 0.5
    USED_HIGH_FACTOR: ClassVar[float] = 0.8

    @property
    def display_name(self) -> str:
        return f"{self.brand} {self.name}"

    def used_price_band(self) -> tuple[float, float] | None:
        """Return the expected used-price band, derived from the new price when unset."""

        if self.price_used_min is not None and self.price_used_max is not None:
            return self.price_used_min, self.price_used_max
        if self.price_new is not None:
            return (
                self.price_new * self.USED_LOW_FACTOR,
                self.price_new * self.USED_HIGH_FACTOR,
            )
        return None

    def field_values(self) -> dict[str, object]:
        return {name: getattr(self, name) for name in MERGEABLE_FIELDS}

    def apply_values(self, values: dict[str, object], *, now: datetime | None = None) -> None:
        for name, value in values.items():
            if name not in MERGEABLE_FIELDS:
                raise ValueError(f"Field {name!r} cannot be updated on a catalog entry")
            setattr(self, name, value)
        self.updated_at = now or utcnow()
