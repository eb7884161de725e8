"""Pydantic models for catalog seed files."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from gearscout.domain.model import CatalogEntry, Category


class CatalogRecord(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    brand: str = Field(min_length=1)
    name: str = Field(min_length=1)
    category: Category
    price_new: float | None = Field(default=None, gt=0)
    price_used_min: float | None = Field(default=None, gt=0)
    price_used_max: float | None = Field(default=None, gt=0)
    description: str | None = None
    image_url: str | None = None
    product_url: str | None = None
    impedance: float | None = None
    sensitivity: float | None = None
    driver_type: str | None = None
    sound_signature: str | None = None

    @field_validator("brand", "name", mode="before")
    @classmethod
    def _strip(cls, value: object) -> object:
        return value.strip() if isinstance(value, str) else value

    @model_validator(mode="after")
    def _ordered_band(self) -> CatalogRecord:
        low, high = self.price_used_min, self.price_used_max
        if low is not None and high is not None and low > high:
            raise ValueError("price_used_min must not exceed price_used_max")
        return self

    def to_entry(self) -> CatalogEntry:
        return CatalogEntry(**self.model_dump())


class CatalogFile(BaseModel):
    model_config = ConfigDict(extra="ignore")

    entries: list[CatalogRecord]
