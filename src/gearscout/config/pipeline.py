"""Batch pipeline tuning values."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Final

from .env import env_float, env_int

DEFAULT_PAGE_SIZE: Final[int] = 100
DEFAULT_MAX_PAGES: Final[int] = 10
DEFAULT_REVIEW_THRESHOLD: Final[float] = 0.6
DEFAULT_LOCK_TTL: Final[timedelta] = timedelta(hours=2)


@dataclass(frozen=True, slots=True)
class PipelineConfig:
    page_size: int = DEFAULT_PAGE_SIZE
    max_pages: int = DEFAULT_MAX_PAGES
    review_threshold: float = DEFAULT_REVIEW_THRESHOLD
    lock_ttl: timedelta = DEFAULT_LOCK_TTL


def get_pipeline_config() -> PipelineConfig:
    return PipelineConfig(
        page_size=env_int("GEARSCOUT_PAGE_SIZE", DEFAULT_PAGE_SIZE, minimum=1),
        max_pages=env_int("GEARSCOUT_MAX_PAGES", DEFAULT_MAX_PAGES, minimum=1),
        review_threshold=env_float("GEARSCOUT_REVIEW_THRESHOLD", DEFAULT_REVIEW_THRESHOLD),
    )
