"""Ports for fetching postings from an external feed."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from gearscout.domain.model import Posting


@dataclass(slots=True)
class PostingFetchResult:
    """Postings fetched from a feed; ``complete`` is false when paging stopped early."""

    postings: list[Posting] = field(default_factory=list)
    pages_fetched: int = 0
    complete: bool = True


@runtime_checkable
class PostingFetcher(Protocol):
    """Callable port for retrieving postings page by page."""

    def __call__(
        self,
        *,
        page_size: int = 100,
        max_pages: int | None = None,
    ) -> PostingFetchResult: ...


__all__ = ["PostingFetchResult", "PostingFetcher"]
