"""Reddit feed adapter."""

from __future__ import annotations

from .client import RedditAPIError, RedditFetcher
from .schema import ListingResponse, PostPayload, TokenResponse
from .translator import parse_posting, parse_posting_model

__all__ = [
    "ListingResponse",
    "PostPayload",
    "RedditAPIError",
    "RedditFetcher",
    "TokenResponse",
    "parse_posting",
    "parse_posting_model",
]
