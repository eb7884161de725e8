"""Translate Reddit payloads into domain postings."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Final

from gearscout.domain.model import Posting

from .schema import PostPayload

REDDIT_WEB_URL: Final[str] = "https://www.reddit.com"


def parse_posting_model(payload: PostPayload) -> Posting:
    permalink = payload.permalink
    if permalink.startswith("/"):
        permalink = f"{REDDIT_WEB_URL}{permalink}"
    subreddit = payload.subreddit or "unknown"
    return Posting(
        permalink=permalink,
        title=payload.title.strip(),
        body=payload.selftext,
        source=f"reddit:{subreddit.lower()}",
        author=payload.author,
        posted_at=datetime.fromtimestamp(payload.created_utc, tz=UTC),
        flair=payload.link_flair_text,
    )


def parse_posting(payload: object) -> Posting:
    return parse_posting_model(PostPayload.model_validate(payload))
