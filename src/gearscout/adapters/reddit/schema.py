"""Pydantic models describing the Reddit listing and OAuth payloads."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, field_validator


def _blank_to_none(value: object) -> object:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


class RedditBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class PostPayload(RedditBaseModel):
    id: str
    title: str
    selftext: str | None = None
    author: str | None = None
    created_utc: float
    permalink: str
    subreddit: str | None = None
    link_flair_text: str | None = None

    _normalize_selftext = field_validator("selftext", mode="before")(_blank_to_none)
    _normalize_flair = field_validator("link_flair_text", mode="before")(_blank_to_none)

    @field_validator("author", mode="before")
    @classmethod
    def _drop_deleted_author(cls, value: object) -> object:
        cleaned = _blank_to_none(value)
        if cleaned == "[deleted]":
            return None
        return cleaned


class PostChild(RedditBaseModel):
    kind: str
    data: PostPayload


class ListingData(RedditBaseModel):
    after: str | None = None
    children: list[PostChild]


class ListingResponse(RedditBaseModel):
    kind: str
    data: ListingData


class TokenResponse(RedditBaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int | None = None
