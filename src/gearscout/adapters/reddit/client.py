"""HTTP client for the Reddit subreddit listing feed."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, Final

import httpx

from gearscout.adapters.http_resilience import ResilienceConfig, ResilientClient
from gearscout.config.reddit import REDDIT_TOKEN_URL, RedditConfig, get_reddit_config
from gearscout.domain.ports.fetching import PostingFetchResult

from .schema import ListingResponse, TokenResponse
from .translator import parse_posting_model

if TYPE_CHECKING:
    from collections.abc import Callable

    from gearscout.domain.model import Posting

log = getLogger(__name__)

MAX_PAGE_SIZE: Final[int] = 100


class RedditAPIError(RuntimeError):
    """Raised when Reddit returns a payload we cannot use."""


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


@dataclass(slots=True)
class RedditFetcher:
    """Page through ``/r/<subreddit>/new`` newest first.

    With credentials the fetcher authenticates through the client-credentials
    grant and reads ``oauth.reddit.com``. Without them it falls back to the
    public JSON listing under a stricter rate limit. Retries and the
    inter-page delay come from the resilience config; a page that still fails
    ends paging and the postings gathered so far are returned as partial data.
    """

    config: RedditConfig = field(default_factory=get_reddit_config)
    client_factory: Callable[[ResilienceConfig], ResilientClient] = field(
        default=_default_client_factory
    )

    def __call__(
        self,
        *,
        page_size: int = 100,
        max_pages: int | None = None,
    ) -> PostingFetchResult:
        return asyncio.run(self._fetch_async(page_size=page_size, max_pages=max_pages))

    async def _fetch_async(self, *, page_size: int, max_pages: int | None) -> PostingFetchResult:
        limit = max(1, min(page_size, MAX_PAGE_SIZE))
        result = PostingFetchResult()
        seen: set[str] = set()
        after: str | None = None

        async with self.client_factory(self.config.resilience) as client:
            headers = await self._auth_headers(client)
            if headers is None:
                result.complete = False
                return result

            while max_pages is None or result.pages_fetched < max_pages:
                try:
                    listing = await self._request_page(
                        client, headers=headers, limit=limit, after=after
                    )
                except (httpx.HTTPError, RedditAPIError) as exc:
                    log.warning(
                        "Giving up on page %d of r/%s: %s",
                        result.pages_fetched + 1,
                        self.config.subreddit,
                        exc,
                    )
                    result.complete = False
                    break

                result.pages_fetched += 1
                result.postings.extend(self._new_postings(listing, seen))
                log.info(
                    "Fetched page %d of r/%s (%d postings so far)",
                    result.pages_fetched,
                    self.config.subreddit,
                    len(result.postings),
                )
                after = listing.data.after
                if after is None or not listing.data.children:
                    break

        return result

    def _new_postings(self, listing: ListingResponse, seen: set[str]) -> list[Posting]:
        postings: list[Posting] = []
        for child in listing.data.children:
            if child.kind != "t3" or child.data.id in seen:
                continue
            seen.add(child.data.id)
            postings.append(parse_posting_model(child.data))
        return postings

    async def _auth_headers(self, client: ResilientClient) -> dict[str, str] | None:
        if not self.config.authenticated:
            log.warning(
                "No Reddit credentials configured; using the anonymous feed with a stricter "
                "rate limit"
            )
            return {}
        try:
            token = await self._request_token(client)
        except (httpx.HTTPError, RedditAPIError) as exc:
            log.warning("Reddit authentication failed: %s", exc)
            return None
        return {"Authorization": f"Bearer {token.access_token}"}

    async def _request_token(self, client: ResilientClient) -> TokenResponse:
        client_id = self.config.client_id or ""
        client_secret = self.config.client_secret or ""
        response = await client.post(
            REDDIT_TOKEN_URL,
            data={"grant_type": "client_credentials"},
            auth=httpx.BasicAuth(client_id, client_secret),
        )
        response.raise_for_status()
        payload = response.json()
        if not isinstance(payload, dict) or "access_token" not in payload:
            raise RedditAPIError("Reddit token response did not contain an access token")
        return TokenResponse.model_validate(payload)

    async def _request_page(
        self,
        client: ResilientClient,
        *,
        headers: dict[str, str],
        limit: int,
        after: str | None,
    ) -> ListingResponse:
        params: dict[str, str | int] = {"limit": limit, "raw_json": 1}
        if after is not None:
            params["after"] = after
        path = f"/r/{self.config.subreddit}/new"
        if not self.config.authenticated:
            path += ".json"
        response = await client.get(path, params=httpx.QueryParams(params), headers=headers)
        response.raise_for_status()
        payload = response.json()
        if not isinstance(payload, dict) or payload.get("kind") != "Listing":
            raise RedditAPIError("Unexpected Reddit listing payload")
        return ListingResponse.model_validate(payload)
