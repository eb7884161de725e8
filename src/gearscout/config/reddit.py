"""Reddit feed configuration values."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final

from .env import optional_env_var
from .errors import ConfigurationError
from .http_resilience import RateLimit, ResilienceConfig

REDDIT_OAUTH_BASE_URL: Final[str] = "https://oauth.reddit.com"
REDDIT_PUBLIC_BASE_URL: Final[str] = "https://www.reddit.com"
REDDIT_TOKEN_URL: Final[str] = "https://www.reddit.com/api/v1/access_token"
REDDIT_TIMEOUT_SECONDS: Final[float] = 20.0
DEFAULT_SUBREDDIT: Final[str] = "AVexchange"
DEFAULT_USER_AGENT: Final[str] = "gearscout/0.1 (used audio price tracker)"

# one page every 2s with credentials; the public endpoint tolerates far less
AUTHENTICATED_RATE_LIMIT: Final[RateLimit] = RateLimit(max_calls=1, per_seconds=2.0)
ANONYMOUS_RATE_LIMIT: Final[RateLimit] = RateLimit(max_calls=1, per_seconds=6.0)


@dataclass(frozen=True)
class RedditConfig:
    """Holds Reddit feed configuration values.

    Credentials are optional. Without them the feed runs in anonymous mode against the
    public JSON endpoint with a stricter rate limit.
    """

    subreddit: str
    user_agent: str
    resilience: ResilienceConfig
    client_id: str | None = None
    client_secret: str | None = None

    @property
    def authenticated(self) -> bool:
        return self.client_id is not None and self.client_secret is not None


def _resilience_for(*, authenticated: bool, user_agent: str) -> ResilienceConfig:
    return ResilienceConfig(
        name="reddit",
        base_url=REDDIT_OAUTH_BASE_URL if authenticated else REDDIT_PUBLIC_BASE_URL,
        timeout_seconds=REDDIT_TIMEOUT_SECONDS,
        ratelimit=AUTHENTICATED_RATE_LIMIT if authenticated else ANONYMOUS_RATE_LIMIT,
        default_headers={"User-Agent": user_agent},
    )


def get_reddit_config(*, resilience: ResilienceConfig | None = None) -> RedditConfig:
    client_id = optional_env_var("REDDIT_CLIENT_ID")
    client_secret = optional_env_var("REDDIT_CLIENT_SECRET")
    if (client_id is None) != (client_secret is None):
        raise ConfigurationError(
            "REDDIT_CLIENT_ID and REDDIT_CLIENT_SECRET must be set together"
        )
    user_agent = optional_env_var("REDDIT_USER_AGENT") or DEFAULT_USER_AGENT
    subreddit = optional_env_var("REDDIT_SUBREDDIT") or DEFAULT_SUBREDDIT
    authenticated = client_id is not None
    return RedditConfig(
        subreddit=subreddit.removeprefix("r/"),
        user_agent=user_agent,
        client_id=client_id,
        client_secret=client_secret,
        resilience=resilience
        or _resilience_for(authenticated=authenticated, user_agent=user_agent),
    )
