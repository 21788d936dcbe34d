from __future__ import annotations

from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Public bearer token embedded in the official Twitter web client.
DEFAULT_BEARER_TOKEN = (
    "AAAAAAAAAAAAAAAAAAAAANRILgAAAAAAnNwIzUejRCOuH5E6I8xnZz4puTs%3D"
    "1Zv7ttfk8LF81IUq16cHjhLTvJu4FA33AGWWjCpTnA"
)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

DEFAULT_GRAPHQL_FEATURES: dict[str, bool] = {
    "creator_subscriptions_tweet_preview_api_enabled": True,
    "tweetypie_unmention_optimization_enabled": True,
    "responsive_web_edit_tweet_api_enabled": True,
    "graphql_is_translatable_rweb_tweet_is_translatable_enabled": True,
    "view_counts_everywhere_api_enabled": True,
    "longform_notetweets_consumption_enabled": True,
    "responsive_web_twitter_article_tweet_consumption_enabled": False,
    "tweet_awards_web_tipping_enabled": False,
    "freedom_of_speech_not_reach_fetch_enabled": True,
    "standardized_nudges_misinfo": True,
    "tweet_with_visibility_results_prefer_gql_limited_actions_policy_enabled": True,
    "longform_notetweets_rich_text_read_enabled": True,
    "longform_notetweets_inline_media_enabled": True,
    "responsive_web_graphql_exclude_directive_enabled": True,
    "verified_phone_label_enabled": False,
    "responsive_web_media_download_video_enabled": False,
    "responsive_web_graphql_skip_user_profile_image_extensions_enabled": False,
    "responsive_web_graphql_timeline_navigation_enabled": True,
    "responsive_web_enhance_cards_enabled": False,
}

PositiveInt = Annotated[int, Field(ge=1)]
PositiveFloat = Annotated[float, Field(gt=0)]
Port = Annotated[int, Field(ge=1, le=65535)]


def _require_https_url(value: str) -> str:
    url = (value or "").strip()
    if not url.startswith("https://"):
        raise ValueError("must be an https:// URL")
    return url


class UpstreamConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    bearer_token: str = Field(DEFAULT_BEARER_TOKEN, min_length=1)
    user_agent: str = Field(DEFAULT_USER_AGENT, min_length=1)
    guest_activate_url: str = "https://api.twitter.com/1.1/guest/activate.json"
    tweet_query_url: str = (
        "https://twitter.com/i/api/graphql/VaenaVgh5q5ih7kvyVjgtg/TweetResultByRestId"
    )
    referer: str = "https://twitter.com/"
    features: dict[str, bool] = Field(default_factory=lambda: dict(DEFAULT_GRAPHQL_FEATURES))
    timeout_seconds: PositiveFloat = 10.0
    guest_token_ttl_seconds: PositiveInt = 2 * 60 * 60

    @field_validator("guest_activate_url", "tweet_query_url")
    @classmethod
    def _urls_must_be_https(cls, v: str) -> str:
        return _require_https_url(v)


class CacheConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    ttl_seconds: PositiveFloat = 300.0
    reap_interval_seconds: PositiveFloat = 60.0


class ServerConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    host: str = "0.0.0.0"
    port: Port = 5000
    cors_origin: str = "*"

    @field_validator("host", "cors_origin")
    @classmethod
    def _must_be_non_empty(cls, v: str) -> str:
        s = (v or "").strip()
        if not s:
            raise ValueError("must be non-empty")
        return s


class RateLimitConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    enabled: bool = True
    window_seconds: PositiveFloat = 60.0
    max_api_requests: PositiveInt = 10
    max_download_requests: PositiveInt = 5


class LoggingConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    # None writes JSONL events to stderr.
    path: str | None = None

    @field_validator("path", mode="before")
    @classmethod
    def _blank_path_is_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v


class AppConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    upstream: UpstreamConfig = Field(default_factory=UpstreamConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    rate_limit: RateLimitConfig = Field(default_factory=RateLimitConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
