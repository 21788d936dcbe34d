from __future__ import annotations

import json
from typing import Any, NoReturn, Protocol

import httpx

from .config_schema import UpstreamConfig
from .errors import FetchFailed, MalformedPayload, NotFoundOrPrivate, UpstreamRateLimited
from .event_log import EventLogger, NullEventLogger
from .guest_token import auth_headers


class TokenSource(Protocol):
    async def get_token(self) -> str: ...

    def invalidate(self) -> None: ...


def build_query_params(post_id: str, upstream: UpstreamConfig) -> dict[str, str]:
    variables = {
        "tweetId": post_id,
        "withCommunity": False,
        "includePromotedContent": False,
        "withVoice": False,
    }
    return {
        "variables": json.dumps(variables, separators=(",", ":")),
        "features": json.dumps(upstream.features, separators=(",", ":")),
    }


class TweetFetcher:
    """
    Low-level client for the upstream TweetResultByRestId query.

    Makes exactly one request per call. The endpoint, operation id and feature
    flags are an unofficial contract and live only here and in UpstreamConfig.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        tokens: TokenSource,
        *,
        upstream: UpstreamConfig | None = None,
        logger: EventLogger | None = None,
    ) -> None:
        self._client = client
        self._tokens = tokens
        self._upstream = upstream or UpstreamConfig()
        self._log = logger or NullEventLogger()

    async def fetch_raw_post(self, post_id: str) -> dict[str, Any]:
        guest_token = await self._tokens.get_token()

        headers = auth_headers(self._upstream)
        headers.update(
            {
                "x-guest-token": guest_token,
                "Accept": "application/json",
                "Referer": self._upstream.referer,
            }
        )
        url = self._upstream.tweet_query_url

        try:
            response = await self._client.get(
                url,
                headers=headers,
                params=build_query_params(post_id, self._upstream),
            )
        except httpx.HTTPError as e:
            self._log.error("upstream_request_failed", url=url, tweet_id=post_id, detail=str(e))
            raise FetchFailed(f"Request for tweet {post_id} failed: {e}") from e

        status = response.status_code
        if status < 200 or status >= 300:
            self._log.warning("upstream_status", url=url, tweet_id=post_id, status=status)
            self._raise_for_status(status, post_id)

        try:
            data = response.json()
        except ValueError as e:
            raise MalformedPayload(f"Tweet {post_id} response was not valid JSON") from e

        if not isinstance(data, dict):
            raise MalformedPayload(f"Tweet {post_id} response was not a JSON object")
        return data

    def _raise_for_status(self, status: int, post_id: str) -> NoReturn:
        if status == 404:
            raise NotFoundOrPrivate(f"Tweet {post_id} not found or is private")
        if status == 429:
            raise UpstreamRateLimited("Rate limit exceeded. Please try again in a few moments.")
        if status in (401, 403):
            # The guest token was rejected; force a fresh one on the next request.
            self._tokens.invalidate()
        raise FetchFailed(f"Failed to fetch tweet {post_id}: HTTP {status}")
