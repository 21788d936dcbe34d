from __future__ import annotations

import asyncio
import time
from typing import Any, Callable

import httpx

from .config_schema import UpstreamConfig
from .errors import AuthenticationFailure
from .event_log import EventLogger, NullEventLogger
from .video import GuestCredential

ClockFn = Callable[[], float]


def auth_headers(upstream: UpstreamConfig) -> dict[str, str]:
    return {
        "Authorization": f"Bearer {upstream.bearer_token}",
        "User-Agent": upstream.user_agent,
    }


class GuestTokenManager:
    """
    Holds the single guest credential used for anonymous upstream API calls.

    The credential expires lazily: validity is checked against the clock on
    every read and there is no background refresh. Refreshes are serialized
    so that concurrent callers share one activation call.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        upstream: UpstreamConfig | None = None,
        clock: ClockFn | None = None,
        logger: EventLogger | None = None,
    ) -> None:
        self._client = client
        self._upstream = upstream or UpstreamConfig()
        self._clock = clock or time.time
        self._log = logger or NullEventLogger()
        self._credential: GuestCredential | None = None
        self._refresh_lock = asyncio.Lock()

    def current(self) -> GuestCredential | None:
        cred = self._credential
        if cred is None or not cred.is_valid(self._clock()):
            return None
        return cred

    def invalidate(self) -> None:
        self._credential = None

    async def get_token(self) -> str:
        cred = self.current()
        if cred is not None:
            return cred.token

        async with self._refresh_lock:
            # Another caller may have refreshed while we waited.
            cred = self.current()
            if cred is not None:
                return cred.token

            cred = await self._activate()
            self._credential = cred
            return cred.token

    async def _activate(self) -> GuestCredential:
        url = self._upstream.guest_activate_url

        try:
            response = await self._client.post(url, headers=auth_headers(self._upstream))
        except httpx.HTTPError as e:
            self._log.error("guest_token_failed", url=url, reason="network_error", detail=str(e))
            raise AuthenticationFailure(f"Guest token request failed: {e}") from e

        if response.status_code < 200 or response.status_code >= 300:
            self._log.error("guest_token_failed", url=url, status=response.status_code)
            raise AuthenticationFailure(
                f"Guest token request returned HTTP {response.status_code}"
            )

        try:
            data: Any = response.json()
        except ValueError as e:
            self._log.error("guest_token_failed", url=url, reason="invalid_json")
            raise AuthenticationFailure("Guest token response was not valid JSON") from e

        token = data.get("guest_token") if isinstance(data, dict) else None
        if isinstance(token, int):
            token = str(token)
        if not isinstance(token, str) or not token.strip():
            self._log.error("guest_token_failed", url=url, reason="missing_token")
            raise AuthenticationFailure("Guest token response did not include a token")

        expires_at = self._clock() + float(self._upstream.guest_token_ttl_seconds)
        self._log.info("guest_token_refreshed", url=url, expires_at=expires_at)
        return GuestCredential(token=token.strip(), expires_at=expires_at)
