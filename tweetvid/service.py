from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Mapping, Protocol

import httpx

from .cache import ResultCache
from .config_schema import AppConfig
from .errors import InvalidUrl, VideoDownloadError
from .event_log import EventLogger, NullEventLogger
from .extract import extract_video_result
from .fetcher import TweetFetcher
from .guest_token import GuestTokenManager
from .url_parser import parse_identifier
from .video import ExtractionResult


class RawPostSource(Protocol):
    async def fetch_raw_post(self, post_id: str) -> Mapping[str, Any]: ...


class VideoDownloadService:
    """
    The download pipeline: parse, cache lookup, fetch, extract, cache store.

    Concurrent requests for the same uncached tweet share one in-flight fetch.
    """

    def __init__(
        self,
        fetcher: RawPostSource,
        cache: ResultCache,
        *,
        logger: EventLogger | None = None,
    ) -> None:
        self._fetcher = fetcher
        self._cache = cache
        self._log = logger or NullEventLogger()
        self._inflight: dict[str, asyncio.Task[ExtractionResult]] = {}

    @property
    def cache(self) -> ResultCache:
        return self._cache

    async def download_video(self, url: str) -> ExtractionResult:
        post_id = parse_identifier(url)
        if post_id is None:
            raise InvalidUrl("Invalid Twitter/X URL. Please provide a valid tweet URL.")

        cached = self._cache.get(post_id)
        if cached is not None:
            self._log.info("cache_hit", url=url, tweet_id=post_id)
            return cached

        task = self._inflight.get(post_id)
        if task is None:
            self._log.info("cache_miss", url=url, tweet_id=post_id)
            task = asyncio.ensure_future(self._fetch_and_store(post_id, url))
            self._inflight[post_id] = task
            task.add_done_callback(lambda done, key=post_id: self._forget(key, done))
        else:
            self._log.info("fetch_joined", url=url, tweet_id=post_id)

        # A cancelled caller must not cancel the fetch other callers share.
        return await asyncio.shield(task)

    def _forget(self, post_id: str, task: asyncio.Task[ExtractionResult]) -> None:
        self._inflight.pop(post_id, None)
        # Mark the outcome retrieved; every caller may have been cancelled already.
        if not task.cancelled():
            task.exception()

    async def _fetch_and_store(self, post_id: str, url: str) -> ExtractionResult:
        self._log.info("fetch_started", url=url, tweet_id=post_id)
        try:
            raw = await self._fetcher.fetch_raw_post(post_id)
            result = extract_video_result(raw, post_id)
        except VideoDownloadError as e:
            self._log.warning(
                "download_failed",
                url=url,
                tweet_id=post_id,
                kind=e.kind,
                message=str(e),
            )
            raise
        except Exception as e:
            self._log.exception("download_failed", exc=e, url=url, tweet_id=post_id)
            raise

        self._cache.put(post_id, result)
        self._log.info(
            "fetch_completed",
            url=url,
            tweet_id=post_id,
            variants=len(result.variants),
            best_quality=result.best_variant.quality,
        )
        return result


def build_http_client(config: AppConfig) -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=httpx.Timeout(config.upstream.timeout_seconds))


def build_service(
    config: AppConfig,
    client: httpx.AsyncClient,
    *,
    logger: EventLogger | None = None,
) -> VideoDownloadService:
    tokens = GuestTokenManager(client, upstream=config.upstream, logger=logger)
    fetcher = TweetFetcher(client, tokens, upstream=config.upstream, logger=logger)
    cache = ResultCache(
        ttl_seconds=config.cache.ttl_seconds,
        reap_interval_seconds=config.cache.reap_interval_seconds,
    )
    return VideoDownloadService(fetcher, cache, logger=logger)


@asynccontextmanager
async def open_service(
    config: AppConfig,
    *,
    logger: EventLogger | None = None,
    client: httpx.AsyncClient | None = None,
) -> AsyncIterator[VideoDownloadService]:
    """
    Yield a service wired to a shared HTTP client.

    A client passed in by the caller is left open; one created here is closed.
    """
    if client is not None:
        yield build_service(config, client, logger=logger)
        return

    async with build_http_client(config) as owned:
        yield build_service(config, owned, logger=logger)
