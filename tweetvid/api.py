from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from importlib.metadata import PackageNotFoundError, version
from typing import Any, AsyncIterator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import config_sha256
from .config_schema import AppConfig
from .errors import INTERNAL_ERROR_MESSAGE, VideoDownloadError, error_response
from .event_log import EventLogger, NullEventLogger
from .rate_limit import SlidingWindowRateLimiter
from .service import VideoDownloadService, build_http_client, build_service

SERVICE_NAME = "Twitter/X Video Downloader API"


class DownloadRequest(BaseModel):
    url: str | None = None


def _pkg_version(name: str) -> str:
    try:
        return version(name)
    except PackageNotFoundError:
        return "unknown"


def _failure(status: int, error: str, message: str | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status,
        content={"success": False, "error": error, "message": message or error},
    )


def _client_key(request: Request) -> str:
    return request.client.host if request.client is not None else "unknown"


def _too_many(limiter: SlidingWindowRateLimiter, key: str, error: str, message: str) -> JSONResponse:
    response = _failure(429, error, message)
    response.headers["Retry-After"] = str(max(1, int(limiter.retry_after(key) + 0.999)))
    return response


async def _prune_forever(*limiters: SlidingWindowRateLimiter) -> None:
    interval = min(limiter.window_seconds for limiter in limiters)
    while True:
        await asyncio.sleep(interval)
        for limiter in limiters:
            limiter.prune()


def create_app(
    config: AppConfig | None = None,
    *,
    service: VideoDownloadService | None = None,
    logger: EventLogger | None = None,
    cors_origin: str | None = None,
) -> FastAPI:
    """
    Build the HTTP API around one download service.

    When no service is injected, the lifespan creates the shared HTTP client
    and service and closes them on shutdown.
    """
    cfg = config or AppConfig()
    log = logger or NullEventLogger()
    api_limiter = SlidingWindowRateLimiter(
        max_requests=cfg.rate_limit.max_api_requests,
        window_seconds=cfg.rate_limit.window_seconds,
    )
    download_limiter = SlidingWindowRateLimiter(
        max_requests=cfg.rate_limit.max_download_requests,
        window_seconds=cfg.rate_limit.window_seconds,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        log.info("service_starting", config_sha256=config_sha256(cfg))

        client = None
        svc = service
        if svc is None:
            client = build_http_client(cfg)
            svc = build_service(cfg, client, logger=log)
        app.state.service = svc

        background = [asyncio.create_task(svc.cache.run_reaper())]
        if cfg.rate_limit.enabled:
            background.append(asyncio.create_task(_prune_forever(api_limiter, download_limiter)))

        try:
            yield
        finally:
            for task in background:
                task.cancel()
            await asyncio.gather(*background, return_exceptions=True)
            if client is not None:
                await client.aclose()
            log.info("service_stopped")

    app = FastAPI(title=SERVICE_NAME, version=_pkg_version("tweetvid"), lifespan=lifespan)

    # Registered before CORS, which therefore wraps these 429 responses too.
    @app.middleware("http")
    async def _limit_api(request: Request, call_next: Any) -> Any:
        if cfg.rate_limit.enabled and request.url.path.startswith("/api"):
            key = _client_key(request)
            if not api_limiter.allow(key):
                log.warning("api_rate_limited", path=request.url.path, client=key)
                return _too_many(
                    api_limiter,
                    key,
                    "Too many requests. Please wait a moment before trying again.",
                    "Rate limit exceeded",
                )
        return await call_next(request)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[cors_origin or cfg.server.cors_origin],
        allow_methods=["GET", "POST", "DELETE"],
        allow_headers=["*"],
        allow_credentials=True,
    )

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        if exc.status_code == 404:
            return _failure(404, "Not found", "The requested endpoint does not exist")
        return _failure(exc.status_code, str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def _bad_request(request: Request, exc: RequestValidationError) -> JSONResponse:
        return _failure(400, "Invalid request body", "Please enter a valid Twitter/X post URL")

    @app.exception_handler(Exception)
    async def _unhandled(request: Request, exc: Exception) -> JSONResponse:
        log.exception("unhandled_error", exc=exc, path=request.url.path)
        return _failure(500, "Internal server error", INTERNAL_ERROR_MESSAGE)

    @app.get("/")
    async def root() -> dict[str, Any]:
        return {
            "name": SERVICE_NAME,
            "version": app.version,
            "status": "running",
            "endpoints": {
                "download": "POST /api/download",
                "health": "GET /api/health",
                "cache": "GET /api/cache, DELETE /api/cache",
            },
        }

    @app.get("/api/health")
    async def health() -> dict[str, Any]:
        return {
            "success": True,
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    @app.post("/api/download")
    async def download(body: DownloadRequest, request: Request) -> JSONResponse:
        key = _client_key(request)
        if cfg.rate_limit.enabled and not download_limiter.allow(key):
            return _too_many(
                download_limiter,
                key,
                "Too many requests. Please wait a moment and try again.",
                "Download rate limit exceeded",
            )

        url = (body.url or "").strip()
        if not url:
            return _failure(400, "URL is required", "Please enter a valid Twitter/X post URL")

        svc: VideoDownloadService = request.app.state.service
        try:
            result = await svc.download_video(url)
        except VideoDownloadError as e:
            status, message = error_response(e)
            log.warning("download_rejected", url=url, kind=e.kind, status=status)
            return _failure(status, message)
        except Exception as e:
            log.exception("download_crashed", exc=e, url=url)
            status, message = error_response(e)
            return _failure(status, "Internal server error", message)

        return JSONResponse(content={"success": True, "data": result.to_dict()})

    @app.get("/api/cache")
    async def cache_stats(request: Request) -> dict[str, Any]:
        svc: VideoDownloadService = request.app.state.service
        return {"success": True, "stats": svc.cache.stats().to_dict()}

    @app.delete("/api/cache")
    async def cache_flush(request: Request) -> dict[str, Any]:
        svc: VideoDownloadService = request.app.state.service
        svc.cache.flush()
        log.info("cache_flushed")
        return {"success": True}

    return app
