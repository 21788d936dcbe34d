from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import Sequence

from .config import config_sha256, load_config, resolve_runtime_settings
from .errors import ConfigError, VideoDownloadError
from .event_log import EventLogger
from .service import open_service
from .video import ExtractionResult


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="tweetvid")

    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser(
        "serve",
        help="Run the download API server.",
    )
    serve.add_argument(
        "--config",
        default=None,
        help="Path to YAML config file (defaults are used when omitted).",
    )
    serve.add_argument("--host", default=None, help="Override the bind host.")
    serve.add_argument("--port", type=int, default=None, help="Override the bind port.")
    serve.set_defaults(_handler=_cmd_serve)

    fetch = subparsers.add_parser(
        "fetch",
        help="Resolve the video variants of a single tweet and print them as JSON.",
    )
    fetch.add_argument("url", help="Tweet URL or numeric tweet id.")
    fetch.add_argument(
        "--config",
        default=None,
        help="Path to YAML config file (defaults are used when omitted).",
    )
    fetch.set_defaults(_handler=_cmd_fetch)

    return parser


def _eprint(message: str) -> None:
    print(message, file=sys.stderr)


def _cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    from .api import create_app

    cfg = load_config(args.config)
    settings = resolve_runtime_settings(cfg)
    host = args.host or settings.host
    port = args.port or settings.port

    logger = EventLogger.open(cfg.logging.path)
    try:
        logger.info(
            "serve_command_started",
            config_path=str(args.config) if args.config else None,
            config_sha256=config_sha256(cfg),
            host=host,
            port=port,
            cors_origin=settings.cors_origin,
        )
        app = create_app(cfg, logger=logger, cors_origin=settings.cors_origin)
        uvicorn.run(app, host=host, port=port)
    finally:
        logger.close()
    return 0


async def _fetch_once(url: str, args: argparse.Namespace) -> ExtractionResult:
    cfg = load_config(args.config)
    logger = EventLogger.open(cfg.logging.path)
    try:
        async with open_service(cfg, logger=logger) as svc:
            return await svc.download_video(url)
    finally:
        logger.close()


def _cmd_fetch(args: argparse.Namespace) -> int:
    result = asyncio.run(_fetch_once(args.url, args))
    print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    try:
        handler = getattr(args, "_handler")
        return int(handler(args))
    except ConfigError as e:
        _eprint(str(e))
        return 2
    except VideoDownloadError as e:
        _eprint(f"{e.kind}: {e}")
        return 3
    except KeyboardInterrupt:
        _eprint("Interrupted")
        return 130
    except Exception as e:
        _eprint(f"Unexpected error: {e}")
        return 1
