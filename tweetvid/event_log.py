from __future__ import annotations

import json
import sys
import traceback
import uuid
from datetime import datetime, timezone
from pathlib import Path
from threading import Lock
from typing import Any, TextIO

_MESSAGE_LIMIT = 2000
_TRACEBACK_LIMIT = 12000


def _clip(text: str, limit: int) -> str:
    return text if len(text) <= limit else text[: limit - 1] + "…"


def describe_exception(exc: BaseException) -> dict[str, str]:
    """Compact, size-bounded description of an exception for a log record."""
    tb = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return {
        "type": type(exc).__name__,
        "message": _clip(str(exc), _MESSAGE_LIMIT),
        "traceback": _clip(tb, _TRACEBACK_LIMIT),
    }


class EventLogger:
    """
    JSONL event log for the download service.

    One JSON object per line. The request URL and tweet id are top-level keys
    so a single download can be followed with grep; anything else lands under
    "data". Events go to a file (opened lazily, appended to) or to an
    already-open text stream such as stderr.
    """

    def __init__(
        self,
        path: str | Path | None = None,
        *,
        stream: TextIO | None = None,
        session_id: str | None = None,
    ) -> None:
        if path is not None and stream is not None:
            raise ValueError("pass either path or stream, not both")

        self._path = Path(path) if path is not None else None
        self._stream = stream
        self._owns_stream = False
        self._session_id = (session_id or "").strip() or uuid.uuid4().hex
        self._lock = Lock()

    @classmethod
    def open(cls, path: str | Path | None) -> "EventLogger":
        """Log to `path`, or to stderr when no path is configured."""
        if path is None:
            return cls(stream=sys.stderr)
        logger = cls(path)
        logger._ensure_open()
        return logger

    def close(self) -> None:
        """Close a file this logger opened; borrowed streams are left alone."""
        with self._lock:
            if self._stream is not None and self._owns_stream:
                try:
                    self._stream.flush()
                finally:
                    self._stream.close()
                self._stream = None
                self._owns_stream = False

    def info(self, event: str, *, url: str | None = None, tweet_id: str | None = None, **data: Any) -> None:
        self.log("INFO", event, url=url, tweet_id=tweet_id, **data)

    def warning(self, event: str, *, url: str | None = None, tweet_id: str | None = None, **data: Any) -> None:
        self.log("WARN", event, url=url, tweet_id=tweet_id, **data)

    def error(self, event: str, *, url: str | None = None, tweet_id: str | None = None, **data: Any) -> None:
        self.log("ERROR", event, url=url, tweet_id=tweet_id, **data)

    def exception(
        self,
        event: str,
        *,
        exc: BaseException,
        url: str | None = None,
        tweet_id: str | None = None,
        **data: Any,
    ) -> None:
        self.log("ERROR", event, url=url, tweet_id=tweet_id, error=describe_exception(exc), **data)

    def log(
        self,
        level: str,
        event: str,
        *,
        url: str | None = None,
        tweet_id: str | None = None,
        **data: Any,
    ) -> None:
        record: dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": (level or "").strip().upper() or "INFO",
            "event": (event or "").strip() or "event",
            "session_id": self._session_id,
        }
        if url:
            record["url"] = url.strip()
        if tweet_id:
            record["tweet_id"] = tweet_id
        if data:
            record["data"] = data

        self._write(json.dumps(record, ensure_ascii=False, sort_keys=True, separators=(",", ":"), default=str))

    def _ensure_open(self) -> None:
        if self._stream is not None or self._path is None:
            return

        with self._lock:
            if self._stream is not None:
                return
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._stream = self._path.open("a", encoding="utf-8", newline="\n")
            self._owns_stream = True

    def _write(self, line: str) -> None:
        self._ensure_open()
        with self._lock:
            if self._stream is None:
                return
            self._stream.write(line + "\n")
            self._stream.flush()


class NullEventLogger(EventLogger):
    """Drops every event; the default when no logger is injected."""

    def __init__(self) -> None:
        super().__init__(session_id="null")

    def log(
        self,
        level: str,
        event: str,
        *,
        url: str | None = None,
        tweet_id: str | None = None,
        **data: Any,
    ) -> None:
        return None
