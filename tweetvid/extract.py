from __future__ import annotations

from typing import Any, Mapping

from .errors import MalformedPayload, NoPlayableFormat, NoVideoPresent, NotFoundOrPrivate
from .quality import format_file_size, label_for_bitrate, sort_descending_by_bitrate
from .video import ExtractionResult, VideoVariant

CAPTION_LIMIT = 100
ELLIPSIS = "..."
UNKNOWN_USERNAME = "unknown"

_VIDEO_MEDIA_TYPES = frozenset({"video", "animated_gif"})
_PLAYABLE_CONTENT_TYPE = "video/mp4"
_UNAVAILABLE_TYPENAMES = frozenset({"TweetTombstone", "TweetUnavailable"})


def _coerce_str(value: Any) -> str | None:
    if isinstance(value, str):
        s = value.strip()
        return s if s else None
    return None


def _coerce_int(value: Any) -> int | None:
    # bool is an int subclass but never a meaningful bitrate.
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


def _dig(obj: Any, *keys: str) -> Any:
    cur = obj
    for key in keys:
        if not isinstance(cur, Mapping):
            return None
        cur = cur.get(key)
    return cur


def truncate_caption(text: str, *, limit: int = CAPTION_LIMIT) -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + ELLIPSIS


def _tweet_node(raw: Mapping[str, Any], post_id: str) -> Mapping[str, Any]:
    result = _dig(raw, "data", "tweetResult", "result")
    if not isinstance(result, Mapping):
        raise MalformedPayload(f"Tweet {post_id}: response has no tweet result")

    if result.get("__typename") in _UNAVAILABLE_TYPENAMES:
        raise NotFoundOrPrivate(f"Tweet {post_id} is unavailable")

    # TweetWithVisibilityResults wraps the actual tweet one level down.
    inner = result.get("tweet")
    return inner if isinstance(inner, Mapping) else result


def _username(tweet: Mapping[str, Any]) -> str:
    user = _dig(tweet, "core", "user_results", "result")
    return (
        _coerce_str(_dig(user, "legacy", "screen_name"))
        or _coerce_str(_dig(user, "core", "screen_name"))
        or UNKNOWN_USERNAME
    )


def _find_video_media(legacy: Mapping[str, Any]) -> Mapping[str, Any] | None:
    media = _dig(legacy, "extended_entities", "media")
    if not isinstance(media, list):
        return None
    for item in media:
        if isinstance(item, Mapping) and item.get("type") in _VIDEO_MEDIA_TYPES:
            return item
    return None


def _playable_variants(raw_variants: Any, duration_ms: int | None) -> list[VideoVariant]:
    if not isinstance(raw_variants, list):
        return []

    out: list[VideoVariant] = []
    for item in raw_variants:
        if not isinstance(item, Mapping):
            continue
        if item.get("content_type") != _PLAYABLE_CONTENT_TYPE:
            continue
        url = _coerce_str(item.get("url"))
        if url is None:
            continue

        bitrate = max(0, _coerce_int(item.get("bitrate")) or 0)
        size = None
        if duration_ms and bitrate:
            size = format_file_size(bitrate * duration_ms / 8000)

        out.append(
            VideoVariant(
                quality=label_for_bitrate(bitrate),
                bitrate=bitrate,
                url=url,
                size=size,
            )
        )
    return out


def extract_video_result(raw: Mapping[str, Any], post_id: str) -> ExtractionResult:
    """
    Build an ExtractionResult from a raw TweetResultByRestId payload.

    Only the first video or animated GIF attached to the tweet is considered,
    and only its MP4 renditions are kept.
    """
    tweet = _tweet_node(raw, post_id)

    legacy = tweet.get("legacy")
    if not isinstance(legacy, Mapping):
        raise MalformedPayload(f"Tweet {post_id}: response has no tweet data")

    media = _find_video_media(legacy)
    video_info = media.get("video_info") if media is not None else None
    if media is None or not isinstance(video_info, Mapping):
        raise NoVideoPresent(f"No video found in tweet {post_id}")

    duration_ms = _coerce_int(video_info.get("duration_millis"))
    if duration_ms is not None and duration_ms <= 0:
        duration_ms = None

    variants = _playable_variants(video_info.get("variants"), duration_ms)
    if not variants:
        raise NoPlayableFormat(f"No downloadable video formats found in tweet {post_id}")

    text = legacy.get("full_text")
    return ExtractionResult(
        tweet_id=post_id,
        username=_username(tweet),
        text=truncate_caption(text if isinstance(text, str) else ""),
        thumbnail=_coerce_str(media.get("media_url_https")) or "",
        variants=sort_descending_by_bitrate(variants),
        duration_ms=duration_ms,
    )
