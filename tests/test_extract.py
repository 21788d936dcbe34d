from __future__ import annotations

import unittest
from typing import Any

from tweetvid.errors import MalformedPayload, NoPlayableFormat, NoVideoPresent, NotFoundOrPrivate
from tweetvid.extract import extract_video_result
from tweetvid.video import ExtractionResult, VideoVariant

_TWEET_ID = "1234567890123456789"


def _payload(
    *,
    media: list[dict[str, Any]] | None = None,
    text: str = "Look at this",
    screen_name: str | None = "alice",
    wrap: bool = False,
) -> dict[str, Any]:
    tweet: dict[str, Any] = {
        "__typename": "Tweet",
        "legacy": {
            "full_text": text,
            "extended_entities": {"media": media if media is not None else []},
        },
    }
    if screen_name is not None:
        tweet["core"] = {"user_results": {"result": {"legacy": {"screen_name": screen_name}}}}

    result: dict[str, Any] = tweet
    if wrap:
        result = {"__typename": "TweetWithVisibilityResults", "tweet": tweet}
    return {"data": {"tweetResult": {"result": result}}}


def _video_media(variants: list[dict[str, Any]], **extra: Any) -> dict[str, Any]:
    media = {
        "type": "video",
        "media_url_https": "https://pbs.twimg.com/thumb.jpg",
        "video_info": {"variants": variants},
    }
    media.update(extra)
    return media


_MP4_LOW = {"content_type": "video/mp4", "bitrate": 800_000, "url": "https://video.twimg.com/low.mp4"}
_MP4_HIGH = {"content_type": "video/mp4", "bitrate": 2_500_000, "url": "https://video.twimg.com/high.mp4"}
_HLS = {"content_type": "application/x-mpegURL", "url": "https://video.twimg.com/pl.m3u8"}


class TestExtractVideoResult(unittest.TestCase):
    def test_builds_sorted_result(self) -> None:
        raw = _payload(media=[_video_media([_MP4_LOW, _HLS, _MP4_HIGH])])

        result = extract_video_result(raw, _TWEET_ID)

        self.assertEqual(result.tweet_id, _TWEET_ID)
        self.assertEqual(result.username, "alice")
        self.assertEqual(result.text, "Look at this")
        self.assertEqual(result.thumbnail, "https://pbs.twimg.com/thumb.jpg")
        self.assertEqual(len(result.variants), 2)
        self.assertGreaterEqual(result.variants[0].bitrate, result.variants[1].bitrate)
        self.assertEqual(result.best_variant.quality, "1080p")
        self.assertEqual(result.best_variant, result.variants[0])
        self.assertEqual(result.variants[1].quality, "480p")
        self.assertIsNone(result.duration_ms)
        self.assertIsNone(result.best_variant.size)

    def test_unwraps_visibility_wrapper_and_uses_first_video(self) -> None:
        photo = {"type": "photo", "media_url_https": "https://pbs.twimg.com/p.jpg"}
        gif = {
            "type": "animated_gif",
            "media_url_https": "https://pbs.twimg.com/gif.jpg",
            "video_info": {"variants": [{"content_type": "video/mp4", "url": "https://video.twimg.com/g.mp4"}]},
        }
        raw = _payload(media=[photo, gif, _video_media([_MP4_HIGH])], wrap=True)

        result = extract_video_result(raw, _TWEET_ID)

        self.assertEqual(result.thumbnail, "https://pbs.twimg.com/gif.jpg")
        self.assertEqual(len(result.variants), 1)
        self.assertEqual(result.best_variant.bitrate, 0)
        self.assertEqual(result.best_variant.quality, "240p")

    def test_caption_truncation(self) -> None:
        exact = "a" * 100
        long = "b" * 101

        result = extract_video_result(_payload(media=[_video_media([_MP4_LOW])], text=exact), _TWEET_ID)
        self.assertEqual(result.text, exact)

        result = extract_video_result(_payload(media=[_video_media([_MP4_LOW])], text=long), _TWEET_ID)
        self.assertEqual(result.text, "b" * 100 + "...")

    def test_username_defaults_to_unknown(self) -> None:
        raw = _payload(media=[_video_media([_MP4_LOW])], screen_name=None)
        self.assertEqual(extract_video_result(raw, _TWEET_ID).username, "unknown")

    def test_estimates_sizes_from_duration(self) -> None:
        media = _video_media([], video_info={"duration_millis": 10_000, "variants": [_MP4_LOW]})
        raw = _payload(media=[media])

        result = extract_video_result(raw, _TWEET_ID)

        self.assertEqual(result.duration_ms, 10_000)
        # 800 kbit/s for 10 s is 1,000,000 bytes.
        self.assertEqual(result.best_variant.size, "976.56 KB")

    def test_no_video_media(self) -> None:
        photo = {"type": "photo", "media_url_https": "https://pbs.twimg.com/p.jpg"}
        with self.assertRaises(NoVideoPresent):
            extract_video_result(_payload(media=[photo]), _TWEET_ID)
        with self.assertRaises(NoVideoPresent):
            extract_video_result(_payload(media=[]), _TWEET_ID)

    def test_video_without_video_info(self) -> None:
        with self.assertRaises(NoVideoPresent):
            extract_video_result(_payload(media=[{"type": "video"}]), _TWEET_ID)

    def test_only_non_mp4_variant(self) -> None:
        with self.assertRaises(NoPlayableFormat):
            extract_video_result(_payload(media=[_video_media([_HLS])]), _TWEET_ID)

    def test_malformed_payloads(self) -> None:
        for raw in [
            {},
            {"data": {}},
            {"data": {"tweetResult": {}}},
            {"data": {"tweetResult": {"result": {"__typename": "Tweet"}}}},
        ]:
            with self.subTest(raw=raw):
                with self.assertRaises(MalformedPayload):
                    extract_video_result(raw, _TWEET_ID)

    def test_tombstone_is_not_found(self) -> None:
        raw = {"data": {"tweetResult": {"result": {"__typename": "TweetTombstone"}}}}
        with self.assertRaises(NotFoundOrPrivate):
            extract_video_result(raw, _TWEET_ID)


class TestExtractionResult(unittest.TestCase):
    def test_requires_variants(self) -> None:
        with self.assertRaises(ValueError):
            ExtractionResult(tweet_id=_TWEET_ID, username="a", text="", thumbnail="", variants=[])

    def test_to_dict_wire_shape(self) -> None:
        variants = [
            VideoVariant(quality="1080p", bitrate=2_500_000, url="https://v/h.mp4", size="3 MB"),
            VideoVariant(quality="480p", bitrate=800_000, url="https://v/l.mp4"),
        ]
        result = ExtractionResult(
            tweet_id=_TWEET_ID,
            username="alice",
            text="t",
            thumbnail="https://pbs.twimg.com/x.jpg",
            variants=variants,
            duration_ms=9000,
        )

        self.assertIsInstance(result.variants, tuple)
        self.assertEqual(
            result.to_dict(),
            {
                "tweetId": _TWEET_ID,
                "username": "alice",
                "text": "t",
                "thumbnail": "https://pbs.twimg.com/x.jpg",
                "variants": [
                    {"quality": "1080p", "bitrate": 2_500_000, "url": "https://v/h.mp4", "size": "3 MB"},
                    {"quality": "480p", "bitrate": 800_000, "url": "https://v/l.mp4"},
                ],
                "bestQuality": {"quality": "1080p", "bitrate": 2_500_000, "url": "https://v/h.mp4", "size": "3 MB"},
                "durationMs": 9000,
            },
        )


if __name__ == "__main__":
    unittest.main()
