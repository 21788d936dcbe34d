from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence


@dataclass(frozen=True)
class GuestCredential:
    """An anonymous bearer token plus the wall-clock time it stops being usable."""

    token: str
    expires_at: float

    def is_valid(self, now: float) -> bool:
        return now < self.expires_at


@dataclass(frozen=True)
class VideoVariant:
    quality: str
    bitrate: int
    url: str
    size: str | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "quality": self.quality,
            "bitrate": self.bitrate,
            "url": self.url,
        }
        if self.size is not None:
            out["size"] = self.size
        return out


@dataclass(frozen=True)
class ExtractionResult:
    """
    The normalized, cacheable description of a tweet's downloadable video.

    variants are ordered highest bitrate first and never empty, so best_variant
    is always variants[0].
    """

    tweet_id: str
    username: str
    text: str
    thumbnail: str
    variants: Sequence[VideoVariant]
    duration_ms: int | None = None

    def __post_init__(self) -> None:
        if not self.variants:
            raise ValueError("ExtractionResult requires at least one variant")
        # Freeze the sequence so cached results cannot be mutated by callers.
        object.__setattr__(self, "variants", tuple(self.variants))

    @property
    def best_variant(self) -> VideoVariant:
        return self.variants[0]

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "tweetId": self.tweet_id,
            "username": self.username,
            "text": self.text,
            "thumbnail": self.thumbnail,
            "variants": [v.to_dict() for v in self.variants],
            "bestQuality": self.best_variant.to_dict(),
        }
        if self.duration_ms is not None:
            out["durationMs"] = self.duration_ms
        return out
