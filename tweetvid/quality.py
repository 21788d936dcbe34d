from __future__ import annotations

from typing import Iterable, TypeVar

from .video import VideoVariant

V = TypeVar("V", bound=VideoVariant)

# (minimum bits per second, label), highest first.
_QUALITY_THRESHOLDS: tuple[tuple[int, str], ...] = (
    (2_000_000, "1080p"),
    (1_000_000, "720p"),
    (500_000, "480p"),
    (250_000, "360p"),
)
_LOWEST_LABEL = "240p"

_SIZE_UNITS = ("Bytes", "KB", "MB", "GB")


def label_for_bitrate(bitrate: int) -> str:
    for minimum, label in _QUALITY_THRESHOLDS:
        if bitrate >= minimum:
            return label
    return _LOWEST_LABEL


def sort_descending_by_bitrate(variants: Iterable[V]) -> list[V]:
    """
    Return a new list ordered highest bitrate first.

    sorted() is stable, so variants sharing a bitrate keep their input order.
    """
    return sorted(variants, key=lambda v: v.bitrate, reverse=True)


def format_file_size(num_bytes: float) -> str:
    size = max(0.0, float(num_bytes))
    if size == 0:
        return "0 Bytes"

    exponent = 0
    while size >= 1024 and exponent < len(_SIZE_UNITS) - 1:
        size /= 1024
        exponent += 1
    return f"{round(size, 2):g} {_SIZE_UNITS[exponent]}"
