from __future__ import annotations

import re
from typing import Any

# Tried in order; the first captured group wins. The host must be twitter.com or
# x.com (optionally a subdomain), and every identifier has at least 15 digits.
_ID_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"(?:^|[/.])(?:twitter|x)\.com/(?:#!/)?\w+/status(?:es)?/(\d{15,})"),
    re.compile(r"(?:^|[/.])(?:twitter|x)\.com/\w+/status/(\d{15,})"),
    re.compile(r"^(\d{15,})$"),
)


def parse_identifier(url: Any) -> str | None:
    """
    Extract a post identifier from a Twitter/X status URL or a bare numeric id.

    Returns None when nothing matches; callers decide whether that is an error.
    """
    if not isinstance(url, str):
        return None

    text = url.strip()
    if not text:
        return None

    for pattern in _ID_PATTERNS:
        match = pattern.search(text)
        if match and match.group(1):
            return match.group(1)
    return None


def is_valid_url(url: Any) -> bool:
    return parse_identifier(url) is not None
