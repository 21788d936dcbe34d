from __future__ import annotations


class ConfigError(RuntimeError):
    """Raised when configuration is missing or invalid."""


class VideoDownloadError(RuntimeError):
    """Base class for every failure the download pipeline reports to callers."""

    kind = "internal_error"


class InvalidUrl(VideoDownloadError):
    """Raised when no post identifier can be parsed from the input."""

    kind = "invalid_url"


class AuthenticationFailure(VideoDownloadError):
    """Raised when the guest-token activation call fails."""

    kind = "authentication_failure"


class NotFoundOrPrivate(VideoDownloadError):
    kind = "not_found_or_private"


class UpstreamRateLimited(VideoDownloadError):
    kind = "upstream_rate_limited"


class FetchFailed(VideoDownloadError):
    """Raised on network errors and unexpected upstream HTTP statuses."""

    kind = "fetch_failed"


class MalformedPayload(VideoDownloadError):
    """Raised when the upstream response lacks the expected tweet structure."""

    kind = "malformed_payload"


class NoVideoPresent(VideoDownloadError):
    kind = "no_video_present"


class NoPlayableFormat(VideoDownloadError):
    kind = "no_playable_format"


INTERNAL_ERROR_MESSAGE = "Something went wrong. Please try again later."

_ERROR_RESPONSES: dict[str, tuple[int, str]] = {
    InvalidUrl.kind: (400, "Please enter a valid Twitter/X post URL"),
    NotFoundOrPrivate.kind: (404, "This post is private, protected, or does not exist"),
    NoVideoPresent.kind: (404, "No video found in this post"),
    NoPlayableFormat.kind: (404, "No downloadable video formats found in this post"),
    UpstreamRateLimited.kind: (429, "Too many requests. Please wait 30 seconds"),
    AuthenticationFailure.kind: (500, "Failed to authenticate with Twitter"),
    FetchFailed.kind: (500, "Failed to fetch tweet data"),
    MalformedPayload.kind: (500, "Received an unexpected response from Twitter"),
}


def error_response(exc: BaseException) -> tuple[int, str]:
    """
    Map an exception to the (HTTP status, user-facing message) pair.

    Anything outside the download taxonomy is reported as a generic 500 so that
    internal details never reach the client.
    """
    if isinstance(exc, VideoDownloadError):
        found = _ERROR_RESPONSES.get(exc.kind)
        if found is not None:
            return found
    return 500, INTERNAL_ERROR_MESSAGE
