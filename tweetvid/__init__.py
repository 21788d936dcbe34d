from __future__ import annotations

from .config import config_sha256, load_config, resolve_runtime_settings
from .config_schema import AppConfig
from .errors import ConfigError, VideoDownloadError
from .service import VideoDownloadService, open_service
from .url_parser import is_valid_url, parse_identifier
from .video import ExtractionResult, VideoVariant

__all__ = [
    "AppConfig",
    "ConfigError",
    "ExtractionResult",
    "VideoDownloadError",
    "VideoDownloadService",
    "VideoVariant",
    "config_sha256",
    "is_valid_url",
    "load_config",
    "open_service",
    "parse_identifier",
    "resolve_runtime_settings",
]
