from __future__ import annotations

import hashlib
import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

import yaml
from pydantic import ValidationError

from .config_schema import AppConfig
from .errors import ConfigError


@dataclass(frozen=True)
class RuntimeSettings:
    host: str
    port: int
    cors_origin: str


def load_config(path: str | Path | None) -> AppConfig:
    """
    Load a YAML config file and validate it into a typed AppConfig.

    A path of None yields the built-in defaults. Raises ConfigError with a
    readable validation message on failure.
    """
    if path is None:
        return AppConfig()

    p = Path(path)

    if not p.exists():
        raise ConfigError(f"Config file not found: {p}")

    try:
        raw_text = p.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Failed to read config file: {p}") from e

    try:
        data = yaml.safe_load(raw_text)
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse YAML in {p}: {e}") from e

    if data is None:
        data = {}

    if not isinstance(data, dict):
        raise ConfigError(f"Top-level YAML in {p} must be a mapping/object")

    try:
        return AppConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(_format_pydantic_errors(e, p)) from e


def resolve_runtime_settings(
    config: AppConfig, *, environ: Mapping[str, str] | None = None
) -> RuntimeSettings:
    """
    Apply HOST, PORT and CORS_ORIGIN environment overrides to the server config.
    """
    env = os.environ if environ is None else environ

    host = (env.get("HOST") or "").strip() or config.server.host
    cors_origin = (env.get("CORS_ORIGIN") or "").strip() or config.server.cors_origin

    port = config.server.port
    raw_port = (env.get("PORT") or "").strip()
    if raw_port:
        try:
            port = int(raw_port)
        except ValueError as e:
            raise ConfigError(f"PORT must be an integer, got {raw_port!r}") from e
        if not (1 <= port <= 65535):
            raise ConfigError(f"PORT must be between 1 and 65535, got {port}")

    return RuntimeSettings(host=host, port=port, cors_origin=cors_origin)


def config_sha256(config: AppConfig) -> str:
    """
    Compute a stable SHA-256 hash of the config values.
    """
    payload = json.dumps(
        config.model_dump(mode="json"),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    ).encode("utf-8")
    return hashlib.sha256(payload).hexdigest()


def _format_pydantic_errors(err: ValidationError, path: Path) -> str:
    lines: list[str] = [f"Invalid configuration in {path}:"]
    for item in err.errors():
        loc = ".".join(str(part) for part in item.get("loc", [])) or "<root>"
        msg = item.get("msg", "invalid value")
        lines.append(f"- {loc}: {msg}")
    return "\n".join(lines)
