"""Run configuration assembled once from the environment and CLI overrides."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from dotenv import dotenv_values

DEFAULT_SOURCE_DIR = Path("img")
DEFAULT_OUTPUT_DIR = DEFAULT_SOURCE_DIR / ".tmp"
DEFAULT_IMAGE_QUALITY = 85
DEFAULT_WEBP_QUALITY = 80
DEFAULT_BATCH_SIZE = 5

_REQUIRED_VARIABLES = {
    "bucket": "AWS_BUCKET",
    "region": "AWS_REGION",
    "access_key_id": "AWS_ACCESS_KEY_ID",
    "secret_access_key": "AWS_SECRET_ACCESS_KEY",
}

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}


class ConfigurationError(ValueError):
    """Raised when required settings are missing or malformed."""


@dataclass(frozen=True, slots=True)
class PublisherConfig:
    bucket: str
    region: str
    access_key_id: str
    secret_access_key: str
    source_dir: Path = DEFAULT_SOURCE_DIR
    output_dir: Path = DEFAULT_OUTPUT_DIR
    key_prefix: str = ""
    endpoint_url: Optional[str] = None
    image_quality: int = DEFAULT_IMAGE_QUALITY
    webp_quality: int = DEFAULT_WEBP_QUALITY
    batch_size: int = DEFAULT_BATCH_SIZE
    skip_existing: bool = True
    skip_on_uncertain: bool = False
    dry_run: bool = False

    def __repr__(self) -> str:
        return (
            f"PublisherConfig(bucket={self.bucket!r}, region={self.region!r}, "
            f"source_dir={str(self.source_dir)!r}, dry_run={self.dry_run})"
        )


def read_environment(env_file: Optional[Path] = Path(".env")) -> Dict[str, str]:
    """Return values from ``env_file`` overlaid with the process environment.

    ``os.environ`` itself is left untouched.
    """
    values: Dict[str, str] = {}
    if env_file is not None and env_file.is_file():
        values.update({key: value for key, value in dotenv_values(env_file).items() if value is not None})
    values.update(os.environ)
    return values


def load_config(environ: Mapping[str, str], overrides: Optional[Mapping[str, Any]] = None) -> PublisherConfig:
    """Build a :class:`PublisherConfig`, failing fast on missing credentials.

    ``overrides`` come from the command line; entries set to ``None`` are ignored.
    """
    explicit = {key: value for key, value in (overrides or {}).items() if value is not None}

    settings: Dict[str, Any] = {}
    missing = []
    for field_name, variable in _REQUIRED_VARIABLES.items():
        value = (environ.get(variable) or "").strip()
        if not value:
            missing.append(variable)
        settings[field_name] = value
    if missing:
        raise ConfigurationError(f"Missing required environment variables: {', '.join(missing)}")

    source_dir = explicit.get("source_dir") or _optional(environ, "IMAGE_SOURCE_DIR")
    settings["source_dir"] = Path(source_dir) if source_dir else DEFAULT_SOURCE_DIR
    output_dir = explicit.get("output_dir") or _optional(environ, "IMAGE_OUTPUT_DIR")
    settings["output_dir"] = Path(output_dir) if output_dir else settings["source_dir"] / ".tmp"

    prefix = explicit.get("key_prefix", _optional(environ, "S3_KEY_PREFIX") or "")
    settings["key_prefix"] = str(prefix).strip("/")
    settings["endpoint_url"] = explicit.get("endpoint_url") or _optional(environ, "S3_ENDPOINT_URL")

    settings["image_quality"] = _quality(
        explicit.get("image_quality", _int(environ, "IMAGE_QUALITY", DEFAULT_IMAGE_QUALITY)), "IMAGE_QUALITY"
    )
    settings["webp_quality"] = _quality(
        explicit.get("webp_quality", _int(environ, "WEBP_QUALITY", DEFAULT_WEBP_QUALITY)), "WEBP_QUALITY"
    )
    batch_size = explicit.get("batch_size", _int(environ, "IMAGE_BATCH_SIZE", DEFAULT_BATCH_SIZE))
    if batch_size < 1:
        raise ConfigurationError(f"IMAGE_BATCH_SIZE must be at least 1, got {batch_size}")
    settings["batch_size"] = batch_size

    settings["skip_existing"] = explicit.get("skip_existing", _bool(environ, "SKIP_EXISTING", True))
    settings["skip_on_uncertain"] = explicit.get("skip_on_uncertain", _bool(environ, "SKIP_ON_UNCERTAIN", False))
    settings["dry_run"] = explicit.get("dry_run", _bool(environ, "DRY_RUN", False))
    return PublisherConfig(**settings)


def _optional(environ: Mapping[str, str], name: str) -> Optional[str]:
    value = (environ.get(name) or "").strip()
    return value or None


def _int(environ: Mapping[str, str], name: str, default: int) -> int:
    raw = _optional(environ, name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from exc


def _bool(environ: Mapping[str, str], name: str, default: bool) -> bool:
    raw = environ.get(name)
    if raw is None:
        return default
    lowered = raw.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ConfigurationError(f"{name} must be a boolean flag, got {raw!r}")


def _quality(value: int, name: str) -> int:
    if not 1 <= value <= 100:
        raise ConfigurationError(f"{name} must be between 1 and 100, got {value}")
    return value
