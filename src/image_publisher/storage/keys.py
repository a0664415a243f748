from __future__ import annotations

from pathlib import PurePosixPath

from ..models import Variant

CACHE_CONTROL = "public, max-age=31536000, immutable"
DEFAULT_CONTENT_TYPE = "application/octet-stream"

_CONTENT_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
}


def remote_key(relative_path: str, variant: Variant, prefix: str = "") -> str:
    """Map an asset's relative path to its object key for ``variant``.

    ``a/b/photo.JPG`` becomes ``optimized/a/b/photo.JPG`` or ``webp/a/b/photo.webp``.
    """
    path = PurePosixPath(relative_path.replace("\\", "/").lstrip("/"))
    if variant is Variant.WEBP:
        path = path.with_suffix(".webp")
    parts = [segment for segment in (prefix.strip("/"), variant.value, path.as_posix()) if segment]
    return "/".join(parts)


def content_type_for(name: str) -> str:
    return _CONTENT_TYPES.get(PurePosixPath(name).suffix.lower(), DEFAULT_CONTENT_TYPE)
