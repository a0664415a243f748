from __future__ import annotations

import logging
from dataclasses import dataclass
from io import BytesIO
from typing import Any, Dict

from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)

_JPEG_FORMATS = {"jpg", "jpeg"}


class TransformError(RuntimeError):
    """Raised when an image cannot be decoded or re-encoded."""


@dataclass(slots=True)
class OptimizationConfig:
    quality: int = 85
    webp_quality: int = 80


class ImageOptimizer:
    """Re-encodes source bytes; never touches the file they came from."""

    def __init__(self, config: OptimizationConfig | None = None) -> None:
        self.config = config or OptimizationConfig()

    def optimize_bytes(self, data: bytes, fmt: str) -> bytes:
        fmt = fmt.lower().lstrip(".")
        with self._open(data) as image:
            try:
                if fmt in _JPEG_FORMATS:
                    return self._encode_jpeg(image)
                if fmt == "png":
                    return self._encode_png(image)
                if fmt == "gif":
                    return self._encode_gif(image)
            except (OSError, ValueError) as exc:
                raise TransformError(f"Unable to re-encode {fmt} image: {exc}") from exc
        raise TransformError(f"Unsupported image format: {fmt!r}")

    def encode_webp(self, data: bytes) -> bytes:
        with self._open(data) as image:
            buffer = BytesIO()
            try:
                if getattr(image, "n_frames", 1) > 1:
                    logger.debug("Encoding %s frames as animated WebP", image.n_frames)
                    image.save(buffer, format="WEBP", save_all=True, quality=self.config.webp_quality)
                else:
                    frame = image.convert("RGBA" if _has_alpha(image) else "RGB")
                    frame.save(buffer, format="WEBP", quality=self.config.webp_quality, method=6)
            except (OSError, ValueError) as exc:
                raise TransformError(f"Unable to encode WebP: {exc}") from exc
            return buffer.getvalue()

    def _open(self, data: bytes) -> Image.Image:
        try:
            image = Image.open(BytesIO(data))
            image.load()
        except (UnidentifiedImageError, OSError, ValueError) as exc:
            raise TransformError(f"Unable to decode image: {exc}") from exc
        return image

    def _encode_jpeg(self, image: Image.Image) -> bytes:
        if _has_alpha(image):
            rgba = image.convert("RGBA")
            flattened = Image.new("RGB", rgba.size, (255, 255, 255))
            flattened.paste(rgba, mask=rgba.split()[-1])
        else:
            flattened = image.convert("RGB")
        options: Dict[str, Any] = {"quality": self.config.quality, "optimize": True, "progressive": True}
        exif = image.info.get("exif")
        if exif:
            options["exif"] = exif
        return _save(flattened, "JPEG", **options)

    def _encode_png(self, image: Image.Image) -> bytes:
        if self.config.quality >= 100 or image.mode == "P":
            return _save(image, "PNG", optimize=True)
        colors = _palette_size(self.config.quality)
        if _has_alpha(image):
            # MEDIANCUT does not accept RGBA input.
            palette = image.convert("RGBA").quantize(colors=colors, method=Image.Quantize.FASTOCTREE)
        else:
            palette = image.convert("RGB").quantize(colors=colors)
        return _save(palette, "PNG", optimize=True)

    def _encode_gif(self, image: Image.Image) -> bytes:
        if getattr(image, "n_frames", 1) > 1:
            return _save(image, "GIF", save_all=True, optimize=True)
        return _save(image, "GIF", optimize=True)


def _palette_size(quality: int) -> int:
    """Number of palette colours used for lossy PNG output at ``quality``."""
    return max(2, min(256, round(256 * quality / 100)))


def _has_alpha(image: Image.Image) -> bool:
    return image.mode in ("RGBA", "LA", "PA") or (image.mode == "P" and "transparency" in image.info)


def _save(image: Image.Image, fmt: str, **options: Any) -> bytes:
    buffer = BytesIO()
    image.save(buffer, format=fmt, **options)
    return buffer.getvalue()
