from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path


class Variant(str, Enum):
    """Derived encodings produced for every asset."""

    OPTIMIZED = "optimized"
    WEBP = "webp"


@dataclass(frozen=True, slots=True)
class ImageAsset:
    """A source image discovered under the configured root."""

    relative_path: str
    source_path: Path
    size: int
    format: str


@dataclass(slots=True)
class TransformResult:
    """Local artifacts written for one asset, ready for upload."""

    asset: ImageAsset
    optimized_path: Path
    webp_path: Path
    optimized_size: int
    webp_size: int


@dataclass(slots=True)
class RunStats:
    total: int = 0
    processed: int = 0
    skipped: int = 0
    errors: int = 0
    check_errors: int = 0
    upload_errors: int = 0
    uploaded_optimized: int = 0
    uploaded_webp: int = 0
    optimized_artifacts: int = 0
    webp_artifacts: int = 0
    original_bytes: int = 0
    optimized_bytes: int = 0
    webp_bytes: int = 0

    @property
    def uploaded(self) -> int:
        return self.uploaded_optimized + self.uploaded_webp

    def record_transform(self, result: TransformResult) -> None:
        self.original_bytes += result.asset.size
        self.optimized_bytes += result.optimized_size
        self.webp_bytes += result.webp_size
        self.optimized_artifacts += 1
        self.webp_artifacts += 1

    def record_upload(self, variant: Variant) -> None:
        if variant is Variant.OPTIMIZED:
            self.uploaded_optimized += 1
        else:
            self.uploaded_webp += 1
