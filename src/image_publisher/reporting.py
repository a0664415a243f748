"""Human-readable run summary."""

from __future__ import annotations

import logging
from typing import List

from .models import RunStats

logger = logging.getLogger(__name__)


def reduction_percent(original: int, derived: int) -> float:
    """Size reduction of ``derived`` relative to ``original``, clamped to [0, 100]."""
    if original <= 0:
        return 0.0
    percent = (1 - derived / original) * 100
    return min(max(percent, 0.0), 100.0)


def _kb(size: int) -> str:
    return f"{size / 1024:.2f} KB"


def format_summary(stats: RunStats, dry_run: bool = False) -> List[str]:
    upload_label = "Would upload" if dry_run else "Uploaded"
    lines = [
        "Summary",
        f"Total images found: {stats.total}",
        f"Successfully processed: {stats.processed}",
        f"Skipped (already in store): {stats.skipped}",
        f"Errors: {stats.errors}",
        f"Existence check failures: {stats.check_errors}",
        f"Upload failures: {stats.upload_errors}",
        "Size comparison:",
        f"  Original: {_kb(stats.original_bytes)}",
        f"  Optimized: {_kb(stats.optimized_bytes)} "
        f"({reduction_percent(stats.original_bytes, stats.optimized_bytes):.2f}% reduction)",
        f"  WebP: {_kb(stats.webp_bytes)} ({reduction_percent(stats.original_bytes, stats.webp_bytes):.2f}% reduction)",
        f"{upload_label}:",
        f"  Original format: {stats.uploaded_optimized}",
        f"  WebP format: {stats.uploaded_webp}",
    ]
    if stats.errors:
        lines.append(f"Note: {stats.errors} image(s) failed; see the errors logged above.")
    return lines


def log_summary(stats: RunStats, dry_run: bool = False) -> None:
    for line in format_summary(stats, dry_run=dry_run):
        logger.info(line)
