from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable, List, Set, Tuple

from ..models import ImageAsset

logger = logging.getLogger(__name__)

DEFAULT_EXTENSIONS: frozenset[str] = frozenset({".jpg", ".jpeg", ".png", ".gif"})


class DiscoveryError(RuntimeError):
    """Raised when the source root itself cannot be read."""


def discover_images(
    root: Path,
    extensions: Iterable[str] = DEFAULT_EXTENSIONS,
    exclude: Iterable[Path] = (),
) -> List[ImageAsset]:
    """Recursively collect images under ``root`` sorted by relative path.

    Symlinked directories are followed, but each physical directory is visited
    once. Unreadable entries are skipped with a warning.
    """
    root = root.resolve()
    if not root.is_dir():
        raise DiscoveryError(f"Source directory {root} does not exist or is not a directory")
    try:
        with os.scandir(root):
            pass
    except OSError as exc:
        raise DiscoveryError(f"Source directory {root} is not readable: {exc}") from exc

    wanted = {ext.lower() for ext in extensions}
    excluded = {path.resolve() for path in exclude}
    visited: Set[Tuple[int, int]] = set()
    assets: List[ImageAsset] = []

    def _on_error(error: OSError) -> None:
        logger.warning("Skipping unreadable entry %s: %s", error.filename, error.strerror or error)

    for dirpath, dirnames, filenames in os.walk(root, onerror=_on_error, followlinks=True):
        current = Path(dirpath)
        try:
            stat = current.stat()
        except OSError as exc:
            logger.warning("Skipping directory %s: %s", current, exc)
            dirnames[:] = []
            continue
        identity = (stat.st_dev, stat.st_ino)
        if identity in visited:
            logger.warning("Skipping %s: directory already visited (symlink cycle?)", current)
            dirnames[:] = []
            continue
        visited.add(identity)

        dirnames[:] = sorted(name for name in dirnames if (current / name).resolve() not in excluded)
        for filename in sorted(filenames):
            if Path(filename).suffix.lower() not in wanted:
                continue
            path = current / filename
            try:
                size = path.stat().st_size
            except OSError as exc:
                logger.warning("Skipping %s: %s", path, exc)
                continue
            if not path.is_file():
                continue
            relative = path.relative_to(root)
            assets.append(
                ImageAsset(
                    relative_path=relative.as_posix(),
                    source_path=path,
                    size=size,
                    format=path.suffix.lower().lstrip("."),
                )
            )

    assets.sort(key=lambda asset: asset.relative_path)
    logger.debug("Discovered %s images under %s", len(assets), root)
    return assets
