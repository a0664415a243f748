from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

from ..config import ConfigurationError, PublisherConfig, load_config, read_environment
from ..image_processing.pipeline import PublishPipeline
from ..media.discovery import DiscoveryError, discover_images
from ..models import RunStats
from ..reporting import log_summary
from ..storage.store import ObjectStore, S3ObjectStore

logger = logging.getLogger(__name__)

EXIT_CONFIG_ERROR = 1
EXIT_DISCOVERY_ERROR = 2
EXIT_ASSET_ERRORS = 3


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Optimize site images, convert them to WebP and upload both to S3"
    )
    parser.add_argument("--source", type=Path, default=None, help="Directory to scan for images")
    parser.add_argument(
        "--output", type=Path, default=None, help="Directory for the optimized and webp output trees"
    )
    parser.add_argument("--prefix", default=None, help="Key prefix inside the bucket, e.g. images")
    parser.add_argument("--quality", type=int, default=None, help="Quality (1-100) for the optimized original")
    parser.add_argument("--webp-quality", type=int, default=None, help="Quality (1-100) for the WebP variant")
    parser.add_argument("--batch-size", type=int, default=None, help="Images processed concurrently per batch")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        default=None,
        help="Transform locally and log the keys that would be uploaded, without writing to the store",
    )
    parser.add_argument(
        "--skip-existing",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Skip variants whose key already exists in the store",
    )
    parser.add_argument(
        "--skip-on-uncertain",
        action="store_true",
        default=None,
        help="Treat a failed existence check as 'already uploaded' instead of re-uploading",
    )
    parser.add_argument(
        "--strict", action="store_true", help="Exit with status 3 when any image failed"
    )
    parser.add_argument(
        "--env-file", type=Path, default=Path(".env"), help="Optional dotenv file with AWS settings"
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def _overrides(args: argparse.Namespace) -> Dict[str, Any]:
    return {
        "source_dir": args.source,
        "output_dir": args.output,
        "key_prefix": args.prefix,
        "image_quality": args.quality,
        "webp_quality": args.webp_quality,
        "batch_size": args.batch_size,
        "dry_run": args.dry_run,
        "skip_existing": args.skip_existing,
        "skip_on_uncertain": args.skip_on_uncertain,
    }


def run(config: PublisherConfig, store: ObjectStore, strict: bool = False) -> int:
    logger.info("Source directory: %s", config.source_dir)
    logger.info("Bucket: %s (%s), prefix: %r", config.bucket, config.region, config.key_prefix)
    if config.dry_run:
        logger.info("DRY RUN MODE: no files will be uploaded")

    try:
        assets = discover_images(config.source_dir, exclude=[config.output_dir])
    except DiscoveryError as exc:
        logger.error("Image discovery failed: %s", exc)
        return EXIT_DISCOVERY_ERROR

    if not assets:
        logger.info("No image files found in %s", config.source_dir)
        log_summary(RunStats(), dry_run=config.dry_run)
        return 0

    logger.info("Found %s image files to process", len(assets))
    pipeline = PublishPipeline(config, store)
    stats = asyncio.run(pipeline.run(assets))
    log_summary(stats, dry_run=config.dry_run)
    if strict and stats.errors:
        return EXIT_ASSET_ERRORS
    return 0


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)
    try:
        config = load_config(read_environment(args.env_file), _overrides(args))
    except ConfigurationError as exc:
        logger.error("Configuration error: %s", exc)
        raise SystemExit(EXIT_CONFIG_ERROR) from exc

    store = S3ObjectStore.from_config(config)
    raise SystemExit(run(config, store, strict=args.strict))


if __name__ == "__main__":
    main()
