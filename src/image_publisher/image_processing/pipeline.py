from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Dict, Iterator, List, Sequence, TypeVar

from ..config import PublisherConfig
from ..models import ImageAsset, RunStats, TransformResult, Variant
from ..storage.keys import CACHE_CONTROL, content_type_for, remote_key
from ..storage.store import ObjectStore, StoreError
from .optimizer import ImageOptimizer, OptimizationConfig, TransformError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def iter_batches(items: Sequence[T], size: int) -> Iterator[Sequence[T]]:
    if size < 1:
        raise ValueError("batch size must be at least 1")
    for start in range(0, len(items), size):
        yield items[start : start + size]


class PublishPipeline:
    """Optimizes, converts and uploads assets in sequential, bounded batches.

    Every task of a batch settles before the next batch starts. Stats are only
    mutated from coroutines on the event loop; encoding and store I/O happen in
    worker threads.
    """

    def __init__(
        self,
        config: PublisherConfig,
        store: ObjectStore,
        optimizer: ImageOptimizer | None = None,
        stats: RunStats | None = None,
    ) -> None:
        self.config = config
        self.store = store
        self.optimizer = optimizer or ImageOptimizer(
            OptimizationConfig(quality=config.image_quality, webp_quality=config.webp_quality)
        )
        self.stats = stats or RunStats()
        self.optimized_dir = config.output_dir / Variant.OPTIMIZED.value
        self.webp_dir = config.output_dir / Variant.WEBP.value
        self.optimized_dir.mkdir(parents=True, exist_ok=True)
        self.webp_dir.mkdir(parents=True, exist_ok=True)

    async def run(self, assets: Sequence[ImageAsset]) -> RunStats:
        self.stats.total += len(assets)
        accepted = self._reject_collisions(assets)
        batches = list(iter_batches(accepted, self.config.batch_size))
        done = 0
        for number, batch in enumerate(batches, start=1):
            results = await asyncio.gather(*(self.process_asset(asset) for asset in batch), return_exceptions=True)
            for asset, result in zip(batch, results):
                if isinstance(result, BaseException):
                    logger.error("Unexpected failure while processing %s: %r", asset.relative_path, result)
                    self.stats.errors += 1
            done += len(batch)
            logger.info("Batch %s/%s complete: %s/%s assets", number, len(batches), done, len(accepted))
        return self.stats

    async def process_asset(self, asset: ImageAsset) -> None:
        logger.debug("Processing %s", asset.relative_path)
        try:
            result = await asyncio.to_thread(self._transform, asset)
        except (TransformError, OSError) as exc:
            logger.error("Failed to transform %s: %s", asset.relative_path, exc)
            self.stats.errors += 1
            return
        self.stats.record_transform(result)

        keys = {
            Variant.OPTIMIZED: remote_key(asset.relative_path, Variant.OPTIMIZED, self.config.key_prefix),
            Variant.WEBP: remote_key(asset.relative_path, Variant.WEBP, self.config.key_prefix),
        }
        pending: Dict[Variant, str] = {}
        for variant, key in keys.items():
            if not await self._exists(key):
                pending[variant] = key
        if not pending:
            logger.info("Skipping %s (already in store)", asset.relative_path)
            self.stats.skipped += 1
            return

        paths = {Variant.OPTIMIZED: result.optimized_path, Variant.WEBP: result.webp_path}
        outcomes = await asyncio.gather(
            *(self._upload(paths[variant], key, variant) for variant, key in pending.items())
        )
        if all(outcomes):
            logger.info(
                "Optimized %s: %s -> %s bytes (WebP %s bytes)",
                asset.relative_path,
                asset.size,
                result.optimized_size,
                result.webp_size,
            )
            self.stats.processed += 1
        else:
            self.stats.errors += 1

    def _transform(self, asset: ImageAsset) -> TransformResult:
        data = asset.source_path.read_bytes()
        optimized = self.optimizer.optimize_bytes(data, asset.format)
        webp = self.optimizer.encode_webp(data)

        relative = Path(*asset.relative_path.split("/"))
        optimized_path = self.optimized_dir / relative
        webp_path = (self.webp_dir / relative).with_suffix(".webp")
        for target, payload in ((optimized_path, optimized), (webp_path, webp)):
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(payload)
        return TransformResult(
            asset=asset,
            optimized_path=optimized_path,
            webp_path=webp_path,
            optimized_size=len(optimized),
            webp_size=len(webp),
        )

    async def _exists(self, key: str) -> bool:
        if not self.config.skip_existing:
            return False
        try:
            return await self.store.head_exists(key)
        except StoreError as exc:
            self.stats.check_errors += 1
            if self.config.skip_on_uncertain:
                logger.warning("Existence of %s unknown, treating as present: %s", key, exc)
                return True
            logger.warning("Existence of %s unknown, uploading anyway: %s", key, exc)
            return False

    async def _upload(self, path: Path, key: str, variant: Variant) -> bool:
        if self.config.dry_run:
            logger.info("[DRY RUN] Would upload: %s", key)
            self.stats.record_upload(variant)
            return True
        try:
            body = await asyncio.to_thread(path.read_bytes)
            await self.store.put_object(key, body, content_type_for(key), CACHE_CONTROL)
        except (StoreError, OSError) as exc:
            logger.error("Failed to upload %s: %s", key, exc)
            self.stats.upload_errors += 1
            return False
        logger.debug("Uploaded %s", self.store.public_url(key))
        self.stats.record_upload(variant)
        return True

    def _reject_collisions(self, assets: Sequence[ImageAsset]) -> List[ImageAsset]:
        owners: Dict[str, ImageAsset] = {}
        accepted: List[ImageAsset] = []
        for asset in assets:
            key = remote_key(asset.relative_path, Variant.WEBP)
            owner = owners.get(key)
            if owner is not None:
                logger.error(
                    "Skipping %s: its WebP output %s collides with %s", asset.relative_path, key, owner.relative_path
                )
                self.stats.errors += 1
                continue
            owners[key] = asset
            accepted.append(asset)
        return accepted
