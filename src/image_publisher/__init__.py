from .config import ConfigurationError, PublisherConfig, load_config
from .image_processing.optimizer import ImageOptimizer, OptimizationConfig, TransformError
from .image_processing.pipeline import PublishPipeline
from .media.discovery import DiscoveryError, discover_images
from .models import ImageAsset, RunStats, TransformResult, Variant
from .storage.store import ObjectStore, S3ObjectStore, StoreError

__all__ = [
    "ConfigurationError",
    "PublisherConfig",
    "load_config",
    "ImageOptimizer",
    "OptimizationConfig",
    "TransformError",
    "PublishPipeline",
    "DiscoveryError",
    "discover_images",
    "ImageAsset",
    "RunStats",
    "TransformResult",
    "Variant",
    "ObjectStore",
    "S3ObjectStore",
    "StoreError",
]
