from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from ..config import PublisherConfig

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES = {"404", "NotFound", "NoSuchKey"}


class StoreError(RuntimeError):
    """Raised for any object-store failure other than a missing key."""


class ObjectStore(ABC):
    """Asynchronous interface to a key/value blob store."""

    @abstractmethod
    async def head_exists(self, key: str) -> bool:
        """Return whether ``key`` exists; raise :class:`StoreError` when unknown."""

    @abstractmethod
    async def put_object(self, key: str, body: bytes, content_type: str, cache_control: str) -> None:
        ...

    @abstractmethod
    def public_url(self, key: str) -> str:
        ...


class S3ObjectStore(ObjectStore):
    """S3 (or S3-compatible) store; boto3 calls run in worker threads."""

    def __init__(
        self,
        bucket: str,
        region: str,
        client: Any,
        endpoint_url: Optional[str] = None,
    ) -> None:
        self.bucket = bucket
        self.region = region
        self.client = client
        self.endpoint_url = endpoint_url

    @classmethod
    def from_config(cls, config: PublisherConfig, timeout: float = 30.0) -> "S3ObjectStore":
        client = boto3.client(
            "s3",
            region_name=config.region,
            endpoint_url=config.endpoint_url,
            aws_access_key_id=config.access_key_id,
            aws_secret_access_key=config.secret_access_key,
            config=Config(connect_timeout=timeout, read_timeout=timeout, signature_version="s3v4"),
        )
        return cls(config.bucket, config.region, client, endpoint_url=config.endpoint_url)

    async def head_exists(self, key: str) -> bool:
        try:
            await asyncio.to_thread(self.client.head_object, Bucket=self.bucket, Key=key)
        except ClientError as exc:
            code = str(exc.response.get("Error", {}).get("Code", ""))
            if code in _NOT_FOUND_CODES:
                return False
            raise StoreError(f"HEAD {key} failed: {exc}") from exc
        except BotoCoreError as exc:
            raise StoreError(f"HEAD {key} failed: {exc}") from exc
        return True

    async def put_object(self, key: str, body: bytes, content_type: str, cache_control: str) -> None:
        logger.debug("Uploading %s (%s bytes, %s)", key, len(body), content_type)
        try:
            await asyncio.to_thread(
                self.client.put_object,
                Bucket=self.bucket,
                Key=key,
                Body=body,
                ContentType=content_type,
                CacheControl=cache_control,
            )
        except (ClientError, BotoCoreError) as exc:
            raise StoreError(f"PUT {key} failed: {exc}") from exc

    def public_url(self, key: str) -> str:
        if self.endpoint_url:
            return f"{self.endpoint_url.rstrip('/')}/{self.bucket}/{key}"
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{key}"
