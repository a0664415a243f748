from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Dict, List, Optional, Set, Tuple

import pytest
from PIL import Image

from image_publisher.config import PublisherConfig
from image_publisher.storage.store import ObjectStore, StoreError


class FakeStore(ObjectStore):
    """In-memory store that records every call made against it."""

    def __init__(
        self,
        failing_puts: Optional[Set[str]] = None,
        failing_heads: Optional[Set[str]] = None,
        delays: Optional[Dict[str, float]] = None,
    ) -> None:
        self.objects: Dict[str, Tuple[bytes, str, str]] = {}
        self.heads: List[str] = []
        self.puts: List[str] = []
        self.events: List[Tuple[str, str]] = []
        self.failing_puts = failing_puts or set()
        self.failing_heads = failing_heads or set()
        self.delays = delays or {}

    async def head_exists(self, key: str) -> bool:
        self.heads.append(key)
        if key in self.failing_heads:
            raise StoreError(f"HEAD {key} failed: throttled")
        return key in self.objects

    async def put_object(self, key: str, body: bytes, content_type: str, cache_control: str) -> None:
        self.events.append(("start", key))
        self.puts.append(key)
        await asyncio.sleep(self.delays.get(key, 0))
        if key in self.failing_puts:
            self.events.append(("fail", key))
            raise StoreError(f"PUT {key} failed: connection reset")
        self.objects[key] = (body, content_type, cache_control)
        self.events.append(("done", key))

    def public_url(self, key: str) -> str:
        return f"memory://bucket/{key}"


def write_image(path: Path, fmt: str = "PNG", size: Tuple[int, int] = (48, 32), mode: str = "RGB") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    color = (200, 30, 30, 128) if mode == "RGBA" else (200, 30, 30)
    image = Image.new(mode, size, color)
    for x in range(0, size[0], 4):
        image.putpixel((x, x % size[1]), (10, 120, 240, 255) if mode == "RGBA" else (10, 120, 240))
    if fmt == "GIF":
        image = image.convert("P")
    image.save(path, format=fmt)
    return path


@pytest.fixture
def make_config(tmp_path: Path):
    def _make(**overrides) -> PublisherConfig:
        settings = {
            "bucket": "site-assets",
            "region": "eu-west-1",
            "access_key_id": "AKIDEXAMPLE",
            "secret_access_key": "secret",
            "source_dir": tmp_path / "img",
            "output_dir": tmp_path / "out",
        }
        settings.update(overrides)
        return PublisherConfig(**settings)

    return _make
