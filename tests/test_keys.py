from __future__ import annotations

import pytest

from image_publisher.models import Variant
from image_publisher.storage.keys import content_type_for, remote_key


def test_key_derivation_preserves_structure_and_base_name() -> None:
    assert remote_key("a/b/photo.JPG", Variant.OPTIMIZED) == "optimized/a/b/photo.JPG"
    assert remote_key("a/b/photo.JPG", Variant.WEBP) == "webp/a/b/photo.webp"


def test_root_level_file_has_no_leading_separator() -> None:
    assert remote_key("photo.png", Variant.OPTIMIZED) == "optimized/photo.png"
    assert remote_key("/photo.png", Variant.WEBP) == "webp/photo.webp"


def test_backslashes_become_forward_slashes() -> None:
    assert remote_key("a\\b\\photo.gif", Variant.WEBP) == "webp/a/b/photo.webp"


def test_prefix_is_normalized() -> None:
    assert remote_key("photo.png", Variant.OPTIMIZED, prefix="/images/") == "images/optimized/photo.png"


@pytest.mark.parametrize(
    "name, expected",
    [
        ("photo.jpg", "image/jpeg"),
        ("photo.JPEG", "image/jpeg"),
        ("logo.png", "image/png"),
        ("anim.gif", "image/gif"),
        ("webp/photo.webp", "image/webp"),
        ("archive.tar", "application/octet-stream"),
        ("README", "application/octet-stream"),
    ],
)
def test_content_type_for(name: str, expected: str) -> None:
    assert content_type_for(name) == expected
