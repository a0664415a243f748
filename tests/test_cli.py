from __future__ import annotations

from pathlib import Path

import pytest

from conftest import FakeStore, write_image
from image_publisher.cli import publish_images
from image_publisher.cli.publish_images import EXIT_ASSET_ERRORS, EXIT_CONFIG_ERROR, EXIT_DISCOVERY_ERROR, main, run


def test_missing_configuration_exits_before_any_work(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("AWS_BUCKET", "AWS_REGION", "AWS_ACCESS_KEY_ID", "AWS_SECRET_ACCESS_KEY"):
        monkeypatch.delenv(name, raising=False)

    def fail_discovery(*args, **kwargs):
        raise AssertionError("discovery must not run without configuration")

    monkeypatch.setattr(publish_images, "discover_images", fail_discovery)

    with pytest.raises(SystemExit) as excinfo:
        main(["--source", str(tmp_path), "--env-file", str(tmp_path / "missing.env")])
    assert excinfo.value.code == EXIT_CONFIG_ERROR


def test_main_uses_env_file_and_runs(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    env_file = tmp_path / ".env"
    env_file.write_text(
        "AWS_BUCKET=site-assets\nAWS_REGION=eu-west-1\nAWS_ACCESS_KEY_ID=AKID\nAWS_SECRET_ACCESS_KEY=secret\n",
        encoding="utf-8",
    )
    for name in ("AWS_BUCKET", "AWS_REGION", "AWS_ACCESS_KEY_ID", "AWS_SECRET_ACCESS_KEY", "DRY_RUN"):
        monkeypatch.delenv(name, raising=False)
    write_image(tmp_path / "img" / "photo.png")
    store = FakeStore()
    monkeypatch.setattr(publish_images.S3ObjectStore, "from_config", classmethod(lambda cls, config: store))

    with pytest.raises(SystemExit) as excinfo:
        main(["--source", str(tmp_path / "img"), "--env-file", str(env_file), "--prefix", "images"])

    assert excinfo.value.code == 0
    assert sorted(store.objects) == ["images/optimized/photo.png", "images/webp/photo.webp"]


def test_missing_source_is_a_discovery_error(tmp_path: Path, make_config) -> None:
    config = make_config(source_dir=tmp_path / "nope")
    assert run(config, FakeStore()) == EXIT_DISCOVERY_ERROR


def test_empty_source_exits_cleanly_without_uploads(
    tmp_path: Path, make_config, caplog: pytest.LogCaptureFixture
) -> None:
    config = make_config()
    config.source_dir.mkdir()
    store = FakeStore()

    with caplog.at_level("INFO"):
        assert run(config, store) == 0

    assert store.puts == []
    assert store.heads == []
    assert "Total images found: 0" in caplog.text


def test_asset_errors_are_advisory_unless_strict(tmp_path: Path, make_config) -> None:
    config = make_config()
    write_image(config.source_dir / "good.png")
    (config.source_dir / "bad.gif").write_bytes(b"GIF89a broken")

    assert run(config, FakeStore()) == 0
    assert run(config, FakeStore(), strict=True) == EXIT_ASSET_ERRORS


def test_output_tree_inside_source_is_not_republished(tmp_path: Path, make_config) -> None:
    config = make_config(output_dir=tmp_path / "img" / ".tmp")
    write_image(config.source_dir / "photo.png")
    store = FakeStore()

    run(config, store)
    run(config, store)

    assert sorted(store.objects) == ["optimized/photo.png", "webp/photo.webp"]


def test_dry_run_flag_reaches_pipeline(tmp_path: Path, make_config, caplog: pytest.LogCaptureFixture) -> None:
    config = make_config(dry_run=True)
    write_image(config.source_dir / "photo.png")
    store = FakeStore()

    with caplog.at_level("INFO"):
        assert run(config, store) == 0

    assert store.puts == []
    assert "[DRY RUN] Would upload: webp/photo.webp" in caplog.text
    assert "Would upload:" in caplog.text
