from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from services.image_store import ImageStore
from utils.errors import DirectoryUnavailable
from utils.storage_init import StorageInitializer, default_app_data_dir


def test_layout_under_explicit_base_dir(tmp_path: Path) -> None:
    storage = StorageInitializer(tmp_path / "base")
    assert storage.images_dir == tmp_path / "base" / "images"
    assert storage.metadata_path == tmp_path / "base" / "metadata.json"
    # Resolving paths has no side effects.
    assert not (tmp_path / "base").exists()


def test_ensure_helpers_are_idempotent(tmp_path: Path) -> None:
    storage = StorageInitializer(tmp_path / "base")
    for _ in range(2):
        assert storage.ensure_images_dir().is_dir()
        assert storage.ensure_metadata_parent().is_dir()


def test_env_var_overrides_default(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GALLERY_DATA_DIR", str(tmp_path / "from-env"))
    storage = StorageInitializer()
    assert storage.base_dir == tmp_path / "from-env"


def test_default_base_dir_uses_bundle_layout(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("GALLERY_DATA_DIR", raising=False)
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "xdg"))
    monkeypatch.setattr("sys.platform", "linux")
    storage = StorageInitializer()
    assert storage.base_dir == tmp_path / "xdg" / "com.anne-app.app" / "anne-app"


@pytest.mark.parametrize(
    ("platform", "environ", "expected"),
    [
        ("linux", {"XDG_DATA_HOME": "/data/xdg"}, Path("/data/xdg")),
        ("linux", {}, Path.home() / ".local" / "share"),
        ("freebsd13", {}, Path.home() / ".local" / "share"),
        ("darwin", {"XDG_DATA_HOME": "/ignored"}, Path.home() / "Library" / "Application Support"),
        ("win32", {"APPDATA": "C:/Users/anne/AppData/Roaming"}, Path("C:/Users/anne/AppData/Roaming")),
        ("win32", {}, Path.home() / "AppData" / "Roaming"),
    ],
)
def test_default_app_data_dir(platform: str, environ: dict, expected: Path) -> None:
    assert default_app_data_dir(environ, platform) == expected


def test_base_dir_pointing_to_file_is_rejected(tmp_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")
    with pytest.raises(DirectoryUnavailable):
        StorageInitializer(blocker)


def test_warm_up_logs_and_continues_on_failure(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")
    storage = StorageInitializer(blocker / "nested")

    assert storage.warm_up() is False
    assert "warm-up failed" in caplog.text
    with pytest.raises(DirectoryUnavailable):
        storage.ensure_images_dir()


def test_store_surfaces_unavailable_directory(tmp_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")
    store = ImageStore(StorageInitializer(blocker / "nested"))

    with pytest.raises(DirectoryUnavailable):
        asyncio.run(store.save_captured_image(b"x", "a.jpg"))


def test_warm_up_creates_layout(tmp_path: Path) -> None:
    storage = StorageInitializer(tmp_path / "base")
    assert storage.warm_up() is True
    assert storage.images_dir.is_dir()
