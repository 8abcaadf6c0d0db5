from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

import main


def test_create_store_warms_up_layout(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("GALLERY_RECOVER_CORRUPT_INDEX", raising=False)
    store = main.create_store(tmp_path / "base")
    assert store.storage.images_dir.is_dir()
    assert store.metadata.recover_corrupt is False


def test_create_store_recovery_opt_in(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GALLERY_RECOVER_CORRUPT_INDEX", "yes")
    store = main.create_store(tmp_path / "base")
    assert store.metadata.recover_corrupt is True


def test_main_prints_summary(tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture) -> None:
    monkeypatch.setenv("GALLERY_DATA_DIR", str(tmp_path / "env-base"))
    asyncio.run(main.main())
    out = capsys.readouterr().out
    assert str(tmp_path / "env-base") in out
    assert "Images: 0" in out
