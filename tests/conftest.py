from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from services.image_store import ImageStore
from utils.storage_init import StorageInitializer

FIXED_NOW = datetime(2024, 5, 1, 12, 30, 0, tzinfo=timezone.utc)


class FakeClock:
    """Deterministic clock; call ``advance`` to move time forward."""

    def __init__(self, now: datetime = FIXED_NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def storage(tmp_path: Path) -> StorageInitializer:
    return StorageInitializer(tmp_path / "anne-app")


@pytest.fixture
def store(storage: StorageInitializer, clock: FakeClock) -> ImageStore:
    return ImageStore(storage, clock=clock)
