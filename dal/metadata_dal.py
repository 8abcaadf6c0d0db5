"""Async Data Access Layer for the ``metadata.json`` index.

Provides `MetadataDAL`, which loads and persists the whole `IndexFile` in a
single read or write, plus parsing helpers shared with bulk imports.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any

import aiofiles
import aiofiles.os
from pydantic import ValidationError

from models.image_record import ImageRecord, IndexFile
from utils.atomic_write import atomic_write_text
from utils.errors import InvalidIndexFormat, IoFailure
from utils.storage_init import StorageInitializer

LOGGER = logging.getLogger(__name__)


def _decode_json(text: str | bytes, what: str) -> Any:
    try:
        return json.loads(text)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise InvalidIndexFormat(f"Malformed JSON in {what}: {exc}") from exc


def parse_index_json(text: str | bytes, what: str = "index") -> IndexFile:
    """Parse and validate a complete index document.

    Raises:
        InvalidIndexFormat: If the text is not JSON or not an IndexFile.
    """
    payload = _decode_json(text, what)
    try:
        return IndexFile.model_validate(payload)
    except ValidationError as exc:
        raise InvalidIndexFormat(f"Invalid {what} structure: {exc}") from exc


def parse_record_json(text: str | bytes) -> ImageRecord:
    """Parse and validate a single image record."""
    payload = _decode_json(text, "image record")
    try:
        return ImageRecord.model_validate(payload)
    except ValidationError as exc:
        raise InvalidIndexFormat(f"Invalid image record structure: {exc}") from exc


class MetadataDAL:
    """Data access layer for the JSON index.

    A missing index file is an empty collection. An unparsable one raises
    `InvalidIndexFormat` unless `recover_corrupt` is set, in which case the
    file is moved aside to ``metadata.json.corrupt-<timestamp>`` and an empty
    index is returned.
    """

    def __init__(self, storage: StorageInitializer, recover_corrupt: bool = False) -> None:
        self._storage = storage
        self.recover_corrupt = recover_corrupt

    @property
    def path(self):
        return self._storage.metadata_path

    async def exists(self) -> bool:
        return await aiofiles.os.path.isfile(self.path)

    async def load(self) -> IndexFile:
        """Read the whole index from disk."""
        if not await self.exists():
            return IndexFile()

        try:
            async with aiofiles.open(self.path, "rb") as f:
                raw = await f.read()
        except OSError as exc:
            raise IoFailure(f"Failed to read index {self.path}: {exc}") from exc

        try:
            return parse_index_json(raw, what=self.path.name)
        except InvalidIndexFormat:
            if not self.recover_corrupt:
                raise
            await self._quarantine()
            return IndexFile()

    async def save(self, index: IndexFile) -> None:
        """Serialise the index with stable formatting and replace the file."""
        self._storage.ensure_metadata_parent()
        try:
            await atomic_write_text(self.path, index.to_json())
        except OSError as exc:
            raise IoFailure(f"Failed to write index {self.path}: {exc}") from exc

    async def _quarantine(self) -> None:
        stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
        target = self.path.with_name(f"{self.path.name}.corrupt-{stamp}")
        try:
            await aiofiles.os.replace(self.path, target)
        except OSError as exc:
            raise IoFailure(f"Failed to move corrupt index aside: {exc}") from exc
        LOGGER.warning("Corrupt index moved to %s; starting with an empty index", target)
