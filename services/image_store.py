"""Metadata-backed image store.

This service keeps image files (under ``<base>/images/``) and the JSON index
(``<base>/metadata.json``) consistent. Every operation is a single unit of
work: load the whole index, locate the target record by id, apply one
mutation, persist the whole index. A per-store `asyncio.Lock` serialises
these units so concurrent callers cannot lose each other's updates.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, List, Mapping, Optional, Union

from pydantic import ValidationError

from dal.image_dal import ImageFileDAL
from dal.metadata_dal import MetadataDAL, parse_index_json, parse_record_json
from models.image_record import Comment, ImageRecord, IndexFile
from utils.errors import InvalidFilename, InvalidIndexFormat, IoFailure, NotFound
from utils.filename_validation import ensure_safe_filename, extension_from_name
from utils.storage_init import StorageInitializer

LOGGER = logging.getLogger(__name__)

CommentInput = Union[Comment, Mapping[str, Any]]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ImageStore:
    """Create, read, update and delete stored images and their metadata.

    Args:
        storage: Path resolver for the images directory and index file.
        recover_corrupt_index: When True an unparsable index is moved aside
            and replaced by an empty one instead of raising.
        clock: Returns the current UTC time; used for ids and timestamps.
    """

    def __init__(
        self,
        storage: StorageInitializer,
        *,
        recover_corrupt_index: bool = False,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.storage = storage
        self.files = ImageFileDAL(storage)
        self.metadata = MetadataDAL(storage, recover_corrupt=recover_corrupt_index)
        self._clock = clock
        self._lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    async def _new_image_id(self, index: IndexFile, extension: str, now: datetime) -> str:
        base_id = f"img_{int(now.timestamp())}"
        image_id, n = base_id, 0
        while index.find(image_id) is not None or await self.files.exists(f"{image_id}.{extension}"):
            n += 1
            image_id = f"{base_id}_{n}"
        return image_id

    async def _load_existing(self, kind: str, identifier: str) -> IndexFile:
        """Load the index, treating a missing file as "nothing to find"."""
        if not await self.metadata.exists():
            raise NotFound(kind, identifier, f"No saved images found (looking for {kind} {identifier})")
        return await self.metadata.load()

    @staticmethod
    def _require(index: IndexFile, image_id: str, kind: str = "image") -> ImageRecord:
        record = index.find(image_id)
        if record is None:
            raise NotFound(kind, image_id)
        return record

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------
    async def save_captured_image(
        self,
        image_bytes: bytes,
        original_name: str,
        analysis_result: Optional[str] = None,
    ) -> str:
        """Store a locally captured image and append its record.

        The id is ``img_<unix_seconds>`` with a ``_<n>`` suffix when that id
        (or its file) is already taken. Bytes are written before the index;
        a failed write leaves the index untouched.

        Returns:
            The generated image id.
        """
        extension = extension_from_name(original_name)
        async with self._lock:
            now = self._clock()
            index = await self.metadata.load()
            image_id = await self._new_image_id(index, extension, now)
            filename = ensure_safe_filename(f"{image_id}.{extension}")

            await self.files.write(filename, image_bytes)

            index.images.append(
                ImageRecord(
                    id=image_id,
                    filename=filename,
                    original_name=original_name,
                    timestamp=now,
                    analysis_result=analysis_result,
                    user_comments=[],
                )
            )
            try:
                await self.metadata.save(index)
            except IoFailure:
                # Keep file and index paired: no record means no file.
                await self.files.delete(filename)
                raise

        LOGGER.info("Saved captured image %s (%d bytes) as %s", image_id, len(image_bytes), filename)
        return image_id

    async def save_network_image(self, filename: str, image_bytes: bytes) -> str:
        """Write bytes received from the network under a caller-chosen name.

        Raises:
            InvalidFilename: If `filename` contains ``..``, ``/`` or ``\\``.
        """
        filename = ensure_safe_filename(filename)
        async with self._lock:
            await self.files.write(filename, image_bytes)
        LOGGER.info("Saved network image %s (%d bytes)", filename, len(image_bytes))
        return filename

    async def save_network_image_with_metadata(
        self,
        filename: str,
        image_bytes: bytes,
        record_json: Union[str, bytes],
    ) -> bool:
        """Write network image bytes and import their record if it is new.

        The bytes are always written (overwriting any previous file). The
        record is appended only when no record shares its id, so re-importing
        the same record is harmless. The record's ``filename`` is set to the
        name the bytes were stored under.

        A filename already used by a record with another id is rejected.

        Returns:
            True if a record was appended, False if its id was already present.
        """
        filename = ensure_safe_filename(filename)
        record = parse_record_json(record_json)
        if record.filename != filename:
            LOGGER.warning(
                "Imported record %s names file %r; storing it as %r", record.id, record.filename, filename
            )
            record.filename = filename

        async with self._lock:
            index = await self.metadata.load()
            owner = next((r for r in index.images if r.filename == filename and r.id != record.id), None)
            if owner is not None:
                raise InvalidFilename(f"File {filename!r} already belongs to record {owner.id}")
            await self.files.write(filename, image_bytes)

            if index.find(record.id) is not None:
                LOGGER.info("Record %s already indexed; refreshed file %s only", record.id, filename)
                return False

            index.images.append(record)
            await self.metadata.save(index)

        LOGGER.info("Imported network image %s with record %s", filename, record.id)
        return True

    async def replace_index(self, new_index_json: Union[str, bytes]) -> int:
        """Validate and wholesale-replace the persisted index.

        No merge with the previous index takes place.

        Returns:
            Number of records in the new index.
        """
        index = parse_index_json(new_index_json, what="replacement index")
        async with self._lock:
            await self.metadata.save(index)
        LOGGER.info("Replaced index with %d records", len(index.images))
        return len(index.images)

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------
    async def list_images(self) -> List[ImageRecord]:
        """Return all records in index order; empty if nothing was saved yet."""
        async with self._lock:
            index = await self.metadata.load()
        return list(index.images)

    async def get_image(self, image_id: str) -> ImageRecord:
        """Return the record for `image_id`."""
        async with self._lock:
            index = await self._load_existing("image", image_id)
        return self._require(index, image_id)

    async def list_pending_analysis(self) -> List[ImageRecord]:
        """Return records that have no analysis result yet, in index order."""
        return [record for record in await self.list_images() if record.analysis_result is None]

    async def find_missing_files(self) -> List[ImageRecord]:
        """Return records whose image file is absent from disk."""
        async with self._lock:
            index = await self.metadata.load()
            return [record for record in index.images if not await self.files.exists(record.filename)]

    async def load_image_bytes(self, image_id: str) -> bytes:
        """Read the stored bytes of `image_id`.

        Raises:
            NotFound: If the index is absent or has no such record.
            IoFailure: If the record exists but its file cannot be read.
        """
        async with self._lock:
            index = await self._load_existing("image", image_id)
            record = self._require(index, image_id)
            return await self.files.read(record.filename)

    # ------------------------------------------------------------------
    # Update
    # ------------------------------------------------------------------
    async def replace_comments(self, image_id: str, comments: Iterable[CommentInput]) -> None:
        """Overwrite the whole comment list of `image_id`."""
        async with self._lock:
            index = await self._load_existing("image", image_id)
            record = self._require(index, image_id)
            try:
                record.user_comments = list(comments)
            except ValidationError as exc:
                raise InvalidIndexFormat(f"Invalid comments for {image_id}: {exc}") from exc
            await self.metadata.save(index)
        LOGGER.info("Replaced comments of %s (%d comments)", image_id, len(record.user_comments))

    async def update_analysis(self, image_id: str, analysis_result: str) -> None:
        """Set or overwrite the analysis result of `image_id`."""
        async with self._lock:
            index = await self._load_existing("image", image_id)
            record = self._require(index, image_id)
            record.analysis_result = analysis_result
            await self.metadata.save(index)
        LOGGER.info("Updated analysis of %s", image_id)

    # ------------------------------------------------------------------
    # Delete
    # ------------------------------------------------------------------
    async def delete_post(self, post_id: str) -> None:
        """Delete a record together with its image file.

        A file that is already missing is tolerated.
        """
        async with self._lock:
            index = await self._load_existing("post", post_id)
            record = self._require(index, post_id, kind="post")
            await self.files.delete(record.filename)
            index.images = [r for r in index.images if r.id != post_id]
            await self.metadata.save(index)
        LOGGER.info("Deleted post %s and file %s", post_id, record.filename)

    async def delete_comment(self, post_id: str, comment_id: str) -> None:
        """Remove every comment with `comment_id` from `post_id`."""
        async with self._lock:
            index = await self._load_existing("post", post_id)
            record = self._require(index, post_id, kind="post")
            remaining = [c for c in record.user_comments if c.id != comment_id]
            if len(remaining) == len(record.user_comments):
                raise NotFound("comment", comment_id)
            record.user_comments = remaining
            await self.metadata.save(index)
        LOGGER.info("Deleted comment %s from post %s", comment_id, post_id)
