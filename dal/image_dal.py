"""Async data access for image files.

`ImageFileDAL` reads, writes and deletes image bytes inside the images
directory resolved by `utils.storage_init.StorageInitializer`. Callers are
expected to pass filenames that already went through
`utils.filename_validation.ensure_safe_filename` or were generated by the
store itself.
"""

from __future__ import annotations

import logging
from pathlib import Path

import aiofiles
import aiofiles.os

from utils.atomic_write import atomic_write_bytes
from utils.errors import IoFailure
from utils.storage_init import StorageInitializer

LOGGER = logging.getLogger(__name__)


class ImageFileDAL:
	"""File-system access for stored image bytes.

	Usage:
		files = ImageFileDAL(StorageInitializer(base_dir))
		await files.write("img_1700000000.png", data)
		data = await files.read("img_1700000000.png")
	"""

	def __init__(self, storage: StorageInitializer):
		self._storage = storage

	def path_for(self, filename: str) -> Path:
		"""Return the absolute path of `filename` inside the images directory."""
		return self._storage.images_dir / filename

	async def exists(self, filename: str) -> bool:
		"""Return True if a regular file named `filename` is stored."""
		return await aiofiles.os.path.isfile(self.path_for(filename))

	async def write(self, filename: str, data: bytes) -> Path:
		"""Write (or overwrite) image bytes and return the file path.

		Raises:
			DirectoryUnavailable: If the images directory cannot be created.
			IoFailure: If the write fails.
		"""
		self._storage.ensure_images_dir()
		path = self.path_for(filename)
		try:
			await atomic_write_bytes(path, data)
		except (OSError, ValueError) as exc:
			raise IoFailure(f"Failed to write image {filename}: {exc}") from exc
		LOGGER.debug("Wrote %d bytes to %s", len(data), path)
		return path

	async def read(self, filename: str) -> bytes:
		"""Read image bytes. A missing file is an `IoFailure`, never empty bytes."""
		self._storage.ensure_images_dir()
		path = self.path_for(filename)
		try:
			async with aiofiles.open(path, "rb") as f:
				return await f.read()
		except (OSError, ValueError) as exc:
			raise IoFailure(f"Failed to read image {filename}: {exc}") from exc

	async def delete(self, filename: str) -> bool:
		"""Delete a stored image. Returns False if the file was already gone."""
		path = self.path_for(filename)
		try:
			await aiofiles.os.remove(path)
		except FileNotFoundError:
			LOGGER.warning("Image file %s already missing on delete", path)
			return False
		except (OSError, ValueError) as exc:
			raise IoFailure(f"Failed to delete image {filename}: {exc}") from exc
		return True
