"""Atomic file writes on top of ``aiofiles``."""

from __future__ import annotations

import os
from pathlib import Path

import aiofiles
import aiofiles.os


async def atomic_write_bytes(path: Path, data: bytes) -> None:
    """Write ``data`` to a temporary sibling of ``path`` and swap it into place.

    Readers never observe a truncated file: either the previous content or
    the new content is visible. The temporary file is removed on failure.
    """
    tmp_path = path.with_name(path.name + ".tmp")
    try:
        async with aiofiles.open(tmp_path, "wb") as handle:
            await handle.write(data)
            await handle.flush()
            os.fsync(handle.fileno())
        await aiofiles.os.replace(tmp_path, path)
    except BaseException:
        try:
            await aiofiles.os.remove(tmp_path)
        except FileNotFoundError:
            pass
        raise


async def atomic_write_text(path: Path, text: str) -> None:
    """UTF-8 encode ``text`` and write it atomically to ``path``."""
    await atomic_write_bytes(path, text.encode("utf-8"))
