"""Command surface invoked by the desktop shell.

Each command takes the primitive shapes the shell sends (byte arrays as
lists of ints, comments as JSON text or dicts) and returns a
`CommandResult`: ``ok=True`` with a value, or ``ok=False`` with a
human-readable error string.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Awaitable, Callable, Iterable, List, Optional, Union

from pydantic import BaseModel

from services.image_store import CommentInput, ImageStore
from utils.errors import InvalidImageData, InvalidIndexFormat, StoreError

LOGGER = logging.getLogger(__name__)

ImageData = Union[bytes, bytearray, List[int]]


class CommandResult(BaseModel):
    ok: bool
    value: Any = None
    error: Optional[str] = None
    error_kind: Optional[str] = None


async def _run(command: str, start: Callable[[], Awaitable[Any]]) -> CommandResult:
    try:
        value = await start()
    except StoreError as exc:
        LOGGER.info("%s failed: %s", command, exc)
        return CommandResult(ok=False, error=str(exc), error_kind=type(exc).__name__)
    return CommandResult(ok=True, value=value)


def _as_bytes(image_data: ImageData) -> bytes:
    """Accept raw bytes or the list-of-ints form produced by ``Array.from``."""
    try:
        return bytes(image_data)
    except (TypeError, ValueError) as exc:
        raise InvalidImageData(f"Image data must be a sequence of bytes (0..255): {exc}") from exc


def _as_comments(comments: Union[str, Iterable[CommentInput]]) -> List[CommentInput]:
    if isinstance(comments, str):
        try:
            comments = json.loads(comments)
        except json.JSONDecodeError as exc:
            raise InvalidIndexFormat(f"Malformed comments JSON: {exc}") from exc
        if not isinstance(comments, list):
            raise InvalidIndexFormat("Comments JSON must be a list")
    return list(comments)


async def save_image(
    store: ImageStore, image_data: ImageData, original_name: str, analysis_result: Optional[str] = None
) -> CommandResult:
    """Save a captured image; the value is the new image id."""
    return await _run("save_image", lambda: store.save_captured_image(_as_bytes(image_data), original_name, analysis_result))


async def save_network_image(store: ImageStore, filename: str, image_data: ImageData) -> CommandResult:
    return await _run("save_network_image", lambda: store.save_network_image(filename, _as_bytes(image_data)))


async def save_network_image_with_metadata(
    store: ImageStore, filename: str, image_data: ImageData, image_metadata: str
) -> CommandResult:
    """Save a network image and import its record; the value is True when newly indexed."""
    return await _run(
        "save_network_image_with_metadata",
        lambda: store.save_network_image_with_metadata(filename, _as_bytes(image_data), image_metadata),
    )


async def replace_metadata(store: ImageStore, metadata_json: str) -> CommandResult:
    """Replace the whole index; the value is the record count."""
    return await _run("replace_metadata", lambda: store.replace_index(metadata_json))


async def get_saved_images(store: ImageStore) -> CommandResult:
    """List records as JSON-ready dicts."""
    result = await _run("get_saved_images", store.list_images)
    if result.ok:
        result.value = [record.model_dump(mode="json") for record in result.value]
    return result


async def load_image(store: ImageStore, image_id: str) -> CommandResult:
    return await _run("load_image", lambda: store.load_image_bytes(image_id))


async def update_image_comments(
    store: ImageStore, image_id: str, comments: Union[str, Iterable[CommentInput]]
) -> CommandResult:
    try:
        parsed = _as_comments(comments)
    except StoreError as exc:
        return CommandResult(ok=False, error=str(exc), error_kind=type(exc).__name__)
    return await _run("update_image_comments", lambda: store.replace_comments(image_id, parsed))


async def update_image_analysis(store: ImageStore, image_id: str, analysis_result: str) -> CommandResult:
    return await _run("update_image_analysis", lambda: store.update_analysis(image_id, analysis_result))


async def delete_post(store: ImageStore, post_id: str) -> CommandResult:
    return await _run("delete_post", lambda: store.delete_post(post_id))


async def delete_comment(store: ImageStore, post_id: str, comment_id: str) -> CommandResult:
    return await _run("delete_comment", lambda: store.delete_comment(post_id, comment_id))
