"""Validation helpers for caller-supplied filenames."""

from utils.errors import InvalidFilename

DEFAULT_EXTENSION = "jpg"

_FORBIDDEN = ("..", "/", "\\", "\x00")


def _is_unsafe(name: str) -> bool:
    return any(token in name for token in _FORBIDDEN)


def ensure_safe_filename(filename: str) -> str:
    """Return ``filename`` unchanged, rejecting traversal and path separators.

    Any ``..`` sequence, ``/``, ``\\`` or NUL byte is refused so the name can
    only ever resolve to a direct child of the images directory.
    """
    if not filename:
        raise InvalidFilename("Filename must not be empty.")
    if _is_unsafe(filename):
        raise InvalidFilename(f"Invalid filename: {filename!r}")
    return filename


def extension_from_name(original_name: str) -> str:
    """Return the text after the last ``.`` in ``original_name``, or ``jpg``.

    An extension that could not be used as part of a plain filename also
    falls back to ``jpg``.
    """
    if "." not in original_name:
        return DEFAULT_EXTENSION
    extension = original_name.rsplit(".", 1)[-1]
    if _is_unsafe(extension):
        return DEFAULT_EXTENSION
    return extension
