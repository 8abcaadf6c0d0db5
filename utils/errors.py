"""Error kinds raised by the image store and its helpers."""

from __future__ import annotations


class StoreError(Exception):
    """Base class for every failure surfaced by the image store."""


class DirectoryUnavailable(StoreError):
    """The base storage directory cannot be determined or created."""


class InvalidFilename(StoreError):
    """A caller-supplied filename contains traversal or separator characters."""


class InvalidIndexFormat(StoreError):
    """Index JSON failed to parse or does not match the expected shape."""


class NotFound(StoreError):
    """A post, image or comment id is absent from the index."""

    def __init__(self, kind: str, identifier: str, message: str | None = None) -> None:
        self.kind = kind
        self.identifier = identifier
        super().__init__(message or f"{kind.capitalize()} not found: {identifier}")


class IoFailure(StoreError):
    """An underlying read, write or delete failed."""


class InvalidImageData(StoreError):
    """Image data handed over by the caller is not a byte sequence."""
