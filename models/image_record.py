"""Metadata records persisted in ``metadata.json``.

The index file is a single object ``{"images": [...]}``; each entry pairs an
image file under ``images/`` with its mutable metadata (analysis result and
user comments). Models are pydantic so that both the on-disk index and any
externally supplied JSON go through the same validation.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated, List, Optional

from pydantic import AfterValidator, AwareDatetime, BaseModel, ConfigDict, Field, PlainSerializer, field_validator

from utils.errors import InvalidFilename
from utils.filename_validation import ensure_safe_filename


def _to_utc(value: datetime) -> datetime:
    return value.astimezone(timezone.utc)


def _rfc3339(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


# Offset-aware instant, normalised to UTC and written as RFC 3339 with a Z suffix.
UtcDatetime = Annotated[AwareDatetime, AfterValidator(_to_utc), PlainSerializer(_rfc3339, return_type=str)]


class Comment(BaseModel):
    """A user (or AI) comment attached to a record.

    Attributes:
        id: Caller-supplied id, unique within the owning record.
        text: Comment body.
        timestamp: UTC instant the comment was written.
        is_ai: True when the comment was produced by the analysis agent.
        author_name: Optional display name of the author.
    """

    model_config = ConfigDict(extra="ignore")

    id: str
    text: str
    timestamp: UtcDatetime
    is_ai: bool
    author_name: Optional[str] = None


class ImageRecord(BaseModel):
    """One stored image and its metadata.

    Attributes:
        id: Store-generated id (``img_<unix_seconds>``) or the id carried by
            an imported record.
        filename: Name of the image file inside the images directory.
        original_name: Source filename supplied by the caller.
        timestamp: Creation time (UTC).
        analysis_result: Opaque analysis text, ``None`` until attached.
        user_comments: Comments in display order.
    """

    model_config = ConfigDict(extra="ignore", validate_assignment=True)

    id: str
    filename: str
    original_name: str
    timestamp: UtcDatetime
    analysis_result: Optional[str] = None
    user_comments: List[Comment] = Field(default_factory=list)

    @field_validator("filename")
    @classmethod
    def filename_stays_in_images_dir(cls, filename: str) -> str:
        try:
            return ensure_safe_filename(filename)
        except InvalidFilename as exc:
            raise ValueError(str(exc)) from exc

    @field_validator("user_comments")
    @classmethod
    def unique_comment_ids(cls, comments: List[Comment]) -> List[Comment]:
        ids = [comment.id for comment in comments]
        if len(ids) != len(set(ids)):
            raise ValueError("comment ids must be unique within a record")
        return comments


class IndexFile(BaseModel):
    """Root object of ``metadata.json``."""

    model_config = ConfigDict(extra="ignore")

    images: List[ImageRecord] = Field(default_factory=list)

    @field_validator("images")
    @classmethod
    def unique_record_ids(cls, images: List[ImageRecord]) -> List[ImageRecord]:
        ids = [record.id for record in images]
        if len(ids) != len(set(ids)):
            raise ValueError("image ids must be unique within the index")
        return images

    def find(self, image_id: str) -> Optional[ImageRecord]:
        """Return the record whose id equals ``image_id``, or None."""
        for record in self.images:
            if record.id == image_id:
                return record
        return None

    def to_json(self) -> str:
        """Serialise with stable two-space indentation."""
        return self.model_dump_json(indent=2)
