"""Print every record stored in the image index.

Shows each record's id, file, analysis result and comments. It reuses the
same `GALLERY_DATA_DIR` behavior as the application via `main.create_store`.

Run: set the `GALLERY_DATA_DIR` environment variable (or rely on the
      platform application data directory) and run `python print_index.py`.
"""
import asyncio
from typing import List

from main import create_store
from models.image_record import ImageRecord


def _format_record(record: ImageRecord) -> List[str]:
    """Return printable lines for one record.

    Args:
        record: The index entry to describe.

    Returns:
        Header line followed by one indented line per non-empty field.
    """
    lines = [f"{record.id}: file={record.filename!r} original={record.original_name!r} at {record.timestamp.isoformat()}"]
    if record.analysis_result:
        lines.append(f"  analysis={record.analysis_result.strip()!r}")
    for comment in record.user_comments:
        author = "AI" if comment.is_ai else (comment.author_name or "user")
        text = comment.text.strip()
        if text:
            lines.append(f"  [{comment.id}] {author}: {text!r}")
    return lines


async def main() -> None:
    """Load the index and print its records in stored order."""
    store = create_store()
    for record in await store.list_images():
        print("\n".join(_format_record(record)))
        print()


if __name__ == "__main__":
    asyncio.run(main())
