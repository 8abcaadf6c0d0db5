import asyncio
import logging
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from services.image_store import ImageStore
from utils.storage_init import StorageInitializer

load_dotenv()  # Load environment variables from .env file if present

TRUTHY = {"1", "true", "yes", "on"}


def create_store(base_dir: Optional[Path | str] = None) -> ImageStore:
    """
    Create the image store used by the desktop shell.

    - Resolves the storage directory (explicit `base_dir`, GALLERY_DATA_DIR,
      or the platform application data directory).
    - Warms up the directory layout; failures are logged, not raised.
    - Honours GALLERY_RECOVER_CORRUPT_INDEX as an opt-in to replacing an
      unparsable index with an empty one.
    """
    storage = StorageInitializer(base_dir)
    storage.warm_up()

    recover = os.getenv("GALLERY_RECOVER_CORRUPT_INDEX", "").strip().lower() in TRUTHY
    return ImageStore(storage, recover_corrupt_index=recover)


async def main() -> None:
    """Report where images are stored and how many are indexed."""
    store = create_store()
    images = await store.list_images()
    pending = await store.list_pending_analysis()
    missing = await store.find_missing_files()
    print(f"Storage: {store.storage.base_dir}")
    print(f"Images: {len(images)} (awaiting analysis: {len(pending)}, missing files: {len(missing)})")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    asyncio.run(main())
