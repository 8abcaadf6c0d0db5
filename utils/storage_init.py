import logging
import os
import sys
from pathlib import Path
from typing import Mapping, Optional

from utils.errors import DirectoryUnavailable

LOGGER = logging.getLogger(__name__)

BUNDLE_IDENTIFIER = "com.anne-app.app"
APP_DIR_NAME = "anne-app"
IMAGES_DIR_NAME = "images"
METADATA_FILE_NAME = "metadata.json"


def default_app_data_dir(environ: Optional[Mapping[str, str]] = None, platform: Optional[str] = None) -> Path:
    """Return the per-user application data directory for the current platform.

    Windows uses ``%APPDATA%``, macOS ``~/Library/Application Support`` and
    everything else ``$XDG_DATA_HOME`` (falling back to ``~/.local/share``).
    """
    env = os.environ if environ is None else environ
    platform = platform or sys.platform
    home = Path.home()

    if platform.startswith("win"):
        appdata = env.get("APPDATA")
        return Path(appdata) if appdata else home / "AppData" / "Roaming"
    if platform == "darwin":
        return home / "Library" / "Application Support"
    xdg = env.get("XDG_DATA_HOME")
    return Path(xdg) if xdg else home / ".local" / "share"


class StorageInitializer:
    """
    Resolve and create the on-disk layout used by the image store.

    - The base directory is ``GALLERY_DATA_DIR`` when that variable is set,
      otherwise ``<app data dir>/com.anne-app.app/anne-app``.
    - Images live in ``<base>/images/`` and the index in ``<base>/metadata.json``.
    - The ensure_* helpers are idempotent; they raise ``DirectoryUnavailable``
      when a directory cannot be created.
    """

    def __init__(self, base_dir: Optional[Path | str] = None) -> None:
        if base_dir is None:
            env_dir = os.getenv("GALLERY_DATA_DIR")
            if env_dir is not None and env_dir.strip():
                base_dir = Path(env_dir.strip()).expanduser()
            else:
                try:
                    base_dir = default_app_data_dir() / BUNDLE_IDENTIFIER / APP_DIR_NAME
                except RuntimeError as exc:
                    # Path.home() raises when no home directory can be determined.
                    raise DirectoryUnavailable("Could not determine the application data directory") from exc

        self.base_dir = Path(base_dir)
        if self.base_dir.exists() and not self.base_dir.is_dir():
            raise DirectoryUnavailable(
                f"Storage path {self.base_dir} points to a file, not a directory"
            )

        self.images_dir = self.base_dir / IMAGES_DIR_NAME
        self.metadata_path = self.base_dir / METADATA_FILE_NAME

    def _mkdir(self, path: Path) -> Path:
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise DirectoryUnavailable(f"Failed to create or access directory at {path}") from exc
        return path

    def ensure_images_dir(self) -> Path:
        """Create the images directory if needed and return it."""
        return self._mkdir(self.images_dir)

    def ensure_metadata_parent(self) -> Path:
        """Create the directory holding ``metadata.json`` if needed and return it."""
        return self._mkdir(self.metadata_path.parent)

    def warm_up(self) -> bool:
        """Best-effort directory creation at startup.

        Failures are logged and ignored; every store operation retries the
        creation and raises then. Returns True when both directories exist.
        """
        try:
            self.ensure_metadata_parent()
            self.ensure_images_dir()
        except DirectoryUnavailable as exc:
            LOGGER.warning("Storage warm-up failed, will retry on first use: %s", exc)
            return False
        LOGGER.info("Image storage ready at %s", self.base_dir)
        return True
