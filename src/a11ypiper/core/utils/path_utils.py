# src/a11ypiper/core/utils/path_utils.py
import logging
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


class PathUtils:
    """
    A central utility for reliably retrieving important package and user paths.
    """

    # --- Package specific paths

    @staticmethod
    def get_package_root() -> Path:
        """
        Returns the absolute path of the 'a11ypiper' package directory
        (the folder that holds settings.json).
        """
        return Path(__file__).resolve().parent.parent.parent

    @staticmethod
    def get_settings_file() -> Path:
        return PathUtils.get_package_root() / "settings.json"

    # --- User specific paths ---

    @staticmethod
    def get_user_output_dir() -> Path:
        """
        Returns the directory where reports and changesets are written by default.
        (e.g., ~/.a11ypiper/output)
        """
        return Path.home() / ".a11ypiper" / "output"

    # --- Helper methods ---

    @staticmethod
    def resolve_output_path(path: Optional[str], default_name: str) -> Path:
        """
        Resolves a user supplied output path.

        Absolute paths are used as-is, relative paths are resolved against the
        current working directory and a missing path falls back to the user
        output directory. Parent directories are created.
        """
        if path:
            target = Path(path).expanduser()
            if not target.is_absolute():
                target = Path.cwd() / target
        else:
            target = PathUtils.get_user_output_dir() / default_name

        target.parent.mkdir(parents=True, exist_ok=True)
        return target
