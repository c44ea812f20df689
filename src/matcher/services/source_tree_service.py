# src/matcher/services/source_tree_service.py
import logging
import os
from pathlib import Path
from typing import Dict, Iterator, List, Optional

from matcher.services.file_classifier_service import FileClassifierService

logger = logging.getLogger(__name__)

_SKIP_DIRS = {
    ".git", ".hg", ".svn", "node_modules", "__pycache__", ".venv", "venv",
    "dist", "build", ".next", ".turbo", ".cache", "coverage",
}

_SKIP_EXTENSIONS = {
    ".png", ".jpg", ".jpeg", ".gif", ".ico", ".svg", ".webp", ".avif",
    ".woff", ".woff2", ".ttf", ".eot", ".otf", ".mp4", ".webm", ".mp3",
    ".pdf", ".zip", ".gz", ".tar", ".map", ".lock",
}

# Max file size to load (1 MB)
_MAX_FILE_SIZE = 1_048_576


class SourceTreeService:
    """
    Read-only view of a local checkout of the site's source repository.
    Paths are relative to the root and use forward slashes.
    """

    def __init__(self, root: str, max_file_size: int = _MAX_FILE_SIZE):
        self.root = Path(root).expanduser().resolve()
        if not self.root.is_dir():
            raise FileNotFoundError(f"Source directory not found: {self.root}")
        self.max_file_size = max_file_size
        self.classifier = FileClassifierService()

    def _walk(self) -> Iterator[Path]:
        for root, dirs, files in os.walk(self.root):
            dirs[:] = sorted(d for d in dirs if d not in _SKIP_DIRS)
            for name in sorted(files):
                path = Path(root) / name
                if path.suffix.lower() in _SKIP_EXTENSIONS:
                    continue
                try:
                    if path.stat().st_size > self.max_file_size:
                        logger.debug("Skipping %s: larger than %d bytes", path, self.max_file_size)
                        continue
                except OSError:
                    continue
                yield path

    def list_files(self) -> List[str]:
        return [path.relative_to(self.root).as_posix() for path in self._walk()]

    def candidate_files(self, limit: Optional[int] = None) -> List[str]:
        """Files worth parsing for UI elements, most relevant first."""
        ranked = self.classifier.rank(self.list_files())
        return ranked[:limit] if limit else ranked

    def read(self, relative_path: str) -> Optional[str]:
        try:
            return (self.root / relative_path).read_text(encoding="utf-8", errors="ignore")
        except (OSError, PermissionError) as e:
            logger.debug("Skipping %s: %s", relative_path, e)
            return None

    def load(self, relative_paths: List[str]) -> Dict[str, str]:
        contents: Dict[str, str] = {}
        for path in relative_paths:
            content = self.read(path)
            if content is not None:
                contents[path] = content
        return contents

    def write(self, relative_path: str, content: str, output_dir: Optional[str] = None) -> Path:
        """Writes a changed file below `output_dir` (or in place when omitted)."""
        base = Path(output_dir).expanduser().resolve() if output_dir else self.root
        target = base / relative_path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
        return target
