# src/matcher/services/file_classifier_service.py
import logging
from enum import Enum
from fnmatch import fnmatch
from typing import Iterable, List

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)

TEMPLATED_EXTENSIONS = (".tsx", ".jsx", ".js", ".ts")
MARKUP_EXTENSIONS = (".html", ".htm")
STYLE_EXTENSIONS = (".css", ".scss", ".sass", ".less")

# Build output, vendored code, tests and static assets
EXCLUDED_DIRS = frozenset({
    "node_modules", ".next", "dist", "build", "out", "__tests__", ".git",
    "coverage", ".nyc_output", "temp", "tmp", ".cache", ".turbo",
})
EXCLUDED_PATTERNS = (
    "*.test.*", "*.spec.*", "public/fonts/*", "public/icons/*", "public/favicon*",
)
PRIORITY_PATTERNS = (
    "src/components/*", "src/pages/*", "src/app/*", "components/*",
    "pages/*", "app/*", "src/layouts/*", "layouts/*",
)
API_PATTERNS = ("*/api/*", "api/*", "*.config.*", "*.setup.*", "*middleware.*")


class FileType(str, Enum):
    PAGE = "page"
    LAYOUT = "layout"
    COMPONENT = "component"
    API = "api"
    CONFIG = "config"
    TEST = "test"
    OTHER = "other"


class Framework(str, Enum):
    NEXTJS = "nextjs"
    REACT = "react"
    HTML = "html"
    UNKNOWN = "unknown"


class FileClassification(BaseModel):
    model_config = ConfigDict(frozen=True)

    path: str
    type: FileType
    framework: Framework
    priority: int = Field(ge=1, le=10, description="Higher means more likely to hold UI markup.")
    is_accessibility_relevant: bool
    language: str


def _matches(path: str, patterns: Iterable[str]) -> bool:
    lowered = path.lower()
    return any(fnmatch(lowered, pattern) for pattern in patterns)


class FileClassifierService:
    """
    Classifies repository paths so the matcher only parses files that can
    hold UI markup, most promising first.
    """

    @staticmethod
    def _normalize(file_path: str) -> str:
        path = file_path.replace("\\", "/")
        while path.startswith("./"):
            path = path[2:]
        return path

    @staticmethod
    def _file_name(path: str) -> str:
        return path.rsplit("/", 1)[-1]

    def is_nextjs_page(self, path: str) -> bool:
        name = self._file_name(path)
        if ("/app/" in f"/{path}") and name in tuple(f"page{ext}" for ext in TEMPLATED_EXTENSIONS):
            return True
        return "/pages/" in f"/{path}" and path.endswith(TEMPLATED_EXTENSIONS) and "/api/" not in f"/{path}"

    def is_layout(self, path: str) -> bool:
        return "/layouts/" in f"/{path}" or "layout" in self._file_name(path).lower()

    def is_component(self, path: str) -> bool:
        name = self._file_name(path)
        if not name.endswith(TEMPLATED_EXTENSIONS):
            return False
        return "/components/" in f"/{path}" or name[:1].isupper() or ".component." in name

    def file_type(self, path: str) -> FileType:
        name = self._file_name(path)
        if self.is_nextjs_page(path):
            return FileType.PAGE
        if self.is_layout(path):
            return FileType.LAYOUT
        if self.is_component(path):
            return FileType.COMPONENT
        if _matches(path, API_PATTERNS):
            return FileType.API
        if ".config." in name or ".setup." in name:
            return FileType.CONFIG
        if ".test." in name or ".spec." in name or "__tests__" in path:
            return FileType.TEST
        return FileType.OTHER

    def framework(self, path: str) -> Framework:
        name = self._file_name(path)
        if "/app/" in f"/{path}" or "/pages/" in f"/{path}" or name.startswith("next.config."):
            return Framework.NEXTJS
        if name.endswith(TEMPLATED_EXTENSIONS):
            return Framework.REACT
        if name.lower().endswith(MARKUP_EXTENSIONS):
            return Framework.HTML
        return Framework.UNKNOWN

    def priority(self, path: str) -> int:
        priority = 1
        if self.is_nextjs_page(path):
            priority += 8
        if self.is_layout(path):
            priority += 7
        if self.is_component(path):
            priority += 6
        if path.endswith(TEMPLATED_EXTENSIONS):
            priority += 3
        if path.lower().endswith(MARKUP_EXTENSIONS):
            priority += 6
        if _matches(path, PRIORITY_PATTERNS):
            priority += 2
        if _matches(path, API_PATTERNS):
            priority = max(1, priority - 3)
        return min(10, priority)

    @staticmethod
    def language(path: str) -> str:
        suffix = "." + path.rsplit(".", 1)[-1].lower() if "." in path else ""
        if suffix in (".tsx", ".jsx", ".ts", ".js"):
            return suffix[1:]
        if suffix in MARKUP_EXTENSIONS:
            return "html"
        if suffix in STYLE_EXTENSIONS:
            return "css"
        return "other"

    def classify(self, file_path: str) -> FileClassification:
        path = self._normalize(file_path)
        file_type = self.file_type(path)
        framework = self.framework(path)
        relevant = (
            file_type in (FileType.PAGE, FileType.LAYOUT, FileType.COMPONENT)
            or framework == Framework.HTML
            or (framework in (Framework.REACT, Framework.NEXTJS) and _matches(path, PRIORITY_PATTERNS))
            or path.lower().endswith(STYLE_EXTENSIONS)
        )
        return FileClassification(
            path=path,
            type=file_type,
            framework=framework,
            priority=self.priority(path),
            is_accessibility_relevant=relevant,
            language=self.language(path),
        )

    def is_excluded(self, file_path: str) -> bool:
        path = self._normalize(file_path)
        if any(part in EXCLUDED_DIRS for part in path.split("/")[:-1]):
            return True
        return _matches(self._file_name(path), EXCLUDED_PATTERNS) or _matches(path, EXCLUDED_PATTERNS)

    def should_include(self, file_path: str) -> bool:
        return not self.is_excluded(file_path) and self.classify(file_path).is_accessibility_relevant

    def rank(self, file_paths: Iterable[str]) -> List[str]:
        """Relevant paths ordered by priority, highest first (stable for ties)."""
        relevant = [path for path in file_paths if self.should_include(path)]
        ranked = sorted(relevant, key=self.priority_of, reverse=True)
        logger.debug("Classified %d relevant files.", len(ranked))
        return ranked

    def priority_of(self, file_path: str) -> int:
        return self.priority(self._normalize(file_path))
