# tests/matcher/test_file_classifier.py
import pytest

from matcher.services.file_classifier_service import FileClassifierService, FileType, Framework


@pytest.fixture
def classifier():
    return FileClassifierService()


@pytest.mark.parametrize("path, file_type, framework, priority, language", [
    ("src/app/page.tsx", FileType.PAGE, Framework.NEXTJS, 10, "tsx"),
    ("src/components/Header.jsx", FileType.COMPONENT, Framework.REACT, 10, "jsx"),
    ("index.html", FileType.OTHER, Framework.HTML, 7, "html"),
    ("src/pages/api/users.ts", FileType.API, Framework.NEXTJS, 3, "ts"),
    ("./layouts/Main.tsx", FileType.LAYOUT, Framework.REACT, 10, "tsx"),
])
def test_classify(classifier, path, file_type, framework, priority, language):
    """Bestanden krijgen type, framework, prioriteit en taal toegewezen."""
    result = classifier.classify(path)

    assert result.type == file_type
    assert result.framework == framework
    assert result.priority == priority
    assert result.language == language


@pytest.mark.parametrize("path", [
    "node_modules/react/index.js",
    "dist/index.html",
    "src/components/Button.test.tsx",
    "src/__tests__/Header.jsx",
    "public/favicon.ico",
])
def test_excluded_paths(classifier, path):
    assert classifier.is_excluded(path)
    assert not classifier.should_include(path)


def test_non_ui_code_is_not_relevant(classifier):
    assert not classifier.should_include("utils/math.js")
    assert classifier.should_include("styles/main.css")


def test_rank_orders_by_priority(classifier):
    """Relevante bestanden komen op volgorde van prioriteit; bij gelijke stand blijft de invoervolgorde."""
    paths = [
        "utils/math.js",
        "index.html",
        "src/components/Header.jsx",
        "src/app/page.tsx",
        "node_modules/x/index.html",
    ]
    assert classifier.rank(paths) == ["src/components/Header.jsx", "src/app/page.tsx", "index.html"]
