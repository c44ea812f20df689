# tests/matcher/test_source_matcher.py
import pytest
from pydantic import ValidationError

from conftest import axe_violation
from crawler.model import Violation
from matcher.model import MatchResult, MatchStrategy
from matcher.services.source_matcher_service import NodeShape, SourceMatcherService, fuzzy_similarity
from parser.model import Expression, Tag
from parser.services.element_extract_service import ElementExtractService


def _violation(rule_id, html, impact="critical"):
    violation = Violation.from_axe(axe_violation(rule_id, html, impact))
    return violation, violation.nodes[0]


def _tag(source, path="page.html", index=0):
    return ElementExtractService().extract(source, path).tags[index]


@pytest.fixture
def matcher():
    return SourceMatcherService(acceptance_threshold=0.7, workers=2)


def test_identical_markup_is_exact_match(matcher):
    """Identieke markup (na normalisatie) scoort 1.0 via de exacte strategie."""
    violation, node = _violation("image-alt", '<img src="/logo.png">')
    results = matcher.match(violation, node, [_tag('<img src="/logo.png" />')], "header.html")

    assert len(results) == 1
    assert results[0].confidence == 1.0
    assert results[0].strategy == MatchStrategy.EXACT
    assert results[0].is_high_confidence


def test_contained_markup_scores_substring(matcher):
    violation, node = _violation("image-alt", '<div class="card"><img src="/a.png"></div>')
    confidence, strategy = matcher.score(violation, node, _tag('<img src="/a.png">'))

    assert (confidence, strategy) == (0.8, MatchStrategy.EXACT)


@pytest.mark.parametrize("rule_id, node_html, source, path, expected", [
    ("image-alt", '<img src="/logo.png" class="brand">', '<img src="/logo.png" class="logo">', "a.html", 0.95),
    ("image-alt", '<img src="/hero.png">', "<img src={logo} />", "Hero.jsx", 0.9),
    ("image-missing-text-alternative", '<img src="/x.png">', '<img src="/y.png">', "a.html", 0.9),
    ("label", '<input type="email" name="email">', '<input type="email" id="mail">', "a.html", 0.9),
    ("label", '<input type="email">', "<textarea></textarea>", "a.html", 0.8),
    ("heading-order", "<h4>Detail</h4>", "<h3>Other</h3>", "a.html", 0.9),
    ("landmark-one-main", "<div>Content</div>", '<div role="main">Body</div>', "a.html", 0.9),
    ("button-name", '<button class="icon"></button>', '<button type="submit"></button>', "a.html", 0.85),
    ("link-name", '<a href="/x"></a>', '<a href="/y"></a>', "a.html", 0.85),
    ("duplicate-id", '<div id="a"></div>', '<div id="b"></div>', "a.html", 0.7),
])
def test_semantic_table(matcher, rule_id, node_html, source, path, expected):
    """Regelbewuste scores wanneer de markup niet letterlijk overeenkomt."""
    violation, node = _violation(rule_id, node_html)
    confidence, strategy = matcher.score(violation, node, _tag(source, path))

    assert strategy == MatchStrategy.SEMANTIC
    assert confidence == expected


def test_color_contrast_prefers_shared_class(matcher):
    violation, node = _violation("color-contrast", '<p class="muted small">Hi</p>', "serious")
    shared = Tag(type="span", attributes={"class": "muted"}, text="Bye")
    other = Tag(type="div", attributes={"class": "card"}, text="Bye")

    assert matcher.score(violation, node, shared) == (0.8, MatchStrategy.SEMANTIC)
    assert matcher.score(violation, node, other) == (0.6, MatchStrategy.SEMANTIC)


def test_fuzzy_match_uses_weighted_attributes(matcher):
    """Zonder semantische regel valt de matcher terug op gewogen attribuut-overlap."""
    violation, node = _violation("button-name", '<div id="x" class="y" data-a="1"></div>')
    tag = Tag(type="div", attributes={"id": "x", "class": "y", "data-b": "2"})

    results = matcher.match(violation, node, [tag], "a.html")

    assert results[0].strategy == MatchStrategy.FUZZY
    assert results[0].confidence == pytest.approx(5 / 7, abs=1e-4)


def test_fuzzy_confidence_is_capped(matcher):
    violation, node = _violation("button-name", '<div id="x" class="y">Old</div>')
    tag = Tag(type="div", attributes={"id": "x", "class": "y"}, text="New")

    assert matcher.score(violation, node, tag) == (0.85, MatchStrategy.FUZZY)


def test_weak_candidates_are_dropped(matcher):
    violation, node = _violation("button-name", '<div id="x" class="y" data-a="1"></div>')
    tag = Tag(type="div", attributes={"data-b": "2"})

    assert matcher.match(violation, node, [tag], "a.html") == []


@pytest.mark.parametrize("a, b", [
    ({"id": "x", "class": "y"}, {"id": "x", "class": "z", "role": "button"}),
    ({"src": Expression(source="logo")}, {"src": "/logo.png"}),
    ({"disabled": True}, {"disabled": ""}),
    ({}, {"alt": "A"}),
])
def test_fuzzy_similarity_is_symmetric(a, b):
    """De gelijkenis tussen twee elementen hangt niet af van de volgorde."""
    assert fuzzy_similarity("div", a, "div", b) == fuzzy_similarity("div", b, "div", a)


def test_fuzzy_similarity_edge_cases():
    assert fuzzy_similarity("div", {}, "div", {}) == 0.5
    assert fuzzy_similarity("div", {"id": "a"}, "span", {"id": "a"}) == 0.0
    # Expressions never equal a literal value
    assert fuzzy_similarity("img", {"src": Expression(source="logo")}, "img", {"src": "/logo.png"}) == 0.0


def test_node_shape_reads_first_element():
    shape = NodeShape('<INPUT Type="checkbox" checked><label>x</label>')

    assert shape.name == "input"
    assert shape.literal("type") == "checkbox"
    assert shape.literal("checked") == ""
    assert shape.literal("name") is None


def test_results_sorted_and_filtered_by_threshold():
    """Resultaten staan op aflopende confidence; alleen die boven de drempel worden geaccepteerd."""
    matcher = SourceMatcherService(acceptance_threshold=0.9)
    violation, node = _violation("image-alt", '<img src="/logo.png">')
    tags = [
        _tag('<img src="/other.png">'),
        _tag('<img src="/logo.png">'),
    ]

    results = matcher.match(violation, node, tags, "a.html")

    assert [r.confidence for r in results] == [1.0, 0.9]
    assert [r.confidence for r in matcher.accepted(results)] == [1.0, 0.9]
    assert SourceMatcherService(acceptance_threshold=0.95).accepted(results)[0].confidence == 1.0
    assert len(SourceMatcherService(acceptance_threshold=0.95).accepted(results)) == 1


@pytest.mark.parametrize("configured, effective", [(0.3, 0.7), (0.0, 0.7), (0.7, 0.7), (0.85, 0.85)])
def test_threshold_never_below_high_confidence(configured, effective):
    """Een te lage drempel wordt opgetrokken tot 0.7, zodat zwakke matches nooit automatisch worden toegepast."""
    matcher = SourceMatcherService(acceptance_threshold=configured)
    violation, node = _violation("color-contrast", '<p class="muted">x</p>')
    results = matcher.match(violation, node, [_tag('<button class="cta">Go</button>')], "a.html")

    assert matcher.acceptance_threshold == effective
    assert [r.confidence for r in results] == [0.6]
    assert matcher.accepted(results) == []


def test_document_rules_also_consider_body():
    """Voor landmark-one-main telt ook <body> mee als kandidaat; voor andere regels niet."""
    parsed = ElementExtractService().extract("<html><body><h1>Hi</h1></body></html>", "index.html")
    landmark, node = _violation("landmark-one-main", '<html lang="en">', "moderate")
    other, _ = _violation("image-alt", '<img src="/a.png">')

    assert [t.name for t in SourceMatcherService.candidate_tags(landmark, parsed)] == ["h1", "body"]
    assert [t.name for t in SourceMatcherService.candidate_tags(other, parsed)] == ["h1"]
    results = SourceMatcherService().match_files(landmark, node, [parsed])
    assert [(r.matched_tag.name, r.confidence) for r in results] == [("body", 0.8)]


def test_match_files_only_considers_relevant_tags(matcher):
    """Over meerdere bestanden tellen alleen toegankelijkheidsrelevante elementen mee."""
    service = ElementExtractService()
    files = [
        service.extract('<div><span>x</span></div>', "plain.html"),
        service.extract('<header><img src="/logo.png"></header>', "header.html"),
        service.extract('export default () => <img src={logo} />;', "Logo.jsx"),
    ]
    violation, node = _violation("image-missing-text-alternative", '<img src="/logo.png">')

    results = matcher.match_files(violation, node, files)

    assert results[0].file_path == "header.html"
    assert results[0].matched_tag.name == "img"
    assert results[0].confidence == 1.0
    assert {r.file_path for r in results} == {"header.html", "Logo.jsx"}
    assert all(r.matched_tag.name != "span" for r in results)


def test_match_result_confidence_bounds():
    violation, node = _violation("image-alt", "<img>")
    with pytest.raises(ValidationError):
        MatchResult(
            violation=violation, node=node, matched_tag=Tag(type="img"),
            file_path="a.html", confidence=1.2, strategy=MatchStrategy.EXACT,
        )

