# src/matcher/services/source_matcher_service.py
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List, Optional, Sequence, Tuple

from crawler.model import Violation, ViolationNode
from matcher.model import HIGH_CONFIDENCE, MatchResult, MatchStrategy
from parser.model import AttributeValue, Expression, ParsedFile, Tag
from parser.utils.markup_utils import canonicalize_html, collapse_whitespace, first_open_tag, open_tag_attributes

logger = logging.getLogger(__name__)

# Identity-like attributes count more than generic ones.
ATTRIBUTE_WEIGHTS: Dict[str, int] = {
    "id": 3, "src": 3, "href": 3, "alt": 3,
    "class": 2, "type": 2, "name": 2, "role": 2,
    "aria-label": 2, "aria-labelledby": 2, "aria-describedby": 2,
}
DEFAULT_WEIGHT = 1

FUZZY_MIN_SIMILARITY = 0.5
FUZZY_MAX_CONFIDENCE = 0.85

_INPUT_LIKE = ("input", "select", "textarea")
_INVISIBLE = ("script", "style", "meta", "link", "head", "title", "noscript")

# Rules reported on the document itself; their fix goes into the page body.
DOCUMENT_RULES = frozenset({"landmark-one-main"})


class NodeShape:
    """Tag name and attributes of the first element of a violation snippet."""

    def __init__(self, html: str):
        located = first_open_tag(html)
        self.name = located[2].lower() if located else ""
        self.attributes: Dict[str, AttributeValue] = {
            key.lower(): value for key, value in open_tag_attributes(html).items()
        }

    def literal(self, name: str) -> Optional[str]:
        value = self.attributes.get(name)
        if value is True:
            return ""
        return value if isinstance(value, str) else None


def _same_literal(a: Optional[AttributeValue], b: Optional[AttributeValue]) -> bool:
    if a is None or b is None or isinstance(a, Expression) or isinstance(b, Expression):
        return False
    if a is True or b is True:
        return a is b or (a in ("", True) and b in ("", True))
    return collapse_whitespace(str(a)) == collapse_whitespace(str(b))


def fuzzy_similarity(
        name_a: str, attrs_a: Dict[str, AttributeValue],
        name_b: str, attrs_b: Dict[str, AttributeValue],
) -> float:
    """
    Weighted attribute overlap between two elements of the same type.
    Returns 0 for different types. Symmetric in its two arguments.
    """
    if not name_a or name_a.lower() != name_b.lower():
        return 0.0
    union = set(attrs_a) | set(attrs_b)
    if not union:
        return FUZZY_MIN_SIMILARITY

    total = sum(ATTRIBUTE_WEIGHTS.get(attr, DEFAULT_WEIGHT) for attr in union)
    matching = sum(
        ATTRIBUTE_WEIGHTS.get(attr, DEFAULT_WEIGHT)
        for attr in union
        if _same_literal(attrs_a.get(attr), attrs_b.get(attr))
    )
    return matching / total


class SourceMatcherService:
    """
    Scores source elements against the rendered snippet of a violation.

    Per candidate three strategies run in order and the first one with a
    positive score wins: exact/substring comparison of canonical markup,
    a rule-aware semantic table and weighted attribute similarity.
    """

    def __init__(self, acceptance_threshold: float = HIGH_CONFIDENCE, workers: int = 4):
        threshold = float(acceptance_threshold)
        if threshold < HIGH_CONFIDENCE:
            logger.warning(
                "Acceptance threshold %.2f is below %.2f; using %.2f.", threshold, HIGH_CONFIDENCE, HIGH_CONFIDENCE
            )
        # Matches under HIGH_CONFIDENCE are never applied automatically
        self.acceptance_threshold = max(threshold, HIGH_CONFIDENCE)
        self.workers = max(int(workers), 1)

    # --- Strategies ---

    @staticmethod
    def exact_score(node_html: str, tag: Tag) -> float:
        violation_html = canonicalize_html(node_html)
        candidate_html = canonicalize_html(tag.to_html())
        if not violation_html or not candidate_html:
            return 0.0
        if violation_html == candidate_html:
            return 1.0
        if candidate_html in violation_html or violation_html in candidate_html:
            return 0.8
        return 0.0

    @staticmethod
    def semantic_score(rule_id: str, node: NodeShape, tag: Tag) -> float:
        name = tag.name

        if rule_id in ("image-alt", "image-missing-text-alternative"):
            if name != "img":
                return 0.0
            src = node.literal("src")
            return 0.95 if src and src == tag.literal("src") else 0.9

        if rule_id in ("label", "label-title-only", "missing-form-label"):
            if name not in _INPUT_LIKE:
                return 0.0
            for attr in ("type", "name"):
                value = node.literal(attr)
                if value and value == tag.literal(attr):
                    return 0.9
            return 0.8

        if rule_id == "color-contrast":
            if name in _INVISIBLE:
                return 0.0
            node_classes = set((node.literal("class") or "").split())
            tag_classes = set((tag.literal("class") or "").split())
            node_id = node.literal("id")
            if (node_classes & tag_classes) or (node_id and node_id == tag.literal("id")):
                return 0.8
            return 0.6

        if rule_id == "heading-order":
            return 0.9 if tag.heading_level is not None else 0.0

        if rule_id == "landmark-one-main":
            if name == "main" or tag.literal("role") == "main":
                return 0.9
            return 0.8 if name == "body" and node.name in ("html", "body") else 0.0

        if rule_id == "button-name":
            return 0.85 if name == "button" else 0.0

        if rule_id == "link-name":
            return 0.85 if name == "a" else 0.0

        if node.name and node.name == name:
            return 0.7
        return 0.0

    @staticmethod
    def fuzzy_score(node: NodeShape, tag: Tag) -> float:
        similarity = fuzzy_similarity(node.name, node.attributes, tag.name, tag.html_attributes())
        if similarity < FUZZY_MIN_SIMILARITY:
            return 0.0
        return min(FUZZY_MAX_CONFIDENCE, similarity)

    def score(self, violation: Violation, node: ViolationNode, tag: Tag) -> Tuple[float, MatchStrategy]:
        """Best-effort (confidence, strategy) for one candidate. Scores are never summed."""
        confidence = self.exact_score(node.html, tag)
        if confidence > 0:
            return confidence, MatchStrategy.EXACT

        shape = NodeShape(node.html)
        confidence = self.semantic_score(violation.rule_id, shape, tag)
        if confidence > 0:
            return confidence, MatchStrategy.SEMANTIC

        return self.fuzzy_score(shape, tag), MatchStrategy.FUZZY

    # --- Matching ---

    def match(
            self,
            violation: Violation,
            node: ViolationNode,
            candidate_tags: Sequence[Tag],
            file_path: str,
    ) -> List[MatchResult]:
        """All candidates with a positive score, highest confidence first."""
        results: List[MatchResult] = []
        for tag in candidate_tags:
            confidence, strategy = self.score(violation, node, tag)
            if confidence <= 0:
                continue
            results.append(MatchResult(
                violation=violation,
                node=node,
                matched_tag=tag,
                file_path=file_path,
                confidence=round(confidence, 4),
                strategy=strategy,
            ))
        results.sort(key=lambda r: r.confidence, reverse=True)
        return results

    @staticmethod
    def candidate_tags(violation: Violation, parsed: ParsedFile) -> List[Tag]:
        tags = parsed.relevant_tags()
        if violation.rule_id in DOCUMENT_RULES:
            tags += [tag for tag in parsed.tags if tag.name == "body"]
        return tags

    def match_files(
            self,
            violation: Violation,
            node: ViolationNode,
            parsed_files: Sequence[ParsedFile],
    ) -> List[MatchResult]:
        """
        Matches one violation node against every candidate file, in a thread
        pool, considering only accessibility-relevant elements
        (plus the page body for document-level rules).
        """
        def _match_file(parsed: ParsedFile) -> List[MatchResult]:
            return self.match(violation, node, self.candidate_tags(violation, parsed), parsed.path)

        if self.workers == 1 or len(parsed_files) <= 1:
            per_file = [_match_file(parsed) for parsed in parsed_files]
        else:
            with ThreadPoolExecutor(max_workers=self.workers) as pool:
                per_file = list(pool.map(_match_file, parsed_files))

        results = [result for file_results in per_file for result in file_results]
        results.sort(key=lambda r: r.confidence, reverse=True)
        logger.debug(
            "%s: %d candidate matches for %s", violation.rule_id, len(results), node.html[:80]
        )
        return results

    def accepted(self, results: Sequence[MatchResult]) -> List[MatchResult]:
        """Matches confident enough to be applied automatically."""
        return [r for r in results if r.confidence >= self.acceptance_threshold]
