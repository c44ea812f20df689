# tests/conftest.py
import asyncio
from typing import Dict, List, Optional, Set

import pytest

from crawler.model import AuditOutcome, Violation


class FakeRenderedPage:
    def __init__(self, url: str, links: List[str]):
        self.url = url
        self.page = None
        self._links = links

    async def extract_links(self) -> List[str]:
        return list(self._links)


class FakeSession:
    """Render session over an in-memory site graph {url: [links]}."""

    def __init__(self, site: Dict[str, List[str]], broken: Optional[Set[str]] = None, tracker=None):
        self.site = site
        self.broken = broken or set()
        self.tracker = tracker
        self.rendered: List[str] = []
        self.closed = False

    async def __aenter__(self):
        if self.tracker is not None:
            self.tracker.enter()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.closed = True
        if self.tracker is not None:
            self.tracker.exit()

    async def render(self, url: str) -> FakeRenderedPage:
        await asyncio.sleep(0)
        self.rendered.append(url)
        if url in self.broken:
            raise RuntimeError(f"Navigation timeout for {url}")
        return FakeRenderedPage(url, self.site.get(url, []))


class FakeAuditEngine:
    """Returns fixed violations per URL; URLs in `failing` raise `failures[url]` times."""

    def __init__(self, violations: Optional[Dict[str, List[dict]]] = None,
                 failing: Optional[Dict[str, int]] = None):
        self.violations = violations or {}
        self.failing = dict(failing or {})
        self.calls: Dict[str, int] = {}

    async def audit(self, rendered) -> AuditOutcome:
        self.calls[rendered.url] = self.calls.get(rendered.url, 0) + 1
        if self.failing.get(rendered.url, 0) > 0:
            self.failing[rendered.url] -= 1
            raise RuntimeError("axe not loaded")
        raw = self.violations.get(rendered.url, [])
        return AuditOutcome(violations=[Violation.from_axe(v) for v in raw], passes=4)


class ConcurrencyTracker:
    def __init__(self):
        self.active = 0
        self.peak = 0

    def enter(self):
        self.active += 1
        self.peak = max(self.peak, self.active)

    def exit(self):
        self.active -= 1


def axe_violation(rule_id: str, html: str, impact: str = "critical", target=None) -> dict:
    """A minimal axe-core violation entry."""
    return {
        "id": rule_id,
        "impact": impact,
        "description": f"{rule_id} description",
        "helpUrl": f"https://dequeuniversity.com/rules/axe/4.10/{rule_id}",
        "tags": ["wcag2a"],
        "nodes": [{"html": html, "target": target or ["img"], "failureSummary": "Fix any of the following"}],
    }


@pytest.fixture
def site_with_five_links() -> Dict[str, List[str]]:
    return {
        "https://example.com/": [f"https://example.com/page{i}/" for i in range(1, 6)],
    }
