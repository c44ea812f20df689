# src/crawler/services/axe_audit_service.py
import logging
from typing import Any, Dict, List, Optional

from playwright.async_api import Error as PlaywrightError

from crawler.model import AuditOutcome, Violation
from crawler.services.render_session_service import RenderedPage

logger = logging.getLogger(__name__)

_AXE_RUN_SCRIPT = """
async (tags) => {
    if (!window.axe || !window.axe.run) {
        return { error: 'axe not loaded' };
    }
    const res = await window.axe.run(document, {
        runOnly: { type: 'tag', values: tags }
    });
    return {
        violations: res.violations,
        passes: res.passes.length,
        incomplete: res.incomplete.length,
        inapplicable: res.inapplicable.length
    };
}
"""


class AuditEngineError(Exception):
    """Raised when axe-core cannot be loaded or returns an unusable result."""


class AxeAuditService:
    """
    Runs axe-core inside a rendered page and maps its result to AuditOutcome.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        self.config = config or {}
        self.tags: List[str] = list(self.config.get('tags', ["wcag2a", "wcag2aa"]))
        self.axe_script_url: str = self.config.get(
            'axe_script_url',
            "https://cdnjs.cloudflare.com/ajax/libs/axe-core/4.10.2/axe.min.js",
        )
        self.axe_script_path: Optional[str] = self.config.get('axe_script_path')

    async def _inject_axe(self, rendered: RenderedPage) -> None:
        page = rendered.page
        if await page.evaluate("() => Boolean(window.axe && window.axe.run)"):
            return
        if self.axe_script_path:
            await page.add_script_tag(path=self.axe_script_path)
        else:
            await page.add_script_tag(url=self.axe_script_url)

    async def audit(self, rendered: RenderedPage) -> AuditOutcome:
        """
        Audits one rendered page.

        Raises:
            AuditEngineError: when axe cannot run in the page.
        """
        try:
            await self._inject_axe(rendered)
            raw = await rendered.page.evaluate(_AXE_RUN_SCRIPT, self.tags)
        except PlaywrightError as e:
            raise AuditEngineError(f"axe run failed on {rendered.url}: {e}") from e

        return self.parse_result(raw)

    @staticmethod
    def parse_result(raw: Any) -> AuditOutcome:
        """Maps the JSON produced by the in-page axe run to an AuditOutcome."""
        if not isinstance(raw, dict):
            raise AuditEngineError(f"Unexpected axe result type: {type(raw).__name__}")
        if raw.get("error"):
            raise AuditEngineError(str(raw["error"]))

        def _count(key: str) -> int:
            value = raw.get(key, 0)
            return len(value) if isinstance(value, list) else int(value or 0)

        return AuditOutcome(
            violations=[Violation.from_axe(v) for v in raw.get("violations") or []],
            passes=_count("passes"),
            incomplete=_count("incomplete"),
            inapplicable=_count("inapplicable"),
        )
