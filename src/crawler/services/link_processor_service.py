# src/crawler/services/link_processor_service.py

import logging
from typing import List

from bs4 import BeautifulSoup

from crawler.utils.url_utils import UrlUtils

# Initialize a module-level logger.
logger = logging.getLogger(__name__)

_SKIPPED_SCHEMES = ('#', 'mailto:', 'tel:', 'javascript:', 'data:')


class LinkProcessorService:
    """
    A stateless service that extracts same-domain hyperlinks from rendered
    HTML and returns them normalized and de-duplicated.
    """

    def __init__(self):
        self.utils = UrlUtils()

    def extract_same_domain_links(self, html_content: str, source_url: str) -> List[str]:
        """
        Processes all anchor tags on a page and keeps the crawlable internal ones.

        Args:
            html_content: The rendered HTML content of the page.
            source_url: The URL of the page the links originate from.

        Returns:
            Normalized same-domain URLs in document order, without duplicates.
        """
        if not self.utils.get_hostname(source_url):
            logger.warning(f"Could not extract hostname from {source_url}. Cannot process links.")
            return []

        links: List[str] = []
        seen = set()

        try:
            soup = BeautifulSoup(html_content or "", "html.parser")
            for link_tag in soup.find_all('a', href=True):
                raw_href = link_tag['href'].strip()

                if not raw_href or raw_href.lower().startswith(_SKIPPED_SCHEMES):
                    continue

                normalized = self.utils.normalize_url(raw_href, base_url=source_url)
                if not self.utils.is_valid_link(normalized):
                    continue
                if not self.utils.is_same_domain(normalized, source_url):
                    continue
                if normalized in seen:
                    continue

                seen.add(normalized)
                links.append(normalized)

        except Exception as e:
            logger.error(f"Error processing links for {source_url}: {e}", exc_info=True)

        return links
