# src/crawler/utils/url_utils.py
import logging
import posixpath
from urllib.parse import urlparse, urljoin, urlunparse

logger = logging.getLogger(__name__)


class UrlUtils:
    """A collection of static methods for URL parsing and manipulation."""

    @staticmethod
    def normalize_url(url: str, base_url: str | None = None) -> str:
        """
        Creates the canonical form of a URL used as visited-set key.

        Relative URLs are resolved against `base_url`, fragments are dropped,
        scheme and host are lowercased and extension-less paths get a
        trailing slash so '/about' and '/about/' collapse. Query strings
        are kept.
        """
        if isinstance(url, bytes):
            url = url.decode('utf-8')

        absolute_url = urljoin(base_url, url) if base_url else url
        parsed_url = urlparse(absolute_url.strip())

        path = parsed_url.path or '/'
        last_segment = path.rsplit('/', 1)[-1]
        if not path.endswith('/') and not posixpath.splitext(last_segment)[1]:
            path += '/'

        parsed_url = parsed_url._replace(
            scheme=parsed_url.scheme.lower(),
            netloc=parsed_url.netloc.lower(),
            path=path,
            params='',
            fragment='',
        )
        return urlunparse(parsed_url)

    @staticmethod
    def get_hostname(url: str) -> str:
        """Returns the lowercased hostname of a URL, or '' when it cannot be parsed."""
        try:
            return (urlparse(url).hostname or '').lower()
        except ValueError:
            logger.debug(f"Could not parse invalid URL: {url}")
            return ''

    @staticmethod
    def is_valid_link(url: str) -> bool:
        """
        Checks if a URL is a fetchable web URL (http/https with a host).
        """
        if not isinstance(url, str):
            logger.debug(f"Invalid link check: URL is not a string ({type(url).__name__}).")
            return False

        try:
            parsed_url = urlparse(url)
        except ValueError as e:
            logger.debug(f"Invalid link check: ValueError during URL parsing for '{url}': {e}.")
            return False

        return parsed_url.scheme in ('http', 'https') and bool(parsed_url.netloc)

    @staticmethod
    def is_same_domain(url: str, base_url: str) -> bool:
        """
        Same-domain means the hostnames match exactly; subdomains are
        treated as different sites.
        """
        host = UrlUtils.get_hostname(url)
        return bool(host) and host == UrlUtils.get_hostname(base_url)
