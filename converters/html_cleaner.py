"""HTML cleaner for removing Confluence storage-format noise without losing content."""

import logging
from typing import Optional

from bs4 import BeautifulSoup, Tag

logger = logging.getLogger('confuddlement.converters.htmlcleaner')

# Storage-format elements whose text is configuration, not page content
NOISE_TAGS = ['ac:parameter', 'ac:placeholder', 'ri:url']

# Namespaced elements that only wrap content
WRAPPER_PREFIXES = ('ac:', 'ri:')


class HtmlCleaner:
    """Removes Confluence storage-format markup ahead of Markdown conversion."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        """Initialize HTML cleaner with optional logger."""
        self.logger = logger or logging.getLogger('confuddlement.converters.htmlcleaner')

    def clean(self, soup: BeautifulSoup) -> BeautifulSoup:
        """
        Clean storage-format HTML in place.

        Args:
            soup: BeautifulSoup object with Confluence storage HTML

        Returns:
            Cleaned BeautifulSoup object
        """
        self.logger.debug("Cleaning storage-format HTML")

        self._remove_noise(soup)
        self._convert_plain_text_bodies(soup)
        self._unwrap_namespaced(soup)
        self._remove_empty_elements(soup)

        self.logger.debug("HTML cleaning completed")
        return soup

    def _remove_noise(self, soup: BeautifulSoup) -> None:
        """Drop macro parameters and placeholders."""
        for element in soup.find_all(NOISE_TAGS):
            element.decompose()

    def _convert_plain_text_bodies(self, soup: BeautifulSoup) -> None:
        """Turn code macro bodies into ``<pre>`` blocks."""
        for element in soup.find_all('ac:plain-text-body'):
            pre = soup.new_tag('pre')
            pre.string = element.get_text()
            element.replace_with(pre)

    def _unwrap_namespaced(self, soup: BeautifulSoup) -> None:
        """Unwrap ``ac:*`` and ``ri:*`` elements, keeping their children."""
        unwrapped = 0
        for element in soup.find_all(self._is_namespaced):
            element.unwrap()
            unwrapped += 1

        if unwrapped > 0:
            self.logger.debug(f"Unwrapped {unwrapped} storage-format elements")

    @staticmethod
    def _is_namespaced(element: Tag) -> bool:
        return bool(element.name) and element.name.startswith(WRAPPER_PREFIXES)

    def _remove_empty_elements(self, soup: BeautifulSoup) -> None:
        """Remove empty elements that serve no purpose."""
        removed_count = 0

        # Note: br tags are self-closing and should not be removed
        for element in soup.find_all(['div', 'span', 'p']):
            if element.find():
                continue

            has_text = len(element.get_text(strip=True)) > 0
            has_attrs = bool(element.attrs)

            if not has_text and not has_attrs:
                element.decompose()
                removed_count += 1

        if removed_count > 0:
            self.logger.debug(f"Removed {removed_count} empty elements")
