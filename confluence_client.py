"""Confluence REST API client used by the listing walker and content fetcher."""

import logging
import time
from typing import Any, Dict, List, Optional

import requests
import urllib3
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

logger = logging.getLogger('confuddlement.client')


class ConfluenceError(Exception):
    """Base exception for Confluence API failures."""
    pass


class ConfluenceTransportError(ConfluenceError):
    """The request could not be sent or no response was received."""
    pass


class ConfluenceDecodeError(ConfluenceError):
    """The response body was not valid JSON."""
    pass


class ConfluenceHttpError(ConfluenceError):
    """The API answered with a non-200 status code."""

    def __init__(self, status_code: int, url: str):
        super().__init__(f"API request failed with status code {status_code}")
        self.status_code = status_code
        self.url = url


class ConfluenceAuthorizationError(ConfluenceHttpError):
    """The API refused the credentials (HTTP 403)."""
    pass


def join_link(base_url: str, link: str) -> str:
    """
    Join a link returned by the API onto a base URL.

    Root-relative links are appended to the base URL so its context path
    (e.g. ``/wiki``) is kept; absolute links are returned unchanged.
    """
    if link.startswith('/'):
        return f"{base_url.rstrip('/')}{link}"
    return link


class ConfluenceClient:
    """Confluence REST API client with basic authentication and optional retry logic."""

    def __init__(
        self,
        base_url: str,
        username: Optional[str] = None,
        api_token: Optional[str] = None,
        verify_ssl: bool = True,
        timeout: Optional[float] = None,
        max_retries: int = 0,
        retry_backoff_factor: float = 2.0,
        rate_limit: float = 0.0,
        session: Optional[requests.Session] = None
    ):
        """
        Initialize Confluence client.

        Args:
            base_url: Confluence base URL (e.g., "https://mycompany.atlassian.net/wiki")
            username: Username for basic auth
            api_token: API token (or password) for basic auth
            verify_ssl: Whether to verify SSL certificates
            timeout: HTTP request timeout in seconds (None waits indefinitely)
            max_retries: Retry attempts for transient errors (0 disables retries)
            retry_backoff_factor: Exponential backoff factor
            rate_limit: Minimum seconds between requests (0.0 = no rate limiting)
            session: Optional pre-built session (mainly for tests)
        """
        if not base_url:
            raise ValueError("base_url is required")

        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.max_retries = max_retries
        self.rate_limit = rate_limit
        self.last_request_time = 0.0

        self.session = session or requests.Session()
        if username is not None or api_token is not None:
            self.session.auth = (username or '', api_token or '')
        self.session.headers['Content-Type'] = 'application/json'

        self.session.verify = verify_ssl
        if not verify_ssl:
            logger.warning("SSL verification disabled - this is insecure!")
            urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

        if max_retries > 0:
            retry_strategy = Retry(
                total=max_retries,
                backoff_factor=retry_backoff_factor,
                status_forcelist=[429, 500, 502, 503, 504],
                allowed_methods=["HEAD", "GET", "OPTIONS"],
                raise_on_status=False
            )
            adapter = HTTPAdapter(max_retries=retry_strategy)
            self.session.mount("http://", adapter)
            self.session.mount("https://", adapter)

        logger.debug(f"Client configured for {self.base_url} with timeout={timeout}, "
                     f"max_retries={max_retries}, rate_limit={rate_limit}s")

    def space_content_url(self, space_key: str, limit: int) -> str:
        """First listing URL for a space, including the page-size limit."""
        return f"{self.base_url}/rest/api/space/{space_key}/content?limit={limit}"

    def absolute_url(self, link: str, base_url: Optional[str] = None) -> str:
        """Resolve an API link against ``base_url`` (defaults to the client base URL)."""
        return join_link(base_url or self.base_url, link)

    def get_json(self, url: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        GET a fully-qualified URL and decode its JSON body.

        Raises:
            ConfluenceAuthorizationError: For HTTP 403
            ConfluenceHttpError: For any other non-200 status
            ConfluenceTransportError: When the request fails to complete
            ConfluenceDecodeError: When the body is not JSON
        """
        response = self._make_request('GET', url, params=params)
        try:
            return response.json()
        except ValueError as e:
            logger.error(f"Invalid JSON from {url}: {str(e)}")
            raise ConfluenceDecodeError(f"Failed to decode response from {url}: {str(e)}") from e

    def get_page(self, page_id: str, expand: Optional[List[str]] = None) -> Dict[str, Any]:
        """
        Fetch single content item with specified expansions.

        Args:
            page_id: Confluence content ID
            expand: List of expansions (e.g., ['body.storage', 'metadata'])

        Returns:
            Content dictionary with expanded fields
        """
        url = f"{self.base_url}/rest/api/content/{page_id}"
        params = {'expand': ','.join(expand)} if expand else None
        return self.get_json(url, params=params)

    def _enforce_rate_limit(self) -> None:
        """Enforce rate limiting if configured."""
        if self.rate_limit <= 0:
            return

        time_since_last = time.time() - self.last_request_time
        if time_since_last < self.rate_limit:
            sleep_time = self.rate_limit - time_since_last
            logger.debug(f"Rate limiting: sleeping for {sleep_time:.2f}s")
            time.sleep(sleep_time)

    def _make_request(self, method: str, url: str, **kwargs) -> requests.Response:
        """
        Make HTTP request with rate limiting and status handling.

        Returns:
            Response object with status 200
        """
        self._enforce_rate_limit()

        start_time = time.time()
        logger.debug(f"API Request: {method} {url}")

        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.exceptions.RequestException as e:
            logger.error(f"Request error: {method} {url} - {str(e)}")
            raise ConfluenceTransportError(f"{method} {url} failed: {str(e)}") from e
        finally:
            self.last_request_time = time.time()

        elapsed = time.time() - start_time
        logger.debug(f"API Response: {response.status_code} {url} ({elapsed:.3f}s)")

        if response.status_code == 403:
            logger.error(f"HTTP Error 403: {method} {url} - check credentials and space permissions")
            raise ConfluenceAuthorizationError(response.status_code, url)

        if response.status_code != 200:
            logger.error(f"HTTP Error {response.status_code}: {method} {url}")
            logger.debug(f"Error response: {response.text[:500]}")
            raise ConfluenceHttpError(response.status_code, url)

        return response

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> 'ConfluenceClient':
        """
        Initialize Confluence client from configuration dictionary.

        Args:
            config: Configuration dictionary with confluence and advanced settings

        Returns:
            ConfluenceClient instance
        """
        confluence_config = config.get('confluence', {})
        advanced_config = config.get('advanced', {})

        return cls(
            base_url=confluence_config.get('base_url'),
            username=confluence_config.get('username'),
            api_token=confluence_config.get('api_token'),
            verify_ssl=confluence_config.get('verify_ssl', True),
            timeout=advanced_config.get('request_timeout'),
            max_retries=advanced_config.get('max_retries', 0),
            retry_backoff_factor=advanced_config.get('retry_backoff_factor', 2.0),
            rate_limit=advanced_config.get('rate_limit', 0.0)
        )


__all__ = [
    'ConfluenceClient',
    'ConfluenceError',
    'ConfluenceTransportError',
    'ConfluenceDecodeError',
    'ConfluenceHttpError',
    'ConfluenceAuthorizationError'
]
