"""Canvas API client for making authenticated requests."""

import logging
from typing import Any, Dict, List, Mapping, Optional, Tuple

import requests

from canvas_api.pagination import parse_link_header
from config import CANVAS_BASE_URL, CANVAS_TOKEN, REQUEST_TIMEOUT
from constants import DEFAULT_PER_PAGE, DEFAULT_RETRY_AFTER, USER_AGENT

logger = logging.getLogger(__name__)

Params = Mapping[str, Any]


class CanvasAPIError(Exception):
    """Base exception for Canvas API errors."""
    pass


class UnauthorizedError(CanvasAPIError):
    """401: the token was rejected."""

    def __init__(self) -> None:
        super().__init__("Unauthorized - check your API token")


class ForbiddenError(CanvasAPIError):
    """403: the token is valid but lacks permission."""

    def __init__(self) -> None:
        super().__init__("Forbidden - insufficient permissions")


class RateLimitedError(CanvasAPIError):
    """429: the caller should wait ``retry_after`` seconds."""

    def __init__(self, retry_after: float = DEFAULT_RETRY_AFTER) -> None:
        self.retry_after = retry_after
        super().__init__(f"Rate limited - retry after {retry_after:.1f}s")


class ApiError(CanvasAPIError):
    """Any other 4xx/5xx response."""

    def __init__(self, status: int, body: str) -> None:
        self.status = status
        self.body = body
        super().__init__(f"HTTP {status}: {body}")


class UploadError(ApiError):
    """The storage endpoint rejected a file upload."""

    def __init__(self, status: int, body: str) -> None:
        super().__init__(status, body)
        self.args = (f"Upload failed - HTTP {status}: {body}",)


class NetworkError(CanvasAPIError):
    """Transport-level failure (DNS, connection, TLS, timeout)."""

    def __init__(self, cause: Exception) -> None:
        self.cause = cause
        super().__init__(f"Network error: {cause}")


class FileAccessError(CanvasAPIError):
    """A local file needed for a request could not be read."""
    pass


def normalize_canvas_base_url(base_url: str) -> str:
    """Strip trailing slashes and a trailing /api/v1 from a Canvas URL."""
    normalized = base_url.strip().rstrip('/')
    if normalized.lower().endswith('/api/v1'):
        normalized = normalized[: -len('/api/v1')]
    return normalized


def parse_retry_after(value: Optional[str]) -> float:
    """Seconds from a Retry-After header, falling back to the default."""
    if value is None:
        return DEFAULT_RETRY_AFTER
    try:
        seconds = float(value.strip())
    except (TypeError, ValueError):
        return DEFAULT_RETRY_AFTER
    if seconds != seconds or seconds < 0:  # NaN or negative
        return DEFAULT_RETRY_AFTER
    return seconds


def raise_for_canvas_status(response: requests.Response) -> None:
    """Translate an error status into the matching CanvasAPIError."""
    status = response.status_code
    if status == 401:
        raise UnauthorizedError()
    if status == 403:
        raise ForbiddenError()
    if status == 429:
        raise RateLimitedError(parse_retry_after(response.headers.get('Retry-After')))
    if 400 <= status < 600:
        raise ApiError(status, response.text or "")


def _decode_json(response: requests.Response) -> Any:
    try:
        return response.json()
    except ValueError as e:
        raise CanvasAPIError(f"Canvas response was not valid JSON for {response.url}") from e


class CanvasClient:
    """Client for interacting with the Canvas LMS API."""

    def __init__(self, base_url: str = CANVAS_BASE_URL, token: str = CANVAS_TOKEN,
                 timeout: float = REQUEST_TIMEOUT) -> None:
        """Initialize the Canvas API client."""
        if not base_url or not token:
            raise ValueError("Canvas API base URL and token are required")

        self.base_url = normalize_canvas_base_url(base_url)
        self.timeout = timeout
        self.headers = {
            "Authorization": f"Bearer {token}",
            "Accept": "application/json",
            "User-Agent": USER_AGENT,
        }

    def api_url(self, endpoint: str) -> str:
        """Absolute URL for an API path such as ``courses/1/assignments``."""
        return f"{self.base_url}/api/v1/{endpoint.lstrip('/')}"

    def _send(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        """Issue one authenticated request and map error statuses."""
        send = requests.get if method == "GET" else requests.post
        try:
            response = send(url, headers=self.headers, timeout=self.timeout, **kwargs)
        except requests.exceptions.RequestException as e:
            raise NetworkError(e) from e

        raise_for_canvas_status(response)
        return response

    def fetch_page(self, endpoint: str, params: Optional[Params] = None,
                   ) -> Tuple[List[Dict[str, Any]], Optional[str]]:
        """Fetch one page of a collection; returns (items, next page URL)."""
        if params is None:
            params = {"per_page": DEFAULT_PER_PAGE}
        elif "per_page" not in params:
            params = {**params, "per_page": DEFAULT_PER_PAGE}

        return self._fetch_page_url(self.api_url(endpoint), params)

    def _fetch_page_url(self, url: str, params: Optional[Params] = None,
                        ) -> Tuple[List[Dict[str, Any]], Optional[str]]:
        response = self._send("GET", url, params=params)
        data = _decode_json(response)
        if not isinstance(data, list):
            raise CanvasAPIError(f"Canvas response expected a list for {url}")

        links = parse_link_header(response.headers.get('Link'))
        return data, links.next

    def fetch_all(self, endpoint: str, params: Optional[Params] = None) -> List[Dict[str, Any]]:
        """Fetch every page of a collection, following ``rel="next"`` links."""
        all_results: List[Dict[str, Any]] = []

        items, next_url = self.fetch_page(endpoint, params)
        all_results.extend(items)
        pages = 1

        # Next links are absolute and already carry the query string
        while next_url:
            items, next_url = self._fetch_page_url(next_url)
            all_results.extend(items)
            pages += 1

        logger.debug("Fetched %d items from %s in %d page(s)", len(all_results), endpoint, pages)
        return all_results

    def get(self, endpoint: str, params: Optional[Params] = None) -> Any:
        """GET a single resource."""
        return _decode_json(self._send("GET", self.api_url(endpoint), params=params))

    def get_url(self, url: str) -> Any:
        """GET an absolute URL with the bearer credential attached."""
        return _decode_json(self._send("GET", url))

    def post(self, endpoint: str, payload: Optional[Dict[str, Any]] = None) -> Any:
        """POST a JSON body to an API path."""
        return _decode_json(self._send("POST", self.api_url(endpoint), json=payload or {}))
