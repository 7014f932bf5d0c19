"""
Provider Base Class — Paginated repository listing over a REST API.

A provider turns a namespace (GitLab group, GitHub organization) into
the complete, sorted list of repositories beneath it. Listing either
returns everything or raises ListingError; a short list is never
returned silently.

## Pagination

Both APIs return fixed-size pages. The next page is taken from the
`Link: rel="next"` header, falling back to GitLab's `X-Next-Page`.
When the API announces `X-Total`, the collected item count must
match it.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Set, Tuple

import httpx

from .. import __version__
from ..errors import ListingError
from ..models.repository import RepositoryDescriptor

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = f"git-mirror/{__version__}"

PER_PAGE = 100


class Provider(ABC):
    """
    Abstract base class for repository providers.

    Subclasses supply the endpoints, auth headers and payload mapping;
    pagination and error translation live here.
    """

    default_url: str = ""

    # Whether authenticated HTTPS clones need a token for this provider
    http_requires_credential: bool = False

    # Username paired with the token in HTTPS clone URLs
    http_user: str = "oauth2"

    def __init__(
        self,
        namespace: str,
        url: Optional[str] = None,
        private_token: Optional[str] = None,
        user_agent: str = DEFAULT_USER_AGENT,
        client: Optional[httpx.Client] = None,
        timeout: float = 30.0,
        retries: int = 3,
    ):
        self.namespace = namespace
        self.url = (url or self.default_url).rstrip("/")
        self.private_token = private_token
        self.user_agent = user_agent
        self.timeout = timeout
        self.retries = retries
        self._client = client

    def __repr__(self) -> str:
        return f"{type(self).__name__}(url={self.url!r}, namespace={self.namespace!r})"

    @property
    @abstractmethod
    def name(self) -> str:
        """The provider identifier (e.g., 'gitlab', 'github')."""
        pass

    @abstractmethod
    def list_repositories(
        self, namespace: Optional[str] = None
    ) -> List[RepositoryDescriptor]:
        """
        List every repository in `namespace` (defaults to the configured one).

        Returns descriptors sorted by namespace path, then name.
        Raises ListingError on auth, network or payload problems.
        """
        pass

    def auth_headers(self) -> Dict[str, str]:
        """Headers that authenticate a request; empty for anonymous access."""
        return {}

    def request_headers(self) -> Dict[str, str]:
        headers = {"User-Agent": self.user_agent}
        headers.update(self.auth_headers())
        return headers

    @contextmanager
    def http_client(self) -> Iterator[httpx.Client]:
        """Yield the injected client, or a short-lived one with transport retries."""
        if self._client is not None:
            yield self._client
            return

        transport = httpx.HTTPTransport(retries=self.retries)
        with httpx.Client(
            transport=transport, timeout=self.timeout, follow_redirects=True
        ) as client:
            yield client

    # ─── Pagination ─────────────────────────────────────────

    def paginate(
        self,
        client: httpx.Client,
        url: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> List[Dict[str, Any]]:
        """Fetch every page of a list endpoint and return all items."""
        next_url: Optional[str] = url
        next_params: Optional[Dict[str, Any]] = {"per_page": PER_PAGE, **(params or {})}
        expected_total: Optional[int] = None
        seen: Set[Tuple[str, str]] = set()
        items: List[Dict[str, Any]] = []

        while next_url:
            marker = (next_url, repr(sorted((next_params or {}).items())))
            if marker in seen:
                raise ListingError(f"Pagination loop detected at {next_url}")
            seen.add(marker)

            response = self._get(client, next_url, next_params)
            page = self._parse_page(response)
            items.extend(page)
            logger.debug(
                f"[{self.name}] {response.request.url.path}: page with {len(page)} item(s)"
            )

            if expected_total is None:
                expected_total = _int_header(response, "X-Total")

            next_url, next_params = self._next_page(response, next_url, next_params)

        if expected_total is not None and len(items) != expected_total:
            raise ListingError(
                f"Truncated listing from {url}: got {len(items)} of {expected_total} item(s)"
            )

        return items

    def _get(
        self,
        client: httpx.Client,
        url: str,
        params: Optional[Dict[str, Any]],
    ) -> httpx.Response:
        try:
            response = client.get(url, params=params, headers=self.request_headers())
        except httpx.HTTPError as e:
            raise ListingError(f"Request to {url} failed: {e}") from e

        if response.status_code in (401, 403):
            raise ListingError(
                f"Authentication rejected by {self.name} ({response.status_code})",
                status_code=response.status_code,
            )
        if response.status_code == 404:
            raise ListingError(
                f"Namespace not found at {url} (404)", status_code=404
            )
        if not response.is_success:
            raise ListingError(
                f"HTTP {response.status_code} from {url}",
                status_code=response.status_code,
            )
        return response

    def _parse_page(self, response: httpx.Response) -> List[Dict[str, Any]]:
        try:
            data = response.json()
        except ValueError as e:
            raise ListingError(
                f"Malformed response from {response.request.url}: {e}"
            ) from e

        if not isinstance(data, list):
            raise ListingError(
                f"Malformed response from {response.request.url}: expected a list"
            )
        if not all(isinstance(item, dict) for item in data):
            raise ListingError(
                f"Malformed response from {response.request.url}: expected objects"
            )
        return data

    def _next_page(
        self,
        response: httpx.Response,
        url: str,
        params: Optional[Dict[str, Any]],
    ) -> Tuple[Optional[str], Optional[Dict[str, Any]]]:
        link = response.links.get("next", {}).get("url")
        if link:
            # The link already carries the query string
            return link, None

        next_page = response.headers.get("X-Next-Page", "").strip()
        if next_page:
            if not next_page.isdigit():
                raise ListingError(f"Malformed X-Next-Page header: {next_page!r}")
            return url, {**(params or {}), "page": int(next_page)}

        return None, None

    # ─── Descriptor helpers ─────────────────────────────────

    def _require(self, payload: Dict[str, Any], *keys: str) -> List[Any]:
        """Pull required fields out of a payload or fail the listing."""
        values = []
        for key in keys:
            value = payload.get(key)
            if value is None or value == "":
                raise ListingError(
                    f"Malformed {self.name} repository entry: missing '{key}'"
                )
            values.append(value)
        return values


def _int_header(response: httpx.Response, name: str) -> Optional[int]:
    value = response.headers.get(name)
    if value is None or not value.strip().isdigit():
        return None
    return int(value)
