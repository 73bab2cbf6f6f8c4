"""SonarQube API client.

Usage:
    client = SonarClient(url="sonar.example.com", token="squ_xxx")
    data   = client.get("/api/qualityprofiles/search", {"language": "gherkin"})
    for page in client.iter_pages("/api/rules/search", params, results_key="rules"):
        ...
"""

import re
import warnings
from typing import Any, Iterator

import requests

from gherkin_analyzer import __version__

DEFAULT_TIMEOUT = 30
PAGE_SIZE = 100
PAGINATION_WARNING_THRESHOLD = 10_000

_SCHEME_RE = re.compile(r"^https?://", re.IGNORECASE)
_AUTH_RETRY_STATUSES = (401, 403)


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------

class SonarClientError(Exception):
    """Base exception for all client errors."""


class RequestFailedError(SonarClientError):
    """Raised on any non-2xx response, after the auth fallback if one applied."""

    def __init__(self, status: int, reason: str, url: str) -> None:
        self.status = status
        self.reason = reason
        self.url = url
        super().__init__(f"Request to '{url}' failed: {status} {reason}".rstrip())


class AuthenticationError(RequestFailedError):
    """Raised on HTTP 401/403 — invalid, expired or under-privileged token."""


class NotFoundError(RequestFailedError):
    """Raised on HTTP 404 — unknown endpoint or resource."""


class NetworkError(SonarClientError):
    """Raised on connection timeout or unreachable server."""


# ---------------------------------------------------------------------------
# URL handling
# ---------------------------------------------------------------------------

def normalize_url(url: str) -> str:
    """Return *url* with a scheme (``https://`` by default) and no trailing slash.

    >>> normalize_url("sonar.example.com/")
    'https://sonar.example.com'
    """
    u = url.strip()
    if not _SCHEME_RE.match(u):
        u = "https://" + u
    return u.rstrip("/")


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------

class SonarClient:
    """Thin wrapper around the SonarQube REST API."""

    def __init__(self, url: str, token: str | None = None, timeout: float = DEFAULT_TIMEOUT) -> None:
        self.base_url = normalize_url(url)
        self._token = (token or "").strip() or None
        self._timeout = timeout
        self._session = requests.Session()
        self._session.headers.update({
            "Accept": "application/json",
            "User-Agent": f"Qualimetry-Gherkin-Analyzer/{__version__}",
        })

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        self._session.close()

    def __enter__(self) -> "SonarClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    def get(self, endpoint: str, params: dict[str, Any] | None = None) -> dict:
        """Perform a single GET request and return the parsed JSON response.

        The token is sent as ``Authorization: Bearer``. When the server answers
        401 or 403 the request is retried once with HTTP basic auth (token as
        username, empty password), which older servers and some proxies expect.

        Raises:
            AuthenticationError: HTTP 401/403 after the fallback
            NotFoundError:       HTTP 404
            RequestFailedError:  Any other non-2xx response
            NetworkError:        Timeout or connection failure
        """
        url = f"{self.base_url}{endpoint}"
        params = params or {}

        headers = {"Authorization": f"Bearer {self._token}"} if self._token else {}
        response = self._send(url, params, headers=headers)
        if response.status_code in _AUTH_RETRY_STATUSES and self._token:
            response = self._send(url, params, auth=(self._token, ""))

        return self._parse(url, response)

    def iter_pages(
        self,
        endpoint: str,
        params: dict[str, Any],
        results_key: str,
        page_size: int = PAGE_SIZE,
    ) -> Iterator[dict]:
        """Yield each page of a paginated endpoint, one request at a time.

        SonarQube paginates via ``p`` (1-indexed page number) and ``ps``
        (page size). The total is read from ``paging.total`` or, on older
        endpoints such as ``/api/rules/search``, from the top-level ``total``.

        Iteration stops once ``p * ps`` reaches the total or a page comes back
        without any item under *results_key*, so a missing or inconsistent
        total can never loop forever.
        """
        page = 1
        _warning_emitted = False

        while True:
            page_params = {**params, "p": page, "ps": page_size}
            data = self.get(endpoint, page_params)
            yield data

            results = data.get(results_key) or []
            total = _page_total(data)

            if total > PAGINATION_WARNING_THRESHOLD and not _warning_emitted:
                warnings.warn(
                    f"Result set exceeds {PAGINATION_WARNING_THRESHOLD} items (total={total}). "
                    "SonarQube caps pagination at 10 000 — some results may be missing.",
                    UserWarning,
                    stacklevel=2,
                )
                _warning_emitted = True

            if page * page_size >= total or not results:
                break

            page += 1

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _send(self, url: str, params: dict[str, Any], **kwargs) -> requests.Response:
        try:
            return self._session.get(url, params=params, timeout=self._timeout, **kwargs)
        except requests.exceptions.Timeout as exc:
            raise NetworkError(
                f"Request timed out after {self._timeout}s while contacting '{url}'"
            ) from exc
        except requests.exceptions.ConnectionError as exc:
            raise NetworkError(
                f"Unable to reach SonarQube server at '{self.base_url}'"
            ) from exc

    @staticmethod
    def _parse(url: str, response: requests.Response) -> dict:
        status = response.status_code
        if status in _AUTH_RETRY_STATUSES:
            raise AuthenticationError(status, response.reason or "", url)
        if status == 404:
            raise NotFoundError(status, response.reason or "", url)
        if not response.ok:
            raise RequestFailedError(status, response.reason or "", url)

        return response.json()


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _page_total(data: dict) -> int:
    """Return the result total of a page, or 0 when it is absent or not a number."""
    paging = data.get("paging") or {}
    raw = paging.get("total", data.get("total", 0))
    try:
        return int(raw or 0)
    except (ValueError, TypeError):
        # A bad total ends pagination after the current page
        return 0
