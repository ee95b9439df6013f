"""
GitHub Gist API client.

The remote backup is a single private gist holding one JSON file. This
client only speaks HTTP; the sync semantics live in the sync service.

API Docs: https://docs.github.com/en/rest/gists/gists
"""

import logging
from typing import Any

import httpx

from atelier_catalog.utils.errors import (
    AuthError,
    NetworkError,
    NotFoundError,
    format_api_error,
)

logger = logging.getLogger(__name__)

GITHUB_API_BASE = "https://api.github.com"

# Request timeout in seconds
REQUEST_TIMEOUT = 30.0

USER_AGENT = "atelier-catalog/1.0"

# GitHub caps per_page at 100 for the gist listing
GISTS_PER_PAGE = 100
MAX_LIST_PAGES = 30


class GistClient:
    """Client for the GitHub Gist REST API."""

    def __init__(
        self,
        api_base: str = GITHUB_API_BASE,
        timeout: float = REQUEST_TIMEOUT,
        http_client: httpx.AsyncClient | None = None,
    ):
        """
        Initialize the Gist client.

        Args:
            api_base: GitHub API root URL
            timeout: Request timeout in seconds
            http_client: Pre-built client (tests inject one with a mock transport)
        """
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout
        self._client = http_client
        self._owns_client = http_client is None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                headers={"User-Agent": USER_AGENT},
                timeout=self.timeout,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._client and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "GistClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    @staticmethod
    def _headers(token: str) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {token}",
            "Accept": "application/vnd.github.v3+json",
        }

    @staticmethod
    def _raise_for_status(response: httpx.Response) -> None:
        if response.is_success:
            return

        status = response.status_code
        try:
            detail = response.json().get("message", "")
        except (ValueError, AttributeError):
            detail = ""
        message = format_api_error(status, detail)

        if status == 401:
            raise AuthError(message, suggestion="Log in again with a valid token")
        if status == 403:
            raise AuthError(message, suggestion="Enable the 'gist' scope on the token")
        if status == 404:
            raise NotFoundError(message)
        raise NetworkError(message, status_code=status)

    async def _request(
        self,
        method: str,
        url: str,
        token: str,
        **kwargs: Any,
    ) -> httpx.Response:
        client = await self._get_client()
        if url.startswith("/"):
            url = f"{self.api_base}{url}"

        try:
            response = await client.request(
                method, url, headers=self._headers(token), **kwargs
            )
        except httpx.TimeoutException as e:
            raise NetworkError(f"{method} {url} timed out", suggestion="Try again") from e
        except httpx.HTTPError as e:
            raise NetworkError(f"{method} {url} failed: {e}") from e

        logger.debug(f"{method} {url} -> {response.status_code}")
        self._raise_for_status(response)
        return response

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise NetworkError(
                f"Unexpected non-JSON response from {response.request.url}"
            ) from e

    # -------------------- Endpoints --------------------

    async def get_user(self, token: str) -> dict[str, Any]:
        """Identity check: the account the token belongs to."""
        response = await self._request("GET", "/user", token)
        return self._json(response)

    async def list_gists(self, token: str) -> list[dict[str, Any]]:
        """Every gist owned by the token's account, across all pages."""
        gists: list[dict[str, Any]] = []
        for page in range(1, MAX_LIST_PAGES + 1):
            response = await self._request(
                "GET",
                "/gists",
                token,
                params={"per_page": GISTS_PER_PAGE, "page": page},
            )
            batch = self._json(response)
            if not isinstance(batch, list):
                raise NetworkError("Unexpected gist listing format")
            gists.extend(batch)
            if len(batch) < GISTS_PER_PAGE:
                break
        logger.debug(f"Listed {len(gists)} gists")
        return gists

    async def get_gist(self, token: str, gist_id: str) -> dict[str, Any]:
        """Gist metadata, including files with (possibly truncated) content."""
        response = await self._request("GET", f"/gists/{gist_id}", token)
        return self._json(response)

    async def create_gist(
        self,
        token: str,
        description: str,
        files: dict[str, str],
        public: bool = False,
    ) -> dict[str, Any]:
        """Create a gist from `{filename: content}`."""
        payload = {
            "description": description,
            "public": public,
            "files": {name: {"content": content} for name, content in files.items()},
        }
        response = await self._request("POST", "/gists", token, json=payload)
        return self._json(response)

    async def update_gist(
        self,
        token: str,
        gist_id: str,
        files: dict[str, str],
    ) -> dict[str, Any]:
        """Replace the content of files in an existing gist."""
        payload = {
            "files": {name: {"content": content} for name, content in files.items()}
        }
        response = await self._request("PATCH", f"/gists/{gist_id}", token, json=payload)
        return self._json(response)

    async def fetch_raw(self, token: str, raw_url: str) -> str:
        """Full file content from its raw URL."""
        response = await self._request("GET", raw_url, token)
        return response.text
