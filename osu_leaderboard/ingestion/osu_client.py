"""
osu! web API (v2) client: a thin authenticated wrapper over ``httpx.Client``.

API:   https://osu.ppy.sh/api/v2
Docs:  https://osu.ppy.sh/docs/index.html

Endpoints used:
  Country performance ranking:
    GET /rankings/{mode}/performance?country=IQ[&cursor[page]=2]
    → {"ranking": [UserStatistics...], "cursor": {"page": 2} | null, "total": N}
  User detail:
    GET /users/{user_id}/{mode}
    → User with nested "statistics"
  Public ranking pages (scrape fallback, no auth):
    GET https://osu.ppy.sh/rankings/{mode}/performance?country=IQ&page=1

The client never retries; callers decide what a failure means.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from osu_leaderboard.config import AppConfig

logger = logging.getLogger(__name__)


def build_http_client(config: AppConfig, transport: Optional[httpx.BaseTransport] = None) -> httpx.Client:
    """Create the single HTTP client shared by every call in a run.

    Args:
        config: Application config (timeout and user agent).
        transport: Optional transport override (tests pass ``httpx.MockTransport``).
    """
    return httpx.Client(
        timeout=httpx.Timeout(config.api.timeout_seconds),
        headers={"User-Agent": config.api.user_agent},
        follow_redirects=True,
        transport=transport,
    )


class OsuApiClient:
    """Authenticated JSON access plus unauthenticated HTML fetches.

    Usage::

        client = OsuApiClient(http, base_url=config.api.base_url)
        token = token_provider.fetch_token()
        payload = client.get_json("/rankings/osu/performance", params={"country": "IQ"}, token=token)

    Attributes:
        http: Shared ``httpx.Client``.
        base_url: API root, without trailing slash.
    """

    def __init__(
        self,
        http: httpx.Client,
        base_url: str,
    ) -> None:
        self.http = http
        self.base_url = base_url.rstrip("/")

    def url_for(self, path: str) -> str:
        """Join an API path onto ``base_url``; absolute URLs pass through."""
        if path.startswith(("http://", "https://")):
            return path
        return f"{self.base_url}/{path.lstrip('/')}"

    def get_json(
        self,
        path: str,
        params: Optional[dict[str, Any]] = None,
        token: Optional[str] = None,
    ) -> Any:
        """GET an API path and decode the JSON body.

        Sends ``Authorization: Bearer <token>`` when ``token`` is given.

        Raises:
            httpx.HTTPError: On transport failure or non-2xx status.
            ValueError: If the body is not valid JSON.
        """
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"

        url = self.url_for(path)
        logger.debug("GET %s params=%s", url, params)
        resp = self.http.get(url, params=params, headers=headers)
        resp.raise_for_status()
        return resp.json()

    def get_user(self, user_id: int, mode: str, token: Optional[str] = None) -> dict[str, Any]:
        """Fetch one user's detail record for a ruleset.

        Raises:
            httpx.HTTPError: On transport failure or non-2xx status.
            ValueError: If the body is not a JSON object.
        """
        data = self.get_json(f"/users/{user_id}/{mode}", params={"key": "id"}, token=token)
        if not isinstance(data, dict):
            raise ValueError(f"Expected a JSON object for user {user_id}, got {type(data).__name__}.")
        return data

    def get_html(self, url: str, params: Optional[dict[str, Any]] = None) -> str:
        """GET a public page and return its text (no Authorization header).

        Raises:
            httpx.HTTPError: On transport failure or non-2xx status.
        """
        logger.debug("GET %s params=%s", url, params)
        resp = self.http.get(url, params=params, headers={"Accept": "text/html"})
        resp.raise_for_status()
        return resp.text
