"""
Cursor-paginated ranking adapter.

Each ranking response carries a pointer to the next page::

    {"ranking": [...], "cursor": {"page": 2}, "cursor_string": "eyJwYWdlIjoyfQ", ...}

``cursor_string`` is preferred when present (sent back as
``cursor_string=...``); otherwise every key of the ``cursor`` object is sent
as ``cursor[key]=value``. Pagination ends when:

  - the response has no cursor (absent or null),
  - a page yields no records,
  - ``limit`` records have been accumulated,
  - ``max_pages`` pages have been fetched (logged as a truncation), or
  - a page request fails (pages already collected are kept).

All pages are accumulated before anything is handed to the normalizer.
"""

from __future__ import annotations

import logging
from typing import Any, ClassVar, Optional

import httpx

from osu_leaderboard.errors import AdapterFailure
from osu_leaderboard.ingestion.adapters.base import SourceAdapter, extract_ranking_items
from osu_leaderboard.ingestion.osu_client import OsuApiClient
from osu_leaderboard.pipeline.normalize import SHAPE_RANKING

logger = logging.getLogger(__name__)


def next_cursor_params(payload: Any) -> Optional[dict[str, Any]]:
    """Build the query parameters for the page after ``payload``, or ``None``."""
    if not isinstance(payload, dict):
        return None

    cursor_string = payload.get("cursor_string")
    if isinstance(cursor_string, str) and cursor_string:
        return {"cursor_string": cursor_string}

    cursor = payload.get("cursor")
    if isinstance(cursor, dict) and cursor:
        return {f"cursor[{key}]": value for key, value in cursor.items() if value is not None} or None
    return None


class CursorRankingAdapter(SourceAdapter):
    """Country performance ranking, following cursors across pages.

    Attributes:
        mode: Ruleset (``osu``, ``taiko``, ``fruits``, ``mania``).
        max_pages: Hard cap on page requests per attempt.
    """

    name: ClassVar[str] = "cursor_ranking"
    source: ClassVar[str] = "api"
    shape: ClassVar[str] = SHAPE_RANKING

    def __init__(
        self,
        client: OsuApiClient,
        mode: str = "osu",
        max_pages: int = 5,
    ) -> None:
        super().__init__(client)
        self.mode = mode
        self.max_pages = max_pages

    def attempt(self, token: Optional[str], country: str, limit: int) -> list[dict[str, Any]]:
        path = f"/rankings/{self.mode}/performance"
        base_params: dict[str, Any] = {"country": country}
        cursor_params: dict[str, Any] = {}
        collected: list[dict[str, Any]] = []
        reasons: list[str] = []
        pages_fetched = 0

        while True:
            if pages_fetched >= self.max_pages:
                logger.warning(
                    "%s: page cap reached (max_pages=%d), keeping %d records",
                    self.name, self.max_pages, len(collected),
                )
                break

            params = {**base_params, **cursor_params}
            try:
                payload = self.client.get_json(path, params=params, token=token)
            except httpx.HTTPError as exc:
                logger.warning("%s: page %d failed: %s", self.name, pages_fetched + 1, exc)
                reasons.append(f"page {pages_fetched + 1}: {exc}")
                break
            except ValueError as exc:
                logger.warning(
                    "%s: page %d returned invalid JSON: %s", self.name, pages_fetched + 1, exc
                )
                reasons.append(f"page {pages_fetched + 1}: invalid JSON")
                break
            pages_fetched += 1

            items = extract_ranking_items(payload)
            logger.info(
                "%s: page %d returned %d records", self.name, pages_fetched, len(items)
            )
            if not items:
                reasons.append(f"page {pages_fetched}: no records")
                break
            collected.extend(items)

            if len(collected) >= limit:
                break

            next_params = next_cursor_params(payload)
            if next_params is None:
                break
            cursor_params = next_params

        if not collected:
            raise AdapterFailure(self.name, reasons)
        return collected[:limit]
