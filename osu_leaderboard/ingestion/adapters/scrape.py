"""
HTML scrape adapter, the last-resort source.

Fetches ``pages`` public ranking pages::

    GET https://osu.ppy.sh/rankings/{mode}/performance?country=IQ&page=1

No bearer token is sent. Every page is parsed once and handed to every
extractor in ``extractors`` (in order). All candidate records are pooled
across extractors and pages, then deduplicated by case-insensitive username
with the first occurrence kept, so the more structured heuristics win.

A page that fails to download, or an extractor that raises on a page, is
logged and skipped; the adapter only fails when nothing at all was found.
"""

from __future__ import annotations

import logging
from typing import Any, ClassVar, Optional, Sequence

import httpx

from osu_leaderboard.errors import AdapterFailure
from osu_leaderboard.ingestion.adapters.base import SourceAdapter
from osu_leaderboard.ingestion.adapters.extractors import (
    DEFAULT_EXTRACTORS,
    HtmlExtractor,
    parse_html,
)
from osu_leaderboard.ingestion.osu_client import OsuApiClient
from osu_leaderboard.models.entry import UNKNOWN_USERNAME
from osu_leaderboard.pipeline.normalize import SHAPE_SCRAPE

logger = logging.getLogger(__name__)


def pool_records(records: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Dedupe candidate records by case-insensitive username, first wins.

    Records without a usable username (missing, blank or ``"Unknown"``) are
    dropped.
    """
    seen: set[str] = set()
    pooled: list[dict[str, Any]] = []
    for rec in records:
        username = str(rec.get("username") or "").strip()
        if not username or username == UNKNOWN_USERNAME:
            continue
        key = username.casefold()
        if key in seen:
            continue
        seen.add(key)
        pooled.append(rec)
    return pooled


class ScrapeAdapter(SourceAdapter):
    """Country ranking scraped from the public website.

    Attributes:
        base_url: Website root, e.g. ``https://osu.ppy.sh``.
        mode: Ruleset (``osu``, ``taiko``, ``fruits``, ``mania``).
        pages: Number of listing pages to fetch.
        extractors: Heuristics run on every page, most structured first.
    """

    name: ClassVar[str] = "scrape"
    source: ClassVar[str] = "scrape"
    shape: ClassVar[str] = SHAPE_SCRAPE

    def __init__(
        self,
        client: OsuApiClient,
        base_url: str = "https://osu.ppy.sh",
        mode: str = "osu",
        pages: int = 2,
        extractors: Sequence[HtmlExtractor] = DEFAULT_EXTRACTORS,
    ) -> None:
        super().__init__(client)
        self.base_url = base_url.rstrip("/")
        self.mode = mode
        self.pages = pages
        self.extractors = tuple(extractors)

    @property
    def listing_url(self) -> str:
        return f"{self.base_url}/rankings/{self.mode}/performance"

    def _extract_page(self, html: str, page: int) -> list[dict[str, Any]]:
        soup = parse_html(html)
        found: list[dict[str, Any]] = []
        for extractor in self.extractors:
            try:
                records = extractor.extract(soup)
            except Exception as exc:
                logger.warning(
                    "%s: extractor %s failed on page %d: %s",
                    self.name, extractor.name, page, exc,
                )
                continue
            logger.debug(
                "%s: extractor %s found %d candidates on page %d",
                self.name, extractor.name, len(records), page,
            )
            found.extend(records)
        return found

    def attempt(self, token: Optional[str], country: str, limit: int) -> list[dict[str, Any]]:
        candidates: list[dict[str, Any]] = []
        reasons: list[str] = []

        for page in range(1, self.pages + 1):
            try:
                html = self.client.get_html(
                    self.listing_url, params={"country": country, "page": page}
                )
            except httpx.HTTPError as exc:
                logger.warning("%s: page %d failed: %s", self.name, page, exc)
                reasons.append(f"page {page}: {exc}")
                continue

            page_records = self._extract_page(html, page)
            if not page_records:
                reasons.append(f"page {page}: no records")
            candidates.extend(page_records)

        pooled = pool_records(candidates)
        logger.info(
            "%s: %d candidates pooled into %d unique players",
            self.name, len(candidates), len(pooled),
        )
        if not pooled:
            raise AdapterFailure(self.name, reasons)
        return pooled[:limit]
