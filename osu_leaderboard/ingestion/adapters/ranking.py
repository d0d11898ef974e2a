"""
Direct performance-ranking adapter: one request per URL-shape candidate.

The ranking endpoint has accepted different query shapes over time, so the
adapter carries an ordered list of path templates (``api.ranking_paths``)
and tries them in order:

  /rankings/{mode}/performance?country={country}&limit={limit}
  /rankings/{mode}/performance?country={country}&filter=all
  /rankings/{mode}/performance?country={country}&page=1

A candidate is abandoned when it raises (transport, status, JSON) or yields
zero usable records; it is never retried. The first candidate with records
wins and the rest are not requested.
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


class DirectRankingAdapter(SourceAdapter):
    """Country performance ranking via a fixed priority list of URL shapes.

    Attributes:
        path_templates: Path templates with ``{mode}``, ``{country}`` and
            ``{limit}`` placeholders, in priority order.
        mode: Ruleset (``osu``, ``taiko``, ``fruits``, ``mania``).
    """

    name: ClassVar[str] = "direct_ranking"
    source: ClassVar[str] = "api"
    shape: ClassVar[str] = SHAPE_RANKING

    def __init__(
        self,
        client: OsuApiClient,
        path_templates: list[str],
        mode: str = "osu",
    ) -> None:
        super().__init__(client)
        self.path_templates = list(path_templates)
        self.mode = mode

    def candidate_paths(self, country: str, limit: int) -> list[str]:
        """Render every template for this query, preserving priority order."""
        return [
            template.format(mode=self.mode, country=country, limit=limit)
            for template in self.path_templates
        ]

    def attempt(self, token: Optional[str], country: str, limit: int) -> list[dict[str, Any]]:
        reasons: list[str] = []

        for path in self.candidate_paths(country, limit):
            try:
                payload = self.client.get_json(path, token=token)
            except httpx.HTTPError as exc:
                logger.warning("%s: %s failed: %s", self.name, path, exc)
                reasons.append(f"{path}: {exc}")
                continue
            except ValueError as exc:
                logger.warning("%s: %s returned invalid JSON: %s", self.name, path, exc)
                reasons.append(f"{path}: invalid JSON")
                continue

            items = extract_ranking_items(payload)
            if not items:
                logger.info("%s: %s returned no records", self.name, path)
                reasons.append(f"{path}: no records")
                continue

            logger.info("%s: %s returned %d records", self.name, path, len(items))
            return items[:limit]

        raise AdapterFailure(self.name, reasons)
