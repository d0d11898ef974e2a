"""
Optional per-user enrichment.

The ranking list carries most fields already; the user detail endpoint
(``/users/{id}/{mode}``) fills in the rest (global/country rank, avatar,
fresher statistics). Lookups are strictly sequential, one per entry.

Merge rule: every field the detail response resolves replaces the base
value; fields it does not resolve keep the base value. ``rank`` is never
touched, so the ordering of the base list survives enrichment.

A lookup that fails for any reason drops that entry from the result. The
remaining entries are unaffected.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Sequence

import httpx

from osu_leaderboard.errors import EnrichmentError
from osu_leaderboard.ingestion.osu_client import OsuApiClient
from osu_leaderboard.models.entry import LeaderboardEntry
from osu_leaderboard.pipeline.normalize import SHAPE_USER, extract_fields

logger = logging.getLogger(__name__)


def merge_entry(base: LeaderboardEntry, update: dict[str, Any]) -> LeaderboardEntry:
    """Overlay resolved detail fields onto ``base``; returns a new entry.

    The entry is rebuilt through the constructor so validators (and the
    derived ``profile_url``) run on the merged values.
    """
    update = {k: v for k, v in update.items() if k != "rank"}
    return LeaderboardEntry(**{**base.model_dump(), **update})


class Enricher:
    """Sequential detail lookup for a list of entries.

    Attributes:
        client: Shared API client.
        mode: Ruleset used in the detail path.
    """

    def __init__(self, client: OsuApiClient, mode: str = "osu") -> None:
        self.client = client
        self.mode = mode

    def fetch_details(self, user_id: int, token: Optional[str] = None) -> dict[str, Any]:
        """Fetch and extract the ``user`` shape for one id.

        Raises:
            EnrichmentError: On transport/status failure, a malformed body,
                or a body in which no user field resolves.
        """
        try:
            raw = self.client.get_user(user_id, self.mode, token=token)
        except httpx.HTTPStatusError as exc:
            raise EnrichmentError(user_id, f"HTTP {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            raise EnrichmentError(user_id, f"request failed: {exc}") from exc
        except ValueError as exc:
            raise EnrichmentError(user_id, f"malformed response: {exc}") from exc

        details = extract_fields(raw, SHAPE_USER)
        if not details:
            raise EnrichmentError(user_id, "no user fields in response")
        return details

    def enrich(
        self,
        entries: Sequence[LeaderboardEntry],
        token: Optional[str] = None,
    ) -> list[LeaderboardEntry]:
        """Enrich every entry in order, dropping the ones whose lookup fails.

        Entries without a ``user_id`` pass through unchanged.
        """
        total = len(entries)
        enriched: list[LeaderboardEntry] = []
        dropped = 0

        for i, entry in enumerate(entries, start=1):
            logger.info("Enriching %d / %d", i, total)
            if entry.user_id is None:
                enriched.append(entry)
                continue
            try:
                details = self.fetch_details(entry.user_id, token=token)
                enriched.append(merge_entry(entry, details))
            except (EnrichmentError, ValueError) as exc:
                # ValueError covers a detail payload the entry model rejects.
                logger.warning("Enrichment failed for %s (%s); dropping entry", entry.username, exc)
                dropped += 1

        if dropped:
            logger.warning("Enrichment dropped %d of %d entries", dropped, total)
        return enriched
