"""
Leaderboard resolver: try source adapters in priority order until one yields data.

State flow for one run::

    Init → TokenAcquired → AdapterAttempt(i) ─┬─ Success → Finalize
                                              ├─ NextAdapter → AdapterAttempt(i+1)
                                              └─ AllExhausted → NoDataError

An attempt succeeds when the adapter returned at least one record that
survives normalization, finalization and (when enabled) enrichment. An
``AdapterFailure`` or zero surviving records moves on to the next adapter.

Finalization is pure and shared with tests:
  ``finalize_entries`` drops sentinel usernames for scraped lists, dedupes by
  case-insensitive username (first wins) and sorts by rank.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from osu_leaderboard.config import AppConfig
from osu_leaderboard.errors import AdapterFailure, NoDataError
from osu_leaderboard.ingestion.adapters.base import SourceAdapter
from osu_leaderboard.ingestion.adapters.cursor import CursorRankingAdapter
from osu_leaderboard.ingestion.adapters.ranking import DirectRankingAdapter
from osu_leaderboard.ingestion.adapters.scrape import ScrapeAdapter
from osu_leaderboard.ingestion.osu_client import OsuApiClient
from osu_leaderboard.ingestion.token import TokenProvider
from osu_leaderboard.models.entry import LeaderboardEntry
from osu_leaderboard.pipeline.enrich import Enricher
from osu_leaderboard.pipeline.normalize import normalize_records

logger = logging.getLogger(__name__)


# ── Finalization ──────────────────────────────────────────────────────────────

def dedupe_entries(entries: Sequence[LeaderboardEntry]) -> list[LeaderboardEntry]:
    """Keep the first entry per case-insensitive username, preserving order."""
    seen: set[str] = set()
    unique: list[LeaderboardEntry] = []
    for entry in entries:
        if entry.dedupe_key in seen:
            continue
        seen.add(entry.dedupe_key)
        unique.append(entry)
    return unique


def sort_by_rank(entries: Sequence[LeaderboardEntry]) -> list[LeaderboardEntry]:
    """Ranked entries by ascending rank, then unranked ones in input order.

    Both partitions are stable: equal ranks keep their input order.
    """
    ranked = [e for e in entries if e.rank is not None]
    unranked = [e for e in entries if e.rank is None]
    ranked.sort(key=lambda e: e.rank)
    return ranked + unranked


def finalize_entries(entries: Sequence[LeaderboardEntry], source: str) -> list[LeaderboardEntry]:
    """Apply the snapshot invariants to a normalized list."""
    kept = list(entries)
    if source == "scrape":
        kept = [e for e in kept if not e.is_unknown]
    return sort_by_rank(dedupe_entries(kept))


# ── Resolver ──────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class ResolvedLeaderboard:
    """Outcome of a successful resolution.

    Attributes:
        entries: Finalized entries, ready for the snapshot writer.
        source: Provenance tag of the winning adapter.
        adapter: Name of the winning adapter.
    """

    entries: list[LeaderboardEntry]
    source: str
    adapter: str


def build_default_adapters(config: AppConfig, client: OsuApiClient) -> list[SourceAdapter]:
    """Adapters in fixed priority order: API shapes first, scrape last."""
    return [
        DirectRankingAdapter(client, config.api.ranking_paths, mode=config.api.mode),
        CursorRankingAdapter(client, mode=config.api.mode, max_pages=config.pagination.max_pages),
        ScrapeAdapter(
            client,
            base_url=config.scrape.base_url,
            mode=config.api.mode,
            pages=config.scrape.pages,
        ),
    ]


class LeaderboardResolver:
    """Drive the adapters for one country and return the first usable list.

    Usage::

        resolver = LeaderboardResolver(config, token_provider, adapters, enricher)
        result = resolver.resolve()

    Attributes:
        config: Application config (country, limit).
        token_provider: Source of the bearer token.
        adapters: Adapters in priority order.
        enricher: Detail lookup applied to the winning list, or ``None``.
    """

    def __init__(
        self,
        config: AppConfig,
        token_provider: TokenProvider,
        adapters: Sequence[SourceAdapter],
        enricher: Optional[Enricher] = None,
    ) -> None:
        self.config = config
        self.token_provider = token_provider
        self.adapters = list(adapters)
        self.enricher = enricher

    def _attempt(self, adapter: SourceAdapter, token: str) -> list[LeaderboardEntry]:
        country = self.config.country
        limit = self.config.api.limit

        raw = adapter.attempt(token, country, limit)
        entries = finalize_entries(normalize_records(raw, adapter.shape), adapter.source)
        logger.info(
            "Adapter [%s] produced %d raw / %d usable records",
            adapter.name, len(raw), len(entries),
        )

        if self.enricher is not None and entries:
            # Detail lookups may rename players, so dedupe again.
            entries = finalize_entries(self.enricher.enrich(entries, token=token), adapter.source)
        return entries

    def resolve(self) -> ResolvedLeaderboard:
        """Run the fallback chain.

        Raises:
            AuthError: If the token exchange fails (fatal, no adapter runs).
            NoDataError: If every adapter failed or yielded nothing usable.
        """
        token = self.token_provider.fetch_token()
        logger.info("Token acquired; resolving leaderboard for %s", self.config.country)

        failures: list[str] = []
        for position, adapter in enumerate(self.adapters, start=1):
            logger.info(
                "Attempting adapter %d/%d [%s]", position, len(self.adapters), adapter.name
            )
            try:
                entries = self._attempt(adapter, token)
            except AdapterFailure as exc:
                logger.warning("Adapter [%s] failed: %s", adapter.name, exc)
                failures.append(str(exc))
                continue

            if not entries:
                logger.warning("Adapter [%s] yielded no usable records", adapter.name)
                failures.append(f"{adapter.name}: no usable records")
                continue

            logger.info(
                "Adapter [%s] succeeded with %d entries (source=%s)",
                adapter.name, len(entries), adapter.source,
            )
            return ResolvedLeaderboard(entries=entries, source=adapter.source, adapter=adapter.name)

        raise NoDataError(
            f"No leaderboard data for {self.config.country}; all adapters exhausted "
            f"({' | '.join(failures) or 'no adapters configured'})."
        )
