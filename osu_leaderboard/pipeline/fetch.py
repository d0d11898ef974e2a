"""
FetchLeaderboardStage: resolve the country leaderboard and write the snapshot.

Order of operations:
  1. Read credentials (``ConfigError`` before any network call).
  2. Open one shared ``httpx.Client`` for the whole run.
  3. Exchange credentials for a token, then walk the adapters in priority
     order through ``LeaderboardResolver``.
  4. Stamp and atomically write ``leaderboard.json``.

Nothing is written unless step 3 produced at least one entry.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Mapping, Optional

import httpx

from osu_leaderboard.config import AppConfig, require_credentials
from osu_leaderboard.ingestion.osu_client import OsuApiClient, build_http_client
from osu_leaderboard.ingestion.snapshot import build_snapshot, save_snapshot
from osu_leaderboard.ingestion.token import TokenProvider
from osu_leaderboard.models.meta import RunMetadata
from osu_leaderboard.pipeline.base import PipelineStage
from osu_leaderboard.pipeline.enrich import Enricher
from osu_leaderboard.pipeline.resolver import LeaderboardResolver, build_default_adapters

logger = logging.getLogger(__name__)


class FetchLeaderboardStage(PipelineStage):
    """Fetch, normalize and persist one country's leaderboard.

    Returns the number of entries written.
    """

    stage_name = "fetch"

    def __init__(
        self,
        config: AppConfig,
        env: Optional[Mapping[str, str]] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        super().__init__(config)
        self.env = env
        self.transport = transport

    def _execute(self, run: RunMetadata, output_path: Optional[Path] = None, **kwargs) -> int:
        """Run the resolver and write the snapshot.

        Args:
            run: In-progress :class:`RunMetadata` (mutable).
            output_path: Destination override. Defaults to ``config.output.path``.

        Raises:
            ConfigError: If credentials are missing.
            AuthError: If the token exchange fails.
            NoDataError: If every adapter came back empty.
        """
        credentials = require_credentials(self.env)
        destination = Path(output_path or self.config.output.path)

        with build_http_client(self.config, transport=self.transport) as http:
            client = OsuApiClient(http, base_url=self.config.api.base_url)
            token_provider = TokenProvider(credentials, self.config.api.token_url, http)
            enricher = (
                Enricher(client, mode=self.config.api.mode)
                if self.config.enrichment.enabled
                else None
            )
            resolver = LeaderboardResolver(
                self.config,
                token_provider,
                build_default_adapters(self.config, client),
                enricher=enricher,
            )
            result = resolver.resolve()

        snapshot = build_snapshot(result.entries, self.config.country, result.source)
        content_hash, count = save_snapshot(destination, snapshot)

        run.source = result.source
        run.snapshot_path = str(destination)
        run.content_hash = content_hash
        logger.info(
            "Wrote %d entries for %s from [%s] to %s",
            count, self.config.country, result.adapter, destination,
        )
        return count
