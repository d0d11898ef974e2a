"""
Abstract base class for all source adapters.

Every adapter follows the same contract:
  1. Receive its collaborators (``OsuApiClient``, config sections) at
     construction.
  2. ``attempt(token, country, limit)`` is the sole public API. It returns a
     non-empty list of raw upstream records, or raises ``AdapterFailure``.
  3. Failures of individual candidates/pages are caught and logged inside
     the adapter and recorded in the eventual ``AdapterFailure.reasons``.
  4. Class attributes tell the resolver how to treat the output:
     ``source`` is the provenance tag, ``shape`` the normalizer table.

Usage::

    class MyAdapter(SourceAdapter):
        name = "my_adapter"
        source = "api"
        shape = SHAPE_RANKING

        def attempt(self, token, country, limit):
            ...
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, ClassVar, Optional

from osu_leaderboard.ingestion.osu_client import OsuApiClient

logger = logging.getLogger(__name__)


class SourceAdapter(ABC):
    """Abstract base for every leaderboard source strategy.

    Attributes:
        name: Identifier used in logs and failure messages.
        source: Provenance tag stamped on the snapshot (``"api"``/``"scrape"``).
        shape: ``FIELD_CHAINS`` key used to normalize this adapter's records.
        client: Shared API client.
    """

    name: ClassVar[str]
    source: ClassVar[str]
    shape: ClassVar[str]

    def __init__(self, client: OsuApiClient) -> None:
        self.client = client

    @abstractmethod
    def attempt(self, token: Optional[str], country: str, limit: int) -> list[dict[str, Any]]:
        """Fetch raw records for ``country``.

        Args:
            token: Bearer token (scrape adapters ignore it).
            country: Upper-case 2-letter country code.
            limit: Maximum number of records wanted.

        Returns:
            Non-empty list of raw records, at most ``limit`` long.

        Raises:
            AdapterFailure: If every candidate/page failed or was empty.
        """
        ...

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r}, source={self.source!r})"


def extract_ranking_items(payload: Any) -> list[dict[str, Any]]:
    """Locate the list of ranking records inside an API response.

    Tried in order: ``ranking`` (list), ``ranking.items``, ``items``, and a
    bare top-level list. Non-dict elements are dropped.
    """
    candidates: list[Any] = []
    if isinstance(payload, dict):
        ranking = payload.get("ranking")
        if isinstance(ranking, list):
            candidates = ranking
        elif isinstance(ranking, dict) and isinstance(ranking.get("items"), list):
            candidates = ranking["items"]
        elif isinstance(payload.get("items"), list):
            candidates = payload["items"]
    elif isinstance(payload, list):
        candidates = payload
    return [item for item in candidates if isinstance(item, dict)]
