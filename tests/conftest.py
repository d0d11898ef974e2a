"""
Shared pytest fixtures for the osu-leaderboard test suite.

Provides:
  - ``FakeOsu``: an ``httpx.MockTransport`` handler with a tiny route table
    that records every request it sees. Unmatched requests get a 404.
  - ``fake_osu`` / ``http_client`` / ``api_client``: a fresh fake upstream,
    an ``httpx.Client`` wired to it, and an ``OsuApiClient`` over that.
  - ``app_config``: an ``AppConfig`` built from model defaults only.
  - ``credentials`` / ``credentials_env``: matching OAuth credentials.
  - Sample upstream payload factories.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Generator, Optional

import httpx
import pytest

from osu_leaderboard.config import AppConfig, Credentials
from osu_leaderboard.ingestion.osu_client import OsuApiClient

API_BASE = "https://osu.ppy.sh/api/v2"
API_PATH = "/api/v2"
RANKING_PATH = f"{API_PATH}/rankings/osu/performance"
TOKEN_PATH = "/oauth/token"
SCRAPE_PATH = "/rankings/osu/performance"


# ── Fake upstream ─────────────────────────────────────────────────────────────

@dataclass
class _Route:
    method: str
    path: str
    params: dict[str, str]
    respond: Callable[[httpx.Request], httpx.Response]


@dataclass
class FakeOsu:
    """Route table for ``httpx.MockTransport``.

    Routes match on method, URL path and a subset of query parameters; the
    first matching route wins, so register specific routes before generic
    ones.
    """

    routes: list[_Route] = field(default_factory=list)
    requests: list[httpx.Request] = field(default_factory=list)

    def add(
        self,
        method: str,
        path: str,
        *,
        params: Optional[dict[str, Any]] = None,
        status: int = 200,
        json: Any = None,
        text: Optional[str] = None,
        error: Optional[Exception] = None,
    ) -> "FakeOsu":
        def respond(request: httpx.Request) -> httpx.Response:
            if error is not None:
                raise error
            if text is not None:
                return httpx.Response(status, text=text, headers={"Content-Type": "text/html"})
            return httpx.Response(status, json=json)

        wanted = {k: str(v) for k, v in (params or {}).items()}
        self.routes.append(_Route(method.upper(), path, wanted, respond))
        return self

    def add_token(self, token: str = "test-token") -> "FakeOsu":
        return self.add(
            "POST",
            TOKEN_PATH,
            json={"token_type": "Bearer", "expires_in": 86400, "access_token": token},
        )

    def paths(self) -> list[str]:
        return [r.url.path for r in self.requests]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        for route in self.routes:
            if route.method != request.method or route.path != request.url.path:
                continue
            if all(request.url.params.get(k) == v for k, v in route.params.items()):
                return route.respond(request)
        return httpx.Response(404, json={"error": "not found"})

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


@pytest.fixture
def fake_osu() -> FakeOsu:
    return FakeOsu()


@pytest.fixture
def http_client(fake_osu: FakeOsu) -> Generator[httpx.Client, None, None]:
    with httpx.Client(transport=fake_osu.transport()) as client:
        yield client


@pytest.fixture
def api_client(http_client: httpx.Client) -> OsuApiClient:
    return OsuApiClient(http_client, base_url=API_BASE)


# ── Config fixtures ───────────────────────────────────────────────────────────

@pytest.fixture
def app_config() -> AppConfig:
    """Model defaults: country IQ, limit 100, enrichment off."""
    return AppConfig()


@pytest.fixture
def credentials() -> Credentials:
    return Credentials(client_id=1234, client_secret="s3cret")


@pytest.fixture
def credentials_env() -> dict[str, str]:
    return {"OSU_CLIENT_ID": "1234", "OSU_CLIENT_SECRET": "s3cret"}


@pytest.fixture(autouse=True)
def _isolate_osu_env(monkeypatch) -> None:
    """Keep the developer's real ``OSU_*`` variables out of every test."""
    for var in (
        "OSU_CLIENT_ID",
        "OSU_CLIENT_SECRET",
        "OSU_COUNTRY",
        "OSU_API_BASE",
        "OSU_LEADERBOARD_OUTPUT",
        "OSU_LEADERBOARD_LOG_LEVEL",
        "OSU_LEADERBOARD_DEBUG",
    ):
        monkeypatch.delenv(var, raising=False)


# ── Sample payloads ───────────────────────────────────────────────────────────

def ranking_item(
    user_id: int,
    username: str,
    pp: Any = 1000,
    rank: Optional[int] = None,
    **stats: Any,
) -> dict[str, Any]:
    """One element of the API ``ranking`` list (UserStatistics + nested user)."""
    item: dict[str, Any] = {
        "pp": pp,
        "user": {
            "id": user_id,
            "username": username,
            "avatar_url": f"https://a.ppy.sh/{user_id}",
        },
        **stats,
    }
    if rank is not None:
        item["rank"] = rank
    return item


def user_detail(user_id: int, username: str, **stats: Any) -> dict[str, Any]:
    """Response body of ``/users/{id}/{mode}``."""
    return {
        "id": user_id,
        "username": username,
        "avatar_url": f"https://a.ppy.sh/{user_id}?detail",
        "statistics": stats,
    }


@pytest.fixture
def sample_ranking_payload() -> dict[str, Any]:
    return {
        "ranking": [
            ranking_item(1, "Alpha", pp=5000.456, rank=1, hit_accuracy=99.1234, play_count=10),
            ranking_item(2, "Beta", pp=4000, rank=2, hit_accuracy=98.5, play_count=20),
            ranking_item(3, "Gamma", pp=3000, rank=3),
        ],
        "cursor": None,
        "total": 3,
    }


RANKING_TABLE_HTML = """
<html><body>
<table class="ranking-page-table">
  <thead>
    <tr><th></th><th></th><th>Accuracy</th><th>Play Count</th><th>Performance</th></tr>
  </thead>
  <tbody>
    <tr class="ranking-page-table__row">
      <td class="ranking-page-table__column">#1</td>
      <td class="ranking-page-table__column"><a class="ranking-page-table__user-link-text" href="https://osu.ppy.sh/users/101">Alice</a></td>
      <td class="ranking-page-table__column">99.12%</td>
      <td class="ranking-page-table__column">12,345</td>
      <td class="ranking-page-table__column">10,234pp</td>
    </tr>
    <tr class="ranking-page-table__row">
      <td class="ranking-page-table__column">#2</td>
      <td class="ranking-page-table__column"><a href="/users/102">Bob</a></td>
      <td class="ranking-page-table__column">97.50%</td>
      <td class="ranking-page-table__column">8,000</td>
      <td class="ranking-page-table__column">9,876pp</td>
    </tr>
  </tbody>
</table>
</body></html>
"""
