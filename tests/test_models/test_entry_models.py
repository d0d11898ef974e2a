"""Tests for LeaderboardEntry, LeaderboardSnapshot and RunMetadata."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from osu_leaderboard.models.entry import (
    PROFILE_URL_PLACEHOLDER,
    UNKNOWN_USERNAME,
    LeaderboardEntry,
    LeaderboardSnapshot,
    profile_url_for,
)
from osu_leaderboard.models.meta import RunMetadata


class TestLeaderboardEntry:
    def test_defaults(self):
        entry = LeaderboardEntry()
        assert entry.username == UNKNOWN_USERNAME
        assert entry.user_id is None
        assert entry.rank is None
        assert entry.avatar_url == ""
        assert entry.profile_url == PROFILE_URL_PLACEHOLDER

    def test_profile_url_derived_from_user_id(self):
        entry = LeaderboardEntry(username="Alice", user_id=7)
        assert entry.profile_url == "https://osu.ppy.sh/users/7"

    def test_known_id_overrides_supplied_profile_url(self):
        entry = LeaderboardEntry(username="Alice", user_id=7, profile_url="https://example.com")
        assert entry.profile_url == "https://osu.ppy.sh/users/7"

    def test_blank_username_becomes_sentinel(self):
        entry = LeaderboardEntry(username="   ")
        assert entry.username == UNKNOWN_USERNAME
        assert entry.is_unknown

    def test_username_is_stripped(self):
        assert LeaderboardEntry(username="  Bob ").username == "Bob"

    @pytest.mark.parametrize("field_name", ["rank", "global_rank", "country_rank"])
    def test_ranks_must_be_positive(self, field_name):
        with pytest.raises(ValidationError):
            LeaderboardEntry(username="x", **{field_name: 0})

    @pytest.mark.parametrize("field_name", ["play_count", "ranked_score"])
    def test_counts_must_be_non_negative(self, field_name):
        with pytest.raises(ValidationError):
            LeaderboardEntry(username="x", **{field_name: -1})

    def test_frozen(self):
        entry = LeaderboardEntry(username="Alice")
        with pytest.raises(ValidationError):
            entry.username = "Mallory"  # type: ignore[misc]

    def test_dedupe_key_is_case_insensitive(self):
        assert LeaderboardEntry(username="Bob").dedupe_key == LeaderboardEntry(username="bOB").dedupe_key

    def test_profile_url_for(self):
        assert profile_url_for(None) == "#"
        assert profile_url_for(42) == "https://osu.ppy.sh/users/42"


class TestLeaderboardSnapshot:
    def _snapshot(self, items, source="api", country="IQ"):
        return LeaderboardSnapshot(updated_at=1, country=country, source=source, items=items)

    def test_valid_snapshot(self):
        snap = self._snapshot([LeaderboardEntry(username="Alice"), LeaderboardEntry(username="Bob")])
        assert len(snap.items) == 2

    def test_country_upper_cased(self):
        assert self._snapshot([], country="iq").country == "IQ"

    @pytest.mark.parametrize("country", ["IRQ", "I", "1Q"])
    def test_bad_country_rejected(self, country):
        with pytest.raises(ValidationError):
            self._snapshot([], country=country)

    def test_unknown_source_rejected(self):
        with pytest.raises(ValidationError):
            self._snapshot([], source="cache")

    def test_case_insensitive_duplicates_rejected(self):
        with pytest.raises(ValidationError, match="Duplicate"):
            self._snapshot([LeaderboardEntry(username="Bob"), LeaderboardEntry(username="bob")])

    def test_unknown_username_rejected_for_scrape(self):
        with pytest.raises(ValidationError):
            self._snapshot([LeaderboardEntry()], source="scrape")

    def test_unknown_username_allowed_for_api(self):
        snap = self._snapshot([LeaderboardEntry()], source="api")
        assert snap.items[0].is_unknown


class TestRunMetadata:
    def _run(self, **overrides):
        fields = dict(
            run_slug="abc",
            pipeline_stage="fetch",
            config_snapshot={},
            started_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
        )
        fields.update(overrides)
        return RunMetadata(**fields)

    def test_defaults(self):
        run = self._run()
        assert run.status == "started"
        assert run.rows_processed == 0
        assert run.finished_at is None

    def test_is_mutable(self):
        run = self._run()
        run.status = "success"
        assert run.status == "success"

    def test_unknown_stage_rejected(self):
        with pytest.raises(ValidationError):
            self._run(pipeline_stage="train")

    def test_unknown_status_rejected(self):
        with pytest.raises(ValidationError):
            self._run(status="paused")
