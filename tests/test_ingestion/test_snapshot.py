"""
Tests for osu_leaderboard.ingestion.snapshot: the leaderboard.json writer.

Covers:
  - build_snapshot(): stamping and invariant checks
  - save_snapshot(): file layout, (hash, count), atomic replace, no temp leftovers
  - compute_hash(): deterministic across key order
  - load_snapshot(): reads back a validated model
"""

from __future__ import annotations

import json
import stat
from datetime import datetime, timezone
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from osu_leaderboard.ingestion.snapshot import (
    build_snapshot,
    compute_hash,
    load_snapshot,
    save_snapshot,
)
from osu_leaderboard.models.entry import LeaderboardEntry

_FIXED_DT = datetime(2026, 2, 24, 15, 0, 0, tzinfo=timezone.utc)
_FIXED_MS = 1771945200000


def _entries():
    return [
        LeaderboardEntry(username="Alice", user_id=7, rank=1, pp=1200, accuracy=99.12),
        LeaderboardEntry(username="Zoë", user_id=8, rank=2, pp=1100.5),
    ]


# ── build_snapshot ────────────────────────────────────────────────────────────

class TestBuildSnapshot:
    def test_stamps_fields(self):
        snap = build_snapshot(_entries(), "IQ", "api", now=_FIXED_DT)
        assert snap.updated_at == _FIXED_MS
        assert snap.country == "IQ"
        assert snap.source == "api"
        assert [e.username for e in snap.items] == ["Alice", "Zoë"]

    def test_defaults_to_current_time(self):
        before = int(datetime.now(timezone.utc).timestamp() * 1000)
        snap = build_snapshot(_entries(), "IQ", "api")
        assert snap.updated_at >= before

    def test_rejects_duplicates(self):
        dupes = [LeaderboardEntry(username="Bob"), LeaderboardEntry(username="BOB")]
        with pytest.raises(ValidationError):
            build_snapshot(dupes, "IQ", "scrape")


# ── compute_hash ──────────────────────────────────────────────────────────────

class TestComputeHash:
    def test_returns_64_char_hex(self):
        assert len(compute_hash({"a": 1})) == 64

    def test_key_order_irrelevant(self):
        assert compute_hash({"a": 1, "b": 2}) == compute_hash({"b": 2, "a": 1})

    def test_different_payloads_differ(self):
        assert compute_hash({"a": 1}) != compute_hash({"a": 2})


# ── save / load ───────────────────────────────────────────────────────────────

class TestSaveSnapshot:
    def test_writes_pretty_utf8_json(self, tmp_path):
        path = tmp_path / "leaderboard.json"
        save_snapshot(path, build_snapshot(_entries(), "IQ", "api", now=_FIXED_DT))

        text = path.read_text(encoding="utf-8")
        assert "Zoë" in text
        assert text.startswith('{\n  "updated_at"')

        data = json.loads(text)
        assert data["updated_at"] == _FIXED_MS
        assert data["source"] == "api"
        assert data["items"][0]["profile_url"] == "https://osu.ppy.sh/users/7"
        assert set(data["items"][0]) == {
            "username", "user_id", "rank", "pp", "accuracy", "play_count",
            "ranked_score", "global_rank", "country_rank", "avatar_url", "profile_url",
        }

    def test_returns_hash_and_count(self, tmp_path):
        snap = build_snapshot(_entries(), "IQ", "api", now=_FIXED_DT)
        content_hash, count = save_snapshot(tmp_path / "out.json", snap)
        assert count == 2
        assert content_hash == compute_hash(snap.model_dump(mode="json"))

    def test_creates_parent_dirs(self, tmp_path):
        path = tmp_path / "public" / "data" / "leaderboard.json"
        save_snapshot(path, build_snapshot(_entries(), "IQ", "api"))
        assert path.exists()

    def test_replaces_previous_file(self, tmp_path):
        path = tmp_path / "leaderboard.json"
        path.write_text('{"stale": true}', encoding="utf-8")
        save_snapshot(path, build_snapshot(_entries()[:1], "IQ", "api"))
        assert len(json.loads(path.read_text(encoding="utf-8"))["items"]) == 1
        assert [p.name for p in tmp_path.iterdir()] == ["leaderboard.json"]

    def test_file_mode_matches_a_plain_write(self, tmp_path):
        plain = tmp_path / "plain.json"
        plain.write_text("{}", encoding="utf-8")
        path = tmp_path / "leaderboard.json"

        save_snapshot(path, build_snapshot(_entries(), "IQ", "api"))

        assert stat.S_IMODE(path.stat().st_mode) == stat.S_IMODE(plain.stat().st_mode)

    def test_failed_write_keeps_previous_file(self, tmp_path):
        path = tmp_path / "leaderboard.json"
        path.write_text('{"previous": true}', encoding="utf-8")

        with patch("osu_leaderboard.ingestion.snapshot.json.dump", side_effect=OSError("disk full")):
            with pytest.raises(OSError):
                save_snapshot(path, build_snapshot(_entries(), "IQ", "api"))

        assert json.loads(path.read_text(encoding="utf-8")) == {"previous": True}
        assert [p.name for p in tmp_path.iterdir()] == ["leaderboard.json"]


class TestLoadSnapshot:
    def test_roundtrip(self, tmp_path):
        path = tmp_path / "leaderboard.json"
        original = build_snapshot(_entries(), "IQ", "api", now=_FIXED_DT)
        save_snapshot(path, original)
        assert load_snapshot(path) == original

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_snapshot(tmp_path / "nope.json")

    def test_invalid_snapshot(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text('{"updated_at": 1, "country": "IQ", "source": "cache", "items": []}')
        with pytest.raises(ValidationError):
            load_snapshot(path)
