"""
Tests for osu_leaderboard.pipeline.normalize.

Covers:
  - coercion helpers (to_int, to_number, digits_only)
  - FIELD_CHAINS fallback order for the ranking and user shapes
  - totality: records missing every source get the documented defaults
  - the scrape shape's text handling
"""

from __future__ import annotations

import pytest

from osu_leaderboard.pipeline.normalize import (
    FIELD_CHAINS,
    SHAPE_RANKING,
    SHAPE_SCRAPE,
    SHAPE_USER,
    digits_only,
    extract_fields,
    normalize_record,
    normalize_records,
    to_int,
    to_number,
)


# ── Coercions ─────────────────────────────────────────────────────────────────

class TestCoercions:
    def test_to_int_accepts_separators(self):
        assert to_int("1,234") == 1234

    def test_to_int_rejects_fractional_float(self):
        with pytest.raises(ValueError):
            to_int(1.5)

    def test_to_int_rejects_bool(self):
        with pytest.raises(TypeError):
            to_int(True)

    def test_to_number_rounds_floats(self):
        assert to_number(98.7654) == 98.77

    def test_to_number_keeps_ints(self):
        assert to_number(1200) == 1200
        assert isinstance(to_number(1200), int)

    def test_to_number_parses_text(self):
        assert to_number("98.7654%") == 98.77
        assert to_number("12,345pp") == 12345

    def test_to_number_rejects_text_without_digits(self):
        with pytest.raises(ValueError):
            to_number("n/a")

    def test_digits_only(self):
        assert digits_only("#1,024") == 1024

    def test_digits_only_without_digits(self):
        with pytest.raises(ValueError):
            digits_only("n/a")


# ── Ranking shape ─────────────────────────────────────────────────────────────

class TestRankingShape:
    def test_alice_scenario(self):
        entry = normalize_record({"user": {"id": 7, "username": "Alice"}, "pp": 1200}, SHAPE_RANKING)
        assert entry.username == "Alice"
        assert entry.user_id == 7
        assert entry.pp == 1200
        assert entry.profile_url == "https://osu.ppy.sh/users/7"
        assert entry.accuracy == 0
        assert entry.play_count == 0
        assert entry.ranked_score == 0
        assert entry.rank is None
        assert entry.global_rank is None
        assert entry.country_rank is None
        assert entry.avatar_url == ""

    def test_top_level_wins_over_nested_statistics(self):
        raw = {"pp": 500, "user": {"username": "x", "statistics": {"pp": 999}}}
        assert normalize_record(raw, SHAPE_RANKING).pp == 500

    def test_nested_statistics_used_when_top_level_missing(self):
        raw = {"user": {"username": "x", "statistics": {"pp": 999.999, "hit_accuracy": 97.126}}}
        entry = normalize_record(raw, SHAPE_RANKING)
        assert entry.pp == 1000.0
        assert entry.accuracy == 97.13

    def test_null_counts_as_absent(self):
        raw = {"pp": None, "user": {"username": "x", "statistics": {"pp": 321}}}
        assert normalize_record(raw, SHAPE_RANKING).pp == 321

    def test_failed_coercion_continues_chain(self):
        raw = {"rank": "first", "country_rank": 4, "user": {"username": "x"}}
        assert normalize_record(raw, SHAPE_RANKING).rank == 4

    def test_country_rank_from_rank_object(self):
        raw = {"rank": {"country": 3, "global": 900}, "user": {"username": "x"}}
        entry = normalize_record(raw, SHAPE_RANKING)
        assert entry.country_rank == 3
        assert entry.rank == 3

    def test_user_id_fallbacks(self):
        assert normalize_record({"user_id": 5, "username": "x"}, SHAPE_RANKING).user_id == 5
        assert normalize_record({"id": 6, "username": "x"}, SHAPE_RANKING).user_id == 6

    def test_flat_username(self):
        assert normalize_record({"username": "Flat"}, SHAPE_RANKING).username == "Flat"

    @pytest.mark.parametrize("raw", [{}, {"user": None}, {"user": "not a dict"}, {"pp": [1, 2]}])
    def test_totality_on_empty_records(self, raw):
        entry = normalize_record(raw, SHAPE_RANKING)
        for field_name, rule in FIELD_CHAINS[SHAPE_RANKING].items():
            if field_name == "profile_url":
                continue
            assert getattr(entry, field_name) == rule.default
        assert entry.profile_url == "#"

    def test_normalize_records_preserves_order(self, sample_ranking_payload):
        entries = normalize_records(sample_ranking_payload["ranking"], SHAPE_RANKING)
        assert [e.username for e in entries] == ["Alpha", "Beta", "Gamma"]
        assert entries[0].pp == 5000.46
        assert entries[0].accuracy == 99.12


# ── User shape ────────────────────────────────────────────────────────────────

class TestUserShape:
    def test_extract_fields_returns_only_resolved(self):
        raw = {"id": 7, "username": "Alice", "statistics": {"global_rank": 12}}
        assert extract_fields(raw, SHAPE_USER) == {
            "username": "Alice",
            "user_id": 7,
            "global_rank": 12,
        }

    def test_country_rank_falls_back_to_rank_object(self):
        raw = {"statistics": {"rank": {"country": 2}}}
        assert extract_fields(raw, SHAPE_USER)["country_rank"] == 2

    def test_user_shape_never_resolves_rank(self):
        raw = {"id": 7, "statistics": {"country_rank": 2}}
        assert "rank" not in extract_fields(raw, SHAPE_USER)

    def test_unknown_shape(self):
        with pytest.raises(KeyError):
            extract_fields({}, "xml")


# ── Scrape shape ──────────────────────────────────────────────────────────────

class TestScrapeShape:
    def test_text_fields_coerced(self):
        raw = {
            "username": "Bob",
            "user_id": "102",
            "rank": "#5",
            "pp": "1,000pp",
            "accuracy": "97.50%",
            "play_count": "8,000",
        }
        entry = normalize_record(raw, SHAPE_SCRAPE)
        assert entry.rank == 5
        assert entry.pp == 1000
        assert entry.accuracy == 97.5
        assert entry.play_count == 8000
        assert entry.user_id == 102
        assert entry.profile_url == "https://osu.ppy.sh/users/102"

    def test_missing_fields_are_null(self):
        entry = normalize_record({"username": "Bob"}, SHAPE_SCRAPE)
        assert entry.rank is None
        assert entry.pp is None
        assert entry.accuracy is None
        assert entry.play_count is None
        assert entry.ranked_score is None

    def test_rank_without_digits_is_null(self):
        assert normalize_record({"username": "Bob", "rank": "-"}, SHAPE_SCRAPE).rank is None
