"""
Leaderboard models: the canonical entry and the persisted snapshot.

Two-level design:
  1. ``LeaderboardEntry``      one player, normalized from any upstream shape.
  2. ``LeaderboardSnapshot``   the ordered, deduplicated list written to disk,
                               stamped with country, provenance and time.

Both models are frozen (immutable) after construction. Enrichment produces
new entries through the constructor rather than mutating, so validators
run on merged values.
"""

from __future__ import annotations

from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

UNKNOWN_USERNAME = "Unknown"
PROFILE_URL_TEMPLATE = "https://osu.ppy.sh/users/{user_id}"
PROFILE_URL_PLACEHOLDER = "#"

VALID_SOURCES = frozenset({"api", "scrape"})

Number = Union[int, float]


def profile_url_for(user_id: Optional[int]) -> str:
    """Derive the public profile URL, or the placeholder when the id is unknown."""
    if user_id is None:
        return PROFILE_URL_PLACEHOLDER
    return PROFILE_URL_TEMPLATE.format(user_id=user_id)


class LeaderboardEntry(BaseModel):
    """A single leaderboard row in canonical form.

    Attributes:
        username: Display name; ``"Unknown"`` when no source provided one.
        user_id: osu! user id, or ``None`` (typical for scraped rows).
        rank: Position used for ordering (country rank for API rows, page
            rank for scraped rows), or ``None`` when not resolvable.
        pp: Performance points, 2-decimal number, or ``None``.
        accuracy: Hit accuracy in percent, 2-decimal number, or ``None``.
        play_count: Total play count, or ``None`` when the shape lacks it.
        ranked_score: Ranked score, or ``None`` when the shape lacks it.
        global_rank: Global performance rank, or ``None``.
        country_rank: Country performance rank, or ``None``.
        avatar_url: Avatar image URL (``""`` when unknown).
        profile_url: Public profile URL (``"#"`` when ``user_id`` is unknown).
    """

    model_config = ConfigDict(frozen=True)

    username: str = UNKNOWN_USERNAME
    user_id: Optional[int] = None
    rank: Optional[int] = None
    pp: Optional[Number] = None
    accuracy: Optional[Number] = None
    play_count: Optional[int] = None
    ranked_score: Optional[int] = None
    global_rank: Optional[int] = None
    country_rank: Optional[int] = None
    avatar_url: str = ""
    profile_url: str = PROFILE_URL_PLACEHOLDER

    @field_validator("username")
    @classmethod
    def validate_username(cls, v: str) -> str:
        v = v.strip()
        return v or UNKNOWN_USERNAME

    @field_validator("rank", "global_rank", "country_rank")
    @classmethod
    def validate_rank_positive(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v < 1:
            raise ValueError("Ranks must be positive integers.")
        return v

    @field_validator("play_count", "ranked_score")
    @classmethod
    def validate_counts_non_negative(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v < 0:
            raise ValueError("Play count and ranked score must be non-negative.")
        return v

    @model_validator(mode="after")
    def derive_profile_url(self) -> "LeaderboardEntry":
        # A known id always wins over whatever URL the source carried.
        if self.user_id is not None:
            object.__setattr__(self, "profile_url", profile_url_for(self.user_id))
        return self

    @property
    def is_unknown(self) -> bool:
        return self.username == UNKNOWN_USERNAME

    @property
    def dedupe_key(self) -> str:
        return self.username.casefold()


class LeaderboardSnapshot(BaseModel):
    """The persisted result of one run.

    Attributes:
        updated_at: Epoch milliseconds at write time.
        country: Upper-case 2-letter country code that was queried.
        source: Provenance tag, ``"api"`` or ``"scrape"``.
        items: Ordered entries, unique by case-insensitive username.
    """

    model_config = ConfigDict(frozen=True)

    updated_at: int
    country: str
    source: str
    items: list[LeaderboardEntry]

    @field_validator("source")
    @classmethod
    def validate_source(cls, v: str) -> str:
        if v not in VALID_SOURCES:
            raise ValueError(f"Unknown source '{v}'. Must be one of {sorted(VALID_SOURCES)}.")
        return v

    @field_validator("country")
    @classmethod
    def validate_country(cls, v: str) -> str:
        v = v.upper()
        if len(v) != 2 or not v.isalpha():
            raise ValueError(f"country must be a 2-letter code, got '{v}'.")
        return v

    @model_validator(mode="after")
    def validate_items(self) -> "LeaderboardSnapshot":
        seen: set[str] = set()
        for entry in self.items:
            if entry.dedupe_key in seen:
                raise ValueError(f"Duplicate username in snapshot: '{entry.username}'.")
            seen.add(entry.dedupe_key)
            if self.source == "scrape" and entry.is_unknown:
                raise ValueError("Scraped snapshots cannot contain unknown usernames.")
        return self
