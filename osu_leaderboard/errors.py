"""
Exception taxonomy for a leaderboard run.

Fatal (surface as a non-zero exit from the CLI):
  ConfigError    required credentials/settings missing; raised before any
                 network call.
  AuthError      the OAuth token exchange failed.
  NoDataError    every source adapter was exhausted without a record.

Recovered locally (logged, never reach the user):
  AdapterFailure     one adapter produced nothing usable; the resolver moves
                     on to the next adapter in priority order.
  EnrichmentError    one user's detail lookup failed; that entry is dropped.
"""

from __future__ import annotations


class LeaderboardError(Exception):
    """Base class for every error raised by this package."""


class ConfigError(LeaderboardError):
    """Required configuration is missing or invalid."""


class AuthError(LeaderboardError):
    """Client-credentials token exchange failed."""


class AdapterFailure(LeaderboardError):
    """A source adapter exhausted all its candidates without data.

    Attributes:
        adapter: Name of the adapter that failed.
        reasons: One short message per failed candidate/page, in try order.
    """

    def __init__(self, adapter: str, reasons: list[str] | None = None) -> None:
        self.adapter = adapter
        self.reasons = list(reasons or [])
        detail = "; ".join(self.reasons) if self.reasons else "no records"
        super().__init__(f"{adapter}: {detail}")


class EnrichmentError(LeaderboardError):
    """Per-user detail lookup failed for one entry."""

    def __init__(self, user_id: int | None, reason: str) -> None:
        self.user_id = user_id
        self.reason = reason
        super().__init__(f"user_id={user_id}: {reason}")


class NoDataError(LeaderboardError):
    """No adapter produced any leaderboard data; nothing is written."""
