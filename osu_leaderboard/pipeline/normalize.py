"""
Record normalization: map any upstream record shape onto ``LeaderboardEntry``.

Every field of every shape is described by one ``FieldRule``: an ordered
chain of key paths into the raw record, a coercion function, and the default
used when no path yields a usable value. ``FIELD_CHAINS`` is the single
table of those rules; nothing else in the package reads raw upstream keys.

Resolution of one field:
  1. Walk each path in order. ``None``, ``""`` and missing keys are absent.
  2. Coerce the first present value. A value that fails coercion
     (``ValueError``/``TypeError``) is treated as absent and the chain
     continues with the next path.
  3. If every path is absent, the rule's default applies.

Shapes:
  ranking   API ranking item (UserStatistics with nested ``user``)
  user      API user detail (User with nested ``statistics``)
  scrape    flat text dicts produced by the HTML extractors

Numeric formatting (2-decimal rounding of ``pp``/``accuracy``) happens here
and nowhere else.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Any, Callable, Mapping

from osu_leaderboard.models.entry import UNKNOWN_USERNAME, LeaderboardEntry

SHAPE_RANKING = "ranking"
SHAPE_USER = "user"
SHAPE_SCRAPE = "scrape"

_MISSING = object()
_NUMBER_RE = re.compile(r"[-+]?\d+(?:\.\d+)?")


# ── Coercions ─────────────────────────────────────────────────────────────────

def to_text(value: Any) -> str:
    if isinstance(value, (dict, list)):
        raise TypeError("Expected a scalar value.")
    text = str(value).strip()
    if not text:
        raise ValueError("Empty text.")
    return text


def to_int(value: Any) -> int:
    """Integer from an int, an integral float, or numeric text like ``"1,234"``."""
    if isinstance(value, bool):
        raise TypeError("Booleans are not counts.")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError(f"Non-integral value {value}.")
        return int(value)
    if isinstance(value, str):
        return int(value.replace(",", "").strip())
    raise TypeError(f"Cannot convert {type(value).__name__} to int.")


def to_positive_int(value: Any) -> int:
    result = to_int(value)
    if result < 1:
        raise ValueError(f"Expected a positive integer, got {result}.")
    return result


def to_non_negative_int(value: Any) -> int:
    result = to_int(value)
    if result < 0:
        raise ValueError(f"Expected a non-negative integer, got {result}.")
    return result


def digits_only(value: Any) -> int:
    """Strip every non-digit character from scraped text (``"#1,024"`` → ``1024``)."""
    digits = re.sub(r"\D", "", to_text(value))
    if not digits:
        raise ValueError(f"No digits in {value!r}.")
    return int(digits)


def positive_digits(value: Any) -> int:
    result = digits_only(value)
    if result < 1:
        raise ValueError("Rank text resolved to zero.")
    return result


def to_number(value: Any) -> int | float:
    """Numeric value rounded to 2 decimals; integral values stay ``int``.

    Strings are parsed from their first numeric token after dropping
    thousands separators (``"98.7654%"`` → ``98.77``).
    """
    if isinstance(value, bool):
        raise TypeError("Booleans are not numbers.")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not math.isfinite(value):
            raise ValueError("Non-finite number.")
        return round(value, 2)
    if isinstance(value, str):
        match = _NUMBER_RE.search(value.replace(",", ""))
        if match is None:
            raise ValueError(f"No number in {value!r}.")
        parsed = float(match.group())
        return int(parsed) if parsed.is_integer() else round(parsed, 2)
    raise TypeError(f"Cannot convert {type(value).__name__} to a number.")


# ── Rule table ────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class FieldRule:
    """Ordered fallback chain for one output field.

    Attributes:
        paths: Key paths tried in order, e.g. ``(("pp",), ("user", "statistics", "pp"))``.
        coerce: Converts the raw value; raising means "absent, keep looking".
        default: Value used when every path is absent.
    """

    paths: tuple[tuple[str, ...], ...]
    coerce: Callable[[Any], Any]
    default: Any = None


_STATS = ("user", "statistics")

FIELD_CHAINS: dict[str, dict[str, FieldRule]] = {
    SHAPE_RANKING: {
        "username": FieldRule((("user", "username"), ("username",)), to_text, UNKNOWN_USERNAME),
        "user_id": FieldRule((("user", "id"), ("user_id",), ("id",)), to_positive_int),
        "rank": FieldRule(
            (
                ("rank",),
                ("country_rank",),
                ("rank", "country"),
                (*_STATS, "country_rank"),
                (*_STATS, "rank", "country"),
            ),
            to_positive_int,
        ),
        "pp": FieldRule((("pp",), (*_STATS, "pp")), to_number),
        "accuracy": FieldRule(
            (("hit_accuracy",), ("accuracy",), (*_STATS, "hit_accuracy")), to_number, 0
        ),
        "play_count": FieldRule((("play_count",), (*_STATS, "play_count")), to_non_negative_int, 0),
        "ranked_score": FieldRule(
            (("ranked_score",), (*_STATS, "ranked_score")), to_non_negative_int, 0
        ),
        "global_rank": FieldRule((("global_rank",), (*_STATS, "global_rank")), to_positive_int),
        "country_rank": FieldRule(
            (
                ("country_rank",),
                ("rank", "country"),
                (*_STATS, "country_rank"),
                (*_STATS, "rank", "country"),
            ),
            to_positive_int,
        ),
        "avatar_url": FieldRule((("user", "avatar_url"), ("avatar_url",)), to_text, ""),
    },
    SHAPE_USER: {
        "username": FieldRule((("username",),), to_text, UNKNOWN_USERNAME),
        "user_id": FieldRule((("id",),), to_positive_int),
        "pp": FieldRule((("statistics", "pp"),), to_number),
        "accuracy": FieldRule((("statistics", "hit_accuracy"),), to_number, 0),
        "play_count": FieldRule((("statistics", "play_count"),), to_non_negative_int, 0),
        "ranked_score": FieldRule((("statistics", "ranked_score"),), to_non_negative_int, 0),
        "global_rank": FieldRule((("statistics", "global_rank"),), to_positive_int),
        "country_rank": FieldRule(
            (("statistics", "country_rank"), ("statistics", "rank", "country")), to_positive_int
        ),
        "avatar_url": FieldRule((("avatar_url",),), to_text, ""),
    },
    SHAPE_SCRAPE: {
        "username": FieldRule((("username",),), to_text, UNKNOWN_USERNAME),
        "user_id": FieldRule((("user_id",),), to_positive_int),
        "rank": FieldRule((("rank",),), positive_digits),
        "pp": FieldRule((("pp",),), digits_only),
        "accuracy": FieldRule((("accuracy",),), to_number),
        "play_count": FieldRule((("play_count",),), digits_only),
        "avatar_url": FieldRule((("avatar_url",),), to_text, ""),
    },
}


# ── Evaluation ────────────────────────────────────────────────────────────────

def _resolve_path(raw: Any, path: tuple[str, ...]) -> Any:
    node = raw
    for key in path:
        if not isinstance(node, Mapping) or key not in node:
            return _MISSING
        node = node[key]
    if node is None or node == "":
        return _MISSING
    return node


def _resolve_rule(raw: Any, rule: FieldRule) -> Any:
    for path in rule.paths:
        value = _resolve_path(raw, path)
        if value is _MISSING:
            continue
        try:
            return rule.coerce(value)
        except (TypeError, ValueError):
            continue
    return _MISSING


def extract_fields(raw: Any, shape: str) -> dict[str, Any]:
    """Return only the fields some path in ``shape`` actually resolved.

    Raises:
        KeyError: If ``shape`` is not a known shape name.
    """
    chains = FIELD_CHAINS[shape]
    resolved: dict[str, Any] = {}
    for field_name, rule in chains.items():
        value = _resolve_rule(raw, rule)
        if value is not _MISSING:
            resolved[field_name] = value
    return resolved


def normalize_record(raw: Any, shape: str) -> LeaderboardEntry:
    """Map one raw record onto a ``LeaderboardEntry``; total over all inputs.

    Fields absent from every path take the rule's default; fields the shape
    does not describe at all take the model default (``None``).
    """
    chains = FIELD_CHAINS[shape]
    resolved = extract_fields(raw, shape)
    values = {name: resolved.get(name, rule.default) for name, rule in chains.items()}
    return LeaderboardEntry(**values)


def normalize_records(records: list[Any], shape: str) -> list[LeaderboardEntry]:
    """Normalize a list of raw records, preserving order."""
    return [normalize_record(raw, shape) for raw in records]
