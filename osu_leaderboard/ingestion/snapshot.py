"""
Snapshot persistence: write the finished leaderboard to disk as JSON.

The file is replaced wholesale on every successful run::

    {
      "updated_at": 1767225600000,
      "country": "IQ",
      "source": "api",
      "items": [
        {"username": "Alice", "user_id": 7, "rank": 1, "pp": 1200, ...},
        ...
      ]
    }

Writes are atomic: the JSON goes to a temporary file in the destination
directory, which is then renamed over the target. A crash mid-write leaves
the previous snapshot untouched.
"""

from __future__ import annotations

import hashlib
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Optional, Sequence

from osu_leaderboard.models.entry import LeaderboardEntry, LeaderboardSnapshot
from osu_leaderboard.utils.time_utils import to_epoch_millis, utcnow

logger = logging.getLogger(__name__)


def build_snapshot(
    entries: Sequence[LeaderboardEntry],
    country: str,
    source: str,
    now: Optional[datetime] = None,
) -> LeaderboardSnapshot:
    """Stamp finalized entries with country, provenance and write time.

    Args:
        entries: Deduplicated, ordered entries.
        country: 2-letter country code that was queried.
        source: ``"api"`` or ``"scrape"``.
        now: Override for the ``updated_at`` clock (tests).

    Raises:
        pydantic.ValidationError: If the entries break a snapshot invariant
            (duplicate usernames, unknown usernames in a scraped list).
    """
    stamp = to_epoch_millis(now or utcnow())
    return LeaderboardSnapshot(
        updated_at=stamp,
        country=country,
        source=source,
        items=list(entries),
    )


def compute_hash(payload: Any) -> str:
    """SHA-256 of a JSON-serializable payload, serialized with sorted keys.

    Returns:
        Hex-encoded digest string (64 chars).
    """
    serialized = json.dumps(payload, sort_keys=True, default=str)
    return hashlib.sha256(serialized.encode("utf-8")).hexdigest()


def save_snapshot(path: Path, snapshot: LeaderboardSnapshot) -> tuple[str, int]:
    """Atomically write ``snapshot`` to ``path`` (pretty-printed, UTF-8).

    Creates parent directories automatically.

    Returns:
        Tuple ``(content_hash, record_count)``.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    payload = snapshot.model_dump(mode="json")
    content_hash = compute_hash(payload)

    # Opened normally so the snapshot keeps the umask-default mode.
    tmp_path = path.with_name(f".{path.name}.tmp")
    try:
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2, ensure_ascii=False)
            f.write("\n")
        tmp_path.replace(path)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise

    record_count = len(snapshot.items)
    logger.info(
        "Snapshot saved: %s | records=%d | hash=%s…",
        path, record_count, content_hash[:12],
    )
    return content_hash, record_count


def load_snapshot(path: Path) -> LeaderboardSnapshot:
    """Read and validate a snapshot file.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        json.JSONDecodeError: If the file is not valid JSON.
        pydantic.ValidationError: If the JSON is not a valid snapshot.
    """
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    return LeaderboardSnapshot.model_validate(data)
