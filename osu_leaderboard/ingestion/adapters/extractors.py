"""
HTML extraction heuristics for the public ranking pages.

Each extractor turns a parsed document into candidate records. They are
independent: none assumes another ran, and the scrape adapter runs all of
them on every page and pools the output (most structured first).

  TableRowExtractor        generic ``<table>`` rows holding a profile link;
                           rank from the first cell, pp from the
                           "Performance" column or the last cell.
  RankingRowExtractor      containers whose class names mention
                           ``ranking`` and ``row``/``item``; fields found by
                           class-name hints.
  ProfileAnchorExtractor   any profile link, walking up to the nearest
                           row-like ancestor for auxiliary fields.

Candidate records are flat dicts of *text*::

    {"username": "Alice", "user_id": "7", "rank": "#1",
     "pp": "12,345pp", "accuracy": "98.76%", "play_count": "54,321"}

Numeric coercion is left to the ``scrape`` shape of the normalizer.
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from typing import Any, ClassVar, Optional

from bs4 import BeautifulSoup, Tag

logger = logging.getLogger(__name__)

PROFILE_HREF_RE = re.compile(r"/users/([^/?#]+)")
_PP_TEXT_RE = re.compile(r"[\d,.]+\s*pp\b", re.IGNORECASE)
_CLASS_PART_RE = re.compile(r"[-_\s]+")


# ── DOM helpers ───────────────────────────────────────────────────────────────

def parse_html(html: str) -> BeautifulSoup:
    """Parse raw HTML into a queryable document."""
    return BeautifulSoup(html, "html.parser")


def _text(node: Optional[Tag]) -> Optional[str]:
    if node is None:
        return None
    text = node.get_text(" ", strip=True)
    return text or None


def _class_parts(tag: Tag) -> set[str]:
    """Lower-case fragments of every class token (``a-b__c--d`` → a, b, c, d)."""
    classes = tag.get("class") or []
    if isinstance(classes, str):
        classes = [classes]
    parts: set[str] = set()
    for token in classes:
        parts.update(p for p in _CLASS_PART_RE.split(token.lower()) if p)
    return parts


def _has_hint(tag: Tag, hint: tuple[str, ...]) -> bool:
    return set(hint) <= _class_parts(tag)


def _find_hinted(container: Tag, hints: tuple[tuple[str, ...], ...]) -> Optional[Tag]:
    """First descendant whose class fragments include any of ``hints``."""
    for hint in hints:
        found = container.find(lambda t: isinstance(t, Tag) and _has_hint(t, hint))
        if found is not None:
            return found
    return None


def _contains(parent: Tag, node: Tag) -> bool:
    return node is parent or any(p is parent for p in node.parents)


def _profile_anchor(container: Tag) -> Optional[Tag]:
    return container.find("a", href=PROFILE_HREF_RE)


def _user_id_from_anchor(anchor: Tag) -> Optional[str]:
    data_id = anchor.get("data-user-id")
    if isinstance(data_id, str) and data_id.isdigit():
        return data_id
    match = PROFILE_HREF_RE.search(str(anchor.get("href", "")))
    if match and match.group(1).isdigit():
        return match.group(1)
    return None


def _record(
    anchor: Optional[Tag],
    username: Optional[str],
    rank: Optional[str] = None,
    pp: Optional[str] = None,
    accuracy: Optional[str] = None,
    play_count: Optional[str] = None,
) -> Optional[dict[str, Any]]:
    if not username:
        return None
    return {
        "username": username,
        "user_id": _user_id_from_anchor(anchor) if anchor is not None else None,
        "rank": rank,
        "pp": pp,
        "accuracy": accuracy,
        "play_count": play_count,
    }


# ── Extractors ────────────────────────────────────────────────────────────────

class HtmlExtractor(ABC):
    """Strategy: given a parsed document, produce candidate records."""

    name: ClassVar[str]

    @abstractmethod
    def extract(self, soup: BeautifulSoup) -> list[dict[str, Any]]:
        ...


class TableRowExtractor(HtmlExtractor):
    """Generic table rows: ``<tr>`` with ≥ 2 cells and a profile link."""

    name: ClassVar[str] = "table_rows"

    @staticmethod
    def _header_index(table: Tag) -> dict[str, int]:
        header_row = None
        for tr in table.find_all("tr"):
            if tr.find("th") is not None:
                header_row = tr
                break
        if header_row is None:
            return {}

        columns: dict[str, int] = {}
        for idx, cell in enumerate(header_row.find_all(["th", "td"])):
            label = (cell.get_text(" ", strip=True) or "").lower()
            if "performance" in label or label == "pp":
                columns.setdefault("pp", idx)
            elif "accuracy" in label:
                columns.setdefault("accuracy", idx)
            elif "play count" in label or label == "plays":
                columns.setdefault("play_count", idx)
        return columns

    def extract(self, soup: BeautifulSoup) -> list[dict[str, Any]]:
        records: list[dict[str, Any]] = []
        for table in soup.find_all("table"):
            columns = self._header_index(table)
            for tr in table.find_all("tr"):
                tds = tr.find_all("td")
                if len(tds) < 2:
                    continue
                anchor = _profile_anchor(tr)
                if anchor is None:
                    continue

                cells = [td.get_text(" ", strip=True) for td in tds]

                def column(key: str) -> Optional[str]:
                    idx = columns.get(key)
                    if idx is None or idx >= len(cells):
                        return None
                    return cells[idx] or None

                # The player cell is never a rank.
                rank = None if _contains(tds[0], anchor) else cells[0] or None
                rec = _record(
                    anchor,
                    _text(anchor),
                    rank=rank,
                    pp=column("pp") or cells[-1] or None,
                    accuracy=column("accuracy"),
                    play_count=column("play_count"),
                )
                if rec is not None:
                    records.append(rec)
        return records


class RankingRowExtractor(HtmlExtractor):
    """Containers whose class names say ``ranking`` + ``row``/``item``."""

    name: ClassVar[str] = "ranking_rows"

    _USERNAME_HINTS: ClassVar[tuple[tuple[str, ...], ...]] = (("username",), ("user", "name"))
    _RANK_HINTS: ClassVar[tuple[tuple[str, ...], ...]] = (("rank",), ("position",))
    _PP_HINTS: ClassVar[tuple[tuple[str, ...], ...]] = (("performance",), ("pp",), ("focused",))
    _ACCURACY_HINTS: ClassVar[tuple[tuple[str, ...], ...]] = (("accuracy",),)
    _PLAY_COUNT_HINTS: ClassVar[tuple[tuple[str, ...], ...]] = (("play", "count"), ("playcount",))

    @staticmethod
    def _is_container(tag: Any) -> bool:
        if not isinstance(tag, Tag) or tag.name not in ("tr", "li", "div"):
            return False
        parts = _class_parts(tag)
        return "ranking" in parts and bool(parts & {"row", "item"})

    def extract(self, soup: BeautifulSoup) -> list[dict[str, Any]]:
        records: list[dict[str, Any]] = []
        for container in soup.find_all(self._is_container):
            anchor = _profile_anchor(container)
            username = _text(_find_hinted(container, self._USERNAME_HINTS)) or _text(anchor)

            rank = _text(_find_hinted(container, self._RANK_HINTS))
            if rank is None and container.name == "tr":
                first_td = container.find("td")
                if first_td is not None and (anchor is None or not _contains(first_td, anchor)):
                    rank = _text(first_td)

            rec = _record(
                anchor,
                username,
                rank=rank,
                pp=_text(_find_hinted(container, self._PP_HINTS)),
                accuracy=_text(_find_hinted(container, self._ACCURACY_HINTS)),
                play_count=_text(_find_hinted(container, self._PLAY_COUNT_HINTS)),
            )
            if rec is not None:
                records.append(rec)
        return records


class ProfileAnchorExtractor(HtmlExtractor):
    """Any profile link; the nearest row-like ancestor supplies rank and pp."""

    name: ClassVar[str] = "profile_anchors"

    @staticmethod
    def _is_row(tag: Any) -> bool:
        if not isinstance(tag, Tag):
            return False
        return tag.name in ("tr", "li") or "row" in _class_parts(tag)

    def extract(self, soup: BeautifulSoup) -> list[dict[str, Any]]:
        records: list[dict[str, Any]] = []
        for anchor in soup.find_all("a", href=PROFILE_HREF_RE):
            username = _text(anchor)
            if not username:
                continue

            rank: Optional[str] = None
            pp: Optional[str] = None
            row = anchor.find_parent(self._is_row)
            if row is not None:
                cells = row.find_all(["td", "th"]) or [
                    child for child in row.children if isinstance(child, Tag)
                ]
                if cells and not _contains(cells[0], anchor):
                    rank = _text(cells[0])
                pp_match = _PP_TEXT_RE.search(row.get_text(" ", strip=True))
                if pp_match:
                    pp = pp_match.group()

            rec = _record(anchor, username, rank=rank, pp=pp)
            if rec is not None:
                records.append(rec)
        return records


DEFAULT_EXTRACTORS: tuple[HtmlExtractor, ...] = (
    TableRowExtractor(),
    RankingRowExtractor(),
    ProfileAnchorExtractor(),
)
