"""Bookmark snapshot persistence store.

One JSON file per (repository, branch) storage key::

    <data_dir>/<storage_key>.json
    {"version": 1, "bookmarks": [{"file", "line", "note", "id"}, ...]}
"""

from __future__ import annotations

import json
from enum import Enum
from pathlib import Path
from typing import Iterable

from ..constants import SCHEMA_VERSION
from ..core.bookmark import Bookmark
from ..errors import PersistenceError
from ..log import logger
from ._base import JsonStore


class LoadIssue(Enum):
    """Why a snapshot load came back empty (a missing file is not an issue)."""

    UNREADABLE = "unreadable"
    MALFORMED = "malformed"
    NOT_OBJECT = "not_object"
    MISSING_VERSION = "missing_version"
    UNSUPPORTED_VERSION = "unsupported_version"
    BAD_BOOKMARKS = "bad_bookmarks"


def snapshot_path(data_dir: Path, storage_key: str) -> Path:
    return Path(data_dir) / f"{storage_key}.json"


class BookmarkStore(JsonStore):
    """Versioned bookmark snapshot (``{version, bookmarks: [...]}``)."""

    def __init__(self, path: Path) -> None:
        super().__init__(path)
        self.last_issue: LoadIssue | None = None
        self.skipped = 0

    @classmethod
    def for_key(cls, data_dir: Path, storage_key: str) -> BookmarkStore:
        return cls(snapshot_path(data_dir, storage_key))

    def _reject(self, issue: LoadIssue, detail: str) -> list[Bookmark]:
        self.last_issue = issue
        logger.warning("ignoring bookmark snapshot %s: %s", self.path, detail)
        return []

    def load(self) -> list[Bookmark]:
        """Load bookmarks from disk.  Never raises.

        A missing file yields ``[]`` with no issue.  Every other failure
        yields ``[]`` and records the reason in :attr:`last_issue`.
        Individual invalid entries are skipped and counted in :attr:`skipped`.
        """
        self.last_issue = None
        self.skipped = 0
        if not self.path.exists():
            return []
        try:
            data = self.load_raw()
        except PersistenceError as exc:
            return self._reject(LoadIssue.UNREADABLE, str(exc))
        except json.JSONDecodeError as exc:
            return self._reject(LoadIssue.MALFORMED, str(exc))

        # A literal ``null`` file lands here too
        if not isinstance(data, dict):
            return self._reject(LoadIssue.NOT_OBJECT, "top level is not an object")
        if "version" not in data or data["version"] is None:
            return self._reject(LoadIssue.MISSING_VERSION, "missing version field")
        version = data["version"]
        if isinstance(version, bool) or version != SCHEMA_VERSION:
            return self._reject(
                LoadIssue.UNSUPPORTED_VERSION, f"unsupported version {version!r}"
            )
        entries = data.get("bookmarks")
        if not isinstance(entries, list):
            return self._reject(LoadIssue.BAD_BOOKMARKS, "bookmarks is not a list")

        bookmarks: list[Bookmark] = []
        seen: set[str] = set()
        for entry in entries:
            bookmark = Bookmark.from_dict(entry)
            if bookmark is None or bookmark.id in seen:
                self.skipped += 1
                continue
            seen.add(bookmark.id)
            bookmarks.append(bookmark)
        if self.skipped:
            logger.warning(
                "skipped %d invalid bookmark(s) in %s", self.skipped, self.path
            )
        return bookmarks

    def save(self, bookmarks: Iterable[Bookmark]) -> str | None:
        """Write the snapshot atomically.  Returns an error string, or ``None`` on success."""
        data = {
            "version": SCHEMA_VERSION,
            "bookmarks": [bm.to_dict() for bm in bookmarks],
        }
        try:
            self.save_raw(data)
        except PersistenceError as exc:
            logger.error("failed to save bookmarks: %s", exc)
            return str(exc)
        return None


def load_bookmarks(data_dir: Path, storage_key: str) -> list[Bookmark]:
    """Load the snapshot for *storage_key* (see :meth:`BookmarkStore.load`)."""
    return BookmarkStore.for_key(data_dir, storage_key).load()


def save_bookmarks(
    bookmarks: Iterable[Bookmark], data_dir: Path, storage_key: str
) -> str | None:
    """Save *bookmarks* under *storage_key* (see :meth:`BookmarkStore.save`)."""
    return BookmarkStore.for_key(data_dir, storage_key).save(bookmarks)
