"""In-memory bookmark registry.

The :class:`BookmarkRegistry` is the single authoritative owner of
:class:`Bookmark` instances.  The tracker, the query engine and the
persistence store all read from it; only explicit operations here create
or destroy bookmarks.

Reads and mutations are synchronous and guarded by one re-entrant lock,
so a check-then-act sequence like :meth:`BookmarkRegistry.toggle` can
never interleave with another mutation, and lookups always see a
consistent snapshot, even when a host runs workers on threads.  Lookups
return copies of the bookmark lists.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from ..errors import ValidationError
from ..log import logger
from .bookmark import Bookmark, create_bookmark, is_valid_bookmark


class ChangeKind(Enum):
    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"


@dataclass(frozen=True)
class BookmarkEvent:
    """Pushed to registry listeners after every mutation."""

    kind: ChangeKind
    bookmark: Bookmark


@dataclass(frozen=True)
class ToggleResult:
    """Outcome of :meth:`BookmarkRegistry.toggle`."""

    created: bool
    bookmark: Bookmark

    @property
    def deleted(self) -> bool:
        return not self.created


Listener = Callable[[BookmarkEvent], object]


class BookmarkRegistry:
    """Bookmarks keyed by id, iterated in insertion order."""

    def __init__(self) -> None:
        self._bookmarks: dict[str, Bookmark] = {}
        self._listeners: list[Listener] = []
        self._lock = threading.RLock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._bookmarks)

    def __contains__(self, bookmark_id: object) -> bool:
        with self._lock:
            return bookmark_id in self._bookmarks

    # -- listeners -------------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register *listener* for mutation events.  Returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, kind: ChangeKind, bookmark: Bookmark) -> None:
        event = BookmarkEvent(kind, bookmark)
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.debug("bookmark listener failed for %s", kind.value, exc_info=True)

    # -- creation / removal ----------------------------------------------------

    @staticmethod
    def create(file: str, line: int, note: str | None = None) -> Bookmark:
        """Validate and build a bookmark without inserting it."""
        return create_bookmark(file, line, note)

    def insert(self, bookmark: Bookmark) -> None:
        """Add *bookmark*.  Invalid bookmarks and duplicate ids are rejected."""
        if not is_valid_bookmark(bookmark):
            raise ValidationError("bookmark", f"invalid bookmark {bookmark!r}")
        with self._lock:
            if bookmark.id in self._bookmarks:
                raise ValidationError("id", f"duplicate bookmark id {bookmark.id}")
            self._bookmarks[bookmark.id] = bookmark
        self._emit(ChangeKind.CREATED, bookmark)

    def replace_all(self, bookmarks: list[Bookmark]) -> int:
        """Swap the registry contents for *bookmarks*, skipping invalid ones.

        The swap happens under one lock acquisition; readers never see the
        registry half-filled.  Events are emitted afterwards.
        """
        inserted: list[Bookmark] = []
        with self._lock:
            removed = list(self._bookmarks.values())
            self._bookmarks.clear()
            for bookmark in bookmarks:
                if not is_valid_bookmark(bookmark):
                    logger.warning("skipping invalid bookmark %r", bookmark)
                elif bookmark.id in self._bookmarks:
                    logger.warning("skipping duplicate bookmark id %s", bookmark.id)
                else:
                    self._bookmarks[bookmark.id] = bookmark
                    inserted.append(bookmark)
        for bm in removed:
            self._emit(ChangeKind.DELETED, bm)
        for bm in inserted:
            self._emit(ChangeKind.CREATED, bm)
        logger.debug("registry replaced: %d removed, %d inserted", len(removed), len(inserted))
        return len(inserted)

    def remove(self, bookmark_id: str) -> Bookmark | None:
        """Remove a bookmark by id.  Returns it, or ``None`` if unknown."""
        with self._lock:
            bookmark = self._bookmarks.pop(bookmark_id, None)
        if bookmark is not None:
            self._emit(ChangeKind.DELETED, bookmark)
        return bookmark

    def remove_all_for_file(self, file: str) -> int:
        with self._lock:
            doomed = [bm for bm in self._bookmarks.values() if bm.file == file]
            for bm in doomed:
                del self._bookmarks[bm.id]
        for bm in doomed:
            self._emit(ChangeKind.DELETED, bm)
        return len(doomed)

    def remove_all(self) -> int:
        with self._lock:
            doomed = list(self._bookmarks.values())
            self._bookmarks.clear()
        for bm in doomed:
            self._emit(ChangeKind.DELETED, bm)
        return len(doomed)

    # -- lookup ----------------------------------------------------------------

    def find_by_id(self, bookmark_id: str) -> Bookmark | None:
        with self._lock:
            return self._bookmarks.get(bookmark_id)

    def find_at(self, file: str, line: int) -> Bookmark | None:
        """First bookmark (in insertion order) at exactly *file*:*line*."""
        with self._lock:
            for bm in self._bookmarks.values():
                if bm.file == file and bm.line == line:
                    return bm
        return None

    def all(self) -> list[Bookmark]:
        with self._lock:
            return list(self._bookmarks.values())

    def for_file(self, file: str) -> list[Bookmark]:
        with self._lock:
            return [bm for bm in self._bookmarks.values() if bm.file == file]

    def files(self) -> list[str]:
        """Distinct files with bookmarks, in first-seen order."""
        with self._lock:
            return list(dict.fromkeys(bm.file for bm in self._bookmarks.values()))

    # -- mutation --------------------------------------------------------------

    def toggle(self, file: str, line: int) -> ToggleResult:
        """Delete the bookmark at *file*:*line* if present, otherwise create one."""
        with self._lock:
            existing = self.find_at(file, line)
            if existing is not None:
                del self._bookmarks[existing.id]
            else:
                bookmark = create_bookmark(file, line)
                self._bookmarks[bookmark.id] = bookmark
        if existing is not None:
            self._emit(ChangeKind.DELETED, existing)
            return ToggleResult(created=False, bookmark=existing)
        self._emit(ChangeKind.CREATED, bookmark)
        return ToggleResult(created=True, bookmark=bookmark)

    def update_line(self, file: str, old_line: int, new_line: int) -> int:
        """Move every bookmark at *file*:*old_line* to *new_line*.

        ``id`` and ``note`` are untouched.  Returns the number of bookmarks moved.
        """
        if not isinstance(new_line, int) or new_line < 1:
            raise ValidationError("line", "must be a positive integer")
        with self._lock:
            moved = [
                bm
                for bm in self._bookmarks.values()
                if bm.file == file and bm.line == old_line
            ]
            for bm in moved:
                bm.line = new_line
        for bm in moved:
            self._emit(ChangeKind.UPDATED, bm)
        return len(moved)

    def set_line(self, bookmark_id: str, new_line: int) -> bool:
        """Move a single bookmark by id.  Used by reconciliation."""
        if not isinstance(new_line, int) or new_line < 1:
            raise ValidationError("line", "must be a positive integer")
        with self._lock:
            bookmark = self._bookmarks.get(bookmark_id)
            if bookmark is None or bookmark.line == new_line:
                return False
            bookmark.line = new_line
        self._emit(ChangeKind.UPDATED, bookmark)
        return True

    def set_note(self, bookmark_id: str, note: str | None) -> Bookmark | None:
        """Replace a bookmark's annotation.  Empty notes clear it."""
        if note is not None and not isinstance(note, str):
            raise ValidationError("note", "must be None or a string")
        with self._lock:
            bookmark = self._bookmarks.get(bookmark_id)
            if bookmark is None:
                return None
            bookmark.note = note or None
        self._emit(ChangeKind.UPDATED, bookmark)
        return bookmark
