"""Position tracker — keeps bookmark lines in step with live edits.

Each bookmark in an open document gets one left-gravity marker at the
start of its line.  The document engine moves markers as text changes;
:meth:`PositionTracker.reconcile` reads them back and writes any moved
lines into the registry.

The tracker owns marker handles but never creates or deletes bookmarks.
A marker whose line was deleted leaves the bookmark at its last known
line.
"""

from __future__ import annotations

from ..errors import TrackingError
from ..log import logger
from .bookmark import Bookmark
from .document import TextDocument
from .registry import BookmarkRegistry


class PositionTracker:
    """Bind bookmarks to markers and reconcile marker positions."""

    def __init__(self, registry: BookmarkRegistry) -> None:
        self.registry = registry
        # bookmark id -> (document path, marker id)
        self._handles: dict[str, tuple[str, int]] = {}

    def handle_for(self, bookmark_id: str) -> int | None:
        entry = self._handles.get(bookmark_id)
        return entry[1] if entry else None

    def tracked_ids(self, document: TextDocument) -> list[str]:
        return [bid for bid, (path, _) in self._handles.items() if path == document.path]

    # ------------------------------------------------------------------
    # Marker lifecycle
    # ------------------------------------------------------------------

    def attach(self, document: TextDocument, bookmark: Bookmark) -> int | None:
        """Create a marker for *bookmark* in *document*.

        Returns the marker id, or ``None`` when the bookmark's line is out
        of the document's bounds.  Re-attaching replaces the old marker.
        """
        if bookmark.file != document.path:
            logger.debug(
                "refusing to attach %s (%s) to %s", bookmark.id, bookmark.file, document.path
            )
            return None
        self.detach(document, bookmark)
        try:
            handle = document.set_marker(bookmark.line, 0, right_gravity=False)
        except TrackingError as exc:
            logger.warning("cannot track bookmark %s: %s", bookmark.id, exc)
            return None
        self._handles[bookmark.id] = (document.path, handle)
        bookmark.tracking_handle = handle
        return handle

    def attach_all(self, document: TextDocument) -> int:
        """Attach every registered bookmark for *document*'s file.  Returns the count."""
        attached = 0
        for bookmark in self.registry.for_file(document.path):
            if self.attach(document, bookmark) is not None:
                attached += 1
        return attached

    def current_line(self, document: TextDocument, handle: int) -> int | None:
        """The marker's current 1-based line, or ``None`` if it was deleted."""
        pos = document.get_marker(handle)
        if pos is None:
            return None
        return pos[0]

    def detach(self, document: TextDocument, bookmark: Bookmark) -> bool:
        entry = self._handles.pop(bookmark.id, None)
        bookmark.tracking_handle = None
        if entry is None:
            return False
        path, handle = entry
        if path != document.path:
            logger.debug("bookmark %s was tracked in %s, not %s", bookmark.id, path, document.path)
            return False
        return document.del_marker(handle)

    def forget(self, bookmark: Bookmark, document: TextDocument | None = None) -> None:
        """Drop the handle for a deleted bookmark, removing its marker if possible."""
        if document is not None:
            self.detach(document, bookmark)
        else:
            self._handles.pop(bookmark.id, None)
            bookmark.tracking_handle = None

    def release(self, document: TextDocument) -> int:
        """Drop every handle bound to *document* (e.g. it is closing)."""
        released = 0
        for bookmark_id in self.tracked_ids(document):
            _, handle = self._handles.pop(bookmark_id)
            document.del_marker(handle)
            bookmark = self.registry.find_by_id(bookmark_id)
            if bookmark is not None:
                bookmark.tracking_handle = None
            released += 1
        return released

    # ------------------------------------------------------------------
    # Reconciliation
    # ------------------------------------------------------------------

    def reconcile(self, document: TextDocument) -> int:
        """Write current marker positions for *document* back into the registry.

        All positions are read before any bookmark is updated, so moving
        one bookmark onto another's old line cannot be mistaken for a move
        of the second one.  Returns the number of bookmarks that moved.
        """
        moves: list[tuple[str, int]] = []
        for bookmark_id in self.tracked_ids(document):
            bookmark = self.registry.find_by_id(bookmark_id)
            if bookmark is None:
                # Deleted behind our back
                _, handle = self._handles.pop(bookmark_id)
                document.del_marker(handle)
                continue
            _, handle = self._handles[bookmark_id]
            line = self.current_line(document, handle)
            if line is None:
                logger.debug(
                    "marker for bookmark %s lost; keeping line %d", bookmark_id, bookmark.line
                )
                del self._handles[bookmark_id]
                bookmark.tracking_handle = None
                continue
            if line != bookmark.line:
                moves.append((bookmark_id, line))

        moved = 0
        for bookmark_id, line in moves:
            if self.registry.set_line(bookmark_id, line):
                moved += 1
        if moved:
            logger.debug("reconciled %d bookmark(s) in %s", moved, document.path)
        return moved
