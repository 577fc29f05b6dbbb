"""Text documents with content-anchored markers.

This is the host document engine the position tracker relies on.  A
marker is bound to content rather than to a line index: whole-line
insertions above it push it down, deletions above it pull it up, and
deleting the line it sits on invalidates it.  Edits adjust markers in the
same call, so there is never a recomputation pass.

Line numbers in the public API are 1-based; columns are 0-based.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable

from ..errors import TrackingError
from ..log import logger


def normalize_path(path: str | Path) -> str:
    """Absolute, user-expanded path string used as the identity of a file."""
    return os.path.abspath(os.path.expanduser(str(path)))


class DocumentEventKind(Enum):
    CHANGED = "changed"
    HIDDEN = "hidden"
    CLOSED = "closed"


@dataclass(frozen=True)
class DocumentEvent:
    kind: DocumentEventKind
    document: TextDocument


DocumentListener = Callable[[DocumentEvent], object]


@dataclass
class _Marker:
    row: int  # 0-based
    col: int
    right_gravity: bool


class TextDocument:
    """An open, editable text buffer."""

    def __init__(self, path: str | Path, lines: list[str] | None = None) -> None:
        self.path = normalize_path(path)
        self._lines: list[str] = list(lines) if lines else [""]
        self._markers: dict[int, _Marker] = {}
        self._next_marker = 1
        self._listeners: list[DocumentListener] = []
        self.closed = False

    @classmethod
    def open(cls, path: str | Path) -> TextDocument:
        """Read *path* from disk (UTF-8) into a new document."""
        text = Path(normalize_path(path)).read_text(encoding="utf-8")
        return cls(path, text.splitlines())

    def __repr__(self) -> str:
        return f"TextDocument({self.path!r}, {len(self._lines)} lines)"

    # -- content ---------------------------------------------------------------

    @property
    def line_count(self) -> int:
        return len(self._lines)

    @property
    def lines(self) -> list[str]:
        return list(self._lines)

    def get_line(self, line: int) -> str:
        self._check_line(line)
        return self._lines[line - 1]

    def _check_line(self, line: int, *, allow_end: bool = False) -> None:
        upper = len(self._lines) + (1 if allow_end else 0)
        if not 1 <= line <= upper:
            raise TrackingError(
                f"line {line} out of bounds ({len(self._lines)} lines in {self.path})"
            )

    # -- edits -----------------------------------------------------------------

    def insert_text(self, line: int, col: int, text: str) -> None:
        """Insert *text* at *line*:*col*.  *text* may span several lines."""
        self._check_line(line)
        row = line - 1
        current = self._lines[row]
        col = max(0, min(col, len(current)))
        head, tail = current[:col], current[col:]
        parts = text.split("\n")
        added = len(parts) - 1

        for marker in self._markers.values():
            if marker.row > row:
                marker.row += added
            elif marker.row == row and (
                marker.col > col or (marker.col == col and marker.right_gravity)
            ):
                if added:
                    marker.row += added
                    marker.col = marker.col - col + len(parts[-1])
                else:
                    marker.col += len(text)

        if added:
            new_lines = [head + parts[0], *parts[1:-1], parts[-1] + tail]
            self._lines[row : row + 1] = new_lines
        else:
            self._lines[row] = head + text + tail
        self._emit(DocumentEventKind.CHANGED)

    def insert_lines(self, at: int, lines: list[str]) -> None:
        """Insert whole *lines* before line *at* (``line_count + 1`` appends)."""
        self._check_line(at, allow_end=True)
        if not lines:
            return
        row = at - 1
        for marker in self._markers.values():
            if marker.row >= row:
                marker.row += len(lines)
        self._lines[row:row] = list(lines)
        self._emit(DocumentEventKind.CHANGED)

    def delete_lines(self, start: int, count: int = 1) -> None:
        """Delete *count* lines starting at *start*.  Markers on them are invalidated."""
        self._check_line(start)
        if count < 1:
            return
        row = start - 1
        end = min(row + count, len(self._lines))
        removed = end - row

        for marker_id, marker in list(self._markers.items()):
            if row <= marker.row < end:
                del self._markers[marker_id]
            elif marker.row >= end:
                marker.row -= removed

        del self._lines[row:end]
        if not self._lines:
            self._lines = [""]
        self._emit(DocumentEventKind.CHANGED)

    def replace_line(self, line: int, text: str) -> None:
        """Replace the content of one line in place.  Markers stay on it."""
        self._check_line(line)
        row = line - 1
        self._lines[row] = text
        for marker in self._markers.values():
            if marker.row == row:
                marker.col = min(marker.col, len(text))
        self._emit(DocumentEventKind.CHANGED)

    # -- markers ---------------------------------------------------------------

    def set_marker(self, line: int, col: int = 0, *, right_gravity: bool = True) -> int:
        """Create a marker at *line*:*col* and return its id."""
        self._check_line(line)
        marker_id = self._next_marker
        self._next_marker += 1
        self._markers[marker_id] = _Marker(line - 1, max(0, col), right_gravity)
        return marker_id

    def get_marker(self, marker_id: int) -> tuple[int, int] | None:
        """Current ``(line, col)`` of a marker, or ``None`` if it no longer exists."""
        marker = self._markers.get(marker_id)
        if marker is None:
            return None
        return marker.row + 1, marker.col

    def del_marker(self, marker_id: int) -> bool:
        return self._markers.pop(marker_id, None) is not None

    def clear_markers(self) -> None:
        self._markers.clear()

    @property
    def marker_count(self) -> int:
        return len(self._markers)

    # -- notifications ---------------------------------------------------------

    def subscribe(self, listener: DocumentListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, kind: DocumentEventKind) -> None:
        event = DocumentEvent(kind, self)
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.debug(
                    "document listener failed for %s on %s",
                    kind.value,
                    self.path,
                    exc_info=True,
                )

    def hide(self) -> None:
        """Signal that the document is no longer visible."""
        self._emit(DocumentEventKind.HIDDEN)

    def close(self) -> None:
        """Close the document: notify listeners, then drop markers and listeners."""
        if self.closed:
            return
        self._emit(DocumentEventKind.CLOSED)
        self.closed = True
        self.clear_markers()
        self._listeners.clear()


class WorkspaceEventKind(Enum):
    OPENED = "opened"
    CLOSED = "closed"


WorkspaceListener = Callable[[WorkspaceEventKind, TextDocument], object]


class Workspace:
    """The set of currently open documents, keyed by normalized path."""

    def __init__(self) -> None:
        self._documents: dict[str, TextDocument] = {}
        self._listeners: list[WorkspaceListener] = []

    def __contains__(self, path: object) -> bool:
        return isinstance(path, (str, Path)) and normalize_path(path) in self._documents

    def subscribe(self, listener: WorkspaceListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, kind: WorkspaceEventKind, document: TextDocument) -> None:
        for listener in list(self._listeners):
            try:
                listener(kind, document)
            except Exception:
                logger.debug("workspace listener failed for %s", kind.value, exc_info=True)

    def open(self, path: str | Path) -> TextDocument:
        """Return the open document for *path*, reading it from disk if needed."""
        key = normalize_path(path)
        document = self._documents.get(key)
        if document is None:
            document = TextDocument.open(key)
            self.add(document)
        return document

    def add(self, document: TextDocument) -> TextDocument:
        """Register an already-built document (e.g. an unsaved buffer)."""
        if document.path in self._documents:
            raise TrackingError(f"document already open: {document.path}")
        self._documents[document.path] = document
        self._emit(WorkspaceEventKind.OPENED, document)
        return document

    def get(self, path: str | Path) -> TextDocument | None:
        return self._documents.get(normalize_path(path))

    def close(self, path: str | Path) -> bool:
        document = self._documents.pop(normalize_path(path), None)
        if document is None:
            return False
        document.close()
        self._emit(WorkspaceEventKind.CLOSED, document)
        return True

    def documents(self) -> list[TextDocument]:
        return list(self._documents.values())
