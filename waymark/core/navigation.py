"""Sorted lookup and next/prev traversal over the registry."""

from __future__ import annotations

from .bookmark import Bookmark
from .registry import BookmarkRegistry


class BookmarkQuery:
    """Read-only queries over a :class:`BookmarkRegistry`."""

    def __init__(self, registry: BookmarkRegistry) -> None:
        self.registry = registry

    def sorted_for_file(self, file: str) -> list[Bookmark]:
        """Bookmarks in *file* by ascending line; ties keep insertion order."""
        # sorted() is stable and for_file() yields insertion order
        return sorted(self.registry.for_file(file), key=lambda bm: bm.line)

    def next(self, file: str, current_line: int) -> Bookmark | None:
        """First bookmark below *current_line*, wrapping to the top."""
        bookmarks = self.sorted_for_file(file)
        if not bookmarks:
            return None
        for bookmark in bookmarks:
            if bookmark.line > current_line:
                return bookmark
        return bookmarks[0]

    def prev(self, file: str, current_line: int) -> Bookmark | None:
        """Last bookmark above *current_line*, wrapping to the bottom."""
        bookmarks = self.sorted_for_file(file)
        if not bookmarks:
            return None
        for bookmark in reversed(bookmarks):
            if bookmark.line < current_line:
                return bookmark
        return bookmarks[-1]

    def all_sorted(self) -> list[Bookmark]:
        """Every bookmark ordered by file path, then line."""
        return sorted(self.registry.all(), key=lambda bm: (bm.file, bm.line))
