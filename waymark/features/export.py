"""Pure-function export helpers.

Each formatter takes bookmarks (normally ``BookmarkQuery.all_sorted()``)
and returns a projection for a consumer: picker rows, sidekick-style
location lists, or quickfix entries.  Nothing here writes back.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Iterable

from ..constants import NOTE_PREVIEW_LENGTH, QUICKFIX_DEFAULT_TEXT
from ..core.bookmark import Bookmark


@dataclass(frozen=True)
class PickerItem:
    """One row in an interactive bookmark list."""

    idx: int
    score: int
    id: str
    file: str
    relpath: str
    filename: str
    line: int
    pos: tuple[int, int]
    note: str | None
    text: str


@dataclass(frozen=True)
class QuickfixItem:
    filename: str
    lnum: int
    col: int
    text: str


def relative_path(path: str, cwd: str | None = None) -> str:
    """*path* relative to *cwd* when it lives under it, otherwise unchanged."""
    base = os.path.abspath(cwd or os.getcwd())
    try:
        rel = os.path.relpath(path, base)
    except ValueError:
        # Different drive on Windows
        return path
    if rel == os.curdir or rel.startswith(os.pardir):
        return path
    return rel


def display_path(path: str, cwd: str | None = None) -> str:
    """``"name.py dir/"`` for nested files, just ``"name.py"`` at top level."""
    rel = relative_path(path, cwd)
    filename = os.path.basename(rel)
    directory = os.path.dirname(rel)
    if not directory or directory == os.curdir:
        return filename
    return f"{filename} {directory}/"


def truncate_note(note: str | None, length: int = NOTE_PREVIEW_LENGTH) -> str:
    if not note:
        return ""
    if len(note) > length:
        return note[:length] + "..."
    return note


def _select(bookmarks: Iterable[Bookmark], file: str | None) -> list[Bookmark]:
    if file is None:
        return list(bookmarks)
    return [bm for bm in bookmarks if bm.file == file]


def build_picker_items(
    bookmarks: Iterable[Bookmark], cwd: str | None = None
) -> list[PickerItem]:
    """Picker rows with cached relative path and searchable text."""
    items: list[PickerItem] = []
    for i, bm in enumerate(bookmarks, start=1):
        rel = relative_path(bm.file, cwd)
        text = f"{rel}:{bm.line}"
        if bm.note:
            text += f" - {bm.note}"
        items.append(
            PickerItem(
                idx=i,
                score=i,
                id=bm.id,
                file=bm.file,
                relpath=rel,
                filename=os.path.basename(bm.file),
                line=bm.line,
                pos=(bm.line, 0),
                note=bm.note,
                text=text,
            )
        )
    return items


def format_locations(
    bookmarks: Iterable[Bookmark],
    *,
    append_annotations: bool = True,
    file: str | None = None,
    cwd: str | None = None,
) -> str:
    """One ``- @/<path> :L<line>`` entry per bookmark, newline separated."""
    lines = []
    for bm in _select(bookmarks, file):
        entry = f"- @/{relative_path(bm.file, cwd)} :L{bm.line}"
        if append_annotations and bm.note:
            entry += f' - "{bm.note}"'
        lines.append(entry)
    return "\n".join(lines)


def quickfix_items(
    bookmarks: Iterable[Bookmark],
    *,
    append_annotations: bool = True,
    file: str | None = None,
) -> list[QuickfixItem]:
    items = []
    for bm in _select(bookmarks, file):
        text = bm.note if append_annotations and bm.note else QUICKFIX_DEFAULT_TEXT
        items.append(QuickfixItem(filename=bm.file, lnum=bm.line, col=1, text=text))
    return items


def format_quickfix(items: Iterable[QuickfixItem]) -> str:
    """``path:line:col: text`` lines, readable by ``vim -q`` and most editors."""
    return "\n".join(f"{it.filename}:{it.lnum}:{it.col}: {it.text}" for it in items)
