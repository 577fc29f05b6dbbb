"""Persistence layer – each store owns its file path, data format, and I/O."""

from .bookmarks import (
    BookmarkStore,
    LoadIssue,
    load_bookmarks,
    save_bookmarks,
    snapshot_path,
)

__all__ = [
    "BookmarkStore",
    "LoadIssue",
    "load_bookmarks",
    "save_bookmarks",
    "snapshot_path",
]
