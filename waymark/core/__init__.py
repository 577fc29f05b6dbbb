"""Core bookmark engine: model, registry, tracking, navigation, session."""

from .bookmark import Bookmark, create_bookmark, generate_id, is_valid_bookmark
from .debounce import Debouncer, asyncio_set_timer
from .document import TextDocument, Workspace, normalize_path
from .navigation import BookmarkQuery
from .registry import BookmarkEvent, BookmarkRegistry, ChangeKind, ToggleResult
from .tracker import PositionTracker

__all__ = [
    "Bookmark",
    "BookmarkEvent",
    "BookmarkQuery",
    "BookmarkRegistry",
    "ChangeKind",
    "Debouncer",
    "PositionTracker",
    "TextDocument",
    "ToggleResult",
    "Workspace",
    "asyncio_set_timer",
    "create_bookmark",
    "generate_id",
    "is_valid_bookmark",
    "normalize_path",
]
