"""Constants shared across waymark modules."""

from __future__ import annotations

import os
from pathlib import Path

APP_NAME = "waymark"
VERSION = "0.1.0"

# On-disk schema version for bookmark snapshots
SCHEMA_VERSION = 1

# Bookmark ids are sha256 hex digests truncated to this length
ID_LENGTH = 16
# Storage keys (snapshot filenames) are truncated to this length
STORAGE_KEY_LENGTH = 8

# Debounce windows in milliseconds
RECONCILE_DELAY_MS = 100
SAVE_DELAY_MS = 500

# Debounce key shared by every document's write-back
SAVE_TIMER_KEY = "__save__"

DEFAULT_SIGN = "\U000f00c0"
DEFAULT_SIGN_STYLE = "bold cyan"
DEFAULT_NOTE_STYLE = "dim italic"

LOCATION_WIDTH = 50
NOTE_PREVIEW_LENGTH = 60

QUICKFIX_DEFAULT_TEXT = "Waymark bookmark"


def default_data_dir() -> Path:
    """Per-user data directory (``$XDG_DATA_HOME/waymark`` or ``~/.local/share/waymark``)."""
    xdg = os.environ.get("XDG_DATA_HOME")
    base = Path(xdg) if xdg else Path.home() / ".local" / "share"
    return base / APP_NAME
