"""Bookmark model and validation."""

from __future__ import annotations

import hashlib
import time
from dataclasses import dataclass, field
from typing import Any

from ..constants import ID_LENGTH
from ..errors import ValidationError


@dataclass
class Bookmark:
    """A named, line-addressed position in a file.

    ``tracking_handle`` is the live marker id in an open document.  It is
    only meaningful for the current session and never persisted.
    """

    file: str
    line: int
    id: str
    note: str | None = None
    tracking_handle: int | None = field(default=None, compare=False, repr=False)

    def to_dict(self) -> dict[str, Any]:
        """Durable form used in snapshots (no tracking handle)."""
        return {
            "file": self.file,
            "line": self.line,
            "note": self.note,
            "id": self.id,
        }

    @classmethod
    def from_dict(cls, data: Any) -> Bookmark | None:
        """Build a bookmark from a snapshot entry, or ``None`` if invalid."""
        if not is_valid_bookmark(data):
            return None
        return cls(
            file=data["file"],
            line=data["line"],
            id=data["id"],
            note=data.get("note") or None,
        )


def generate_id(file: str, line: int) -> str:
    """Hash of file + line + a high-resolution timestamp, truncated."""
    key = f"{file}{line}{time.perf_counter_ns()}{time.time_ns()}"
    return hashlib.sha256(key.encode("utf-8")).hexdigest()[:ID_LENGTH]


def _is_line(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 1


def create_bookmark(file: str, line: int, note: str | None = None) -> Bookmark:
    """Validate the fields and return a new, not-yet-registered bookmark.

    Raises:
        ValidationError: if ``file``, ``line`` or ``note`` is invalid.
    """
    if not isinstance(file, str) or not file:
        raise ValidationError("file", "must be a non-empty string")
    if not _is_line(line):
        raise ValidationError("line", "must be a positive integer")
    if note is not None and not isinstance(note, str):
        raise ValidationError("note", "must be None or a string")

    return Bookmark(
        file=file,
        line=line,
        id=generate_id(file, line),
        # An empty annotation is the same as no annotation
        note=note or None,
    )


def is_valid_bookmark(data: Any) -> bool:
    """Check a :class:`Bookmark` or a snapshot dict against the model invariants."""
    if isinstance(data, Bookmark):
        data = data.to_dict()
    if not isinstance(data, dict):
        return False
    if not isinstance(data.get("file"), str) or not data["file"]:
        return False
    if not _is_line(data.get("line")):
        return False
    if not isinstance(data.get("id"), str) or not data["id"]:
        return False
    note = data.get("note")
    if note is not None and not isinstance(note, str):
        return False
    return True
