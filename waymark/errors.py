"""Exception taxonomy for waymark.

All of these are recoverable: callers catch them at the boundary of the
operation that produced them and turn them into a log line or a return
value.  Nothing here should ever escape to the user as a crash.
"""

from __future__ import annotations


class WaymarkError(Exception):
    """Base class for every waymark error."""


class ValidationError(WaymarkError):
    """A bookmark field failed validation.  ``field`` names the culprit."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message


class NotFoundError(WaymarkError):
    """Lookup miss: no repository, no branch, no bookmark, no marker."""


class PersistenceError(WaymarkError):
    """Encoding, filesystem or schema failure while saving or loading."""


class TrackingError(WaymarkError):
    """A document or marker could not be resolved."""
