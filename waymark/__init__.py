"""waymark: line bookmarks that follow your edits, stored per repository and branch."""

from .constants import VERSION as __version__

__all__ = ["__version__"]
