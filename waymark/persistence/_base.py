"""Base JSON persistence store."""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any

from ..errors import PersistenceError
from ..log import logger


class JsonStore:
    """Simple JSON file store with atomic write.

    Subclasses decide what an acceptable document looks like; this class
    only moves JSON text on and off disk.
    """

    def __init__(self, path: Path) -> None:
        self.path = path

    # -- core I/O -------------------------------------------------------------

    def load_raw(self) -> Any:
        """Read and parse the JSON file.  Returns ``None`` if it doesn't exist.

        Raises:
            PersistenceError: the file exists but can't be read or decoded.
            json.JSONDecodeError: the file is readable but isn't valid JSON.
        """
        if not self.path.exists():
            return None
        try:
            text = self.path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise PersistenceError(f"cannot read {self.path}: {exc}") from exc
        return json.loads(text)

    def save_raw(self, data: dict | list, *, sort_keys: bool = False) -> None:
        """Write *data* as pretty-printed JSON, creating parents as needed.

        The payload is encoded before the filesystem is touched and lands
        via a temp file plus ``os.replace``, so an existing file is either
        fully replaced or left exactly as it was.

        Raises:
            PersistenceError: on encoding or filesystem failure.
        """
        try:
            text = json.dumps(data, indent=2, ensure_ascii=False, sort_keys=sort_keys)
        except (TypeError, ValueError) as exc:
            raise PersistenceError(f"cannot encode {self.path.name}: {exc}") from exc

        tmp_name: str | None = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
            )
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(text)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_name, self.path)
            tmp_name = None
        except OSError as exc:
            raise PersistenceError(f"cannot write {self.path}: {exc}") from exc
        finally:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    logger.debug("failed to remove temp file %s", tmp_name, exc_info=True)
