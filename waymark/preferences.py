"""User preferences for waymark.

Loads settings from ~/.waymark/preferences.yaml (or ``$WAYMARK_PREFERENCES``).
Falls back to sensible defaults if the file doesn't exist or is invalid.
Creates a default file on first run so users can discover and edit it.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from rich.errors import StyleSyntaxError
from rich.style import Style

from .constants import (
    DEFAULT_NOTE_STYLE,
    DEFAULT_SIGN,
    DEFAULT_SIGN_STYLE,
    LOCATION_WIDTH,
    NOTE_PREVIEW_LENGTH,
    RECONCILE_DELAY_MS,
    SAVE_DELAY_MS,
    default_data_dir,
)
from .log import logger

PREFS_PATH = Path.home() / ".waymark" / "preferences.yaml"

_DEFAULT_YAML = """\
# waymark preferences
# Delete this file to reset to defaults.

storage:
  data_dir: ""                    # empty = ~/.local/share/waymark
  autosave: true                  # save right after toggle/annotate/delete

display:
  sign: "\U000f00c0"              # icon shown before each bookmark
  sign_style: "bold cyan"         # Rich style for the icon
  note_style: "dim italic"        # Rich style for annotations
  line_style: ""                  # Rich style for the whole row (empty = none)
  location_width: 50              # width of the path:line column in lists
  note_preview_length: 60         # annotations longer than this are cut

timing:
  reconcile_delay_ms: 100         # quiet time before re-reading line positions
  save_delay_ms: 500              # quiet time before writing after edits

picker:
  open: "enter"
  delete: "d"
  edit_annotation: "a"

export:
  append_annotations: true        # include notes in location/quickfix output
"""


@dataclass
class StoragePreferences:
    """Where and when snapshots are written."""

    data_dir: str = ""  # Empty means default_data_dir()
    autosave: bool = True

    @property
    def resolved_data_dir(self) -> Path:
        if self.data_dir:
            return Path(os.path.expanduser(self.data_dir))
        return default_data_dir()


@dataclass
class DisplayPreferences:
    sign: str = DEFAULT_SIGN
    sign_style: str = DEFAULT_SIGN_STYLE
    note_style: str = DEFAULT_NOTE_STYLE
    line_style: str = ""
    location_width: int = LOCATION_WIDTH
    note_preview_length: int = NOTE_PREVIEW_LENGTH


@dataclass
class TimingPreferences:
    reconcile_delay_ms: int = RECONCILE_DELAY_MS
    save_delay_ms: int = SAVE_DELAY_MS


@dataclass
class PickerKeys:
    """Key bindings for the bookmark browser."""

    open: str = "enter"
    delete: str = "d"
    edit_annotation: str = "a"


@dataclass
class ExportPreferences:
    append_annotations: bool = True


@dataclass
class Preferences:
    """Top-level waymark preferences."""

    storage: StoragePreferences = field(default_factory=StoragePreferences)
    display: DisplayPreferences = field(default_factory=DisplayPreferences)
    timing: TimingPreferences = field(default_factory=TimingPreferences)
    picker: PickerKeys = field(default_factory=PickerKeys)
    export: ExportPreferences = field(default_factory=ExportPreferences)


def _coerce_int(value: Any, default: int, *, minimum: int = 0) -> int:
    if isinstance(value, bool):
        return default
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return number if number >= minimum else default


def _coerce_bool(value: Any, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.lower() in ("true", "yes", "on", "false", "no", "off"):
        return value.lower() in ("true", "yes", "on")
    return default


def _coerce_str(value: Any, default: str) -> str:
    if value is None:
        return ""
    if isinstance(value, (str, int, float)) and not isinstance(value, bool):
        return str(value)
    return default


def parse_style(value: str) -> Style | str:
    """Parse a Rich style string from preferences; an invalid one renders unstyled."""
    if not value:
        return ""
    try:
        return Style.parse(value)
    except StyleSyntaxError:
        logger.debug("ignoring invalid style %r", value)
        return ""


def merge_preferences(prefs: Preferences, data: Any) -> Preferences:
    """Apply a parsed YAML mapping onto *prefs*.

    Every recognised option is listed here; unknown keys are ignored and
    values of the wrong type keep the current setting.
    """
    if not isinstance(data, dict):
        return prefs

    sdata = data.get("storage")
    if isinstance(sdata, dict):
        s = prefs.storage
        if "data_dir" in sdata:
            s.data_dir = _coerce_str(sdata["data_dir"], s.data_dir)
        if "autosave" in sdata:
            s.autosave = _coerce_bool(sdata["autosave"], s.autosave)

    ddata = data.get("display")
    if isinstance(ddata, dict):
        d = prefs.display
        if "sign" in ddata:
            d.sign = _coerce_str(ddata["sign"], d.sign) or d.sign
        if "sign_style" in ddata:
            d.sign_style = _coerce_str(ddata["sign_style"], d.sign_style)
        if "note_style" in ddata:
            d.note_style = _coerce_str(ddata["note_style"], d.note_style)
        if "line_style" in ddata:
            d.line_style = _coerce_str(ddata["line_style"], d.line_style)
        if "location_width" in ddata:
            d.location_width = _coerce_int(
                ddata["location_width"], d.location_width, minimum=1
            )
        if "note_preview_length" in ddata:
            d.note_preview_length = _coerce_int(
                ddata["note_preview_length"], d.note_preview_length, minimum=1
            )

    tdata = data.get("timing")
    if isinstance(tdata, dict):
        t = prefs.timing
        if "reconcile_delay_ms" in tdata:
            t.reconcile_delay_ms = _coerce_int(tdata["reconcile_delay_ms"], t.reconcile_delay_ms)
        if "save_delay_ms" in tdata:
            t.save_delay_ms = _coerce_int(tdata["save_delay_ms"], t.save_delay_ms)

    pdata = data.get("picker")
    if isinstance(pdata, dict):
        p = prefs.picker
        for key in ("open", "delete", "edit_annotation"):
            if key in pdata:
                value = _coerce_str(pdata[key], getattr(p, key))
                if value:
                    setattr(p, key, value)

    edata = data.get("export")
    if isinstance(edata, dict):
        if "append_annotations" in edata:
            prefs.export.append_annotations = _coerce_bool(
                edata["append_annotations"], prefs.export.append_annotations
            )

    return prefs


def load_preferences(path: Path | None = None) -> Preferences:
    """Load preferences from YAML file.

    Falls back to sensible defaults if the file doesn't exist or is invalid.
    Creates a default preferences file on first run.
    """
    env_path = os.environ.get("WAYMARK_PREFERENCES")
    path = path or (Path(env_path) if env_path else PREFS_PATH)
    prefs = Preferences()

    if path.exists():
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
            merge_preferences(prefs, data)
        except (OSError, UnicodeDecodeError, yaml.YAMLError):
            logger.debug("failed to parse preferences %s", path, exc_info=True)
            return Preferences()
    else:
        # Create default file for user to customize
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(_DEFAULT_YAML, encoding="utf-8")
        except OSError:
            logger.debug("could not write default preferences to %s", path, exc_info=True)

    return prefs
