"""Extracted feature modules: git identity and export projections."""

from .export import (
    PickerItem,
    QuickfixItem,
    build_picker_items,
    display_path,
    format_locations,
    format_quickfix,
    quickfix_items,
    relative_path,
    truncate_note,
)
from .git_integration import (
    RepoContext,
    git_branch,
    git_root,
    resolve_context,
    run_git,
    storage_key,
)

__all__ = [
    "PickerItem",
    "QuickfixItem",
    "RepoContext",
    "build_picker_items",
    "display_path",
    "format_locations",
    "format_quickfix",
    "git_branch",
    "git_root",
    "quickfix_items",
    "relative_path",
    "resolve_context",
    "run_git",
    "storage_key",
    "truncate_note",
]
