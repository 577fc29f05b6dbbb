"""Entry point for the waymark CLI."""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path

from rich.console import Console
from rich.table import Table

from .constants import VERSION
from .core.session import BookmarkSession
from .errors import ValidationError, WaymarkError
from .features.export import (
    format_locations,
    format_quickfix,
    quickfix_items,
    relative_path,
    truncate_note,
)
from .log import logger
from .preferences import load_preferences, parse_style


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="waymark",
        description="Line bookmarks that follow your edits, stored per git repository and branch.",
    )
    parser.add_argument("--version", "-V", action="version", version=f"waymark {VERSION}")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging to stderr")
    parser.add_argument("--data-dir", type=Path, help="Override the snapshot directory")
    parser.add_argument("--preferences", type=Path, help="Preferences YAML file")

    sub = parser.add_subparsers(dest="command")

    p_toggle = sub.add_parser("toggle", help="Add or remove the bookmark at FILE:LINE")
    p_toggle.add_argument("file")
    p_toggle.add_argument("line", type=int)

    p_annotate = sub.add_parser("annotate", help="Set (or clear) the note at FILE:LINE")
    p_annotate.add_argument("file")
    p_annotate.add_argument("line", type=int)
    p_annotate.add_argument("note", nargs="*", help="Annotation text (omit to clear)")

    p_delete = sub.add_parser("delete", help="Delete a bookmark by id")
    p_delete.add_argument("id")

    p_list = sub.add_parser("list", aliases=["ls"], help="List bookmarks")
    p_list.add_argument("-f", "--file", help="Only bookmarks in this file")
    p_list.add_argument("--json", action="store_true", dest="as_json", help="Output as JSON")

    for name, help_text in (("next", "Next bookmark after LINE"), ("prev", "Previous bookmark before LINE")):
        p_nav = sub.add_parser(name, help=help_text)
        p_nav.add_argument("file")
        p_nav.add_argument("line", type=int)

    p_clear = sub.add_parser("clear", help="Remove every bookmark in FILE")
    p_clear.add_argument("file")

    sub.add_parser("clear-all", help="Remove every bookmark for this repository/branch")

    p_export = sub.add_parser("export", help="Print bookmarks for another tool")
    p_export.add_argument("format", choices=["locations", "quickfix"])
    p_export.add_argument("-f", "--file", help="Only bookmarks in this file")
    p_export.add_argument(
        "--no-annotations", action="store_true", help="Leave notes out of the output"
    )

    sub.add_parser("key", help="Show the storage key and snapshot path")
    sub.add_parser("browse", help="Interactive bookmark browser")
    return parser


def _open_if_file(session: BookmarkSession, path: str) -> None:
    """Open *path* so line numbers are checked against its real length."""
    if os.path.isfile(path):
        try:
            session.workspace.open(path)
        except (OSError, UnicodeDecodeError):
            logger.debug("could not open %s for bounds checking", path, exc_info=True)


def _print_list(console: Console, session: BookmarkSession, args: argparse.Namespace) -> None:
    bookmarks = (
        session.bookmarks_for_file(args.file) if args.file else session.sorted_bookmarks()
    )
    if args.as_json:
        print(json.dumps([bm.to_dict() for bm in bookmarks], indent=2))
        return
    if not bookmarks:
        console.print("No bookmarks.")
        return
    display = session.prefs.display
    width = display.note_preview_length
    table = Table(show_header=True, header_style="bold")
    table.add_column("ID", style="dim")
    table.add_column("Location")
    table.add_column("Note", style=parse_style(display.note_style))
    for bm in bookmarks:
        table.add_row(bm.id, f"{relative_path(bm.file)}:{bm.line}", truncate_note(bm.note, width))
    console.print(table)


def run(args: argparse.Namespace, console: Console) -> int:
    """Execute one parsed command.  Returns the process exit code."""
    prefs = load_preferences(args.preferences)
    session = BookmarkSession(prefs, data_dir=args.data_dir, notify=lambda msg: console.print(msg, style="yellow"))

    session.load()
    if session.context is None:
        return 1

    try:
        if args.command == "key":
            console.print(f"{session.context.key}  {session.store.path}")
        elif args.command == "toggle":
            path = os.path.abspath(args.file)
            _open_if_file(session, path)
            result = session.toggle(path, args.line)
            verb = "Added" if result.created else "Removed"
            console.print(f"{verb} bookmark at {relative_path(path)}:{args.line}")
        elif args.command == "annotate":
            path = os.path.abspath(args.file)
            _open_if_file(session, path)
            bookmark = session.annotate(path, args.line, " ".join(args.note))
            if bookmark is None:
                console.print("Nothing to annotate.")
            elif bookmark.note:
                console.print(f"Annotated {relative_path(path)}:{args.line}: {bookmark.note}")
            else:
                console.print(f"Cleared annotation at {relative_path(path)}:{args.line}")
        elif args.command == "delete":
            bookmark = session.require(args.id)
            session.delete_by_id(bookmark.id)
            console.print(f"Deleted {bookmark.id} ({relative_path(bookmark.file)}:{bookmark.line})")
        elif args.command in ("list", "ls"):
            _print_list(console, session, args)
        elif args.command in ("next", "prev"):
            step = session.next if args.command == "next" else session.prev
            bookmark = step(args.file, args.line)
            if bookmark is None:
                console.print("No bookmarks in this file.")
                return 1
            print(f"{bookmark.file}:{bookmark.line}")
        elif args.command == "clear":
            count = session.clear_file(args.file)
            console.print(f"Removed {count} bookmark(s) from {args.file}")
        elif args.command == "clear-all":
            count = session.clear_all()
            console.print(f"Removed {count} bookmark(s)")
        elif args.command == "export":
            append = prefs.export.append_annotations and not args.no_annotations
            only = os.path.abspath(args.file) if args.file else None
            bookmarks = session.sorted_bookmarks()
            if args.format == "locations":
                output = format_locations(bookmarks, append_annotations=append, file=only)
            else:
                output = format_quickfix(
                    quickfix_items(bookmarks, append_annotations=append, file=only)
                )
            if output:
                print(output)
        elif args.command == "browse":
            from .app import run_browser

            selected = run_browser(session)
            if selected is not None:
                print(f"{selected.file}:{selected.line}")
    except ValidationError as exc:
        console.print(f"Invalid {exc.field}: {exc.message}", style="red")
        return 1
    except WaymarkError as exc:
        console.print(str(exc), style="red")
        return 1
    finally:
        session.shutdown()
    return 0


def main(argv: list[str] | None = None) -> None:
    """Run the waymark CLI."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    console = Console(stderr=False, highlight=False)
    sys.exit(run(args, console))


if __name__ == "__main__":
    main()
