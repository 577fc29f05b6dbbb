"""Interactive bookmark browser (Textual).

Lists every bookmark for the current repository/branch.  Selecting a row
exits the app and returns the bookmark; the configured picker keys delete
a bookmark or edit its annotation in place.
"""

from __future__ import annotations

from rich.text import Text
from textual import events
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Vertical
from textual.screen import ModalScreen
from textual.widgets import Footer, Input, OptionList, Static
from textual.widgets.option_list import Option

from .core.bookmark import Bookmark
from .core.session import BookmarkSession
from .features.export import PickerItem, build_picker_items, display_path, truncate_note
from .preferences import parse_style


class AnnotationScreen(ModalScreen[str | None]):
    """Prompt for a bookmark annotation.  Dismisses with the text, or ``None`` on Esc."""

    DEFAULT_CSS = """
    AnnotationScreen {
        align: center middle;
    }
    #annotation-modal {
        width: 70;
        height: auto;
        border: round $accent;
        padding: 1 2;
        background: $surface;
    }
    """

    BINDINGS = [
        Binding("escape", "cancel", show=False),
    ]

    def __init__(self, location: str, default: str = "") -> None:
        super().__init__()
        self._location = location
        self._default = default

    def compose(self) -> ComposeResult:
        with Vertical(id="annotation-modal"):
            yield Static(f"Annotation for {self._location}", id="annotation-title")
            yield Input(value=self._default, placeholder="Annotation", id="annotation-input")

    def on_mount(self) -> None:
        self.query_one("#annotation-input", Input).focus()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        if event.input.id == "annotation-input":
            self.dismiss(event.value)

    def action_cancel(self) -> None:
        self.dismiss(None)


class BookmarkBrowserApp(App[Bookmark | None]):
    """Browse, delete and annotate bookmarks."""

    TITLE = "waymark"

    BINDINGS = [
        Binding("escape", "quit", "Quit", show=True),
    ]

    def __init__(self, session: BookmarkSession, cwd: str | None = None) -> None:
        super().__init__()
        self.session = session
        self.cwd = cwd
        self._items: dict[str, PickerItem] = {}

    def compose(self) -> ComposeResult:
        yield Static(id="browser-title")
        yield OptionList(id="bookmark-list")
        yield Footer()

    def on_mount(self) -> None:
        # Document edits made while the browser runs are debounced on its loop
        self.session.use_timer(self.set_timer)
        if not self.session.bookmarks():
            self.notify("No bookmarks found")
            self.exit(None)
            return
        self.refresh_items()
        self.query_one("#bookmark-list", OptionList).focus()

    # ── List rendering ──────────────────────────────────────────

    def _render_item(self, item: PickerItem) -> Text:
        display = self.session.prefs.display
        location = f"{display_path(item.file, self.cwd)}:{item.line}"
        width = display.location_width
        if len(location) > width:
            location = location[: width - 1] + "…"
        row = Text(style=parse_style(display.line_style))
        row.append(f"{display.sign} ", style=parse_style(display.sign_style))
        row.append(location.ljust(width), style="bold")
        if item.note:
            row.append(" ")
            row.append(
                truncate_note(item.note, display.note_preview_length),
                style=parse_style(display.note_style),
            )
        return row

    def refresh_items(self) -> None:
        option_list = self.query_one("#bookmark-list", OptionList)
        highlighted = option_list.highlighted
        items = build_picker_items(self.session.sorted_bookmarks(), self.cwd)
        self._items = {item.id: item for item in items}

        option_list.clear_options()
        for item in items:
            option_list.add_option(Option(self._render_item(item), id=item.id))
        if items:
            index = min(highlighted or 0, len(items) - 1)
            option_list.highlighted = index
        self.query_one("#browser-title", Static).update(
            f" Bookmarks ({len(items)})"
        )

    def _highlighted_item(self) -> PickerItem | None:
        option_list = self.query_one("#bookmark-list", OptionList)
        if option_list.highlighted is None or option_list.option_count == 0:
            return None
        option = option_list.get_option_at_index(option_list.highlighted)
        return self._items.get(option.id or "")

    # ── Actions ─────────────────────────────────────────────────

    def on_option_list_option_selected(self, event: OptionList.OptionSelected) -> None:
        if event.option.id is not None:
            self.exit(self.session.registry.find_by_id(event.option.id))

    def on_key(self, event: events.Key) -> None:
        if isinstance(self.screen, AnnotationScreen):
            return
        keys = self.session.prefs.picker
        if event.key == keys.delete:
            event.stop()
            self.action_delete_bookmark()
        elif event.key == keys.edit_annotation:
            event.stop()
            self.action_edit_annotation()
        elif event.key == keys.open and keys.open != "enter":
            # "enter" already reaches on_option_list_option_selected
            event.stop()
            item = self._highlighted_item()
            if item is not None:
                self.exit(self.session.registry.find_by_id(item.id))

    def action_delete_bookmark(self) -> None:
        item = self._highlighted_item()
        if item is None:
            return
        if not self.session.delete_by_id(item.id):
            self.notify("Failed to delete bookmark", severity="warning")
            return
        if not self.session.bookmarks():
            self.notify("No bookmarks remaining")
            self.exit(None)
            return
        self.refresh_items()

    def action_edit_annotation(self) -> None:
        item = self._highlighted_item()
        if item is None:
            return
        default = item.note or ""

        def apply(value: str | None) -> None:
            # Esc, or an empty submit when there was nothing to clear
            if value is None or (value == "" and default == ""):
                return
            self.session.annotate(item.file, item.line, value)
            self.refresh_items()

        self.push_screen(AnnotationScreen(f"{item.relpath}:{item.line}", default), apply)


def run_browser(session: BookmarkSession, cwd: str | None = None) -> Bookmark | None:
    """Run the browser and return the selected bookmark (``None`` if cancelled).

    The session goes back to synchronous mode once the app has exited.
    """
    try:
        return BookmarkBrowserApp(session, cwd=cwd).run()
    finally:
        session.use_timer(None)
