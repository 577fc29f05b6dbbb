"""Bookmark session — wires registry, tracker, store and change events.

The :class:`BookmarkSession` owns every moving part for one working
directory: the registry, the position tracker, the query engine, the
snapshot store for the current repository/branch and the debounce timers.
Front ends (CLI, Textual browser, editor bridges) talk to it only.

It communicates back through an optional ``notify`` callback and the
registry's event stream, keeping it decoupled from any UI.
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable

from ..constants import SAVE_TIMER_KEY
from ..errors import NotFoundError, ValidationError
from ..features.git_integration import RepoContext, resolve_context
from ..log import logger
from ..persistence.bookmarks import BookmarkStore
from ..preferences import Preferences
from .bookmark import Bookmark
from .debounce import Debouncer, SetTimer
from .document import (
    DocumentEvent,
    DocumentEventKind,
    TextDocument,
    Workspace,
    WorkspaceEventKind,
    normalize_path,
)
from .navigation import BookmarkQuery
from .registry import BookmarkRegistry, Listener, ToggleResult
from .tracker import PositionTracker

ContextResolver = Callable[[str | None], RepoContext | None]


class BookmarkSession:
    """Bookmarks for one repository/branch, kept in step with open documents.

    Parameters
    ----------
    prefs:
        Loaded :class:`Preferences` (defaults if omitted).
    workspace:
        Open documents.  Documents opened later are picked up automatically.
    set_timer:
        Timer factory for debouncing (e.g. ``app.set_timer``).  Without
        one, reconciliation runs synchronously on every change and
        write-back waits for hide/close/shutdown.
    resolve:
        Returns the :class:`RepoContext` for a directory.
    notify:
        Callback for user-facing diagnostics.
    """

    def __init__(
        self,
        prefs: Preferences | None = None,
        *,
        workspace: Workspace | None = None,
        set_timer: SetTimer | None = None,
        resolve: ContextResolver | None = None,
        cwd: str | None = None,
        data_dir: Path | None = None,
        notify: Callable[[str], object] | None = None,
    ) -> None:
        self.prefs = prefs or Preferences()
        self.registry = BookmarkRegistry()
        self.tracker = PositionTracker(self.registry)
        self.query = BookmarkQuery(self.registry)
        self.workspace = workspace or Workspace()
        self.cwd = cwd
        self.data_dir = Path(data_dir) if data_dir else self.prefs.storage.resolved_data_dir
        self.context: RepoContext | None = None
        self.loaded = False
        self.dirty = False
        self._mutated = False

        self._resolve = resolve or resolve_context
        self._notify = notify
        self._reconcile_timers: Debouncer | None = None
        self._save_timers: Debouncer | None = None
        self._install_timers(set_timer)

        self._document_unsubs: dict[str, Callable[[], None]] = {}
        self._workspace_unsub = self.workspace.subscribe(self._on_workspace_event)
        for document in self.workspace.documents():
            self._watch(document)

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    def _warn(self, message: str) -> None:
        logger.warning(message)
        if self._notify is not None:
            self._notify(message)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Receive registry create/update/delete events (presentation hook)."""
        return self.registry.subscribe(listener)

    # ------------------------------------------------------------------
    # Timers
    # ------------------------------------------------------------------

    def _install_timers(self, set_timer: SetTimer | None) -> None:
        if set_timer is None:
            self._reconcile_timers = None
            self._save_timers = None
        else:
            self._reconcile_timers = Debouncer(set_timer, self.prefs.timing.reconcile_delay_ms)
            self._save_timers = Debouncer(set_timer, self.prefs.timing.save_delay_ms)

    @property
    def debounced(self) -> bool:
        return self._reconcile_timers is not None

    def use_timer(self, set_timer: SetTimer | None) -> None:
        """Switch to a new timer factory, or to synchronous mode with ``None``.

        Work pending on the old timers runs now, so nothing scheduled
        against a host that is going away is lost.
        """
        save_pending = self._save_timers is not None and self._save_timers.is_pending(
            SAVE_TIMER_KEY
        )
        for timers in (self._reconcile_timers, self._save_timers):
            if timers is not None:
                timers.cancel_all()
        for document in self.workspace.documents():
            self.tracker.reconcile(document)
        self._install_timers(set_timer)
        if save_pending:
            self.save()

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    @property
    def store(self) -> BookmarkStore | None:
        if self.context is None:
            return None
        return BookmarkStore.for_key(self.data_dir, self.context.key)

    def load(self) -> int:
        """Load the snapshot for the current repository/branch.

        Returns the number of bookmarks loaded.  Outside a repository the
        registry is left untouched and 0 is returned.
        """
        context = self._resolve(self.cwd)
        if context is None:
            self._warn("waymark: not in a git repository (or no current branch)")
            return 0
        self.context = context
        store = BookmarkStore.for_key(self.data_dir, context.key)
        bookmarks = store.load()
        if store.last_issue is not None:
            self._warn(
                f"waymark: could not read {store.path} ({store.last_issue.value});"
                " starting with no bookmarks"
            )

        for document in self.workspace.documents():
            self.tracker.release(document)
        count = self.registry.replace_all(bookmarks)
        for document in self.workspace.documents():
            self.tracker.attach_all(document)

        self.loaded = True
        self.dirty = False
        self._mutated = False
        logger.debug("loaded %d bookmark(s) for %s@%s", count, context.root, context.branch)
        return count

    def save(self, *, force: bool = False) -> bool:
        """Reconcile open documents and write the snapshot.

        With no bookmarks in memory this is a no-op unless *force* is set
        (used after explicit deletes, and only once a snapshot was loaded),
        so an early save can never clobber a snapshot that hasn't been
        read yet.
        """
        if self._save_timers is not None:
            self._save_timers.cancel(SAVE_TIMER_KEY)
        for document in self.workspace.documents():
            self.tracker.reconcile(document)

        if len(self.registry) == 0 and not (force and self.loaded):
            logger.debug("no bookmarks in memory; skipping save")
            return False
        store = self.store
        if store is None:
            self._warn("waymark: could not determine storage path; bookmarks not saved")
            return False
        error = store.save(self.registry.all())
        if error is not None:
            self._warn(f"waymark: failed to save bookmarks: {error}")
            return False
        self.dirty = False
        self._mutated = False
        return True

    def _after_mutation(self) -> None:
        self.dirty = True
        self._mutated = True
        if self.prefs.storage.autosave and self.loaded:
            self.save(force=True)

    # ------------------------------------------------------------------
    # Bookmark operations
    # ------------------------------------------------------------------

    def _sync(self, path: str) -> TextDocument | None:
        """Bring the registry up to date for *path* before acting on it."""
        document = self.workspace.get(path)
        if document is not None:
            if self._reconcile_timers is not None:
                self._reconcile_timers.cancel(document.path)
            self.tracker.reconcile(document)
        return document

    @staticmethod
    def _check_bounds(document: TextDocument | None, line: int) -> None:
        """Reject a new bookmark past the end of an open document."""
        if document is not None and isinstance(line, int) and line > document.line_count:
            raise ValidationError(
                "line", f"line {line} out of range ({document.line_count} lines)"
            )

    def toggle(self, file: str, line: int) -> ToggleResult:
        """Create or delete the bookmark at *file*:*line*.

        Raises:
            ValidationError: for an invalid file/line, or a line beyond
                the end of an open document.
        """
        path = normalize_path(file)
        document = self._sync(path)
        if self.registry.find_at(path, line) is None:
            self._check_bounds(document, line)

        result = self.registry.toggle(path, line)
        if result.created:
            if document is not None:
                self.tracker.attach(document, result.bookmark)
        else:
            self.tracker.forget(result.bookmark, document)
        self._after_mutation()
        return result

    def annotate(self, file: str, line: int, note: str | None) -> Bookmark | None:
        """Set the note on the bookmark at *file*:*line*, creating one if needed.

        A blank note clears the annotation.  Returns the bookmark, or
        ``None`` when there was nothing to annotate or clear.

        Raises:
            ValidationError: as for :meth:`toggle` when a bookmark would be
                created.
        """
        path = normalize_path(file)
        document = self._sync(path)
        text = note if note and note.strip() else None
        bookmark = self.registry.find_at(path, line)
        if bookmark is None:
            if text is None:
                return None
            self._check_bounds(document, line)
            bookmark = self.registry.create(path, line, text)
            self.registry.insert(bookmark)
            if document is not None:
                self.tracker.attach(document, bookmark)
        else:
            self.registry.set_note(bookmark.id, text)
        self._after_mutation()
        return bookmark

    def require(self, bookmark_id: str) -> Bookmark:
        """Look up a bookmark by id.

        Raises:
            NotFoundError: no bookmark has that id.
        """
        bookmark = self.registry.find_by_id(bookmark_id)
        if bookmark is None:
            raise NotFoundError(f"no bookmark with id {bookmark_id}")
        return bookmark

    def delete_by_id(self, bookmark_id: str) -> bool:
        bookmark = self.registry.remove(bookmark_id)
        if bookmark is None:
            logger.debug("no bookmark with id %s", bookmark_id)
            return False
        self.tracker.forget(bookmark, self.workspace.get(bookmark.file))
        self._after_mutation()
        return True

    def clear_file(self, file: str) -> int:
        path = normalize_path(file)
        document = self.workspace.get(path)
        for bookmark in self.registry.for_file(path):
            self.tracker.forget(bookmark, document)
        count = self.registry.remove_all_for_file(path)
        if count:
            self._after_mutation()
        return count

    def clear_all(self) -> int:
        for bookmark in self.registry.all():
            self.tracker.forget(bookmark, self.workspace.get(bookmark.file))
        count = self.registry.remove_all()
        if count:
            self._after_mutation()
        return count

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def next(self, file: str, line: int) -> Bookmark | None:
        path = normalize_path(file)
        self._sync(path)
        return self.query.next(path, line)

    def prev(self, file: str, line: int) -> Bookmark | None:
        path = normalize_path(file)
        self._sync(path)
        return self.query.prev(path, line)

    def bookmarks(self) -> list[Bookmark]:
        return self.registry.all()

    def bookmarks_for_file(self, file: str) -> list[Bookmark]:
        return self.query.sorted_for_file(normalize_path(file))

    def sorted_bookmarks(self) -> list[Bookmark]:
        return self.query.all_sorted()

    # ------------------------------------------------------------------
    # Change notifications
    # ------------------------------------------------------------------

    def _watch(self, document: TextDocument) -> None:
        if document.path in self._document_unsubs:
            return
        self._document_unsubs[document.path] = document.subscribe(self._on_document_event)

    def _on_workspace_event(self, kind: WorkspaceEventKind, document: TextDocument) -> None:
        if kind is WorkspaceEventKind.OPENED:
            self.on_document_opened(document)

    def _on_document_event(self, event: DocumentEvent) -> None:
        if event.kind is DocumentEventKind.CHANGED:
            self.on_text_changed(event.document)
        elif event.kind is DocumentEventKind.HIDDEN:
            self.on_document_hidden(event.document)
        elif event.kind is DocumentEventKind.CLOSED:
            self.on_document_closed(event.document)

    def on_document_opened(self, document: TextDocument) -> None:
        self._watch(document)
        self.tracker.attach_all(document)

    def on_text_changed(self, document: TextDocument) -> None:
        """Debounced reconciliation for *document* plus debounced write-back."""
        self.dirty = True
        if self._reconcile_timers is None:
            self.tracker.reconcile(document)
        else:
            self._reconcile_timers.schedule(
                document.path, lambda: self._reconcile_if_open(document)
            )
        if self._save_timers is not None:
            self._save_timers.schedule(SAVE_TIMER_KEY, self.save)

    def _reconcile_if_open(self, document: TextDocument) -> None:
        if not document.closed:
            self.tracker.reconcile(document)

    def on_document_hidden(self, document: TextDocument) -> None:
        if self._reconcile_timers is not None:
            self._reconcile_timers.cancel(document.path)
        self.tracker.reconcile(document)
        self.save()

    def on_document_closed(self, document: TextDocument) -> None:
        """Fold the document's final positions in and write them out."""
        if self._reconcile_timers is not None:
            self._reconcile_timers.cancel(document.path)
        self.tracker.reconcile(document)
        self.save()
        self.tracker.release(document)
        unsubscribe = self._document_unsubs.pop(document.path, None)
        if unsubscribe is not None:
            unsubscribe()

    def shutdown(self) -> bool:
        """Cancel timers, reconcile everything and write a final snapshot."""
        for timers in (self._reconcile_timers, self._save_timers):
            if timers is not None:
                timers.cancel_all()
        # A pending explicit delete may legitimately leave nothing to save
        saved = self.save(force=self._mutated)
        for unsubscribe in self._document_unsubs.values():
            unsubscribe()
        self._document_unsubs.clear()
        self._workspace_unsub()
        return saved
