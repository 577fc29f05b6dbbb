"""Textual Pilot tests for the bookmark browser.

Tests use ``app.run_test()`` to spin up a headless Textual app over a
real session backed by a temp data directory.
"""

from __future__ import annotations

import pytest
from textual.widgets import OptionList

from waymark.app import AnnotationScreen, BookmarkBrowserApp, run_browser
from waymark.core.document import Workspace


# ── Fixtures ────────────────────────────────────────────────────────


@pytest.fixture()
def session(make_session, source_file):
    session = make_session()
    session.load()
    session.toggle(str(source_file), 2)
    session.toggle(str(source_file), 7)
    return session


@pytest.fixture()
def app(session, tmp_path):
    return BookmarkBrowserApp(session, cwd=str(tmp_path))


# ── Mount ───────────────────────────────────────────────────────────


class TestBrowserMount:
    @pytest.mark.asyncio
    async def test_lists_bookmarks(self, app):
        async with app.run_test(size=(120, 30)):
            option_list = app.query_one("#bookmark-list", OptionList)
            assert option_list.option_count == 2
            assert app.focused is option_list

    @pytest.mark.asyncio
    async def test_rows_sorted_by_line(self, app, session):
        async with app.run_test(size=(120, 30)):
            option_list = app.query_one("#bookmark-list", OptionList)
            ids = [option_list.get_option_at_index(i).id for i in range(2)]
            assert ids == [bm.id for bm in session.sorted_bookmarks()]

    @pytest.mark.asyncio
    async def test_empty_session_exits(self, make_session):
        empty = make_session()
        empty.load()
        app = BookmarkBrowserApp(empty)
        async with app.run_test(size=(120, 30)):
            pass
        assert app.return_value is None


class TestBrowserTimers:
    @pytest.mark.asyncio
    async def test_edits_are_debounced_on_the_app_loop(self, make_session, source_file):
        workspace = Workspace()
        doc = workspace.open(source_file)
        session = make_session(workspace=workspace)
        session.load()
        bookmark = session.toggle(doc.path, 2).bookmark
        assert session.debounced is False

        app = BookmarkBrowserApp(session)
        async with app.run_test(size=(120, 30)) as pilot:
            assert session.debounced is True
            doc.insert_lines(1, ["x"])
            assert bookmark.line == 2
            await pilot.pause(0.3)
            assert bookmark.line == 3

    def test_run_browser_restores_synchronous_mode(self, session, monkeypatch):
        def fake_run(self):
            self.session.use_timer(lambda delay, callback: None)
            return None

        monkeypatch.setattr(BookmarkBrowserApp, "run", fake_run)
        assert run_browser(session) is None
        assert session.debounced is False


# ── Keys ────────────────────────────────────────────────────────────


class TestBrowserKeys:
    @pytest.mark.asyncio
    async def test_enter_selects(self, app, session):
        first = session.sorted_bookmarks()[0]
        async with app.run_test(size=(120, 30)) as pilot:
            await pilot.press("enter")
        assert app.return_value is first

    @pytest.mark.asyncio
    async def test_escape_cancels(self, app):
        async with app.run_test(size=(120, 30)) as pilot:
            await pilot.press("escape")
        assert app.return_value is None

    @pytest.mark.asyncio
    async def test_delete_key(self, app, session):
        async with app.run_test(size=(120, 30)) as pilot:
            await pilot.press("d")
            await pilot.pause()
            option_list = app.query_one("#bookmark-list", OptionList)
            assert option_list.option_count == 1
            assert [bm.line for bm in session.bookmarks()] == [7]

    @pytest.mark.asyncio
    async def test_deleting_last_bookmark_exits(self, app, session):
        async with app.run_test(size=(120, 30)) as pilot:
            await pilot.press("d")
            await pilot.pause()
            await pilot.press("d")
        assert session.bookmarks() == []
        assert app.return_value is None

    @pytest.mark.asyncio
    async def test_edit_annotation(self, app, session):
        async with app.run_test(size=(120, 30)) as pilot:
            await pilot.press("a")
            await pilot.pause()
            assert isinstance(app.screen, AnnotationScreen)
            # Letters that double as browser keys must reach the input
            await pilot.press("d", "a", "t", "a")
            await pilot.press("enter")
            await pilot.pause()
            assert not isinstance(app.screen, AnnotationScreen)
        first = session.sorted_bookmarks()[0]
        assert first.note == "data"
        assert len(session.bookmarks()) == 2

    @pytest.mark.asyncio
    async def test_edit_annotation_cancelled(self, app, session):
        async with app.run_test(size=(120, 30)) as pilot:
            await pilot.press("a")
            await pilot.pause()
            await pilot.press("x", "escape")
            await pilot.pause()
            assert not isinstance(app.screen, AnnotationScreen)
        assert all(bm.note is None for bm in session.bookmarks())

    @pytest.mark.asyncio
    async def test_custom_open_key(self, app, session):
        session.prefs.picker.open = "o"
        first = session.sorted_bookmarks()[0]
        async with app.run_test(size=(120, 30)) as pilot:
            await pilot.press("o")
        assert app.return_value is first
