"""Shared test fixtures for the waymark test suite."""

from __future__ import annotations

from pathlib import Path

import pytest

from waymark.core.document import TextDocument, Workspace
from waymark.core.session import BookmarkSession
from waymark.features.git_integration import RepoContext
from waymark.preferences import Preferences


# -- Timers --------------------------------------------------------------------


class FakeTimer:
    """Stand-in for a Textual/asyncio timer handle."""

    def __init__(self, delay: float, callback) -> None:
        self.delay = delay
        self.callback = callback
        self.stopped = False
        self.fired = False

    def stop(self) -> None:
        self.stopped = True

    @property
    def active(self) -> bool:
        return not self.stopped and not self.fired


class FakeTimers:
    """``set_timer`` factory that records timers and fires them on demand."""

    def __init__(self) -> None:
        self.timers: list[FakeTimer] = []

    def __call__(self, delay: float, callback) -> FakeTimer:
        timer = FakeTimer(delay, callback)
        self.timers.append(timer)
        return timer

    @property
    def active(self) -> list[FakeTimer]:
        return [t for t in self.timers if t.active]

    def fire_all(self) -> int:
        fired = 0
        for timer in list(self.active):
            timer.fired = True
            timer.callback()
            fired += 1
        return fired


@pytest.fixture
def timers() -> FakeTimers:
    return FakeTimers()


# -- Documents -----------------------------------------------------------------


def numbered_lines(count: int) -> list[str]:
    return [f"line {i}" for i in range(1, count + 1)]


@pytest.fixture
def source_file(tmp_path: Path) -> Path:
    """A 10-line file inside the fake repository."""
    path = tmp_path / "repo" / "src" / "main.py"
    path.parent.mkdir(parents=True)
    path.write_text("\n".join(numbered_lines(10)) + "\n", encoding="utf-8")
    return path


@pytest.fixture
def document(source_file: Path) -> TextDocument:
    return TextDocument.open(source_file)


# -- Sessions ------------------------------------------------------------------


@pytest.fixture
def repo_context(tmp_path: Path) -> RepoContext:
    return RepoContext(root=str(tmp_path / "repo"), branch="main")


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    return tmp_path / "data"


@pytest.fixture
def make_session(data_dir: Path, repo_context: RepoContext):
    """Build sessions bound to the fake repository and a temp data dir."""

    def factory(**kwargs) -> BookmarkSession:
        kwargs.setdefault("data_dir", data_dir)
        kwargs.setdefault("resolve", lambda cwd: repo_context)
        kwargs.setdefault("workspace", Workspace())
        prefs = kwargs.pop("prefs", None) or Preferences()
        return BookmarkSession(prefs, **kwargs)

    return factory
