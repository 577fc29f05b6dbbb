"""Tests for snapshot persistence.

The store is tested for:
  1. load() on a non-existent file returns [] with no issue
  2. save() then load() round-trips
  3. every malformed snapshot shape is rejected with a distinct issue
  4. writes are atomic and never leave temp files behind
"""

from __future__ import annotations

import json
import os

import pytest

from waymark.core.bookmark import Bookmark, create_bookmark
from waymark.errors import PersistenceError
from waymark.persistence import BookmarkStore, LoadIssue, load_bookmarks, save_bookmarks
from waymark.persistence._base import JsonStore


@pytest.fixture
def store(tmp_path):
    return BookmarkStore.for_key(tmp_path / "data", "abcd1234")


def _write(store: BookmarkStore, payload) -> None:
    store.path.parent.mkdir(parents=True, exist_ok=True)
    if isinstance(payload, str):
        store.path.write_text(payload, encoding="utf-8")
    else:
        store.path.write_text(json.dumps(payload), encoding="utf-8")


# ---------------------------------------------------------------------------
# JsonStore base
# ---------------------------------------------------------------------------


class TestJsonStoreBase:
    def test_load_raw_missing_returns_none(self, tmp_path):
        assert JsonStore(tmp_path / "nope.json").load_raw() is None

    def test_load_raw_parses(self, tmp_path):
        path = tmp_path / "ok.json"
        path.write_text('{"x": [1, 2]}')
        assert JsonStore(path).load_raw() == {"x": [1, 2]}

    def test_load_raw_corrupt_raises_decode_error(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{not json")
        with pytest.raises(json.JSONDecodeError):
            JsonStore(path).load_raw()

    def test_load_raw_undecodable_raises_persistence_error(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_bytes(b"\xff\xfe\x00bad")
        with pytest.raises(PersistenceError):
            JsonStore(path).load_raw()

    def test_store_load_goes_through_load_raw(self, store, monkeypatch):
        calls = []

        def fake_load_raw(self):
            calls.append(self.path)
            return {"version": 1, "bookmarks": []}

        _write(store, "{}")
        monkeypatch.setattr(JsonStore, "load_raw", fake_load_raw)
        assert store.load() == []
        assert calls == [store.path]
        assert store.last_issue is None

    def test_save_raw_creates_parents(self, tmp_path):
        path = tmp_path / "a" / "b" / "store.json"
        JsonStore(path).save_raw({"x": 1})
        assert json.loads(path.read_text()) == {"x": 1}

    def test_save_raw_unencodable(self, tmp_path):
        path = tmp_path / "store.json"
        with pytest.raises(PersistenceError):
            JsonStore(path).save_raw({"x": object()})
        assert not path.exists()


# ---------------------------------------------------------------------------
# BookmarkStore
# ---------------------------------------------------------------------------


class TestRoundTrip:
    def test_missing_file(self, store):
        assert store.load() == []
        assert store.last_issue is None

    def test_save_then_load(self, store):
        bookmarks = [
            create_bookmark("/repo/a.py", 3, "first"),
            create_bookmark("/repo/b.py", 10),
        ]
        assert store.save(bookmarks) is None
        loaded = store.load()
        assert loaded == bookmarks
        assert store.last_issue is None

    def test_saved_shape(self, store):
        bm = create_bookmark("/repo/a.py", 3)
        bm.tracking_handle = 42
        store.save([bm])
        data = json.loads(store.path.read_text())
        assert data == {
            "version": 1,
            "bookmarks": [{"file": "/repo/a.py", "line": 3, "note": None, "id": bm.id}],
        }

    def test_save_creates_data_dir(self, store):
        assert not store.path.parent.exists()
        store.save([create_bookmark("/repo/a.py", 1)])
        assert store.path.exists()

    def test_save_empty_list(self, store):
        assert store.save([]) is None
        assert store.load() == []

    def test_module_helpers(self, tmp_path):
        bm = create_bookmark("/repo/a.py", 1)
        assert save_bookmarks([bm], tmp_path, "k") is None
        assert load_bookmarks(tmp_path, "k") == [bm]
        assert (tmp_path / "k.json").exists()


class TestLoadIssues:
    def test_malformed_json(self, store):
        _write(store, "{oops")
        assert store.load() == []
        assert store.last_issue is LoadIssue.MALFORMED

    def test_not_object(self, store):
        _write(store, [1, 2, 3])
        assert store.load() == []
        assert store.last_issue is LoadIssue.NOT_OBJECT

    def test_null_document(self, store):
        _write(store, "null")
        assert store.load() == []
        assert store.last_issue is LoadIssue.NOT_OBJECT

    def test_missing_version(self, store):
        _write(store, {"bookmarks": []})
        assert store.load() == []
        assert store.last_issue is LoadIssue.MISSING_VERSION

    @pytest.mark.parametrize("version", [2, 0, "1", True])
    def test_unsupported_version(self, store, version):
        _write(store, {"version": version, "bookmarks": []})
        assert store.load() == []
        assert store.last_issue is LoadIssue.UNSUPPORTED_VERSION

    def test_bookmarks_not_list(self, store):
        _write(store, {"version": 1, "bookmarks": {"a": 1}})
        assert store.load() == []
        assert store.last_issue is LoadIssue.BAD_BOOKMARKS

    def test_unreadable(self, store):
        store.path.parent.mkdir(parents=True)
        store.path.write_bytes(b"\xff\xfe\x00bad")
        assert store.load() == []
        assert store.last_issue is LoadIssue.UNREADABLE

    def test_issue_resets_on_next_load(self, store):
        _write(store, "{oops")
        store.load()
        store.save([])
        store.load()
        assert store.last_issue is None


class TestEntries:
    def test_invalid_entries_skipped(self, store):
        good = {"file": "/repo/a.py", "line": 2, "note": None, "id": "aaaa"}
        _write(
            store,
            {
                "version": 1,
                "bookmarks": [
                    good,
                    {"file": "/repo/a.py", "line": 0, "id": "bbbb"},
                    {"line": 3, "id": "cccc"},
                    "junk",
                ],
            },
        )
        loaded = store.load()
        assert loaded == [Bookmark("/repo/a.py", 2, "aaaa")]
        assert store.skipped == 3
        assert store.last_issue is None

    def test_duplicate_ids_skipped(self, store):
        entry = {"file": "/repo/a.py", "line": 2, "id": "same"}
        _write(store, {"version": 1, "bookmarks": [entry, dict(entry, line=5)]})
        loaded = store.load()
        assert [bm.line for bm in loaded] == [2]
        assert store.skipped == 1

    def test_null_and_empty_notes(self, store):
        _write(
            store,
            {
                "version": 1,
                "bookmarks": [
                    {"file": "/a", "line": 1, "note": None, "id": "1"},
                    {"file": "/a", "line": 2, "note": "", "id": "2"},
                    {"file": "/a", "line": 3, "id": "3"},
                ],
            },
        )
        assert [bm.note for bm in store.load()] == [None, None, None]


class TestAtomicWrite:
    def test_failed_replace_keeps_old_snapshot(self, store, monkeypatch):
        original = [create_bookmark("/repo/a.py", 1)]
        store.save(original)
        before = store.path.read_text()

        def fail_replace(src, dst):
            raise OSError("disk full")

        monkeypatch.setattr(os, "replace", fail_replace)
        error = store.save([create_bookmark("/repo/b.py", 2)])

        assert error is not None
        assert "disk full" in error
        assert store.path.read_text() == before
        assert sorted(p.name for p in store.path.parent.iterdir()) == [store.path.name]

    def test_no_temp_files_after_success(self, store):
        store.save([create_bookmark("/repo/a.py", 1)])
        store.save([create_bookmark("/repo/a.py", 2)])
        assert [p.name for p in store.path.parent.iterdir()] == [store.path.name]
