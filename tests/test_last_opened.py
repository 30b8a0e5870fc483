"""Tests for the last-opened side store."""

import json
from pathlib import Path

from stepnote.store.last_opened import LastOpenedStore


class TestLastOpenedStore:
    def test_missing_file_reads_none(self, tmp_path: Path):
        store = LastOpenedStore(tmp_path / "last_opened.json")
        assert store.get("p1") is None

    def test_set_survives_new_instance(self, tmp_path: Path):
        path = tmp_path / "nested" / "last_opened.json"
        LastOpenedStore(path).set("p1", "s1")
        assert LastOpenedStore(path).get("p1") == "s1"
        assert json.loads(path.read_text()) == {"p1": "s1"}

    def test_projects_are_independent(self, tmp_path: Path):
        store = LastOpenedStore(tmp_path / "last_opened.json")
        store.set("p1", "s1")
        store.set("p2", "s2")
        store.forget("p1")
        assert store.get("p1") is None
        assert store.get("p2") == "s2"

    def test_set_none_clears(self, tmp_path: Path):
        store = LastOpenedStore(tmp_path / "last_opened.json")
        store.set("p1", "s1")
        store.set("p1", None)
        assert store.get("p1") is None

    def test_corrupt_file_reads_empty(self, tmp_path: Path):
        path = tmp_path / "last_opened.json"
        path.write_text("{not json")
        store = LastOpenedStore(path)
        assert store.get("p1") is None
        store.set("p1", "s1")
        assert store.get("p1") == "s1"

    def test_pointer_not_validated(self, tmp_path: Path):
        store = LastOpenedStore(tmp_path / "last_opened.json")
        store.set("p1", "deleted-step")
        assert store.get("p1") == "deleted-step"
