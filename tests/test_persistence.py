"""Tests for the JSON document backend."""

import json
import os

import pytest

from canary.errors import StoreLoadError
from canary.models import Category, StoreState
from canary.persistence import JsonDocumentBackend


class TestLoad:
    def test_missing_file_gives_empty_state(self, tmp_path):
        state = JsonDocumentBackend(str(tmp_path / "db.json")).load()
        assert state.total_messages == 0
        assert state.all_records() == []

    def test_round_trip_through_disk(self, tmp_path, populated_state):
        backend = JsonDocumentBackend(str(tmp_path / "db.json"))
        backend.save(populated_state)
        loaded = backend.load()
        assert loaded.total_messages == populated_state.total_messages
        assert loaded.all_records() == populated_state.all_records()

    def test_reads_existing_camel_case_document(self, tmp_path):
        path = tmp_path / "db.json"
        path.write_text(json.dumps({
            "totalMessages": 3,
            "unhandledMessages": [{"timestamp": 1, "room": "lobby", "rawMessage": "|x"}],
            "undeserializableMessages": [],
            "unserializableMessages": [],
            "notEqualMessages": [{
                "timestamp": 2,
                "room": "lobby",
                "rawMessage": "|foo|bar",
                "deserializedMessage": [{"a": "bar"}, None],
                "serializedMessage": "|foo|baz",
            }],
        }))
        state = JsonDocumentBackend(str(path)).load()
        assert state.total_messages == 3
        assert state.counts()[Category.INEQUAL] == 1

    def test_missing_sections_default_to_empty(self, tmp_path):
        path = tmp_path / "db.json"
        path.write_text("{}")
        state = JsonDocumentBackend(str(path)).load()
        assert state.total_messages == 0
        assert state.counts() == {category: 0 for category in Category}

    def test_invalid_json_raises(self, tmp_path):
        path = tmp_path / "db.json"
        path.write_text("{not json")
        with pytest.raises(StoreLoadError):
            JsonDocumentBackend(str(path)).load()

    def test_malformed_entry_is_skipped(self, tmp_path):
        path = tmp_path / "db.json"
        path.write_text(json.dumps({
            "totalMessages": 4,
            "unhandledMessages": [{"timestamp": 1, "room": "lobby", "rawMessage": "|x"}],
            "undeserializableMessages": [
                {"timestamp": 2, "room": "lobby"},
                {"timestamp": 3, "room": "lobby", "rawMessage": "|c|", "errors": ["bad"]},
            ],
            "notEqualMessages": [{
                "timestamp": 4,
                "room": "lobby",
                "rawMessage": "|foo|bar",
                "deserializedMessage": [{"a": "bar"}],
                "serializedMessage": "|foo|baz",
            }],
        }))
        backend = JsonDocumentBackend(str(path))
        state = backend.load()

        assert backend.skipped == 2
        assert state.total_messages == 4
        assert [r.raw_message for r in state.all_records()] == ["|x", "|c|"]

    def test_non_object_document_raises(self, tmp_path):
        path = tmp_path / "db.json"
        path.write_text(json.dumps([1, 2, 3]))
        with pytest.raises(StoreLoadError):
            JsonDocumentBackend(str(path)).load()

    def test_section_that_is_not_a_list_raises(self, tmp_path):
        path = tmp_path / "db.json"
        path.write_text(json.dumps({"totalMessages": 1, "undeserializableMessages": {"oops": 1}}))
        with pytest.raises(StoreLoadError) as excinfo:
            JsonDocumentBackend(str(path)).load()
        assert "undeserializableMessages" in str(excinfo.value)

    def test_negative_total_is_rejected(self, tmp_path):
        path = tmp_path / "db.json"
        path.write_text(json.dumps({"totalMessages": -1}))
        with pytest.raises(StoreLoadError):
            JsonDocumentBackend(str(path)).load()


class TestSave:
    def test_creates_parent_directory(self, tmp_path):
        path = tmp_path / "nested" / "dir" / "db.json"
        JsonDocumentBackend(str(path)).save(StoreState(total_messages=5))
        assert json.loads(path.read_text())["totalMessages"] == 5

    def test_overwrites_whole_document(self, tmp_path, populated_state):
        path = tmp_path / "db.json"
        backend = JsonDocumentBackend(str(path))
        backend.save(populated_state)
        backend.save(StoreState(total_messages=1))
        document = json.loads(path.read_text())
        assert document["totalMessages"] == 1
        assert document["unhandledMessages"] == []

    def test_no_temp_files_left_behind(self, tmp_path, populated_state):
        backend = JsonDocumentBackend(str(tmp_path / "db.json"))
        backend.save(populated_state)
        assert os.listdir(tmp_path) == ["db.json"]

    def test_failed_save_keeps_previous_document(self, tmp_path, populated_state):
        path = tmp_path / "db.json"
        backend = JsonDocumentBackend(str(path))
        backend.save(populated_state)

        broken = StoreState(total_messages=1)
        broken.records[Category.UNHANDLED].append(object())
        with pytest.raises(AttributeError):
            backend.save(broken)

        assert json.loads(path.read_text())["totalMessages"] == 10
        assert os.listdir(tmp_path) == ["db.json"]
