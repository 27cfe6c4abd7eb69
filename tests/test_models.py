"""Tests for record kinds and the store document format."""

import dataclasses

import pytest

from canary.models import (
    DOCUMENT_KEYS,
    Category,
    InequalRecord,
    UnhandledRecord,
    UnserializableRecord,
    record_from_dict,
)


class TestRecords:
    def test_each_kind_has_its_category(self, sample_records):
        assert [r.category for r in sample_records] == list(Category)

    def test_records_are_immutable(self):
        record = UnhandledRecord(1, "lobby", "|x")
        with pytest.raises(dataclasses.FrozenInstanceError):
            record.room = "other"

    def test_unhandled_document_form(self):
        assert UnhandledRecord(1, "lobby", "|x").to_dict() == {
            "timestamp": 1,
            "room": "lobby",
            "rawMessage": "|x",
        }

    def test_inequal_document_form_has_no_errors(self):
        record = InequalRecord(1, "r", "|foo|bar", ({"a": "bar"}, {}), "|foo|baz")
        data = record.to_dict()
        assert data["serializedMessage"] == "|foo|baz"
        assert data["deserializedMessage"] == [{"a": "bar"}, {}]
        assert "errors" not in data

    def test_unserializable_document_form(self):
        record = UnserializableRecord(1, "r", "|foo|bar", ({"a": "bar"}, {"k": "v"}), ["oops"])
        data = record.to_dict()
        assert data["deserializedMessage"] == [{"a": "bar"}, {"k": "v"}]
        assert data["errors"] == ["oops"]
        assert "serializedMessage" not in data

    def test_record_from_dict_rebuilds_each_kind(self, sample_records):
        for record in sample_records:
            assert record_from_dict(record.category, record.to_dict()) == record

    def test_null_kwargs_load_as_empty(self):
        record = record_from_dict(Category.INEQUAL, {
            "timestamp": 1,
            "room": "r",
            "rawMessage": "|x",
            "deserializedMessage": [{"a": 1}, None],
            "serializedMessage": "|y",
        })
        assert record.deserialized_message == ({"a": 1}, {})

    def test_bad_deserialized_message_is_rejected(self):
        with pytest.raises(ValueError):
            record_from_dict(Category.UNSERIALIZABLE, {
                "timestamp": 1,
                "room": "r",
                "rawMessage": "|x",
                "deserializedMessage": ["only payload"],
                "errors": [],
            })


class TestStoreState:
    def test_document_keys(self, populated_state):
        document = populated_state.to_dict()
        assert document["totalMessages"] == 10
        assert set(document) == {"totalMessages", *DOCUMENT_KEYS.values()}
        assert len(document["notEqualMessages"]) == 1

    def test_counts_cover_every_category(self, populated_state):
        assert populated_state.counts() == {category: 1 for category in Category}
