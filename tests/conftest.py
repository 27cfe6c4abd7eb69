"""Shared pytest fixtures for the canary test suite."""

import threading

import pytest

from canary.api import create_app
from canary.codec import CodecFailure, Deserialized, Serialized
from canary.line_codec import ShowdownLineCodec
from canary.models import (
    InequalRecord,
    StoreState,
    UndeserializableRecord,
    UnhandledRecord,
    UnserializableRecord,
)
from canary.store import CategorizedStore


class FakeCodec:
    """Codec whose behavior is given by two plain functions."""

    def __init__(self, deserialize, serialize=None):
        self._deserialize = deserialize
        self._serialize = serialize or (lambda name, payload, kwargs: CodecFailure(["no serializer"]))
        self.deserialize_calls = []

    def deserialize(self, raw):
        self.deserialize_calls.append(raw)
        return self._deserialize(raw)

    def serialize(self, name, payload, kwargs):
        return self._serialize(name, payload, kwargs)


@pytest.fixture()
def line_codec() -> ShowdownLineCodec:
    return ShowdownLineCodec()


@pytest.fixture()
def make_codec():
    """Build a FakeCodec from deserialize/serialize functions."""
    return FakeCodec


@pytest.fixture()
def echo_codec():
    """Deserializes any line into ``message`` and serializes it back verbatim."""
    return FakeCodec(
        lambda raw: Deserialized("message", {"line": raw}, {}),
        lambda name, payload, kwargs: Serialized(payload["line"]),
    )


@pytest.fixture()
def sample_records():
    return [
        UnhandledRecord(1000, "lobby", "|mystery|x"),
        UndeserializableRecord(1001, "lobby", "|c|", ["Missing argument 'user' for message 'c'"]),
        UnserializableRecord(1002, "battle-gen9ou-1", "|foo|bar", ({"a": "bar"}, {}), ["cannot serialize"]),
        InequalRecord(1003, "battle-gen9ou-1", "|foo|bar", ({"a": "bar"}, {"x": "1"}), "|foo|baz"),
    ]


@pytest.fixture()
def populated_state(sample_records) -> StoreState:
    state = StoreState(total_messages=10)
    for record in sample_records:
        state.records[record.category].append(record)
    return state


@pytest.fixture()
def store() -> CategorizedStore:
    return CategorizedStore()


@pytest.fixture()
def shutdown_event():
    return threading.Event()


@pytest.fixture()
def app(store):
    """Create a Flask test app over an empty store."""
    application = create_app(
        store,
        rooms_provider=lambda: ["lobby", "battle-gen9ou-1"],
        metadata={"startTime": 1700000000000, "showdownUsername": "canarybot"},
    )
    application.config["TESTING"] = True
    return application


@pytest.fixture()
def client(app):
    """Create a Flask test client."""
    return app.test_client()
