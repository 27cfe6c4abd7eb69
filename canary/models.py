"""Record kinds filed by the canary, and the store document they live in.

Each record kind is its own frozen dataclass tagged with a ``category``. The
dict forms use the camelCase keys of the persisted document and the HTTP API.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Union


class Category(str, Enum):
    UNHANDLED = "unhandled"
    UNDESERIALIZABLE = "undeserializable"
    UNSERIALIZABLE = "unserializable"
    INEQUAL = "inequal"


DOCUMENT_KEYS = {
    Category.UNHANDLED: "unhandledMessages",
    Category.UNDESERIALIZABLE: "undeserializableMessages",
    Category.UNSERIALIZABLE: "unserializableMessages",
    Category.INEQUAL: "notEqualMessages",
}

TOTAL_KEY = "totalMessages"

# (payload, keyword arguments) as produced by the codec
DeserializedMessage = tuple[Any, dict[str, str]]


@dataclass(frozen=True)
class UnhandledRecord:
    """A line the codec recognized no message shape for."""

    timestamp: int
    room: str
    raw_message: str

    category: ClassVar[Category] = Category.UNHANDLED

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp,
            "room": self.room,
            "rawMessage": self.raw_message,
        }


@dataclass(frozen=True)
class UndeserializableRecord:
    """Deserialization failed; ``errors`` are the reported diagnostics."""

    timestamp: int
    room: str
    raw_message: str
    errors: list[str] = field(default_factory=list)

    category: ClassVar[Category] = Category.UNDESERIALIZABLE

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp,
            "room": self.room,
            "rawMessage": self.raw_message,
            "errors": list(self.errors),
        }


@dataclass(frozen=True)
class UnserializableRecord:
    """Deserialized fine, but serializing the result back failed."""

    timestamp: int
    room: str
    raw_message: str
    deserialized_message: DeserializedMessage
    errors: list[str] = field(default_factory=list)

    category: ClassVar[Category] = Category.UNSERIALIZABLE

    def to_dict(self) -> dict:
        payload, kwargs = self.deserialized_message
        return {
            "timestamp": self.timestamp,
            "room": self.room,
            "rawMessage": self.raw_message,
            "deserializedMessage": [payload, dict(kwargs)],
            "errors": list(self.errors),
        }


@dataclass(frozen=True)
class InequalRecord:
    """Both directions succeeded but the serialized line differs from the original."""

    timestamp: int
    room: str
    raw_message: str
    deserialized_message: DeserializedMessage
    serialized_message: str

    category: ClassVar[Category] = Category.INEQUAL

    def to_dict(self) -> dict:
        payload, kwargs = self.deserialized_message
        return {
            "timestamp": self.timestamp,
            "room": self.room,
            "rawMessage": self.raw_message,
            "deserializedMessage": [payload, dict(kwargs)],
            "serializedMessage": self.serialized_message,
        }


Record = Union[UnhandledRecord, UndeserializableRecord, UnserializableRecord, InequalRecord]


def _deserialized_from_dict(value) -> DeserializedMessage:
    if not isinstance(value, (list, tuple)) or len(value) != 2:
        raise ValueError("deserializedMessage must be a [payload, kwargs] pair")
    payload, kwargs = value
    return payload, dict(kwargs or {})


def record_from_dict(category: Category, data: dict) -> Record:
    """Rebuild a record of ``category`` from its document form."""
    timestamp = data["timestamp"]
    room = data["room"]
    raw_message = data["rawMessage"]

    if category is Category.UNHANDLED:
        return UnhandledRecord(timestamp, room, raw_message)
    if category is Category.UNDESERIALIZABLE:
        return UndeserializableRecord(timestamp, room, raw_message, list(data.get("errors", [])))
    if category is Category.UNSERIALIZABLE:
        return UnserializableRecord(
            timestamp,
            room,
            raw_message,
            _deserialized_from_dict(data["deserializedMessage"]),
            list(data.get("errors", [])),
        )
    if category is Category.INEQUAL:
        return InequalRecord(
            timestamp,
            room,
            raw_message,
            _deserialized_from_dict(data["deserializedMessage"]),
            data["serializedMessage"],
        )
    raise ValueError(f"Unknown category: {category!r}")


@dataclass
class StoreState:
    """Plain snapshot of the categorized store: one list per category plus the seen counter."""

    total_messages: int = 0
    records: dict[Category, list[Record]] = field(
        default_factory=lambda: {category: [] for category in Category}
    )

    def counts(self) -> dict[Category, int]:
        return {category: len(self.records.get(category, [])) for category in Category}

    def all_records(self) -> list[Record]:
        """Every record, category by category, in document order."""
        return [record for category in Category for record in self.records.get(category, [])]

    def to_dict(self) -> dict:
        document: dict[str, Any] = {TOTAL_KEY: self.total_messages}
        for category, key in DOCUMENT_KEYS.items():
            document[key] = [record.to_dict() for record in self.records.get(category, [])]
        return document
