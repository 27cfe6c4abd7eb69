"""Round-trip classification of a single protocol line."""

from canary.codec import Codec, CodecFailure, Deserialized
from canary.keywords import messages_equal
from canary.models import (
    InequalRecord,
    Record,
    UndeserializableRecord,
    UnhandledRecord,
    UnserializableRecord,
)


def classify(raw_line: str, room: str, timestamp: int, codec: Codec) -> Record | None:
    """Deserialize ``raw_line``, serialize it back, and file the outcome.

    Returns None when the line survives the round trip. Otherwise returns the
    one record describing where the codec diverged:

    * ``UndeserializableRecord`` - deserialize reported errors
    * ``UnhandledRecord`` - the codec recognized no message shape
    * ``UnserializableRecord`` - serialize reported errors
    * ``InequalRecord`` - the serialized line differs from the original

    Exceptions raised by the codec are not caught here.
    """
    deserialized = codec.deserialize(raw_line)

    if isinstance(deserialized, CodecFailure):
        return UndeserializableRecord(timestamp, room, raw_line, list(deserialized.errors))

    if not isinstance(deserialized, Deserialized):
        raise TypeError(f"Codec returned {type(deserialized).__name__} from deserialize()")

    if not deserialized.recognized:
        return UnhandledRecord(timestamp, room, raw_line)

    message = (deserialized.payload, dict(deserialized.kwargs))
    serialized = codec.serialize(deserialized.name, deserialized.payload, deserialized.kwargs)

    if isinstance(serialized, CodecFailure):
        return UnserializableRecord(timestamp, room, raw_line, message, list(serialized.errors))

    if messages_equal(raw_line, serialized.text):
        return None

    return InequalRecord(timestamp, room, raw_line, message, serialized.text)


def classify_transport_error(room: str, raw_line: str, errors: list[str], timestamp: int) -> UndeserializableRecord:
    """File a line the transport layer could not deliver as a protocol message."""
    return UndeserializableRecord(timestamp, room, raw_line, list(errors))
