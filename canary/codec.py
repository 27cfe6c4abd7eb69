"""Codec interface the canary exercises, and the loader for the codec under test."""

import importlib
import logging
from dataclasses import dataclass, field
from typing import Any, Protocol, Union, runtime_checkable

from canary.errors import CodecLoadError

logger = logging.getLogger(__name__)

UNHANDLED = "unhandled"


@dataclass(frozen=True)
class Deserialized:
    """A successfully deserialized line.

    ``name`` is the message name; ``unhandled`` means the codec recognized no
    message shape for the line.
    """

    name: str
    payload: Any = None
    kwargs: dict[str, str] = field(default_factory=dict)

    @property
    def recognized(self) -> bool:
        return self.name != UNHANDLED


@dataclass(frozen=True)
class Serialized:
    text: str


@dataclass(frozen=True)
class CodecFailure:
    errors: list[str] = field(default_factory=list)


DeserializeResult = Union[Deserialized, CodecFailure]
SerializeResult = Union[Serialized, CodecFailure]


@runtime_checkable
class Codec(Protocol):
    def deserialize(self, raw: str) -> DeserializeResult: ...

    def serialize(self, name: str, payload: Any, kwargs: dict[str, str]) -> SerializeResult: ...


def load_codec(factory: str) -> Codec:
    """Import a codec from a ``package.module:Attribute`` path.

    Classes and other callables are called with no arguments; any other
    attribute is used as the codec instance directly.

    Raises:
        CodecLoadError: If the path is malformed, the import fails, or the
            result does not implement the codec interface.
    """
    module_name, sep, attribute = factory.partition(":")
    if not sep or not module_name or not attribute:
        raise CodecLoadError(f"Codec factory must look like 'module:Attribute', got {factory!r}")

    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise CodecLoadError(f"Cannot import codec module {module_name!r}: {e}") from e

    try:
        target = getattr(module, attribute)
    except AttributeError as e:
        raise CodecLoadError(f"Module {module_name!r} has no attribute {attribute!r}") from e

    if isinstance(target, type) or (callable(target) and not isinstance(target, Codec)):
        codec = target()
    else:
        codec = target
    if not isinstance(codec, Codec):
        raise CodecLoadError(f"{factory!r} does not provide deserialize() and serialize()")

    logger.info("Loaded codec %s", factory)
    return codec
