"""Reference codec for the Showdown line protocol.

Messages are ``|name|arg|arg...`` lines. Argument names in the table:

* ``"user"``    required positional argument
* ``"?rating"`` optional; once one is missing, no later argument may follow
* ``"*message"`` takes every remaining segment, re-joined with ``|``

Battle messages may also carry trailing ``[key]value`` keyword arguments.
Lines that do not start with ``|`` are plain ``text`` messages.
"""

from dataclasses import dataclass
from typing import Any

from canary.codec import UNHANDLED, CodecFailure, Deserialized, Serialized
from canary.keywords import extract_keyword_arguments

TEXT = "text"


@dataclass(frozen=True)
class MessageShape:
    arguments: tuple[str, ...] = ()
    keywords: bool = False


def _battle(*arguments: str) -> MessageShape:
    return MessageShape(arguments, keywords=True)


MESSAGES: dict[str, MessageShape] = {
    # room initialization
    "init": MessageShape(("roomType",)),
    "deinit": MessageShape(),
    "title": MessageShape(("*title",)),
    "users": MessageShape(("*users",)),
    "": MessageShape(),
    # room messages
    "chat": MessageShape(("user", "*message")),
    "c": MessageShape(("user", "*message")),
    "c:": MessageShape(("timestamp", "user", "*message")),
    ":": MessageShape(("timestamp",)),
    "t:": MessageShape(("timestamp",)),
    "join": MessageShape(("user",)),
    "j": MessageShape(("user",)),
    "J": MessageShape(("user",)),
    "leave": MessageShape(("user",)),
    "l": MessageShape(("user",)),
    "L": MessageShape(("user",)),
    "name": MessageShape(("user", "oldid")),
    "n": MessageShape(("user", "oldid")),
    "N": MessageShape(("user", "oldid")),
    "battle": MessageShape(("roomid", "user1", "user2")),
    "b": MessageShape(("roomid", "user1", "user2")),
    "raw": MessageShape(("*html",)),
    "html": MessageShape(("*html",)),
    "uhtml": MessageShape(("name", "*html")),
    "uhtmlchange": MessageShape(("name", "*html")),
    "notify": MessageShape(("title", "?message")),
    "error": MessageShape(("*message",)),
    # global messages
    "challstr": MessageShape(("*challstr",)),
    "updateuser": MessageShape(("user", "named", "avatar", "?settings")),
    "queryresponse": MessageShape(("querytype", "*json")),
    "formats": MessageShape(("*formats",)),
    "usercount": MessageShape(("count",)),
    "popup": MessageShape(("*message",)),
    "pm": MessageShape(("sender", "receiver", "*message")),
    "nametaken": MessageShape(("username", "*message")),
    "updatesearch": MessageShape(("*json",)),
    "updatechallenges": MessageShape(("*json",)),
    # battle progress
    "player": MessageShape(("player", "?username", "?avatar", "?rating")),
    "teamsize": MessageShape(("player", "number")),
    "gametype": MessageShape(("gametype",)),
    "gen": MessageShape(("gennum",)),
    "tier": MessageShape(("formatname",)),
    "rated": MessageShape(("?message",)),
    "rule": MessageShape(("*rule",)),
    "clearpoke": MessageShape(),
    "poke": MessageShape(("player", "details", "?item")),
    "teampreview": MessageShape(("?number",)),
    "start": MessageShape(),
    "request": MessageShape(("*request",)),
    "inactive": MessageShape(("*message",)),
    "inactiveoff": MessageShape(("*message",)),
    "upkeep": MessageShape(),
    "turn": MessageShape(("number",)),
    "win": MessageShape(("user",)),
    "tie": MessageShape(),
    # battle actions
    "move": _battle("pokemon", "move", "?target"),
    "switch": _battle("pokemon", "details", "hp"),
    "drag": _battle("pokemon", "details", "hp"),
    "detailschange": _battle("pokemon", "details", "?hp"),
    "replace": _battle("pokemon", "details", "?hp"),
    "swap": _battle("pokemon", "position"),
    "cant": _battle("pokemon", "reason", "?move"),
    "faint": _battle("pokemon"),
    "-fail": _battle("pokemon", "?action"),
    "-damage": _battle("pokemon", "hp"),
    "-heal": _battle("pokemon", "hp"),
    "-status": _battle("pokemon", "status"),
    "-curestatus": _battle("pokemon", "status"),
    "-boost": _battle("pokemon", "stat", "amount"),
    "-unboost": _battle("pokemon", "stat", "amount"),
    "-weather": _battle("weather"),
    "-fieldstart": _battle("condition"),
    "-fieldend": _battle("condition"),
    "-sidestart": _battle("side", "condition"),
    "-sideend": _battle("side", "condition"),
    "-start": _battle("pokemon", "effect"),
    "-end": _battle("pokemon", "effect"),
    "-item": _battle("pokemon", "item"),
    "-enditem": _battle("pokemon", "item"),
    "-ability": _battle("pokemon", "ability"),
    "-crit": _battle("pokemon"),
    "-supereffective": _battle("pokemon"),
    "-resisted": _battle("pokemon"),
    "-immune": _battle("pokemon"),
    "-miss": _battle("source", "?target"),
    "-activate": _battle("pokemon", "effect"),
    "-hint": _battle("*message"),
    "-message": _battle("*message"),
}


def _argument_key(argument: str) -> str:
    return argument.lstrip("?*")


class ShowdownLineCodec:
    """Table-driven codec for single Showdown protocol lines."""

    def __init__(self, messages: dict[str, MessageShape] | None = None):
        self._messages = MESSAGES if messages is None else messages

    def deserialize(self, raw: str):
        if not raw.startswith("|"):
            return Deserialized(TEXT, {"text": raw}, {})

        name, _, _ = raw[1:].partition("|")
        shape = self._messages.get(name)
        if shape is None:
            return Deserialized(UNHANDLED, raw, {})

        kwargs: dict[str, str] = {}
        body = raw
        if shape.keywords:
            body, kwargs = extract_keyword_arguments(raw)

        arguments = body[1:].split("|")[1:]
        payload: dict[str, Any] = {}
        errors: list[str] = []
        consumed = 0

        for index, argument in enumerate(shape.arguments):
            key = _argument_key(argument)
            if argument.startswith("*"):
                if index < len(arguments):
                    payload[key] = "|".join(arguments[index:])
                    consumed = len(arguments)
                else:
                    errors.append(f"Missing argument '{key}' for message '{name}'")
                break
            if index < len(arguments):
                payload[key] = arguments[index]
                consumed = index + 1
            elif not argument.startswith("?"):
                errors.append(f"Missing argument '{key}' for message '{name}'")

        if not errors and consumed < len(arguments):
            extra = len(arguments) - consumed
            errors.append(f"Unexpected {extra} extra argument(s) for message '{name}'")

        if errors:
            return CodecFailure(errors)
        return Deserialized(name, payload, kwargs)

    def serialize(self, name: str, payload: Any, kwargs: dict[str, str]):
        if name == TEXT:
            if not isinstance(payload, dict) or "text" not in payload:
                return CodecFailure(["Text message payload must contain 'text'"])
            return Serialized(str(payload["text"]))

        shape = self._messages.get(name)
        if shape is None:
            return CodecFailure([f"Unknown message name '{name}'"])
        if not isinstance(payload, dict):
            return CodecFailure([f"Payload for message '{name}' must be a mapping"])
        if kwargs and not shape.keywords:
            return CodecFailure([f"Message '{name}' does not take keyword arguments"])

        segments = [name]
        for argument in shape.arguments:
            key = _argument_key(argument)
            if key not in payload:
                if argument.startswith("?"):
                    break
                return CodecFailure([f"Missing argument '{key}' for message '{name}'"])
            segments.append(str(payload[key]))

        segments.extend(f"[{key}]{value}" for key, value in (kwargs or {}).items())
        return Serialized("|" + "|".join(segments))
