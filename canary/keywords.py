"""Keyword-argument extraction and order-insensitive line comparison."""

import re

KEYWORD_ARGUMENT_PATTERN = re.compile(r"\[(?P<key>.+)\](?P<value>.*)")


def extract_keyword_arguments(line: str) -> tuple[str, dict[str, str]]:
    """Split a pipe-delimited line into its prefix and trailing keyword arguments.

    Segments of the form ``[key]value`` are consumed from the end of the line
    until the first segment that does not match. Values are stripped. When a
    key repeats, the segment closest to the end of the line wins.

    Returns:
        tuple: (prefix: str, kwargs: dict[str, str])
    """
    segments = line.split("|")
    kwargs: dict[str, str] = {}

    while segments:
        match = KEYWORD_ARGUMENT_PATTERN.fullmatch(segments[-1])
        if match is None:
            break
        segments.pop()
        kwargs.setdefault(match.group("key"), match.group("value").strip())

    return "|".join(segments), kwargs


def messages_equal(original: str, serialized: str) -> bool:
    """Compare two lines, ignoring the order of trailing keyword arguments."""
    original_prefix, original_kwargs = extract_keyword_arguments(original)
    serialized_prefix, serialized_kwargs = extract_keyword_arguments(serialized)
    return original_prefix == serialized_prefix and original_kwargs == serialized_kwargs
