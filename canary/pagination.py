"""Tail-first pagination over append-only sequences."""

from dataclasses import dataclass
from typing import Any, Sequence

DEFAULT_PAGE_SIZE = 50


@dataclass(frozen=True)
class Page:
    data: list
    last: int

    def to_dict(self, encode=None) -> dict[str, Any]:
        """Wire form ``{"last": ..., "data": [...]}``; ``encode`` maps each item."""
        data = [encode(item) for item in self.data] if encode else list(self.data)
        return {"last": self.last, "data": data}


def paginate(sequence: Sequence, from_: int | None = None, page_size: int = DEFAULT_PAGE_SIZE) -> Page:
    """Return the page ending just before index ``from_``, counting from the tail.

    ``from_`` defaults to the sequence length (the newest end). The returned
    ``last`` is the ``from_`` to request for the next older page; 0 means
    there is none.
    """
    if page_size <= 0:
        raise ValueError(f"page_size must be positive, got {page_size}")

    length = len(sequence)
    if from_ is None:
        from_ = length

    end = max(0, min(from_, length))
    start = max(0, end - page_size)
    return Page(data=list(sequence[start:end]), last=start)
