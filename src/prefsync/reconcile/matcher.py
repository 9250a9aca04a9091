"""Identity matching across independently created documents.

Ids are generated per document, so the same topic exported twice may carry
two different ids. Titles (topics) and texts (directions) are the durable
human key and serve as the fallback.
"""

from collections.abc import Iterable
from typing import TypeVar

from prefsync.schema.models import Direction, Topic

T = TypeVar("T", Topic, Direction)


def normalize(text: str | None) -> str:
    """Case-fold and trim a title or direction text for comparison."""
    return (text or "").strip().lower()


def identity_key(item: Topic | Direction) -> str:
    """Normalized human key: title for topics, text for directions."""
    if isinstance(item, Topic):
        return normalize(item.title)
    return normalize(item.text)


def match_by_title(candidate: T, pool: Iterable[T]) -> T | None:
    """Return the first item in ``pool`` with the same normalized title/text."""
    key = identity_key(candidate)
    for item in pool:
        if identity_key(item) == key:
            return item
    return None


def match_by_id_then_title(candidate: T, pool: Iterable[T]) -> T | None:
    """Find ``candidate`` in ``pool`` by exact id, else by normalized title/text.

    When the pool holds several items with the same normalized key, the first
    one in iteration order wins.
    """
    pool = list(pool)
    for item in pool:
        if item.id == candidate.id:
            return item
    return match_by_title(candidate, pool)
