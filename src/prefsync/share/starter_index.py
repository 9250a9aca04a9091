"""Position index derived from the bundled starter pack.

A topic's position in ``topic_index`` and a direction's position in its
``direction_index`` row are the coordinates the share codec transmits
instead of ids. The ordering is append-only: reordering or removing entries
requires a new pack id so old links are rejected rather than misapplied.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

BUNDLED_STARTER_PACK = Path(__file__).resolve().parent.parent / "data" / "starter-pack.v1.json"


class StarterPackError(Exception):
    """Raised when the starter pack is missing or not shaped as expected."""


@dataclass(frozen=True)
class StarterIndex:
    topic_index: tuple[str, ...]
    topic_titles: tuple[str, ...]
    direction_index: tuple[tuple[str, ...], ...]
    direction_texts: tuple[tuple[str, ...], ...]
    # Lower-cased copies used for title/text fallback matching
    topic_title_index: tuple[str, ...]
    direction_text_index: tuple[tuple[str, ...], ...]

    def __len__(self) -> int:
        return len(self.topic_index)

    @classmethod
    def from_document(cls, document: dict) -> "StarterIndex":
        """Build the index from ``{topics: [{id, title, directions: [{id, text}]}]}``.

        Only ids, titles and direction texts are read; anything else in the
        document is ignored.
        """
        topics = document.get("topics") if isinstance(document, dict) else None
        if not isinstance(topics, list):
            raise StarterPackError("Starter pack has no 'topics' list")

        topic_ids, titles, dir_ids, dir_texts = [], [], [], []
        for position, topic in enumerate(topics):
            if not isinstance(topic, dict) or not topic.get("id"):
                raise StarterPackError(f"Starter topic at position {position} has no id")
            directions = topic.get("directions") or []
            if not all(isinstance(d, dict) and d.get("id") for d in directions):
                raise StarterPackError(f"Starter topic '{topic['id']}' has a direction without an id")
            topic_ids.append(topic["id"])
            titles.append(topic.get("title") or "")
            dir_ids.append(tuple(d["id"] for d in directions))
            dir_texts.append(tuple(d.get("text") or "" for d in directions))

        return cls(
            topic_index=tuple(topic_ids),
            topic_titles=tuple(titles),
            direction_index=tuple(dir_ids),
            direction_texts=tuple(dir_texts),
            topic_title_index=tuple(t.lower() for t in titles),
            direction_text_index=tuple(tuple(t.lower() for t in row) for row in dir_texts),
        )

    def topic_position(self, topic_id: str, title: str | None = None) -> int | None:
        """Coordinate of a topic by id, else by lower-cased title."""
        if topic_id in self.topic_index:
            return self.topic_index.index(topic_id)
        if title:
            lc = title.lower()
            if lc in self.topic_title_index:
                return self.topic_title_index.index(lc)
        return None

    def direction_position(
        self, topic_pos: int, direction_id: str, text: str | None = None
    ) -> int | None:
        """Coordinate of a direction within a topic row by id, else by lower-cased text."""
        row = self.direction_index[topic_pos]
        if direction_id in row:
            return row.index(direction_id)
        if text:
            lc = text.lower()
            texts = self.direction_text_index[topic_pos]
            if lc in texts:
                return texts.index(lc)
        return None


def load_starter_pack(path: str | Path | None = None) -> dict:
    """Read the starter pack JSON document; the bundled file when ``path`` is empty."""
    path = Path(path) if path else BUNDLED_STARTER_PACK
    try:
        with open(path, encoding="utf-8") as f:
            document = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise StarterPackError(f"Cannot read starter pack {path}: {e}") from e
    logger.info("Loaded starter pack from %s", path)
    return document


def load_starter_index(path: str | Path | None = None) -> StarterIndex:
    index = StarterIndex.from_document(load_starter_pack(path))
    logger.info("Starter index built with %d topics", len(index))
    return index
