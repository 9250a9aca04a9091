"""Compact share payloads addressed against the starter index.

Only non-zero ratings travel. A payload is compact JSON, base64url-encoded
without padding:

    sparse (current, ``#sp2=``): {"v": pack_id, "tip": [[ti, imp]], "dsp": [[ti, di, stars]]}
    dense  (legacy,  ``#sp=``):  {"v": pack_id, "ti": [imp, ...], "ds": [[stars, ...], ...]}

Both shapes decode into the same :class:`SharePayload`.
"""

import base64
import json
import logging
import math
from dataclasses import dataclass, field

from prefsync.schema.models import Direction, Topic
from prefsync.share.starter_index import StarterIndex

logger = logging.getLogger(__name__)

MIN_RATING = 0
MAX_RATING = 5


def clamp_rating(value) -> int:
    """Clamp a rating to 0..5. Non-numeric values count as 0."""
    try:
        n = int(value or 0)
    except (TypeError, ValueError, OverflowError):
        return MIN_RATING
    return max(MIN_RATING, min(MAX_RATING, n))


def b64url_encode(text: str) -> str:
    return base64.urlsafe_b64encode(text.encode("utf-8")).decode("ascii").rstrip("=")


def b64url_decode(payload: str) -> str:
    padded = payload + "=" * (-len(payload) % 4)
    return base64.b64decode(padded, altchars=b"-_", validate=True).decode("utf-8")


@dataclass(frozen=True)
class SharePayload:
    """Decoded share data in sparse form. Coordinates are not range-checked."""

    v: str
    tip: list[tuple[int, int]] = field(default_factory=list)
    dsp: list[tuple[int, int, int]] = field(default_factory=list)


@dataclass
class ApplyResult:
    topics: list[Topic]
    applied: int


def _as_int(value) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"Expected a number, got {value!r}")
    if isinstance(value, float) and not math.isfinite(value):
        raise ValueError(f"Expected a finite number, got {value!r}")
    return int(value)


def _parse_entries(entries, width: int) -> list[tuple[int, ...]]:
    if not isinstance(entries, list):
        raise ValueError("Payload entries must be a list")
    parsed = []
    for entry in entries:
        if not isinstance(entry, list) or len(entry) != width:
            raise ValueError(f"Malformed payload entry {entry!r}")
        *coords, value = (_as_int(x) for x in entry)
        parsed.append((*coords, clamp_rating(value)))
    return parsed


class ShareCodec:
    """Encode, decode and apply share payloads for one starter pack version."""

    def __init__(self, index: StarterIndex, pack_id: str) -> None:
        self._index = index
        self._pack_id = pack_id

    @property
    def index(self) -> StarterIndex:
        return self._index

    @property
    def pack_id(self) -> str:
        return self._pack_id

    # -- encoding --

    def _find_topic(self, topics: list[Topic], pos: int) -> Topic | None:
        topic_id = self._index.topic_index[pos]
        title_lc = self._index.topic_title_index[pos]
        for topic in topics:
            if topic.id == topic_id:
                return topic
        for topic in topics:
            if (topic.title or "").lower() == title_lc:
                return topic
        return None

    def _find_direction(self, directions: list[Direction], pos: int, dpos: int) -> Direction | None:
        direction_id = self._index.direction_index[pos][dpos]
        text_lc = self._index.direction_text_index[pos][dpos]
        for direction in directions:
            if direction.id == direction_id:
                return direction
        for direction in directions:
            if (direction.text or "").lower() == text_lc:
                return direction
        return None

    def dense_values(self, topics: list[Topic]) -> tuple[list[int], list[list[int]]]:
        """Clamped importance per topic coordinate and stars per direction coordinate."""
        ti: list[int] = []
        ds: list[list[int]] = []
        for pos, row in enumerate(self._index.direction_index):
            topic = self._find_topic(topics, pos)
            ti.append(clamp_rating(topic.importance) if topic else 0)
            stars_row = []
            for dpos in range(len(row)):
                direction = self._find_direction(topic.directions, pos, dpos) if topic else None
                stars_row.append(clamp_rating(direction.stars) if direction else 0)
            ds.append(stars_row)
        return ti, ds

    def encode(self, topics: list[Topic]) -> str:
        """Encode the non-zero ratings of ``topics`` as a sparse payload."""
        ti, ds = self.dense_values(topics)
        tip = [[i, v] for i, v in enumerate(ti) if v > 0]
        dsp = [[i, j, v] for i, row in enumerate(ds) for j, v in enumerate(row) if v > 0]
        body = json.dumps({"v": self._pack_id, "tip": tip, "dsp": dsp}, separators=(",", ":"))
        logger.debug("Encoded %d topic and %d direction ratings", len(tip), len(dsp))
        return b64url_encode(body)

    def encode_dense(self, topics: list[Topic]) -> str:
        """Encode every coordinate, zeros included, in the legacy dense shape."""
        ti, ds = self.dense_values(topics)
        body = json.dumps({"v": self._pack_id, "ti": ti, "ds": ds}, separators=(",", ":"))
        return b64url_encode(body)

    # -- decoding --

    def decode(self, payload: str) -> SharePayload | None:
        """Decode a sparse or legacy dense payload.

        Returns None when the payload can't be decoded, is structurally
        invalid, or was produced for a different pack version.
        """
        try:
            obj = json.loads(b64url_decode(payload))
            return self._from_object(obj)
        except (ValueError, TypeError, OverflowError, RecursionError) as e:
            logger.debug("Rejecting share payload: %s", e)
            return None

    def _from_object(self, obj) -> SharePayload | None:
        if not isinstance(obj, dict):
            raise ValueError("Payload is not an object")
        if obj.get("v") != self._pack_id:
            logger.debug("Share payload is for pack %r, expected %r", obj.get("v"), self._pack_id)
            return None

        if "tip" in obj or "dsp" in obj:
            return SharePayload(
                v=self._pack_id,
                tip=_parse_entries(obj.get("tip", []), 2),
                dsp=_parse_entries(obj.get("dsp", []), 3),
            )

        if "ti" in obj and "ds" in obj:
            return self._from_dense(obj["ti"], obj["ds"])

        raise ValueError("Payload has neither sparse nor dense ratings")

    def _from_dense(self, ti, ds) -> SharePayload:
        if not isinstance(ti, list) or not isinstance(ds, list):
            raise ValueError("Dense payload arrays are malformed")
        tip = []
        for i, value in enumerate(ti):
            rating = clamp_rating(_as_int(value))
            if rating > 0:
                tip.append((i, rating))
        dsp = []
        for i, row in enumerate(ds):
            if not isinstance(row, list):
                raise ValueError("Dense direction row is not a list")
            for j, value in enumerate(row):
                rating = clamp_rating(_as_int(value))
                if rating > 0:
                    dsp.append((i, j, rating))
        return SharePayload(v=self._pack_id, tip=tip, dsp=dsp)

    # -- application --

    def to_dense(self, payload: SharePayload) -> tuple[list[int], list[list[int]]]:
        """Expand a sparse payload against the index. Out-of-range coordinates are dropped."""
        ti = [0] * len(self._index.topic_index)
        ds = [[0] * len(row) for row in self._index.direction_index]
        for i, value in payload.tip:
            if 0 <= i < len(ti):
                ti[i] = clamp_rating(value)
        for i, j, value in payload.dsp:
            if 0 <= i < len(ds) and 0 <= j < len(ds[i]):
                ds[i][j] = clamp_rating(value)
        return ti, ds

    def apply(
        self,
        payload: SharePayload,
        topics: list[Topic],
        *,
        append_missing: bool = True,
    ) -> ApplyResult:
        """Overwrite ratings of starter topics in ``topics`` from ``payload``.

        Coordinates absent from the payload count as 0. Topics that aren't in
        the starter index are left untouched. With ``append_missing``, starter
        topics the payload rates but ``topics`` lacks are appended.

        Returns:
            The new topic list and the number of topics whose ratings changed
            or were added. ``topics`` itself is not modified.
        """
        ti, ds = self.to_dense(payload)
        seen: set[int] = set()
        next_topics: list[Topic] = []
        applied = 0

        for topic in topics:
            pos = self._index.topic_position(topic.id, topic.title)
            if pos is None:
                next_topics.append(topic)
                continue
            seen.add(pos)

            importance = ti[pos]
            changed = topic.importance != importance
            directions = []
            for direction in topic.directions:
                dpos = self._index.direction_position(pos, direction.id, direction.text)
                if dpos is None:
                    directions.append(direction)
                    continue
                stars = ds[pos][dpos]
                if direction.stars != stars:
                    changed = True
                directions.append(direction.model_copy(update={"stars": stars}))

            if changed:
                applied += 1
            next_topics.append(
                topic.model_copy(update={"importance": importance, "directions": directions})
            )

        if append_missing:
            for pos in range(len(self._index)):
                if pos in seen or (ti[pos] == 0 and not any(ds[pos])):
                    continue
                next_topics.append(self._starter_topic(pos, ti[pos], ds[pos]))
                applied += 1

        logger.info("Applied share payload: %d topics changed", applied)
        return ApplyResult(topics=next_topics, applied=applied)

    def _starter_topic(self, pos: int, importance: int, stars: list[int]) -> Topic:
        index = self._index
        return Topic(
            id=index.topic_index[pos],
            title=index.topic_titles[pos] or index.topic_index[pos],
            importance=importance,
            stance="neutral",
            directions=[
                Direction(id=did, text=text or did, stars=stars[j])
                for j, (did, text) in enumerate(
                    zip(index.direction_index[pos], index.direction_texts[pos])
                )
            ],
        )
