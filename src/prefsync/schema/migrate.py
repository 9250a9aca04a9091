"""Convert legacy ``tsb.v0`` documents to ``tsb.v1`` preference sets."""

import logging
import uuid
from datetime import datetime, timezone

from prefsync.schema.models import Direction, PreferenceSet, Source, Stance, Topic
from prefsync.share.codec import clamp_rating

logger = logging.getLogger(__name__)

LEGACY_VERSION = "tsb.v0"


class MigrationError(Exception):
    """Raised when a document can't be migrated."""


def stance_from_scale(scale: int | None) -> Stance:
    """Map the old -2..2 direction scale onto a stance."""
    if scale is None:
        return "neutral"
    if scale <= -2:
        return "against"
    if scale == -1:
        return "lean_against"
    if scale == 0:
        return "neutral"
    if scale == 1:
        return "lean_for"
    return "for"


def _migrate_topic(topic: dict) -> Topic:
    direction = topic.get("direction") or {}
    importance = clamp_rating(topic.get("importance"))

    # The free-text direction becomes the topic's only rated direction
    directions = []
    custom = (direction.get("custom") or "").strip()
    if custom:
        directions.append(Direction(id=str(uuid.uuid4()), text=custom, stars=importance))

    return Topic(
        id=topic["id"],
        title=topic["title"],
        importance=importance,
        stance=stance_from_scale(direction.get("scale")),
        directions=directions,
        notes=topic.get("notes") or "",
        sources=[Source(**s) for s in topic.get("sources") or []],
    )


def migrate_v0(document: dict) -> PreferenceSet:
    """Migrate a ``tsb.v0`` document.

    Raises:
        MigrationError: If the document isn't ``tsb.v0`` or a topic lacks
            its id or title.
    """
    if not isinstance(document, dict) or document.get("version") != LEGACY_VERSION:
        raise MigrationError(f"Input is not a {LEGACY_VERSION} document")

    try:
        topics = [_migrate_topic(t) for t in document.get("topics") or []]
    except (KeyError, TypeError, ValueError) as e:
        raise MigrationError(f"Malformed {LEGACY_VERSION} topic: {e}") from e

    logger.info("Migrated %d topics from %s", len(topics), LEGACY_VERSION)
    return PreferenceSet(
        title=document.get("title") or "",
        notes=document.get("notes") or "",
        topics=topics,
        created_at=document.get("createdAt") or "",
        updated_at=datetime.now(timezone.utc).isoformat(),
    )
