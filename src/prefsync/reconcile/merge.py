"""Two-way merge of a current preference set with an incoming one.

Current wins on everything the user owns (title, importance, stance).
Incoming contributes new topics, new directions, fresher star ratings,
extra notes and sources.
"""

import logging
from collections.abc import Iterable
from datetime import datetime, timezone
from urllib.parse import urlsplit, urlunsplit

from prefsync.reconcile.matcher import match_by_id_then_title, normalize
from prefsync.schema.models import Direction, PreferenceSet, Source, Topic

logger = logging.getLogger(__name__)

DEFAULT_NOTES_SEPARATOR = "— Imported —"

# Topic schema allows at most this many sources
MAX_TOPIC_SOURCES = 5


def normalize_url(url: str) -> str:
    """Lower-case the host and strip trailing slashes from the path.

    Strings that don't parse as absolute URLs are trimmed and stripped of
    trailing slashes instead.
    """
    parts = urlsplit(url.strip())
    if not parts.scheme or not parts.netloc:
        return url.strip().rstrip("/")
    return urlunsplit(parts._replace(netloc=parts.netloc.lower(), path=parts.path.rstrip("/")))


def merge_sources(current: list[Source], incoming: list[Source]) -> list[Source]:
    """Union two source lists, de-duplicated by (label, normalized url)."""
    if not current:
        return list(incoming)
    if not incoming:
        return list(current)

    seen: set[tuple[str, str]] = set()
    merged = []
    for source in [*current, *incoming]:
        key = (source.label, normalize_url(source.url or ""))
        if key in seen:
            continue
        seen.add(key)
        merged.append(source)
    return merged


def merge_notes(current: str | None, incoming: str | None, separator: str) -> str:
    if current and incoming and normalize(current) != normalize(incoming):
        return f"{current}\n\n{separator}\n{incoming}"
    return current or incoming or ""


def merge_directions(current: list[Direction], incoming: list[Direction]) -> list[Direction]:
    """Enrich current directions with incoming matches, then append new ones.

    A matched direction keeps its current id; text, stars, notes, sources
    and tags come from the incoming side when it has them.
    """
    merged: list[Direction] = []

    for direction in current:
        match = match_by_id_then_title(direction, incoming)
        if match is None:
            merged.append(direction)
            continue
        merged.append(
            Direction(
                id=direction.id,
                text=match.text or direction.text,
                stars=match.stars,
                notes=match.notes if match.notes is not None else direction.notes,
                sources=match.sources or direction.sources,
                tags=match.tags or direction.tags,
            )
        )

    for direction in incoming:
        if match_by_id_then_title(direction, current) is None:
            merged.append(direction)

    return merged


def merge_topic(
    current: Topic, incoming: Topic, *, notes_separator: str = DEFAULT_NOTES_SEPARATOR
) -> Topic:
    sources = merge_sources(current.sources, incoming.sources)
    if len(sources) > MAX_TOPIC_SOURCES:
        logger.warning(
            "Topic '%s' has %d sources after merge, keeping the first %d",
            current.title, len(sources), MAX_TOPIC_SOURCES,
        )
        sources = sources[:MAX_TOPIC_SOURCES]

    # Unmatched directions, sources and relations are shared with the inputs until copied
    merged = Topic(
        id=current.id,
        title=current.title,
        importance=current.importance,
        stance=current.stance,
        directions=merge_directions(current.directions, incoming.directions),
        notes=merge_notes(current.notes, incoming.notes, notes_separator),
        sources=sources,
        relations=current.relations,
    )
    return merged.model_copy(deep=True)


def _merge_topics(
    current: PreferenceSet,
    incoming: PreferenceSet,
    accepted: set[str] | None,
    notes_separator: str,
) -> list[Topic]:
    def is_accepted(topic: Topic) -> bool:
        return accepted is None or normalize(topic.title) in accepted

    merged: list[Topic] = []
    for topic in current.topics:
        match = match_by_id_then_title(topic, incoming.topics)
        if match is not None and is_accepted(match):
            merged.append(merge_topic(topic, match, notes_separator=notes_separator))
        else:
            merged.append(topic.model_copy(deep=True))

    appended = 0
    for topic in incoming.topics:
        if match_by_id_then_title(topic, current.topics) is None and is_accepted(topic):
            merged.append(topic.model_copy(deep=True))
            appended += 1

    logger.info(
        "Merged '%s' into '%s': %d topics kept, %d appended",
        incoming.title, current.title, len(current.topics), appended,
    )
    return merged


def _merged_document(current: PreferenceSet, incoming: PreferenceSet, topics: list[Topic]) -> PreferenceSet:
    return PreferenceSet(
        title=current.title,
        notes=current.notes,
        topics=topics,
        created_at=current.created_at,
        updated_at=incoming.updated_at or datetime.now(timezone.utc).isoformat(),
    )


def merge_preference_sets(
    current: PreferenceSet,
    incoming: PreferenceSet,
    *,
    notes_separator: str = DEFAULT_NOTES_SEPARATOR,
) -> PreferenceSet:
    """Merge ``incoming`` into ``current`` and return a new document.

    Every current topic is kept. A topic that matches an incoming one (by id,
    else normalized title) has its directions, notes and sources merged.
    Incoming topics without a match are appended verbatim.
    """
    topics = _merge_topics(current, incoming, None, notes_separator)
    return _merged_document(current, incoming, topics)


def merge_preference_sets_selective(
    current: PreferenceSet,
    incoming: PreferenceSet,
    accept_titles: Iterable[str],
    *,
    notes_separator: str = DEFAULT_NOTES_SEPARATOR,
) -> PreferenceSet:
    """Like :func:`merge_preference_sets`, restricted to accepted topics.

    Args:
        current: The user's document.
        incoming: The imported document.
        accept_titles: Incoming topic titles the user opted into. Compared
            after normalization.
        notes_separator: Marker placed between current and incoming notes.

    Returns:
        A new document. Topics outside the accepted set pass through from
        ``current`` untouched; unaccepted new topics are not appended.
    """
    accepted = {normalize(t) for t in accept_titles}
    topics = _merge_topics(current, incoming, accepted, notes_separator)
    return _merged_document(current, incoming, topics)
