"""Structural diff between two preference sets.

Topics are correlated by normalized title and directions by normalized text.
Ids are ignored here: two documents produced independently rarely share them.
"""

import logging
from dataclasses import dataclass, field
from typing import Generic, TypeVar

from prefsync.reconcile.matcher import match_by_title, normalize
from prefsync.schema.models import Direction, PreferenceSet, Topic

logger = logging.getLogger(__name__)

V = TypeVar("V")


@dataclass(frozen=True)
class FieldChange(Generic[V]):
    """Before/after pair for a single field."""

    left: V
    right: V

    @property
    def changed(self) -> bool:
        return self.left != self.right


@dataclass
class DirectionChanges:
    text: FieldChange[str]
    stars: FieldChange[int]
    notes: FieldChange[str]


@dataclass
class DirectionDiff:
    direction: Direction  # right-hand version
    changes: DirectionChanges
    has_changes: bool


@dataclass
class DirectionClassification:
    added: list[Direction] = field(default_factory=list)
    removed: list[Direction] = field(default_factory=list)
    modified: list[DirectionDiff] = field(default_factory=list)
    unchanged: list[Direction] = field(default_factory=list)


@dataclass
class TopicChanges:
    importance: FieldChange[int]
    directions: DirectionClassification
    notes: FieldChange[str]


@dataclass
class TopicDiff:
    topic: Topic  # right-hand version
    changes: TopicChanges
    has_changes: bool


@dataclass
class TopicClassification:
    added: list[Topic] = field(default_factory=list)  # only in right
    removed: list[Topic] = field(default_factory=list)  # only in left
    modified: list[TopicDiff] = field(default_factory=list)
    unchanged: list[Topic] = field(default_factory=list)


@dataclass
class DiffSummary:
    total_topics: int
    added_count: int
    removed_count: int
    modified_count: int
    unchanged_count: int


@dataclass
class PreferenceSetDiff:
    title: FieldChange[str]
    topics: TopicClassification
    summary: DiffSummary


@dataclass
class PriorityComparison:
    """One heatmap row. An absent side counts as importance 0."""

    topic_id: str
    topic_title: str
    left_importance: int
    right_importance: int
    importance_diff: int
    stance_changed: bool = False


def compute_direction_diff(left: Direction, right: Direction) -> DirectionDiff:
    changes = DirectionChanges(
        text=FieldChange(left.text, right.text),
        stars=FieldChange(left.stars, right.stars),
        notes=FieldChange(left.notes or "", right.notes or ""),
    )
    has_changes = changes.text.changed or changes.stars.changed or changes.notes.changed
    return DirectionDiff(direction=right, changes=changes, has_changes=has_changes)


def classify_directions(
    left: list[Direction], right: list[Direction]
) -> DirectionClassification:
    """Three-way direction classification keyed by normalized text."""
    result = DirectionClassification()

    for direction in right:
        match = match_by_title(direction, left)
        if match is None:
            result.added.append(direction)
            continue
        dd = compute_direction_diff(match, direction)
        if dd.has_changes:
            result.modified.append(dd)
        else:
            result.unchanged.append(direction)

    for direction in left:
        if match_by_title(direction, right) is None:
            result.removed.append(direction)

    return result


def compute_topic_diff(left: Topic, right: Topic) -> TopicDiff:
    directions = classify_directions(left.directions, right.directions)
    changes = TopicChanges(
        importance=FieldChange(left.importance, right.importance),
        directions=directions,
        notes=FieldChange(left.notes or "", right.notes or ""),
    )
    has_changes = (
        changes.importance.changed
        or changes.notes.changed
        or bool(directions.added or directions.removed or directions.modified)
        or left.title != right.title
    )
    return TopicDiff(topic=right, changes=changes, has_changes=has_changes)


def compute_diff(left: PreferenceSet, right: PreferenceSet) -> PreferenceSetDiff:
    """Classify every topic of two preference sets.

    Args:
        left: The baseline document (e.g. the user's current set).
        right: The document compared against it (e.g. an import).

    Returns:
        Added/removed/modified/unchanged topics plus counts. Order follows
        ``right.topics``, then ``left.topics`` for removed topics.
    """
    topics = TopicClassification()

    for topic in right.topics:
        match = match_by_title(topic, left.topics)
        if match is None:
            topics.added.append(topic)
        else:
            td = compute_topic_diff(match, topic)
            if td.has_changes:
                topics.modified.append(td)
            else:
                topics.unchanged.append(topic)

    for topic in left.topics:
        if match_by_title(topic, right.topics) is None:
            topics.removed.append(topic)

    summary = DiffSummary(
        total_topics=(
            len(topics.added) + len(topics.removed) + len(topics.modified) + len(topics.unchanged)
        ),
        added_count=len(topics.added),
        removed_count=len(topics.removed),
        modified_count=len(topics.modified),
        unchanged_count=len(topics.unchanged),
    )
    logger.debug(
        "Diff '%s' -> '%s': %d added, %d removed, %d modified, %d unchanged",
        left.title, right.title,
        summary.added_count, summary.removed_count,
        summary.modified_count, summary.unchanged_count,
    )
    return PreferenceSetDiff(
        title=FieldChange(left.title, right.title),
        topics=topics,
        summary=summary,
    )


def compute_priority_comparison(
    left: PreferenceSet, right: PreferenceSet
) -> list[PriorityComparison]:
    """Flatten both documents into one importance row per topic title."""
    rows: dict[str, PriorityComparison] = {}

    for topic in right.topics:
        key = normalize(topic.title)
        if key in rows:
            continue
        match = match_by_title(topic, left.topics)
        left_importance = match.importance if match else 0
        rows[key] = PriorityComparison(
            topic_id=topic.id,
            topic_title=topic.title,
            left_importance=left_importance,
            right_importance=topic.importance,
            importance_diff=topic.importance - left_importance,
            stance_changed=match is not None and match.stance != topic.stance,
        )

    for topic in left.topics:
        key = normalize(topic.title)
        if key in rows:
            continue
        rows[key] = PriorityComparison(
            topic_id=topic.id,
            topic_title=topic.title,
            left_importance=topic.importance,
            right_importance=0,
            importance_diff=-topic.importance,
        )

    return list(rows.values())
