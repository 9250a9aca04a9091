"""Tests for the preference-set diff engine."""

from prefsync.reconcile.diff import (
    FieldChange,
    classify_directions,
    compute_diff,
    compute_priority_comparison,
)
from prefsync.schema.models import Direction, PreferenceSet, Topic


def _dir(direction_id: str, text: str, stars: int = 0, **extra) -> Direction:
    return Direction(id=direction_id, text=text, stars=stars, **extra)


def _topic(topic_id: str, title: str, importance: int, directions=(), **extra) -> Topic:
    return Topic(id=topic_id, title=title, importance=importance, directions=list(directions), **extra)


def _doc(title: str, topics: list[Topic]) -> PreferenceSet:
    return PreferenceSet(
        title=title,
        topics=topics,
        created_at="2024-01-01T00:00:00.000Z",
        updated_at="2024-01-01T00:00:00.000Z",
    )


def _left() -> PreferenceSet:
    return _doc("Left", [
        _topic("topic-1", "Climate Change", 5, [_dir("dir-1", "Reduce emissions", 5)],
               stance="for", notes="Important topic"),
        _topic("topic-2", "Education", 3),
    ])


def _right() -> PreferenceSet:
    return _doc("Right", [
        _topic("topic-1", "Climate Change", 4, [_dir("dir-1", "Reduce emissions", 4)],
               stance="lean_for", notes="Important topic"),
        _topic("topic-3", "Healthcare", 4, stance="for"),
    ])


class TestComputeDiff:
    def test_classification(self):
        diff = compute_diff(_left(), _right())

        assert diff.title == FieldChange("Left", "Right")
        assert [t.title for t in diff.topics.added] == ["Healthcare"]
        assert [t.title for t in diff.topics.removed] == ["Education"]
        assert [td.topic.title for td in diff.topics.modified] == ["Climate Change"]
        assert diff.topics.unchanged == []

        summary = diff.summary
        assert (summary.added_count, summary.removed_count) == (1, 1)
        assert (summary.modified_count, summary.unchanged_count) == (1, 0)
        assert summary.total_topics == 3

    def test_modified_topic_changes(self):
        diff = compute_diff(_left(), _right())
        td = diff.topics.modified[0]

        assert td.has_changes
        assert td.changes.importance == FieldChange(5, 4)
        assert not td.changes.notes.changed
        assert td.changes.directions.added == []
        assert td.changes.directions.removed == []
        assert len(td.changes.directions.modified) == 1

        dd = td.changes.directions.modified[0]
        assert dd.changes.stars == FieldChange(5, 4)
        assert not dd.changes.text.changed
        assert dd.direction.stars == 4

    def test_identical_documents(self):
        doc = _left()
        diff = compute_diff(doc, doc)
        assert diff.topics.added == []
        assert diff.topics.removed == []
        assert diff.topics.modified == []
        assert len(diff.topics.unchanged) == len(doc.topics)
        assert diff.summary.unchanged_count == 2

    def test_matches_titles_case_insensitively_despite_ids(self):
        left = _doc("L", [_topic("a1", "Transit", 3)])
        right = _doc("R", [_topic("b7", "  transit", 3)])
        diff = compute_diff(left, right)
        assert diff.topics.added == []
        assert diff.topics.removed == []
        # The exact title differs, so the pair is reported as modified
        assert len(diff.topics.modified) == 1

    def test_same_ids_different_titles_are_not_matched(self):
        left = _doc("L", [_topic("t1", "Housing", 3)])
        right = _doc("R", [_topic("t1", "Transit", 3)])
        diff = compute_diff(left, right)
        assert [t.title for t in diff.topics.added] == ["Transit"]
        assert [t.title for t in diff.topics.removed] == ["Housing"]

    def test_stance_alone_does_not_modify(self):
        left = _doc("L", [_topic("t1", "Housing", 3, stance="for")])
        right = _doc("R", [_topic("t1", "Housing", 3, stance="against")])
        assert len(compute_diff(left, right).topics.unchanged) == 1

    def test_notes_none_and_empty_are_equal(self):
        left = _doc("L", [_topic("t1", "Housing", 3, [_dir("d1", "Build", 2, notes=None)])])
        right = _doc("R", [_topic("t1", "Housing", 3, [_dir("d1", "Build", 2, notes="")])])
        assert len(compute_diff(left, right).topics.unchanged) == 1

    def test_reordered_directions_are_unchanged(self):
        a, b = _dir("d1", "Build more homes", 3), _dir("d2", "Fund transit", 2)
        left = _doc("L", [_topic("t1", "Housing", 3, [a, b])])
        right = _doc("R", [_topic("t1", "Housing", 3, [b, a])])
        diff = compute_diff(left, right)
        assert diff.topics.modified == []
        assert len(diff.topics.unchanged) == 1
        assert diff.summary.unchanged_count == 1

    def test_modified_topics_always_report_changes(self):
        diff = compute_diff(_left(), _right())
        assert all(td.has_changes for td in diff.topics.modified)

    def test_deterministic(self):
        assert compute_diff(_left(), _right()) == compute_diff(_left(), _right())

    def test_order_follows_documents(self):
        left = _doc("L", [_topic("1", "A", 1), _topic("2", "B", 1), _topic("3", "C", 1)])
        right = _doc("R", [_topic("9", "Z", 1), _topic("8", "Y", 1)])
        diff = compute_diff(left, right)
        assert [t.title for t in diff.topics.added] == ["Z", "Y"]
        assert [t.title for t in diff.topics.removed] == ["A", "B", "C"]


class TestClassifyDirections:
    def test_three_way(self):
        left = [_dir("d1", "Keep", 3), _dir("d2", "Change", 2), _dir("d3", "Drop", 1)]
        right = [_dir("x1", "keep", 3), _dir("x2", "Change", 5, notes="n"), _dir("x4", "New", 4)]
        result = classify_directions(left, right)

        assert [d.text for d in result.added] == ["New"]
        assert [d.text for d in result.removed] == ["Drop"]
        assert [dd.direction.text for dd in result.modified] == ["keep", "Change"]
        assert result.unchanged == []

        change = result.modified[1].changes
        assert change.stars == FieldChange(2, 5)
        assert change.notes == FieldChange("", "n")

    def test_unchanged(self):
        dirs = [_dir("d1", "Same", 3)]
        result = classify_directions(dirs, [_dir("other", "Same", 3)])
        assert [d.text for d in result.unchanged] == ["Same"]


class TestPriorityComparison:
    def test_rows_for_both_sides(self):
        rows = compute_priority_comparison(_left(), _right())
        by_title = {r.topic_title: r for r in rows}

        assert len(rows) == 3

        climate = by_title["Climate Change"]
        assert (climate.left_importance, climate.right_importance) == (5, 4)
        assert climate.importance_diff == -1
        assert climate.stance_changed

        education = by_title["Education"]
        assert (education.left_importance, education.right_importance) == (3, 0)
        assert education.importance_diff == -3
        assert not education.stance_changed

        healthcare = by_title["Healthcare"]
        assert (healthcare.left_importance, healthcare.right_importance) == (0, 4)
        assert healthcare.importance_diff == 4

    def test_order_is_right_then_left_only(self):
        rows = compute_priority_comparison(_left(), _right())
        assert [r.topic_title for r in rows] == ["Climate Change", "Healthcare", "Education"]

    def test_duplicate_titles_collapse_to_one_row(self):
        left = _doc("L", [_topic("1", "Transit", 2)])
        right = _doc("R", [_topic("2", "Transit", 4), _topic("3", "TRANSIT", 1)])
        rows = compute_priority_comparison(left, right)
        assert len(rows) == 1
        assert rows[0].importance_diff == 2
        assert rows[0].topic_id == "2"
