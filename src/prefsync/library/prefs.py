"""Build preference sets from compact library entries and back.

A library index stores each candidate as a sparse prefs map,
``{topicId: {directionId: stars}}``, relative to the starter pack:

    {"version": "tsb.lib.v1",
     "candidates": [{"id": ..., "title": ..., "prefs": {...}, "notes": ...}]}
"""

import json
import logging
import re
from datetime import datetime, timezone
from pathlib import Path

from pydantic import ValidationError

from prefsync.schema.models import PREFERENCE_SET_VERSION, Direction, PreferenceSet, Topic
from prefsync.share.codec import clamp_rating

logger = logging.getLogger(__name__)

LIBRARY_INDEX_VERSION = "tsb.lib.v1"

PrefMap = dict[str, dict[str, int]]


def slugify(text: str | None) -> str:
    return re.sub(r"[^a-z0-9]+", "-", str(text or "").lower()).strip("-")


def build_preference_set_from_prefs(
    title: str, prefs: PrefMap, starter_pack: dict, notes: str = ""
) -> PreferenceSet:
    """Expand a prefs map into a full preference set over every starter topic.

    Directions missing from ``prefs`` get 0 stars, ids unknown to the starter
    pack are ignored, and each topic's importance is the highest star rating
    among its directions.
    """
    now = datetime.now(timezone.utc).isoformat()
    topics = []
    for sp_topic in starter_pack.get("topics", []):
        topic_prefs = prefs.get(sp_topic["id"]) or {}
        directions = [
            Direction(id=d["id"], text=d["text"], stars=clamp_rating(topic_prefs.get(d["id"], 0)))
            for d in sp_topic.get("directions") or []
        ]
        topics.append(
            Topic(
                id=sp_topic["id"],
                title=sp_topic["title"],
                importance=max((d.stars for d in directions), default=0),
                stance="neutral",
                directions=directions,
            )
        )
    return PreferenceSet(title=title, notes=notes, topics=topics, created_at=now, updated_at=now)


def compact_preference_set(document: PreferenceSet) -> PrefMap:
    """Reduce a preference set to its non-zero direction stars."""
    prefs: PrefMap = {}
    for topic in document.topics:
        for direction in topic.directions:
            if direction.stars <= 0:
                continue
            prefs.setdefault(topic.id, {})[direction.id] = direction.stars
    return prefs


def build_library_index(directory: str | Path) -> dict:
    """Compact every ``tsb.v1`` document in ``directory`` into a library index.

    Files that can't be read or aren't ``tsb.v1`` preference sets are skipped.
    """
    directory = Path(directory)
    files = sorted(directory.glob("*.json")) if directory.is_dir() else []

    candidates = []
    for path in files:
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
            if not isinstance(raw, dict) or raw.get("version") != PREFERENCE_SET_VERSION:
                logger.debug("Skipping %s: not a %s document", path.name, PREFERENCE_SET_VERSION)
                continue
            document = PreferenceSet.model_validate(raw)
        except (OSError, ValueError, ValidationError):
            logger.warning("Skipping invalid JSON: %s", path)
            continue

        candidates.append({
            "id": path.stem,
            "title": document.title or path.stem,
            "prefs": compact_preference_set(document),
            "notes": document.notes or "",
        })

    logger.info("Built library index with %d candidates from %s", len(candidates), directory)
    return {"version": LIBRARY_INDEX_VERSION, "candidates": candidates}


def _candidate_title(candidate: dict) -> str:
    if candidate.get("title"):
        return candidate["title"]
    name = candidate.get("name") or "Candidate"
    return f"{name} — {candidate.get('year', '')} ({candidate.get('party', '')}) {candidate.get('stage', '')}".strip()


def _candidate_id(candidate: dict) -> str:
    if candidate.get("id"):
        return candidate["id"]
    return f"{slugify(candidate.get('name'))}-{candidate.get('year', '')}-{slugify(candidate.get('stage'))}"


def expand_library_index(index: dict, starter_pack: dict) -> dict[str, PreferenceSet]:
    """Expand every candidate in a library index into a full preference set, keyed by id."""
    expanded: dict[str, PreferenceSet] = {}
    for candidate in index.get("candidates") or []:
        expanded[_candidate_id(candidate)] = build_preference_set_from_prefs(
            _candidate_title(candidate),
            candidate.get("prefs") or {},
            starter_pack,
            notes=candidate.get("notes") or "",
        )
    return expanded
