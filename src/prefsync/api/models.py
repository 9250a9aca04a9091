"""Pydantic models for API request bodies."""

from pydantic import BaseModel, ConfigDict, Field

from prefsync.schema.models import PreferenceSet, Topic


class DiffRequest(BaseModel):
    left: PreferenceSet
    right: PreferenceSet


class MergeRequest(BaseModel):
    """Merge ``incoming`` into ``current``.

    When ``accept_titles`` is given only those incoming topics are merged or
    appended (import preview flow).
    """

    model_config = ConfigDict(populate_by_name=True)

    current: PreferenceSet
    incoming: PreferenceSet
    accept_titles: list[str] | None = Field(None, alias="acceptTitles")


class EncodeRequest(BaseModel):
    topics: list[Topic]
    legacy: bool = False  # dense #sp= payload instead of sparse #sp2=


class DecodeRequest(BaseModel):
    """Either a raw payload or a full share URL."""

    payload: str | None = None
    url: str | None = None


class ApplyRequest(DecodeRequest):
    topics: list[Topic]
