"""Pydantic models for preference-set documents."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

PREFERENCE_SET_VERSION = "tsb.v1"

Stance = Literal["against", "lean_against", "neutral", "lean_for", "for"]


class Source(BaseModel):
    """A labelled reference link."""

    label: str
    url: str


class Direction(BaseModel):
    """A desired outcome under a topic, rated independently with 0-5 stars."""

    id: str
    text: str
    stars: int = 0
    notes: str | None = None
    sources: list[Source] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)


class TopicRelations(BaseModel):
    broader: list[str] = Field(default_factory=list)
    narrower: list[str] = Field(default_factory=list)
    related: list[str] = Field(default_factory=list)


class Topic(BaseModel):
    """A weighted policy area.

    ``importance`` and ``stars`` are nominally 0-5. Range checks belong to the
    document validator; the engine clamps wherever it produces ratings.
    """

    id: str
    title: str
    importance: int = 0
    stance: Stance = "neutral"
    directions: list[Direction] = Field(default_factory=list)
    notes: str = ""
    sources: list[Source] = Field(default_factory=list)
    relations: TopicRelations = Field(default_factory=TopicRelations)


class PreferenceSet(BaseModel):
    """Top-level document. Serialized with camelCase timestamps."""

    model_config = ConfigDict(populate_by_name=True)

    version: Literal["tsb.v1"] = PREFERENCE_SET_VERSION
    title: str
    notes: str = ""
    topics: list[Topic] = Field(default_factory=list)
    created_at: str = Field("", alias="createdAt")
    updated_at: str = Field("", alias="updatedAt")
