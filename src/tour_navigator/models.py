"""Pydantic domain models for tours, waypoints and their generated content."""

import uuid
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator


def _new_id() -> str:
    return uuid.uuid4().hex


class LatLng(BaseModel):
    model_config = ConfigDict(frozen=True)

    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)


class ContentNugget(BaseModel):
    """One unit of generated content: the main description or a follow-up answer."""

    id: str = Field(default="", validation_alias=AliasChoices("id", "nugget_id"))
    question: Optional[str] = None
    answer: Optional[str] = Field(default=None, validation_alias=AliasChoices("answer", "info"))
    audio_path: Optional[str] = None
    ready: bool = False

    @property
    def is_follow_up(self) -> bool:
        return self.question is not None


class Waypoint(BaseModel):
    """A stop on a tour.

    ``id`` is minted locally and never sent to the backend; the backend
    matches points by ``(name, lat, lng)`` instead.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(default_factory=_new_id)
    name: str = Field(validation_alias=AliasChoices("name", "location"))
    lat: float = Field(ge=-90, le=90, validation_alias=AliasChoices("lat", "latitude"))
    lng: float = Field(ge=-180, le=180, validation_alias=AliasChoices("lng", "longitude"))
    visited: bool = False
    content: list[ContentNugget] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def fold_legacy_content(cls, data):
        # Older backends put a single nugget's fields directly on the point.
        if not isinstance(data, dict) or data.get("content"):
            return data
        legacy = {k: data[k] for k in ("info", "audio_path", "ready") if k in data}
        if not legacy:
            return data
        data = {k: v for k, v in data.items() if k not in legacy}
        data["content"] = [ContentNugget.model_validate(legacy)]
        return data

    @property
    def position(self) -> LatLng:
        return LatLng(lat=self.lat, lng=self.lng)

    @property
    def key(self) -> tuple[str, float, float]:
        return (self.name, self.lat, self.lng)

    @property
    def main_nugget(self) -> Optional[ContentNugget]:
        return self.content[0] if self.content else None

    @property
    def content_complete(self) -> bool:
        return bool(self.content) and all(n.ready for n in self.content)

    def to_wire(self) -> dict:
        """Backend payload for this point. Content is generated server-side."""
        return {"location": self.name, "latitude": self.lat, "longitude": self.lng}


class Tour(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(default="", validation_alias=AliasChoices("id", "tour_id"))
    name: str = Field(default="", validation_alias=AliasChoices("name", "tour_name"))
    guide_personality: str = Field(
        default="", validation_alias=AliasChoices("guide_personality", "tour_guide_personality"),
    )
    user_preferences: str = ""
    waypoints: list[Waypoint] = Field(
        default_factory=list, validation_alias=AliasChoices("waypoints", "points"),
    )
    audio_output_dir: Optional[str] = None

    def to_wire(self) -> dict:
        payload = {
            "tour_name": self.name,
            "tour_guide_personality": self.guide_personality,
            "user_preferences": self.user_preferences,
            "points": [w.to_wire() for w in self.waypoints],
        }
        if self.id:
            payload["tour_id"] = self.id
        return payload


class FollowUpReceipt(BaseModel):
    """Backend acknowledgement of a follow-up question."""
    nugget: Optional[ContentNugget] = None
    nugget_id: str


class PlaceCandidate(BaseModel):
    display_name: str
    name: str
    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)
    place_type: str = "unknown"
