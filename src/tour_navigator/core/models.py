"""Pydantic return models for core computation functions."""

from typing import Optional

from pydantic import BaseModel, Field, model_validator

from tour_navigator.models import LatLng


class SegmentProjection(BaseModel):
    """Return type for project_onto_segment."""
    point: LatLng
    t: float = Field(ge=0.0, le=1.0)


class RouteLeg(BaseModel):
    distance_m: float = Field(default=0.0, ge=0)
    duration_s: float = Field(default=0.0, ge=0)


class DirectionsResult(BaseModel):
    """What the core consumes from a successful directions response."""
    waypoint_order: list[int] = Field(default_factory=list)
    overview_polyline: str = ""
    legs: list[RouteLeg] = Field(default_factory=list)


class RouteOutcome(BaseModel):
    """Return type for recompute_route."""
    computed: bool = False
    reordered: bool = False
    error: Optional[str] = None
    samples: int = 0
    distance_m: float = 0.0
    duration_s: float = 0.0


class ProgressSplit(BaseModel):
    """Completed/remaining split of the route polyline around the snap point."""
    completed: list[LatLng] = Field(default_factory=list)
    remaining: list[LatLng] = Field(default_factory=list)
    snap_index: int = -1
    snapped_point: Optional[LatLng] = None
    closest_index: int = -1
    floor_index: int = 0

    @model_validator(mode="after")
    def snapped_point_needs_index(self) -> "ProgressSplit":
        if self.snapped_point is not None and self.snap_index < 0:
            raise ValueError("snap_index must be set when snapped_point is present")
        return self


class ArrivalEvent(BaseModel):
    waypoint_id: str
    waypoint_name: str
    index: int = Field(ge=0)
    distance_m: float = Field(ge=0)
    audio_path: Optional[str] = None
    completed: bool = False


class PositionUpdate(BaseModel):
    """Return type for on_position_update."""
    accepted: bool
    reason: str = ""
    distance_to_target_m: Optional[float] = None
    arrival: Optional[ArrivalEvent] = None
