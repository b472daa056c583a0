"""Session state for the tour-navigator MCP server.

Holds everything for the tour being edited or walked: tour metadata, the
ordered waypoints, the cached route, the navigation session, the audio cue
and the background tasks (content poller, position watch) the session owns.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, model_validator

from tour_navigator.models import LatLng, PlaceCandidate, Tour, Waypoint
from tour_navigator.tasks import SessionTasks


class NavStatus(str, Enum):
    IDLE = "idle"
    NAVIGATING = "navigating"
    COMPLETED = "completed"


class PositionMode(str, Enum):
    REAL = "real"
    SIMULATED = "simulated"


class NavigationParams(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    arrival_threshold_m: float = Field(default=30.0, gt=0)
    progress_threshold_m: float = Field(default=30.0, gt=0)
    poll_interval_s: float = Field(default=7.0, gt=0)
    resample_interval_m: float = Field(default=5.0, gt=0)
    match_epsilon_deg: float = Field(default=1e-4, ge=0, le=0.01)


class RouteCache(BaseModel):
    """Decoded route polyline plus the waypoint ordering it was computed for."""

    path: list[LatLng] = Field(default_factory=list)
    last_calculated: list[Waypoint] = Field(default_factory=list)
    is_calculating: bool = False
    distance_m: float = 0.0
    duration_s: float = 0.0

    def clear_path(self) -> None:
        self.path = []
        self.distance_m = 0.0
        self.duration_s = 0.0


class NavigationSession(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    status: NavStatus = NavStatus.IDLE
    current_index: int = Field(default=0, ge=0)
    mode: PositionMode = PositionMode.SIMULATED
    current_position: Optional[LatLng] = None
    active_follow_up_waypoint_id: Optional[str] = None
    pending_question: str = ""

    @property
    def is_navigating(self) -> bool:
        return self.status == NavStatus.NAVIGATING

    def clear_follow_up(self) -> None:
        self.active_follow_up_waypoint_id = None
        self.pending_question = ""


class AudioCue(BaseModel):
    """What the audio sink should play; it restarts whenever play_signal changes."""

    path: Optional[str] = None
    play_signal: int = Field(default=0, ge=0)

    def play(self, path: str) -> None:
        self.path = path
        self.play_signal += 1


class SessionState(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    tour_id: str = ""
    tour_name: str = ""
    guide_personality: str = ""
    user_preferences: str = ""
    waypoints: list[Waypoint] = Field(default_factory=list)
    route: RouteCache = Field(default_factory=RouteCache)
    navigation: NavigationSession = Field(default_factory=NavigationSession)
    params: NavigationParams = Field(default_factory=NavigationParams)
    audio: AudioCue = Field(default_factory=AudioCue)
    is_processing_submission: bool = False
    pending_place_candidates: list[PlaceCandidate] = Field(default_factory=list)

    _tasks: SessionTasks = PrivateAttr(default_factory=SessionTasks)

    @model_validator(mode="after")
    def check_index_in_range(self) -> "SessionState":
        if self.navigation.current_index > len(self.waypoints):
            raise ValueError(
                f"current_index ({self.navigation.current_index}) exceeds "
                f"waypoint count ({len(self.waypoints)})"
            )
        return self

    @property
    def tasks(self) -> SessionTasks:
        return self._tasks

    def find_waypoint(self, waypoint_id: Optional[str]) -> Optional[Waypoint]:
        if waypoint_id is None:
            return None
        for wp in self.waypoints:
            if wp.id == waypoint_id:
                return wp
        return None

    def as_tour(self) -> Tour:
        return Tour(
            id=self.tour_id,
            name=self.tour_name,
            guide_personality=self.guide_personality,
            user_preferences=self.user_preferences,
            waypoints=self.waypoints,
        )

    def reset_tour(self) -> None:
        """Tear down the current tour: cancel owned tasks and clear everything tour-scoped."""
        self._tasks.teardown()
        self.tour_id = ""
        self.tour_name = ""
        self.guide_personality = ""
        self.user_preferences = ""
        self.waypoints = []
        self.route = RouteCache()
        self.navigation = NavigationSession(mode=self.navigation.mode)
        self.audio = AudioCue()
        self.is_processing_submission = False
        self.pending_place_candidates = []

    def summary(self) -> dict:
        nav = self.navigation
        target = None
        if nav.is_navigating and nav.current_index < len(self.waypoints):
            target = self.waypoints[nav.current_index].name
        follow_up = self.find_waypoint(nav.active_follow_up_waypoint_id)
        return {
            "tour": {
                "saved": bool(self.tour_id),
                "tour_id": self.tour_id or None,
                "name": self.tour_name,
                "guide_personality": self.guide_personality,
            },
            "waypoints": [
                {
                    "index": i,
                    "name": wp.name,
                    "lat": wp.lat,
                    "lng": wp.lng,
                    "visited": wp.visited,
                    "nuggets": len(wp.content),
                    "ready": wp.content_complete,
                }
                for i, wp in enumerate(self.waypoints)
            ],
            "route": {
                "samples": len(self.route.path),
                "distance_m": round(self.route.distance_m, 1),
                "duration_s": round(self.route.duration_s, 1),
                "calculating": self.route.is_calculating,
                "stale": len(self.waypoints) >= 2 and [
                    w.key for w in self.waypoints
                ] != [w.key for w in self.route.last_calculated],
            },
            "navigation": {
                "status": nav.status.value,
                "mode": nav.mode.value,
                "current_index": nav.current_index,
                "target": target,
                "position": (
                    {"lat": nav.current_position.lat, "lng": nav.current_position.lng}
                    if nav.current_position else None
                ),
                "follow_up_waypoint": follow_up.name if follow_up else None,
            },
            "audio": {
                "path": self.audio.path,
                "play_signal": self.audio.play_signal,
            },
            "tasks": {
                "polling": self._tasks.polling,
                "watching_position": self._tasks.watching,
                "submission_in_flight": self.is_processing_submission,
            },
        }


# Global session state: one per MCP server process
state = SessionState()
