"""Navigation state machine: idle -> navigating -> completed.

``on_position_update`` is the only place position fixes change tour state.
Real GPS fixes and simulated map clicks arrive as the same ``PositionFix``
tagged with their source; fixes from the source that is not selected are
ignored, so the two modes never interleave.
"""

import logging
from collections.abc import Sequence
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, Field

from tour_navigator.models import Waypoint
from tour_navigator.state import AudioCue, NavigationParams, NavigationSession, NavStatus, PositionMode
from .geo import coerce_position, distance_meters
from .models import ArrivalEvent, PositionUpdate

logger = logging.getLogger(__name__)


class RealGeolocation(BaseModel):
    kind: Literal["real"] = "real"


class SimulatedClick(BaseModel):
    kind: Literal["simulated"] = "simulated"


PositionSource = Annotated[Union[RealGeolocation, SimulatedClick], Field(discriminator="kind")]


class PositionFix(BaseModel):
    """A raw fix from a position source. Coordinates are checked later, not here."""
    lat: Any = None
    lng: Any = None
    source: PositionSource = Field(default_factory=SimulatedClick)

    @property
    def mode(self) -> PositionMode:
        return PositionMode(self.source.kind)


def real_fix(lat, lng) -> PositionFix:
    return PositionFix(lat=lat, lng=lng, source=RealGeolocation())


def simulated_fix(lat, lng) -> PositionFix:
    return PositionFix(lat=lat, lng=lng, source=SimulatedClick())


def can_start(waypoints: Sequence[Waypoint]) -> bool:
    """A tour can start once every stop's main content is ready."""
    return bool(waypoints) and all(
        wp.main_nugget is not None and wp.main_nugget.ready for wp in waypoints
    )


def start_navigation(
    waypoints: Sequence[Waypoint],
    navigation: NavigationSession,
    mode: Optional[PositionMode] = None,
) -> None:
    """Reset progress and enter the navigating state.

    Raises:
        ValueError: the tour has no waypoints.
    """
    if not waypoints:
        raise ValueError("Add at least one waypoint before starting navigation.")
    for wp in waypoints:
        wp.visited = False
    navigation.current_index = 0
    navigation.current_position = None
    navigation.clear_follow_up()
    if mode is not None:
        navigation.mode = mode
    navigation.status = NavStatus.NAVIGATING
    logger.info("Navigation started: %d waypoint(s), %s mode", len(waypoints), navigation.mode.value)


def stop_navigation(navigation: NavigationSession) -> None:
    navigation.status = NavStatus.IDLE
    navigation.clear_follow_up()
    logger.info("Navigation stopped at index %d", navigation.current_index)


def set_mode(navigation: NavigationSession, mode: PositionMode) -> None:
    """Switch position source. The last fix belongs to the old source and is dropped."""
    if navigation.mode != mode:
        navigation.mode = mode
        navigation.current_position = None


def on_position_update(
    waypoints: Sequence[Waypoint],
    navigation: NavigationSession,
    fix: PositionFix,
    params: Optional[NavigationParams] = None,
    audio: Optional[AudioCue] = None,
) -> PositionUpdate:
    """Apply one position fix.

    Arrival is judged only against the current target, so a single fix
    marks at most one waypoint visited even if several are in range.
    Repeated fixes inside the radius of a visited target change nothing.
    """
    params = params or NavigationParams()

    if navigation.status != NavStatus.NAVIGATING:
        return PositionUpdate(accepted=False, reason="not navigating")
    if fix.mode != navigation.mode:
        return PositionUpdate(accepted=False, reason=f"{fix.mode.value} fix ignored in {navigation.mode.value} mode")

    position = coerce_position(fix)
    if position is None:
        logger.debug("Ignoring unusable fix %r", fix)
        return PositionUpdate(accepted=False, reason="invalid position")
    navigation.current_position = position

    index = navigation.current_index
    if index >= len(waypoints):
        return PositionUpdate(accepted=True, reason="tour complete")
    target = waypoints[index]
    if target.visited:
        return PositionUpdate(accepted=True, reason="target already visited")

    dist = distance_meters(position, target)
    if dist >= params.arrival_threshold_m:
        return PositionUpdate(accepted=True, distance_to_target_m=dist)

    target.visited = True
    navigation.active_follow_up_waypoint_id = target.id

    audio_path = None
    main = target.main_nugget
    if main is not None and main.ready and main.audio_path:
        audio_path = main.audio_path
        if audio is not None:
            audio.play(audio_path)

    completed = index + 1 >= len(waypoints)
    navigation.current_index = index + 1
    if completed:
        navigation.status = NavStatus.COMPLETED
        navigation.clear_follow_up()
        logger.info("Tour completed at %r", target.name)
    else:
        logger.info("Arrived at %r (%d/%d)", target.name, index + 1, len(waypoints))

    return PositionUpdate(
        accepted=True,
        distance_to_target_m=dist,
        arrival=ArrivalEvent(
            waypoint_id=target.id,
            waypoint_name=target.name,
            index=index,
            distance_m=dist,
            audio_path=audio_path,
            completed=completed,
        ),
    )


def current_target(waypoints: Sequence[Waypoint], navigation: NavigationSession) -> Optional[Waypoint]:
    if navigation.status == NavStatus.NAVIGATING and navigation.current_index < len(waypoints):
        return waypoints[navigation.current_index]
    return None
