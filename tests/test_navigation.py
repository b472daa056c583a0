"""Tests for the navigation state machine."""
import logging

import pytest

from tour_navigator.models import ContentNugget, Waypoint
from tour_navigator.state import AudioCue, NavigationParams, NavigationSession, NavStatus, PositionMode
from tour_navigator.core.navigation import (
    PositionFix,
    can_start,
    current_target,
    on_position_update,
    real_fix,
    set_mode,
    simulated_fix,
    start_navigation,
    stop_navigation,
)


def _ready(path=None):
    return [ContentNugget(answer="About this place", audio_path=path, ready=True)]


def _two_stops():
    return [
        Waypoint(name="A", lat=0.0, lng=0.0, content=_ready("/audio/a.mp3")),
        Waypoint(name="B", lat=0.0, lng=0.001, content=_ready("/audio/b.mp3")),
    ]


def _navigating(waypoints, mode=PositionMode.SIMULATED):
    session = NavigationSession(mode=mode)
    start_navigation(waypoints, session)
    return session


class TestCanStart:
    def test_requires_ready_main_nugget(self):
        wps = _two_stops()
        assert can_start(wps) is True
        wps[1].content[0].ready = False
        assert can_start(wps) is False

    def test_empty_content_or_tour(self):
        assert can_start([]) is False
        assert can_start([Waypoint(name="A", lat=0, lng=0)]) is False

    def test_unready_follow_up_does_not_block(self):
        wps = _two_stops()
        wps[0].content.append(ContentNugget(question="Why?", ready=False))
        assert can_start(wps) is True


class TestStartStop:
    def test_start_resets_progress(self):
        wps = _two_stops()
        wps[0].visited = True
        session = NavigationSession(current_index=1, active_follow_up_waypoint_id="x", pending_question="q")
        start_navigation(wps, session)
        assert session.status == NavStatus.NAVIGATING
        assert session.current_index == 0
        assert session.active_follow_up_waypoint_id is None
        assert session.pending_question == ""
        assert not any(w.visited for w in wps)

    def test_start_requires_waypoints(self):
        with pytest.raises(ValueError):
            start_navigation([], NavigationSession())

    def test_start_with_mode(self):
        session = NavigationSession()
        start_navigation(_two_stops(), session, mode=PositionMode.REAL)
        assert session.mode == PositionMode.REAL

    def test_stop_goes_idle(self):
        wps = _two_stops()
        session = _navigating(wps)
        session.active_follow_up_waypoint_id = wps[0].id
        stop_navigation(session)
        assert session.status == NavStatus.IDLE
        assert session.active_follow_up_waypoint_id is None

    def test_set_mode_drops_position(self):
        wps = _two_stops()
        session = _navigating(wps)
        on_position_update(wps, session, simulated_fix(1.0, 1.0))
        assert session.current_position is not None
        set_mode(session, PositionMode.REAL)
        assert session.current_position is None


class TestPositionUpdate:
    def test_two_waypoint_walk(self):
        wps = _two_stops()
        session = _navigating(wps)
        audio = AudioCue()

        first = on_position_update(wps, session, simulated_fix(0.0, 0.0), audio=audio)
        assert first.arrival is not None and first.arrival.waypoint_name == "A"
        assert wps[0].visited is True
        assert session.current_index == 1
        assert session.active_follow_up_waypoint_id == wps[0].id
        assert audio.path == "/audio/a.mp3" and audio.play_signal == 1

        second = on_position_update(wps, session, simulated_fix(0.0, 0.001), audio=audio)
        assert second.arrival.completed is True
        assert wps[1].visited is True
        assert session.current_index == 2
        assert session.status == NavStatus.COMPLETED
        assert session.active_follow_up_waypoint_id is None
        assert audio.play_signal == 2

    def test_repeated_fix_is_idempotent(self):
        wps = _two_stops()
        session = _navigating(wps)
        audio = AudioCue()
        on_position_update(wps, session, simulated_fix(0.0, 0.0), audio=audio)
        again = on_position_update(wps, session, simulated_fix(0.0, 0.0), audio=audio)
        assert again.arrival is None
        assert session.current_index == 1
        assert wps[1].visited is False
        assert audio.play_signal == 1

    def test_one_waypoint_per_update(self):
        # Two stops 5 m apart, both inside the arrival radius
        wps = [
            Waypoint(name="A", lat=0.0, lng=0.0, content=_ready()),
            Waypoint(name="B", lat=0.0, lng=0.000045, content=_ready()),
        ]
        session = _navigating(wps)
        on_position_update(wps, session, simulated_fix(0.0, 0.00002))
        assert [w.visited for w in wps] == [True, False]
        assert session.current_index == 1
        on_position_update(wps, session, simulated_fix(0.0, 0.00002))
        assert [w.visited for w in wps] == [True, True]
        assert session.status == NavStatus.COMPLETED

    def test_out_of_order_stop_is_not_visited(self):
        wps = _two_stops()
        session = _navigating(wps)
        update = on_position_update(wps, session, simulated_fix(0.0, 0.001))
        assert update.arrival is None
        assert update.distance_to_target_m == pytest.approx(111.19, abs=0.1)
        assert not any(w.visited for w in wps)

    def test_threshold_is_strict(self):
        wps = _two_stops()
        session = _navigating(wps)
        params = NavigationParams(arrival_threshold_m=111.19)
        update = on_position_update(wps, session, simulated_fix(0.0, 0.001), params=params)
        assert update.arrival is None

    def test_ignored_when_not_navigating(self):
        wps = _two_stops()
        update = on_position_update(wps, NavigationSession(), simulated_fix(0.0, 0.0))
        assert update.accepted is False
        assert wps[0].visited is False

    def test_other_source_ignored(self):
        wps = _two_stops()
        session = _navigating(wps, mode=PositionMode.SIMULATED)
        update = on_position_update(wps, session, real_fix(0.0, 0.0))
        assert update.accepted is False
        assert session.current_position is None
        assert wps[0].visited is False

    @pytest.mark.parametrize("lat,lng", [(None, 0.0), ("north", 0.0), (float("nan"), 0.0), (95.0, 0.0)])
    def test_malformed_fix_ignored(self, lat, lng, caplog):
        wps = _two_stops()
        session = _navigating(wps)
        with caplog.at_level(logging.DEBUG, logger="tour_navigator.core.navigation"):
            update = on_position_update(wps, session, PositionFix(lat=lat, lng=lng))
        assert update.accepted is False
        assert update.reason == "invalid position"
        assert session.current_position is None

    def test_no_audio_when_path_missing(self):
        wps = [Waypoint(name="A", lat=0, lng=0, content=_ready(None))]
        session = _navigating(wps)
        audio = AudioCue()
        update = on_position_update(wps, session, simulated_fix(0, 0), audio=audio)
        assert update.arrival.audio_path is None
        assert audio.play_signal == 0

    def test_current_target(self):
        wps = _two_stops()
        session = _navigating(wps)
        assert current_target(wps, session).name == "A"
        on_position_update(wps, session, simulated_fix(0, 0))
        assert current_target(wps, session).name == "B"
        stop_navigation(session)
        assert current_target(wps, session) is None
