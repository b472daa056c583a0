"""GPX import/export for tours, and replay of recorded tracks as a position feed."""

import asyncio
from collections.abc import AsyncIterator, Sequence
from pathlib import Path

import gpxpy
import gpxpy.gpx

from tour_navigator.models import LatLng, Waypoint


def parse_gpx_waypoints(filepath: str) -> list[Waypoint]:
    """Waypoints of a GPX file, falling back to its route points.

    Unnamed points are called "Stop <n>".
    """
    with open(filepath, "r") as f:
        gpx = gpxpy.parse(f)

    raw = list(gpx.waypoints)
    if not raw:
        raw = [pt for route in gpx.routes for pt in route.points]

    return [
        Waypoint(name=pt.name or f"Stop {i}", lat=pt.latitude, lng=pt.longitude)
        for i, pt in enumerate(raw, 1)
    ]


def parse_gpx_track(filepath: str) -> list[LatLng]:
    """All track points of a GPX file, in recorded order."""
    with open(filepath, "r") as f:
        gpx = gpxpy.parse(f)
    return [
        LatLng(lat=point.latitude, lng=point.longitude)
        for track in gpx.tracks
        for segment in track.segments
        for point in segment.points
    ]


def build_tour_gpx(name: str, waypoints: Sequence[Waypoint], path: Sequence[LatLng]) -> gpxpy.gpx.GPX:
    gpx = gpxpy.gpx.GPX()
    gpx.name = name or "Walking tour"

    for wp in waypoints:
        gpx.waypoints.append(gpxpy.gpx.GPXWaypoint(
            latitude=wp.lat, longitude=wp.lng, name=wp.name,
            description=wp.main_nugget.answer if wp.main_nugget else None,
        ))

    route = gpxpy.gpx.GPXRoute(name=gpx.name)
    for wp in waypoints:
        route.points.append(gpxpy.gpx.GPXRoutePoint(latitude=wp.lat, longitude=wp.lng, name=wp.name))
    gpx.routes.append(route)

    if path:
        track = gpxpy.gpx.GPXTrack(name=gpx.name)
        segment = gpxpy.gpx.GPXTrackSegment()
        for p in path:
            segment.points.append(gpxpy.gpx.GPXTrackPoint(latitude=p.lat, longitude=p.lng))
        track.segments.append(segment)
        gpx.tracks.append(track)
    return gpx


def export_tour_gpx(
    name: str, waypoints: Sequence[Waypoint], path: Sequence[LatLng], output_path: str,
) -> dict:
    """Write the tour stops, their order and the walking path to a GPX file."""
    out = Path(output_path)
    out.parent.mkdir(parents=True, exist_ok=True)
    gpx = build_tour_gpx(name, waypoints, path)
    out.write_text(gpx.to_xml())
    return {
        "success": True,
        "filepath": str(out),
        "waypoints": len(waypoints),
        "track_points": len(path),
    }


async def replay_track(points: Sequence[LatLng], interval_s: float = 1.0) -> AsyncIterator[LatLng]:
    """Yield recorded points one at a time, as a live receiver would."""
    for i, point in enumerate(points):
        if i:
            await asyncio.sleep(interval_s)
        yield point
