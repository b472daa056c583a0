"""Walking directions with waypoint-order optimization (Google Directions web service)."""

import logging
from collections.abc import Sequence
from typing import Optional

import httpx
from pydantic import ValidationError

from tour_navigator.config import settings
from .models import DirectionsResult, RouteLeg

logger = logging.getLogger(__name__)


class DirectionsError(Exception):
    """The provider answered with a non-OK status or could not be reached."""

    def __init__(self, status: str, message: str = "") -> None:
        self.status = status
        self.message = message
        super().__init__(f"{status}: {message}" if message else status)


def _fmt(point) -> str:
    return f"{point.lat:.7f},{point.lng:.7f}"


def build_request_params(points: Sequence, api_key: str) -> dict:
    """Origin/destination are fixed; the intermediate stops may be reordered."""
    params = {
        "origin": _fmt(points[0]),
        "destination": _fmt(points[-1]),
        "mode": "walking",
        "key": api_key,
    }
    intermediate = points[1:-1]
    if intermediate:
        params["waypoints"] = "optimize:true|" + "|".join(_fmt(p) for p in intermediate)
    return params


def parse_directions_response(data: dict) -> DirectionsResult:
    """Pull order, overview polyline and leg totals out of a provider response.

    Raises:
        DirectionsError: non-OK status, no route, or a malformed body.
    """
    if not isinstance(data, dict):
        raise DirectionsError("INVALID_RESPONSE", "response body is not an object")
    status = data.get("status", "UNKNOWN_ERROR")
    if status != "OK":
        raise DirectionsError(status, data.get("error_message", ""))
    routes = data.get("routes") or []
    if not routes:
        raise DirectionsError("ZERO_RESULTS", "no route returned")
    try:
        route = routes[0]
        legs = [
            RouteLeg(
                distance_m=(leg.get("distance") or {}).get("value") or 0,
                duration_s=(leg.get("duration") or {}).get("value") or 0,
            )
            for leg in route.get("legs") or []
        ]
        return DirectionsResult(
            waypoint_order=route.get("waypoint_order") or [],
            overview_polyline=(route.get("overview_polyline") or {}).get("points") or "",
            legs=legs,
        )
    except (AttributeError, KeyError, TypeError, ValidationError) as exc:
        raise DirectionsError("INVALID_RESPONSE", str(exc)) from exc


async def fetch_walking_route(
    points: Sequence,
    api_key: Optional[str] = None,
    url: Optional[str] = None,
) -> DirectionsResult:
    """Ask the provider for an optimized walking route through ``points``.

    Raises:
        DirectionsError: non-OK status, transport failure or unusable body.
    """
    if len(points) < 2:
        raise ValueError("A route needs at least two points")
    params = build_request_params(points, api_key if api_key is not None else settings.maps_api_key)

    async with httpx.AsyncClient(timeout=settings.http_timeout_s) as client:
        try:
            response = await client.get(url or settings.directions_url, params=params)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as exc:
            logger.warning("Directions request returned HTTP %s", exc.response.status_code)
            raise DirectionsError("HTTP_ERROR", str(exc.response.status_code)) from exc
        except httpx.HTTPError as exc:
            logger.warning("Directions request failed: %s", exc)
            raise DirectionsError("REQUEST_FAILED", str(exc)) from exc
        except ValueError as exc:
            raise DirectionsError("INVALID_RESPONSE", str(exc)) from exc

    return parse_directions_response(data)
