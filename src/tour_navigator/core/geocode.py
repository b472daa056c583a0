"""Place search and reverse geocoding via Nominatim."""

import logging

import httpx
from pydantic import ValidationError

from tour_navigator.config import USER_AGENT, settings
from tour_navigator.models import PlaceCandidate

logger = logging.getLogger(__name__)


def placeholder_name(lat: float, lng: float) -> str:
    """Name for a point whose reverse geocode failed or was unusable."""
    return f"Point {lat:.4f}, {lng:.4f}"


async def search_places(query: str, limit: int = 5) -> list[PlaceCandidate]:
    """Forward search. Raises httpx.HTTPError on transport or HTTP failure."""
    async with httpx.AsyncClient(timeout=10.0, headers={"User-Agent": USER_AGENT}) as client:
        response = await client.get(
            f"{settings.nominatim_url}/search",
            params={"q": query, "format": "json", "limit": limit},
        )
        response.raise_for_status()
        results = response.json()

    candidates = []
    for item in results:
        try:
            display = item["display_name"]
            candidates.append(PlaceCandidate(
                display_name=display,
                name=item.get("name") or display.split(",")[0],
                lat=float(item["lat"]),
                lng=float(item["lon"]),
                place_type=item.get("type", "unknown"),
            ))
        except (KeyError, TypeError, ValueError, ValidationError) as exc:
            logger.debug("Skipping malformed search result %r: %s", item, exc)
    return candidates


async def reverse_geocode_name(lat: float, lng: float) -> str:
    """Short human name for a coordinate, or a coordinate placeholder.

    Never raises: lookup failures and malformed answers fall back to
    ``placeholder_name`` so adding a point always succeeds.
    """
    try:
        async with httpx.AsyncClient(timeout=10.0, headers={"User-Agent": USER_AGENT}) as client:
            response = await client.get(
                f"{settings.nominatim_url}/reverse",
                params={"lat": lat, "lon": lng, "format": "json", "zoom": 18},
            )
            response.raise_for_status()
            data = response.json()
    except (httpx.HTTPError, ValueError) as exc:
        logger.warning("Reverse geocode failed for %.5f, %.5f: %s", lat, lng, exc)
        return placeholder_name(lat, lng)

    if not isinstance(data, dict):
        return placeholder_name(lat, lng)
    name = data.get("name")
    if not name and isinstance(data.get("display_name"), str):
        name = data["display_name"].split(",")[0]
    if not isinstance(name, str) or not name.strip():
        return placeholder_name(lat, lng)
    return name.strip()
