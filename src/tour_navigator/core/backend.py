"""Tour content backend client: list/get/save tours and post follow-up questions."""

import json
import logging
from typing import Optional
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from tour_navigator.config import USER_AGENT, settings
from tour_navigator.models import FollowUpReceipt, Tour

logger = logging.getLogger(__name__)


class BackendError(Exception):
    """A backend request failed or returned an unusable payload."""


def _maybe_json(value):
    if isinstance(value, str):
        try:
            return json.loads(value)
        except json.JSONDecodeError as exc:
            raise BackendError(f"Backend returned a malformed tour string: {exc}") from exc
    return value


def _unwrap_tour(payload) -> Tour:
    """Accept a tour as an object, a JSON string, or wrapped in {"tour": ...}."""
    payload = _maybe_json(payload)
    if isinstance(payload, dict) and "tour_id" not in payload and "tour" in payload:
        payload = _maybe_json(payload["tour"])
    if not isinstance(payload, dict) or not payload.get("tour_id"):
        raise BackendError("Unexpected response format for tour")
    try:
        return Tour.model_validate(payload)
    except ValidationError as exc:
        raise BackendError(f"Invalid tour payload: {exc}") from exc


def _unwrap_tour_list(payload) -> list[Tour]:
    if isinstance(payload, dict) and "results" in payload:
        items = list(payload["results"].values())
    elif isinstance(payload, list):
        items = payload
    elif isinstance(payload, dict):
        items = list(payload.values())
    else:
        raise BackendError("Unexpected response format for tour list")
    tours = []
    for item in items:
        try:
            tours.append(_unwrap_tour(item))
        except BackendError as exc:
            logger.debug("Skipping unreadable tour list entry: %s", exc)
    return tours


class TourBackend:
    """Thin async client for the tour content backend.

    Args:
        base_url: Backend root, e.g. ``http://localhost:8000/``.
        timeout:  Per-request timeout in seconds.
    """

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None) -> None:
        self.base_url = (base_url or settings.backend_url).rstrip("/") + "/"
        self.timeout = timeout or settings.http_timeout_s

    async def _request(self, method: str, path: str, payload: Optional[dict] = None):
        url = self.base_url + path
        async with httpx.AsyncClient(timeout=self.timeout, headers={"User-Agent": USER_AGENT}) as client:
            try:
                response = await client.request(method, url, json=payload)
                response.raise_for_status()
                return response.json()
            except httpx.HTTPStatusError as exc:
                logger.warning("%s %s returned HTTP %s", method, url, exc.response.status_code)
                raise BackendError(
                    f"Backend returned HTTP {exc.response.status_code}: {exc.response.text}"
                ) from exc
            except httpx.HTTPError as exc:
                logger.warning("%s %s failed: %s", method, url, exc)
                raise BackendError(f"Backend request failed: {exc}") from exc
            except ValueError as exc:
                raise BackendError(f"Backend returned invalid JSON: {exc}") from exc

    async def list_tours(self) -> list[Tour]:
        return _unwrap_tour_list(await self._request("GET", "tour/"))

    async def get_tour(self, tour_id: str) -> Tour:
        return _unwrap_tour(await self._request("GET", f"tour/{quote(tour_id, safe='')}"))

    async def save_tour(self, tour: Tour) -> Tour:
        """Create the tour, or update it when it already carries an id."""
        return _unwrap_tour(await self._request("POST", "tour", tour.to_wire()))

    async def post_follow_up_question(
        self, tour_id: str, waypoint_name: str, question: str,
    ) -> FollowUpReceipt:
        payload = {"point_name": waypoint_name, "question": question}
        data = await self._request("POST", f"tour/{quote(tour_id, safe='')}/question", payload)
        try:
            return FollowUpReceipt.model_validate(data)
        except ValidationError as exc:
            raise BackendError(f"Unexpected response format for question: {exc}") from exc
