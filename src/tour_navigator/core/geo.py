"""Geographic helpers: haversine distance, polyline codec, resampling, projection.

Pure functions, no side effects. Points are anything with ``lat``/``lng``
attributes (LatLng, Waypoint).
"""

import math
from collections.abc import Mapping, Sequence
from typing import Optional

import numpy as np

from tour_navigator.models import LatLng
from .models import SegmentProjection

EARTH_RADIUS_M = 6_371_000.0
POLYLINE_FACTOR = 1e5


def distance_meters(p1, p2) -> float:
    """Great-circle (haversine) distance between two points in metres."""
    d_lat = math.radians(p2.lat - p1.lat)
    d_lng = math.radians(p2.lng - p1.lng)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(p1.lat))
        * math.cos(math.radians(p2.lat))
        * math.sin(d_lng / 2) ** 2
    )
    return EARTH_RADIUS_M * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def haversine_array(
    lat1: np.ndarray, lng1: np.ndarray, lat2: np.ndarray, lng2: np.ndarray,
) -> np.ndarray:
    """Vectorized haversine distance in metres. Arguments broadcast."""
    rlat1, rlat2 = np.radians(lat1), np.radians(lat2)
    d_lat = rlat2 - rlat1
    d_lng = np.radians(lng2) - np.radians(lng1)
    a = np.sin(d_lat / 2) ** 2 + np.cos(rlat1) * np.cos(rlat2) * np.sin(d_lng / 2) ** 2
    return EARTH_RADIUS_M * 2 * np.arctan2(np.sqrt(a), np.sqrt(1 - a))


def _as_arrays(path: Sequence) -> tuple[np.ndarray, np.ndarray]:
    lats = np.fromiter((p.lat for p in path), dtype=np.float64, count=len(path))
    lngs = np.fromiter((p.lng for p in path), dtype=np.float64, count=len(path))
    return lats, lngs


def distances_to(path: Sequence, point) -> np.ndarray:
    """Distance in metres from every sample of ``path`` to ``point``."""
    if not path:
        return np.empty(0)
    lats, lngs = _as_arrays(path)
    return haversine_array(lats, lngs, point.lat, point.lng)


# ---------------------------------------------------------------------------
# Polyline codec (Google encoded polyline algorithm)
# ---------------------------------------------------------------------------

def decode_polyline(encoded: str) -> list[LatLng]:
    """Decode an encoded polyline into points.

    Malformed input yields the points decoded before the fault rather than
    raising: a truncated varint, a character outside the polyline alphabet,
    or a coordinate outside the valid lat/lng range ends decoding.
    """
    points: list[LatLng] = []
    index = 0
    lat = lng = 0
    length = len(encoded or "")

    while index < length:
        deltas = []
        for _ in range(2):
            result = 0
            shift = 0
            while True:
                if index >= length:
                    return points
                b = ord(encoded[index]) - 63
                index += 1
                if b < 0 or b > 63:
                    return points
                result |= (b & 0x1F) << shift
                shift += 5
                if b < 0x20:
                    break
            deltas.append(~(result >> 1) if result & 1 else result >> 1)

        lat += deltas[0]
        lng += deltas[1]
        point_lat = lat / POLYLINE_FACTOR
        point_lng = lng / POLYLINE_FACTOR
        if not (-90 <= point_lat <= 90 and -180 <= point_lng <= 180):
            return points
        points.append(LatLng(lat=point_lat, lng=point_lng))

    return points


def _round_half_away(value: float) -> int:
    return int(math.floor(abs(value) + 0.5)) * (1 if value >= 0 else -1)


def _encode_value(value: int) -> str:
    value = ~(value << 1) if value < 0 else value << 1
    chunks = []
    while value >= 0x20:
        chunks.append(chr((0x20 | (value & 0x1F)) + 63))
        value >>= 5
    chunks.append(chr(value + 63))
    return "".join(chunks)


def encode_polyline(points: Sequence) -> str:
    """Encode points into a polyline string (inverse of decode_polyline)."""
    out = []
    prev_lat = prev_lng = 0
    for p in points:
        lat = _round_half_away(p.lat * POLYLINE_FACTOR)
        lng = _round_half_away(p.lng * POLYLINE_FACTOR)
        out.append(_encode_value(lat - prev_lat))
        out.append(_encode_value(lng - prev_lng))
        prev_lat, prev_lng = lat, lng
    return "".join(out)


# ---------------------------------------------------------------------------
# Path utilities
# ---------------------------------------------------------------------------

def resample(path: Sequence, interval_m: float) -> list:
    """Re-sample ``path`` at a fixed arc-length spacing.

    Emits the first point, then an interpolated point every ``interval_m``
    metres along the path, then the exact final point. Paths with fewer
    than two points are returned unchanged.
    """
    if len(path) < 2:
        return list(path)
    if interval_m <= 0:
        raise ValueError(f"interval_m must be positive, got {interval_m}")

    lats, lngs = _as_arrays(path)
    seg = haversine_array(lats[:-1], lngs[:-1], lats[1:], lngs[1:])

    # np.interp needs strictly increasing arc length
    keep = np.concatenate(([True], seg > 0))
    cum = np.concatenate(([0.0], np.cumsum(seg)))[keep]
    lats, lngs = lats[keep], lngs[keep]
    total = float(cum[-1])
    if total == 0.0:
        return [LatLng(lat=path[-1].lat, lng=path[-1].lng)]

    targets = np.arange(0.0, total, interval_m)
    out_lats = np.interp(targets, cum, lats)
    out_lngs = np.interp(targets, cum, lngs)
    samples = [LatLng(lat=float(a), lng=float(b)) for a, b in zip(out_lats, out_lngs)]

    last = path[-1]
    if samples and samples[-1].lat == last.lat and samples[-1].lng == last.lng:
        samples.pop()
    samples.append(LatLng(lat=last.lat, lng=last.lng))
    return samples


def project_onto_segment(point, a, b) -> SegmentProjection:
    """Orthogonal projection of ``point`` onto segment ``[a, b]``.

    Degrees are treated as Cartesian coordinates, which is accurate enough
    over the few tens of metres between route samples. ``t`` is clamped to
    [0, 1]; a zero-length segment projects onto ``a``.
    """
    dx = b.lng - a.lng
    dy = b.lat - a.lat
    length_sq = dx * dx + dy * dy
    if length_sq == 0:
        t = 0.0
    else:
        t = ((point.lng - a.lng) * dx + (point.lat - a.lat) * dy) / length_sq
        t = max(0.0, min(1.0, t))
    return SegmentProjection(
        point=LatLng(lat=a.lat + t * dy, lng=a.lng + t * dx),
        t=t,
    )


def coerce_position(raw) -> Optional[LatLng]:
    """Best-effort conversion of a position fix to LatLng.

    Accepts LatLng-like objects, mappings with lat/lng (or latitude/longitude)
    keys, and (lat, lng) pairs. Anything missing, non-numeric, non-finite or
    out of range gives None.
    """
    if raw is None:
        return None
    if isinstance(raw, Mapping):
        lat = raw.get("lat", raw.get("latitude"))
        lng = raw.get("lng", raw.get("longitude"))
    elif isinstance(raw, Sequence) and not isinstance(raw, str) and len(raw) == 2:
        lat, lng = raw
    else:
        lat = getattr(raw, "lat", None)
        lng = getattr(raw, "lng", None)

    try:
        lat = float(lat)
        lng = float(lng)
    except (TypeError, ValueError):
        return None
    if not (math.isfinite(lat) and math.isfinite(lng)):
        return None
    if not (-90 <= lat <= 90 and -180 <= lng <= 180):
        return None
    return LatLng(lat=lat, lng=lng)
