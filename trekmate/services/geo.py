"""Geodesic helpers shared by trek tracking, club treks and SOS."""

import math
from collections.abc import Iterable

EARTH_RADIUS_M = 6_371_000.0


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two points in metres."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    delta_phi = math.radians(lat2 - lat1)
    delta_lambda = math.radians(lon2 - lon1)

    a = (
        math.sin(delta_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(delta_lambda / 2) ** 2
    )
    # Rounding can push a marginally above 1 for antipodal points
    a = min(1.0, max(0.0, a))
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_M * c


def format_distance(meters: float) -> str:
    """Human-readable distance: "850m" below a kilometre, "1.2km" above."""
    if meters < 1000:
        return f"{round(meters)}m"
    return f"{meters / 1000:.1f}km"


def centroid(points: Iterable[tuple[float, float]]) -> tuple[float, float]:
    """Arithmetic mean of (lat, lon) pairs.

    Good enough for groups spread over a few kilometres; not meant for
    points straddling the antimeridian.
    """
    pts = list(points)
    if not pts:
        raise ValueError("centroid of an empty point set")
    lat = sum(p[0] for p in pts) / len(pts)
    lon = sum(p[1] for p in pts) / len(pts)
    return lat, lon


def maps_link(latitude: float, longitude: float) -> str:
    return f"https://maps.google.com/?q={latitude},{longitude}"
