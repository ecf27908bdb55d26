"""
Vector math primitives

Pure functions over plain float sequences. No state, safe to call from
any thread or task concurrently.
"""

from __future__ import annotations

import math
from typing import Sequence

from carefinder.core.exceptions import DimensionMismatchError

EARTH_RADIUS_KM = 6371.0

GeoCoordinates = tuple[float, float]  # (longitude, latitude) in degrees


def dot(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Dot product of two equal-length vectors.

    Raises:
        DimensionMismatchError: If the lengths differ
    """
    if len(a) != len(b):
        raise DimensionMismatchError(f"Cannot take dot product of lengths {len(a)} and {len(b)}")
    return float(sum(x * y for x, y in zip(a, b)))


def norm(a: Sequence[float]) -> float:
    """L2 norm. The zero vector has norm 0."""
    return math.sqrt(sum(x * x for x in a))


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Cosine similarity in [-1, 1].

    Returns exactly 0.0 when either vector has zero norm.

    Raises:
        DimensionMismatchError: If the lengths differ
    """
    product = dot(a, b)
    magnitude = norm(a) * norm(b)
    if magnitude == 0:
        return 0.0
    # Clamp rounding noise (e.g. 1.0000000000000002 for identical vectors)
    return max(-1.0, min(1.0, product / magnitude))


def haversine_km(p1: GeoCoordinates, p2: GeoCoordinates) -> float:
    """Great-circle distance in kilometers between two (longitude, latitude) points."""
    lon1, lat1 = p1
    lon2, lat2 = p2
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    h = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    return 2 * EARTH_RADIUS_KM * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def add_zero_extended(base: Sequence[float], delta: Sequence[float]) -> list[float]:
    """
    Elementwise base + delta, with delta zero-padded to the base length.

    Raises:
        DimensionMismatchError: If delta is longer than base
    """
    if len(delta) > len(base):
        raise DimensionMismatchError(
            f"Delta length {len(delta)} exceeds base length {len(base)}"
        )
    composed = [float(x) for x in base]
    for i, value in enumerate(delta):
        composed[i] += value
    return composed


def l2_normalize(a: Sequence[float]) -> list[float]:
    """Scale to unit length; the zero vector is returned unchanged."""
    magnitude = norm(a)
    if magnitude == 0:
        return [float(x) for x in a]
    return [x / magnitude for x in a]
