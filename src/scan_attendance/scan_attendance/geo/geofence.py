from __future__ import annotations

import math
from dataclasses import dataclass

from ..core.constants import EARTH_RADIUS_METERS
from ..core.exceptions import ValidationError


@dataclass(frozen=True)
class GeoPoint:
    lat: float
    lng: float

    def to_document(self) -> dict:
        return {"lat": self.lat, "lng": self.lng}

    @staticmethod
    def from_document(data: dict) -> "GeoPoint":
        return GeoPoint(lat=float(data["lat"]), lng=float(data["lng"]))


def validate_point(lat, lng) -> GeoPoint:
    """Reject NaN, infinite and out-of-range coordinates."""

    try:
        lat_f = float(lat)
        lng_f = float(lng)
    except (TypeError, ValueError):
        raise ValidationError("Coordinates must be numbers")

    if not (math.isfinite(lat_f) and math.isfinite(lng_f)):
        raise ValidationError("Coordinates must be finite")
    if not -90.0 <= lat_f <= 90.0:
        raise ValidationError(f"Latitude out of range: {lat_f}")
    if not -180.0 <= lng_f <= 180.0:
        raise ValidationError(f"Longitude out of range: {lng_f}")
    return GeoPoint(lat=lat_f, lng=lng_f)


def distance_meters(a: GeoPoint, b: GeoPoint) -> float:
    """Great-circle (haversine) distance in meters."""

    d_lat = math.radians(b.lat - a.lat)
    d_lng = math.radians(b.lng - a.lng)
    lat1 = math.radians(a.lat)
    lat2 = math.radians(b.lat)

    h = math.sin(d_lat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(d_lng / 2) ** 2
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))
    return EARTH_RADIUS_METERS * c


def within_radius(distance: float, radius: float) -> bool:
    return distance <= radius
