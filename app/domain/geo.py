"""
Geo helpers: great-circle distance and the delivery estimates derived from it.

Distances are integer meters. Anything with ``latitude``/``longitude``
attributes (``Coordinates``, ``Restaurant`` rows) can be passed as a point.
"""
import math
from dataclasses import dataclass
from typing import Iterable, List, TypeVar

from app.core.config import settings
from app.domain.errors import InvalidCoordinates

EARTH_RADIUS_KM = 6371

T = TypeVar("T")


@dataclass(frozen=True)
class BoundingBox:
    north: float
    south: float
    east: float
    west: float


def is_valid_coordinates(point) -> bool:
    lat, lon = point.latitude, point.longitude
    if lat is None or lon is None or math.isnan(lat) or math.isnan(lon):
        return False
    return -90 <= lat <= 90 and -180 <= lon <= 180


def validate(point) -> None:
    if not is_valid_coordinates(point):
        raise InvalidCoordinates(
            f"Invalid coordinates ({point.latitude}, {point.longitude})"
        )


def distance(a, b) -> int:
    """Haversine distance between two points, rounded to the nearest meter."""
    validate(a)
    validate(b)
    d_lat = math.radians(b.latitude - a.latitude)
    d_lon = math.radians(b.longitude - a.longitude)
    lat1 = math.radians(a.latitude)
    lat2 = math.radians(b.latitude)

    h = (
        math.sin(d_lat / 2) ** 2
        + math.sin(d_lon / 2) ** 2 * math.cos(lat1) * math.cos(lat2)
    )
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))
    return math.floor(EARTH_RADIUS_KM * c * 1000 + 0.5)


def is_within_range(a, b, max_meters: int) -> bool:
    return distance(a, b) <= max_meters


def estimated_travel_minutes(distance_meters: int, avg_speed_kmh: int = settings.AVERAGE_SPEED_KMH) -> int:
    # ceil(d / 1000 / speed * 60) in integer arithmetic
    return -(-distance_meters * 60 // (1000 * avg_speed_kmh))


def delivery_fee(
    distance_meters: int,
    base_fee: int = settings.BASE_DELIVERY_FEE,
    per_km_fee: int = settings.PER_KM_DELIVERY_FEE,
) -> int:
    """``base_fee + ceil(km * per_km_fee)``; monotone in distance.

    Distances come from :func:`distance`; a negative value is a programming
    error and raises ``ValueError``.
    """
    if distance_meters < 0:
        raise ValueError("Distance cannot be negative")
    return base_fee + -(-distance_meters * per_km_fee // 1000)


# --- Bounding boxes ---

def bounding_box(center, radius_km: float) -> BoundingBox:
    validate(center)
    lat_delta = math.degrees(radius_km / EARTH_RADIUS_KM)
    lon_delta = lat_delta / math.cos(math.radians(center.latitude))
    return BoundingBox(
        north=center.latitude + lat_delta,
        south=center.latitude - lat_delta,
        east=center.longitude + lon_delta,
        west=center.longitude - lon_delta,
    )


def is_in_bounding_box(point, box: BoundingBox) -> bool:
    return (
        box.south <= point.latitude <= box.north
        and box.west <= point.longitude <= box.east
    )


# --- Collections of places ---

def sort_by_distance(origin, places: Iterable[T]) -> List[T]:
    return sorted(places, key=lambda place: distance(origin, place))


def nearby(origin, places: Iterable[T], max_meters: int) -> List[T]:
    return [p for p in places if is_within_range(origin, p, max_meters)]
