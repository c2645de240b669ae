"""
Great-circle distance and proximity search over node coordinates.
"""
import logging
import math
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from config import settings
from models import Node
from network.constants import EARTH_RADIUS_KM, KM_PER_DEGREE_LAT, NODE_TYPES
from services.topology_store import TopologyValidationError, normalize_filter
from utils.logging_utils import LogTimer

logger = logging.getLogger(__name__)


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Distance between two points in kilometres using the Haversine formula."""
    lat1_rad, lon1_rad = math.radians(lat1), math.radians(lon1)
    lat2_rad, lon2_rad = math.radians(lat2), math.radians(lon2)

    dlat = lat2_rad - lat1_rad
    dlon = lon2_rad - lon1_rad

    a = math.sin(dlat / 2) ** 2 + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(dlon / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_KM * c


def bounding_box(lat: float, lon: float, radius_km: float) -> tuple:
    """
    Return (min_lat, max_lat, min_lon, max_lon) enclosing the search circle.

    min_lon/max_lon are None when the box would cross a pole or the
    antimeridian; the caller then skips the longitude prefilter.
    """
    dlat = radius_km / KM_PER_DEGREE_LAT
    min_lat, max_lat = lat - dlat, lat + dlat

    cos_lat = math.cos(math.radians(lat))
    if cos_lat < 1e-6 or min_lat < -90 or max_lat > 90:
        return max(min_lat, -90.0), min(max_lat, 90.0), None, None

    dlon = radius_km / (KM_PER_DEGREE_LAT * cos_lat)
    min_lon, max_lon = lon - dlon, lon + dlon
    if min_lon < -180 or max_lon > 180:
        return min_lat, max_lat, None, None
    return min_lat, max_lat, min_lon, max_lon


def validate_query(lat: Optional[float], lon: Optional[float], radius_km: float) -> None:
    """Reject a proximity query the engine cannot answer."""
    if lat is None or lon is None or (lat == 0 and lon == 0):
        # Clients send 0/0 when the location is unset
        raise TopologyValidationError("lat and lng are required")
    if not -90 <= lat <= 90:
        raise TopologyValidationError(f"lat must be within [-90, 90], got {lat}")
    if not -180 <= lon <= 180:
        raise TopologyValidationError(f"lng must be within [-180, 180], got {lon}")
    if radius_km <= 0 or radius_km > settings.NEARBY_MAX_RADIUS_KM:
        raise TopologyValidationError(
            f"radius must be greater than 0 and at most {settings.NEARBY_MAX_RADIUS_KM:g} km"
        )


async def find_nearby(
    db: AsyncSession,
    lat: Optional[float],
    lon: Optional[float],
    radius_km: float,
    node_type: Optional[str] = None,
) -> list:
    """
    Find nodes within radius_km of (lat, lon), nearest first.

    Returns a list of (node, distance_km) tuples. The SQL query only
    narrows candidates to the bounding box; distance is exact.
    """
    validate_query(lat, lon, radius_km)
    node_type = normalize_filter(node_type, NODE_TYPES, "node type")

    with LogTimer(logger, f"Nearby search ({lat:.5f}, {lon:.5f}) r={radius_km:g}km") as timer:
        min_lat, max_lat, min_lon, max_lon = bounding_box(lat, lon, radius_km)
        query = select(Node).where(Node.latitude.between(min_lat, max_lat))
        if min_lon is not None:
            query = query.where(Node.longitude.between(min_lon, max_lon))
        if node_type:
            query = query.where(Node.type == node_type)

        result = await db.execute(query)
        matches = []
        for node in result.scalars().all():
            distance = haversine_km(lat, lon, node.latitude, node.longitude)
            if distance <= radius_km:
                matches.append((node, distance))

        matches.sort(key=lambda item: (item[1], item[0].id))
        timer.set_record_count(len(matches))

    return matches
