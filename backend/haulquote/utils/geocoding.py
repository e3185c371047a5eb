"""
Mapbox Geocoding

Forward geocoding for uploaded addresses. Without MAPBOX_ACCESS_TOKEN
nothing is geocoded. When Mapbox can't be reached, approximate
coordinates for a handful of Texas cities are returned flagged with
is_fallback; they are for display only and never feed the spatial check.
"""

import asyncio
import logging
import math
import os
from typing import List, Optional
from urllib.parse import quote

import httpx

from haulquote.models import GeocodingResult

logger = logging.getLogger(__name__)

MAPBOX_GEOCODING_URL = "https://api.mapbox.com/geocoding/v5/mapbox.places"

EARTH_RADIUS_KM = 6371

FALLBACK_COORDINATES = {
    'austin': (30.2672, -97.7431, 'Austin, TX'),
    'houston': (29.7604, -95.3698, 'Houston, TX'),
    'dallas': (32.7767, -96.7970, 'Dallas, TX'),
    'san antonio': (29.4241, -98.4936, 'San Antonio, TX'),
    'fort worth': (32.7555, -97.3308, 'Fort Worth, TX'),
    'waco': (31.5494, -97.1467, 'Waco, TX'),
    'conroe': (30.3119, -95.4560, 'Conroe, TX'),
    'crosby': (29.9077, -95.0610, 'Crosby, TX'),
    'burleson': (32.5421, -97.3208, 'Burleson, TX'),
}


def get_fallback_geocoding_result(address: str) -> GeocodingResult:
    address_lower = address.lower()
    for city, (lat, lng, name) in FALLBACK_COORDINATES.items():
        if city in address_lower:
            return GeocodingResult(
                latitude=lat, longitude=lng, display_name=f"{address} (fallback: {name})", is_fallback=True
            )

    return GeocodingResult(
        latitude=30.2672,
        longitude=-97.7431,
        display_name=f"{address} (fallback: Austin, TX area)",
        is_fallback=True,
    )


async def geocode_address(
    address: str,
    country_code: str = 'us',
    client: Optional[httpx.AsyncClient] = None,
) -> Optional[GeocodingResult]:
    """Geocode one address. Returns None without a token, or when Mapbox answers but finds nothing usable."""
    if not address or not address.strip():
        return None

    trimmed = address.strip()
    token = os.getenv("MAPBOX_ACCESS_TOKEN")
    if not token:
        logger.warning(f"MAPBOX_ACCESS_TOKEN not set, not geocoding '{trimmed}'")
        return None

    url = f"{MAPBOX_GEOCODING_URL}/{quote(trimmed, safe='')}.json"
    params = {
        "access_token": token,
        "limit": 1,
        "country": country_code,
        "types": "address",
    }

    try:
        if client is None:
            async with httpx.AsyncClient(timeout=10.0) as owned_client:
                response = await owned_client.get(url, params=params, headers={"Accept": "application/json"})
        else:
            response = await client.get(url, params=params, headers={"Accept": "application/json"})
    except httpx.TransportError as e:
        logger.warning(f"Mapbox unreachable for '{trimmed}', using fallback: {e}")
        return get_fallback_geocoding_result(trimmed)

    if response.status_code != 200:
        logger.error(f"Mapbox API request failed: {response.status_code} for '{trimmed}'")
        return None

    features = response.json().get("features") or []
    if not features:
        logger.info(f"No geocoding results for '{trimmed}'")
        return None

    feature = features[0]
    try:
        longitude, latitude = float(feature["center"][0]), float(feature["center"][1])
    except (KeyError, IndexError, TypeError, ValueError):
        logger.error(f"Invalid coordinates from Mapbox for '{trimmed}': {feature.get('center')}")
        return None

    if math.isnan(latitude) or math.isnan(longitude):
        return None

    bbox = feature.get("bbox")
    bounding_box = [bbox[1], bbox[3], bbox[0], bbox[2]] if bbox and len(bbox) == 4 else None

    return GeocodingResult(
        latitude=latitude,
        longitude=longitude,
        display_name=feature.get("place_name", trimmed),
        bounding_box=bounding_box,
    )


async def batch_geocode(
    addresses: List[str],
    delay_ms: int = 100,
    country_code: str = 'us',
) -> List[Optional[GeocodingResult]]:
    """Geocode addresses one at a time, pausing between requests."""
    results: List[Optional[GeocodingResult]] = []

    async with httpx.AsyncClient(timeout=10.0) as client:
        for i, address in enumerate(addresses):
            results.append(await geocode_address(address, country_code, client=client))
            if i < len(addresses) - 1:
                await asyncio.sleep(delay_ms / 1000)

    success_count = sum(1 for result in results if result is not None)
    logger.info(f"Batch geocoded {success_count}/{len(addresses)} addresses")
    return results


def validate_coordinates(latitude: float, longitude: float) -> bool:
    """Valid lat/lng that also falls inside the continental US."""
    is_valid_lat = -90 <= latitude <= 90
    is_valid_lng = -180 <= longitude <= 180
    is_in_us = 24.396308 <= latitude <= 49.384358 and -125.0 <= longitude <= -66.93457
    return is_valid_lat and is_valid_lng and is_in_us


def format_coordinates(latitude: float, longitude: float, precision: int = 6) -> str:
    return f"{latitude:.{precision}f}, {longitude:.{precision}f}"


def calculate_distance(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Haversine distance in kilometers."""
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)

    a = (math.sin(d_lat / 2) ** 2
         + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) ** 2)
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
