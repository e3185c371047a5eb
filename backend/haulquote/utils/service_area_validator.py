"""
Service Area Validator

Decides whether a location is serviceable, not serviceable, or needs a
manual review. Checks run in priority order:

    1. Texas cities we never service
    2. Beaumont front-load restriction
    3. division bounding boxes, when the location has coordinates
       (Austin stays serviceable even when the boxes miss it)
    4. franchised cities with a municipal contract
    5. cities we always service
    6. missing address data
    7. anything outside Texas
    8. division city lists

Every serviceable outcome is downgraded to manual-review when the
container size is not one we recognize.
"""

import logging
import re
from typing import List, Optional

from haulquote.models import LocationRequest, ServiceAreaResult, ServiceAreaVerificationData
from haulquote.utils import csv_parser
from haulquote.utils.franchised_city_matcher import (
    get_franchised_city_name,
    is_franchised_city,
    match_franchised_city,
)
from haulquote.utils.service_catalog import (
    EXPLICITLY_SERVICEABLE_CITIES,
    FRONT_LOAD_RESTRICTED_CITIES,
    NOT_SERVICEABLE_CITIES,
    RECOGNIZED_CONTAINER_SIZES,
    determine_division,
    is_texas,
)
from haulquote.utils.spatial_validator import SpatialValidator, spatial_validator

logger = logging.getLogger(__name__)

NOT_SERVICEABLE = 'Not Serviceable'
OPEN_MARKET = 'Open Market'


def normalize_container_size_for_validation(container_size: Optional[str]) -> str:
    if not container_size or not isinstance(container_size, str):
        return ''

    normalized = container_size.lower().strip()

    if 'comp' in normalized:
        return 'Compactor'

    if 'cart' in normalized:
        return 'Cart'

    if 'gallon' in normalized or 'gal' in normalized:
        match = re.search(r'(\d+)', normalized)
        return f"{match.group(1)}-gallon" if match else normalized

    match = re.search(r'(\d+)\s*(yard|yd)', normalized)
    if match:
        return f"{match.group(1)}YD"

    if re.fullmatch(r'\d+', normalized) and 1 <= int(normalized) <= 40:
        return f"{int(normalized)}YD"

    return normalized


def is_recognized_container_size(container_size: Optional[str]) -> bool:
    """Blank sizes are accepted; they are filled in later from defaults."""
    if not container_size or not container_size.strip():
        return True

    candidates = {
        normalize_container_size_for_validation(container_size).lower(),
        container_size.lower().strip(),
    }
    return any(size.lower() in candidates for size in RECOGNIZED_CONTAINER_SIZES)


def _is_front_load(equipment_type: str) -> bool:
    normalized = (equipment_type or '').lower().strip()
    return (
        'front' in normalized
        or normalized == 'fl'
        or 'dumpster' in normalized
        or 'container' in normalized
    )


class ServiceAreaValidator:
    def __init__(self, spatial: Optional[SpatialValidator] = None):
        self.spatial = spatial or spatial_validator

    def _result(
        self,
        location: LocationRequest,
        status: str,
        division: str,
        service_region: str,
        franchise_fee: float,
        reason: str = '',
    ) -> ServiceAreaResult:
        return ServiceAreaResult(
            id=location.id,
            company_name=location.company_name,
            address=location.address,
            city=location.city,
            state=location.state,
            zip_code=location.zip_code,
            latitude=location.latitude,
            longitude=location.longitude,
            status=status,
            reason=reason,
            division=division,
            service_region=service_region,
            franchise_fee=franchise_fee,
            equipment_type=location.equipment_type,
            container_size=location.container_size,
            frequency=location.frequency,
            material_type=location.material_type,
            add_ons=location.add_ons,
            bin_quantity=location.bin_quantity,
        )

    def _serviceable(self, location: LocationRequest, division: str, service_region: str,
                     franchise_fee: float) -> ServiceAreaResult:
        if not is_recognized_container_size(location.container_size):
            logger.warning(f"Unrecognized container size for {location.id}: {location.container_size}")
            return self._result(
                location, 'manual-review', division, service_region, franchise_fee,
                reason=f'Container size "{location.container_size}" is not recognized and requires manual review',
            )
        return self._result(location, 'serviceable', division, service_region, franchise_fee)

    def _not_serviceable(self, location: LocationRequest, reason: str, franchise_fee: float,
                         label: str = NOT_SERVICEABLE) -> ServiceAreaResult:
        return self._result(location, 'not-serviceable', label, label, franchise_fee, reason=reason)

    def validate_location(self, location: LocationRequest) -> ServiceAreaResult:
        city = location.city or ''
        state = location.state or ''
        normalized_city = city.lower().strip()
        in_texas = is_texas(state)

        franchise_fee = match_franchised_city(city, state).franchise_fee or 0

        if in_texas and normalized_city in NOT_SERVICEABLE_CITIES:
            return self._not_serviceable(location, f"{city}, {state} is not in our service area", franchise_fee)

        if in_texas and normalized_city in FRONT_LOAD_RESTRICTED_CITIES and _is_front_load(location.equipment_type):
            return self._not_serviceable(
                location, f"Front-load containers are not serviceable in {city}, {state}", franchise_fee
            )

        if location.latitude is not None and location.longitude is not None:
            try:
                spatial_result = self.spatial.validate_coordinates(location.latitude, location.longitude)
            except Exception as e:
                logger.error(f"Spatial validation failed for {location.id}: {e}")
                spatial_result = None

            if spatial_result is not None and spatial_result.is_serviceable:
                return self._serviceable(
                    location,
                    spatial_result.division or '',
                    spatial_result.service_region or OPEN_MARKET,
                    franchise_fee,
                )

            if in_texas and normalized_city == 'austin':
                return self._serviceable(location, 'CTX', OPEN_MARKET, franchise_fee)

            if spatial_result is not None:
                return self._not_serviceable(
                    location,
                    f"Location coordinates [{location.latitude:.4f}, {location.longitude:.4f}] "
                    f"fall outside all defined service areas",
                    franchise_fee,
                )

        if is_franchised_city(city, state):
            city_name = get_franchised_city_name(city, state)
            return self._serviceable(
                location, f"{city_name} (Municipal Contract)", f"{city_name} Municipal", franchise_fee
            )

        if in_texas and normalized_city in EXPLICITLY_SERVICEABLE_CITIES:
            return self._serviceable(location, determine_division(city, state) or 'NTX', OPEN_MARKET, franchise_fee)

        if not location.address or not city or not state:
            return self._not_serviceable(location, 'Missing required address information', franchise_fee, label='Invalid')

        if not in_texas:
            return self._not_serviceable(
                location, f"Service only available in Texas. {state} is outside our service area.", franchise_fee
            )

        division = determine_division(city, state)
        if division is None:
            return self._not_serviceable(
                location, f"{city}, {state} is not in our service area - no division mapping found", franchise_fee
            )

        return self._serviceable(location, division, OPEN_MARKET, franchise_fee)

    def verify_locations(self, locations: List[LocationRequest]) -> ServiceAreaVerificationData:
        results = [self.validate_location(location) for location in locations]

        data = ServiceAreaVerificationData(
            total_processed=len(results),
            serviceable_count=sum(1 for r in results if r.status == 'serviceable'),
            not_serviceable_count=sum(1 for r in results if r.status == 'not-serviceable'),
            manual_review_count=sum(1 for r in results if r.status == 'manual-review'),
            results=results,
        )
        logger.info(
            f"Verified {data.total_processed} locations: {data.serviceable_count} serviceable, "
            f"{data.not_serviceable_count} not serviceable, {data.manual_review_count} manual review"
        )
        return data

    def parse_location_requests(self, rows: List[List[str]]) -> List[LocationRequest]:
        return csv_parser.parse_location_requests(rows)


service_area_validator = ServiceAreaValidator()
