"""
Spatial Validator

Point-in-area checks against the division bounding boxes in
data/service_areas.csv. The first box containing the point wins.
"""

import csv
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from haulquote.models import SpatialValidationResult

logger = logging.getLogger(__name__)

SERVICE_AREAS_CSV = Path(__file__).resolve().parent.parent / "data" / "service_areas.csv"


@dataclass
class ServiceArea:
    division_name: str
    min_lng: float
    min_lat: float
    max_lng: float
    max_lat: float
    cities_areas: str
    region: str
    service_region: str

    def contains(self, latitude: float, longitude: float) -> bool:
        return self.min_lat <= latitude <= self.max_lat and self.min_lng <= longitude <= self.max_lng


def _pick(row: dict, *names: str) -> str:
    for name in names:
        if row.get(name):
            return row[name].strip()
    return ''


def load_service_areas(path: Path = SERVICE_AREAS_CSV) -> List[ServiceArea]:
    areas = []
    with path.open(encoding="utf-8", newline="") as f:
        for row in csv.DictReader(f):
            try:
                areas.append(ServiceArea(
                    division_name=_pick(row, 'division_name', 'Division'),
                    min_lng=float(row['minLng']),
                    min_lat=float(row['minLat']),
                    max_lng=float(row['maxLng']),
                    max_lat=float(row['maxLat']),
                    cities_areas=_pick(row, 'Cities/Areas within Division', 'cities'),
                    region=_pick(row, 'Region'),
                    service_region=_pick(row, 'Service Region') or 'Open Market',
                ))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed service area row {row}: {e}")

    logger.info(f"Loaded {len(areas)} service area bounding boxes")
    return areas


class SpatialValidator:
    def __init__(self, areas: Optional[List[ServiceArea]] = None):
        self._areas = areas

    @property
    def areas(self) -> List[ServiceArea]:
        if self._areas is None:
            self._areas = load_service_areas()
        return self._areas

    def find_area(self, latitude: float, longitude: float) -> Optional[ServiceArea]:
        return next((area for area in self.areas if area.contains(latitude, longitude)), None)

    def validate_coordinates(self, latitude: float, longitude: float) -> SpatialValidationResult:
        area = self.find_area(latitude, longitude)
        if area is None:
            return SpatialValidationResult(
                is_serviceable=False,
                match_type='none',
                coordinates=[latitude, longitude],
            )

        return SpatialValidationResult(
            is_serviceable=True,
            division=area.division_name,
            csr_center=area.region,
            service_region=area.service_region,
            cities_areas=area.cities_areas,
            match_type='bounding-box',
            coordinates=[latitude, longitude],
        )


spatial_validator = SpatialValidator()
