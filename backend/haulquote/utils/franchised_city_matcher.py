"""
Franchised city matching.

Every address inside a franchised city must be priced off that city's
municipal contract sheet. This module owns the registry of those sheets
(data/franchised_cities/*.json) and the normalization used to find the
right line on a sheet for a service request.
"""

import json
import logging
import re
from pathlib import Path
from typing import Dict, List, Optional

from haulquote.models import FranchisedCityMatch, FranchisedCityPricing, FranchisedCityRate
from haulquote.utils.franchise_fees import load_franchise_fees
from haulquote.utils.formatters import format_currency, format_percentage
from haulquote.utils.frequency_matcher import standardize_frequency
from haulquote.utils.service_catalog import (
    DEFAULT_SALES_TAX,
    FRANCHISED_CITY_ALIASES,
    HOUSTON_FRANCHISE_FEE,
    is_texas,
)

logger = logging.getLogger(__name__)

FRANCHISED_CITIES_DIR = Path(__file__).resolve().parent.parent / "data" / "franchised_cities"

ROLL_OFF_EQUIPMENT = ('roll-off', 'compactor')

RECYCLING_ID_MARKERS = ('recycling', 'recycle', 'recy', 'occ', 'cardboard', 'single-stream')

# lower-cased city name -> rate sheet file, populated on first use
_registry: Optional[Dict[str, Path]] = None
_pricing_cache: Dict[Path, FranchisedCityPricing] = {}


def _load_registry() -> Dict[str, Path]:
    global _registry

    if _registry is not None:
        return _registry

    registry: Dict[str, Path] = {}
    for path in sorted(FRANCHISED_CITIES_DIR.glob("*.json")):
        with path.open(encoding="utf-8") as f:
            city_name = json.load(f).get("city_name", "")
        if city_name:
            registry[city_name.lower().strip()] = path

    for alias, city in FRANCHISED_CITY_ALIASES.items():
        if city in registry:
            registry[alias] = registry[city]

    logger.info(f"Franchised city registry loaded with {len(registry)} entries")
    _registry = registry
    return _registry


def load_franchised_city_pricing(city: str) -> Optional[FranchisedCityPricing]:
    """Return the municipal rate sheet for a city, or None if the city has none."""
    path = _load_registry().get((city or '').lower().strip())
    if path is None:
        return None

    if path not in _pricing_cache:
        with path.open(encoding="utf-8") as f:
            _pricing_cache[path] = FranchisedCityPricing.model_validate(json.load(f))

    return _pricing_cache[path]


def clear_franchised_city_cache() -> None:
    global _registry
    _registry = None
    _pricing_cache.clear()


def match_franchised_city(city: str, state: str) -> FranchisedCityMatch:
    """
    Resolve the city-level fees for a location and attach its municipal
    rate sheet when it has one.

    Only Texas is considered. A city counts as a match if it either has a
    municipal rate sheet or carries a franchise fee.
    """
    if not is_texas(state):
        return FranchisedCityMatch(
            is_match=False,
            city_name=city,
            state=state,
            franchise_fee=0,
            sales_tax=0,
        )

    normalized_city = (city or '').lower().strip()

    franchise_fee = load_franchise_fees().get(normalized_city, 0)
    if normalized_city == 'houston':
        franchise_fee = HOUSTON_FRANCHISE_FEE

    pricing_data = None
    try:
        pricing_data = load_franchised_city_pricing(normalized_city)
    except (OSError, ValueError) as e:
        logger.error(f"Error loading franchised city pricing for {normalized_city}: {e}")

    if pricing_data is not None and not pricing_data.rates:
        logger.warning(f"Empty municipal rate sheet for franchised city: {normalized_city}")
        pricing_data = None

    has_municipal_rates = pricing_data is not None

    logger.info(
        f"City fees for {normalized_city}: franchise {franchise_fee}%, tax {DEFAULT_SALES_TAX}%, "
        f"municipal rates: {has_municipal_rates}"
    )

    return FranchisedCityMatch(
        is_match=has_municipal_rates or franchise_fee > 0,
        city_name=pricing_data.city_name if pricing_data else city,
        state=pricing_data.state if pricing_data else state,
        pricing_data=pricing_data,
        franchise_fee=franchise_fee,
        sales_tax=DEFAULT_SALES_TAX,
    )


def normalize_container_size_for_matching(container_size: Optional[str]) -> str:
    if not container_size or not isinstance(container_size, str):
        return '4YD'

    match = re.search(r'(\d+)', container_size)
    if match:
        return f"{match.group(1)}YD"

    normalized = container_size.lower().strip()
    if 'gallon' in normalized or 'gal' in normalized:
        return container_size

    if 'cart' in normalized or 'toter' in normalized:
        return 'cart'

    return container_size.upper()


def normalize_frequency_for_matching(frequency: Optional[str]) -> str:
    if not frequency or not isinstance(frequency, str):
        return '1x/week'
    return standardize_frequency(frequency)


def normalize_equipment_type(equipment_type: Optional[str]) -> str:
    """Collapse free-text equipment names to front-load container / cart / roll-off / compactor."""
    if not equipment_type or not isinstance(equipment_type, str):
        return 'front-load container'

    normalized = equipment_type.lower().strip()

    if ('front' in normalized or 'dumpster' in normalized or 'fl' in normalized
            or normalized == 'container' or 'frontload' in normalized):
        return 'front-load container'

    if 'cart' in normalized or 'toter' in normalized or 'bin' in normalized:
        return 'cart'

    if ('roll' in normalized or 'temporary' in normalized or 'temp' in normalized
            or 'ro ' in normalized or ' ro' in normalized or normalized == 'ro'):
        return 'roll-off'

    if ('compact' in normalized or 'self-contained' in normalized or 'stationary' in normalized
            or 'rec box' in normalized or 'receiver box' in normalized or 'cmptr' in normalized
            or 'comp ' in normalized or ' comp' in normalized or normalized == 'comp'):
        return 'compactor'

    logger.debug(f"Unrecognized equipment type, defaulting to front-load container: {equipment_type}")
    return 'front-load container'


def normalize_material_type(material_type: Optional[str]) -> str:
    if not material_type or not isinstance(material_type, str):
        return 'solid waste'

    normalized = material_type.lower().strip()
    if any(marker in normalized for marker in ('recycl', 'single stream', 'ssry', 'occ', 'cardboard')):
        return 'recycling'

    return 'solid waste'


def is_recycling_rate(rate: FranchisedCityRate) -> bool:
    if rate.material_type and 'recycl' in rate.material_type.lower():
        return True

    rate_id = (rate.id or '').lower()
    return any(marker in rate_id for marker in RECYCLING_ID_MARKERS)


def filter_rates_by_material_type(rates: List[FranchisedCityRate], material_type: str) -> List[FranchisedCityRate]:
    """Recycling requests only see recycling rates; everything else never sees them."""
    if material_type == 'recycling':
        return [rate for rate in rates if is_recycling_rate(rate)]
    return [rate for rate in rates if not is_recycling_rate(rate)]


def _container_matches(rate: FranchisedCityRate, requested_size: str, is_roll_off: bool) -> bool:
    if normalize_container_size_for_matching(rate.container_size) == requested_size:
        return True

    # roll-off sheets often price several sizes on one line, e.g. "20/30/40YD"
    if is_roll_off and rate.container_size and '/' in rate.container_size:
        return any(
            normalize_container_size_for_matching(size.strip()) == requested_size
            for size in rate.container_size.split('/')
        )

    return False


def _frequency_matches(rate: FranchisedCityRate, requested_frequency: str, is_roll_off: bool) -> bool:
    rate_frequency = normalize_frequency_for_matching(rate.frequency)
    if rate_frequency == requested_frequency:
        return True

    # roll-off hauls are billed monthly whatever the requested schedule
    return is_roll_off and '1x/month' in (rate_frequency, requested_frequency)


def get_franchised_city_rate(
    pricing_data: FranchisedCityPricing,
    container_size: str,
    frequency: str,
    equipment_type: str = 'Front-Load Container',
    material_type: str = 'Solid Waste',
) -> Optional[FranchisedCityRate]:
    """
    Find the contract line for a request.

    Rates are filtered by material first, then the first rate matching on
    container size, frequency and equipment wins.
    """
    requested_size = normalize_container_size_for_matching(container_size)
    requested_frequency = normalize_frequency_for_matching(frequency)
    requested_equipment = normalize_equipment_type(equipment_type)
    requested_material = normalize_material_type(material_type)
    is_roll_off = requested_equipment in ROLL_OFF_EQUIPMENT

    candidates = filter_rates_by_material_type(pricing_data.rates, requested_material)
    if not candidates:
        logger.warning(f"No rates found for material type {requested_material} in {pricing_data.city_name}")
        return None

    for rate in candidates:
        if (_container_matches(rate, requested_size, is_roll_off)
                and _frequency_matches(rate, requested_frequency, is_roll_off)
                and normalize_equipment_type(rate.equipment_type) == requested_equipment):
            logger.info(f"Matched franchised city rate {rate.id} for {pricing_data.city_name}")
            return rate

    logger.warning(
        f"No matching rate in {pricing_data.city_name} for {requested_size} {requested_equipment} "
        f"{requested_frequency} ({requested_material}); {len(candidates)} candidate rates"
    )
    return None


def format_franchised_city_output(
    rate: FranchisedCityRate,
    bin_quantity: int,
    material_type: str,
    frequency: str,
) -> str:
    return "\n".join([
        f"Delivery: {format_currency(rate.delivery_fee or 0)}",
        f"Monthly Rate: {format_currency(rate.monthly_rate or 0)}",
        f"Franchise Fee: {format_percentage(rate.franchise_fee or 0)}",
        f"City Sales Tax: {format_percentage(rate.sales_tax or 0)}",
        f"Service Frequency: {frequency}",
        f"Bin Quantity: {bin_quantity}",
        f"Material: {material_type}",
    ])


def _title_case(city: str) -> str:
    return ' '.join(word[:1].upper() + word[1:] for word in city.split(' '))


def get_all_franchised_cities() -> List[str]:
    """One name per municipal rate sheet, spelled the way the sheet spells it"""
    return [
        load_franchised_city_pricing(city).city_name
        for city in _load_registry()
        if city not in FRANCHISED_CITY_ALIASES
    ]


def is_franchised_city(city: str, state: str) -> bool:
    if not is_texas(state):
        return False
    return (city or '').lower().strip() in _load_registry()


def get_franchised_city_name(city: str, state: str) -> Optional[str]:
    if not is_franchised_city(city, state):
        return None
    return _title_case((city or '').lower().strip())
