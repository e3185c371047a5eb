from fastapi import APIRouter, HTTPException, Query
import logging

from haulquote.models import RateLookupRequest
from haulquote.utils.franchised_city_matcher import (
    format_franchised_city_output,
    get_all_franchised_cities,
    get_franchised_city_rate,
    load_franchised_city_pricing,
    match_franchised_city,
)

router = APIRouter(prefix="/api/franchised-cities", tags=["Franchised Cities"])
logger = logging.getLogger(__name__)


@router.get("")
async def list_franchised_cities():
    """All cities with a municipal contract rate sheet"""
    cities = get_all_franchised_cities()
    return {"cities": cities, "count": len(cities)}


@router.get("/match")
async def match_city(city: str = Query(...), state: str = Query(...)):
    """City franchise fee, sales tax and municipal rate sheet (if any) for a location"""
    try:
        return match_franchised_city(city, state)
    except Exception as e:
        logger.error(f"Error matching franchised city {city}, {state}: {e}")
        raise HTTPException(status_code=500, detail="Failed to match franchised city")


@router.get("/{city}")
async def get_city_rates(city: str):
    """Municipal rate sheet for a franchised city"""
    try:
        pricing = load_franchised_city_pricing(city)
    except (OSError, ValueError) as e:
        logger.error(f"Error loading rate sheet for {city}: {e}")
        raise HTTPException(status_code=500, detail="Failed to load rate sheet")

    if pricing is None:
        raise HTTPException(status_code=404, detail=f"{city} is not a franchised city")

    return pricing


@router.post("/{city}/rate")
async def lookup_city_rate(city: str, lookup: RateLookupRequest):
    """Find the contract line for a container size, frequency, equipment and material"""
    pricing = load_franchised_city_pricing(city)
    if pricing is None:
        raise HTTPException(status_code=404, detail=f"{city} is not a franchised city")

    rate = get_franchised_city_rate(
        pricing,
        lookup.container_size,
        lookup.frequency,
        lookup.equipment_type,
        lookup.material_type,
    )
    if rate is None:
        raise HTTPException(
            status_code=404,
            detail=f"No municipal rate found for {lookup.container_size} {lookup.equipment_type} "
                   f"with {lookup.frequency} frequency in {pricing.city_name}"
        )

    return {
        "rate": rate,
        "summary": format_franchised_city_output(
            rate, lookup.bin_quantity, lookup.material_type, lookup.frequency
        ),
    }
