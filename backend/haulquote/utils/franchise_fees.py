"""
Franchise Fee Loader

Loads the city franchise fee sheet (data/franchise_fees.csv) and caches it
keyed by lower-cased city name.
"""

import csv
import io
import logging
import re
from pathlib import Path
from typing import Dict, Optional

logger = logging.getLogger(__name__)

FRANCHISE_FEE_CSV = Path(__file__).resolve().parent.parent / "data" / "franchise_fees.csv"

_franchise_fee_map: Optional[Dict[str, float]] = None


def _normalize_header(header: str) -> str:
    return re.sub(r'[^a-z0-9]', '', header.lower().strip())


def parse_franchise_fee_csv(csv_text: str) -> Dict[str, float]:
    """Parse a fee sheet with 'City' and 'Franchise Fee' columns. Raises ValueError if either is missing."""
    rows = [row for row in csv.reader(io.StringIO(csv_text)) if any(cell.strip() for cell in row)]
    if len(rows) < 2:
        raise ValueError("Invalid franchise fee CSV: insufficient rows")

    headers = [_normalize_header(h) for h in rows[0]]
    try:
        city_idx = headers.index('city')
        fee_idx = headers.index('franchisefee')
    except ValueError:
        raise ValueError(f"Required columns not found in franchise fee CSV. Available headers: {', '.join(rows[0])}")

    fees: Dict[str, float] = {}
    for row in rows[1:]:
        if len(row) <= max(city_idx, fee_idx):
            continue

        city = row[city_idx].strip()
        fee_text = row[fee_idx].strip()
        match = re.search(r'(\d+(?:\.\d+)?)', fee_text)
        if city and match:
            fees[city.lower()] = float(match.group(1))
        elif city:
            logger.warning(f"Skipping franchise fee for {city}: could not parse '{fee_text}'")

    return fees


def load_franchise_fees() -> Dict[str, float]:
    """Return the cached city -> franchise fee % map, loading it on first use."""
    global _franchise_fee_map

    if _franchise_fee_map is not None:
        return _franchise_fee_map

    try:
        _franchise_fee_map = parse_franchise_fee_csv(FRANCHISE_FEE_CSV.read_text(encoding="utf-8"))
        logger.info(f"Loaded franchise fees for {len(_franchise_fee_map)} cities")
    except (OSError, ValueError) as e:
        # an empty table means every city falls back to a 0% fee
        logger.error(f"Error loading franchise fee CSV: {e}")
        _franchise_fee_map = {}

    return _franchise_fee_map


def get_franchise_fee_for_city(city: str) -> Optional[float]:
    return load_franchise_fees().get((city or '').lower().strip())


def clear_franchise_fee_cache() -> None:
    global _franchise_fee_map
    _franchise_fee_map = None
