"""Display formatting for quote and verification exports."""

import math
from typing import Any, Optional


def _is_missing(value: Optional[float]) -> bool:
    return value is None or (isinstance(value, float) and math.isnan(value))


def format_currency(amount: Optional[float]) -> str:
    """$1,234.56, with negatives in parentheses."""
    if _is_missing(amount):
        return 'N/A'

    formatted = f"${abs(amount):,.2f}"
    return f"({formatted})" if amount < 0 else formatted


def format_percentage(value: Optional[float], decimal_places: int = 2) -> str:
    """8.25 -> '8.25%'."""
    if _is_missing(value):
        return 'N/A'
    return f"{value:,.{decimal_places}f}%"


def format_decimal_percentage(value: Optional[float], decimal_places: int = 2) -> str:
    """0.0825 -> '8.25%'."""
    if _is_missing(value):
        return 'N/A'
    return f"{value * 100:,.{decimal_places}f}%"


def format_number(value: Optional[float], decimal_places: int = 2) -> str:
    if _is_missing(value):
        return 'N/A'
    return f"{value:,.{decimal_places}f}"


def format_container_size(size: Optional[str]) -> str:
    if not size or not size.strip():
        return 'N/A'
    return size.strip()


def format_status(status: str) -> str:
    return {
        'serviceable': 'Serviceable - Quote Generated',
        'manual-review': 'Manual Review Required',
        'not-serviceable': 'Not Serviceable',
    }.get(status, 'Unknown Status')


def is_valid_number(value: Any) -> bool:
    return (isinstance(value, (int, float)) and not isinstance(value, bool)
            and math.isfinite(value))


def safe_number(value: Any, fallback: float = 0) -> float:
    if isinstance(value, str):
        try:
            value = float(value)
        except ValueError:
            return fallback
    return value if is_valid_number(value) else fallback
