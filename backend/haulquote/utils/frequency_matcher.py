"""Frequency standardization: free-text pickup schedules to 'Nx/week' style values."""

import re

from haulquote.utils.service_catalog import WEEKS_PER_MONTH

DEFAULT_FREQUENCY = '1x/week'

# Exact phrases that can't be read off the first number in the text
FREQUENCY_PHRASES = {
    '0.5x/week': '0.5x/week',
    'half per week': '0.5x/week',
    'half weekly': '0.5x/week',
    '0.5 per week': '0.5x/week',
    '.5 per week': '0.5x/week',
    'every other week': '0.5x/week',
    'biweekly': '0.5x/week',
    'once per week': '1x/week',
    'once weekly': '1x/week',
    'weekly': '1x/week',
    'twice per week': '2x/week',
    'twice weekly': '2x/week',
    'bi-weekly': '2x/week',
    'three times per week': '3x/week',
    'thrice weekly': '3x/week',
    'four times per week': '4x/week',
    'five times per week': '5x/week',
    'weekdays': '5x/week',
    'six times per week': '6x/week',
    'daily': '7x/week',
    'every day': '7x/week',
    'once per month': '1x/month',
    'monthly': '1x/month',
    'twice per month': '2x/month',
    'bi-monthly': '2x/month',
    'on-call': 'on-call',
    'on call': 'on-call',
    'as-needed': 'on-call',
    'as needed': 'on-call',
    'on demand': 'on-call',
    'on-demand': 'on-call',
}

_FIRST_NUMBER = re.compile(r'(\d+)')


def _first_int(text: str, default: int) -> int:
    match = _FIRST_NUMBER.search(text)
    return int(match.group(1)) if match else default


def standardize_frequency(frequency: str) -> str:
    if not frequency:
        return DEFAULT_FREQUENCY

    freq = frequency.lower().strip()

    # phrases go first so "bi-weekly" and "0.5x/week" are not reduced to the number rules below
    if freq in FREQUENCY_PHRASES:
        return FREQUENCY_PHRASES[freq]

    if 'week' in freq:
        return f"{_first_int(freq, 1)}x/week"

    if 'day' in freq:
        return f"{_first_int(freq, 7)}x/week"

    if 'month' in freq:
        return f"{_first_int(freq, 1)}x/month"

    match = _FIRST_NUMBER.search(freq)
    if match:
        times = int(match.group(1))
        return f"{times}x/week" if times <= 7 else f"{times}x/month"

    return DEFAULT_FREQUENCY


def get_frequency_multiplier(frequency: str) -> float:
    """Pickups per week for a frequency string. Monthly schedules are spread over 4.33 weeks."""
    standardized = standardize_frequency(frequency)

    if standardized == '0.5x/week':
        return 0.5

    if standardized == 'on-call':
        return 0

    match = re.match(r'^(\d+)x/week$', standardized)
    if match:
        return int(match.group(1))

    match = re.match(r'^(\d+)x/month$', standardized)
    if match:
        return int(match.group(1)) / WEEKS_PER_MONTH

    return 1


def is_valid_frequency(frequency: str) -> bool:
    if not frequency:
        return False

    freq = frequency.lower().strip()
    if freq in FREQUENCY_PHRASES:
        return True

    return bool(re.match(r'^\d+(\.\d+)?x/(week|month)$', freq))
