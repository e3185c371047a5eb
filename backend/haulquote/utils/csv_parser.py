"""
CSV upload parsing: header detection, column detection, service requests,
broker rate sheets and regional rate sheets.
"""

import csv
import io
import logging
import re
from datetime import datetime, timezone
from typing import Dict, List, Optional

from haulquote.models import (
    BrokerRate,
    LocationRequest,
    RegionalPricingData,
    RegionalRateEntry,
    RegionalRateSheet,
    ServiceRequest,
)

logger = logging.getLogger(__name__)

HEADER_KEYWORDS = [
    'address', 'street', 'location', 'site',
    'city', 'state', 'zip', 'postal', 'province',
    'company', 'business', 'customer', 'client', 'name',
    'equipment', 'container', 'size', 'frequency', 'service', 'pickup',
    'material', 'waste', 'addon', 'extra', 'special',
    'latitude', 'longitude', 'lat', 'lng', 'coord',
]

STATE_ABBREVIATIONS = {
    'AL': 'Alabama', 'AK': 'Alaska', 'AZ': 'Arizona', 'AR': 'Arkansas', 'CA': 'California',
    'CO': 'Colorado', 'CT': 'Connecticut', 'DE': 'Delaware', 'FL': 'Florida', 'GA': 'Georgia',
    'HI': 'Hawaii', 'ID': 'Idaho', 'IL': 'Illinois', 'IN': 'Indiana', 'IA': 'Iowa',
    'KS': 'Kansas', 'KY': 'Kentucky', 'LA': 'Louisiana', 'ME': 'Maine', 'MD': 'Maryland',
    'MA': 'Massachusetts', 'MI': 'Michigan', 'MN': 'Minnesota', 'MS': 'Mississippi', 'MO': 'Missouri',
    'MT': 'Montana', 'NE': 'Nebraska', 'NV': 'Nevada', 'NH': 'New Hampshire', 'NJ': 'New Jersey',
    'NM': 'New Mexico', 'NY': 'New York', 'NC': 'North Carolina', 'ND': 'North Dakota', 'OH': 'Ohio',
    'OK': 'Oklahoma', 'OR': 'Oregon', 'PA': 'Pennsylvania', 'RI': 'Rhode Island', 'SC': 'South Carolina',
    'SD': 'South Dakota', 'TN': 'Tennessee', 'TX': 'Texas', 'UT': 'Utah', 'VT': 'Vermont',
    'VA': 'Virginia', 'WA': 'Washington', 'WV': 'West Virginia', 'WI': 'Wisconsin', 'WY': 'Wyoming',
    'DC': 'District of Columbia',
}

STATE_NAMES_TO_ABBREVIATIONS = {name: abbr for abbr, name in STATE_ABBREVIATIONS.items()}

STREET_SUFFIXES = [
    'st', 'street', 'ave', 'avenue', 'rd', 'road', 'blvd', 'boulevard',
    'dr', 'drive', 'ln', 'lane', 'ct', 'court', 'pl', 'place', 'way',
    'pkwy', 'parkway', 'cir', 'circle', 'ter', 'terrace', 'trl', 'trail',
    'hwy', 'highway', 'fwy', 'freeway', 'expy', 'expressway',
]

TWO_WORD_CITIES = [
    'fort worth', 'san antonio', 'el paso', 'las vegas', 'new york',
    'los angeles', 'san diego', 'san francisco', 'santa ana', 'long beach',
    'virginia beach', 'colorado springs', 'saint paul', 'corpus christi',
]

_STATE_PATTERN = '|'.join(['[A-Z]{2}'] + sorted(STATE_NAMES_TO_ABBREVIATIONS, key=len, reverse=True))
# "<street and city>[,] <state> <zip>", anything after the ZIP is ignored
ADDRESS_PATTERN = re.compile(rf'(.+?)\s*,?\s*({_STATE_PATTERN})\s+(\d{{5}}(?:-\d{{4}})?)', re.IGNORECASE)

# Regional sheets list 1x..6x/week prices in columns 1..6
REGIONAL_FREQUENCY_COLUMNS = {i: f"{i}x/week" for i in range(1, 7)}


def _normalize_header(header: str) -> str:
    return re.sub(r'[^a-z0-9]', '', (header or '').lower().strip())


def parse_csv(csv_text: str) -> List[List[str]]:
    """Split CSV text into trimmed rows, dropping blank lines."""
    reader = csv.reader(io.StringIO(csv_text.strip()))
    return [[cell.strip() for cell in row] for row in reader if row]


def _header_score(row: List[str]) -> int:
    cells = [cell.strip() for cell in row if cell and cell.strip()]
    score = len(cells) * 2
    if len(cells) >= 3:
        score += 10
    if len(cells) >= 5:
        score += 15

    for value in cells:
        if re.fullmatch(r'\d+(\.\d+)?', value):
            score -= 5
            continue

        if re.fullmatch(r'[a-zA-Z\s]+', value):
            score += 3

        normalized = _normalize_header(value)
        if normalized and any(keyword in normalized or normalized in keyword for keyword in HEADER_KEYWORDS):
            score += 20

        if re.fullmatch(r'[A-Z][a-z]+(\s+[A-Z][a-z]+)*', value):
            score += 5

        if '_' in value or '-' in value:
            score += 3

        if len(value) > 50:
            score -= 10

        if re.search(r'\d{1,2}[/\-]\d{1,2}[/\-]\d{2,4}', value):
            score -= 15

    return score


def detect_header_row(rows: List[List[str]]) -> int:
    """Index of the most header-like row among the first ten."""
    best_score = -1
    best_index = 0

    for index, row in enumerate(rows[:10]):
        if not row:
            continue
        score = _header_score(row)
        if score > best_score:
            best_score = score
            best_index = index

    return best_index


def detect_columns(headers: List[str]) -> Dict[str, int]:
    column_map: Dict[str, int] = {}

    for index, header in enumerate(headers):
        h = _normalize_header(header)

        if h in ('city', 'cityname'):
            column_map['city'] = index

        if h in ('state', 'stateorprovince', 'st'):
            column_map['state'] = index

        if h in ('address', 'addressline1', 'address1', 'streetaddress', 'serviceaddress',
                 'street', 'locationaddress', 'location'):
            column_map['address'] = index

        if h in ('zipcode', 'postalcode', 'zip', 'postal', 'zipcode4'):
            column_map['zip_code'] = index

        if h in ('equipmenttype', 'equipment', 'containertype', 'servicetype',
                 'wastetype', 'dumpstertype', 'removaltype'):
            column_map['equipment_type'] = index

        if ('container' in h and 'size' in h) or h in ('binsize', 'yardsize', 'size'):
            column_map['container_size'] = index

        if h in ('frequency', 'servicefrequency', 'pickupfrequency', 'schedule', 'serviceschedule',
                 'collectionfrequency', 'frequencyperweek', 'pickupsperweek', 'pickups',
                 'weeklyfrequency', 'timesperweek', 'freq'):
            column_map['frequency'] = index

        if h in ('quantity', 'containerquantity', 'binquantity', 'numberofbins', 'numberofcontainers',
                 'qty', 'bins', 'containers', 'count', 'units', 'bincount', 'containercount'):
            column_map['bin_quantity'] = index

        if 'base' in h and 'rate' in h:
            column_map['base_rate'] = index
        if 'franchise' in h:
            column_map['franchise_fee'] = index
        if 'tax' in h:
            column_map['local_tax'] = index
        if 'fuel' in h:
            column_map['fuel_surcharge'] = index
        if 'division' in h:
            column_map['division'] = index
        if ('customer' in h or 'company' in h) and 'name' in h:
            column_map['customer_name'] = index
        if 'addon' in h or 'extra' in h or 'lock' in h:
            column_map['add_ons'] = index
        if 'note' in h or 'comment' in h:
            column_map['notes'] = index

        if h in ('materialtype', 'material', 'wastetype', 'producttype', 'streamtype', 'recyclabletype',
                 'singlestream', 'occ', 'cardboard', 'recyclable', 'wastestream', 'materialstream'):
            column_map['material_type'] = index
        elif ('material_type' not in column_map and len(h) <= 15
              and any(word in h for word in ('material', 'waste', 'product', 'stream', 'type'))):
            column_map['material_type'] = index

    logger.info(f"Detected columns: {column_map}")
    return column_map


def normalize_container_size(size: str) -> str:
    normalized = re.sub(r'[^0-9yd]', '', (size or '').lower())
    match = re.search(r'(\d+)', normalized)
    return f"{match.group(1)}YD" if match else size


def normalize_material_type(material_type: str) -> str:
    """Categorize an upload's material column as Recycling, Solid Waste, Construction or Yard Waste."""
    if not material_type or not isinstance(material_type, str):
        return 'Solid Waste'

    normalized = material_type.lower().strip()

    if (any(marker in normalized for marker in
            ('recycl', 'single stream', 'singlestream', 'single-stream', 'occ', 'cardboard'))
            or normalized in ('ssry', 'ss')):
        return 'Recycling'

    if any(marker in normalized for marker in ('trash', 'garbage', 'waste', 'msw', 'refuse')):
        return 'Solid Waste'

    if any(marker in normalized for marker in ('construction', 'demolition', 'c&d', 'debris')):
        return 'Construction'

    if any(marker in normalized for marker in ('yard', 'green', 'organic', 'compost')):
        return 'Yard Waste'

    return 'Solid Waste'


def normalize_frequency(frequency: str) -> str:
    """Upload-level frequency cleanup. Unrecognized text is passed through for the pricing engine."""
    if not frequency or not frequency.strip():
        return '1x/week'

    lower = frequency.lower()

    if ('half' in lower or '.5' in lower) and 'week' in lower:
        return '0.5x/week'

    match = re.search(r'(\d+)x/week', lower)
    if match:
        return f"{match.group(1)}x/week"

    if 'every other week' in lower or 'biweekly' in lower or 'bi-weekly' in lower:
        return '0.5x/week'

    if 'week' in lower:
        match = re.search(r'(\d+)', lower)
        return f"{match.group(1) if match else 1}x/week"

    if 'month' in lower:
        match = re.search(r'(\d+)', lower)
        return f"{match.group(1) if match else 1}x/month"

    if 'daily' in lower:
        return '7x/week'

    return frequency


def convert_state_abbreviation(state: str) -> str:
    """'TX' -> 'Texas'. Full names and unknown values pass through; empty means Texas."""
    if not state:
        return 'Texas'

    if state in STATE_NAMES_TO_ABBREVIATIONS:
        return state

    return STATE_ABBREVIATIONS.get(state.upper().strip(), state)


def convert_state_to_abbreviation(state: str) -> str:
    if not state:
        return 'TX'

    trimmed = state.strip()
    if len(trimmed) == 2 and trimmed.upper() in STATE_ABBREVIATIONS:
        return trimmed.upper()

    for name, abbr in STATE_NAMES_TO_ABBREVIATIONS.items():
        if name.lower() == trimmed.lower():
            return abbr

    return trimmed


def _split_street_and_city(text: str):
    trimmed = text.strip()
    if not trimmed:
        return '', ''

    last_suffix_start = -1
    last_suffix_end = -1
    for suffix in STREET_SUFFIXES:
        for match in re.finditer(rf'\b{suffix}\b', trimmed, re.IGNORECASE):
            if match.start() > last_suffix_start:
                last_suffix_start = match.start()
                last_suffix_end = match.end()

    if last_suffix_start != -1:
        street = trimmed[:last_suffix_end].strip()
        city = re.sub(r'^[.,\s]+', '', trimmed[last_suffix_end:]).strip()
        return street, city

    if ',' in trimmed:
        parts = [part.strip() for part in trimmed.split(',')]
        return ', '.join(parts[:-1]), parts[-1]

    words = trimmed.split()
    if len(words) >= 3:
        if ' '.join(words[-2:]).lower() in TWO_WORD_CITIES:
            return ' '.join(words[:-2]), ' '.join(words[-2:])
        return ' '.join(words[:-1]), words[-1]

    return trimmed, ''


def parse_address_field(address: str) -> Dict[str, str]:
    """
    Split a single-cell address like "111 Main St., Houston TX 77587" into
    street_address, city, state (abbreviated) and zip_code. When there is no
    state + ZIP, the whole value is returned as the street address.
    """
    empty = {'street_address': '', 'city': '', 'state': '', 'zip_code': ''}
    if not address or not address.strip():
        return empty

    trimmed = address.strip()
    match = ADDRESS_PATTERN.search(trimmed)
    if not match:
        return {**empty, 'street_address': trimmed}

    street, city = _split_street_and_city(match.group(1))
    return {
        'street_address': street,
        'city': city,
        'state': convert_state_to_abbreviation(match.group(2)),
        'zip_code': match.group(3),
    }


def _cell(row: List[str], column_map: Dict[str, int], key: str, default: str = '') -> str:
    index = column_map.get(key)
    if index is None or index >= len(row):
        return default
    return row[index] or default


def _to_float(value: str) -> float:
    try:
        return float(re.sub(r'[$,%\s]', '', value or '') or 0)
    except ValueError:
        return 0.0


def _to_int(value: str, default: int = 1) -> int:
    match = re.match(r'\s*(\d+)', value or '')
    return int(match.group(1)) or default if match else default


def parse_service_requests(rows: List[List[str]], column_map: Dict[str, int]) -> List[ServiceRequest]:
    """Build service requests from data rows. rows[0] is the header row."""
    requests = []

    for index, row in enumerate(rows[1:]):
        address_field = _cell(row, column_map, 'address')
        parsed = parse_address_field(address_field)
        add_ons = _cell(row, column_map, 'add_ons')

        requests.append(ServiceRequest(
            id=f"request-{index}",
            company_name=_cell(row, column_map, 'customer_name') or f"Customer {index + 1}",
            address=parsed['street_address'] or address_field,
            city=parsed['city'] or _cell(row, column_map, 'city'),
            state=convert_state_abbreviation(parsed['state'] or _cell(row, column_map, 'state') or 'TX'),
            zip_code=parsed['zip_code'] or _cell(row, column_map, 'zip_code'),
            equipment_type=_cell(row, column_map, 'equipment_type'),
            container_size=normalize_container_size(_cell(row, column_map, 'container_size')),
            frequency=normalize_frequency(_cell(row, column_map, 'frequency')),
            material_type=normalize_material_type(_cell(row, column_map, 'material_type', 'Solid Waste')),
            add_ons=[item.strip() for item in add_ons.split(',')] if add_ons.strip() else [],
            notes=_cell(row, column_map, 'notes'),
            bin_quantity=_to_int(_cell(row, column_map, 'bin_quantity')),
        ))

    return requests


def parse_location_requests(rows: List[List[str]]) -> List[LocationRequest]:
    """Detect the header row of an upload and turn the rows after it into locations."""
    if not rows:
        raise ValueError("No valid header row found in CSV data")

    header_index = detect_header_row(rows)
    headers = rows[header_index]
    if not any(headers):
        raise ValueError("Header row is empty or invalid")

    column_map = detect_columns(headers)
    requests = parse_service_requests(rows[header_index:], column_map)
    return [LocationRequest(**request.model_dump()) for request in requests]


def parse_upload(csv_text: str) -> List[ServiceRequest]:
    rows = parse_csv(csv_text)
    if not rows:
        return []

    header_index = detect_header_row(rows)
    column_map = detect_columns(rows[header_index])
    return parse_service_requests(rows[header_index:], column_map)


def parse_rate_data(rows: List[List[str]], column_map: Dict[str, int]) -> List[BrokerRate]:
    """Broker rate sheet rows -> BrokerRate. rows[0] is the header row."""
    return [
        BrokerRate(
            id=f"rate-{index}",
            city=_cell(row, column_map, 'city'),
            state=_cell(row, column_map, 'state', 'TX'),
            equipment_type=_cell(row, column_map, 'equipment_type'),
            container_size=normalize_container_size(_cell(row, column_map, 'container_size')),
            frequency=normalize_frequency(_cell(row, column_map, 'frequency')),
            base_rate=_to_float(_cell(row, column_map, 'base_rate')),
            franchise_fee=_to_float(_cell(row, column_map, 'franchise_fee')),
            local_tax=_to_float(_cell(row, column_map, 'local_tax')),
            fuel_surcharge=_to_float(_cell(row, column_map, 'fuel_surcharge')),
            division=_cell(row, column_map, 'division'),
        )
        for index, row in enumerate(rows[1:])
    ]


def _region_header(first_cell: str):
    if 'ntx' in first_cell or 'dallas' in first_cell or 'fort worth' in first_cell:
        return 'NTX', 'Dallas/Fort Worth'
    if 'stx' in first_cell or 'houston' in first_cell:
        return 'STX', 'Houston'
    if any(name in first_cell for name in ('ctx', 'san antonio', 'san marcos', 'austin')):
        return 'CTX', 'San Antonio/San Marcos/Austin'
    return None


def parse_regional_rate_sheets(csv_text: str) -> RegionalPricingData:
    """
    Parse the regional rate workbook export. Each region block starts with a
    title row (NTX / STX / CTX or a city in the region), followed by a
    "Size, 1x week, 2x week, ..." header and one row per container size.
    A blank line ends a block.
    """
    sheets: List[RegionalRateSheet] = []
    region: Optional[str] = None
    region_name = ''
    rates: List[RegionalRateEntry] = []
    in_data = False

    def flush():
        nonlocal rates, in_data
        if in_data and region and rates:
            sheets.append(RegionalRateSheet(region=region, region_name=region_name, rates=rates))
        rates = []
        in_data = False

    for line in csv_text.strip().splitlines():
        line = line.strip()
        if not line:
            flush()
            continue

        cells = [cell.strip().replace('"', '').replace('$', '') for cell in line.split(',')]
        first_cell = cells[0].lower()

        header = _region_header(first_cell)
        if header:
            flush()
            region, region_name = header
            continue

        if first_cell == 'size' and any('week' in cell.lower() for cell in cells):
            in_data = True
            continue

        if not (in_data and region and len(cells) > 1 and 'yd' in first_cell):
            continue

        size = re.sub(r'[^0-9YD]', '', cells[0].upper())
        for column, price_cell in enumerate(cells[1:], start=1):
            frequency = REGIONAL_FREQUENCY_COLUMNS.get(column)
            match = re.search(r'\d+\.?\d*', price_cell.replace(',', ''))
            if not frequency or not match:
                continue
            price = float(match.group(0))
            if price > 0:
                rates.append(RegionalRateEntry(container_size=size, frequency=frequency, price=price))

    flush()

    logger.info(f"Parsed {len(sheets)} regional rate sheets: {[s.region for s in sheets]}")
    return RegionalPricingData(
        rate_sheets=sheets,
        last_updated=datetime.now(timezone.utc).isoformat(),
        source='upload',
    )
