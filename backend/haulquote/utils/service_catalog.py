"""
Service Catalog

Reference lists used when normalizing uploads and deciding where we haul.
"""

AUTO_INHERIT = 'auto-inherit'

TEXAS_STATE_NAMES = ('texas', 'tx')

# Weeks per month used for all monthly volume math
WEEKS_PER_MONTH = 4.33

DEFAULT_SALES_TAX = 8.25
DEFAULT_FUEL_SURCHARGE = 15

SMALL_CONTAINER_YARDS = (2, 3, 4)
LARGE_CONTAINER_YARDS = (6, 8, 10)
OVERSIZED_CONTAINER_MIN_YARDS = 20

# NORMALIZED OPTION LISTS
CONTAINER_SIZES = [
    '0.5YD', '2YD', '3YD', '4YD', '6YD', '8YD', '10YD',
    '20YD', '30YD', '35YD', '40YD',
]

FREQUENCY_OPTIONS = [
    '0.5x/week', '1x/week', '2x/week', '3x/week', '4x/week',
    '5x/week', '6x/week', '1x/month', '2x/month',
]

EQUIPMENT_TYPES = ['Front-Load Container', 'Roll-off', 'Compactor', 'Toter']

MATERIAL_TYPES = ['Trash', 'Recycling', 'OCC', 'Construction', 'Yard Waste']

# Container labels that show up on contract sheets and customer uploads
# which are not yard sizes but are still quotable.
ADDITIONAL_CONTAINER_SIZES = [
    '95-gallon', '96-gallon', '65-gallon', '1-Cart', '2-Carts', '3-Carts',
    'Cart', 'Toter', 'Polycart', 'Commercial Cart', 'Residential Cart',
    'Extra Cart', 'Additional Cart', 'Manual Collection', 'Hand Collection',
    'VIP', 'Vertipack', 'Compactor', 'Self-Contained', 'Stationary',
    'Detachable Container', 'Receiver Box', 'PERM RO', 'Various',
]

RECOGNIZED_CONTAINER_SIZES = CONTAINER_SIZES + ADDITIONAL_CONTAINER_SIZES

# FRANCHISED CITY ALIASES - alternate spellings that share a rate sheet
FRANCHISED_CITY_ALIASES = {
    'st hedwig': 'st. hedwig',
    'saint hedwig': 'st. hedwig',
    'helotes city': 'helotes',
}

# Houston's franchise fee is fixed regardless of the fee sheet
HOUSTON_FRANCHISE_FEE = 4

# SERVICE AREA LISTS
NOT_SERVICEABLE_CITIES = [
    'pasadena', 'el paso', 'amarillo', 'arlington', 'burleson',
    'league city', 'the woodlands', 'allen', 'bedford', 'carrollton',
    'flower mound', 'forest hill', 'haltom city', 'grapevine',
    'grand prairie', 'hurst', 'keller', 'aledo', 'la porte',
    'lewisville', 'north richland hills', 'missouri city', 'plano',
    'pflugerville', 'prosper', 'rockwall', 'round rock', 'rowlett',
    'southlake', 'sugar land', 'the colony', 'lubbock', 'university city',
    'harker heights', 'webster', 'universal city', 'friendswood',
    'richmond', 'rosenberg',
]

EXPLICITLY_SERVICEABLE_CITIES = ['burleson', 'crosby']

# Cities where front-load service is not offered
FRONT_LOAD_RESTRICTED_CITIES = ['beaumont']

NTX_CITIES = [
    'dallas', 'fort worth', 'plano', 'garland', 'irving', 'grand prairie',
    'mesquite', 'mckinney', 'carrollton', 'frisco', 'denton', 'richardson',
    'lewisville', 'allen', 'flower mound', 'mansfield', 'euless', 'desoto',
    'grapevine', 'bedford', 'haltom city', 'wylie', 'keller', 'coppell',
    'duncanville', 'rockwall', 'farmers branch', 'rowlett', 'the colony',
    'southlake', 'watauga', 'colleyville', 'corinth', 'highland village',
    'lancaster', 'little elm', 'north richland hills', 'princeton', 'sachse',
    'addison', 'cedar hill', 'glenn heights', 'murphy', 'prosper', 'red oak',
    'seagoville', 'university park', 'cockrell hill', 'combine',
    'highland park', 'hutchins', 'ovilla', 'sunnyvale', 'wilmer',
    'weatherford', 'granbury', 'cresson', 'sherman', 'denison',
    'gainesville', 'justin',
]

STX_CITIES = [
    'houston', 'corpus christi', 'pasadena', 'pearland', 'league city',
    'sugar land', 'baytown', 'beaumont', 'missouri city', 'galveston',
    'conroe', 'texas city', 'huntsville', 'lufkin', 'tyler', 'longview',
    'texarkana', 'port arthur', 'orange', 'liberty', 'cleveland', 'dayton',
    'tomball', 'jersey village', 'cypress', 'humble', 'katy', 'spring',
    'channelview', 'la porte',
]

CTX_CITIES = [
    'austin', 'san antonio', 'waco', 'killeen', 'temple', 'bryan',
    'college station', 'round rock', 'cedar park', 'georgetown',
    'pflugerville', 'leander', 'san marcos', 'new braunfels', 'kyle', 'buda',
    'dripping springs', 'bee cave', 'lakeway', 'west lake hills',
    'rollingwood', 'sunset valley', 'manchaca', 'del valle', 'elgin', 'manor',
    'hutto', 'taylor', 'granger', 'jarrell', 'florence', 'liberty hill',
    'bertram', 'burnet', 'marble falls', 'horseshoe bay', 'granite shoals',
    'cottonwood shores', 'meadowlakes', 'spicewood', 'lockhart', 'luling',
    'gonzales', 'nixon', 'smiley', 'waelder', 'flatonia', 'muldoon',
    'schulenburg', 'weimar', 'columbus', 'eagle lake', 'wallis', 'orchard',
    'east bernard', 'boling', 'wharton', 'hungerford', 'louise', 'blessing',
    'midfield', 'matagorda', 'bay city', 'wadsworth', 'markham', 'van vleck',
    'sweeny', 'west columbia', 'brazoria', 'angleton', 'lake jackson', 'clute',
    'freeport', 'surfside beach', 'quintana', 'hearne', 'franklin', 'bremond',
    'calvert', 'reagan', 'centerville', 'normangee', 'madisonville', 'midway',
    'crockett', 'lovelady', 'grapeland', 'elkhart', 'palestine', 'davilla',
    'rogers', 'buckholts', 'cameron', 'rockdale', 'thorndale', 'thrall',
    'belton', 'seguin', 'boerne',
]

DIVISION_CITIES = {
    'NTX': NTX_CITIES,
    'STX': STX_CITIES,
    'CTX': CTX_CITIES,
}


def is_texas(state: str) -> bool:
    return (state or '').lower().strip() in TEXAS_STATE_NAMES


def determine_division(city: str, state: str):
    """Return NTX/STX/CTX for a Texas city, or None if we have no mapping."""
    if not is_texas(state):
        return None

    city_lower = (city or '').lower().strip()
    for division, cities in DIVISION_CITIES.items():
        if city_lower in cities:
            return division

    return None
