from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List, Dict, Any, Literal


ServiceStatus = Literal['serviceable', 'not-serviceable', 'manual-review']
RegionCode = Literal['NTX', 'CTX', 'STX']


class ServiceRequest(BaseModel):
    id: str = ""
    company_name: str = ""
    address: str = ""
    city: str = ""
    state: str = ""
    zip_code: str = ""
    equipment_type: str = "Front-Load Container"
    container_size: str = ""
    frequency: str = "1x/week"
    material_type: str = "Solid Waste"
    bin_quantity: int = 1
    add_ons: List[str] = Field(default_factory=list)
    notes: str = ""


class LocationRequest(ServiceRequest):
    latitude: Optional[float] = None
    longitude: Optional[float] = None


class FranchisedCityRate(BaseModel):
    """One line of a municipal contract rate sheet."""
    model_config = ConfigDict(extra="allow")

    id: str
    city: str
    state: str = "Texas"
    container_size: str = ""
    frequency: Optional[str] = None
    equipment_type: Optional[str] = None
    material_type: Optional[str] = None
    monthly_rate: Optional[float] = None
    delivery_fee: Optional[float] = None
    franchise_fee: Optional[float] = None
    sales_tax: Optional[float] = None
    extra_pickup_rate: Optional[float] = None
    fuel_surcharge: Optional[float] = None
    # roll-off / compactor sheets
    daily_rate: Optional[float] = None
    haul_fee: Optional[float] = None
    haul_rate: Optional[float] = None
    disposal_fee: Optional[float] = None
    disposal_minimum: Optional[float] = None
    per_ton_rate: Optional[float] = None
    dry_run_fee: Optional[float] = None
    deposit: Optional[float] = None
    included_tons: Optional[float] = None
    notes: Optional[str] = None


class FranchisedCityPricing(BaseModel):
    city_name: str
    state: str
    rates: List[FranchisedCityRate]
    last_updated: str = ""
    source_file: str = ""


class FranchisedCityMatch(BaseModel):
    is_match: bool
    city_name: str
    state: str
    pricing_data: Optional[FranchisedCityPricing] = None
    franchise_fee: float = 0
    sales_tax: float = 0


class RegionalRateEntry(BaseModel):
    container_size: str
    frequency: str
    price: float


class RegionalRateSheet(BaseModel):
    region: RegionCode
    region_name: str
    rates: List[RegionalRateEntry] = Field(default_factory=list)


class RegionalPricingData(BaseModel):
    rate_sheets: List[RegionalRateSheet] = Field(default_factory=list)
    last_updated: str = ""
    source: Optional[str] = None


class BrokerRate(BaseModel):
    id: str = ""
    city: str = ""
    state: str = "TX"
    equipment_type: str = ""
    container_size: str = ""
    frequency: str = ""
    base_rate: float = 0
    # flat amounts; zero means "use the city percentage"
    franchise_fee: float = 0
    local_tax: float = 0
    fuel_surcharge: float = 0
    division: str = ""
    delivery_fee: Optional[float] = None
    extra_pickup_rate: Optional[float] = None


class CustomPricingRule(BaseModel):
    id: str = ""
    city: str = ""
    state: str = ""
    equipment_type: str = "auto-inherit"
    container_size: str = "auto-inherit"
    frequency: str = "auto-inherit"
    material_type: str = "auto-inherit"
    price_per_yard: float = 0
    large_container_price_per_yard: Optional[float] = None
    price_per_yard_addon: float = 0
    delivery_fee: Optional[float] = None
    fuel_surcharge: Optional[float] = None
    franchise_fee: Optional[float] = None
    tax: Optional[float] = None
    extra_pickup_rate: Optional[float] = None
    assigned_divisions: List[str] = Field(default_factory=list)


class ContainerSpecificOverride(BaseModel):
    # blank equipment type applies the override to every equipment type
    equipment_type: Optional[str] = None
    container_size: str
    price_per_yard: float


class ContainerSpecificPricingRule(BaseModel):
    city: Optional[str] = None
    state: Optional[str] = None
    equipment_type: str
    container_size: str
    price_per_yard: Optional[float] = None
    large_container_price_per_yard: Optional[float] = None


class RollOffPricing(BaseModel):
    delivery_fee: float = 0
    delivery_fee_negotiable: bool = False
    daily_rental: float = 0
    daily_rental_negotiable: bool = False
    monthly_rent: float = 0
    monthly_rent_negotiable: bool = False
    haul_rate: float = 0
    haul_rate_negotiable: bool = False
    disposal_per_ton: float = 0
    disposal_per_ton_negotiable: bool = False
    dry_run: float = 0
    dry_run_negotiable: bool = False
    deposit: float = 0
    deposit_negotiable: bool = False
    deposit_cities: List[str] = Field(default_factory=list)


class GlobalPricingRule(BaseModel):
    id: str = ""
    equipment_type: str = "auto-inherit"
    container_size: str = "auto-inherit"
    frequency: str = "auto-inherit"
    material_type: str = "auto-inherit"
    small_container_price_per_yard: float = 0
    large_container_price_per_yard: float = 0
    container_specific_pricing: List[ContainerSpecificOverride] = Field(default_factory=list)
    franchise_fee_percent: Optional[float] = None
    fuel_surcharge_percent: Optional[float] = None
    tax_percent: Optional[float] = None
    delivery_fee: Optional[float] = None
    extra_pickup_rate: Optional[float] = None
    is_roll_off_or_compactor: bool = False
    roll_off_pricing: Optional[RollOffPricing] = None


class AdditionalFee(BaseModel):
    id: str = ""
    category: str
    price: float
    frequency: str = "monthly"
    location_id: Optional[str] = None
    location_display: Optional[str] = None
    assigned_divisions: List[str] = Field(default_factory=list)


class PricingConfig(BaseModel):
    small_container_price: float = 0
    large_container_price: float = 0
    franchise_fee: Optional[float] = None
    tax: Optional[float] = None
    delivery_fee: Optional[float] = None
    fuel_surcharge: Optional[float] = None
    extra_pickup_rate: Optional[float] = None
    additional_fees: List[AdditionalFee] = Field(default_factory=list)
    container_specific_pricing_rules: List[ContainerSpecificPricingRule] = Field(default_factory=list)
    global_pricing_rules: List[GlobalPricingRule] = Field(default_factory=list)


class SupplementaryCost(BaseModel):
    id: str = ""
    category: str
    description: str = ""
    amount: float
    frequency: str = "monthly"
    justification: str = ""
    added_by: Optional[str] = None
    added_at: str = ""
    city_name: str = ""


class FranchisedCitySupplementaryPricing(BaseModel):
    city_name: str
    state: str
    supplementary_costs: List[SupplementaryCost] = Field(default_factory=list)
    last_updated: str = ""


class PricingLogic(BaseModel):
    type: Literal['broker', 'custom', 'regional-brain']
    broker_rates: Optional[List[BrokerRate]] = None
    custom_rules: Optional[List[CustomPricingRule]] = None
    pricing_config: Optional[PricingConfig] = None
    regional_pricing_data: Optional[RegionalPricingData] = None
    # keyed by "city, state" in lower case
    franchised_city_supplementary: Dict[str, FranchisedCitySupplementaryPricing] = Field(default_factory=dict)


class AddOnDetail(BaseModel):
    category: str
    original_price: float
    original_frequency: str
    monthly_equivalent: float
    location_specific: bool = False
    location_display: Optional[str] = None


class Quote(BaseModel):
    id: str
    service_request: ServiceRequest
    matched_rate: Optional[Dict[str, Any]] = None
    pricing_source: str
    base_rate: float = 0
    total_monthly_volume: float = 0
    number_of_units: int = 0
    pickups_per_week: float = 0
    franchise_fee_amount: float = 0
    local_tax_amount: float = 0
    fuel_surcharge_amount: float = 0
    fuel_surcharge_rate: float = 0
    franchise_fee_rate: float = 0
    local_tax_rate: float = 0
    delivery_fee: float = 0
    extra_pickup_rate: float = 0
    subtotal: float = 0
    add_ons_cost: float = 0
    total_price: float = 0
    total_monthly_cost: float = 0
    status: Literal['success', 'failed'] = 'success'
    failure_reason: Optional[str] = None
    add_on_details: Optional[List[AddOnDetail]] = None
    is_roll_off_or_compactor: bool = False
    roll_off_pricing: Optional[RollOffPricing] = None


class BulkQuoteResult(BaseModel):
    total_processed: int
    success_count: int
    failure_count: int
    quotes: List[Quote]
    failed_quotes: List[Quote]


class ServiceAreaResult(BaseModel):
    id: str = ""
    company_name: str = ""
    address: str = ""
    city: str = ""
    state: str = ""
    zip_code: str = ""
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    status: ServiceStatus
    reason: str = ""
    division: str = ""
    service_region: str = ""
    franchise_fee: float = 0
    equipment_type: str = ""
    container_size: str = ""
    frequency: str = ""
    material_type: str = "Solid Waste"
    add_ons: List[str] = Field(default_factory=list)
    bin_quantity: int = 1


class ServiceAreaVerificationData(BaseModel):
    total_processed: int = 0
    serviceable_count: int = 0
    not_serviceable_count: int = 0
    manual_review_count: int = 0
    results: List[ServiceAreaResult] = Field(default_factory=list)


class SpatialValidationResult(BaseModel):
    is_serviceable: bool
    division: Optional[str] = None
    csr_center: Optional[str] = None
    service_region: Optional[str] = None
    cities_areas: Optional[str] = None
    match_type: Literal['bounding-box', 'none'] = 'none'
    coordinates: List[float]


class GeocodingResult(BaseModel):
    latitude: float
    longitude: float
    display_name: str
    # south, north, west, east
    bounding_box: Optional[List[float]] = None
    # approximate city-centre coordinates used while Mapbox was unreachable
    is_fallback: bool = False


# Request bodies

class QuoteRequest(BaseModel):
    service_request: ServiceRequest
    pricing_logic: Optional[PricingLogic] = None
    session_id: Optional[str] = None


class BulkQuoteRequest(BaseModel):
    service_requests: List[ServiceRequest]
    pricing_logic: Optional[PricingLogic] = None
    session_id: Optional[str] = None
    service_area_data: Optional[ServiceAreaVerificationData] = None


class RateLookupRequest(BaseModel):
    container_size: str
    frequency: str
    equipment_type: str = "Front-Load Container"
    material_type: str = "Solid Waste"
    bin_quantity: int = 1


class ValidateLocationsRequest(BaseModel):
    locations: List[LocationRequest]
    geocode: bool = False


class SaveSessionRequest(BaseModel):
    session_name: str
    verification_data: ServiceAreaVerificationData


class ResultStatusUpdate(BaseModel):
    status: ServiceStatus
    reason: Optional[str] = None


class PricingConfigurationCreate(BaseModel):
    session_id: str
    pricing_logic: PricingLogic
    custom_config: Optional[Dict[str, Any]] = None


class PricingConfigurationUpdate(BaseModel):
    pricing_logic: PricingLogic
    custom_config: Optional[Dict[str, Any]] = None
