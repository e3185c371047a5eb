"""
Pricing Engine

Turns a service request into a monthly quote.

Lookup order for every request:
    1. franchised city with a municipal rate sheet -> contract rate
    2. otherwise the configured pricing logic:
       regional-brain -> regional rate sheet for the city's division
       custom         -> custom rule, else the pricing config
                         (Global Pricing Rules -> container override ->
                         small/large per-yard price)
       broker         -> broker rate sheet

Non roll-off quotes all follow the same fee sequence:
    volume    = bins x pickups/week x yards x 4.33
    cost      = volume x price per yard
    fuel      = cost x fuel%
    franchise = (cost + add-ons) x franchise%
    subtotal  = cost + franchise + fuel + add-ons
    tax       = subtotal x tax%
    total     = subtotal + tax
"""

import logging
import re
from typing import Any, Dict, List, Optional, Tuple

from haulquote.models import (
    AddOnDetail,
    AdditionalFee,
    BulkQuoteResult,
    ContainerSpecificOverride,
    CustomPricingRule,
    FranchisedCityMatch,
    GlobalPricingRule,
    PricingConfig,
    PricingLogic,
    Quote,
    RegionalPricingData,
    RollOffPricing,
    ServiceAreaVerificationData,
    ServiceRequest,
)
from haulquote.utils.csv_parser import normalize_container_size
from haulquote.utils.franchised_city_matcher import (
    get_franchised_city_rate,
    match_franchised_city,
    normalize_equipment_type,
)
from haulquote.utils.frequency_matcher import get_frequency_multiplier
from haulquote.utils.service_catalog import (
    AUTO_INHERIT,
    DEFAULT_FUEL_SURCHARGE,
    DEFAULT_SALES_TAX,
    LARGE_CONTAINER_YARDS,
    OVERSIZED_CONTAINER_MIN_YARDS,
    SMALL_CONTAINER_YARDS,
    WEEKS_PER_MONTH,
    determine_division,
)

logger = logging.getLogger(__name__)

ROLL_OFF_EQUIPMENT = ('roll-off', 'compactor')

FEE_MONTHLY_MULTIPLIERS = {
    'one-time': 0,
    'weekly': WEEKS_PER_MONTH,
    'monthly': 1,
    'quarterly': 1 / 3,
    'annually': 1 / 12,
}

ROLL_OFF_CONFIG_MISSING = (
    "Roll-off/Compactor pricing configuration is missing or incomplete. Please configure Roll-off "
    "pricing at Step 1: Choose Pricing Logic with Delivery Fee, Rental, Haul Rate, and Disposal Per Ton."
)


class PricingError(ValueError):
    """A request that cannot be priced with the current configuration."""


def extract_container_size_number(container_size: Optional[str]) -> int:
    match = re.search(r'(\d+)', container_size or '')
    return int(match.group(1)) if match else 8


def normalize_container_size_for_rules(container_size: Optional[str]) -> str:
    """Rule-side size normalization: '8 Yard' -> '8YD', anything without a number -> '8YD'."""
    match = re.search(r'(\d+)', container_size or '')
    return f"{match.group(1)}YD" if match else '8YD'


def convert_fee_to_monthly_equivalent(price: float, frequency: str) -> float:
    return price * FEE_MONTHLY_MULTIPLIERS.get(frequency, 1)


def resolve_auto_inherit(request: ServiceRequest) -> ServiceRequest:
    """Replace 'auto-inherit' placeholders with concrete defaults."""
    updates = {}
    if request.equipment_type == AUTO_INHERIT:
        updates['equipment_type'] = 'Front-Load Container'
    if request.container_size == AUTO_INHERIT:
        updates['container_size'] = '8YD'
    if request.material_type == AUTO_INHERIT:
        updates['material_type'] = 'Solid Waste'
    return request.model_copy(update=updates) if updates else request


def _first_defined(*values, default=0):
    for value in values:
        if value is not None:
            return value
    return default


class PricingEngine:
    def __init__(self, pricing_logic: Optional[PricingLogic] = None):
        self.pricing_logic: Optional[PricingLogic] = None
        self.regional_pricing_data: Optional[RegionalPricingData] = None
        self.service_area_data: Optional[ServiceAreaVerificationData] = None
        self.is_single_location = False

        if pricing_logic is not None:
            self.set_pricing_logic(pricing_logic)

    def set_pricing_logic(self, logic: PricingLogic):
        self.pricing_logic = logic
        config = logic.pricing_config
        logger.info(
            f"Pricing logic set: type={logic.type}, "
            f"custom_rules={len(logic.custom_rules or [])}, "
            f"broker_rates={len(logic.broker_rates or [])}, "
            f"global_rules={len(config.global_pricing_rules) if config else 0}, "
            f"additional_fees={len(config.additional_fees) if config else 0}"
        )

    def set_regional_pricing_data(self, data: RegionalPricingData):
        self.regional_pricing_data = data
        logger.info(f"Regional pricing data set: {[sheet.region for sheet in data.rate_sheets]}")

    def set_service_area_data(self, data: ServiceAreaVerificationData):
        self.service_area_data = data
        self.is_single_location = data.total_processed == 1
        logger.info(
            f"Service area data set: {data.total_processed} processed, "
            f"single location: {self.is_single_location}"
        )

    @property
    def _config(self) -> Optional[PricingConfig]:
        return self.pricing_logic.pricing_config if self.pricing_logic else None

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def generate_quote(self, service_request: ServiceRequest) -> Quote:
        """Price one request. Pricing problems come back as a failed quote, never as an exception."""
        request = resolve_auto_inherit(service_request)

        if self.pricing_logic is None:
            return self.create_failed_quote(request, 'Pricing logic not configured')

        try:
            city_match = match_franchised_city(request.city or '', request.state or '')

            if city_match.is_match and city_match.pricing_data:
                return self._generate_franchised_city_quote(request, city_match)

            if self.pricing_logic.type == 'regional-brain':
                return self._generate_regional_quote(request, city_match.franchise_fee, city_match.sales_tax)
            if self.pricing_logic.type == 'custom':
                return self._generate_custom_quote(request, city_match.franchise_fee, city_match.sales_tax)
            if self.pricing_logic.type == 'broker':
                return self._generate_broker_quote(request, city_match.franchise_fee, city_match.sales_tax)

            raise PricingError(f"Unsupported pricing logic type: {self.pricing_logic.type}")
        except Exception as e:
            logger.error(f"Error generating quote for {request.id}: {e}")
            return self.create_failed_quote(request, str(e) or 'Unknown error')

    def generate_bulk_quotes(self, service_requests: List[ServiceRequest]) -> BulkQuoteResult:
        quotes = [self.generate_quote(request) for request in service_requests]
        successful = [quote for quote in quotes if quote.status == 'success']
        failed = [quote for quote in quotes if quote.status == 'failed']

        logger.info(f"Bulk quotes: {len(successful)} succeeded, {len(failed)} failed of {len(quotes)}")

        return BulkQuoteResult(
            total_processed=len(quotes),
            success_count=len(successful),
            failure_count=len(failed),
            quotes=successful,
            failed_quotes=failed,
        )

    def create_failed_quote(self, service_request: ServiceRequest, reason: str) -> Quote:
        return Quote(
            id=f"quote-{service_request.id}",
            service_request=service_request,
            pricing_source='Failed',
            number_of_units=0,
            status='failed',
            failure_reason=reason,
        )

    # ------------------------------------------------------------------
    # Shared fee sequence
    # ------------------------------------------------------------------

    def _build_quote(
        self,
        request: ServiceRequest,
        *,
        price_per_yard: float,
        pricing_source: str,
        matched_rate: Optional[Dict[str, Any]],
        fuel_surcharge_rate: float,
        franchise_fee_rate: float,
        local_tax_rate: float,
        delivery_fee: float,
        extra_pickup_rate: float,
        add_ons_cost: float = 0,
        add_on_details: Optional[List[AddOnDetail]] = None,
        total_monthly_volume: Optional[float] = None,
    ) -> Quote:
        bins = request.bin_quantity or 1
        yards = extract_container_size_number(request.container_size)
        pickups_per_week = get_frequency_multiplier(request.frequency)

        if total_monthly_volume is None:
            total_monthly_volume = bins * pickups_per_week * yards * WEEKS_PER_MONTH

        cost = total_monthly_volume * price_per_yard
        fuel_surcharge_amount = cost * (fuel_surcharge_rate / 100)
        franchise_fee_amount = (cost + add_ons_cost) * (franchise_fee_rate / 100)
        subtotal = cost + franchise_fee_amount + fuel_surcharge_amount + add_ons_cost
        local_tax_amount = subtotal * (local_tax_rate / 100)
        total_monthly_cost = subtotal + local_tax_amount

        logger.info(
            f"Quote {request.id} via {pricing_source}: {total_monthly_volume:.2f} yd3 x "
            f"${price_per_yard:.4f}/yd = ${cost:.2f}, total ${total_monthly_cost:.2f}"
        )

        return Quote(
            id=f"quote-{request.id}",
            service_request=request,
            matched_rate=matched_rate,
            pricing_source=pricing_source,
            base_rate=cost,
            total_monthly_volume=total_monthly_volume,
            number_of_units=bins,
            pickups_per_week=pickups_per_week,
            franchise_fee_amount=franchise_fee_amount,
            local_tax_amount=local_tax_amount,
            fuel_surcharge_amount=fuel_surcharge_amount,
            fuel_surcharge_rate=fuel_surcharge_rate,
            franchise_fee_rate=franchise_fee_rate,
            local_tax_rate=local_tax_rate,
            delivery_fee=delivery_fee,
            extra_pickup_rate=extra_pickup_rate,
            subtotal=subtotal,
            add_ons_cost=add_ons_cost,
            total_price=total_monthly_cost,
            total_monthly_cost=total_monthly_cost,
            add_on_details=add_on_details or None,
        )

    # ------------------------------------------------------------------
    # Franchised city
    # ------------------------------------------------------------------

    def _generate_franchised_city_quote(self, request: ServiceRequest, city_match: FranchisedCityMatch) -> Quote:
        rate = get_franchised_city_rate(
            city_match.pricing_data,
            request.container_size,
            request.frequency,
            request.equipment_type,
            request.material_type,
        )
        if rate is None:
            raise PricingError(
                f"No municipal rate found for {request.container_size} {request.equipment_type} "
                f"with {request.frequency} frequency in {city_match.city_name}"
            )

        yards = extract_container_size_number(request.container_size)
        pickups_per_week = get_frequency_multiplier(request.frequency)
        if not rate.monthly_rate or not pickups_per_week:
            raise PricingError(
                f"Municipal rate {rate.id} in {city_match.city_name} has no monthly rate "
                f"for {request.frequency} service"
            )

        price_per_yard = rate.monthly_rate / (yards * pickups_per_week * WEEKS_PER_MONTH)
        config = self._config

        add_on_details = [
            AddOnDetail(
                category=cost.category,
                original_price=cost.amount,
                original_frequency=cost.frequency,
                monthly_equivalent=convert_fee_to_monthly_equivalent(cost.amount, cost.frequency),
            )
            for cost in self._get_supplementary_costs(request.city, request.state)
        ]

        return self._build_quote(
            request,
            price_per_yard=price_per_yard,
            pricing_source=f"{city_match.city_name} Municipal Contract",
            matched_rate=rate.model_dump(),
            fuel_surcharge_rate=_first_defined(
                rate.fuel_surcharge, config.fuel_surcharge if config else None, default=DEFAULT_FUEL_SURCHARGE
            ),
            franchise_fee_rate=_first_defined(rate.franchise_fee, city_match.franchise_fee),
            local_tax_rate=_first_defined(rate.sales_tax, city_match.sales_tax, default=DEFAULT_SALES_TAX),
            delivery_fee=_first_defined(rate.delivery_fee, config.delivery_fee if config else None),
            extra_pickup_rate=_first_defined(rate.extra_pickup_rate, config.extra_pickup_rate if config else None),
            add_ons_cost=sum(detail.monthly_equivalent for detail in add_on_details),
            add_on_details=add_on_details,
        )

    def _get_supplementary_costs(self, city: str, state: str):
        key = f"{(city or '').lower()}, {(state or '').lower()}"
        supplementary = self.pricing_logic.franchised_city_supplementary.get(key)
        if supplementary is None:
            return []
        logger.info(f"Supplementary costs for {key}: {len(supplementary.supplementary_costs)}")
        return supplementary.supplementary_costs

    # ------------------------------------------------------------------
    # Regional brain
    # ------------------------------------------------------------------

    def _generate_regional_quote(self, request: ServiceRequest, city_franchise_fee: float, city_sales_tax: float) -> Quote:
        data = self.pricing_logic.regional_pricing_data or self.regional_pricing_data
        if data is None:
            raise PricingError('Regional pricing data not available')

        region = determine_division(request.city, request.state)
        if region is None:
            raise PricingError(f"Cannot determine region for {request.city}, {request.state}")

        sheet = next((sheet for sheet in data.rate_sheets if sheet.region == region), None)
        if sheet is None:
            raise PricingError(f"No rate sheet found for region: {region}")

        rate = next(
            (r for r in sheet.rates
             if r.container_size == request.container_size and r.frequency == request.frequency),
            None,
        )
        if rate is None:
            raise PricingError(
                f"No rate found for {request.container_size} with {request.frequency} frequency in {region} region"
            )

        yards = extract_container_size_number(request.container_size)
        config = self._config

        return self._build_quote(
            request,
            price_per_yard=rate.price / (yards * WEEKS_PER_MONTH),
            pricing_source=f"{region} Regional Rate Sheet",
            matched_rate=rate.model_dump(),
            fuel_surcharge_rate=_first_defined(config.fuel_surcharge if config else None, default=DEFAULT_FUEL_SURCHARGE),
            franchise_fee_rate=city_franchise_fee or 0,
            local_tax_rate=_first_defined(city_sales_tax, default=DEFAULT_SALES_TAX),
            delivery_fee=_first_defined(config.delivery_fee if config else None, default=100),
            extra_pickup_rate=_first_defined(config.extra_pickup_rate if config else None),
        )

    # ------------------------------------------------------------------
    # Custom rules
    # ------------------------------------------------------------------

    def _generate_custom_quote(self, request: ServiceRequest, city_franchise_fee: float, city_sales_tax: float) -> Quote:
        if not self.pricing_logic.custom_rules and self._config is None:
            raise PricingError('No custom rules or pricing configuration available')

        rule = self._find_matching_custom_rule(request)
        if rule is not None:
            return self._generate_quote_from_custom_rule(request, rule, city_franchise_fee, city_sales_tax)

        if self._config is not None:
            return self.generate_quote_from_pricing_config(request, city_franchise_fee, city_sales_tax)

        raise PricingError('No matching custom rule or pricing configuration found')

    @staticmethod
    def _resolve_custom_rule(rule: CustomPricingRule, request: ServiceRequest) -> CustomPricingRule:
        updates = {
            field: getattr(request, field)
            for field in ('equipment_type', 'container_size', 'frequency', 'material_type')
            if getattr(rule, field) == AUTO_INHERIT
        }
        return rule.model_copy(update=updates) if updates else rule

    def _find_matching_custom_rule(self, request: ServiceRequest) -> Optional[CustomPricingRule]:
        equipment = normalize_equipment_type(request.equipment_type)
        container = normalize_container_size(request.container_size)

        for rule in self.pricing_logic.custom_rules or []:
            rule = self._resolve_custom_rule(rule, request)
            if ((rule.city or '').lower() == (request.city or '').lower()
                    and (rule.state or '').lower() == (request.state or '').lower()
                    and normalize_equipment_type(rule.equipment_type) == equipment
                    and normalize_container_size(rule.container_size) == container
                    and rule.frequency == request.frequency
                    and rule.material_type == request.material_type):
                logger.info(f"Matched custom rule {rule.id} for {request.id}")
                return rule

        return None

    def _generate_quote_from_custom_rule(
        self,
        request: ServiceRequest,
        rule: CustomPricingRule,
        city_franchise_fee: float,
        city_sales_tax: float,
    ) -> Quote:
        yards = extract_container_size_number(request.container_size)
        is_small = yards in SMALL_CONTAINER_YARDS
        is_large = yards in LARGE_CONTAINER_YARDS
        config = self._config

        if rule.price_per_yard and rule.price_per_yard > 0:
            if is_large and rule.large_container_price_per_yard:
                price_per_yard = rule.large_container_price_per_yard
            else:
                price_per_yard = rule.price_per_yard
        else:
            container_rule = self._find_config_container_rule(request)
            if container_rule is not None and container_rule.price_per_yard:
                price_per_yard = container_rule.price_per_yard
            elif is_small:
                price_per_yard = config.small_container_price if config else 0
            else:
                price_per_yard = config.large_container_price if config else 0

        return self._build_quote(
            request,
            price_per_yard=price_per_yard or 0,
            pricing_source='Custom Rule',
            matched_rate=rule.model_dump(),
            fuel_surcharge_rate=_first_defined(
                rule.fuel_surcharge, config.fuel_surcharge if config else None, default=DEFAULT_FUEL_SURCHARGE
            ),
            franchise_fee_rate=_first_defined(rule.franchise_fee, city_franchise_fee),
            local_tax_rate=_first_defined(rule.tax, city_sales_tax, default=DEFAULT_SALES_TAX),
            delivery_fee=_first_defined(rule.delivery_fee, config.delivery_fee if config else None),
            extra_pickup_rate=_first_defined(rule.extra_pickup_rate, config.extra_pickup_rate if config else None),
        )

    def _find_config_container_rule(self, request: ServiceRequest):
        config = self._config
        if config is None:
            return None

        equipment = normalize_equipment_type(request.equipment_type)
        container = normalize_container_size(request.container_size)
        return next(
            (rule for rule in config.container_specific_pricing_rules
             if normalize_container_size(rule.container_size) == container
             and normalize_equipment_type(rule.equipment_type) == equipment),
            None,
        )

    # ------------------------------------------------------------------
    # Pricing config / Global Pricing Rules
    # ------------------------------------------------------------------

    def find_matching_global_rule(
        self,
        request: ServiceRequest,
        rules: List[GlobalPricingRule],
    ) -> Optional[GlobalPricingRule]:
        """First rule whose equipment, size, frequency and material all match ('auto-inherit' matches anything)."""
        equipment = normalize_equipment_type(request.equipment_type)
        container = normalize_container_size_for_rules(request.container_size)

        for rule in rules:
            if ((rule.equipment_type == AUTO_INHERIT or normalize_equipment_type(rule.equipment_type) == equipment)
                    and (rule.container_size == AUTO_INHERIT
                         or normalize_container_size_for_rules(rule.container_size) == container)
                    and (rule.frequency == AUTO_INHERIT or rule.frequency == request.frequency)
                    and (rule.material_type == AUTO_INHERIT or rule.material_type == request.material_type)):
                logger.info(f"Global pricing rule {rule.id} matched {request.id}")
                return rule

        logger.info(f"No global pricing rule matched {request.id}")
        return None

    def find_container_override(
        self,
        request: ServiceRequest,
        overrides: List[ContainerSpecificOverride],
    ) -> Optional[ContainerSpecificOverride]:
        """A blank override equipment type applies to every equipment type; the size must always match."""
        equipment = normalize_equipment_type(request.equipment_type)
        container = normalize_container_size_for_rules(request.container_size)

        for override in overrides:
            if normalize_container_size_for_rules(override.container_size) != container:
                continue
            if not override.equipment_type or normalize_equipment_type(override.equipment_type) == equipment:
                return override

        return None

    def _size_class_price(self, request: ServiceRequest, small_price: float, large_price: float,
                          source_prefix: str) -> Tuple[float, str]:
        """Small/large per-yard price for the request's size. Oversized and unknown sizes raise."""
        yards = extract_container_size_number(request.container_size)

        if yards in SMALL_CONTAINER_YARDS:
            return small_price, f"{source_prefix} (Small Container Price)"
        if yards in LARGE_CONTAINER_YARDS:
            return large_price, f"{source_prefix} (Large Container Price)"

        if yards >= OVERSIZED_CONTAINER_MIN_YARDS:
            if normalize_equipment_type(request.equipment_type) in ROLL_OFF_EQUIPMENT:
                raise PricingError(ROLL_OFF_CONFIG_MISSING)
            raise PricingError(
                f"Oversized container ({request.container_size}) requires container-specific pricing. "
                f"Please configure pricing for this container size."
            )

        raise PricingError(
            f"Unknown container size ({request.container_size}). Please configure pricing for this container size."
        )

    def generate_quote_from_pricing_config(
        self,
        request: ServiceRequest,
        city_franchise_fee: float,
        city_sales_tax: float,
    ) -> Quote:
        config = self._config
        if config is None:
            raise PricingError('Pricing configuration not available')

        rule = self.find_matching_global_rule(request, config.global_pricing_rules)

        if rule is not None:
            if rule.is_roll_off_or_compactor and rule.roll_off_pricing:
                return self._generate_roll_off_quote(request, rule.roll_off_pricing, city_franchise_fee, city_sales_tax)

            override = self.find_container_override(request, rule.container_specific_pricing)
            if override is not None:
                price_per_yard = override.price_per_yard
                pricing_source = (
                    f"Global Rule (Container Override: {override.equipment_type or 'Any Equipment'}"
                    f" + {override.container_size})"
                )
            else:
                price_per_yard, pricing_source = self._size_class_price(
                    request,
                    rule.small_container_price_per_yard,
                    rule.large_container_price_per_yard,
                    'Global Rule',
                )

            # the city's franchise fee always wins when it has one
            franchise_fee_rate = (
                city_franchise_fee if city_franchise_fee > 0
                else _first_defined(rule.franchise_fee_percent, config.franchise_fee)
            )
            fees = dict(
                fuel_surcharge_rate=_first_defined(
                    rule.fuel_surcharge_percent, config.fuel_surcharge, default=DEFAULT_FUEL_SURCHARGE
                ),
                franchise_fee_rate=franchise_fee_rate,
                local_tax_rate=_first_defined(rule.tax_percent, city_sales_tax, config.tax, default=DEFAULT_SALES_TAX),
                delivery_fee=_first_defined(rule.delivery_fee, config.delivery_fee),
                extra_pickup_rate=_first_defined(rule.extra_pickup_rate, config.extra_pickup_rate),
            )
            matched_rate = rule.model_dump()
        else:
            container_rule = self._find_config_container_rule(request)

            if self.is_single_location:
                price_per_yard = config.small_container_price
                pricing_source = 'Default Config (Single Price/YD)'
            elif container_rule is not None and container_rule.price_per_yard:
                price_per_yard = container_rule.price_per_yard
                pricing_source = 'Default Config (Container-Specific Rule)'
            else:
                price_per_yard, pricing_source = self._size_class_price(
                    request,
                    config.small_container_price,
                    config.large_container_price,
                    'Default Config',
                )

            fees = dict(
                fuel_surcharge_rate=_first_defined(config.fuel_surcharge, default=DEFAULT_FUEL_SURCHARGE),
                franchise_fee_rate=city_franchise_fee if city_franchise_fee > 0 else _first_defined(config.franchise_fee),
                local_tax_rate=(
                    city_sales_tax if city_sales_tax > 0
                    else _first_defined(config.tax, default=DEFAULT_SALES_TAX)
                ),
                delivery_fee=_first_defined(config.delivery_fee),
                extra_pickup_rate=_first_defined(config.extra_pickup_rate),
            )
            matched_rate = None

        if not price_per_yard or price_per_yard <= 0:
            raise PricingError(
                f"No pricing configured for {request.container_size} {request.equipment_type}. "
                f"Please configure Global Pricing Rules, Container-Specific Pricing Rules, or Global Container Pricing."
            )

        add_ons_cost, add_on_details = self.calculate_additional_fees(request, config.additional_fees)

        return self._build_quote(
            request,
            price_per_yard=price_per_yard,
            pricing_source=pricing_source,
            matched_rate=matched_rate,
            add_ons_cost=add_ons_cost,
            add_on_details=add_on_details,
            **fees,
        )

    def _generate_roll_off_quote(
        self,
        request: ServiceRequest,
        pricing: RollOffPricing,
        city_franchise_fee: float,
        city_sales_tax: float,
    ) -> Quote:
        bins = request.bin_quantity or 1

        monthly_rental = pricing.monthly_rent or pricing.daily_rental * 30
        monthly_recurring = monthly_rental * bins
        one_time_costs = pricing.delivery_fee + pricing.deposit

        franchise_fee_amount = monthly_recurring * (city_franchise_fee / 100)
        local_tax_amount = (monthly_recurring + franchise_fee_amount) * (city_sales_tax / 100)
        total_monthly_cost = monthly_recurring + franchise_fee_amount + local_tax_amount

        logger.info(
            f"Roll-off quote {request.id}: rental ${monthly_rental:.2f} x {bins}, "
            f"monthly ${total_monthly_cost:.2f}, one-time ${one_time_costs:.2f}"
        )

        return Quote(
            id=f"quote-{request.id}",
            service_request=request,
            pricing_source='Roll-off/Compactor Pricing',
            base_rate=pricing.haul_rate + pricing.disposal_per_ton,
            total_monthly_volume=0,
            number_of_units=bins,
            pickups_per_week=0,
            franchise_fee_amount=franchise_fee_amount,
            local_tax_amount=local_tax_amount,
            franchise_fee_rate=city_franchise_fee,
            local_tax_rate=city_sales_tax,
            delivery_fee=pricing.delivery_fee,
            subtotal=monthly_recurring,
            total_price=total_monthly_cost + one_time_costs,
            total_monthly_cost=total_monthly_cost,
            is_roll_off_or_compactor=True,
            roll_off_pricing=pricing,
        )

    def calculate_additional_fees(
        self,
        request: ServiceRequest,
        additional_fees: List[AdditionalFee],
    ) -> Tuple[float, List[AddOnDetail]]:
        """Global fees plus fees pinned to this request's location, as monthly equivalents."""
        details = [
            AddOnDetail(
                category=fee.category,
                original_price=fee.price,
                original_frequency=fee.frequency,
                monthly_equivalent=convert_fee_to_monthly_equivalent(fee.price, fee.frequency),
                location_specific=bool(fee.location_id),
                location_display=fee.location_display,
            )
            for fee in additional_fees
            if not fee.location_id or fee.location_id == request.id
        ]
        return sum(detail.monthly_equivalent for detail in details), details

    # ------------------------------------------------------------------
    # Broker
    # ------------------------------------------------------------------

    def _generate_broker_quote(self, request: ServiceRequest, city_franchise_fee: float, city_sales_tax: float) -> Quote:
        if not self.pricing_logic.broker_rates:
            raise PricingError('Broker rates not available')

        if not request.city or not request.state:
            raise PricingError('Service request missing required city or state information')

        rate = next(
            (r for r in self.pricing_logic.broker_rates
             if r.city and r.state
             and r.city.lower() == request.city.lower()
             and r.state.lower() == request.state.lower()
             and r.equipment_type == request.equipment_type
             and r.container_size == request.container_size
             and r.frequency == request.frequency),
            None,
        )
        if rate is None:
            raise PricingError(f"No broker rate found for {request.city}, {request.state}")

        bins = request.bin_quantity or 1
        yards = extract_container_size_number(request.container_size)
        pickups_per_week = get_frequency_multiplier(request.frequency)
        config = self._config

        cost = rate.base_rate * bins

        # flat amounts on the rate sheet replace the percentage
        franchise_fee_rate = 0 if rate.franchise_fee else city_franchise_fee
        franchise_fee_amount = rate.franchise_fee or cost * (franchise_fee_rate / 100)

        local_tax_rate = 0 if rate.local_tax else city_sales_tax

        fuel_surcharge_rate = _first_defined(config.fuel_surcharge if config else None, default=DEFAULT_FUEL_SURCHARGE)
        fuel_surcharge_amount = rate.fuel_surcharge or cost * (fuel_surcharge_rate / 100)

        delivery_fee = _first_defined(rate.delivery_fee, config.delivery_fee if config else None)
        extra_pickup_rate = _first_defined(rate.extra_pickup_rate, config.extra_pickup_rate if config else None)

        subtotal = cost + franchise_fee_amount + fuel_surcharge_amount + delivery_fee + extra_pickup_rate
        local_tax_amount = rate.local_tax or subtotal * (local_tax_rate / 100)
        total_monthly_cost = subtotal + local_tax_amount

        return Quote(
            id=f"quote-{request.id}",
            service_request=request,
            matched_rate=rate.model_dump(),
            pricing_source='Broker Rate Sheet',
            base_rate=cost,
            total_monthly_volume=bins * pickups_per_week * yards * WEEKS_PER_MONTH,
            number_of_units=bins,
            pickups_per_week=pickups_per_week,
            franchise_fee_amount=franchise_fee_amount,
            local_tax_amount=local_tax_amount,
            fuel_surcharge_amount=fuel_surcharge_amount,
            fuel_surcharge_rate=fuel_surcharge_rate,
            franchise_fee_rate=franchise_fee_rate,
            local_tax_rate=local_tax_rate,
            delivery_fee=delivery_fee,
            extra_pickup_rate=extra_pickup_rate,
            subtotal=subtotal,
            total_price=total_monthly_cost,
            total_monthly_cost=total_monthly_cost,
        )
