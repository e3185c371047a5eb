"""Tests for the service area priority chain and the bounding box lookup."""

import pytest

from haulquote.models import LocationRequest
from haulquote.utils.service_area_validator import (
    ServiceAreaValidator,
    is_recognized_container_size,
    normalize_container_size_for_validation,
)
from haulquote.utils.spatial_validator import ServiceArea, SpatialValidator, load_service_areas

WACO_BOX = ServiceArea(
    division_name="Waco Division",
    min_lng=-98.0, min_lat=31.0, max_lng=-97.0, max_lat=32.0,
    cities_areas="Waco, Hewitt",
    region="Central Texas (CTX)",
    service_region="Open Market",
)


class RaisingSpatialValidator(SpatialValidator):
    def validate_coordinates(self, latitude, longitude):
        raise RuntimeError("service area file unreadable")


def make_location(**kwargs):
    defaults = {"id": "request-0", "company_name": "Acme", "address": "1 Main St", "city": "Dallas",
                "state": "TX", "zip_code": "75201", "container_size": "4YD", "frequency": "1x/week"}
    defaults.update(kwargs)
    return LocationRequest(**defaults)


@pytest.fixture
def validator():
    return ServiceAreaValidator(SpatialValidator(areas=[WACO_BOX]))


class TestSpatialValidator:
    def test_bundled_areas_load(self):
        areas = load_service_areas()
        assert len(areas) == 16
        assert areas[0].division_name == "Texoma"
        assert areas[0].service_region == "Open Market"

    def test_point_inside_box(self):
        result = SpatialValidator().validate_coordinates(30.2672, -97.7431)

        assert result.is_serviceable is True
        assert result.match_type == "bounding-box"
        assert result.division == "San Marcos"
        assert result.csr_center == "Central Texas (CTX)"
        assert result.coordinates == [30.2672, -97.7431]

    def test_point_outside_all_boxes(self):
        result = SpatialValidator().validate_coordinates(35.0, -101.0)

        assert result.is_serviceable is False
        assert result.match_type == "none"
        assert result.division is None


class TestContainerSizes:
    @pytest.mark.parametrize("text,expected", [
        ("8 yard", "8YD"),
        ("6", "6YD"),
        ("96 gallon", "96-gallon"),
        ("Self Compactor", "Compactor"),
        ("Extra Cart", "Cart"),
    ])
    def test_normalize(self, text, expected):
        assert normalize_container_size_for_validation(text) == expected

    def test_recognized(self):
        assert is_recognized_container_size("4yd")
        assert is_recognized_container_size("VIP")
        assert is_recognized_container_size("")
        assert not is_recognized_container_size("Jumbo Bag")
        assert not is_recognized_container_size("5YD")


class TestValidateLocation:
    """Each step of the priority chain."""

    def test_never_serviced_city(self, validator):
        result = validator.validate_location(make_location(city="Plano"))

        assert result.status == "not-serviceable"
        assert result.division == "Not Serviceable"
        assert result.reason == "Plano, TX is not in our service area"

    def test_exclusion_wins_over_always_serviced(self, validator):
        assert validator.validate_location(make_location(city="Burleson")).status == "not-serviceable"

    def test_beaumont_front_load(self, validator):
        result = validator.validate_location(make_location(city="Beaumont", equipment_type="Front Load"))
        assert result.status == "not-serviceable"
        assert result.reason == "Front-load containers are not serviceable in Beaumont, TX"

    def test_beaumont_roll_off(self, validator):
        result = validator.validate_location(
            make_location(city="Beaumont", equipment_type="Roll-off", container_size="30YD")
        )
        assert result.status == "serviceable"
        assert result.division == "STX"

    def test_coordinates_inside_area(self, validator):
        result = validator.validate_location(make_location(city="Hewitt", latitude=31.5, longitude=-97.2))

        assert result.status == "serviceable"
        assert result.division == "Waco Division"
        assert result.service_region == "Open Market"

    def test_coordinates_outside_areas(self, validator):
        result = validator.validate_location(make_location(latitude=35.0, longitude=-101.0))

        assert result.status == "not-serviceable"
        assert result.reason == "Location coordinates [35.0000, -101.0000] fall outside all defined service areas"

    def test_austin_outside_areas_stays_serviceable(self, validator):
        result = validator.validate_location(make_location(city="Austin", latitude=35.0, longitude=-101.0))

        assert result.status == "serviceable"
        assert result.division == "CTX"
        assert result.service_region == "Open Market"

    def test_spatial_failure_falls_through_to_city_lists(self):
        validator = ServiceAreaValidator(RaisingSpatialValidator(areas=[]))
        result = validator.validate_location(make_location(latitude=35.0, longitude=-101.0))

        assert result.status == "serviceable"
        assert result.division == "NTX"

    def test_franchised_city(self, validator):
        result = validator.validate_location(make_location(city="Waco"))

        assert result.status == "serviceable"
        assert result.division == "Waco (Municipal Contract)"
        assert result.service_region == "Waco Municipal"
        assert result.franchise_fee == 4

    def test_always_serviced_city(self, validator):
        result = validator.validate_location(make_location(city="Crosby"))
        assert result.status == "serviceable"
        assert result.service_region == "Open Market"

    def test_missing_address(self, validator):
        result = validator.validate_location(make_location(address=""))

        assert result.status == "not-serviceable"
        assert result.division == "Invalid"
        assert result.reason == "Missing required address information"

    def test_outside_texas(self, validator):
        result = validator.validate_location(make_location(city="Tulsa", state="OK"))
        assert result.reason == "Service only available in Texas. OK is outside our service area."

    def test_no_division_mapping(self, validator):
        result = validator.validate_location(make_location(city="Midland"))
        assert result.reason == "Midland, TX is not in our service area - no division mapping found"

    def test_division_city(self, validator):
        result = validator.validate_location(make_location(bin_quantity=3, add_ons=["Lock"]))

        assert result.status == "serviceable"
        assert result.division == "NTX"
        assert result.franchise_fee == 5
        assert result.bin_quantity == 3
        assert result.add_ons == ["Lock"]

    def test_unrecognized_container_needs_review(self, validator):
        result = validator.validate_location(make_location(container_size="Jumbo Bag"))

        assert result.status == "manual-review"
        assert result.division == "NTX"
        assert "Jumbo Bag" in result.reason


class TestVerifyLocations:
    def test_counts(self, validator):
        data = validator.verify_locations([
            make_location(id="request-0"),
            make_location(id="request-1", city="Plano"),
            make_location(id="request-2", container_size="Jumbo Bag"),
        ])

        assert data.total_processed == 3
        assert data.serviceable_count == 1
        assert data.not_serviceable_count == 1
        assert data.manual_review_count == 1
        assert [r.id for r in data.results] == ["request-0", "request-1", "request-2"]

    def test_parse_location_requests(self, validator):
        rows = [["Company Name", "Address", "City", "State"], ["Acme", "1 Main St", "Dallas", "TX"]]
        locations = validator.parse_location_requests(rows)

        assert len(locations) == 1
        assert validator.validate_location(locations[0]).status == "serviceable"
