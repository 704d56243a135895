"""Unit tests for geoip_jobs.enrichment.location_extractor."""

import pytest

from geoip_jobs.config import GeoFieldConfig, GeoFieldToggle
from geoip_jobs.enrichment.location_extractor import extract_location

ALL_ENABLED = GeoFieldConfig()
ALL_DISABLED = GeoFieldConfig(**{facet: GeoFieldToggle.DISABLED for facet in vars(GeoFieldConfig())})


def _only(*facets: str) -> GeoFieldConfig:
    """Config with just ``facets`` enabled."""
    return GeoFieldConfig(
        **{
            facet: GeoFieldToggle.ENABLED if facet in facets else GeoFieldToggle.DISABLED
            for facet in vars(GeoFieldConfig())
        }
    )


class TestExtractLocationAllEnabled:
    """Full record with every facet enabled."""

    def test_extracts_every_field(self, sydney_record):
        assert extract_location(sydney_record, ALL_ENABLED) == {
            "city_name": "Sydney",
            "country_name": "Australia",
            "country_code": "AU",
            "continent_name": "Oceania",
            "continent_code": "OC",
            "postal_code": "2000",
            "latitude": -33.8715,
            "longitude": 151.2006,
            "time_zone": "Australia/Sydney",
            "subdivision_1_code": "NSW",
            "subdivision_1_name": "New South Wales",
        }

    def test_empty_result_gives_empty_mapping(self):
        assert extract_location({}, ALL_ENABLED) == {}


class TestExtractLocationToggles:
    """Per-facet enable/disable behaviour."""

    def test_disabled_facets_are_omitted(self, sydney_record):
        result = extract_location(sydney_record, _only("country"))
        assert result == {
            "country_name": "Australia",
            "country_code": "AU",
            "subdivision_1_code": "NSW",
            "subdivision_1_name": "New South Wales",
        }

    def test_coordinates_without_timezone(self, sydney_record):
        result = extract_location(sydney_record, _only("coordinates"))
        assert result["latitude"] == -33.8715
        assert result["longitude"] == 151.2006
        assert "time_zone" not in result

    def test_timezone_without_coordinates(self, sydney_record):
        result = extract_location(sydney_record, _only("timezone"))
        assert result["time_zone"] == "Australia/Sydney"
        assert "latitude" not in result
        assert "longitude" not in result

    def test_timezone_requires_time_zone_field(self, sydney_record):
        del sydney_record["location"]["time_zone"]
        result = extract_location(sydney_record, ALL_ENABLED)
        assert "time_zone" not in result
        assert result["latitude"] == -33.8715

    def test_missing_facet_suppressed_even_when_enabled(self, sydney_record):
        del sydney_record["city"]
        del sydney_record["postal"]
        result = extract_location(sydney_record, ALL_ENABLED)
        assert "city_name" not in result
        assert "postal_code" not in result

    def test_missing_location_object_suppresses_coordinates_and_timezone(self, sydney_record):
        del sydney_record["location"]
        result = extract_location(sydney_record, ALL_ENABLED)
        for key in ("latitude", "longitude", "time_zone"):
            assert key not in result

    def test_missing_english_name_is_omitted_not_null(self, sydney_record):
        sydney_record["city"]["names"] = {"de": "Sydney"}
        result = extract_location(sydney_record, ALL_ENABLED)
        assert "city_name" not in result
        assert None not in result.values()


class TestSubdivisions:
    """Subdivisions are numbered from 1 and ignore the facet toggles."""

    US_RECORD = {
        "country": {"iso_code": "US", "names": {"en": "United States"}},
        "subdivisions": [
            {"iso_code": "CA", "names": {"en": "California"}},
            {"iso_code": "NV", "names": {"en": "Nevada"}},
        ],
    }

    @pytest.mark.parametrize("config", [ALL_ENABLED, ALL_DISABLED])
    def test_subdivisions_always_emitted(self, config):
        result = extract_location(self.US_RECORD, config)
        assert result["subdivision_1_code"] == "CA"
        assert result["subdivision_1_name"] == "California"
        assert result["subdivision_2_code"] == "NV"
        assert result["subdivision_2_name"] == "Nevada"

    def test_all_disabled_leaves_only_subdivisions(self):
        result = extract_location(self.US_RECORD, ALL_DISABLED)
        assert set(result) == {
            "subdivision_1_code",
            "subdivision_1_name",
            "subdivision_2_code",
            "subdivision_2_name",
        }
