"""Shared fixtures for the enrichment tests."""

import copy

import pytest

from geoip_jobs.enrichment.ip_ledger import IdentityIpLedger
from tests.fakes import FakeGeoIP, RecordingCache

SYDNEY_RECORD = {
    "city": {"geoname_id": 2147714, "names": {"en": "Sydney", "de": "Sydney"}},
    "continent": {"code": "OC", "geoname_id": 6255151, "names": {"en": "Oceania"}},
    "country": {"geoname_id": 2077456, "iso_code": "AU", "names": {"en": "Australia"}},
    "location": {
        "accuracy_radius": 1000,
        "latitude": -33.8715,
        "longitude": 151.2006,
        "time_zone": "Australia/Sydney",
    },
    "postal": {"code": "2000"},
    "subdivisions": [{"geoname_id": 2155400, "iso_code": "NSW", "names": {"en": "New South Wales"}}],
}


@pytest.fixture()
def sydney_record() -> dict:
    return copy.deepcopy(SYDNEY_RECORD)


@pytest.fixture()
def geoip(sydney_record) -> FakeGeoIP:
    return FakeGeoIP(default=sydney_record)


@pytest.fixture()
def cache() -> RecordingCache:
    return RecordingCache()


@pytest.fixture()
def ledger(cache) -> IdentityIpLedger:
    return IdentityIpLedger(cache)
