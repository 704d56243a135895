"""Location extractor — flattens a MaxMind-shaped GeoIP lookup result into the
attribute names written onto analytics events."""

from typing import Optional, Union

from geoip_jobs.config import GeoFieldConfig

LocationValue = Union[str, float]

# Simple facets: facet toggle -> (result key, [(output key, path inside facet)])
_FACET_FIELDS: dict = {
    "city": ("city", [("city_name", ("names", "en"))]),
    "country": ("country", [("country_name", ("names", "en")), ("country_code", ("iso_code",))]),
    "continent": ("continent", [("continent_name", ("names", "en")), ("continent_code", ("code",))]),
    "postal_code": ("postal", [("postal_code", ("code",))]),
}


def _dig(obj, path: tuple):
    """Follow ``path`` through nested mappings, returning None on any gap."""
    for key in path:
        if not isinstance(obj, dict):
            return None
        obj = obj.get(key)
    return obj


def _put(location: dict, key: str, value: Optional[LocationValue]) -> None:
    if value is not None:
        location[key] = value


def extract_location(result: dict, config: GeoFieldConfig) -> dict:
    """Derive flat GeoIP attributes from a lookup result.

    Only facets that are both enabled in ``config`` and present in ``result``
    produce keys. Coordinates and time zone are both read from the nested
    ``location`` object but are toggled independently. Subdivisions are always
    emitted as ``subdivision_{n}_code`` / ``subdivision_{n}_name``, numbered
    from 1 in the order the result lists them.

    Args:
        result: Lookup result, e.g. ``geoip2`` ``City.raw``.
        config: Facet toggles.

    Returns:
        Dict of attribute name to value. Missing values are omitted, never
        set to None.
    """
    location: dict = {}

    for facet, (result_key, outputs) in _FACET_FIELDS.items():
        section = result.get(result_key)
        if not config.is_enabled(facet) or not section:
            continue
        for output_key, path in outputs:
            _put(location, output_key, _dig(section, path))

    coords = result.get("location")
    if coords:
        if config.is_enabled("coordinates"):
            _put(location, "latitude", coords.get("latitude"))
            _put(location, "longitude", coords.get("longitude"))
        if config.is_enabled("timezone") and coords.get("time_zone"):
            location["time_zone"] = coords["time_zone"]

    for index, subdivision in enumerate(result.get("subdivisions") or [], start=1):
        _put(location, f"subdivision_{index}_code", subdivision.get("iso_code"))
        _put(location, f"subdivision_{index}_name", _dig(subdivision, ("names", "en")))

    return location
