"""GeoIP enricher — adds geographic properties to analytics events and, when
the identity's IP changed, mirrors them onto the person via ``$set`` and
``$set_once``."""

import structlog

from geoip_jobs.config import GeoFieldConfig
from geoip_jobs.enrichment.ip_ledger import IdentityIpLedger
from geoip_jobs.enrichment.location_extractor import extract_location
from geoip_jobs.errors import GeoIPUnavailableError

log = structlog.get_logger(component="geoip_enricher")

LOOPBACK_IP = "127.0.0.1"
# Public stand-in looked up instead of loopback, for local development
PLACEHOLDER_IP = "13.106.122.3"

_LOCATION_KEYS = (
    "city_name",
    "country_name",
    "country_code",
    "continent_name",
    "continent_code",
    "postal_code",
    "latitude",
    "longitude",
    "time_zone",
)

DEFAULT_SET_PROPS: dict = {f"$geoip_{key}": None for key in _LOCATION_KEYS}
DEFAULT_SET_ONCE_PROPS: dict = {f"$initial_geoip_{key}": None for key in _LOCATION_KEYS}


def _with_defaults(defaults: dict, existing) -> dict:
    merged = dict(defaults)
    merged.update(existing or {})
    return merged


def resolve_ip(event: dict):
    """Return the IP to look up for ``event``, or None if there is none.

    ``properties.$ip`` wins over the transport-level ``ip``.
    """
    properties = event.get("properties") or {}
    ip = properties.get("$ip") or event.get("ip")
    if not ip:
        return None
    ip = str(ip)
    if ip == LOOPBACK_IP:
        return PLACEHOLDER_IP
    return ip


async def enrich_with_geoip(
    event: dict,
    config: GeoFieldConfig,
    geoip,
    ledger: IdentityIpLedger,
) -> dict:
    """Add ``$geoip_*`` properties to an analytics event.

    Event properties are always written. Person properties (``$set`` with the
    ``$geoip_*`` keys, ``$set_once`` with ``$initial_geoip_*``) are written only
    when the ledger accepts the event's IP; in that case every default key is
    present, as null when this lookup did not provide it, and values already
    on the event are kept.

    Args:
        event: Analytics event dict (mutated in-place and returned).
        config: Facet toggles.
        geoip: Lookup capability with an async ``locate(ip)``.
        ledger: Per-identity last-IP ledger.

    Returns:
        The enriched event dict, or the same event untouched when there is no
        IP, enrichment is disabled, or the IP is not in the database.

    Raises:
        GeoIPUnavailableError: If ``geoip`` is None.
    """
    if geoip is None:
        raise GeoIPUnavailableError(
            "No GeoIP lookup is configured; provide a GeoLite2 City database"
        )

    if (event.get("properties") or {}).get("$geoip_disable"):
        log.debug("geoip_disabled", distinct_id=event.get("distinct_id"))
        return event

    ip = resolve_ip(event)
    if ip is None:
        return event

    response = await geoip.locate(ip)
    if response is None:
        log.debug("geoip_no_match", ip=ip)
        return event

    location = extract_location(response, config)

    if not event.get("properties"):
        event["properties"] = {}

    distinct_id = event.get("distinct_id")
    timestamp = event.get("timestamp")
    set_person_props = await ledger.should_update(distinct_id, ip, timestamp)

    if set_person_props:
        event["$set"] = _with_defaults(DEFAULT_SET_PROPS, event.get("$set"))
        event["$set_once"] = _with_defaults(DEFAULT_SET_ONCE_PROPS, event.get("$set_once"))

    for key, value in location.items():
        event["properties"][f"$geoip_{key}"] = value
        if set_person_props:
            event["$set"][f"$geoip_{key}"] = value
            event["$set_once"][f"$initial_geoip_{key}"] = value

    if set_person_props:
        await ledger.write(distinct_id, ip, timestamp)

    return event
