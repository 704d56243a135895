"""Runtime configuration — environment settings and the per-facet GeoIP
field toggles."""

import os
from dataclasses import dataclass, fields
from enum import Enum
from typing import Mapping, Optional

KAFKA_BOOTSTRAP_SERVERS = os.getenv("KAFKA_BOOTSTRAP_SERVERS", "localhost:9092")
KAFKA_TOPIC_EVENTS = os.getenv("KAFKA_TOPIC_EVENTS", "analytics-events")
KAFKA_TOPIC_ENRICHED = os.getenv("KAFKA_TOPIC_ENRICHED", "analytics-events-enriched")
KAFKA_CONSUMER_GROUP = os.getenv("KAFKA_CONSUMER_GROUP", "geoip-enricher")

REDIS_URL = os.getenv("REDIS_URL", "")
LEDGER_KEY_PREFIX = os.getenv("LEDGER_KEY_PREFIX", "geoip:last_ip:")

MAXMIND_DB_PATH = os.getenv("MAXMIND_DB_PATH", "/opt/geoip/GeoLite2-City.mmdb")


class GeoFieldToggle(str, Enum):
    ENABLED = "enabled"
    DISABLED = "disabled"


# Environment variable read for each facet toggle
_ENV_VARS = {
    "city": "GEOIP_CITY",
    "country": "GEOIP_COUNTRY",
    "timezone": "GEOIP_TIMEZONE",
    "continent": "GEOIP_CONTINENT",
    "coordinates": "GEOIP_COORDINATES",
    "postal_code": "GEOIP_POSTAL_CODE",
}


@dataclass(frozen=True)
class GeoFieldConfig:
    """Which GeoIP facets are written onto events.

    Subdivisions are not listed here: they are always emitted.
    """

    city: GeoFieldToggle = GeoFieldToggle.ENABLED
    country: GeoFieldToggle = GeoFieldToggle.ENABLED
    timezone: GeoFieldToggle = GeoFieldToggle.ENABLED
    continent: GeoFieldToggle = GeoFieldToggle.ENABLED
    coordinates: GeoFieldToggle = GeoFieldToggle.ENABLED
    postal_code: GeoFieldToggle = GeoFieldToggle.ENABLED

    def is_enabled(self, facet: str) -> bool:
        return getattr(self, facet) == GeoFieldToggle.ENABLED

    @classmethod
    def from_mapping(cls, values: Mapping[str, str]) -> "GeoFieldConfig":
        """Build a config from a ``{facet: "enabled" | "disabled"}`` mapping.

        Facets missing from the mapping keep their default (enabled). Unknown
        toggle values raise ``ValueError``; unknown facet names are ignored.

        Args:
            values: Mapping of facet name to toggle value.

        Returns:
            A new GeoFieldConfig.
        """
        kwargs = {}
        for f in fields(cls):
            raw: Optional[str] = values.get(f.name)
            if raw is not None:
                kwargs[f.name] = GeoFieldToggle(str(raw).strip().lower())
        return cls(**kwargs)

    @classmethod
    def from_env(cls) -> "GeoFieldConfig":
        """Build a config from the ``GEOIP_*`` environment variables."""
        return cls.from_mapping(
            {facet: os.environ[var] for facet, var in _ENV_VARS.items() if var in os.environ}
        )
