"""Exception types raised by the GeoIP enrichment jobs."""


class GeoIPJobsError(Exception):
    """Base class for errors raised by this package."""


class GeoIPUnavailableError(GeoIPJobsError):
    """Raised when no GeoIP lookup capability is available.

    This is a configuration error: the host must stop routing events to the
    enricher until a GeoIP database is provided.
    """
