"""MaxMind lookup — GeoIP lookup capability backed by a local GeoLite2 City
database."""

import asyncio
from typing import Optional

import geoip2.database
import geoip2.errors
import structlog

from geoip_jobs.config import MAXMIND_DB_PATH
from geoip_jobs.errors import GeoIPUnavailableError

log = structlog.get_logger(component="maxmind_lookup")


class MaxMindLookup:
    """Wraps a ``geoip2`` database reader behind an async ``locate``."""

    def __init__(self, reader):
        self.reader = reader

    async def locate(self, ip: str) -> Optional[dict]:
        """Look up a single IP address.

        The reader call blocks, so it runs in a worker thread.

        Args:
            ip: IPv4 or IPv6 address string.

        Returns:
            The raw City record (``city``, ``country``, ``continent``,
            ``postal``, ``location``, ``subdivisions``...), or None when the
            address is invalid or not in the database.
        """
        return await asyncio.to_thread(self._locate, ip)

    def _locate(self, ip: str) -> Optional[dict]:
        try:
            response = self.reader.city(ip)
        except geoip2.errors.AddressNotFoundError:
            return None
        except ValueError:
            log.debug("geoip_invalid_ip", ip=ip)
            return None
        return response.raw

    def close(self) -> None:
        self.reader.close()


def open_geoip_lookup(path: str = MAXMIND_DB_PATH) -> MaxMindLookup:
    """Open the GeoLite2 City database at ``path``.

    Raises:
        GeoIPUnavailableError: If the database cannot be opened.
    """
    try:
        reader = geoip2.database.Reader(path)
    except (OSError, ValueError) as exc:
        log.warning("geoip_db_unavailable", path=path, error=str(exc))
        raise GeoIPUnavailableError(f"Cannot open GeoIP database at {path}: {exc}") from exc
    log.info("geoip_db_loaded", path=path)
    return MaxMindLookup(reader)
