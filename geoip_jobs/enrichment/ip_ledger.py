"""Identity IP ledger — remembers, per ``distinct_id``, the last IP that was
allowed to update person properties and the timestamp of the event that set it.

The ledger decides whether a new event may rewrite the person's GeoIP
properties. Events carrying the same IP never do; events older than the one
that last won never do, so late deliveries cannot regress the profile.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

import structlog

log = structlog.get_logger(component="ip_ledger")

LEDGER_TTL_SECONDS = 60 * 60 * 24
_SEPARATOR = "|"


@dataclass(frozen=True)
class LedgerEntry:
    ip: str
    timestamp: Optional[str] = None

    @classmethod
    def parse(cls, raw) -> Optional["LedgerEntry"]:
        """Decode a cached ``ip|timestamp`` value.

        Anything that is not a string containing the separator is treated as
        no entry at all.
        """
        if not isinstance(raw, str) or _SEPARATOR not in raw:
            return None
        ip, timestamp = raw.split(_SEPARATOR, 1)
        return cls(ip=ip, timestamp=timestamp or None)

    def serialize(self) -> str:
        return f"{self.ip}{_SEPARATOR}{self.timestamp or ''}"


def _parse_timestamp(value: str) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC."""
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (ValueError, TypeError, AttributeError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def is_late(candidate: Optional[str], last: Optional[str]) -> bool:
    """Return True if ``candidate`` is strictly earlier than ``last``.

    Missing or unparseable timestamps on either side are never late; equal
    timestamps are not late either.
    """
    if not candidate or not last:
        return False
    candidate_ts = _parse_timestamp(candidate)
    last_ts = _parse_timestamp(last)
    if candidate_ts is None or last_ts is None:
        return False
    return candidate_ts < last_ts


class IdentityIpLedger:
    """Single-slot per-identity record kept in an external TTL cache.

    Args:
        cache: Object with async ``get(key, default)`` and
            ``set(key, value, ttl_seconds)``.
        ttl_seconds: Expiry applied to every write.
    """

    def __init__(self, cache, ttl_seconds: int = LEDGER_TTL_SECONDS):
        self.cache = cache
        self.ttl_seconds = ttl_seconds

    async def read(self, identity: str) -> Optional[LedgerEntry]:
        raw = await self.cache.get(identity, None)
        entry = LedgerEntry.parse(raw)
        if raw is not None and entry is None:
            log.debug("ledger_entry_malformed", distinct_id=identity)
        return entry

    async def write(self, identity: str, ip: str, timestamp: Optional[str]) -> None:
        entry = LedgerEntry(ip=ip, timestamp=timestamp or None)
        await self.cache.set(identity, entry.serialize(), self.ttl_seconds)

    async def should_update(self, identity: str, ip: str, timestamp: Optional[str]) -> bool:
        """Decide whether ``(ip, timestamp)`` may update the person properties.

        Args:
            identity: The event's ``distinct_id``.
            ip: Effective IP of the candidate event.
            timestamp: ISO-8601 timestamp of the candidate event, if any.

        Returns:
            True when there is no entry yet, or the IP changed and the event is
            not older than the one recorded.
        """
        entry = await self.read(identity)
        if entry is None:
            return True

        if entry.ip == ip:
            log.debug("person_props_skipped", distinct_id=identity, reason="same_ip")
            return False
        if is_late(timestamp, entry.timestamp):
            log.debug(
                "person_props_skipped",
                distinct_id=identity,
                reason="late_event",
                timestamp=timestamp,
                last_timestamp=entry.timestamp,
            )
            return False
        return True
