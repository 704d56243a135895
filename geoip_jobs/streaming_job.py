"""Streaming job — consumes analytics events from Kafka, adds GeoIP properties
and person updates, and publishes the enriched events to the output topic.

Usage:
    python -m geoip_jobs.streaming_job
"""

import asyncio
import json
from typing import Optional, Union

import structlog
from kafka import KafkaConsumer, KafkaProducer
from redis.exceptions import ConnectionError as RedisConnectionError
from tenacity import retry, stop_after_attempt, wait_exponential

from geoip_jobs.cache.ledger_cache import build_cache
from geoip_jobs.config import (
    KAFKA_BOOTSTRAP_SERVERS,
    KAFKA_CONSUMER_GROUP,
    KAFKA_TOPIC_ENRICHED,
    KAFKA_TOPIC_EVENTS,
    GeoFieldConfig,
)
from geoip_jobs.enrichment.geoip_enricher import enrich_with_geoip
from geoip_jobs.enrichment.ip_ledger import IdentityIpLedger
from geoip_jobs.errors import GeoIPUnavailableError
from geoip_jobs.lookup.maxmind_lookup import open_geoip_lookup

log = structlog.get_logger(component="streaming_job")


async def process_message(
    value: Union[bytes, str, dict],
    config: GeoFieldConfig,
    geoip,
    ledger: IdentityIpLedger,
) -> Optional[dict]:
    """Decode and enrich a single Kafka message.

    Args:
        value: JSON-encoded event (or an already decoded dict).
        config: Facet toggles.
        geoip: Lookup capability.
        ledger: Per-identity last-IP ledger.

    Returns:
        The enriched event, or None if the message could not be processed.

    Raises:
        GeoIPUnavailableError: If ``geoip`` is None.
        redis.exceptions.ConnectionError: If the ledger cache is unreachable.
    """
    distinct_id = None
    try:
        event = value if isinstance(value, dict) else json.loads(value)
        if not isinstance(event, dict):
            log.warning("invalid_event", type=type(event).__name__)
            return None
        distinct_id = event.get("distinct_id")
        return await enrich_with_geoip(event, config, geoip, ledger)
    except (GeoIPUnavailableError, RedisConnectionError):
        raise
    except Exception as exc:
        log.error("enrich_error", distinct_id=distinct_id, error=str(exc))
        return None


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
)
def create_consumer() -> KafkaConsumer:
    """Create a Kafka consumer with retry on connection failure."""
    return KafkaConsumer(
        KAFKA_TOPIC_EVENTS,
        bootstrap_servers=KAFKA_BOOTSTRAP_SERVERS,
        group_id=KAFKA_CONSUMER_GROUP,
        auto_offset_reset="latest",
    )


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
)
def create_producer() -> KafkaProducer:
    """Create a Kafka producer with retry on connection failure."""
    return KafkaProducer(
        bootstrap_servers=KAFKA_BOOTSTRAP_SERVERS,
        key_serializer=lambda k: k.encode("utf-8") if k is not None else None,
        value_serializer=lambda v: json.dumps(v).encode("utf-8"),
        retries=3,
    )


async def consume(consumer, producer, config: GeoFieldConfig, geoip, ledger: IdentityIpLedger) -> int:
    """Enrich every record from ``consumer`` and publish it with ``producer``.

    Returns:
        Number of events published.
    """
    published = 0
    for record in consumer:
        event = await process_message(record.value, config, geoip, ledger)
        if event is None:
            continue
        distinct_id = event.get("distinct_id")
        producer.send(
            KAFKA_TOPIC_ENRICHED,
            key=str(distinct_id) if distinct_id is not None else None,
            value=event,
        )
        published += 1
    return published


async def main():
    config = GeoFieldConfig.from_env()
    geoip = open_geoip_lookup()
    ledger = IdentityIpLedger(await build_cache())

    consumer = create_consumer()
    producer = create_producer()
    log.info(
        "streaming_job_started",
        source=KAFKA_TOPIC_EVENTS,
        sink=KAFKA_TOPIC_ENRICHED,
        config={facet: toggle.value for facet, toggle in vars(config).items()},
    )
    try:
        await consume(consumer, producer, config, geoip, ledger)
    finally:
        producer.flush()
        producer.close()
        consumer.close()
        geoip.close()


def run():
    """Entry point for the streaming job."""
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        log.info("streaming_job_stopped")
    except RedisConnectionError as exc:
        log.error("ledger_cache_unavailable", error=str(exc))
        raise


if __name__ == "__main__":
    run()
