"""Analytics event generator — produces pageview-style events for a small pool
of identities and publishes them to the Kafka topic ``analytics-events``.

A share of events is back-dated so the enricher sees late arrivals for
identities whose person properties were already set by a newer event.
"""

import json
import os
import random
import time
from datetime import datetime, timedelta, timezone
from typing import Optional

import structlog
from faker import Faker
from kafka import KafkaProducer
from tenacity import retry, stop_after_attempt, wait_exponential

log = structlog.get_logger(component="event_generator")
fake = Faker()

KAFKA_BOOTSTRAP_SERVERS = os.getenv("KAFKA_BOOTSTRAP_SERVERS", "localhost:9092")
KAFKA_TOPIC = os.getenv("KAFKA_TOPIC_EVENTS", "analytics-events")
INTERVAL = float(os.getenv("GENERATOR_INTERVAL_SECONDS", "1"))
BATCH_SIZE = int(os.getenv("GENERATOR_BATCH_SIZE", "10"))
LATE_EVENT_RATIO = float(os.getenv("GENERATOR_LATE_EVENT_RATIO", "0.1"))
IDENTITY_POOL_SIZE = int(os.getenv("GENERATOR_IDENTITY_POOL_SIZE", "50"))

EVENT_NAMES = ["$pageview", "$pageleave", "$autocapture", "signed_up", "purchase"]
URLS = ["/", "/pricing", "/docs", "/blog", "/signup", "/account/settings"]

_identities = [fake.uuid4() for _ in range(IDENTITY_POOL_SIZE)]


def generate_event(
    distinct_id: Optional[str] = None,
    late: Optional[bool] = None,
    now: Optional[datetime] = None,
) -> dict:
    """Return a single analytics event.

    Args:
        distinct_id: Identity to use; picked from the pool when omitted.
        late: Back-date the event by up to six hours. Decided at random from
            ``LATE_EVENT_RATIO`` when omitted.
        now: Reference time, defaults to the current UTC time.
    """
    if late is None:
        late = random.random() < LATE_EVENT_RATIO
    timestamp = now or datetime.now(timezone.utc)
    if late:
        timestamp -= timedelta(minutes=random.randint(1, 360))

    return {
        "event": random.choice(EVENT_NAMES),
        "distinct_id": distinct_id or random.choice(_identities),
        "ip": fake.ipv4_public(),
        "timestamp": timestamp.isoformat(),
        "properties": {
            "$current_url": f"https://{fake.domain_name()}{random.choice(URLS)}",
            "$browser": random.choice(["Chrome", "Firefox", "Safari"]),
        },
    }


def build_message(event: dict) -> dict:
    """Wrap an event with a generator-assigned ``uuid``."""
    return {"uuid": fake.uuid4(), **event}


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
)
def create_producer() -> KafkaProducer:
    """Create a Kafka producer with retry on connection failure."""
    return KafkaProducer(
        bootstrap_servers=KAFKA_BOOTSTRAP_SERVERS,
        key_serializer=lambda k: k.encode("utf-8"),
        value_serializer=lambda v: json.dumps(v).encode("utf-8"),
        retries=3,
    )


def run():
    """Main loop: generate analytics events and publish to Kafka."""
    producer = create_producer()
    log.info("event_generator_started", topic=KAFKA_TOPIC, batch_size=BATCH_SIZE)

    try:
        while True:
            for _ in range(BATCH_SIZE):
                msg = build_message(generate_event())
                producer.send(KAFKA_TOPIC, key=msg["distinct_id"], value=msg)
                log.debug("event_sent", topic=KAFKA_TOPIC, uuid=msg["uuid"])
            producer.flush()
            log.info("batch_sent", topic=KAFKA_TOPIC, count=BATCH_SIZE)
            time.sleep(INTERVAL)
    except KeyboardInterrupt:
        log.info("generator_stopped")
    finally:
        producer.close()


if __name__ == "__main__":
    run()
