"""Domain event publishing over Kafka.

Lifecycle transitions hand their events to an ``EventPublisher``. The
production implementation wraps a single confluent-kafka producer per
process; publishing is best-effort and never fails the transition that
triggered it.
"""

from __future__ import annotations

import threading
from typing import Any, Protocol

import structlog

from accreditation.config import settings
from accreditation.pipeline.events import EventEnvelope

logger = structlog.get_logger()


class EventPublisher(Protocol):
    def produce(self, topic: str, envelope: EventEnvelope, key: str | None = None) -> None: ...


class KafkaProducer:
    """Process-wide producer, created lazily on first use."""

    _instance: KafkaProducer | None = None
    _lock: threading.Lock = threading.Lock()

    def __new__(cls) -> KafkaProducer:
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
                    cls._instance._initialized = False
        return cls._instance

    def __init__(self) -> None:
        if self._initialized:
            return

        from confluent_kafka import Producer

        self._producer = Producer({
            "bootstrap.servers": settings.kafka_bootstrap_servers,
            "client.id": "accreditation-engine",
            "acks": "all",
            "enable.idempotence": True,
            "linger.ms": 5,
        })
        self._initialized = True
        logger.info("kafka_producer_initialized", bootstrap=settings.kafka_bootstrap_servers)

    def produce(
        self,
        topic: str,
        envelope: EventEnvelope,
        key: str | None = None,
    ) -> None:
        """Queue an envelope for delivery; keyed by assessment id so per-assessment order holds."""
        self._producer.produce(
            topic=topic,
            value=envelope.serialize(),
            key=key.encode("utf-8") if key else None,
            callback=self._delivery_callback,
        )
        self._producer.poll(0)

    def flush(self, timeout: float = 10.0) -> int:
        """Flush pending messages. Returns number of messages still in queue."""
        return self._producer.flush(timeout=timeout)

    @classmethod
    def reset(cls) -> None:
        """Drop the process-wide instance, flushing what it still holds."""
        with cls._lock:
            if cls._instance is not None and cls._instance._initialized:
                remaining = cls._instance._producer.flush(timeout=2.0)
                if remaining:
                    logger.warning("kafka_messages_dropped_on_reset", remaining=remaining)
            cls._instance = None

    @staticmethod
    def _delivery_callback(err: Any, msg: Any) -> None:
        if err is not None:
            logger.error(
                "kafka_delivery_failed",
                error=str(err),
                topic=msg.topic() if msg else "unknown",
            )
        else:
            logger.debug(
                "kafka_delivery_success",
                topic=msg.topic(),
                partition=msg.partition(),
                offset=msg.offset(),
            )


def get_event_publisher() -> EventPublisher | None:
    """FastAPI dependency: the Kafka producer when events are enabled, else None."""
    if not settings.events_enabled:
        return None
    return KafkaProducer()
