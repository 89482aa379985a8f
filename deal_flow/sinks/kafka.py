"""Kafka sink for publishing notification events."""

import json
import logging
import threading
from dataclasses import dataclass
from typing import Any

from confluent_kafka import KafkaException, Producer

from deal_flow.config import KafkaConfig
from deal_flow.exceptions import SinkError
from deal_flow.models import NotificationEvent, Role
from deal_flow.sinks.serialization import notification_to_dict, to_dict

logger = logging.getLogger(__name__)

DEFAULT_TOPIC = "dev.dealflow.notifications"


@dataclass
class ProducerConfig:
    """Kafka producer configuration."""

    bootstrap_servers: str
    topic: str = DEFAULT_TOPIC
    acks: str = "all"  # "0", "1", "all"
    batch_size: int = 16384  # bytes
    linger_ms: int = 5  # ms to wait for batching
    compression: str = "snappy"  # none, gzip, snappy, lz4
    retries: int = 3

    @classmethod
    def from_kafka_config(cls, kafka: KafkaConfig, topic: str = DEFAULT_TOPIC) -> "ProducerConfig":
        return cls(
            bootstrap_servers=kafka.bootstrap_servers,
            topic=topic,
            acks=kafka.acks,
            batch_size=kafka.batch_size,
            linger_ms=kafka.linger_ms,
            compression=kafka.compression,
            retries=kafka.retries,
        )


@dataclass
class ProducerStats:
    """Track producer delivery statistics."""

    sent: int = 0
    delivered: int = 0
    failed: int = 0

    @property
    def success_rate(self) -> float:
        """Calculate success rate."""
        total = self.delivered + self.failed
        return self.delivered / total if total > 0 else 0.0


class KafkaSink:
    """Publish notifications to a Kafka topic, keyed by recipient."""

    # Record batch to key field mapping
    KEY_FIELDS = {
        "negotiations": "session_id",
        "drafts": "draft_id",
        "deals": "deal_id",
        "contracts": "contract_id",
    }

    def __init__(self, config: ProducerConfig | str) -> None:
        """Initialize Kafka sink.

        Parameters
        ----------
        config : ProducerConfig | str
            Producer configuration or bootstrap servers string.
        """
        if isinstance(config, str):
            config = ProducerConfig(bootstrap_servers=config)

        self.config = config
        self.producer = self._create_producer()
        self.stats = ProducerStats()
        self._lock = threading.Lock()

    def _create_producer(self) -> Producer:
        """Create Kafka producer with configuration."""
        return Producer(
            {
                "bootstrap.servers": self.config.bootstrap_servers,
                "acks": self.config.acks,
                "retries": self.config.retries,
                "linger.ms": self.config.linger_ms,
                "batch.size": self.config.batch_size,
                "compression.type": self.config.compression,
            }
        )

    def _delivery_callback(self, err: Any, msg: Any) -> None:
        """Handle delivery reports."""
        with self._lock:
            if err:
                self.stats.failed += 1
            else:
                self.stats.delivered += 1
        if err:
            logger.error("Delivery failed: %s", err)
        else:
            logger.debug("Delivered to %s[%d]@%d", msg.topic(), msg.partition(), msg.offset())

    def send(self, topic: str, data: dict, key: str | None = None) -> None:
        """Send one JSON document to a Kafka topic."""
        value = json.dumps(data, ensure_ascii=False, default=str).encode("utf-8")
        try:
            self.producer.produce(
                topic=topic,
                key=key.encode("utf-8") if key else None,
                value=value,
                callback=self._delivery_callback,
            )
        except (BufferError, KafkaException) as e:
            raise SinkError(f"Failed to produce to {topic}: {e}") from e
        with self._lock:
            self.stats.sent += 1
        self.producer.poll(0)

    def emit(self, recipient_id: str, role: Role, event: NotificationEvent) -> None:
        """Publish one notification to the notification topic."""
        self.send(
            self.config.topic,
            notification_to_dict(recipient_id, role, event),
            key=recipient_id,
        )

    def write_batch(self, entity_type: str, records: list[Any]) -> None:
        """Publish a batch of workflow records to ``<prefix>.<entity_type>``."""
        prefix = self.config.topic.rsplit(".", 1)[0]
        topic = f"{prefix}.{entity_type}"
        key_field = self.KEY_FIELDS.get(entity_type)
        logger.info("Writing batch to %s: %d records", topic, len(records))

        for record in records:
            key = getattr(record, key_field, None) if key_field else None
            self.send(topic, to_dict(record), key=key)

        self.flush()
        logger.info("Batch complete: sent=%d, delivered=%d, failed=%d",
                    self.stats.sent, self.stats.delivered, self.stats.failed)

    def flush(self, timeout: float = 30.0) -> None:
        """Flush pending messages."""
        self.producer.flush(timeout)

    def close(self) -> None:
        """Flush and close the producer."""
        self.flush()
        logger.info(
            "Kafka sink closed: sent=%d, delivered=%d, failed=%d",
            self.stats.sent,
            self.stats.delivered,
            self.stats.failed,
        )
