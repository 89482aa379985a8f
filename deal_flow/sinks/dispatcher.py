"""Fan-out of notification events to the configured sinks."""

import logging
from typing import Any, Iterable, Protocol

from deal_flow.config import DealFlowConfig
from deal_flow.exceptions import ConfigurationError
from deal_flow.models import NotificationEvent, Role

logger = logging.getLogger(__name__)


class NotificationSink(Protocol):
    def emit(self, recipient_id: str, role: Role, event: NotificationEvent) -> None: ...

    def close(self) -> None: ...


class NotificationDispatcher:
    """Deliver each notification to every sink.

    Called only after the state change it describes has been stored. A
    failing sink is logged and skipped; it never fails the operation that
    triggered the notification.
    """

    def __init__(self, sinks: Iterable[NotificationSink] = ()) -> None:
        self.sinks: list[NotificationSink] = list(sinks)
        self.failures = 0

    def add_sink(self, sink: NotificationSink) -> None:
        self.sinks.append(sink)

    def notify(self, recipient_id: str, role: Role, event: NotificationEvent) -> None:
        logger.debug(
            "Notify %s (%s): %s", recipient_id, role.value, event.event_type,
            extra={"extra": {"recipient_id": recipient_id, "event_type": event.event_type}},
        )
        for sink in self.sinks:
            try:
                sink.emit(recipient_id, role, event)
            except Exception:
                self.failures += 1
                logger.exception(
                    "Notification sink %s failed for %s", type(sink).__name__, event.event_type
                )

    def close(self) -> None:
        for sink in self.sinks:
            try:
                sink.close()
            except Exception:
                logger.exception("Failed to close sink %s", type(sink).__name__)


def build_sinks(config: DealFlowConfig) -> list[Any]:
    """Create the notification sinks named in ``config.notifications.sinks``."""
    sinks: list[Any] = []
    for name in config.notifications.sinks:
        if name == "console":
            from deal_flow.sinks.console import ConsoleSink

            sinks.append(ConsoleSink(pretty=config.output.pretty_json))
        elif name == "json":
            from deal_flow.sinks.json_file import JsonFileSink

            sinks.append(JsonFileSink(config.output.json_output_dir, pretty=config.output.pretty_json))
        elif name == "kafka":
            from deal_flow.sinks.kafka import KafkaSink, ProducerConfig

            sinks.append(KafkaSink(
                ProducerConfig.from_kafka_config(config.kafka, topic=config.notifications.topic)
            ))
        elif name == "memory":
            from deal_flow.sinks.memory import MemorySink

            sinks.append(MemorySink())
        else:
            raise ConfigurationError(f"Unknown notification sink: {name}")
    return sinks
