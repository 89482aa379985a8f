"""Output sinks for notifications and exported workflow records."""

from deal_flow.sinks.console import ConsoleSink
from deal_flow.sinks.dispatcher import NotificationDispatcher, build_sinks
from deal_flow.sinks.json_file import JsonFileSink
from deal_flow.sinks.kafka import KafkaSink
from deal_flow.sinks.memory import MemorySink

__all__ = [
    "ConsoleSink",
    "JsonFileSink",
    "KafkaSink",
    "MemorySink",
    "NotificationDispatcher",
    "build_sinks",
]
