"""JSON file sink for exporting notifications and records."""

import json
import threading
from pathlib import Path
from typing import Any

from deal_flow.models import NotificationEvent, Role
from deal_flow.sinks.serialization import notification_to_dict, to_dict


class JsonFileSink:
    """Append notifications to a JSON Lines file and export record batches."""

    NOTIFICATIONS_FILE = "notifications.jsonl"

    def __init__(self, output_dir: str | Path, pretty: bool = False) -> None:
        """Initialize JSON file sink.

        Parameters
        ----------
        output_dir : str | Path
            Directory to write JSON files.
        pretty : bool
            Pretty-print batch JSON output.
        """
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.pretty = pretty
        self._counts: dict[str, int] = {}
        self._lock = threading.Lock()

    @property
    def notifications_path(self) -> Path:
        return self.output_dir / self.NOTIFICATIONS_FILE

    def emit(self, recipient_id: str, role: Role, event: NotificationEvent) -> None:
        """Append one notification as a JSON line."""
        line = json.dumps(
            notification_to_dict(recipient_id, role, event), ensure_ascii=False, default=str
        )
        with self._lock:
            with open(self.notifications_path, "a", encoding="utf-8") as f:
                f.write(line + "\n")
            self._counts["notifications"] = self._counts.get("notifications", 0) + 1

    def write_batch(self, entity_type: str, records: list[Any]) -> None:
        """Write a batch of records to ``<entity_type>.json``."""
        file_path = self.output_dir / f"{entity_type}.json"

        data = [to_dict(record) for record in records]

        with open(file_path, "w", encoding="utf-8") as f:
            if self.pretty:
                json.dump(data, f, indent=2, ensure_ascii=False, default=str)
            else:
                json.dump(data, f, ensure_ascii=False, default=str)

        self._counts[entity_type] = len(records)

    def close(self) -> None:
        """Print summary."""
        print(f"JSON files written to: {self.output_dir}")
        for entity_type, count in self._counts.items():
            print(f"  {entity_type}: {count} records")
