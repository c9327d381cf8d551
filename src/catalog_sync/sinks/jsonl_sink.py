import json
from pathlib import Path

from catalog_sync.core.errors import StorageFailure
from catalog_sync.core.models import AuditRecord
from catalog_sync.sinks.base import AuditSink


class JsonlAuditSink(AuditSink):
    """Sink that appends audit records to a JSONL (JSON Lines) file."""

    def __init__(self, path: str = "output/sync_log.jsonl"):
        self.path = Path(path)

    def write(self, record: AuditRecord) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as f:
                f.write(json.dumps(record.to_dict(), ensure_ascii=False) + "\n")
        except OSError as e:
            raise StorageFailure(f"Cannot append audit record to {self.path}: {e}") from e
