from __future__ import annotations

import json
from pathlib import Path

from catalog_sync.core.errors import StorageFailure
from catalog_sync.core.models import Progress


class JsonProgressStore:
    """Checkpoint kept as a JSON file, replaced atomically on every save."""

    def __init__(self, path: str):
        self.path = Path(path)

    def load(self) -> Progress:
        if not self.path.exists():
            return Progress.initial()
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise StorageFailure(f"Cannot read checkpoint {self.path}: {e}") from e
        return Progress.from_dict(raw)

    def save(self, progress: Progress) -> None:
        content = json.dumps(progress.to_dict(), indent=2, sort_keys=True, ensure_ascii=False)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(content, encoding="utf-8")
            tmp_path.replace(self.path)
        except OSError as e:
            raise StorageFailure(f"Cannot write checkpoint {self.path}: {e}") from e

    def clear(self) -> None:
        try:
            self.path.unlink(missing_ok=True)
        except OSError as e:
            raise StorageFailure(f"Cannot remove checkpoint {self.path}: {e}") from e
