from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class HttpResponse:
    """HTTP response data."""

    status_code: int
    headers: Dict[str, str]
    text: str
    json: Any

    def content_length(self) -> Optional[int]:
        """Parsed Content-Length header, if present."""
        for key, value in self.headers.items():
            if key.lower() == "content-length":
                try:
                    return int(value)
                except (TypeError, ValueError):
                    return None
        return None
