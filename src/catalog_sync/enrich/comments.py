from __future__ import annotations

from typing import Any, Dict, List, Optional
from urllib.parse import quote

from catalog_sync.core.errors import HttpStatusError
from catalog_sync.core.models import RequestSpec
from catalog_sync.enrich.base import CommentsProvider
from catalog_sync.http.client import HttpClient
from catalog_sync.utils.logging import get_logger


class HttpCommentsProvider(CommentsProvider):
    """Fetches a JSON list of comments from `url_template.format(id=...)`."""

    def __init__(self, client: HttpClient, url_template: str, limit: int = 30):
        self.client = client
        self.url_template = url_template
        self.limit = limit

    def fetch(self, external_id: str) -> List[Dict[str, Any]]:
        url = self.url_template.format(id=quote(external_id, safe=""))
        resp = self.client.send(RequestSpec(url=url, params={"num": self.limit}))
        if resp.status_code >= 400:
            raise HttpStatusError(resp.status_code, url)
        items = resp.json if isinstance(resp.json, list) else []
        return [
            {"text": c.get("text", ""), "username": c.get("username", ""), "date": c.get("date", "")}
            for c in items[: self.limit]
            if isinstance(c, dict)
        ]


class CommentsEnricher:
    """Comment refresh that never fails the item: errors mean 'leave as is'."""

    def __init__(self, provider: Optional[CommentsProvider]):
        self.provider = provider
        self.log = get_logger("catalog_sync.enrich.comments")

    def fetch_comments(self, external_id: str) -> Optional[List[Dict[str, Any]]]:
        if self.provider is None:
            return None
        try:
            return self.provider.fetch(external_id)
        except Exception as e:
            self.log.warning("Failed to fetch comments for %s (%s): %s", external_id, type(e).__name__, e)
            return None
