from __future__ import annotations
from typing import Dict, Optional, Protocol
from urllib.parse import quote

import requests

from catalog_sync.core.errors import ItemFetchError, ItemFetchNotFound
from catalog_sync.core.models import RemoteRecord, RequestSpec
from catalog_sync.http.client import HttpClient


class MetadataProvider(Protocol):
    """Protocol for fetching remote metadata of one catalog item."""

    def fetch(self, external_id: str) -> RemoteRecord: ...


class JsonApiMetadataProvider:
    """Metadata provider backed by a JSON endpoint at `{base_url}/{id}`."""

    def __init__(self, client: HttpClient, base_url: str, headers: Optional[Dict[str, str]] = None):
        self.client = client
        self.base_url = base_url.rstrip("/")
        self.headers = dict(headers or {})

    def fetch(self, external_id: str) -> RemoteRecord:
        """Fetch and decode one item; 404 maps to ItemFetchNotFound."""
        url = f"{self.base_url}/{quote(external_id, safe='')}"
        try:
            resp = self.client.send(RequestSpec(url=url, headers=self.headers))
        except requests.RequestException as e:
            raise ItemFetchError(f"{external_id}: {type(e).__name__}: {e}") from e

        if resp.status_code == 404:
            raise ItemFetchNotFound(external_id)
        if resp.status_code >= 400:
            raise ItemFetchError(f"{external_id}: HTTP {resp.status_code}")
        if not isinstance(resp.json, dict):
            raise ItemFetchError(f"{external_id}: response is not a JSON object")

        return RemoteRecord.from_payload(resp.json)
