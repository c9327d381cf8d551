from __future__ import annotations

from typing import Protocol

import requests

from catalog_sync.core.models import RequestSpec
from catalog_sync.http.policies import RetryPolicy, backoff_sleep
from catalog_sync.http.response import HttpResponse
from catalog_sync.utils.logging import get_logger


class HttpClient(Protocol):
    """Transport shared by the metadata provider (GET) and the size probe (HEAD)."""

    def send(self, req: RequestSpec) -> HttpResponse: ...

    def close(self) -> None: ...


class RequestsHttpClient:
    """
    requests.Session transport with transport-level retries.

    Statuses in `retry.retry_statuses` and connection errors are retried with
    backoff; the last response is returned as is. The size probe client is
    built with `max_retries=0` so that its own classifier decides what to retry.
    """

    def __init__(self, timeout_s: float = 30, retry: RetryPolicy | None = None):
        self.session = requests.Session()
        self.timeout_s = timeout_s
        self.retry = retry or RetryPolicy()
        self.log = get_logger("catalog_sync.http")

    def send(self, req: RequestSpec) -> HttpResponse:
        last_attempt = self.retry.max_attempts - 1

        for attempt in range(self.retry.max_attempts):
            try:
                raw = self.session.request(
                    method=req.method,
                    url=req.url,
                    headers=req.headers,
                    params=req.params,
                    timeout=self.timeout_s,
                )
            except requests.RequestException as e:
                if attempt == last_attempt:
                    raise
                self.log.warning("%s %s failed with %s; retry %s", req.method, req.url, type(e).__name__, attempt + 1)
                backoff_sleep(self.retry, attempt)
                continue

            resp = self._to_response(req, raw)
            if resp.status_code in self.retry.retry_statuses and attempt < last_attempt:
                self.log.warning("%s %s answered %s; retry %s", req.method, req.url, resp.status_code, attempt + 1)
                backoff_sleep(self.retry, attempt)
                continue
            return resp

        # max_attempts is always >= 1
        raise RuntimeError(f"{req.method} {req.url}: no attempt was made")

    def _to_response(self, req: RequestSpec, raw: requests.Response) -> HttpResponse:
        # HEAD answers only matter for their headers (Content-Length)
        if req.method.upper() == "HEAD":
            return HttpResponse(status_code=raw.status_code, headers=dict(raw.headers), text="", json=None)

        payload = None
        if "application/json" in raw.headers.get("Content-Type", ""):
            try:
                payload = raw.json()
            except ValueError:
                self.log.debug("Undecodable JSON body from %s", req.url)
        return HttpResponse(status_code=raw.status_code, headers=dict(raw.headers), text=raw.text, json=payload)

    def close(self) -> None:
        self.session.close()
