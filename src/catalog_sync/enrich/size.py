from __future__ import annotations

import time
from typing import Callable, Optional
from urllib.parse import quote

import requests

from catalog_sync.core.errors import EnrichmentPermanent, EnrichmentTransient, HttpStatusError
from catalog_sync.core.models import UNKNOWN_SIZE, Decision, RequestSpec, SizeConfig, StoredRecord
from catalog_sync.enrich.base import SizeProvider
from catalog_sync.http.client import HttpClient
from catalog_sync.http.policies import FailureKind, RetriesExhausted, RetryPolicy, call_with_retry, fixed_policy
from catalog_sync.transform.normalizers import format_size
from catalog_sync.utils.logging import get_logger

PERMANENT_STATUSES = frozenset({403, 404})
TRANSIENT_STATUSES = frozenset({405})


class HttpSizeProbe(SizeProvider):
    """Reads the Content-Length of a HEAD request against a download URL."""

    def __init__(self, client: HttpClient, url_template: str):
        self.client = client
        self.url_template = url_template

    def probe(self, external_id: str) -> int:
        url = self.url_template.format(id=quote(external_id, safe=""))
        resp = self.client.send(RequestSpec(url=url, method="HEAD"))
        if resp.status_code >= 400:
            raise HttpStatusError(resp.status_code, url)
        return resp.content_length() or 0


def classify_probe_error(exc: BaseException) -> FailureKind:
    """403/404 are permanent; 405 and timeouts are worth retrying."""
    if isinstance(exc, HttpStatusError):
        if exc.status_code in PERMANENT_STATUSES:
            return FailureKind.PERMANENT
        if exc.status_code in TRANSIENT_STATUSES:
            return FailureKind.TRANSIENT
        return FailureKind.UNKNOWN
    if isinstance(exc, requests.Timeout):
        return FailureKind.TRANSIENT
    return FailureKind.UNKNOWN


class SizeEnricher:
    """Fetches and formats the download size of one item with bounded retries."""

    def __init__(
        self,
        provider: SizeProvider,
        policy: Optional[RetryPolicy] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.provider = provider
        self.policy = policy or fixed_policy(max_retries=5, delay_s=2.0)
        self.sleep = sleep
        self.log = get_logger("catalog_sync.enrich.size")

    @classmethod
    def from_config(cls, provider: SizeProvider, cfg: SizeConfig, sleep: Callable[[float], None] = time.sleep) -> "SizeEnricher":
        return cls(provider, fixed_policy(cfg.max_retries, cfg.retry_delay_s), sleep=sleep)

    def fetch_size(self, external_id: str) -> str:
        """
        Return the formatted size for `external_id`.

        Raises EnrichmentPermanent for refused items and EnrichmentTransient
        once retries run out. Unclassified errors propagate unchanged.
        """
        def on_retry(attempt: int, exc: BaseException) -> None:
            self.log.info("Retrying size fetch for %s (attempt %s): %s", external_id, attempt, exc)

        try:
            size_bytes = call_with_retry(
                lambda: self.provider.probe(external_id),
                self.policy,
                classify_probe_error,
                sleep=self.sleep,
                on_retry=on_retry,
            )
        except RetriesExhausted as e:
            status = getattr(e.last_exc, "status_code", None)
            raise EnrichmentTransient(
                external_id,
                f"failed after {self.policy.max_retries} retries: {'status %s' % status if status else 'timeout'}",
                status_code=status,
            ) from e
        except HttpStatusError as e:
            if e.status_code in PERMANENT_STATUSES:
                raise EnrichmentPermanent(external_id, f"status {e.status_code}", status_code=e.status_code) from e
            raise

        return format_size(size_bytes)


def resolve_size(
    decision: Decision,
    existing: Optional[StoredRecord],
    size: Optional[str],
    error: Optional[BaseException],
) -> Optional[str]:
    """
    Size to store after enrichment, or None when the insert must be skipped.

    A failed probe blocks inserts; updates keep the previously stored size.
    """
    if error is None:
        return size
    if decision is Decision.INSERT:
        return None
    return existing.size if existing and existing.size else UNKNOWN_SIZE
