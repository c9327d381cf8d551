from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from catalog_sync.core.engine import SyncEngine
from catalog_sync.core.models import SyncJob
from catalog_sync.core.runner import SyncRunner
from catalog_sync.enrich.comments import CommentsEnricher, HttpCommentsProvider
from catalog_sync.enrich.size import HttpSizeProbe, SizeEnricher
from catalog_sync.fetch.strategies import JsonApiMetadataProvider, MetadataProvider
from catalog_sync.http.client import RequestsHttpClient
from catalog_sync.http.policies import PacingDelay, RetryPolicy
from catalog_sync.schedule.gate import ScheduleGate
from catalog_sync.sinks.base import AuditSink, StoreAuditSink
from catalog_sync.state.json_store import JsonProgressStore
from catalog_sync.state.sqlite_store import SQLiteCatalogStore


@dataclass(frozen=True)
class BuiltComponents:
    runner: SyncRunner
    engine: SyncEngine
    store: SQLiteCatalogStore
    progress_store: JsonProgressStore
    gate: ScheduleGate
    audit_sink: AuditSink


class ComponentFactory:
    """
    Factory responsible for wiring dependencies.
    Keeps main.py clean and makes the sync easy to extend.
    """

    def build(self, job: SyncJob) -> BuiltComponents:
        """
        Build all components needed for a sync run.

        Args:
            job: The sync job configuration.

        Returns:
            A container with all built components.
        """
        store = self._store(job)
        progress_store = JsonProgressStore(job.progress_path)
        metadata_client = RequestsHttpClient(timeout_s=job.http_timeout_s)
        # The size enricher owns retries for the probe endpoint.
        probe_client = RequestsHttpClient(timeout_s=job.size.timeout_s, retry=RetryPolicy(max_retries=0))
        metadata = self._metadata(job, metadata_client)
        size_enricher = SizeEnricher.from_config(HttpSizeProbe(probe_client, job.size.url_template), job.size)
        comments = self._comments(job, metadata_client)
        audit_sink = self._audit_sink(job, store)
        gate = ScheduleGate(job.schedule.window_days, job.schedule.runs_per_period)

        engine = SyncEngine(
            metadata=metadata,
            size_enricher=size_enricher,
            store=store,
            progress_store=progress_store,
            audit_sink=audit_sink,
            comments=comments,
            pacing=PacingDelay(job.pacing_min_s, job.pacing_max_s),
            batch_size=job.batch_size,
        )
        runner = SyncRunner(
            engine=engine,
            progress_store=progress_store,
            candidates=store,
            gate=gate,
            budget_minutes=job.schedule.run_budget_minutes,
            closeables=(store, metadata_client, probe_client),
        )

        return BuiltComponents(
            runner=runner,
            engine=engine,
            store=store,
            progress_store=progress_store,
            gate=gate,
            audit_sink=audit_sink,
        )

    # ---------- Builders (private) ----------

    def _store(self, job: SyncJob) -> SQLiteCatalogStore:
        return SQLiteCatalogStore(job.db_path)

    def _metadata(self, job: SyncJob, client: RequestsHttpClient) -> MetadataProvider:
        return JsonApiMetadataProvider(client, job.metadata_base_url, job.metadata_headers)

    def _comments(self, job: SyncJob, client: RequestsHttpClient) -> Optional[CommentsEnricher]:
        if not job.comments_url_template:
            return None
        return CommentsEnricher(HttpCommentsProvider(client, job.comments_url_template))

    def _audit_sink(self, job: SyncJob, store: SQLiteCatalogStore) -> AuditSink:
        """Create the audit sink."""
        cfg = job.audit_config
        sink_type = str(cfg.get("type", "sqlite")).lower()
        if sink_type in ("google_sheets", "gsheet", "sheets"):
            # Import locally to avoid requiring gspread unless used.
            from catalog_sync.sinks.gsheet_sink import GoogleSheetsAuditSink

            return GoogleSheetsAuditSink(
                sheet_id=cfg["sheet_id"],
                tab=cfg.get("tab", "sync_log"),
                credentials_path=cfg.get("credentials_path", "service_account.json"),
            )

        if sink_type == "jsonl":
            from catalog_sync.sinks.jsonl_sink import JsonlAuditSink

            return JsonlAuditSink(cfg.get("path", "output/sync_log.jsonl"))

        return StoreAuditSink(store)
