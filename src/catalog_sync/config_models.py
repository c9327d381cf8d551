"""
Pydantic models for YAML configuration validation.
Provides schema validation with clear error messages for sync job configurations.
"""

from __future__ import annotations
from typing import Dict, List, Literal, Optional, Tuple
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator


class JobConfig(BaseModel):
    """Identity of the sync job."""
    id: str = Field(..., description="Unique identifier for the job")
    name: str = Field(..., description="Human-readable name for the job")


class StorageConfig(BaseModel):
    """Where the catalog and the checkpoint live."""
    db_path: str = Field("output/catalog.db", description="SQLite catalog database")
    progress_path: str = Field("output/progress.json", description="JSON checkpoint file")


class MetadataConfig(BaseModel):
    """Remote metadata endpoint."""
    base_url: str = Field(..., description="Item metadata is fetched from {base_url}/{id}")
    timeout_s: int = Field(30, ge=1, le=300, description="Per-request timeout in seconds")
    headers: Dict[str, str] = Field(default_factory=dict, description="HTTP headers")

    @field_validator('base_url')
    @classmethod
    def validate_base_url(cls, v):
        if not v.startswith(('http://', 'https://')):
            raise ValueError('base_url must be a valid HTTP/HTTPS URL')
        return v


class EnrichmentConfig(BaseModel):
    """Download size probe and optional comment refresh."""
    size_url_template: str = Field(
        "https://d.apkpure.net/b/XAPK/{id}?version=latest",
        description="HEAD target for the size probe; {id} is replaced by the item id",
    )
    max_retries: int = Field(5, ge=0, le=20, description="Retries after transient probe failures")
    retry_delay_s: float = Field(2.0, ge=0, le=60, description="Fixed delay between probe retries")
    timeout_s: float = Field(10.0, gt=0, le=120, description="Probe request timeout")
    comments_url_template: Optional[str] = Field(None, description="JSON comments endpoint; {id} placeholder")

    @field_validator('size_url_template', 'comments_url_template')
    @classmethod
    def validate_template(cls, v):
        if v is not None and "{id}" not in v:
            raise ValueError('URL template must contain an {id} placeholder')
        return v


class BatchConfig(BaseModel):
    """Batch size and pacing between batches."""
    size: int = Field(2, ge=1, le=50, description="Items fetched concurrently per batch")
    pacing_min_s: float = Field(1.0, ge=0, description="Minimum pause between batches")
    pacing_max_s: float = Field(3.0, ge=0, description="Maximum pause between batches")

    @model_validator(mode='after')
    def validate_pacing(self):
        if self.pacing_max_s < self.pacing_min_s:
            raise ValueError('pacing_max_s must be >= pacing_min_s')
        return self


class ScheduleConfig(BaseModel):
    """Configuration for scheduled execution and run quotas."""
    enabled: bool = Field(False, description="Whether scheduling is enabled")
    interval_minutes: int = Field(60, ge=1, le=10080, description="Interval between runs in minutes")
    window_days: List[Tuple[int, int]] = Field(
        default_factory=lambda: [(1, 3), (24, 26)],
        description="Inclusive day-of-month windows in which runs may start; empty means always",
    )
    runs_per_period: int = Field(33, ge=1, description="Maximum runs per calendar month")
    run_budget_minutes: float = Field(58.0, gt=0, le=1440, description="Wall-clock ceiling per run")

    @field_validator('window_days')
    @classmethod
    def validate_window_days(cls, v):
        for start, end in v:
            if not 1 <= start <= end <= 31:
                raise ValueError(f'invalid day window {start}-{end}')
        return v


class SqliteAuditConfig(BaseModel):
    type: Literal["sqlite"] = "sqlite"


class JsonlAuditConfig(BaseModel):
    type: Literal["jsonl"]
    path: str = Field("output/sync_log.jsonl", description="Path of the JSONL audit log")


class GoogleSheetsAuditConfig(BaseModel):
    """Configuration for the Google Sheets audit sink."""
    type: Literal["google_sheets"]
    sheet_id: str = Field(..., description="Google Sheets ID")
    tab: str = Field("sync_log", description="Sheet tab name")
    credentials_path: str = Field("service_account.json", description="Path to service account credentials")


class SyncConfig(BaseModel):
    """Root configuration model for sync jobs."""
    job: JobConfig
    metadata: MetadataConfig
    storage: StorageConfig = Field(default_factory=StorageConfig)
    enrichment: EnrichmentConfig = Field(default_factory=EnrichmentConfig)
    batch: BatchConfig = Field(default_factory=BatchConfig)
    schedule: ScheduleConfig = Field(default_factory=ScheduleConfig)
    audit: Dict[str, object] = Field(default_factory=lambda: {"type": "sqlite"}, description="Audit sink configuration")

    @model_validator(mode='after')
    def validate_audit_config(self):
        """Validate the audit sink section against its type."""
        audit_type = self.audit.get('type', 'sqlite')
        if audit_type == 'sqlite':
            SqliteAuditConfig(**self.audit)
        elif audit_type == 'jsonl':
            JsonlAuditConfig(**self.audit)
        elif audit_type == 'google_sheets':
            GoogleSheetsAuditConfig(**self.audit)
        else:
            raise ValueError(f'Unknown audit type: {audit_type}. Must be "sqlite", "jsonl" or "google_sheets"')
        return self


def load_and_validate_config(config_path: str) -> SyncConfig:
    """
    Load and validate a sync configuration from YAML file.

    Args:
        config_path: Path to the YAML configuration file

    Returns:
        Validated SyncConfig object

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If YAML is malformed or the configuration is invalid
    """
    import yaml

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            raw_config = yaml.safe_load(f)
    except FileNotFoundError:
        raise FileNotFoundError(f"Configuration file not found: {config_path}")
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {config_path}: {e}")

    return validate_config(raw_config or {}, source=config_path)


def validate_config(raw_config: dict, source: str = "<config>") -> SyncConfig:
    """Validate an already parsed configuration mapping."""
    try:
        return SyncConfig(**raw_config)
    except ValidationError as e:
        # Format validation errors nicely
        error_messages = []
        for error in e.errors():
            field_path = '.'.join(str(loc) for loc in error['loc'])
            error_messages.append(f"  {field_path}: {error['msg']}")

        raise ValueError(
            f"Configuration validation failed for {source}:\n" +
            '\n'.join(error_messages)
        ) from e


def config_to_job(config: SyncConfig):
    """
    Convert validated config to the SyncJob used by the sync engine.

    Returns:
        SyncJob
    """
    from catalog_sync.core.models import ScheduleConfig as CoreScheduleConfig, SizeConfig, SyncJob

    return SyncJob(
        id=config.job.id,
        name=config.job.name,
        metadata_base_url=config.metadata.base_url,
        db_path=config.storage.db_path,
        progress_path=config.storage.progress_path,
        metadata_headers=dict(config.metadata.headers),
        http_timeout_s=config.metadata.timeout_s,
        batch_size=config.batch.size,
        pacing_min_s=config.batch.pacing_min_s,
        pacing_max_s=config.batch.pacing_max_s,
        size=SizeConfig(
            url_template=config.enrichment.size_url_template,
            max_retries=config.enrichment.max_retries,
            retry_delay_s=config.enrichment.retry_delay_s,
            timeout_s=config.enrichment.timeout_s,
        ),
        comments_url_template=config.enrichment.comments_url_template,
        schedule=CoreScheduleConfig(
            enabled=config.schedule.enabled,
            interval_minutes=config.schedule.interval_minutes,
            window_days=tuple((int(a), int(b)) for a, b in config.schedule.window_days),
            runs_per_period=config.schedule.runs_per_period,
            run_budget_minutes=config.schedule.run_budget_minutes,
        ),
        audit_config=dict(config.audit),
    )
