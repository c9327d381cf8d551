from __future__ import annotations

import os
import sys
from typing import List

from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.interval import IntervalTrigger

from catalog_sync.config_models import config_to_job, load_and_validate_config
from catalog_sync.core.factory import ComponentFactory
from catalog_sync.core.models import Candidate, SyncJob
from catalog_sync.state.sqlite_store import SQLiteCatalogStore
from catalog_sync.utils.logging import get_logger, setup_logging

USAGE = "Usage: catalog-sync configs/<job>.yaml [seed <candidates.txt>]"

log = get_logger("catalog_sync.main")


def load_job(path: str) -> SyncJob:
    """Load and validate a sync job configuration from a YAML file."""
    return config_to_job(load_and_validate_config(path))


def parse_candidates(lines: List[str]) -> List[Candidate]:
    """
    Parse candidate lines of the form `<id>[,obb][,unavailable]`.

    Blank lines and lines starting with '#' are ignored.
    """
    candidates = []
    for line in lines:
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        parts = [p.strip() for p in line.split(",")]
        tags = {p.lower() for p in parts[1:]}
        candidates.append(
            Candidate(
                external_id=parts[0],
                flags={"download_obb": "obb" in tags, "available_on_store": "unavailable" not in tags},
            )
        )
    return candidates


def seed(job: SyncJob, candidates_path: str) -> int:
    """Append candidates from a text file to the catalog's candidate list."""
    with open(candidates_path, "r", encoding="utf-8") as f:
        candidates = parse_candidates(f.readlines())
    with SQLiteCatalogStore(job.db_path) as store:
        added = store.add_candidates(candidates)
    log.info("Seeded %s new candidates (%s read) into %s", added, len(candidates), job.db_path)
    return added


def run_one(job: SyncJob) -> None:
    """Run a single gated sync invocation."""
    built = ComponentFactory().build(job)
    outcome = built.runner.run_once()
    if outcome is None:
        print("SKIPPED: run not permitted")
        return
    print("DONE:", "pass complete" if outcome.completed else "budget exhausted", outcome.stats)


def run_schedule(job: SyncJob) -> None:
    """Run the sync on a fixed interval; the schedule gate still decides each tick."""
    scheduler = BlockingScheduler()

    interval = job.schedule.interval_minutes
    print(f"Scheduling sync every {interval} minutes")
    trigger = IntervalTrigger(minutes=interval)

    scheduler.add_job(
        run_one,
        trigger=trigger,
        args=[job],
        id=f"sync_{job.id}",
        name=f"Scheduled sync: {job.name}",
        max_instances=1,
        coalesce=True,
    )

    print(f"Starting scheduled sync for job '{job.name}' (every {interval} minutes)")
    try:
        scheduler.start()
    except KeyboardInterrupt:
        print("Scheduler stopped by user")


def main() -> None:
    """Main entry point for the catalog sync."""
    if len(sys.argv) < 2:
        print(USAGE)
        raise SystemExit(2)

    setup_logging("configs/logging.yaml", os.environ.get("CATALOG_SYNC_LOG_LEVEL"))

    job_path = sys.argv[1]
    print(f"Loading job from {job_path}")
    job = load_job(job_path)

    if len(sys.argv) >= 3:
        if sys.argv[2] != "seed" or len(sys.argv) != 4:
            print(USAGE)
            raise SystemExit(2)
        seed(job, sys.argv[3])
        return

    if job.schedule.enabled:
        print("Running in scheduled mode")
        run_schedule(job)
    else:
        print("Running in one-time mode")
        run_one(job)


if __name__ == "__main__":
    main()
