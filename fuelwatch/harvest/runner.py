"""Ingest cycle orchestration with fail-soft semantics."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Sequence

from fuelwatch.common.http import HttpClient
from fuelwatch.common.logging import log_event
from fuelwatch.common.models import FetchResult, IngestResult, RetailerConfig
from fuelwatch.common.time_utils import as_utc, format_timestamp, utc_now
from fuelwatch.harvest.fetch import FetchCycle, FetchSettings, fetch_all, is_degraded
from fuelwatch.storage.persist import ingest_snapshot
from fuelwatch.storage.store import SnapshotStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IngestCycle:
    timestamp: datetime
    fetch: FetchCycle
    ingests: tuple[IngestResult, ...]

    @property
    def success_count(self) -> int:
        return sum(1 for result in self.ingests if result.written)

    @property
    def failure_count(self) -> int:
        return len(self.ingests) - self.success_count

    @property
    def degraded(self) -> bool:
        return is_degraded(self.failure_count, len(self.ingests))

    def summary(self) -> dict[str, Any]:
        return {
            "timestamp": format_timestamp(self.timestamp),
            "total_retailers": len(self.ingests),
            "successful_fetches": self.fetch.success_count,
            "failed_fetches": self.fetch.failure_count,
            "total_stations": self.fetch.total_stations,
            "written": self.success_count,
            "archived": sum(1 for result in self.ingests if result.archived),
            "failed": self.failure_count,
            "degraded": self.degraded,
        }

    def to_dict(self) -> dict[str, Any]:
        results = []
        for fetched, ingested in zip(self.fetch.results, self.ingests):
            entry = fetched.to_dict()
            entry.update(
                {
                    "written": ingested.written,
                    "archived": ingested.archived,
                    "archive_reason": ingested.reason,
                    "error": ingested.error,
                }
            )
            results.append(entry)
        return {"summary": self.summary(), "results": results}


def _persist_one(
    fetched: FetchResult,
    store: SnapshotStore,
    *,
    now: datetime,
    max_conflict_retries: int,
) -> IngestResult:
    if not fetched.success or fetched.snapshot is None:
        return IngestResult(
            retailer=fetched.retailer,
            written=False,
            archived=False,
            error=fetched.error,
            error_code=fetched.error_code,
        )
    try:
        return ingest_snapshot(store, fetched.snapshot, now=now, max_conflict_retries=max_conflict_retries)
    except Exception as exc:
        error_code = getattr(exc, "error_code", "UNEXPECTED_ERROR")
        log_event(
            logger,
            f"failed to persist {fetched.retailer}: {exc}",
            level=logging.ERROR,
            retailer=fetched.retailer,
            event="INGEST_FAIL",
            status="error",
            error_code=error_code,
        )
        return IngestResult(
            retailer=fetched.retailer,
            written=False,
            archived=False,
            error=str(exc) or type(exc).__name__,
            error_code=error_code,
        )


def run_ingest_cycle(
    retailers: Sequence[RetailerConfig],
    store: SnapshotStore,
    *,
    client: HttpClient,
    settings: FetchSettings | None = None,
    max_conflict_retries: int = 3,
    now: datetime | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> IngestCycle:
    """Fetch, normalise and persist every enabled retailer; one result per retailer."""
    started = as_utc(now) if now is not None else utc_now()
    fetch_cycle = fetch_all(retailers, client=client, settings=settings, now=started, sleep=sleep)

    ingests = tuple(
        _persist_one(fetched, store, now=started, max_conflict_retries=max_conflict_retries)
        for fetched in fetch_cycle.results
    )
    cycle = IngestCycle(timestamp=started, fetch=fetch_cycle, ingests=ingests)

    if cycle.degraded and not fetch_cycle.degraded:
        log_event(
            logger,
            f"{cycle.failure_count} of {len(ingests)} retailers failed to ingest",
            level=logging.WARNING,
            event="CYCLE_DEGRADED",
            status="warning",
        )
    return cycle
