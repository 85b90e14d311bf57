"""Conditional current-snapshot writes and append-only archiving."""

from __future__ import annotations

import logging
from datetime import datetime

from fuelwatch.common.errors import InvalidFormat, PersistConflict, StoreNotFound
from fuelwatch.common.logging import log_event
from fuelwatch.common.models import IngestResult, RetailerSnapshot
from fuelwatch.common.time_utils import as_utc, format_timestamp, utc_now
from fuelwatch.pipeline.archive import decide_archive
from fuelwatch.storage.snapshots import archive_path, current_path, dump_snapshot, load_snapshot
from fuelwatch.storage.store import SnapshotStore

logger = logging.getLogger(__name__)


def read_current(store: SnapshotStore, retailer: str) -> tuple[RetailerSnapshot | None, str | None]:
    """Prior snapshot and its revision token; a corrupt prior reads as absent but keeps its token."""
    try:
        stored = store.get(current_path(retailer))
    except StoreNotFound:
        return None, None
    try:
        return load_snapshot(stored.content, retailer), stored.revision
    except InvalidFormat as exc:
        log_event(
            logger,
            f"stored snapshot for {retailer} is unreadable, treating as absent: {exc}",
            level=logging.WARNING,
            retailer=retailer,
            event="SNAPSHOT_SKIP",
            status="warning",
            error_code=exc.error_code,
        )
        return None, stored.revision


def _archive(store: SnapshotStore, snapshot: RetailerSnapshot, content: str, at: datetime) -> bool:
    path = archive_path(snapshot.retailer_name, at)
    try:
        store.put(
            path,
            content,
            expected_revision=None,
            message=f"Archive {snapshot.retailer_name} fuel prices - {format_timestamp(snapshot.last_updated)}",
        )
    except PersistConflict:
        log_event(
            logger,
            f"archive {path} already exists; not overwriting",
            level=logging.WARNING,
            retailer=snapshot.retailer_name,
            event="ARCHIVE_SKIP",
            status="warning",
            error_code=PersistConflict.error_code,
        )
        return False
    log_event(logger, f"archived {path}", retailer=snapshot.retailer_name, event="ARCHIVE_OK", status="ok")
    return True


def ingest_snapshot(
    store: SnapshotStore,
    snapshot: RetailerSnapshot,
    *,
    now: datetime | None = None,
    max_conflict_retries: int = 3,
) -> IngestResult:
    """Replace the retailer's current snapshot under CAS, then archive if the change warrants it.

    Raises PersistConflict when every attempt loses to a concurrent writer.
    """
    retailer = snapshot.retailer_name
    now = as_utc(now) if now is not None else utc_now()
    content = dump_snapshot(snapshot)
    attempts = max(1, max_conflict_retries)

    for attempt in range(1, attempts + 1):
        prior, revision = read_current(store, retailer)
        decision = decide_archive(prior, snapshot, now=now)
        try:
            store.put(
                current_path(retailer),
                content,
                expected_revision=revision,
                message=f"Update {retailer} fuel prices - {format_timestamp(snapshot.last_updated)}",
            )
        except PersistConflict as exc:
            log_event(
                logger,
                f"current snapshot for {retailer} changed underneath us: {exc}",
                level=logging.WARNING,
                retailer=retailer,
                event="PERSIST_CONFLICT",
                status="retry" if attempt < attempts else "error",
                attempt=attempt,
                error_code=exc.error_code,
            )
            continue

        log_event(
            logger,
            f"saved current snapshot for {retailer}",
            retailer=retailer,
            event="PERSIST_OK",
            status="ok",
            attempt=attempt,
            stations=len(snapshot.stations),
        )
        archived = _archive(store, snapshot, content, now) if decision.archive else False
        return IngestResult(retailer=retailer, written=True, archived=archived, reason=decision.reason)

    raise PersistConflict(f"Gave up writing current snapshot for {retailer} after {attempts} conflicting attempts")
