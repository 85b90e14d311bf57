"""Ingest run report."""

from __future__ import annotations

from pathlib import Path

from fuelwatch.common.fs import write_json
from fuelwatch.harvest.runner import IngestCycle


def ingest_status(cycle: IngestCycle) -> str:
    if cycle.degraded:
        return "degraded"
    if cycle.failure_count > 0:
        return "partial"
    return "success"


def write_ingest_summary(data_dir: Path, run_id: str, cycle: IngestCycle) -> Path:
    payload = cycle.to_dict()
    payload["run_id"] = run_id
    payload["status"] = ingest_status(cycle)
    failed = [entry for entry in payload["results"] if not entry["written"]]
    payload["failed_retailers"] = {entry["retailer"]: entry["error"] for entry in failed}

    summary_path = data_dir / "reports" / "ingest_summary.json"
    write_json(summary_path, payload)
    return summary_path
