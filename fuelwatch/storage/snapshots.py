"""Snapshot serialisation, storage paths and current-snapshot loading."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Sequence

from fuelwatch.common.errors import InvalidFormat, PipelineError, StoreNotFound
from fuelwatch.common.logging import log_event
from fuelwatch.common.models import RetailerConfig, RetailerSnapshot
from fuelwatch.common.time_utils import as_utc
from fuelwatch.harvest.normalise import normalise_feed
from fuelwatch.storage.github_store import GitHubContentsStore
from fuelwatch.storage.store import FileSnapshotStore, SnapshotStore

logger = logging.getLogger(__name__)

_WHITESPACE_RE = re.compile(r"\s+")


def retailer_slug(name: str) -> str:
    return _WHITESPACE_RE.sub("-", name.strip().lower())


def current_path(retailer: str) -> str:
    return f"current/{retailer_slug(retailer)}.json"


def archive_path(retailer: str, at: datetime) -> str:
    at = as_utc(at)
    return f"archive/{retailer_slug(retailer)}/{at:%Y}/{at:%m}/{at:%d}/{at:%H-%M-%S-%f}.json"


def dump_snapshot(snapshot: RetailerSnapshot) -> str:
    payload = {"retailer": snapshot.retailer_name, **snapshot.to_dict()}
    return json.dumps(payload, ensure_ascii=False, indent=2) + "\n"


def load_snapshot(content: str, retailer_name: str) -> RetailerSnapshot:
    try:
        payload = json.loads(content)
    except ValueError as exc:
        raise InvalidFormat(f"Stored snapshot for {retailer_name} is not valid JSON") from exc
    return normalise_feed(retailer_name, payload)


@dataclass(frozen=True)
class SnapshotLoad:
    snapshots: tuple[RetailerSnapshot, ...]
    unavailable: tuple[str, ...] = ()

    @property
    def degraded(self) -> bool:
        return bool(self.unavailable)


def _log_skip(retailer: RetailerConfig, exc: PipelineError, reason: str) -> None:
    log_event(
        logger,
        f"skipping {reason} snapshot for {retailer.name}: {exc}",
        level=logging.WARNING,
        retailer=retailer.name,
        event="SNAPSHOT_SKIP",
        status="warning",
        error_code=exc.error_code,
    )


def load_current_snapshots(store: SnapshotStore, retailers: Sequence[RetailerConfig]) -> SnapshotLoad:
    """Current snapshots in configuration order.

    A retailer with no stored snapshot is simply absent. One whose snapshot
    cannot be read or parsed is skipped and listed in ``unavailable``.
    """
    snapshots: list[RetailerSnapshot] = []
    unavailable: list[str] = []
    for retailer in retailers:
        try:
            stored = store.get(current_path(retailer.name))
        except StoreNotFound:
            continue
        except PipelineError as exc:
            _log_skip(retailer, exc, "unreachable")
            unavailable.append(retailer.name)
            continue
        try:
            snapshots.append(load_snapshot(stored.content, retailer.name))
        except InvalidFormat as exc:
            _log_skip(retailer, exc, "unreadable")
            unavailable.append(retailer.name)
    return SnapshotLoad(snapshots=tuple(snapshots), unavailable=tuple(unavailable))


def build_store(storage_cfg: dict, *, root_override: Path | None = None) -> SnapshotStore:
    if storage_cfg["backend"] == "github":
        return GitHubContentsStore.from_config(storage_cfg.get("github") or {})
    return FileSnapshotStore(root_override or Path(storage_cfg["root"]))
