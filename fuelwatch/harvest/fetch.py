"""Batched, fail-soft fetching of retailer feeds."""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Iterable, Sequence

from fuelwatch.common.constants import USER_AGENT
from fuelwatch.common.http import HttpClient, RetryConfig, TimeoutConfig
from fuelwatch.common.logging import log_event
from fuelwatch.common.models import FetchResult, RetailerConfig
from fuelwatch.harvest.normalise import normalise_feed, require_stations_array

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FetchSettings:
    batch_size: int = 3
    batch_delay_seconds: float = 2.0
    timeout_seconds: float = 30.0
    max_attempts: int = 3
    retry_delay_seconds: float = 2.0
    user_agent: str = USER_AGENT

    @classmethod
    def from_config(cls, cfg: dict) -> "FetchSettings":
        return cls(
            batch_size=int(cfg["batch_size"]),
            batch_delay_seconds=float(cfg["batch_delay_seconds"]),
            timeout_seconds=float(cfg["timeout_seconds"]),
            max_attempts=int(cfg["max_attempts"]),
            retry_delay_seconds=float(cfg["retry_delay_seconds"]),
            user_agent=str(cfg["user_agent"]),
        )

    def build_client(self, *, sleep: Callable[[float], None] = time.sleep) -> HttpClient:
        return HttpClient(
            timeout=TimeoutConfig(
                connect=min(10.0, self.timeout_seconds),
                read=self.timeout_seconds,
                total=self.timeout_seconds,
            ),
            retry=RetryConfig(max_attempts=self.max_attempts, delay=self.retry_delay_seconds),
            user_agent=self.user_agent,
            sleep=sleep,
        )


@dataclass(frozen=True)
class FetchCycle:
    results: tuple[FetchResult, ...]

    @property
    def success_count(self) -> int:
        return sum(1 for result in self.results if result.success)

    @property
    def failure_count(self) -> int:
        return len(self.results) - self.success_count

    @property
    def total_stations(self) -> int:
        return sum(result.station_count or 0 for result in self.results if result.success)

    @property
    def degraded(self) -> bool:
        return is_degraded(self.failure_count, len(self.results))

    def summary(self) -> dict:
        return {
            "total_retailers": len(self.results),
            "successful_fetches": self.success_count,
            "failed_fetches": self.failure_count,
            "total_stations": self.total_stations,
            "degraded": self.degraded,
        }


def is_degraded(failed: int, total: int) -> bool:
    """More than half of the enabled sources failed."""
    return total > 0 and failed * 2 > total


def _chunked(values: Sequence[RetailerConfig], size: int) -> Iterable[Sequence[RetailerConfig]]:
    for i in range(0, len(values), size):
        yield values[i : i + size]


def fetch_retailer(client: HttpClient, retailer: RetailerConfig, *, now: datetime | None = None) -> FetchResult:
    started = time.monotonic()
    log_event(logger, f"fetching {retailer.name}", retailer=retailer.name, event="FETCH_ATTEMPT", status="ok")
    try:
        payload = client.download_json(retailer.url, source_type="feed")
        require_stations_array(payload)
        snapshot = normalise_feed(retailer.name, payload, now=now)
    except Exception as exc:
        error_code = getattr(exc, "error_code", "UNEXPECTED_ERROR")
        log_event(
            logger,
            f"fetch failed for {retailer.name}: {exc}",
            level=logging.ERROR,
            retailer=retailer.name,
            event="FETCH_FAIL",
            status="error",
            duration_ms=int((time.monotonic() - started) * 1000),
            error_code=error_code,
        )
        return FetchResult(retailer=retailer.name, success=False, error=str(exc) or type(exc).__name__, error_code=error_code)

    log_event(
        logger,
        f"fetched {len(snapshot.stations)} stations from {retailer.name}",
        retailer=retailer.name,
        event="FETCH_OK",
        status="ok",
        duration_ms=int((time.monotonic() - started) * 1000),
        stations=len(snapshot.stations),
    )
    return FetchResult(
        retailer=retailer.name,
        success=True,
        station_count=len(snapshot.stations),
        snapshot=snapshot,
    )


def fetch_all(
    retailers: Sequence[RetailerConfig],
    *,
    client: HttpClient,
    settings: FetchSettings | None = None,
    now: datetime | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> FetchCycle:
    """Fetch every enabled retailer; results keep configuration order."""
    settings = settings or FetchSettings()
    enabled = [retailer for retailer in retailers if retailer.enabled]
    batch_size = max(1, settings.batch_size)

    results: list[FetchResult] = []
    for batch_idx, batch in enumerate(_chunked(enabled, batch_size)):
        if batch_idx > 0 and settings.batch_delay_seconds > 0:
            sleep(settings.batch_delay_seconds)
        with ThreadPoolExecutor(max_workers=len(batch), thread_name_prefix="fuelwatch-fetch") as pool:
            futures = [pool.submit(fetch_retailer, client, retailer, now=now) for retailer in batch]
            results.extend(future.result() for future in futures)

    cycle = FetchCycle(results=tuple(results))
    if cycle.degraded:
        log_event(
            logger,
            f"{cycle.failure_count} of {len(cycle.results)} sources failed",
            level=logging.WARNING,
            event="CYCLE_DEGRADED",
            status="warning",
        )
    return cycle
