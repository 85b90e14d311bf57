"""Postcode geocoding against postcodes.io."""

from __future__ import annotations

import threading
from typing import Protocol
from urllib.parse import quote

from fuelwatch.common.errors import GeocodeUnavailable, PipelineError
from fuelwatch.common.http import HttpClient, RetryConfig, TimeoutConfig
from fuelwatch.common.models import Location
from fuelwatch.common.postcode import normalise_outward_code, normalise_postcode

DEFAULT_ENDPOINT = "https://api.postcodes.io"


class Geocoder(Protocol):
    def lookup(self, postcode: str) -> Location:
        """Resolve a free-form postcode or raise GeocodeUnavailable."""
        ...


def _parse_location(payload: object, query: str) -> Location:
    if not isinstance(payload, dict) or payload.get("status") != 200:
        raise GeocodeUnavailable(f"Geocoder rejected postcode {query!r}")
    result = payload.get("result")
    if not isinstance(result, dict):
        raise GeocodeUnavailable(f"Geocoder returned no result for {query!r}")
    lat = result.get("latitude")
    lon = result.get("longitude")
    if isinstance(lat, bool) or isinstance(lon, bool) or not isinstance(lat, (int, float)) or not isinstance(lon, (int, float)):
        raise GeocodeUnavailable(f"Geocoder returned no coordinates for {query!r}")
    return Location(latitude=float(lat), longitude=float(lon))


class PostcodesIoGeocoder:
    """Resolves unit postcodes and outward codes; successful lookups are cached."""

    def __init__(
        self,
        client: HttpClient | None = None,
        *,
        endpoint: str = DEFAULT_ENDPOINT,
        timeout: TimeoutConfig | None = None,
    ) -> None:
        self.client = client or HttpClient(
            timeout=TimeoutConfig(connect=5, read=10),
            retry=RetryConfig(max_attempts=2, delay=0.5),
        )
        self.endpoint = endpoint.rstrip("/")
        self.timeout = timeout
        self._cache: dict[str, Location] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, cfg: dict) -> "PostcodesIoGeocoder":
        timeout = float(cfg["timeout_seconds"])
        rate = cfg.get("rate_per_sec")
        client = HttpClient(
            timeout=TimeoutConfig(connect=min(5.0, timeout), read=timeout),
            retry=RetryConfig(max_attempts=int(cfg["max_attempts"]), delay=0.5),
            rate_limits={"geocoder": float(rate)} if rate else None,
        )
        return cls(client, endpoint=cfg.get("endpoint", DEFAULT_ENDPOINT))

    def close(self) -> None:
        self.client.close()

    def _url_for(self, postcode: str) -> str:
        unit = normalise_postcode(postcode)
        if unit is not None:
            return f"{self.endpoint}/postcodes/{quote(unit)}"
        outward = normalise_outward_code(postcode)
        if outward is not None:
            return f"{self.endpoint}/outcodes/{quote(outward)}"
        raise GeocodeUnavailable(f"Not a UK postcode or outward code: {postcode!r}")

    def lookup(self, postcode: str) -> Location:
        url = self._url_for(postcode)
        with self._lock:
            cached = self._cache.get(url)
        if cached is not None:
            return cached

        try:
            payload = self.client.get_json(url, source_type="geocoder", timeout=self.timeout)
        except PipelineError as exc:
            raise GeocodeUnavailable(f"Geocoder request failed for {postcode!r}: {exc}") from exc

        location = _parse_location(payload, postcode)
        with self._lock:
            self._cache[url] = location
        return location
