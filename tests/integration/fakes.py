from __future__ import annotations

import json


class FakeFeedResponse:
    def __init__(self, status_code: int = 200, payload=None, content_type: str = "application/json"):
        self.status_code = status_code
        self.headers = {"Content-Type": content_type}
        self._body = json.dumps(payload).encode("utf-8")

    def json(self):
        return json.loads(self._body)

    def iter_content(self, chunk_size=1):
        yield self._body

    def close(self):
        pass


def feed(*stations, last_updated="2026-03-01T08:00:00Z"):
    return {"last_updated": last_updated, "stations": list(stations)}


def station(site_id, *, lat=51.5, lon=-0.1, postcode="SW1A 1AA", **prices):
    return {
        "site_id": site_id,
        "brand": "Test",
        "address": f"{site_id} High Street",
        "postcode": postcode,
        "location": {"latitude": lat, "longitude": lon},
        "prices": prices,
    }
