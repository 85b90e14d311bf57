from __future__ import annotations

import base64

import pytest

from fuelwatch.common.errors import ConfigError, PersistConflict, StoreNotFound
from fuelwatch.common.http import HttpRequestError
from fuelwatch.storage.github_store import GitHubContentsStore


def _b64(text: str) -> str:
    return base64.b64encode(text.encode("utf-8")).decode("ascii")


class FakeGitHubClient:
    def __init__(self):
        self.gets: list[tuple[str, dict | None]] = []
        self.puts: list[tuple[str, dict]] = []
        self.get_responses: list = []
        self.put_response = {"content": {"sha": "new-sha"}}

    def get_json(self, url, *, source_type, params=None, headers=None, **_kwargs):
        assert source_type == "github"
        assert headers["Authorization"] == "Bearer secret"
        self.gets.append((url, params))
        outcome = self.get_responses.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def put_json(self, url, *, source_type, json_body, headers=None, **_kwargs):
        self.puts.append((url, json_body))
        if isinstance(self.put_response, Exception):
            raise self.put_response
        return self.put_response


def _store(client):
    return GitHubContentsStore(owner="me", repo="fuel", token="secret", branch="main", prefix="data", client=client)


def test_get_decodes_inline_content():
    client = FakeGitHubClient()
    client.get_responses = [{"type": "file", "sha": "abc", "encoding": "base64", "content": _b64("{}")}]

    stored = _store(client).get("current/asda.json")

    assert stored.content == "{}"
    assert stored.revision == "abc"
    assert client.gets == [("https://api.github.com/repos/me/fuel/contents/data/current/asda.json", {"ref": "main"})]


def test_get_large_file_falls_back_to_blob_api():
    client = FakeGitHubClient()
    client.get_responses = [
        {"type": "file", "sha": "big", "encoding": "none", "content": ""},
        {"sha": "big", "encoding": "base64", "content": _b64("large")},
    ]

    stored = _store(client).get("current/asda.json")

    assert stored.content == "large"
    assert client.gets[1][0] == "https://api.github.com/repos/me/fuel/git/blobs/big"


def test_get_missing_raises_store_not_found():
    client = FakeGitHubClient()
    client.get_responses = [HttpRequestError("HTTP status: 404", status_code=404)]
    with pytest.raises(StoreNotFound):
        _store(client).get("current/asda.json")


def test_put_sends_sha_only_for_replacements():
    client = FakeGitHubClient()
    store = _store(client)

    assert store.put("archive/asda/x.json", "a", message="Archive") == "new-sha"
    assert store.put("current/asda.json", "b", expected_revision="old-sha") == "new-sha"

    create_body, replace_body = client.puts[0][1], client.puts[1][1]
    assert "sha" not in create_body
    assert create_body["message"] == "Archive"
    assert replace_body["sha"] == "old-sha"
    assert base64.b64decode(replace_body["content"]).decode("utf-8") == "b"
    assert replace_body["branch"] == "main"


@pytest.mark.parametrize("status", [409, 422])
def test_put_conflict_statuses_raise_persist_conflict(status):
    client = FakeGitHubClient()
    client.put_response = HttpRequestError(f"HTTP status: {status}", status_code=status)
    with pytest.raises(PersistConflict):
        _store(client).put("current/asda.json", "b", expected_revision="stale")


def test_put_other_errors_propagate():
    client = FakeGitHubClient()
    client.put_response = HttpRequestError("HTTP status: 403", status_code=403)
    with pytest.raises(HttpRequestError):
        _store(client).put("current/asda.json", "b")


def test_from_config_requires_token(monkeypatch):
    monkeypatch.delenv("FUEL_TOKEN", raising=False)
    cfg = {"owner": "me", "repo": "fuel", "branch": "main", "token_env": "FUEL_TOKEN"}
    with pytest.raises(ConfigError):
        GitHubContentsStore.from_config(cfg)

    monkeypatch.setenv("FUEL_TOKEN", "secret")
    store = GitHubContentsStore.from_config(cfg, client=FakeGitHubClient())
    assert store.branch == "main"
