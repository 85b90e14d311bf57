"""Snapshot store backed by the GitHub contents API.

The revision token is the git blob sha returned by the API. Updates send the
sha the caller read; GitHub answers 409 (or 422 when a sha is missing for an
existing file) when another writer got there first.
"""

from __future__ import annotations

import base64
import os
from urllib.parse import quote

from fuelwatch.common.errors import ConfigError, PersistConflict, StoreNotFound
from fuelwatch.common.http import HttpClient, HttpRequestError, RetryConfig, TimeoutConfig
from fuelwatch.storage.store import StoredObject

DEFAULT_API_URL = "https://api.github.com"
CONFLICT_STATUS_CODES = {409, 422}


def _decode(payload: dict, path: str) -> str:
    if payload.get("encoding") != "base64":
        raise StoreNotFound(f"{path} has no inline content")
    return base64.b64decode(payload.get("content") or "").decode("utf-8")


class GitHubContentsStore:
    def __init__(
        self,
        *,
        owner: str,
        repo: str,
        token: str,
        branch: str = "main",
        prefix: str = "",
        api_url: str = DEFAULT_API_URL,
        client: HttpClient | None = None,
    ) -> None:
        self.owner = owner
        self.repo = repo
        self.branch = branch
        self.prefix = prefix.strip("/")
        self.api_url = api_url.rstrip("/")
        self.client = client or HttpClient(
            timeout=TimeoutConfig(connect=10, read=60),
            retry=RetryConfig(max_attempts=3, delay=2.0),
        )
        self._headers = {
            "Authorization": f"Bearer {token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }

    @classmethod
    def from_config(cls, cfg: dict, *, client: HttpClient | None = None) -> "GitHubContentsStore":
        token_env = cfg.get("token_env", "GITHUB_TOKEN")
        token = os.environ.get(token_env)
        if not token:
            raise ConfigError(f"{token_env} environment variable is required for the github storage backend")
        if not cfg.get("owner") or not cfg.get("repo"):
            raise ConfigError("storage.github.owner and storage.github.repo are required")
        rate = cfg.get("rate_per_sec")
        return cls(
            owner=cfg["owner"],
            repo=cfg["repo"],
            token=token,
            branch=cfg.get("branch", "main"),
            prefix=cfg.get("prefix", ""),
            api_url=cfg.get("api_url", DEFAULT_API_URL),
            client=client or HttpClient(
                timeout=TimeoutConfig(connect=10, read=60),
                retry=RetryConfig(max_attempts=3, delay=2.0),
                rate_limits={"github": float(rate)} if rate else None,
            ),
        )

    def _repo_path(self, path: str) -> str:
        full = f"{self.prefix}/{path}" if self.prefix else path
        return quote(full)

    def _contents_url(self, path: str) -> str:
        return f"{self.api_url}/repos/{self.owner}/{self.repo}/contents/{self._repo_path(path)}"

    def get(self, path: str) -> StoredObject:
        try:
            payload = self.client.get_json(
                self._contents_url(path),
                source_type="github",
                params={"ref": self.branch},
                headers=self._headers,
            )
        except HttpRequestError as exc:
            if exc.status_code == 404:
                raise StoreNotFound(path) from exc
            raise

        if not isinstance(payload, dict) or payload.get("type") != "file":
            raise StoreNotFound(f"{path} is not a file")

        sha = payload["sha"]
        if payload.get("encoding") == "base64" and payload.get("content"):
            return StoredObject(content=_decode(payload, path), revision=sha)

        # Files over 1MB come back without inline content.
        blob = self.client.get_json(
            f"{self.api_url}/repos/{self.owner}/{self.repo}/git/blobs/{sha}",
            source_type="github",
            headers=self._headers,
        )
        return StoredObject(content=_decode(blob, path), revision=sha)

    def put(
        self,
        path: str,
        content: str,
        expected_revision: str | None = None,
        *,
        message: str | None = None,
    ) -> str:
        body = {
            "message": message or f"Update {path}",
            "content": base64.b64encode(content.encode("utf-8")).decode("ascii"),
            "branch": self.branch,
        }
        if expected_revision is not None:
            body["sha"] = expected_revision

        try:
            payload = self.client.put_json(
                self._contents_url(path),
                source_type="github",
                json_body=body,
                headers=self._headers,
            )
        except HttpRequestError as exc:
            if exc.status_code in CONFLICT_STATUS_CODES:
                raise PersistConflict(f"{path} revision changed: {exc}") from exc
            raise

        return payload["content"]["sha"]
