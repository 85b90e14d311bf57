"""Snapshot persistence contract and local backends.

Every backend exposes ``get(path) -> StoredObject`` and
``put(path, content, expected_revision) -> new revision``. ``put`` is always
conditional: ``expected_revision=None`` means "create, must not exist", and a
string means "replace only if the stored revision still matches". A failed
precondition raises ``PersistConflict``.
"""

from __future__ import annotations

import fcntl
import hashlib
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Iterator, Protocol

from fuelwatch.common.errors import PersistConflict, StoreNotFound
from fuelwatch.common.fs import ensure_dir, write_text_atomic


@dataclass(frozen=True)
class StoredObject:
    content: str
    revision: str


class SnapshotStore(Protocol):
    def get(self, path: str) -> StoredObject:
        ...

    def put(
        self,
        path: str,
        content: str,
        expected_revision: str | None = None,
        *,
        message: str | None = None,
    ) -> str:
        ...


def content_revision(content: str) -> str:
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def _check_precondition(path: str, current: str | None, expected: str | None) -> None:
    if expected is None and current is not None:
        raise PersistConflict(f"{path} already exists")
    if expected is not None and current != expected:
        raise PersistConflict(f"{path} revision changed (expected {expected}, found {current})")


def _clean_path(path: str) -> str:
    parts = PurePosixPath(path).parts
    if not parts or path.startswith("/") or any(part in ("..", ".") for part in parts):
        raise ValueError(f"Invalid store path: {path!r}")
    return "/".join(parts)


class MemorySnapshotStore:
    """Process-local store; revisions are a per-path write counter."""

    def __init__(self) -> None:
        self._objects: dict[str, StoredObject] = {}
        self._lock = threading.Lock()
        self._counter = 0

    def paths(self) -> list[str]:
        with self._lock:
            return sorted(self._objects)

    def get(self, path: str) -> StoredObject:
        path = _clean_path(path)
        with self._lock:
            stored = self._objects.get(path)
        if stored is None:
            raise StoreNotFound(path)
        return stored

    def put(
        self,
        path: str,
        content: str,
        expected_revision: str | None = None,
        *,
        message: str | None = None,
    ) -> str:
        path = _clean_path(path)
        with self._lock:
            existing = self._objects.get(path)
            _check_precondition(path, existing.revision if existing else None, expected_revision)
            self._counter += 1
            revision = f"r{self._counter}"
            self._objects[path] = StoredObject(content=content, revision=revision)
            return revision


class FileSnapshotStore:
    """Directory-backed store; revisions are content hashes, writes are atomic renames."""

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    def _file(self, path: str) -> Path:
        return self.root / _clean_path(path)

    @contextmanager
    def _locked(self) -> Iterator[None]:
        ensure_dir(self.root)
        with (self.root / ".store.lock").open("a") as handle:
            fcntl.flock(handle.fileno(), fcntl.LOCK_EX)
            try:
                yield
            finally:
                fcntl.flock(handle.fileno(), fcntl.LOCK_UN)

    def _read(self, path: str) -> StoredObject | None:
        target = self._file(path)
        if not target.is_file():
            return None
        content = target.read_text(encoding="utf-8")
        return StoredObject(content=content, revision=content_revision(content))

    def get(self, path: str) -> StoredObject:
        with self._locked():
            stored = self._read(path)
        if stored is None:
            raise StoreNotFound(path)
        return stored

    def put(
        self,
        path: str,
        content: str,
        expected_revision: str | None = None,
        *,
        message: str | None = None,
    ) -> str:
        with self._locked():
            existing = self._read(path)
            _check_precondition(path, existing.revision if existing else None, expected_revision)
            write_text_atomic(self._file(path), content)
        return content_revision(content)
