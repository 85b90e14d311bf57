import pytest

from fuelwatch.common.errors import PersistConflict, StoreNotFound
from fuelwatch.storage.store import FileSnapshotStore, MemorySnapshotStore, content_revision


@pytest.fixture(params=["memory", "file"])
def store(request, tmp_path):
    if request.param == "memory":
        return MemorySnapshotStore()
    return FileSnapshotStore(tmp_path / "store")


def test_get_missing_raises(store):
    with pytest.raises(StoreNotFound):
        store.get("current/asda.json")


def test_create_then_conditional_replace(store):
    first = store.put("current/asda.json", "v1", expected_revision=None)
    assert store.get("current/asda.json").revision == first

    second = store.put("current/asda.json", "v2", expected_revision=first)
    stored = store.get("current/asda.json")
    assert stored.content == "v2"
    assert stored.revision == second != first


def test_create_only_rejects_existing_object(store):
    store.put("archive/asda/x.json", "v1")
    with pytest.raises(PersistConflict):
        store.put("archive/asda/x.json", "v2", expected_revision=None)
    assert store.get("archive/asda/x.json").content == "v1"


def test_stale_revision_is_rejected(store):
    first = store.put("current/asda.json", "v1")
    store.put("current/asda.json", "v2", expected_revision=first)
    with pytest.raises(PersistConflict):
        store.put("current/asda.json", "v3", expected_revision=first)
    assert store.get("current/asda.json").content == "v2"


def test_replace_of_missing_object_is_rejected(store):
    with pytest.raises(PersistConflict):
        store.put("current/asda.json", "v1", expected_revision="abc")


@pytest.mark.parametrize("path", ["/etc/passwd", "../escape.json", "current/../../x.json", ""])
def test_rejects_unsafe_paths(store, path):
    with pytest.raises(ValueError):
        store.put(path, "x")


def test_file_store_revision_is_content_hash(tmp_path):
    store = FileSnapshotStore(tmp_path)
    revision = store.put("current/bp.json", '{"stations": []}\n')
    assert revision == content_revision('{"stations": []}\n')
    assert (tmp_path / "current" / "bp.json").read_text(encoding="utf-8") == '{"stations": []}\n'
