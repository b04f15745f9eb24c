import pytest

from livespec.models.live_source import LiveSpecSource
from livespec.repositories.live_source_repository import LiveSourceRepository
from livespec.repositories.spec_snapshot_repository import SpecSnapshotRepository
from livespec.services.spec_hasher import hash_spec

pytestmark = pytest.mark.anyio


def _source(name="Local API"):
    return LiveSpecSource(name=name, url="http://localhost:8000/openapi.json")


def test_add_and_get():
    repo = LiveSourceRepository()
    source = repo.add(_source())

    assert repo.get_source(source.id) is source
    assert repo.list_sources() == [source]


def test_add_duplicate_raises():
    repo = LiveSourceRepository()
    source = repo.add(_source())

    with pytest.raises(ValueError):
        repo.add(source)


def test_replace_swaps_the_source():
    repo = LiveSourceRepository()
    source = repo.add(_source())

    renamed = repo.replace(source.model_copy(update={"name": "Renamed"}))

    assert repo.get_source(source.id).name == "Renamed"
    assert renamed.id == source.id


def test_remove():
    repo = LiveSourceRepository()
    source = repo.add(_source())

    assert repo.remove(source.id) is True
    assert repo.remove(source.id) is False
    assert repo.get_source(source.id) is None


async def test_snapshot_roundtrip_is_isolated(users_spec):
    repo = SpecSnapshotRepository()
    snapshot = repo.save("live-spec-test", users_spec)

    users_spec["paths"].clear()
    previous = await repo.get_previous_document("live-spec-test")

    assert snapshot.spec_hash == hash_spec(previous)
    assert "/users" in previous["paths"]

    previous["paths"].clear()
    assert "/users" in (await repo.get_previous_document("live-spec-test"))["paths"]


async def test_snapshot_missing_and_delete(users_spec):
    repo = SpecSnapshotRepository()
    assert await repo.get_previous_document("live-spec-test") is None

    repo.save("live-spec-test", users_spec)
    repo.delete("live-spec-test")

    assert repo.get("live-spec-test") is None
