"""Unit tests for the in-memory storage backend."""

import pytest

from planbook.domain.exceptions import StorageNodeNotFoundError
from planbook.infrastructure.storage import InMemoryStorageBackend


@pytest.mark.asyncio
async def test_create_folder_is_idempotent():
    backend = InMemoryStorageBackend()

    first = await backend.create_folder("PlanBook", backend.root_id)
    second = await backend.create_folder("PlanBook", backend.root_id)

    assert first.id == second.id
    assert len(await backend.list_children(backend.root_id)) == 1


@pytest.mark.asyncio
async def test_write_read_and_overwrite_in_place():
    backend = InMemoryStorageBackend()
    folder = await backend.create_folder("plans", backend.root_id)

    created = await backend.write_file(folder.id, "a.json", b"one")
    updated = await backend.write_file(folder.id, "a.json", b"two", file_id=created.id)

    assert updated.id == created.id
    assert updated.modified_at > created.modified_at
    assert await backend.read_file(created.id) == b"two"
    assert [n.name for n in await backend.list_children(folder.id)] == ["a.json"]


@pytest.mark.asyncio
async def test_children_listed_in_insertion_order():
    backend = InMemoryStorageBackend()
    folder = await backend.create_folder("plans", backend.root_id)
    for name in ("c.json", "a.json", "b.json"):
        await backend.write_file(folder.id, name, b"{}")

    assert [n.name for n in await backend.list_children(folder.id)] == ["c.json", "a.json", "b.json"]


@pytest.mark.asyncio
async def test_trash_hides_node_and_descendants():
    backend = InMemoryStorageBackend()
    folder = await backend.create_folder("plans", backend.root_id)
    node = await backend.write_file(folder.id, "evaluation_plan_a.json", b"{}")

    await backend.trash(folder.id)

    assert await backend.find_folder("plans", backend.root_id) is None
    assert await backend.search("evaluation_plan_") == []
    with pytest.raises(StorageNodeNotFoundError):
        await backend.read_file(node.id)
    with pytest.raises(StorageNodeNotFoundError):
        await backend.get_node(node.id)


@pytest.mark.asyncio
async def test_trash_root_rejected():
    backend = InMemoryStorageBackend()
    with pytest.raises(ValueError):
        await backend.trash(backend.root_id)


@pytest.mark.asyncio
async def test_search_matches_files_anywhere():
    backend = InMemoryStorageBackend()
    a = await backend.create_folder("a", backend.root_id)
    b = await backend.create_folder("b", a.id)
    await backend.write_file(b.id, "roster_5_2.json", b"{}")
    await backend.write_file(a.id, "notes.json", b"{}")

    assert [n.name for n in await backend.search("roster_")] == ["roster_5_2.json"]


@pytest.mark.asyncio
async def test_read_folder_is_not_found():
    backend = InMemoryStorageBackend()
    folder = await backend.create_folder("plans", backend.root_id)
    with pytest.raises(StorageNodeNotFoundError):
        await backend.read_file(folder.id)


@pytest.mark.asyncio
async def test_test_connection():
    success, message = await InMemoryStorageBackend().test_connection()
    assert success is True
    assert "1 nodes" in message
