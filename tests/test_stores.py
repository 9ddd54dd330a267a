import asyncio
import json
from pathlib import Path

import pytest

from mediaman import CorruptRecordError, TypeResolutionError
from mediaman.store import JsonFileBackend, MemoryBackend, SqliteBackend, namespace_for


@pytest.fixture(params=["memory", "json", "sqlite"])
def backend(request, tmp_path: Path):
    if request.param == "memory":
        return MemoryBackend()
    if request.param == "json":
        return JsonFileBackend(tmp_path / "collections")
    return SqliteBackend(tmp_path / "db" / "mediaman.db")


def test_namespace_names():
    assert namespace_for("book") == "mediaman-book"
    assert namespace_for("Movie", prefix="shelf") == "shelf-movie"
    with pytest.raises(TypeResolutionError):
        namespace_for(None)


def test_basic_key_value_contract(backend):
    async def scenario():
        store = backend.open("mediaman-book")
        assert await store.get_item("a") is None
        assert await store.keys() == []

        await store.set_item("a", {"id": "a", "collection": [{"pages": 1}]})
        await store.set_item("b", {"id": "b"})
        assert await store.get_item("a") == {"id": "a", "collection": [{"pages": 1}]}
        assert await store.keys() == ["a", "b"]

        # Last write wins
        await store.set_item("a", {"id": "a", "name": "second"})
        assert await store.get_item("a") == {"id": "a", "name": "second"}
        assert await store.keys() == ["a", "b"]

        await store.remove_item("a")
        await store.remove_item("a")
        assert await store.get_item("a") is None
        assert await store.keys() == ["b"]

    asyncio.run(scenario())


def test_namespaces_are_isolated(backend):
    async def scenario():
        books = backend.open("mediaman-book")
        movies = backend.open("mediaman-movie")
        await books.set_item("shared", {"name": "book"})
        await movies.set_item("shared", {"name": "movie"})
        assert await books.get_item("shared") == {"name": "book"}
        assert await movies.get_item("shared") == {"name": "movie"}
        await movies.remove_item("shared")
        assert await books.keys() == ["shared"]
        assert await movies.keys() == []

    asyncio.run(scenario())


def test_reopening_a_namespace_sees_the_same_data(backend):
    async def scenario():
        await backend.open("ns").set_item("k", {"v": 1})
        assert await backend.open("ns").get_item("k") == {"v": 1}

    asyncio.run(scenario())


def test_memory_store_copies_values():
    async def scenario():
        store = MemoryBackend().open("ns")
        value = {"collection": [{"name": "Dune"}]}
        await store.set_item("k", value)
        value["collection"][0]["name"] = "changed"
        fetched = await store.get_item("k")
        fetched["collection"].clear()
        assert await store.get_item("k") == {"collection": [{"name": "Dune"}]}

    asyncio.run(scenario())


def test_json_store_layout_and_odd_keys(tmp_path: Path):
    async def scenario():
        store = JsonFileBackend(tmp_path).open("mediaman-book")
        await store.set_item("shelf/one?", {"id": "shelf/one?"})
        path = tmp_path / "mediaman-book" / "shelf%2Fone%3F.json"
        assert path.exists()
        assert json.loads(path.read_text(encoding="utf-8")) == {"id": "shelf/one?"}
        assert await store.keys() == ["shelf/one?"]
        assert not list((tmp_path / "mediaman-book").glob("*.tmp"))

    asyncio.run(scenario())


def test_json_store_corrupt_file(tmp_path: Path):
    async def scenario():
        store = JsonFileBackend(tmp_path).open("ns")
        (tmp_path / "ns").mkdir()
        (tmp_path / "ns" / "bad.json").write_text("{ nope", encoding="utf-8")
        with pytest.raises(CorruptRecordError):
            await store.get_item("bad")

    asyncio.run(scenario())


def test_sqlite_persists_across_backends(tmp_path: Path):
    async def scenario():
        path = tmp_path / "m.db"
        await SqliteBackend(path).open("ns").set_item("k", {"name": "x"})
        assert await SqliteBackend(path).open("ns").get_item("k") == {"name": "x"}

    asyncio.run(scenario())


def test_json_store_failed_write_leaves_no_temp_file(tmp_path: Path):
    async def scenario():
        store = JsonFileBackend(tmp_path).open("ns")
        await store.set_item("k", {"v": 1})
        with pytest.raises(TypeError):
            await store.set_item("k", {"v": object()})
        assert not list((tmp_path / "ns").glob("*.tmp"))
        assert await store.get_item("k") == {"v": 1}

    asyncio.run(scenario())
