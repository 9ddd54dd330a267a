import asyncio
import logging
from pathlib import Path

import pytest

from mediaman import (
    Book,
    CollectionService,
    CorruptRecordError,
    Genre,
    MediaCollection,
    Movie,
    NotFoundError,
    StoreError,
    TypeResolutionError,
    ValidationError,
)
from mediaman.store import JsonFileBackend, KeyValueStore, MemoryBackend, MemoryStore, StoreBackend


class RecordingStore(MemoryStore):
    """Memory store that counts every call made against it."""

    def __init__(self, namespace: str) -> None:
        super().__init__(namespace)
        self.calls = []

    async def get_item(self, key):
        self.calls.append(("get", key))
        return await super().get_item(key)

    async def set_item(self, key, value):
        self.calls.append(("set", key))
        await super().set_item(key, value)

    async def remove_item(self, key):
        self.calls.append(("remove", key))
        await super().remove_item(key)

    async def keys(self):
        self.calls.append(("keys", None))
        return await super().keys()


class FailingStore(KeyValueStore):
    async def get_item(self, key):
        raise OSError("disk on fire")

    async def set_item(self, key, value):
        raise OSError("quota exceeded")

    async def remove_item(self, key):
        raise OSError("read-only")

    async def keys(self):
        raise OSError("unreadable")


class SingleStoreBackend(StoreBackend):
    def __init__(self, factory):
        self.factory = factory
        self.opened = []

    def open(self, namespace):
        store = self.factory(namespace)
        self.opened.append(store)
        return store


def run(coro):
    return asyncio.run(coro)


def test_service_requires_a_variant():
    with pytest.raises(TypeResolutionError):
        CollectionService(None)
    with pytest.raises(TypeResolutionError):
        CollectionService("vinyl")


def test_service_binds_one_namespace_per_variant():
    backend = SingleStoreBackend(MemoryStore)
    books = CollectionService("book", backend)
    movies = CollectionService(Movie, backend)
    assert books.namespace == "mediaman-book"
    assert movies.namespace == "mediaman-movie"
    assert [s.namespace for s in backend.opened] == ["mediaman-book", "mediaman-movie"]


def test_end_to_end_book_collection(tmp_path: Path):
    async def scenario():
        backend = JsonFileBackend(tmp_path)
        service = CollectionService("book", backend)
        c = MediaCollection.create("book", name="Sci-Fi")
        c = c.add(Book(name="Dune", author="Herbert", genre="Fiction", pages=412))
        await service.save(c)

        fresh = CollectionService("book", JsonFileBackend(tmp_path))
        loaded = await fresh.load(c.id)
        assert loaded == c
        assert loaded.name == "Sci-Fi"
        (item,) = loaded.items
        assert type(item) is Book
        assert item.pages == 412
        assert item.author == "Herbert"
        assert item.genre is Genre.FICTION

    run(scenario())


def test_variants_do_not_collide_on_identifier():
    async def scenario():
        backend = MemoryBackend()
        books = CollectionService("book", backend)
        movies = CollectionService("movie", backend)
        await books.save(MediaCollection.create("book", name="B", id="shared").add(Book(name="Dune", pages=412)))
        await movies.save(MediaCollection.create("movie", name="M", id="shared").add(Movie(name="Alien", duration=117)))

        b = await books.load("shared")
        m = await movies.load("shared")
        assert b.name == "B" and type(b.items[0]) is Book
        assert m.name == "M" and type(m.items[0]) is Movie
        assert not hasattr(b.items[0], "director")

    run(scenario())


def test_load_missing_is_not_found():
    async def scenario():
        service = CollectionService("book")
        with pytest.raises(NotFoundError) as info:
            await service.load("nonexistent-id")
        assert info.value.identifier == "nonexistent-id"

    run(scenario())


def test_remove_missing_is_fine():
    async def scenario():
        service = CollectionService("book")
        await service.remove("nonexistent-id")
        assert await service.list_identifiers() == []

    run(scenario())


def test_save_none_and_blank_remove_never_touch_the_store():
    backend = SingleStoreBackend(RecordingStore)
    service = CollectionService("book", backend)
    store = backend.opened[0]

    async def scenario():
        with pytest.raises(ValidationError):
            await service.save(None)
        for bad in ("", "   ", None):
            with pytest.raises(ValidationError):
                await service.remove(bad)
        with pytest.raises(ValidationError):
            await service.load("")

    run(scenario())
    assert store.calls == []


def test_save_rejects_foreign_variant_collection():
    async def scenario():
        service = CollectionService("book")
        with pytest.raises(ValidationError):
            await service.save(MediaCollection.create("movie"))
        with pytest.raises(ValidationError):
            await service.save({"id": "x"})

    run(scenario())


def test_save_empty_collection_is_stored():
    async def scenario():
        service = CollectionService("book")
        c = MediaCollection.create("book", name="Empty")
        await service.save(c)
        assert await service.load(c.id) == c

    run(scenario())


def test_list_and_remove():
    async def scenario():
        service = CollectionService("book")
        for ident in ("one", "two", "three"):
            await service.save(MediaCollection.create("book", id=ident))
        assert await service.list_identifiers() == ["one", "two", "three"]
        await service.remove("two")
        assert await service.list_identifiers() == ["one", "three"]
        with pytest.raises(NotFoundError):
            await service.load("two")

    run(scenario())


def test_save_overwrites_same_identifier():
    async def scenario():
        service = CollectionService("book")
        c = MediaCollection.create("book", name="v1", id="c")
        await service.save(c)
        await service.save(c.rename("v2").add(Book(name="Emma")))
        loaded = await service.load("c")
        assert loaded.name == "v2"
        assert len(loaded) == 1

    run(scenario())


def test_record_without_id_takes_its_key():
    async def scenario():
        backend = MemoryBackend()
        await backend.open("mediaman-book").set_item("legacy", {"name": "Old", "collection": []})
        loaded = await CollectionService("book", backend).load("legacy")
        assert loaded.id == "legacy"
        assert loaded.name == "Old"

    run(scenario())


def test_corrupt_record_surfaces_as_store_error():
    async def scenario():
        backend = MemoryBackend()
        await backend.open("mediaman-book").set_item("bad", ["not", "an", "object"])
        with pytest.raises(CorruptRecordError):
            await CollectionService("book", backend).load("bad")

    run(scenario())


@pytest.mark.parametrize(
    "call",
    [
        lambda s: s.load("x"),
        lambda s: s.save(MediaCollection.create("book")),
        lambda s: s.list_identifiers(),
        lambda s: s.remove("x"),
        lambda s: s.exists("x"),
    ],
)
def test_store_failures_become_store_errors(call, caplog):
    service = CollectionService("book", SingleStoreBackend(FailingStore))
    with caplog.at_level(logging.ERROR, logger="mediaman.service"):
        with pytest.raises(StoreError) as info:
            run(call(service))
    assert isinstance(info.value.__cause__, OSError)
    assert "Store" in caplog.text


def test_caller_supplied_logger_receives_diagnostics(caplog):
    sink = logging.getLogger("tests.sink")

    async def scenario():
        service = CollectionService("book", logger=sink)
        await service.save(MediaCollection.create("book", id="c"))

    with caplog.at_level(logging.DEBUG, logger="tests.sink"):
        run(scenario())
    assert any(r.name == "tests.sink" and "Saved" in r.getMessage() for r in caplog.records)


def test_item_conveniences():
    async def scenario():
        service = CollectionService("book")
        c = await service.create("Shelf", identifier="shelf")
        assert await service.exists("shelf")
        assert not await service.exists("other")

        dune = Book(name="Dune", pages=412)
        c = await service.add_item("shelf", dune)
        assert (await service.load("shelf")).ids() == [dune.id]

        with pytest.raises(ValidationError):
            await service.add_item("shelf", Movie(name="Alien"))
        with pytest.raises(ValidationError):
            await service.add_item("shelf", None)
        with pytest.raises(NotFoundError):
            await service.add_item("missing", Book(name="X"))

        c = await service.remove_item("shelf", dune.id)
        assert c.items == ()
        assert (await service.load("shelf")).items == ()
        with pytest.raises(ValidationError):
            await service.remove_item("shelf", "")

    run(scenario())


def test_clear_empties_only_own_partition():
    async def scenario():
        backend = MemoryBackend()
        books = CollectionService("book", backend)
        movies = CollectionService("movie", backend)
        await books.create("a")
        await books.create("b")
        await movies.create("m", identifier="m")
        assert await books.clear() == 2
        assert await books.list_identifiers() == []
        assert await movies.list_identifiers() == ["m"]

    run(scenario())


def test_concurrent_saves_last_write_wins():
    async def scenario():
        service = CollectionService("book")
        base = MediaCollection.create("book", id="race")
        await asyncio.gather(service.save(base.rename("first")), service.save(base.rename("second")))
        assert (await service.load("race")).name == "second"

    run(scenario())


def test_concurrent_saves_to_json_files_settle_on_one_write(tmp_path: Path):
    async def scenario():
        backend = JsonFileBackend(tmp_path)
        service = CollectionService("book", backend)
        base = MediaCollection.create("book", id="race")
        for n in range(50):
            base = base.add(Book(name=f"Book {n}", author="Anon", pages=n))
        names = [f"n{i}" for i in range(40)]
        await asyncio.gather(*(service.save(base.rename(name)) for name in names))

        loaded = await service.load("race")
        assert loaded.name in names
        assert loaded.items == base.items
        assert await service.list_identifiers() == ["race"]
        assert not list((tmp_path / "mediaman-book").glob("*.tmp"))

    run(scenario())


def test_save_rejects_items_of_another_variant():
    backend = SingleStoreBackend(RecordingStore)
    service = CollectionService("book", backend)
    store = backend.opened[0]
    mixed = MediaCollection.create("book", id="c").add(Movie(name="Alien", director="Scott", duration=117))

    with pytest.raises(ValidationError):
        run(service.save(mixed))
    assert store.calls == []


def test_legacy_identifier_wins_over_store_key():
    async def scenario():
        backend = MemoryBackend()
        await backend.open("mediaman-book").set_item("k", {"_identifier": "old-id", "_name": "Old"})
        loaded = await CollectionService("book", backend).load("k")
        assert loaded.id == "old-id"
        assert loaded.name == "Old"

    run(scenario())
