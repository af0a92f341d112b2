"""
tests/test_semantic_store.py - add/search/reset contract of one store
"""

import asyncio

import pytest

from jarvis.errors import EmbeddingError, StaleWriteError, StoreUninitializedRecoverable
from jarvis.semantic.store import SemanticStore, StoreState, call_with_lazy_init
from jarvis.vector_store.memory_store import InMemoryVectorStore

from tests.conftest import StubEmbedder


def make_store(embedder):
    return SemanticStore(
        "knowledge",
        InMemoryVectorStore("knowledge"),
        embedder,
        seed_text="Initial knowledge store entry",
        seed_metadata={"type": "system"},
    )


@pytest.mark.asyncio
async def test_initialize_seeds_exactly_one_document(embedder):
    store = make_store(embedder)
    assert store.state is StoreState.UNINITIALIZED

    assert await store.initialize() is True
    assert await store.initialize() is False

    docs = await store.all_documents()
    assert store.state is StoreState.READY
    assert len(docs) == 1
    assert docs[0].text == "Initial knowledge store entry"
    assert docs[0].metadata["type"] == "system"
    assert docs[0].metadata["id"] == docs[0].id


@pytest.mark.asyncio
async def test_uninitialized_store_raises_recoverable(embedder):
    store = make_store(embedder)

    with pytest.raises(StoreUninitializedRecoverable):
        await store.add("hello", {"type": "knowledge"})

    doc_id = await call_with_lazy_init(store, lambda: store.add("hello", {"type": "knowledge"}))
    assert doc_id
    assert store.count() == 2


@pytest.mark.asyncio
async def test_add_then_search_returns_document(embedder):
    store = make_store(embedder)
    await store.initialize()

    doc_id = await store.add("zebra zoo", {"type": "knowledge", "source": "manual"})
    results = await store.similarity_search("zebra", 1)

    assert [doc.id for doc in results] == [doc_id]
    assert results[0].metadata["source"] == "manual"
    assert "timestamp" in results[0].metadata


@pytest.mark.asyncio
async def test_failed_add_leaves_store_unchanged():
    embedder = StubEmbedder(fail_on=["FAIL"])
    store = make_store(embedder)
    await store.initialize()

    with pytest.raises(EmbeddingError):
        await store.add("FAIL this one", {"type": "knowledge"})
    with pytest.raises(EmbeddingError):
        await store.add("", {"type": "knowledge"})

    assert store.count() == 1
    assert len(store.tracker) == 0
    await store.drain()
    assert store.count() == 1


@pytest.mark.asyncio
async def test_search_result_bounds_and_ordering(embedder):
    store = make_store(embedder)
    await store.initialize()
    for text in ("aaaa", "aaab", "bbbb", "cccc"):
        await store.add(text, {"type": "knowledge"})

    results = await store.similarity_search_with_scores("aaaa", 3)
    assert len(results) == 3
    assert results[0][0].text == "aaaa"
    scores = [score for _, score in results]
    assert scores == sorted(scores, reverse=True)

    assert len(await store.similarity_search("aaaa", 50)) == 5
    assert await store.similarity_search("aaaa", 0) == []


@pytest.mark.asyncio
async def test_empty_query_returns_insertion_order(embedder):
    store = make_store(embedder)
    await store.initialize()
    await store.add("first", {"type": "knowledge"})
    await store.add("second", {"type": "knowledge"})

    results = await store.similarity_search("", 2)

    assert [doc.text for doc in results] == ["Initial knowledge store entry", "first"]


@pytest.mark.asyncio
async def test_search_waits_for_pending_adds(embedder):
    store = make_store(embedder)
    await store.initialize()
    gate = embedder.hold("slow")

    add = asyncio.create_task(store.add("slow document", {"type": "knowledge"}))
    await asyncio.sleep(0)
    assert len(store.tracker) == 1

    search = asyncio.create_task(store.similarity_search("slow", 10))
    await asyncio.sleep(0)
    assert not search.done()

    gate.set()
    doc_id = await add
    results = await search
    assert doc_id in [doc.id for doc in results]


@pytest.mark.asyncio
async def test_concurrent_adds_then_drain(embedder):
    store = make_store(embedder)
    await store.initialize()
    gate = embedder.hold("first")

    first = asyncio.create_task(store.add("first racer", {"type": "knowledge"}))
    second = asyncio.create_task(store.add("second racer", {"type": "knowledge"}))
    await asyncio.sleep(0)
    second_id = await second
    gate.set()
    first_id = await first

    await store.drain()
    assert len(store.tracker) == 0
    docs = await store.all_documents()
    # insertion order is completion order
    assert [doc.id for doc in docs[1:]] == [second_id, first_id]


@pytest.mark.asyncio
async def test_abandoned_add_still_completes(embedder):
    store = make_store(embedder)
    await store.initialize()
    gate = embedder.hold("abandoned")

    caller = asyncio.create_task(store.add("abandoned doc", {"type": "knowledge"}))
    await asyncio.sleep(0)
    caller.cancel()
    with pytest.raises(asyncio.CancelledError):
        await caller

    gate.set()
    await store.drain()
    assert [doc.text for doc in await store.all_documents()][-1] == "abandoned doc"


@pytest.mark.asyncio
async def test_timestamps_are_monotonic(embedder):
    store = make_store(embedder)
    await store.initialize()
    for i in range(5):
        await store.add(f"doc {i}", {"type": "knowledge"})

    stamps = [doc.metadata["timestamp"] for doc in await store.all_documents()]
    assert stamps == sorted(stamps)


@pytest.mark.asyncio
async def test_reset_drains_then_reseeds(embedder):
    store = make_store(embedder)
    await store.initialize()
    old_id = await store.add("old doc", {"type": "knowledge"})
    gate = embedder.hold("inflight")
    inflight = asyncio.create_task(store.add("inflight doc", {"type": "knowledge"}))
    await asyncio.sleep(0)

    reset = asyncio.create_task(store.reset())
    await asyncio.sleep(0)
    assert store.state is StoreState.RESETTING
    assert not reset.done()

    gate.set()
    await inflight
    await reset

    docs = await store.all_documents()
    assert store.state is StoreState.READY
    assert store.generation == 1
    assert [doc.text for doc in docs] == ["Initial knowledge store entry"]
    assert old_id not in [doc.id for doc in docs]


@pytest.mark.asyncio
async def test_add_issued_during_reset_lands_in_new_generation(embedder):
    store = make_store(embedder)
    await store.initialize()
    gate = embedder.hold("blocker")
    blocker = asyncio.create_task(store.add("blocker doc", {"type": "knowledge"}))
    await asyncio.sleep(0)

    reset = asyncio.create_task(store.reset())
    await asyncio.sleep(0)
    late = asyncio.create_task(store.add("late doc", {"type": "knowledge"}))
    await asyncio.sleep(0)

    gate.set()
    await blocker
    await reset
    await late

    texts = [doc.text for doc in await store.all_documents()]
    assert texts == ["Initial knowledge store entry", "late doc"]


@pytest.mark.asyncio
async def test_finished_adds_leave_tracker_without_a_read(embedder):
    store = make_store(embedder)
    await store.initialize()

    for i in range(50):
        await store.add(f"write only {i}", {"type": "knowledge"})

    assert len(store.tracker) == 0
    assert store.count() == 51


@pytest.mark.asyncio
async def test_returned_metadata_does_not_alias_stored_metadata(embedder):
    store = make_store(embedder)
    await store.initialize()
    await store.add("zebra zoo", {"type": "knowledge", "source": "manual"})

    found = await store.similarity_search("zebra", 1)
    found[0].metadata["source"] = "tampered"
    listed = await store.all_documents()
    listed[-1].metadata["type"] = "tampered"

    again = await store.similarity_search("zebra", 1)
    assert again[0].metadata["source"] == "manual"
    assert again[0].metadata["type"] == "knowledge"


@pytest.mark.asyncio
async def test_write_finishing_for_old_generation_is_dropped(embedder):
    store = make_store(embedder)
    await store.initialize()
    gate = embedder.hold("stale")

    add = asyncio.create_task(store.add("stale doc", {"type": "knowledge"}))
    await asyncio.sleep(0)
    store.tracker.advance()
    gate.set()

    with pytest.raises(StaleWriteError):
        await add
    assert store.count() == 1
    assert [doc.text for doc in await store.all_documents()] == ["Initial knowledge store entry"]
