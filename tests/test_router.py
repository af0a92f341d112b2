"""
tests/test_router.py - merging results across the two stores
"""

import pytest

from jarvis.rag.router import ContextItem, QueryMode, build_context_text
from jarvis.semantic.store import StoreState


async def seed_both(service):
    for text in ("memory apples", "memory bananas", "memory cherries"):
        await service.add_to_memory(text, is_user=True)
    for text in ("knowledge apples", "knowledge bananas", "knowledge cherries", "knowledge dates"):
        await service.add_knowledge(text, {"source": "manual"})


@pytest.mark.asyncio
async def test_query_both_splits_limit_and_puts_knowledge_first(service):
    await seed_both(service)

    items = await service.router.query_both("apples", 5)

    assert len(items) == 5
    origins = [item.origin for item in items]
    assert origins == ["knowledge"] * 3 + ["memory"] * 2
    assert items[0].content == "knowledge apples"
    assert items[3].content == "memory apples"
    assert all(item.metadata["origin"] == item.origin for item in items)


@pytest.mark.asyncio
async def test_query_both_with_odd_and_tiny_limits(service):
    await seed_both(service)

    assert [i.origin for i in await service.router.query_both("x", 1)] == ["knowledge"]
    assert await service.router.query_both("x", 0) == []


@pytest.mark.asyncio
async def test_knowledge_only_and_memory_only(service):
    await seed_both(service)

    knowledge = await service.router.query_knowledge_only("bananas", 4)
    assert len(knowledge) == 4
    assert {i.origin for i in knowledge} == {"knowledge"}
    assert knowledge[0].content == "knowledge bananas"

    memory = await service.router.query_memory_only("bananas", 5)
    assert len(memory) == 2
    assert {i.origin for i in memory} == {"memory"}
    assert memory[0].content == "memory bananas"


@pytest.mark.asyncio
async def test_dispatch_by_mode(service):
    await seed_both(service)

    for mode, origins in (
        (QueryMode.BOTH, {"knowledge", "memory"}),
        (QueryMode.KNOWLEDGE, {"knowledge"}),
        ("memory", {"memory"}),
    ):
        items = await service.router.query("cherries", 4, mode)
        assert {i.origin for i in items} == origins


@pytest.mark.asyncio
async def test_uninitialized_stores_are_initialised_lazily(service):
    items = await service.router.query_both("hello", 4)

    assert [i.content for i in items] == [
        "Initial knowledge store entry",
        "Hello, I am Jarvis. How can I assist you today?",
    ]


def test_context_text_joins_contents_in_order():
    items = [
        ContextItem(content="k1", metadata={}, origin="knowledge", score=0.9),
        ContextItem(content="m1", metadata={}, origin="memory", score=0.8),
    ]
    assert build_context_text(items) == "k1\n\nm1"
    assert build_context_text([]) == ""


@pytest.mark.asyncio
async def test_origin_is_tagged_without_overwriting_source(service):
    result = await service.ingest_confluence_page("wiki apples page", {"title": "Wiki"})
    assert result.success
    await service.add_to_memory("memory apples", is_user=True)

    items = await service.router.query_both("apples", 2)

    knowledge, memory = items
    assert knowledge.origin == knowledge.metadata["origin"] == "knowledge"
    assert knowledge.metadata["source"] == "confluence"
    assert memory.origin == memory.metadata["origin"] == "memory"
    assert "source" not in memory.metadata


@pytest.mark.asyncio
async def test_zero_share_still_initialises_the_store(service):
    assert service.memory.state is StoreState.UNINITIALIZED

    items = await service.router.query_both("x", 1)

    assert [i.origin for i in items] == ["knowledge"]
    assert service.memory.state is StoreState.READY
    assert service.knowledge.state is StoreState.READY
