import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

import asyncio

import pytest

from inventory_agent.agent.types import Message, MessageRole, ToolCall
from inventory_agent.core.config import Settings
from inventory_agent.services.checkpoint_service import (
    InMemoryCheckpointStore,
    RedisCheckpointStore,
    create_checkpoint_store,
    thread_key,
)

from fakes import FakeRedis


def sample_turn():
    call = ToolCall(id="call_1", name="item_lookup", arguments='{"query": "blue sofa"}')
    return (
        Message.human("Do you have a blue sofa?"),
        Message.ai("", tool_calls=(call,)),
        Message.tool('{"results": [], "searchType": "text", "query": "blue sofa", "count": 0}', call),
        Message.ai("No blue sofas right now."),
    )


def test_in_memory_store_appends_in_order():
    store = InMemoryCheckpointStore()
    first, second = sample_turn()[:2], sample_turn()[2:]

    asyncio.run(store.save("t1", first))
    asyncio.run(store.save("t1", second))

    assert asyncio.run(store.load("t1")) == sample_turn()
    assert asyncio.run(store.load("unknown")) == ()
    assert store.thread_ids() == ["t1"]


def test_in_memory_load_is_a_snapshot():
    store = InMemoryCheckpointStore()
    asyncio.run(store.save("t1", [Message.human("hi")]))

    snapshot = asyncio.run(store.load("t1"))
    asyncio.run(store.save("t1", [Message.ai("hello")]))

    assert len(snapshot) == 1
    assert len(asyncio.run(store.load("t1"))) == 2


def test_redis_store_round_trips_tool_calls():
    redis = FakeRedis()
    store = RedisCheckpointStore(redis_client=redis, ttl_seconds=60)

    asyncio.run(store.save("t1", sample_turn()))
    loaded = asyncio.run(store.load("t1"))

    assert loaded == sample_turn()
    assert loaded[1].tool_calls[0].name == "item_lookup"
    assert loaded[2].role is MessageRole.TOOL
    assert loaded[2].tool_call_id == "call_1"
    assert len(redis.lists[thread_key("t1")]) == 4


def test_redis_store_sets_expiry_when_configured():
    redis = FakeRedis()
    store = RedisCheckpointStore(redis_client=redis, ttl_seconds=3600)

    asyncio.run(store.save("t1", [Message.human("hi")]))

    assert redis.expirations == {"thread:t1:messages": 3600}


def test_redis_store_without_ttl_never_expires():
    redis = FakeRedis()
    store = RedisCheckpointStore(redis_client=redis)

    asyncio.run(store.save("t1", [Message.human("hi")]))

    assert redis.expirations == {}


def test_redis_store_skips_empty_delta():
    redis = FakeRedis()
    store = RedisCheckpointStore(redis_client=redis, ttl_seconds=60)

    asyncio.run(store.save("t1", []))

    assert redis.commands == []


def test_thread_key_format():
    assert thread_key("abc") == "thread:abc:messages"


def test_factory_selects_backend():
    assert isinstance(create_checkpoint_store(Settings(checkpoint_backend="memory")), InMemoryCheckpointStore)

    redis_store = create_checkpoint_store(
        Settings(checkpoint_backend="redis", redis_url="redis://localhost:6379/5", checkpoint_ttl_seconds=120)
    )
    assert isinstance(redis_store, RedisCheckpointStore)
    assert redis_store.ttl_seconds == 120


def test_factory_rejects_unknown_backend():
    with pytest.raises(ValueError, match="Unknown checkpoint backend"):
        create_checkpoint_store(Settings(checkpoint_backend="sqlite"))
