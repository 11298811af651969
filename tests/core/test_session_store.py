import pytest

from quizpath.core.session_store import MemorySessionStore


@pytest.mark.asyncio
async def test_memory_store_keeps_copies():
    store = MemorySessionStore()
    value = {"participants": {"1": 10}}

    await store.set("quiz_session:1", value)
    value["participants"]["2"] = 11

    stored = await store.get("quiz_session:1")
    assert stored == {"participants": {"1": 10}}

    stored["participants"]["3"] = 12
    assert await store.get("quiz_session:1") == {"participants": {"1": 10}}


@pytest.mark.asyncio
async def test_memory_store_expires_entries(monkeypatch):
    store = MemorySessionStore()
    now = [1000.0]
    monkeypatch.setattr("quizpath.core.session_store.time.time", lambda: now[0])

    await store.set("short", "value", ttl=5)
    await store.set("forever", "value", ttl=0)
    assert await store.get("short") == "value"

    now[0] += 10
    assert await store.get("short") is None
    assert await store.get("forever") == "value"


@pytest.mark.asyncio
async def test_memory_store_delete():
    store = MemorySessionStore()
    await store.set("a", 1)

    assert await store.delete("a") is True
    assert await store.delete("a") is False
    assert await store.get("a") is None


@pytest.mark.asyncio
async def test_memory_store_lock_is_per_key():
    store = MemorySessionStore()
    async with store.lock("quiz_session:1"):
        assert store.lock("quiz_session:1").locked()
        assert not store.lock("quiz_session:2").locked()
    assert not store.lock("quiz_session:1").locked()
