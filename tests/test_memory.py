from __future__ import annotations

import asyncio

from genzoom.core.memory import ContextStore

from conftest import FakeClock


def test_append_keeps_last_ten_messages_oldest_evicted_first(store):
    for i in range(15):
        store.append("u1", f"User: message {i}")
        assert len(store.history("u1")) <= 10

    history = store.history("u1")
    assert history[0] == "User: message 5"
    assert history[-1] == "User: message 14"


def test_conversation_joins_in_insertion_order(store):
    store.append("u1", "User: hi")
    store.append("u1", "Bot: hello")
    assert store.conversation("u1") == "User: hi | Bot: hello"


def test_users_are_isolated(store):
    store.append("u1", "User: one")
    store.append("u2", "User: two")
    assert store.history("u1") == ["User: one"]
    assert store.history("u2") == ["User: two"]


def test_get_creates_and_refreshes_activity(store, clock):
    context = store.get("u1")
    assert context.last_activity == clock.now
    assert context.messages.maxlen == 10

    clock.advance(hours=1)
    assert store.get("u1") is context
    assert context.last_activity == clock.now


def test_set_name(store):
    assert store.display_name("u1") is None
    store.set_name("u1", "Ada")
    assert store.display_name("u1") == "Ada"


def test_sweep_removes_only_expired_contexts(store, clock):
    store.append("idle", "User: old")
    clock.advance(hours=20)
    store.append("active", "User: new")
    clock.advance(hours=4, seconds=1)

    assert store.sweep() == 1
    assert "idle" not in store
    assert "active" in store


def test_sweep_keeps_context_exactly_at_expiration(store, clock):
    store.append("u1", "User: hi")
    clock.advance(hours=24)
    assert store.sweep() == 0
    assert len(store) == 1


def test_expired_user_starts_fresh(store, clock):
    store.append("u1", "User: hi")
    clock.advance(days=2)
    store.sweep()
    assert store.history("u1") == []


def test_start_runs_periodic_sweep_until_stopped():
    clock = FakeClock()
    ticks = []

    async def sleep(seconds):
        ticks.append(seconds)
        clock.advance(hours=25)
        await asyncio.sleep(0)

    async def scenario():
        store = ContextStore(clock=clock, sleep=sleep, sweep_interval=3600.0)
        store.append("u1", "User: hi")
        store.start()
        for _ in range(5):
            await asyncio.sleep(0)
        assert "u1" not in store
        await store.stop()
        return store

    store = asyncio.run(scenario())
    assert ticks and all(t == 3600.0 for t in ticks)
    assert store._sweeper is None
