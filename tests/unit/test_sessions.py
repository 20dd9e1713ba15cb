import threading
from datetime import datetime, timedelta, timezone

import pytest

from services.sessions import SessionNotFoundError, SessionStore, SessionSweeper


class FakeClock:
    def __init__(self) -> None:
        self.now = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


def _store(clock: FakeClock) -> SessionStore:
    return SessionStore(ttl=timedelta(minutes=30), clock=clock)


def test_create_seeds_opening_message() -> None:
    clock = FakeClock()
    store = _store(clock)
    session = store.create("We run a bakery.", "What takes most of your time?")
    assert session.stage == "INTAKE"
    assert session.user_turns == 0
    assert [(m.role, m.content) for m in session.transcript] == [("assistant", "What takes most of your time?")]
    assert session.created_at == session.last_active_at == clock.now
    assert store.get(session.id) is session
    assert len(store) == 1


def test_ids_are_unique() -> None:
    store = _store(FakeClock())
    ids = {store.create("", "hi").id for _ in range(50)}
    assert len(ids) == 50


def test_get_unknown_session_raises() -> None:
    store = _store(FakeClock())
    with pytest.raises(SessionNotFoundError) as excinfo:
        store.get("missing")
    assert excinfo.value.session_id == "missing"
    assert isinstance(excinfo.value, KeyError)


def test_sweep_evicts_idle_sessions() -> None:
    clock = FakeClock()
    store = _store(clock)
    stale = store.create("", "hi")
    assert store.get(stale.id) is stale
    clock.advance(minutes=20)
    fresh = store.create("", "hi")
    clock.advance(minutes=11)
    assert store.sweep() == 1
    assert stale.id not in store
    assert store.get(fresh.id) is fresh
    with pytest.raises(SessionNotFoundError):
        store.get(stale.id)


def test_touch_keeps_session_alive() -> None:
    clock = FakeClock()
    store = _store(clock)
    session = store.create("", "hi")
    clock.advance(minutes=25)
    store.touch(session)
    clock.advance(minutes=25)
    assert store.sweep() == 0
    assert store.get(session.id) is session


def test_get_evicts_expired_session_without_sweep() -> None:
    clock = FakeClock()
    store = _store(clock)
    session = store.create("", "hi")
    clock.advance(minutes=31)
    with pytest.raises(SessionNotFoundError):
        store.get(session.id)
    assert len(store) == 0


def test_lock_unknown_session_raises() -> None:
    store = _store(FakeClock())
    with pytest.raises(SessionNotFoundError):
        with store.lock("missing"):
            pass


def test_lock_serialises_concurrent_turns() -> None:
    store = _store(FakeClock())
    session = store.create("", "hi")

    def bump() -> None:
        for _ in range(200):
            with store.lock(session.id):
                current = session.user_turns
                session.user_turns = current + 1

    threads = [threading.Thread(target=bump) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    assert session.user_turns == 800


def test_sweeper_runs_in_background() -> None:
    clock = FakeClock()
    store = _store(clock)
    session = store.create("", "hi")
    clock.advance(hours=1)
    swept = threading.Event()
    original = store.sweep

    def sweep() -> int:
        count = original()
        swept.set()
        return count

    store.sweep = sweep  # type: ignore[method-assign]
    sweeper = SessionSweeper(store, interval_s=0.01)
    sweeper.start()
    try:
        assert swept.wait(2.0)
        assert sweeper.running
    finally:
        sweeper.stop()
    assert not sweeper.running
    assert session.id not in store
