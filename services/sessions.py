"""In-memory session store for diagnostic conversations."""
from __future__ import annotations

import logging
import threading
import uuid
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Iterator, Optional

from fit.models import Session
from observability.logger import log_event

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


class SessionNotFoundError(KeyError):
    """Raised when a session id is unknown or its session has expired."""

    def __init__(self, session_id: str) -> None:
        super().__init__(session_id)
        self.session_id = session_id


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionStore:
    """Process-wide map of live sessions with inactivity-based eviction.

    Sessions are never persisted; a restart loses all of them. Each session id
    also owns a lock so transports can serialise concurrent turns for the
    same conversation.
    """

    def __init__(self, ttl: timedelta, *, clock: Optional[Clock] = None) -> None:
        self._ttl = ttl
        self._clock = clock or _utcnow
        self._sessions: Dict[str, Session] = {}
        self._locks: Dict[str, threading.Lock] = {}
        self._guard = threading.Lock()

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    def __len__(self) -> int:
        with self._guard:
            return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        with self._guard:
            return session_id in self._sessions

    def now(self) -> datetime:
        return self._clock()

    def create(self, context_text: str, opening: str) -> Session:
        """Create a session seeded with the opening assistant message."""

        now = self._clock()
        session = Session(
            id=str(uuid.uuid4()),
            created_at=now,
            last_active_at=now,
            context_text=context_text,
        )
        session.add_message("assistant", opening)
        with self._guard:
            self._sessions[session.id] = session
            self._locks[session.id] = threading.Lock()
        log_event("session.create", session.id, stage=session.stage, chars=len(context_text))
        return session

    def get(self, session_id: str) -> Session:
        """Return the live session for ``session_id``.

        Raises:
            SessionNotFoundError: If the id is unknown or the session expired.
        """

        now = self._clock()
        with self._guard:
            session = self._sessions.get(session_id)
            if session is not None and self._expired(session, now):
                self._evict(session_id)
                session = None
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    def touch(self, session: Session) -> None:
        session.last_active_at = self._clock()

    def sweep(self) -> int:
        """Evict every session idle for longer than the TTL and return the count."""

        now = self._clock()
        evicted = 0
        with self._guard:
            for session_id in list(self._sessions.keys()):
                session = self._sessions.get(session_id)
                if session is not None and self._expired(session, now):
                    self._evict(session_id)
                    evicted += 1
        if evicted:
            logger.info("Evicted %d idle session(s)", evicted)
        return evicted

    @contextmanager
    def lock(self, session_id: str) -> Iterator[None]:
        """Hold the per-session lock for the duration of a turn."""

        with self._guard:
            lock = self._locks.get(session_id)
        if lock is None:
            raise SessionNotFoundError(session_id)
        with lock:
            yield

    def clear(self) -> None:
        with self._guard:
            self._sessions.clear()
            self._locks.clear()

    def _expired(self, session: Session, now: datetime) -> bool:
        return now - session.last_active_at > self._ttl

    def _evict(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)
        self._locks.pop(session_id, None)
        log_event("session.evict", session_id)


class SessionSweeper:
    """Background thread calling ``store.sweep()`` on a fixed interval."""

    def __init__(self, store: SessionStore, interval_s: float) -> None:
        self._store = store
        self._interval_s = interval_s
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="session-sweeper", daemon=True)
        self._thread.start()

    def stop(self, timeout: float = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def _run(self) -> None:
        while not self._stop.wait(self._interval_s):
            try:
                self._store.sweep()
            except Exception:  # noqa: BLE001
                logger.exception("Session sweep failed")


__all__ = ["SessionNotFoundError", "SessionStore", "SessionSweeper"]
