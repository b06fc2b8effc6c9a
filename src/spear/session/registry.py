"""SessionRegistry: session-keyed engagement coordinators."""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field

import structlog

from spear.core.errors import SessionError
from spear.core.types import generate_session_key
from spear.engagement.results import EngagementResult, StepSnapshot
from spear.engagement.scenario import EngagementCoordinator

logger = logging.getLogger(__name__)


@dataclass
class _Session:
    coordinator: EngagementCoordinator
    lock: threading.Lock = field(default_factory=threading.Lock)


class SessionRegistry:
    """Maps opaque session keys to coordinator instances.

    Every call names its session key; an absent or unknown key raises
    :class:`SessionError` before any coordinator is touched. Calls on the
    same session are serialized by a per-session lock, and the registry
    map itself is guarded by ``self._lock``. Log lines emitted during a
    call carry the session key prefix.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, _Session] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._sessions

    def create(self, coordinator: EngagementCoordinator) -> str:
        """Register *coordinator* under a fresh key and return the key."""
        key = generate_session_key()
        with self._lock:
            self._sessions[key] = _Session(coordinator)
        logger.info("Session %s opened for scenario %s", key[:8], coordinator.scenario_id)
        return key

    def _session(self, key: str | None) -> _Session:
        if not key:
            raise SessionError("Session key required")
        with self._lock:
            session = self._sessions.get(key)
        if session is None:
            raise SessionError(f"Unknown session key: {key[:8]}...")
        return session

    @contextmanager
    def locked(self, key: str | None) -> Iterator[EngagementCoordinator]:
        """Hold the session lock and yield its coordinator.

        Direct coordinator access goes through here so it is serialized
        with every other call on the same session.
        """
        session = self._session(key)
        with session.lock, structlog.contextvars.bound_contextvars(session=key[:8]):
            yield session.coordinator

    def advance(self, key: str | None) -> StepSnapshot:
        """Advance one step and return the resulting snapshot."""
        with self.locked(key) as coordinator:
            coordinator.advance()
            return coordinator.snapshot()

    def run(self, key: str | None) -> EngagementResult:
        with self.locked(key) as coordinator:
            return coordinator.run()

    def snapshot(self, key: str | None) -> StepSnapshot:
        with self.locked(key) as coordinator:
            return coordinator.snapshot()

    def result(self, key: str | None) -> EngagementResult:
        with self.locked(key) as coordinator:
            return coordinator.result()

    def reset(self, key: str | None) -> StepSnapshot:
        with self.locked(key) as coordinator:
            coordinator.reset()
            return coordinator.snapshot()

    def close(self, key: str | None) -> None:
        with self.locked(key):
            with self._lock:
                self._sessions.pop(key, None)
        logger.info("Session %s closed", key[:8])
