"""
Encounter Manager - Creates and tracks live encounters.

LIFECYCLE:
1. Operator creates an encounter → ephemeral session (in-memory only)
2. Combatants join, operator begins the encounter
3. Rounds cycle through selection and execution
4. Encounter ends → session removed, ALL state dropped

CONCURRENCY:
- The engine is not thread-safe
- Each session carries its own re-entrant lock
- Every read and mutation of an encounter happens inside `locked()`

Snapshots (see engine_core.serialization) are the only way state leaves
the process.
"""

from __future__ import annotations
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterator
import logging
import threading
import time
import uuid

from ..engine_core.encounter import EncounterState
from ..engine_core.events import EventBus
from .relay import OperatorRegistry

logger = logging.getLogger(__name__)


class SessionStatus(Enum):
    """Lifecycle of an encounter session."""
    ACTIVE = "active"
    ENDED = "ended"
    ABANDONED = "abandoned"


@dataclass
class EncounterSession:
    """
    An ephemeral encounter session.

    Contains:
    - The encounter state machine
    - The event bus the encounter announces on
    - The operators connected to take relayed requests
    - The lock serializing access to all of it
    """
    session_id: str
    encounter: EncounterState
    bus: EventBus
    created_at: float

    status: SessionStatus = SessionStatus.ACTIVE
    operators: OperatorRegistry = field(default_factory=OperatorRegistry, repr=False)
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False)
    metadata: dict[str, Any] = field(default_factory=dict)

    def is_active(self) -> bool:
        return self.status == SessionStatus.ACTIVE


class EncounterManager:
    """
    Manages encounter sessions.

    Responsibilities:
    - Create encounters wired to their own event bus
    - Track active encounters
    - Serialize access per encounter
    - Clean up ended encounters

    No persistence - sessions are in-memory only.
    """

    def __init__(self):
        self._sessions: dict[str, EncounterSession] = {}
        self._registry_lock = threading.Lock()

    def create_encounter(self, name: str = "", encounter_id: str | None = None) -> EncounterSession:
        """
        Create a new encounter session.

        Args:
            name: Display name for the encounter
            encounter_id: Optional fixed id (a uuid4 otherwise)

        Returns:
            New EncounterSession in SETUP phase
        """
        session_id = encounter_id or str(uuid.uuid4())
        bus = EventBus(encounter_id=session_id)
        encounter = EncounterState(encounter_id=session_id, name=name, announcer=bus)

        session = EncounterSession(
            session_id=session_id,
            encounter=encounter,
            bus=bus,
            created_at=time.time(),
        )
        with self._registry_lock:
            if session_id in self._sessions:
                raise ValueError(f"Encounter {session_id} already exists")
            self._sessions[session_id] = session

        logger.info("Created encounter %s (%s)", session_id, name or "unnamed")
        return session

    def get_session(self, session_id: str) -> EncounterSession | None:
        """Get a session by ID."""
        return self._sessions.get(session_id)

    @contextmanager
    def locked(self, session_id: str) -> Iterator[EncounterSession | None]:
        """
        Hold the session's lock for the duration of the block.

        Yields None when the session does not exist.
        """
        session = self._sessions.get(session_id)
        if session is None:
            yield None
            return
        with session.lock:
            yield session

    def end_session(self, session_id: str, reason: str = "completed") -> bool:
        """
        End a session and drop it.

        Returns False if there was nothing to end.
        """
        with self._registry_lock:
            session = self._sessions.pop(session_id, None)
        if session is None:
            return False

        with session.lock:
            session.status = SessionStatus.ENDED if reason == "completed" else SessionStatus.ABANDONED
            session.bus.clear()
            session.encounter.combatants.clear()
            session.encounter.interruption_stack.clear()
            session.encounter.current_acting_id = None

        logger.info("Ended encounter %s (%s)", session_id, reason)
        return True

    def list_active_sessions(self) -> list[str]:
        """List IDs of active sessions."""
        return [
            sid for sid, session in self._sessions.items()
            if session.is_active()
        ]

    def cleanup_stale_sessions(self, max_age_seconds: int = 6 * 3600) -> list[str]:
        """
        End sessions older than max_age.

        Returns the ids that were removed.
        """
        now = time.time()
        stale = [
            sid for sid, session in self._sessions.items()
            if now - session.created_at > max_age_seconds
        ]
        for session_id in stale:
            self.end_session(session_id, reason="stale")
        return stale
