"""
Tests for encounter session management.
"""

import threading
import time

import pytest

from ..engine_core.events import EventKind
from ..engine_core.phases import Phase
from ..session import EncounterManager, SessionStatus


class TestEncounterManager:
    """Tests for the session lifecycle."""

    def test_create_encounter(self):
        manager = EncounterManager()
        session = manager.create_encounter(name="Dojo")

        assert session.session_id
        assert session.encounter.encounter_id == session.session_id
        assert session.encounter.phase == Phase.SETUP
        assert session.is_active()
        assert manager.list_active_sessions() == [session.session_id]

    def test_encounter_announces_on_its_bus(self, operator):
        manager = EncounterManager()
        session = manager.create_encounter()

        session.encounter.start_selection_phase(operator)

        events = session.bus.history(EventKind.PHASE_CHANGED)
        assert events[-1].encounter_id == session.session_id

    def test_fixed_id_must_be_unique(self):
        manager = EncounterManager()
        manager.create_encounter(encounter_id="enc-1")
        with pytest.raises(ValueError):
            manager.create_encounter(encounter_id="enc-1")

    def test_get_missing(self):
        assert EncounterManager().get_session("missing") is None

    def test_end_session_drops_state(self):
        manager = EncounterManager()
        session = manager.create_encounter()

        assert manager.end_session(session.session_id)

        assert session.status == SessionStatus.ENDED
        assert manager.get_session(session.session_id) is None
        assert manager.list_active_sessions() == []

    def test_end_missing_session(self):
        assert not EncounterManager().end_session("missing")

    def test_cleanup_stale_sessions(self):
        manager = EncounterManager()
        old = manager.create_encounter()
        fresh = manager.create_encounter()
        old.created_at = time.time() - 10_000

        removed = manager.cleanup_stale_sessions(max_age_seconds=3600)

        assert removed == [old.session_id]
        assert old.status == SessionStatus.ABANDONED
        assert manager.list_active_sessions() == [fresh.session_id]


class TestLocking:
    """Tests for per-encounter serialization."""

    def test_locked_yields_none_for_missing(self):
        with EncounterManager().locked("missing") as session:
            assert session is None

    def test_locked_is_reentrant(self):
        manager = EncounterManager()
        session = manager.create_encounter()
        with manager.locked(session.session_id) as outer:
            with manager.locked(session.session_id) as inner:
                assert outer is inner

    def test_locked_blocks_other_threads(self):
        manager = EncounterManager()
        session = manager.create_encounter()
        acquired = []

        def other():
            acquired.append(session.lock.acquire(blocking=False))

        with manager.locked(session.session_id):
            thread = threading.Thread(target=other)
            thread.start()
            thread.join()

        assert acquired == [False]
