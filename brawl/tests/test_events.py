"""
Tests for the combat event bus.
"""

import logging

from ..engine_core.events import CombatEvent, EventBus, EventKind, NullAnnouncer


class TestEventBus:
    """Tests for subscription and delivery."""

    def test_delivers_to_kind_subscribers(self):
        bus = EventBus(encounter_id="enc-1")
        received = []
        bus.subscribe(EventKind.TURN_STARTED, received.append)

        bus.announce(EventKind.TURN_STARTED, {"combatant_id": "x"})
        bus.announce(EventKind.PHASE_CHANGED, {"phase": "execution"})

        assert len(received) == 1
        assert received[0].encounter_id == "enc-1"
        assert received[0].payload == {"combatant_id": "x"}

    def test_wildcard_receives_everything(self):
        bus = EventBus()
        received = []
        bus.subscribe(None, received.append)

        bus.announce(EventKind.TURN_STARTED, {})
        bus.announce(EventKind.ROUND_ENDED, {"round": 1})

        assert [e.kind for e in received] == [EventKind.TURN_STARTED, EventKind.ROUND_ENDED]

    def test_subscribe_twice_delivers_once(self):
        bus = EventBus()
        received = []
        bus.subscribe(EventKind.INTERRUPTION, received.append)
        bus.subscribe(EventKind.INTERRUPTION, received.append)

        bus.announce(EventKind.INTERRUPTION, {})

        assert len(received) == 1
        assert bus.handler_count(EventKind.INTERRUPTION) == 1

    def test_unsubscribe(self):
        bus = EventBus()
        received = []
        bus.subscribe(EventKind.INTERRUPTION, received.append)
        bus.unsubscribe(EventKind.INTERRUPTION, received.append)

        bus.announce(EventKind.INTERRUPTION, {})

        assert received == []

    def test_failing_handler_is_logged_and_skipped(self, caplog):
        """A broken subscriber does not stop the others."""
        bus = EventBus(encounter_id="enc-1")
        received = []

        def broken(event):
            raise RuntimeError("socket gone")

        bus.subscribe(EventKind.TURN_STARTED, broken)
        bus.subscribe(EventKind.TURN_STARTED, received.append)

        with caplog.at_level(logging.WARNING):
            bus.announce(EventKind.TURN_STARTED, {})

        assert len(received) == 1
        assert "Event handler failed" in caplog.text

    def test_payload_is_copied(self):
        bus = EventBus()
        payload = {"round": 1}
        event = bus.emit(EventKind.ROUND_ENDED, payload)
        payload["round"] = 2
        assert event.payload == {"round": 1}


class TestHistory:
    def test_history_is_bounded(self):
        bus = EventBus(history_limit=3)
        for i in range(5):
            bus.announce(EventKind.ROUND_ENDED, {"round": i})
        assert [e.payload["round"] for e in bus.history()] == [2, 3, 4]

    def test_history_filter(self):
        bus = EventBus()
        bus.announce(EventKind.TURN_STARTED, {})
        bus.announce(EventKind.ROUND_ENDED, {})
        assert len(bus.history(EventKind.ROUND_ENDED)) == 1

    def test_clear(self):
        bus = EventBus()
        bus.subscribe(None, lambda e: None)
        bus.announce(EventKind.TURN_STARTED, {})
        bus.clear()
        assert bus.history() == []
        assert bus.handler_count() == 0


class TestCombatEvent:
    def test_to_message(self):
        event = CombatEvent(
            kind=EventKind.MANEUVER_REVEALED,
            encounter_id="enc-1",
            payload={"maneuver_name": "Jab"},
            timestamp=12.5,
        )
        assert event.to_message() == {
            "type": "combat.maneuver_revealed",
            "encounter_id": "enc-1",
            "timestamp": 12.5,
            "payload": {"maneuver_name": "Jab"},
        }

    def test_null_announcer_discards(self):
        assert NullAnnouncer().announce(EventKind.TURN_STARTED, {}) is None
