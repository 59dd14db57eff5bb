"""
Combat Events - Outbound side of the event notification boundary.

The encounter announces what happened; it never waits for delivery and
never rolls back because an observer failed.

Usage:
    bus = EventBus(encounter_id="enc-1")
    bus.subscribe(EventKind.TURN_STARTED, on_turn_started)
    encounter = EncounterState(encounter_id="enc-1", announcer=bus)

    # Handlers receive a CombatEvent
    def on_turn_started(event: CombatEvent):
        print(event.payload["combatant_name"])
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Protocol
import logging
import time

logger = logging.getLogger(__name__)


class EventKind(Enum):
    """Events announced by an encounter."""
    PHASE_CHANGED = "combat.phase_changed"
    TURN_STARTED = "combat.turn_started"
    INTERRUPTION = "combat.interruption"
    MANEUVER_REVEALED = "combat.maneuver_revealed"
    MANEUVER_SELECTED = "combat.maneuver_selected"
    ROUND_ENDED = "combat.round_ended"


@dataclass
class CombatEvent:
    """An announced event, stamped with its encounter and time."""
    kind: EventKind
    encounter_id: str
    payload: dict[str, Any] = field(default_factory=dict)
    timestamp: float = field(default_factory=time.time)

    def to_message(self) -> dict[str, Any]:
        """Wire shape used by the WebSocket broadcast."""
        return {
            "type": self.kind.value,
            "encounter_id": self.encounter_id,
            "timestamp": self.timestamp,
            "payload": dict(self.payload),
        }

    def __str__(self) -> str:
        return f"[{self.kind.value}] {self.payload}"


class Announcer(Protocol):
    """What the encounter needs from its observers: fire and forget."""

    def announce(self, kind: EventKind, payload: dict[str, Any]) -> None: ...


class NullAnnouncer:
    """Discards every announcement."""

    def announce(self, kind: EventKind, payload: dict[str, Any]) -> None:
        return None


EventHandler = Callable[[CombatEvent], None]


class EventBus:
    """
    Synchronous event bus for one encounter.

    Handlers are called in subscription order during announce(). Work that
    needs I/O should be queued by the handler, not done inline.
    """

    def __init__(self, encounter_id: str = "", history_limit: int = 100):
        self.encounter_id = encounter_id
        self._handlers: dict[EventKind | None, list[EventHandler]] = {}
        self._history: list[CombatEvent] = []
        self._history_limit = history_limit

    def subscribe(self, kind: EventKind | None, handler: EventHandler) -> None:
        """
        Subscribe to one kind of event, or to every kind with `kind=None`.
        """
        handlers = self._handlers.setdefault(kind, [])
        if handler not in handlers:
            handlers.append(handler)

    def unsubscribe(self, kind: EventKind | None, handler: EventHandler) -> None:
        handlers = self._handlers.get(kind, [])
        if handler in handlers:
            handlers.remove(handler)

    def announce(self, kind: EventKind, payload: dict[str, Any]) -> None:
        self.emit(kind, payload)

    def emit(self, kind: EventKind, payload: dict[str, Any]) -> CombatEvent:
        """Stamp, record and deliver an event. Returns it for tests."""
        event = CombatEvent(kind=kind, encounter_id=self.encounter_id, payload=dict(payload))

        self._history.append(event)
        if len(self._history) > self._history_limit:
            self._history = self._history[-self._history_limit:]

        for handler in self._handlers.get(kind, []) + self._handlers.get(None, []):
            try:
                handler(event)
            except Exception:
                # One broken observer must not stop the others
                logger.warning(
                    "Event handler failed for %s on encounter %s",
                    kind.value, self.encounter_id, exc_info=True,
                )

        return event

    def history(self, kind: EventKind | None = None) -> list[CombatEvent]:
        """Recent events, optionally filtered by kind."""
        if kind is None:
            return list(self._history)
        return [e for e in self._history if e.kind == kind]

    def clear(self) -> None:
        """Drop handlers and history."""
        self._handlers.clear()
        self._history.clear()

    def handler_count(self, kind: EventKind | None = None) -> int:
        return len(self._handlers.get(kind, []))
