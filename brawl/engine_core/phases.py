"""
Combat Phases - Vocabulary shared by every part of the combat engine.

Holds:
- Closed enumerations for encounter phase and per-combatant statuses
- Initiative ordering (ascending speed, name tie-break)
- Interruption eligibility
- Default-state constructors for encounter and combatant records

Everything here is pure and stateless.
"""

from __future__ import annotations
from enum import Enum
from typing import Any, Iterable, TypeVar


class Phase(Enum):
    """Encounter phase. A finished round goes back to SELECTION."""
    SETUP = "setup"
    SELECTION = "selection"
    EXECUTION = "execution"


class SelectionStatus(Enum):
    """Per-combatant status during the selection phase."""
    PENDING = "pending"
    READY = "ready"


class ActionStatus(Enum):
    """Per-combatant status during the execution phase."""
    PENDING = "pending"
    ACTING = "acting"
    REVEALED = "revealed"
    INTERRUPTED = "interrupted"
    COMPLETED = "completed"
    SKIPPED = "skipped"


# Statuses that hold the "currently acting" slot
ACTIVE_STATUSES = frozenset({ActionStatus.ACTING, ActionStatus.REVEALED})

# Statuses that end a combatant's round
FINISHED_STATUSES = frozenset({ActionStatus.COMPLETED, ActionStatus.SKIPPED})

# Speed used to order combatants that have not picked a maneuver
UNSELECTED_SPEED = 999


def initiative_key(speed: int | None, name: str, combatant_id: str = "") -> tuple[int, str, str]:
    """
    Sort key for initiative order.

    Lower speed acts first. Equal speeds fall back to the case-insensitive
    name, then to the id, so every client computes the same sequence.
    """
    return (
        UNSELECTED_SPEED if speed is None else speed,
        (name or "").casefold(),
        combatant_id,
    )


def compare_initiative(a: Any, b: Any) -> int:
    """
    Compare two entries exposing `speed`, `name` and optionally `combatant_id`.

    Returns a negative number when `a` acts before `b`, positive when after,
    zero only for entries indistinguishable by all three keys.
    """
    key_a = initiative_key(a.speed, a.name, getattr(a, "combatant_id", ""))
    key_b = initiative_key(b.speed, b.name, getattr(b, "combatant_id", ""))
    if key_a < key_b:
        return -1
    if key_a > key_b:
        return 1
    return 0


T = TypeVar("T")


def sort_by_initiative(entries: Iterable[T]) -> list[T]:
    """Return a new list sorted by initiative; the input is left alone."""
    return sorted(
        entries,
        key=lambda e: initiative_key(e.speed, e.name, getattr(e, "combatant_id", "")),
    )


def can_interrupt(interruptor_speed: int, target_speed: int) -> bool:
    """
    Check whether a maneuver may cut into another one.

    Note the asymmetry with ordering: execution runs in ascending speed, but
    an interruptor needs a strictly greater speed value than its target.
    """
    return interruptor_speed > target_speed


def default_encounter_flags() -> dict[str, Any]:
    """Default per-encounter state. A fresh dict on every call."""
    return {
        "phase": Phase.SETUP,
        "current_acting_id": None,
        "interruption_stack": [],
        "turn_started": False,
    }


def default_combatant_flags() -> dict[str, Any]:
    """Default per-round combatant state. A fresh dict on every call."""
    return {
        "selected_maneuver": None,
        "selection_status": SelectionStatus.PENDING,
        "action_status": ActionStatus.PENDING,
        "maneuver_revealed": False,
        "interrupted_by_id": None,
    }
