"""
Serialization - Plain-dict snapshots of encounters.

Snapshots are JSON-compatible (enum values, maneuvers as dicts) and hold
data only. Announcers and hooks are collaborators and are handed back in
when a snapshot is loaded.
"""

from __future__ import annotations
from typing import Any, Iterable

from .phases import ActionStatus, Phase, SelectionStatus
from .combatant import CombatantState, SelectedManeuver
from .encounter import EncounterState, RoundCounter
from .events import Announcer, NullAnnouncer
from .resources import (
    DEFAULT_BEGIN_HOOKS,
    DEFAULT_ROUND_END_HOOKS,
    CombatantHook,
    FighterResources,
)


def combatant_to_dict(combatant: CombatantState) -> dict[str, Any]:
    actor = combatant.actor
    return {
        "combatant_id": combatant.combatant_id,
        "name": combatant.name,
        "owner_id": combatant.owner_id,
        "is_npc": combatant.is_npc,
        "selection_status": combatant.selection_status.value,
        "selected_maneuver": (
            combatant.selected_maneuver.to_dict() if combatant.selected_maneuver else None
        ),
        "action_status": combatant.action_status.value,
        "maneuver_revealed": combatant.maneuver_revealed,
        "interrupted_by_id": combatant.interrupted_by_id,
        "resources": actor.to_dict() if isinstance(actor, FighterResources) else None,
    }


def combatant_from_dict(data: dict[str, Any]) -> CombatantState:
    """
    Rebuild a combatant. Missing flags fall back to their defaults.

    Raises:
        InvalidManeuverError: if the stored maneuver is incomplete
    """
    maneuver = data.get("selected_maneuver")
    resources = data.get("resources")
    return CombatantState(
        combatant_id=data["combatant_id"],
        name=data.get("name", data["combatant_id"]),
        owner_id=data.get("owner_id"),
        is_npc=bool(data.get("is_npc", False)),
        actor=FighterResources.from_dict(resources) if resources else None,
        selection_status=SelectionStatus(data.get("selection_status", SelectionStatus.PENDING.value)),
        selected_maneuver=SelectedManeuver.from_dict(maneuver) if maneuver else None,
        action_status=ActionStatus(data.get("action_status", ActionStatus.PENDING.value)),
        maneuver_revealed=bool(data.get("maneuver_revealed", False)),
        interrupted_by_id=data.get("interrupted_by_id"),
    )


def encounter_to_dict(encounter: EncounterState) -> dict[str, Any]:
    return {
        "encounter_id": encounter.encounter_id,
        "name": encounter.name,
        "phase": encounter.phase.value,
        "round": encounter.round,
        "current_acting_id": encounter.current_acting_id,
        "interruption_stack": encounter.interrupted_ids,
        "turn_started": encounter.turn_started,
        "combatants": [combatant_to_dict(c) for c in encounter.combatants.values()],
    }


def encounter_from_dict(
    data: dict[str, Any],
    announcer: Announcer | None = None,
    round_end_hooks: Iterable[CombatantHook] | None = None,
    begin_hooks: Iterable[CombatantHook] | None = None,
) -> EncounterState:
    """Rebuild an encounter from a snapshot, wiring in collaborators."""
    combatants = [combatant_from_dict(c) for c in data.get("combatants", [])]
    return EncounterState(
        encounter_id=data["encounter_id"],
        name=data.get("name", ""),
        phase=Phase(data.get("phase", Phase.SETUP.value)),
        current_acting_id=data.get("current_acting_id"),
        interruption_stack=list(data.get("interruption_stack", [])),
        turn_started=bool(data.get("turn_started", False)),
        rounds=RoundCounter(round=int(data.get("round", 0))),
        combatants={c.combatant_id: c for c in combatants},
        announcer=announcer or NullAnnouncer(),
        round_end_hooks=list(DEFAULT_ROUND_END_HOOKS if round_end_hooks is None else round_end_hooks),
        begin_hooks=list(DEFAULT_BEGIN_HOOKS if begin_hooks is None else begin_hooks),
    )
