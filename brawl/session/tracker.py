"""
Combat tracker view.

Builds the per-viewer table shown beside an encounter: display order,
status labels, which buttons the viewer gets, and which maneuvers the
viewer is allowed to see.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any

from ..engine_core.combatant import CombatantState
from ..engine_core.encounter import EncounterState
from ..engine_core.phases import ActionStatus, Phase, SelectionStatus, sort_by_initiative


@dataclass(frozen=True)
class Viewer:
    """Who is looking at the tracker."""
    user_id: str | None = None
    is_operator: bool = False


@dataclass
class TrackerRow:
    combatant_id: str
    name: str
    is_npc: bool
    is_owner: bool
    is_defeated: bool
    selection_status: SelectionStatus
    action_status: ActionStatus
    maneuver_revealed: bool
    is_acting: bool
    speed: int | None
    maneuver: dict[str, Any] | None
    maneuver_hidden: bool
    can_select: bool
    can_interrupt: bool
    status_key: str


def status_key(phase: Phase, combatant: CombatantState, is_acting: bool) -> str:
    """Short status label for a row."""
    if phase == Phase.SELECTION:
        if combatant.selection_status == SelectionStatus.READY:
            return "ready"
        return "selecting"

    if phase == Phase.EXECUTION:
        if is_acting:
            return "acting"
        labels = {
            ActionStatus.COMPLETED: "completed",
            ActionStatus.SKIPPED: "skipped",
            ActionStatus.INTERRUPTED: "interrupted",
        }
        return labels.get(combatant.action_status, "waiting")

    return "setup"


def _hides_maneuver(combatant: CombatantState, viewer: Viewer, hide_player_maneuvers: bool) -> bool:
    if combatant.maneuver_revealed:
        return False
    if viewer.is_operator:
        return hide_player_maneuvers and not combatant.is_npc and combatant.owner_id is not None
    return not combatant.is_owned_by(viewer.user_id)


def build_tracker(
    encounter: EncounterState,
    viewer: Viewer,
    hide_player_maneuvers: bool = False,
) -> list[TrackerRow]:
    """
    Rows in display order for `viewer`.

    Defeated combatants stay on the tracker; they are sorted with the
    unselected speed fallback like everyone else.
    """
    phase = encounter.phase
    current = encounter.current_acting
    rows = []

    for combatant in sort_by_initiative(encounter.combatants.values()):
        is_owner = combatant.is_owned_by(viewer.user_id)
        controls = is_owner or (viewer.is_operator and combatant.is_npc)
        is_acting = combatant.combatant_id == encounter.current_acting_id
        hidden = _hides_maneuver(combatant, viewer, hide_player_maneuvers)

        can_select = (
            phase == Phase.SELECTION
            and combatant.selection_status != SelectionStatus.READY
            and not combatant.is_defeated
            and controls
        )
        can_interrupt = (
            phase == Phase.EXECUTION
            and current is not None
            and not is_acting
            and combatant.can_interrupt(current)
            and (is_owner or viewer.is_operator)
        )

        maneuver = combatant.selected_maneuver
        rows.append(TrackerRow(
            combatant_id=combatant.combatant_id,
            name=combatant.name,
            is_npc=combatant.is_npc,
            is_owner=is_owner,
            is_defeated=combatant.is_defeated,
            selection_status=combatant.selection_status,
            action_status=combatant.action_status,
            maneuver_revealed=combatant.maneuver_revealed,
            is_acting=is_acting,
            speed=None if hidden else combatant.speed,
            maneuver=None if hidden or maneuver is None else maneuver.to_dict(),
            maneuver_hidden=hidden and maneuver is not None,
            can_select=can_select,
            can_interrupt=can_interrupt,
            status_key=status_key(phase, combatant, is_acting),
        ))

    return rows
