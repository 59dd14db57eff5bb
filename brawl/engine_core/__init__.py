"""
Engine Core - Two-phase combat turn resolution.

The engine is the runtime that:
1. Tracks each combatant's maneuver and statuses
2. Runs the SETUP → SELECTION ⇄ EXECUTION state machine
3. Orders turns by initiative and resolves interruptions
4. Announces what happened to observers
"""

from .phases import (
    Phase,
    SelectionStatus,
    ActionStatus,
    UNSELECTED_SPEED,
    compare_initiative,
    sort_by_initiative,
    can_interrupt,
    default_encounter_flags,
    default_combatant_flags,
)
from .combatant import CombatantState, SelectedManeuver, InvalidManeuverError
from .encounter import EncounterState, RoundCounter
from .events import EventBus, EventKind, CombatEvent, Announcer, NullAnnouncer
from .operation import Operation, OperationType, OperationContext, OperationResult, ErrorCode
from .dispatcher import Dispatcher, apply_operation
from .resources import FighterResources, ResourcePool, regenerate_chi, reset_super_meter
from .serialization import encounter_to_dict, encounter_from_dict

__all__ = [
    "Phase",
    "SelectionStatus",
    "ActionStatus",
    "UNSELECTED_SPEED",
    "compare_initiative",
    "sort_by_initiative",
    "can_interrupt",
    "default_encounter_flags",
    "default_combatant_flags",
    "CombatantState",
    "SelectedManeuver",
    "InvalidManeuverError",
    "EncounterState",
    "RoundCounter",
    "EventBus",
    "EventKind",
    "CombatEvent",
    "Announcer",
    "NullAnnouncer",
    "Operation",
    "OperationType",
    "OperationContext",
    "OperationResult",
    "ErrorCode",
    "Dispatcher",
    "apply_operation",
    "FighterResources",
    "ResourcePool",
    "regenerate_chi",
    "reset_super_meter",
    "encounter_to_dict",
    "encounter_from_dict",
]
