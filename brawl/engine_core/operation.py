"""
Operation System - Operations, caller context, and results.

Operations represent:
1. Operator transitions (start selection, start execution, advance turn)
2. Execution-phase control (interrupt, complete, skip)
3. Per-combatant choices (select, clear, reveal)
4. Roster changes (add, remove, begin encounter)

Guard failures are results, not exceptions. Every rejected operation
leaves the encounter untouched.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCode(Enum):
    """Failure codes reported back to the caller."""
    # Authorization
    UNAUTHORIZED = "UNAUTHORIZED"

    # Preconditions
    SELECTIONS_INCOMPLETE = "SELECTIONS_INCOMPLETE"
    ACTIONS_INCOMPLETE = "ACTIONS_INCOMPLETE"
    INVALID_INTERRUPTION = "INVALID_INTERRUPTION"
    INTERRUPT_NOT_ALLOWED = "INTERRUPT_NOT_ALLOWED"
    ACTION_ALREADY_COMPLETED = "ACTION_ALREADY_COMPLETED"
    NO_MANEUVER_SELECTED = "NO_MANEUVER_SELECTED"
    NOT_ACTING = "NOT_ACTING"
    SELECTION_CLOSED = "SELECTION_CLOSED"
    WRONG_PHASE = "WRONG_PHASE"
    INVALID_MANEUVER = "INVALID_MANEUVER"
    COMBATANT_NOT_FOUND = "COMBATANT_NOT_FOUND"
    DUPLICATE_COMBATANT = "DUPLICATE_COMBATANT"
    ENCOUNTER_NOT_FOUND = "ENCOUNTER_NOT_FOUND"
    UNKNOWN_OPERATION = "UNKNOWN_OPERATION"

    # Relay
    NO_OPERATOR_AVAILABLE = "NO_OPERATOR_AVAILABLE"


class OperationType(Enum):
    """Types of operations accepted by an encounter."""
    # Operator transitions
    BEGIN = "begin"
    START_SELECTION = "start_selection"
    START_EXECUTION = "start_execution"
    ADVANCE_TURN = "advance_turn"

    # Execution control
    INTERRUPT = "interrupt"
    COMPLETE_ACTION = "complete_action"
    SKIP_ACTION = "skip_action"

    # Combatant choices
    SELECT_MANEUVER = "select_maneuver"
    CLEAR_MANEUVER = "clear_maneuver"
    REVEAL_MANEUVER = "reveal_maneuver"

    # Roster
    ADD_COMBATANT = "add_combatant"
    REMOVE_COMBATANT = "remove_combatant"


@dataclass(frozen=True)
class OperationContext:
    """
    Who is asking.

    `is_operator` is supplied by the caller and never derived here.
    `user_id` is only consulted for ownership checks on combatant choices.
    """
    is_operator: bool = False
    user_id: str | None = None

    @classmethod
    def operator(cls, user_id: str | None = "operator") -> OperationContext:
        return cls(is_operator=True, user_id=user_id)

    @classmethod
    def player(cls, user_id: str | None = None) -> OperationContext:
        return cls(is_operator=False, user_id=user_id)


@dataclass
class Operation:
    """
    A request to change an encounter.

    Operations are plain values so they can be relayed from a
    participant to an operator and applied there.
    """
    operation_type: OperationType
    combatant_id: str | None = None
    params: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def begin(cls) -> Operation:
        return cls(OperationType.BEGIN)

    @classmethod
    def start_selection(cls) -> Operation:
        return cls(OperationType.START_SELECTION)

    @classmethod
    def start_execution(cls) -> Operation:
        return cls(OperationType.START_EXECUTION)

    @classmethod
    def advance_turn(cls) -> Operation:
        return cls(OperationType.ADVANCE_TURN)

    @classmethod
    def interrupt(cls, interruptor_id: str) -> Operation:
        """Factory for an interruption by `interruptor_id`."""
        return cls(OperationType.INTERRUPT, combatant_id=interruptor_id)

    @classmethod
    def complete_action(cls) -> Operation:
        return cls(OperationType.COMPLETE_ACTION)

    @classmethod
    def skip_action(cls) -> Operation:
        return cls(OperationType.SKIP_ACTION)

    @classmethod
    def select_maneuver(cls, combatant_id: str, maneuver: Any) -> Operation:
        """Factory for a maneuver choice. `maneuver` is a SelectedManeuver."""
        return cls(
            OperationType.SELECT_MANEUVER,
            combatant_id=combatant_id,
            params={"maneuver": maneuver},
        )

    @classmethod
    def clear_maneuver(cls, combatant_id: str) -> Operation:
        return cls(OperationType.CLEAR_MANEUVER, combatant_id=combatant_id)

    @classmethod
    def reveal_maneuver(cls, combatant_id: str) -> Operation:
        return cls(OperationType.REVEAL_MANEUVER, combatant_id=combatant_id)

    @classmethod
    def add_combatant(cls, combatant: Any) -> Operation:
        """Factory for adding a CombatantState to the roster."""
        return cls(
            OperationType.ADD_COMBATANT,
            combatant_id=combatant.combatant_id,
            params={"combatant": combatant},
        )

    @classmethod
    def remove_combatant(cls, combatant_id: str) -> Operation:
        return cls(OperationType.REMOVE_COMBATANT, combatant_id=combatant_id)


@dataclass
class OperationResult:
    """
    Result of applying an operation.

    Contains:
    - Whether the operation succeeded
    - Error message and code (if rejected)
    - Human-readable changes (for logs and UI)
    - Whether the request travelled through the operator relay
    """
    success: bool
    error: str | None = None
    error_code: ErrorCode | None = None

    changes: list[str] = field(default_factory=list)
    relayed: bool = False

    @classmethod
    def failure(cls, error: str, error_code: ErrorCode) -> OperationResult:
        """Create a failure result."""
        return cls(success=False, error=error, error_code=error_code)

    @classmethod
    def ok(cls, changes: list[str] | None = None) -> OperationResult:
        """Create a success result."""
        return cls(success=True, changes=changes or [])

    @classmethod
    def unauthorized(cls, what: str) -> OperationResult:
        return cls.failure(f"Only the operator can {what}", ErrorCode.UNAUTHORIZED)
