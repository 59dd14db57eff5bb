"""
Dispatcher - Applies operations to an encounter.

The dispatcher is the single entry point used by the relay and the API
service. It only routes; every rule lives on EncounterState.

Design principles:
- Validates the operation's shape before routing
- Returns OperationResult with success/failure
- Never retries
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Callable
import logging

from .encounter import EncounterState
from .operation import ErrorCode, Operation, OperationContext, OperationResult, OperationType

logger = logging.getLogger(__name__)

Handler = Callable[[EncounterState, Operation, OperationContext], OperationResult]


@dataclass
class Dispatcher:
    """
    Routes operations to encounter methods.

    Stateless - all state is in EncounterState.
    """

    def apply(
        self,
        encounter: EncounterState,
        operation: Operation,
        ctx: OperationContext,
    ) -> OperationResult:
        """
        Apply an operation to the encounter.

        Returns OperationResult with changes or error.
        """
        validation_error = self._validate(operation)
        if validation_error:
            return OperationResult.failure(validation_error, ErrorCode.UNKNOWN_OPERATION)

        handler = self._get_handler(operation.operation_type)
        if handler is None:
            return OperationResult.failure(
                f"No handler for operation type: {operation.operation_type}",
                ErrorCode.UNKNOWN_OPERATION,
            )

        result = handler(encounter, operation, ctx)
        logger.debug(
            "Encounter %s: %s -> %s",
            encounter.encounter_id,
            operation.operation_type.value,
            "ok" if result.success else result.error_code.value,
        )
        return result

    def _validate(self, operation: Operation) -> str | None:
        """
        Check the operation carries what its handler needs.

        Returns error message if malformed, None if fine.
        """
        needs_combatant = {
            OperationType.INTERRUPT,
            OperationType.SELECT_MANEUVER,
            OperationType.CLEAR_MANEUVER,
            OperationType.REVEAL_MANEUVER,
            OperationType.ADD_COMBATANT,
            OperationType.REMOVE_COMBATANT,
        }
        if operation.operation_type in needs_combatant and not operation.combatant_id:
            return f"{operation.operation_type.value} needs a combatant id"

        if operation.operation_type == OperationType.SELECT_MANEUVER:
            if "maneuver" not in operation.params:
                return "select_maneuver needs a maneuver"

        if operation.operation_type == OperationType.ADD_COMBATANT:
            if "combatant" not in operation.params:
                return "add_combatant needs a combatant"

        return None

    def _get_handler(self, operation_type: OperationType) -> Handler | None:
        """Get the handler function for an operation type."""
        handlers: dict[OperationType, Handler] = {
            OperationType.BEGIN: lambda e, op, ctx: e.begin(ctx),
            OperationType.START_SELECTION: lambda e, op, ctx: e.start_selection_phase(ctx),
            OperationType.START_EXECUTION: lambda e, op, ctx: e.start_execution_phase(ctx),
            OperationType.ADVANCE_TURN: lambda e, op, ctx: e.advance_to_next_turn(ctx),
            OperationType.INTERRUPT: lambda e, op, ctx: e.handle_interruption(op.combatant_id, ctx),
            OperationType.COMPLETE_ACTION: lambda e, op, ctx: e.complete_current_action(ctx),
            OperationType.SKIP_ACTION: lambda e, op, ctx: e.skip_current_action(ctx),
            OperationType.SELECT_MANEUVER: self._handle_select,
            OperationType.CLEAR_MANEUVER: lambda e, op, ctx: e.clear_maneuver(op.combatant_id, ctx),
            OperationType.REVEAL_MANEUVER: lambda e, op, ctx: e.reveal_maneuver(op.combatant_id, ctx),
            OperationType.ADD_COMBATANT: lambda e, op, ctx: e.add_combatant(op.params["combatant"], ctx),
            OperationType.REMOVE_COMBATANT: lambda e, op, ctx: e.remove_combatant(op.combatant_id, ctx),
        }
        return handlers.get(operation_type)

    def _handle_select(
        self,
        encounter: EncounterState,
        operation: Operation,
        ctx: OperationContext,
    ) -> OperationResult:
        return encounter.select_maneuver(operation.combatant_id, operation.params["maneuver"], ctx)


def apply_operation(
    encounter: EncounterState,
    operation: Operation,
    ctx: OperationContext,
) -> OperationResult:
    """Convenience function to apply one operation."""
    return Dispatcher().apply(encounter, operation, ctx)
