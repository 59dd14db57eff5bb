"""
Combat Relay - Inbound side of the event notification boundary.

Only an operator may mutate an encounter. A participant who wants to
interrupt, finish or skip a turn sends a request; the relay hands it to a
connected operator, who applies it with operator authority.

Flow:
1. Operator caller → apply immediately
2. Participant caller → check they control the combatant involved
3. Forward the operation to the first registered operator
4. Return the operator's result, marked `relayed=True`
"""

from __future__ import annotations
from typing import TYPE_CHECKING, Callable
import logging

from ..engine_core.dispatcher import Dispatcher
from ..engine_core.operation import ErrorCode, Operation, OperationContext, OperationResult

if TYPE_CHECKING:
    from .manager import EncounterManager

logger = logging.getLogger(__name__)

OperatorHandler = Callable[[Operation], OperationResult]


class OperatorRegistry:
    """
    Operators connected to one encounter.

    Registration order is kept; requests go to the earliest operator
    still connected.
    """

    def __init__(self):
        self._handlers: dict[str, OperatorHandler] = {}

    def register(self, user_id: str, handler: OperatorHandler) -> None:
        self._handlers[user_id] = handler
        logger.info("Operator %s registered for relays", user_id)

    def unregister(self, user_id: str) -> None:
        if self._handlers.pop(user_id, None) is not None:
            logger.info("Operator %s unregistered", user_id)

    def available(self) -> bool:
        return bool(self._handlers)

    def first_available(self) -> tuple[str, OperatorHandler] | None:
        for user_id, handler in self._handlers.items():
            return user_id, handler
        return None

    def __len__(self) -> int:
        return len(self._handlers)


class CombatRelay:
    """
    Routes execution-phase requests to the party allowed to apply them.

    Usage:
        relay = CombatRelay(manager)
        result = relay.request_interruption(encounter_id, "ryu", ctx)
    """

    def __init__(self, manager: EncounterManager, dispatcher: Dispatcher | None = None):
        self.manager = manager
        self.dispatcher = dispatcher or Dispatcher()

    def operator_handler(self, encounter_id: str, user_id: str) -> OperatorHandler:
        """Build the handler an operator registers: apply with their own authority."""
        ctx = OperationContext.operator(user_id)

        def handle(operation: Operation) -> OperationResult:
            return self._apply(encounter_id, operation, ctx)

        return handle

    # =========================================================================
    # Requests
    # =========================================================================

    def request_interruption(
        self,
        encounter_id: str,
        interruptor_id: str,
        ctx: OperationContext,
    ) -> OperationResult:
        """Ask for `interruptor_id` to cut into the current actor's turn."""
        return self._request(encounter_id, Operation.interrupt(interruptor_id), ctx, interruptor_id)

    def request_complete_action(self, encounter_id: str, ctx: OperationContext) -> OperationResult:
        return self._request(encounter_id, Operation.complete_action(), ctx)

    def request_skip_action(self, encounter_id: str, ctx: OperationContext) -> OperationResult:
        return self._request(encounter_id, Operation.skip_action(), ctx)

    # =========================================================================
    # Internals
    # =========================================================================

    def _request(
        self,
        encounter_id: str,
        operation: Operation,
        ctx: OperationContext,
        combatant_id: str | None = None,
    ) -> OperationResult:
        if ctx.is_operator:
            return self._apply(encounter_id, operation, ctx)

        with self.manager.locked(encounter_id) as session:
            if session is None:
                return _encounter_not_found(encounter_id)

            # Participants may only speak for their own combatant
            if combatant_id is not None:
                combatant = session.encounter.get_combatant(combatant_id)
                if combatant is None:
                    return OperationResult.failure(
                        f"Combatant {combatant_id} not found",
                        ErrorCode.COMBATANT_NOT_FOUND,
                    )
            else:
                combatant = session.encounter.current_acting

            if combatant is not None and not combatant.is_owned_by(ctx.user_id):
                return OperationResult.failure(
                    f"{combatant.name} is not your combatant",
                    ErrorCode.UNAUTHORIZED,
                )

            operator = session.operators.first_available()
            if operator is None:
                logger.info(
                    "Encounter %s: no operator to take %s from %s",
                    encounter_id, operation.operation_type.value, ctx.user_id,
                )
                return OperationResult.failure(
                    "No active operator to process the request",
                    ErrorCode.NO_OPERATOR_AVAILABLE,
                )

            operator_id, handler = operator
            logger.info(
                "Encounter %s: relaying %s from %s to operator %s",
                encounter_id, operation.operation_type.value, ctx.user_id, operator_id,
            )
            result = handler(operation)

        result.relayed = True
        return result

    def _apply(
        self,
        encounter_id: str,
        operation: Operation,
        ctx: OperationContext,
    ) -> OperationResult:
        with self.manager.locked(encounter_id) as session:
            if session is None:
                return _encounter_not_found(encounter_id)
            return self.dispatcher.apply(session.encounter, operation, ctx)


def _encounter_not_found(encounter_id: str) -> OperationResult:
    return OperationResult.failure(
        f"Encounter {encounter_id} not found",
        ErrorCode.ENCOUNTER_NOT_FOUND,
    )
