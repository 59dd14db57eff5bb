"""
API Service - Business logic layer between API and engine.

The service:
1. Translates API requests to engine operations
2. Manages encounter sessions
3. Routes participant requests through the operator relay
4. Collects announced events for the WebSocket broadcast

This layer is framework-agnostic (can be used with FastAPI, Flask, etc.)
"""

from __future__ import annotations
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any
import logging

from .schemas import (
    # Requests
    AddCombatantRequest,
    CreateEncounterRequest,
    InterruptRequest,
    ManeuverModel,
    # Responses
    CombatantInfo,
    EncounterListResponse,
    EncounterResponse,
    EndEncounterResponse,
    ErrorResponse,
    OperationResponse,
    TrackerResponse,
    TrackerRowInfo,
    # Enums
    ErrorCode,
    PhaseName,
)
from ..engine_core.combatant import CombatantState, InvalidManeuverError, SelectedManeuver
from ..engine_core.dispatcher import Dispatcher
from ..engine_core.events import CombatEvent
from ..engine_core.operation import Operation, OperationContext, OperationResult
from ..engine_core.resources import FighterResources
from ..engine_core.serialization import combatant_to_dict
from ..session import CombatRelay, EncounterManager, EncounterSession, Viewer, build_tracker

logger = logging.getLogger(__name__)


@dataclass
class APIService:
    """
    Main API service for encounter trackers.

    Usage:
        service = APIService()

        # Operator opens an encounter and seats fighters
        encounter = service.create_encounter(request, operator_ctx)
        service.add_combatant(encounter.encounter_id, fighter, operator_ctx)

        # Participant asks to interrupt
        result = service.request_interruption(encounter_id, request, player_ctx)

        # Events announced meanwhile, ready for broadcast
        messages = service.drain_events(encounter_id)
    """
    manager: EncounterManager = field(default_factory=EncounterManager)
    dispatcher: Dispatcher = field(default_factory=Dispatcher)
    hide_player_maneuvers: bool = False
    relay: CombatRelay | None = None

    # Announced events waiting for broadcast, per encounter
    _outbox: dict[str, list[dict[str, Any]]] = field(default_factory=lambda: defaultdict(list))

    def __post_init__(self):
        if self.relay is None:
            self.relay = CombatRelay(self.manager, self.dispatcher)

    # =========================================================================
    # Encounters
    # =========================================================================

    def create_encounter(
        self,
        request: CreateEncounterRequest,
        ctx: OperationContext,
    ) -> EncounterResponse | ErrorResponse:
        """Open a new encounter. Operator only."""
        if not ctx.is_operator:
            return self._error_from(OperationResult.unauthorized("open encounters"))

        session = self.manager.create_encounter(name=request.name)
        session.bus.subscribe(None, self._collect)
        with session.lock:
            return self._encounter_to_response(session)

    def list_encounters(self) -> EncounterListResponse:
        encounters = self.manager.list_active_sessions()
        return EncounterListResponse(encounters=encounters, count=len(encounters))

    def get_encounter(self, encounter_id: str) -> EncounterResponse | ErrorResponse:
        with self.manager.locked(encounter_id) as session:
            if session is None:
                return self._not_found(encounter_id)
            return self._encounter_to_response(session)

    def end_encounter(
        self,
        encounter_id: str,
        ctx: OperationContext,
    ) -> EndEncounterResponse | ErrorResponse:
        if not ctx.is_operator:
            return self._error_from(OperationResult.unauthorized("end encounters"))
        if not self.manager.end_session(encounter_id):
            return self._not_found(encounter_id)
        self._outbox.pop(encounter_id, None)
        return EndEncounterResponse(success=True, encounter_id=encounter_id)

    # =========================================================================
    # Roster
    # =========================================================================

    def add_combatant(
        self,
        encounter_id: str,
        request: AddCombatantRequest,
        ctx: OperationContext,
    ) -> OperationResponse | ErrorResponse:
        actor = None
        if request.resources is not None:
            actor = FighterResources.from_dict(request.resources.model_dump())

        combatant = CombatantState(
            combatant_id=request.combatant_id,
            name=request.name,
            owner_id=request.owner_id,
            is_npc=request.is_npc,
            actor=actor,
        )
        return self._apply(encounter_id, Operation.add_combatant(combatant), ctx)

    def remove_combatant(
        self,
        encounter_id: str,
        combatant_id: str,
        ctx: OperationContext,
    ) -> OperationResponse | ErrorResponse:
        return self._apply(encounter_id, Operation.remove_combatant(combatant_id), ctx)

    # =========================================================================
    # Operator transitions
    # =========================================================================

    def begin(self, encounter_id: str, ctx: OperationContext) -> OperationResponse | ErrorResponse:
        return self._apply(encounter_id, Operation.begin(), ctx)

    def start_selection(self, encounter_id: str, ctx: OperationContext) -> OperationResponse | ErrorResponse:
        return self._apply(encounter_id, Operation.start_selection(), ctx)

    def start_execution(self, encounter_id: str, ctx: OperationContext) -> OperationResponse | ErrorResponse:
        return self._apply(encounter_id, Operation.start_execution(), ctx)

    def advance_turn(self, encounter_id: str, ctx: OperationContext) -> OperationResponse | ErrorResponse:
        return self._apply(encounter_id, Operation.advance_turn(), ctx)

    # =========================================================================
    # Maneuvers
    # =========================================================================

    def select_maneuver(
        self,
        encounter_id: str,
        combatant_id: str,
        maneuver: ManeuverModel,
        ctx: OperationContext,
    ) -> OperationResponse | ErrorResponse:
        """
        Record a combatant's maneuver for the round.

        The maneuver is validated before the encounter is touched.
        """
        try:
            selected = SelectedManeuver.create(**maneuver.model_dump())
        except InvalidManeuverError as e:
            return ErrorResponse(
                error=str(e),
                error_code=ErrorCode.INVALID_MANEUVER,
                details={"combatant_id": combatant_id},
            )
        return self._apply(encounter_id, Operation.select_maneuver(combatant_id, selected), ctx)

    def clear_maneuver(
        self,
        encounter_id: str,
        combatant_id: str,
        ctx: OperationContext,
    ) -> OperationResponse | ErrorResponse:
        return self._apply(encounter_id, Operation.clear_maneuver(combatant_id), ctx)

    def reveal_maneuver(
        self,
        encounter_id: str,
        combatant_id: str,
        ctx: OperationContext,
    ) -> OperationResponse | ErrorResponse:
        return self._apply(encounter_id, Operation.reveal_maneuver(combatant_id), ctx)

    # =========================================================================
    # Execution requests (relayed for participants)
    # =========================================================================

    def request_interruption(
        self,
        encounter_id: str,
        request: InterruptRequest,
        ctx: OperationContext,
    ) -> OperationResponse | ErrorResponse:
        result = self.relay.request_interruption(encounter_id, request.interruptor_id, ctx)
        return self._respond(encounter_id, result)

    def request_complete_action(
        self,
        encounter_id: str,
        ctx: OperationContext,
    ) -> OperationResponse | ErrorResponse:
        result = self.relay.request_complete_action(encounter_id, ctx)
        return self._respond(encounter_id, result)

    def request_skip_action(
        self,
        encounter_id: str,
        ctx: OperationContext,
    ) -> OperationResponse | ErrorResponse:
        result = self.relay.request_skip_action(encounter_id, ctx)
        return self._respond(encounter_id, result)

    def register_operator(self, encounter_id: str, user_id: str) -> bool:
        """Make `user_id` available to take relayed requests."""
        session = self.manager.get_session(encounter_id)
        if session is None:
            return False
        session.operators.register(user_id, self.relay.operator_handler(encounter_id, user_id))
        return True

    def unregister_operator(self, encounter_id: str, user_id: str) -> None:
        session = self.manager.get_session(encounter_id)
        if session is not None:
            session.operators.unregister(user_id)

    # =========================================================================
    # Views
    # =========================================================================

    def get_tracker(self, encounter_id: str, viewer: Viewer) -> TrackerResponse | ErrorResponse:
        with self.manager.locked(encounter_id) as session:
            if session is None:
                return self._not_found(encounter_id)
            encounter = session.encounter
            rows = build_tracker(encounter, viewer, self.hide_player_maneuvers)
            return TrackerResponse(
                encounter_id=encounter_id,
                phase=PhaseName(encounter.phase.value),
                round=encounter.round,
                current_acting_id=encounter.current_acting_id,
                rows=[
                    TrackerRowInfo(
                        combatant_id=row.combatant_id,
                        name=row.name,
                        is_npc=row.is_npc,
                        is_owner=row.is_owner,
                        is_defeated=row.is_defeated,
                        selection_status=row.selection_status.value,
                        action_status=row.action_status.value,
                        maneuver_revealed=row.maneuver_revealed,
                        is_acting=row.is_acting,
                        speed=row.speed,
                        maneuver=row.maneuver,
                        maneuver_hidden=row.maneuver_hidden,
                        can_select=row.can_select,
                        can_interrupt=row.can_interrupt,
                        status_key=row.status_key,
                    )
                    for row in rows
                ],
            )

    def drain_events(self, encounter_id: str) -> list[dict[str, Any]]:
        """Take every event message announced since the last drain."""
        return self._outbox.pop(encounter_id, [])

    # =========================================================================
    # Helpers
    # =========================================================================

    def _collect(self, event: CombatEvent) -> None:
        self._outbox[event.encounter_id].append(event.to_message())

    def _apply(
        self,
        encounter_id: str,
        operation: Operation,
        ctx: OperationContext,
    ) -> OperationResponse | ErrorResponse:
        with self.manager.locked(encounter_id) as session:
            if session is None:
                return self._not_found(encounter_id)
            result = self.dispatcher.apply(session.encounter, operation, ctx)
            if not result.success:
                return self._error_from(result)
            return self._result_to_response(session, result)

    def _respond(self, encounter_id: str, result: OperationResult) -> OperationResponse | ErrorResponse:
        if not result.success:
            return self._error_from(result)
        with self.manager.locked(encounter_id) as session:
            if session is None:
                return self._not_found(encounter_id)
            return self._result_to_response(session, result)

    def _result_to_response(self, session: EncounterSession, result: OperationResult) -> OperationResponse:
        return OperationResponse(
            encounter_id=session.session_id,
            changes=result.changes,
            relayed=result.relayed,
            encounter=self._encounter_to_response(session),
        )

    def _encounter_to_response(self, session: EncounterSession) -> EncounterResponse:
        """Convert the encounter to its API shape. Caller holds the lock."""
        encounter = session.encounter
        combatants = []
        for combatant in encounter.combatants.values():
            data = combatant_to_dict(combatant)
            data["is_defeated"] = combatant.is_defeated
            combatants.append(CombatantInfo(**data))

        return EncounterResponse(
            encounter_id=encounter.encounter_id,
            name=encounter.name,
            phase=PhaseName(encounter.phase.value),
            round=encounter.round,
            current_acting_id=encounter.current_acting_id,
            interruption_stack=encounter.interrupted_ids,
            turn_started=encounter.turn_started,
            all_selections_complete=encounter.all_selections_complete,
            all_actions_complete=encounter.all_actions_complete,
            combatants=combatants,
            created_at=session.created_at,
        )

    def _error_from(self, result: OperationResult) -> ErrorResponse:
        code = result.error_code.value if result.error_code else ErrorCode.INTERNAL_ERROR.value
        return ErrorResponse(error=result.error or "Operation failed", error_code=ErrorCode(code))

    def _not_found(self, encounter_id: str) -> ErrorResponse:
        return ErrorResponse(
            error="Encounter not found",
            error_code=ErrorCode.ENCOUNTER_NOT_FOUND,
            details={"encounter_id": encounter_id},
        )
