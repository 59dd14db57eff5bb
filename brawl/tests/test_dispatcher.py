"""
Tests for operation dispatch.
"""

from ..engine_core.combatant import CombatantState
from ..engine_core.dispatcher import Dispatcher, apply_operation
from ..engine_core.operation import ErrorCode, Operation, OperationResult, OperationType
from ..engine_core.phases import ActionStatus, Phase
from .conftest import make_maneuver


class TestDispatch:
    """Operations route to the matching encounter method."""

    def test_full_round_through_operations(self, encounter, operator):
        ops = [
            Operation.begin(),
            Operation.start_selection(),
            Operation.select_maneuver("x", make_maneuver("Jab", 2)),
            Operation.select_maneuver("y", make_maneuver("Fierce", 5)),
            Operation.start_execution(),
            Operation.interrupt("y"),
            Operation.complete_action(),
            Operation.reveal_maneuver("x"),
            Operation.complete_action(),
            Operation.advance_turn(),
        ]
        for op in ops:
            result = apply_operation(encounter, op, operator)
            assert result.success, (op.operation_type, result.error)

        assert encounter.round == 2
        assert encounter.phase == Phase.SELECTION

    def test_skip_and_clear(self, selecting, operator):
        dispatcher = Dispatcher()
        assert dispatcher.apply(selecting, Operation.clear_maneuver("y"), operator).success
        assert selecting.get_combatant("y").selected_maneuver is None

        dispatcher.apply(selecting, Operation.select_maneuver("y", make_maneuver("Fierce", 5)), operator)
        dispatcher.apply(selecting, Operation.start_execution(), operator)
        dispatcher.apply(selecting, Operation.skip_action(), operator)
        assert selecting.get_combatant("x").action_status == ActionStatus.SKIPPED

    def test_roster_operations(self, encounter, operator):
        z = CombatantState(combatant_id="z", name="Z")
        assert apply_operation(encounter, Operation.add_combatant(z), operator).success
        assert apply_operation(encounter, Operation.remove_combatant("z"), operator).success
        assert "z" not in encounter.combatants

    def test_guard_failures_pass_through(self, encounter, alice):
        result = apply_operation(encounter, Operation.start_selection(), alice)
        assert result.error_code == ErrorCode.UNAUTHORIZED


class TestValidation:
    """Malformed operations never reach the encounter."""

    def test_interrupt_needs_combatant(self, executing, operator):
        result = apply_operation(executing, Operation(OperationType.INTERRUPT), operator)
        assert result.error_code == ErrorCode.UNKNOWN_OPERATION
        assert executing.current_acting_id == "x"

    def test_select_needs_maneuver(self, selecting, operator):
        op = Operation(OperationType.SELECT_MANEUVER, combatant_id="x")
        result = apply_operation(selecting, op, operator)
        assert result.error_code == ErrorCode.UNKNOWN_OPERATION


class TestOperationResult:
    def test_unauthorized_message(self):
        result = OperationResult.unauthorized("advance to the next turn")
        assert not result.success
        assert result.error == "Only the operator can advance to the next turn"

    def test_ok_defaults(self):
        result = OperationResult.ok()
        assert result.success
        assert result.changes == []
        assert not result.relayed
