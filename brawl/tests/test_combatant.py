"""
Tests for combatant state and maneuvers.
"""

import pytest

from ..engine_core.combatant import CombatantState, InvalidManeuverError, SelectedManeuver
from ..engine_core.operation import ErrorCode
from ..engine_core.phases import ActionStatus, SelectionStatus
from ..engine_core.resources import FighterResources, ResourcePool
from .conftest import make_maneuver


def fighter(combatant_id: str, speed=None, status=ActionStatus.PENDING, health=10) -> CombatantState:
    combatant = CombatantState(
        combatant_id=combatant_id,
        name=combatant_id.upper(),
        actor=FighterResources(health=ResourcePool(health, 10)),
    )
    if speed is not None:
        combatant.record_selection(make_maneuver(f"Move {combatant_id}", speed))
    combatant.action_status = status
    return combatant


class TestSelectedManeuver:
    """Tests for maneuver construction."""

    def test_create_fills_defaults(self):
        m = SelectedManeuver.create("jab", "Jab", speed=4, damage=2, movement=0)
        assert m.chi_cost == 0
        assert m.willpower_cost == 0
        assert m.notes == ""

    def test_create_requires_name(self):
        with pytest.raises(InvalidManeuverError):
            SelectedManeuver.create("jab", "", speed=4, damage=2, movement=0)

    def test_create_requires_integer_speed(self):
        with pytest.raises(InvalidManeuverError):
            SelectedManeuver.create("jab", "Jab", speed=None, damage=2, movement=0)

    def test_create_rejects_bool_stats(self):
        with pytest.raises(InvalidManeuverError):
            SelectedManeuver.create("jab", "Jab", speed=True, damage=2, movement=0)

    def test_create_rejects_negative_cost(self):
        with pytest.raises(InvalidManeuverError):
            SelectedManeuver.create("jab", "Jab", speed=4, damage=2, movement=0, chi_cost=-1)

    def test_from_dict_rejects_missing_movement(self):
        with pytest.raises(InvalidManeuverError):
            SelectedManeuver.from_dict({"maneuver_id": "jab", "name": "Jab", "speed": 4, "damage": 2})

    def test_is_immutable(self):
        m = make_maneuver("Jab", 4)
        with pytest.raises(Exception):
            m.speed = 1


class TestSelection:
    """Tests for recording and clearing a selection."""

    def test_record_selection(self):
        c = fighter("x")
        result = c.record_selection(make_maneuver("Jab", 4))
        assert result.success
        assert c.selection_status == SelectionStatus.READY
        assert c.speed == 4
        assert c.has_selected_maneuver

    def test_reselect_overwrites(self):
        c = fighter("x", speed=4)
        c.record_selection(make_maneuver("Roundhouse", 7))
        assert c.speed == 7
        assert c.selection_status == SelectionStatus.READY

    def test_record_rejects_raw_dict(self):
        """Only SelectedManeuver values are accepted."""
        c = fighter("x")
        result = c.record_selection({"name": "Jab", "speed": 4})
        assert not result.success
        assert result.error_code == ErrorCode.INVALID_MANEUVER
        assert c.selected_maneuver is None

    def test_clear_selection(self):
        c = fighter("x", speed=4)
        c.clear_selection()
        assert c.selected_maneuver is None
        assert c.selection_status == SelectionStatus.PENDING
        assert c.speed is None


class TestReveal:
    """Tests for revealing a maneuver."""

    def test_reveal_without_maneuver_fails(self):
        c = fighter("x")
        result = c.reveal_maneuver()
        assert not result.success
        assert result.error_code == ErrorCode.NO_MANEUVER_SELECTED
        assert not c.maneuver_revealed

    def test_reveal_sets_status(self):
        c = fighter("x", speed=3, status=ActionStatus.ACTING)
        assert c.reveal_maneuver().success
        assert c.maneuver_revealed
        assert c.action_status == ActionStatus.REVEALED


class TestResetTurnFlags:
    """Tests for round reset."""

    def test_reset_is_idempotent(self):
        """Resetting twice yields the same default state."""
        c = fighter("x", speed=3, status=ActionStatus.INTERRUPTED)
        c.maneuver_revealed = True
        c.interrupted_by_id = "y"

        c.reset_turn_flags()
        first = (c.selection_status, c.action_status, c.selected_maneuver, c.maneuver_revealed, c.interrupted_by_id)
        c.reset_turn_flags()
        second = (c.selection_status, c.action_status, c.selected_maneuver, c.maneuver_revealed, c.interrupted_by_id)

        assert first == second == (SelectionStatus.PENDING, ActionStatus.PENDING, None, False, None)


class TestCanInterrupt:
    """Tests for combatant-level interruption eligibility."""

    def test_faster_number_interrupts_acting(self):
        me = fighter("y", speed=5)
        target = fighter("x", speed=2, status=ActionStatus.ACTING)
        assert me.can_interrupt(target)

    def test_revealed_target_can_be_interrupted(self):
        me = fighter("y", speed=5)
        target = fighter("x", speed=2, status=ActionStatus.REVEALED)
        assert me.can_interrupt(target)

    def test_cannot_interrupt_self(self):
        me = fighter("x", speed=5, status=ActionStatus.ACTING)
        assert not me.can_interrupt(me)

    def test_cannot_interrupt_when_defeated(self):
        me = fighter("y", speed=5, health=0)
        target = fighter("x", speed=2, status=ActionStatus.ACTING)
        assert me.is_defeated
        assert not me.can_interrupt(target)

    @pytest.mark.parametrize("status", [ActionStatus.COMPLETED, ActionStatus.SKIPPED])
    def test_cannot_interrupt_after_finishing(self, status):
        me = fighter("y", speed=5, status=status)
        target = fighter("x", speed=2, status=ActionStatus.ACTING)
        assert not me.can_interrupt(target)

    def test_target_must_be_acting(self):
        me = fighter("y", speed=5)
        target = fighter("x", speed=2, status=ActionStatus.PENDING)
        assert not me.can_interrupt(target)

    def test_both_need_a_maneuver(self):
        target = fighter("x", speed=2, status=ActionStatus.ACTING)
        assert not fighter("y").can_interrupt(target)
        assert not fighter("y", speed=5).can_interrupt(fighter("z", status=ActionStatus.ACTING))

    def test_equal_speed_cannot_interrupt(self):
        me = fighter("y", speed=2)
        target = fighter("x", speed=2, status=ActionStatus.ACTING)
        assert not me.can_interrupt(target)

    def test_no_target(self):
        assert not fighter("y", speed=5).can_interrupt(None)


class TestOwnership:
    def test_owned_by(self):
        c = CombatantState(combatant_id="x", name="X", owner_id="alice")
        assert c.is_owned_by("alice")
        assert not c.is_owned_by("bob")
        assert not c.is_owned_by(None)

    def test_unowned_never_matches_none(self):
        c = CombatantState(combatant_id="x", name="X")
        assert not c.is_owned_by(None)

    def test_without_actor_not_defeated(self):
        assert not CombatantState(combatant_id="x", name="X").is_defeated
