"""
Tests for encounter snapshots.
"""

import json

import pytest

from ..engine_core.combatant import InvalidManeuverError
from ..engine_core.events import EventBus, EventKind
from ..engine_core.phases import ActionStatus, Phase
from ..engine_core.serialization import combatant_from_dict, encounter_from_dict, encounter_to_dict


class TestSnapshots:
    def test_snapshot_is_json_compatible(self, executing, operator):
        executing.handle_interruption("y", operator)
        data = encounter_to_dict(executing)

        assert json.loads(json.dumps(data)) == data
        assert data["phase"] == "execution"
        assert data["interruption_stack"] == ["x"]
        assert data["round"] == 1

    def test_restored_encounter_continues(self, executing, operator):
        """A restored mid-interruption encounter resumes the interrupted actor."""
        executing.handle_interruption("y", operator)
        bus = EventBus(encounter_id="enc-1")

        restored = encounter_from_dict(encounter_to_dict(executing), announcer=bus)
        restored.complete_current_action(operator)

        assert restored.phase == Phase.EXECUTION
        assert restored.current_acting_id == "x"
        assert restored.get_combatant("y").action_status == ActionStatus.COMPLETED
        assert bus.history(EventKind.TURN_STARTED)[-1].payload["combatant_id"] == "x"

    def test_resources_survive(self, encounter):
        restored = encounter_from_dict(encounter_to_dict(encounter))
        assert restored.get_combatant("x").actor.chi.max == 3

    def test_missing_flags_use_defaults(self):
        combatant = combatant_from_dict({"combatant_id": "x"})
        assert combatant.name == "x"
        assert combatant.action_status == ActionStatus.PENDING
        assert combatant.actor is None

    def test_broken_maneuver_raises(self):
        with pytest.raises(InvalidManeuverError):
            combatant_from_dict({"combatant_id": "x", "selected_maneuver": {"name": "Jab"}})

    def test_hooks_can_be_replaced(self, encounter):
        restored = encounter_from_dict(encounter_to_dict(encounter), round_end_hooks=[])
        assert restored.round_end_hooks == []
