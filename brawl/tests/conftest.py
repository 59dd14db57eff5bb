"""
Pytest fixtures for Brawl tests.
"""

import pytest

from ..engine_core.combatant import CombatantState, SelectedManeuver
from ..engine_core.encounter import EncounterState
from ..engine_core.events import EventBus
from ..engine_core.operation import OperationContext
from ..engine_core.resources import FighterResources, ResourcePool


def make_maneuver(name: str, speed: int, damage: int = 3, movement: int = 1, **extra) -> SelectedManeuver:
    """Build a valid maneuver with a derived id."""
    return SelectedManeuver.create(
        maneuver_id=name.lower().replace(" ", "_"),
        name=name,
        speed=speed,
        damage=damage,
        movement=movement,
        **extra,
    )


@pytest.fixture
def operator() -> OperationContext:
    """The operator's context."""
    return OperationContext.operator("gm")


@pytest.fixture
def alice() -> OperationContext:
    """A participant who owns X."""
    return OperationContext.player("alice")


@pytest.fixture
def bob() -> OperationContext:
    """A participant who owns Y."""
    return OperationContext.player("bob")


@pytest.fixture
def maneuver():
    """Factory for maneuvers: maneuver("Jab", 4)."""
    return make_maneuver


@pytest.fixture
def bus() -> EventBus:
    return EventBus(encounter_id="enc-1")


@pytest.fixture
def encounter(bus: EventBus, operator: OperationContext) -> EncounterState:
    """Encounter in SETUP with X (alice) and Y (bob)."""
    state = EncounterState(encounter_id="enc-1", name="Dojo", announcer=bus)
    state.add_combatant(
        CombatantState(
            combatant_id="x",
            name="X",
            owner_id="alice",
            actor=FighterResources(chi=ResourcePool(1, 3), super_meter=ResourcePool(4, 10)),
        ),
        operator,
    )
    state.add_combatant(
        CombatantState(combatant_id="y", name="Y", owner_id="bob", actor=FighterResources()),
        operator,
    )
    return state


@pytest.fixture
def selecting(encounter: EncounterState, operator: OperationContext) -> EncounterState:
    """Round 1 selection with X at speed 2 and Y at speed 5 selected."""
    encounter.begin(operator)
    encounter.start_selection_phase(operator)
    encounter.select_maneuver("x", make_maneuver("Jab", 2), operator)
    encounter.select_maneuver("y", make_maneuver("Fierce Punch", 5), operator)
    return encounter


@pytest.fixture
def executing(selecting: EncounterState, operator: OperationContext) -> EncounterState:
    """Round 1 execution: X acts first."""
    selecting.start_execution_phase(operator)
    return selecting
