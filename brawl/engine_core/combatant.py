"""
Combatant State - Per-participant state inside an encounter.

A combatant holds:
- The maneuver picked during selection (and whether it is public yet)
- Its selection and action statuses for the current round
- Who interrupted it, if anyone (a lookup id, never ownership)

`is_defeated` comes from the actor collaborator and is read-only here.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any

from .phases import (
    ACTIVE_STATUSES,
    FINISHED_STATUSES,
    ActionStatus,
    SelectionStatus,
    can_interrupt as speed_can_interrupt,
    default_combatant_flags,
)
from .operation import ErrorCode, OperationResult
from .resources import Actor


class InvalidManeuverError(ValueError):
    """Raised when a SelectedManeuver is built from incomplete data."""


@dataclass(frozen=True)
class SelectedManeuver:
    """
    A maneuver chosen for the round. Immutable once created.

    `speed` is the only ordering key: lower speed acts first.
    """
    maneuver_id: str
    name: str
    speed: int
    damage: int
    movement: int
    chi_cost: int = 0
    willpower_cost: int = 0
    notes: str = ""
    category: str = ""

    @classmethod
    def create(
        cls,
        maneuver_id: str,
        name: str,
        speed: int,
        damage: int,
        movement: int,
        chi_cost: int | None = 0,
        willpower_cost: int | None = 0,
        notes: str | None = "",
        category: str | None = "",
    ) -> SelectedManeuver:
        """
        Build a maneuver, filling optional fields with their defaults.

        Raises:
            InvalidManeuverError: missing id/name, non-integer stats or
                negative costs
        """
        if not maneuver_id or not name:
            raise InvalidManeuverError("Maneuver needs an id and a name")
        for label, value in (("speed", speed), ("damage", damage), ("movement", movement)):
            if isinstance(value, bool) or not isinstance(value, int):
                raise InvalidManeuverError(f"Maneuver {label} must be an integer, got {value!r}")
        chi_cost = chi_cost or 0
        willpower_cost = willpower_cost or 0
        if chi_cost < 0 or willpower_cost < 0:
            raise InvalidManeuverError("Maneuver costs cannot be negative")
        return cls(
            maneuver_id=maneuver_id,
            name=name,
            speed=speed,
            damage=damage,
            movement=movement,
            chi_cost=chi_cost,
            willpower_cost=willpower_cost,
            notes=notes or "",
            category=category or "",
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "maneuver_id": self.maneuver_id,
            "name": self.name,
            "speed": self.speed,
            "damage": self.damage,
            "movement": self.movement,
            "chi_cost": self.chi_cost,
            "willpower_cost": self.willpower_cost,
            "notes": self.notes,
            "category": self.category,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SelectedManeuver:
        return cls.create(
            maneuver_id=data.get("maneuver_id", ""),
            name=data.get("name", ""),
            speed=data.get("speed"),
            damage=data.get("damage"),
            movement=data.get("movement"),
            chi_cost=data.get("chi_cost"),
            willpower_cost=data.get("willpower_cost"),
            notes=data.get("notes"),
            category=data.get("category"),
        )


@dataclass
class CombatantState:
    """
    State for a single combatant.

    Constructed with default flags when the participant joins, reset at
    the start of every round, dropped when the participant leaves.
    """
    combatant_id: str
    name: str
    owner_id: str | None = None
    is_npc: bool = False
    actor: Actor | None = None

    selection_status: SelectionStatus = SelectionStatus.PENDING
    selected_maneuver: SelectedManeuver | None = None
    action_status: ActionStatus = ActionStatus.PENDING
    maneuver_revealed: bool = False
    interrupted_by_id: str | None = None

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    @property
    def is_defeated(self) -> bool:
        if self.actor is None:
            return False
        return bool(self.actor.is_defeated)

    @property
    def speed(self) -> int | None:
        """Speed of the selected maneuver, or None without a selection."""
        if self.selected_maneuver is None:
            return None
        return self.selected_maneuver.speed

    @property
    def has_selected_maneuver(self) -> bool:
        return (
            self.selection_status == SelectionStatus.READY
            and self.selected_maneuver is not None
        )

    @property
    def is_acting(self) -> bool:
        return self.action_status in ACTIVE_STATUSES

    @property
    def can_be_interrupted(self) -> bool:
        return self.action_status in ACTIVE_STATUSES

    @property
    def is_finished(self) -> bool:
        return self.action_status in FINISHED_STATUSES

    def is_owned_by(self, user_id: str | None) -> bool:
        return user_id is not None and self.owner_id == user_id

    def can_interrupt(self, target: CombatantState | None) -> bool:
        """
        Check if this combatant may interrupt `target`.

        Both sides need a maneuver; the target must hold the acting slot
        and this combatant must still be in the round.
        """
        if target is None or target.combatant_id == self.combatant_id:
            return False
        if self.is_defeated:
            return False
        if self.action_status in FINISHED_STATUSES:
            return False
        if not target.can_be_interrupted:
            return False

        my_speed = self.speed
        target_speed = target.speed
        if my_speed is None or target_speed is None:
            return False

        return speed_can_interrupt(my_speed, target_speed)

    # -------------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------------

    def record_selection(self, maneuver: SelectedManeuver) -> OperationResult:
        """Pick a maneuver for this round. Re-selecting overwrites."""
        if not isinstance(maneuver, SelectedManeuver):
            return OperationResult.failure(
                f"{self.name}: a maneuver must be a SelectedManeuver",
                ErrorCode.INVALID_MANEUVER,
            )
        self.selected_maneuver = maneuver
        self.selection_status = SelectionStatus.READY
        return OperationResult.ok([f"{self.name} selected {maneuver.name}"])

    def clear_selection(self) -> None:
        self.selected_maneuver = None
        self.selection_status = SelectionStatus.PENDING

    def reveal_maneuver(self) -> OperationResult:
        """Make the selected maneuver public."""
        if self.selected_maneuver is None:
            return OperationResult.failure(
                f"{self.name} has no maneuver selected",
                ErrorCode.NO_MANEUVER_SELECTED,
            )
        self.maneuver_revealed = True
        self.action_status = ActionStatus.REVEALED
        return OperationResult.ok(
            [f"{self.name} revealed {self.selected_maneuver.name}"]
        )

    def reset_turn_flags(self) -> None:
        """Back to the defaults of a fresh round."""
        flags = default_combatant_flags()
        self.selected_maneuver = flags["selected_maneuver"]
        self.selection_status = flags["selection_status"]
        self.action_status = flags["action_status"]
        self.maneuver_revealed = flags["maneuver_revealed"]
        self.interrupted_by_id = flags["interrupted_by_id"]
