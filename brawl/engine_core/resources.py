"""
Fighter Resources - The actor side of a combatant.

The combat engine does not own health, chi, willpower or the super meter.
It only reads `is_defeated` and calls round hooks; this module is the
default collaborator that provides both.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Protocol

if TYPE_CHECKING:
    from .combatant import CombatantState


class Actor(Protocol):
    """What the engine needs from whatever backs a combatant."""

    @property
    def is_defeated(self) -> bool: ...


@dataclass
class ResourcePool:
    """A bounded value (health, chi, willpower, super)."""
    value: int = 0
    max: int = 0

    def gain(self, amount: int) -> None:
        self.value = min(self.max, self.value + amount)

    def spend(self, amount: int) -> None:
        self.value = max(0, self.value - amount)


@dataclass
class FighterResources:
    """
    Resource track for a fighter.

    A fighter is defeated once health drops to zero.
    """
    health: ResourcePool = field(default_factory=lambda: ResourcePool(10, 10))
    chi: ResourcePool = field(default_factory=lambda: ResourcePool(0, 0))
    willpower: ResourcePool = field(default_factory=lambda: ResourcePool(0, 0))
    super_meter: ResourcePool = field(default_factory=lambda: ResourcePool(0, 0))

    @property
    def is_defeated(self) -> bool:
        return self.health.value <= 0

    def to_dict(self) -> dict[str, dict[str, int]]:
        return {
            name: {"value": pool.value, "max": pool.max}
            for name, pool in (
                ("health", self.health),
                ("chi", self.chi),
                ("willpower", self.willpower),
                ("super_meter", self.super_meter),
            )
        }

    @classmethod
    def from_dict(cls, data: dict[str, dict[str, int]]) -> FighterResources:
        def pool(name: str, default: ResourcePool) -> ResourcePool:
            raw = data.get(name)
            if raw is None:
                return default
            return ResourcePool(value=int(raw.get("value", 0)), max=int(raw.get("max", 0)))

        return cls(
            health=pool("health", ResourcePool(10, 10)),
            chi=pool("chi", ResourcePool(0, 0)),
            willpower=pool("willpower", ResourcePool(0, 0)),
            super_meter=pool("super_meter", ResourcePool(0, 0)),
        )


# A hook is called once per combatant
CombatantHook = Callable[["CombatantState"], None]


def regenerate_chi(combatant: CombatantState) -> None:
    """End of round: each fighter recovers one chi, up to the maximum."""
    actor = combatant.actor
    if isinstance(actor, FighterResources):
        actor.chi.gain(1)


def reset_super_meter(combatant: CombatantState) -> None:
    """Start of an encounter: every super meter starts empty."""
    actor = combatant.actor
    if isinstance(actor, FighterResources):
        actor.super_meter.value = 0


DEFAULT_ROUND_END_HOOKS: tuple[CombatantHook, ...] = (regenerate_chi,)
DEFAULT_BEGIN_HOOKS: tuple[CombatantHook, ...] = (reset_super_meter,)
