"""
Encounter State - The two-phase turn-resolution state machine.

Phases:
    SETUP → SELECTION ⇄ EXECUTION

During EXECUTION the encounter tracks who is acting plus a LIFO stack of
interrupted combatants. Completing an interrupting action always hands
control back to whoever it interrupted before initiative order continues.

Design principles:
- Guards first: a rejected operation returns a failure and mutates nothing
- Operator-only transitions take an explicit OperationContext
- Observers are told through the injected announcer, never awaited
- Not thread-safe: callers serialize mutations per encounter
"""

from __future__ import annotations
from dataclasses import dataclass, field
import logging

from .phases import (
    ACTIVE_STATUSES,
    ActionStatus,
    Phase,
    default_encounter_flags,
    sort_by_initiative,
)
from .combatant import CombatantState, SelectedManeuver
from .events import Announcer, EventKind, NullAnnouncer
from .operation import ErrorCode, OperationContext, OperationResult
from .resources import DEFAULT_BEGIN_HOOKS, DEFAULT_ROUND_END_HOOKS, CombatantHook

logger = logging.getLogger(__name__)


@dataclass
class RoundCounter:
    """Round number owned by the host; the encounter only advances it."""
    round: int = 0

    @property
    def is_first_round(self) -> bool:
        return self.round == 0

    def advance(self) -> int:
        self.round += 1
        return self.round


@dataclass
class EncounterState:
    """
    One ongoing encounter and its roster.

    The roster is keyed by combatant id. Its iteration order means nothing;
    anything order-dependent goes through `combatants_by_initiative`.
    """
    encounter_id: str
    name: str = ""

    phase: Phase = Phase.SETUP
    current_acting_id: str | None = None
    interruption_stack: list[str] = field(default_factory=list)
    turn_started: bool = False
    rounds: RoundCounter = field(default_factory=RoundCounter)

    combatants: dict[str, CombatantState] = field(default_factory=dict)

    # Collaborators
    announcer: Announcer = field(default_factory=NullAnnouncer, repr=False, compare=False)
    round_end_hooks: list[CombatantHook] = field(
        default_factory=lambda: list(DEFAULT_ROUND_END_HOOKS), repr=False, compare=False
    )
    begin_hooks: list[CombatantHook] = field(
        default_factory=lambda: list(DEFAULT_BEGIN_HOOKS), repr=False, compare=False
    )

    # =========================================================================
    # Queries
    # =========================================================================

    @property
    def round(self) -> int:
        return self.rounds.round

    @property
    def current_acting(self) -> CombatantState | None:
        """The combatant holding the acting slot, if any."""
        if self.current_acting_id is None:
            return None
        return self.combatants.get(self.current_acting_id)

    @property
    def interrupted_ids(self) -> list[str]:
        """Copy of the interruption stack, most recent interruption last."""
        return list(self.interruption_stack)

    def get_combatant(self, combatant_id: str | None) -> CombatantState | None:
        if combatant_id is None:
            return None
        return self.combatants.get(combatant_id)

    @property
    def all_selections_complete(self) -> bool:
        """Every combatant still standing has a maneuver ready."""
        if not self.combatants:
            return False
        return all(
            c.is_defeated or c.has_selected_maneuver
            for c in self.combatants.values()
        )

    @property
    def all_actions_complete(self) -> bool:
        """Every combatant still standing has completed or skipped."""
        if not self.combatants:
            return False
        return all(
            c.is_defeated or c.is_finished
            for c in self.combatants.values()
        )

    @property
    def combatants_by_initiative(self) -> list[CombatantState]:
        """Non-defeated combatants, ascending speed, name tie-break."""
        return sort_by_initiative(
            c for c in self.combatants.values() if not c.is_defeated
        )

    # =========================================================================
    # Roster
    # =========================================================================

    def add_combatant(self, combatant: CombatantState, ctx: OperationContext) -> OperationResult:
        """Join a participant. It starts from default flags."""
        if not ctx.is_operator:
            return self._unauthorized("add combatants")
        if combatant.combatant_id in self.combatants:
            return self._fail(
                f"Combatant {combatant.combatant_id} is already in the encounter",
                ErrorCode.DUPLICATE_COMBATANT,
            )

        combatant.reset_turn_flags()
        self.combatants[combatant.combatant_id] = combatant
        logger.info("Encounter %s: %s joined", self.encounter_id, combatant.name)
        return OperationResult.ok([f"{combatant.name} joined the encounter"])

    def remove_combatant(self, combatant_id: str, ctx: OperationContext) -> OperationResult:
        """
        Drop a participant.

        If it held the acting slot, control passes to the top of the
        interruption stack, or else to the next pending combatant in the
        order that stood before the removal.
        """
        if not ctx.is_operator:
            return self._unauthorized("remove combatants")
        combatant = self.combatants.get(combatant_id)
        if combatant is None:
            return self._not_found(combatant_id)

        was_acting = combatant_id == self.current_acting_id
        ordered_before = [c.combatant_id for c in self.combatants_by_initiative]

        del self.combatants[combatant_id]
        self.interruption_stack = [i for i in self.interruption_stack if i != combatant_id]
        changes = [f"{combatant.name} left the encounter"]

        if was_acting:
            self.current_acting_id = None
            if not self._resume_interrupted():
                start = ordered_before.index(combatant_id) + 1 if combatant_id in ordered_before else 0
                for next_id in ordered_before[start:]:
                    nxt = self.combatants.get(next_id)
                    if nxt and not nxt.is_defeated and nxt.action_status == ActionStatus.PENDING:
                        self._set_acting(nxt)
                        break

        logger.info("Encounter %s: %s left", self.encounter_id, combatant.name)
        return OperationResult.ok(changes)

    def begin(self, ctx: OperationContext) -> OperationResult:
        """
        Start (or restart) the encounter: default flags everywhere, phase
        back to SETUP, begin hooks run once per combatant.
        """
        if not ctx.is_operator:
            return self._unauthorized("begin the encounter")

        flags = default_encounter_flags()
        self.phase = flags["phase"]
        self.current_acting_id = flags["current_acting_id"]
        self.interruption_stack = flags["interruption_stack"]
        self.turn_started = flags["turn_started"]

        for combatant in self.combatants.values():
            for hook in self.begin_hooks:
                hook(combatant)
            combatant.reset_turn_flags()

        self._announce(EventKind.PHASE_CHANGED, {"phase": self.phase.value, "round": self.round})
        logger.info("Encounter %s: begun with %d combatants", self.encounter_id, len(self.combatants))
        return OperationResult.ok(["Encounter begun"])

    # =========================================================================
    # Phase transitions
    # =========================================================================

    def start_selection_phase(self, ctx: OperationContext) -> OperationResult:
        """Open maneuver selection for a new round."""
        if not ctx.is_operator:
            return self._unauthorized("start the selection phase")

        if self.rounds.is_first_round:
            self.rounds.advance()

        for combatant in self.combatants.values():
            combatant.reset_turn_flags()

        self.phase = Phase.SELECTION
        self.turn_started = True
        self.current_acting_id = None
        self.interruption_stack = []

        self._announce(EventKind.PHASE_CHANGED, {"phase": self.phase.value, "round": self.round})
        logger.info("Encounter %s: selection phase, round %d", self.encounter_id, self.round)
        return OperationResult.ok([f"Round {self.round}: selection phase started"])

    def start_execution_phase(self, ctx: OperationContext) -> OperationResult:
        """Close selection and hand the first turn to the fastest maneuver."""
        if not ctx.is_operator:
            return self._unauthorized("start the execution phase")
        if self.phase != Phase.SELECTION:
            return self._fail(
                f"Execution can only start from the selection phase, not {self.phase.value}",
                ErrorCode.WRONG_PHASE,
            )
        if not self.all_selections_complete:
            return self._fail(
                "Not every combatant has selected a maneuver",
                ErrorCode.SELECTIONS_INCOMPLETE,
            )

        self.phase = Phase.EXECUTION
        changes = [f"Round {self.round}: execution phase started"]

        ordered = self.combatants_by_initiative
        if ordered:
            self._set_acting(ordered[0])
            changes.append(f"{ordered[0].name} acts first")

        self._announce(EventKind.PHASE_CHANGED, {"phase": self.phase.value, "round": self.round})
        logger.info("Encounter %s: execution phase, round %d", self.encounter_id, self.round)
        return OperationResult.ok(changes)

    def advance_to_next_turn(self, ctx: OperationContext) -> OperationResult:
        """Close the round, run round-end hooks, and open the next selection."""
        if not ctx.is_operator:
            return self._unauthorized("advance to the next turn")
        if not self.all_actions_complete:
            return self._fail(
                "Not every combatant has completed or skipped their action",
                ErrorCode.ACTIONS_INCOMPLETE,
            )

        finished_round = self.round
        for combatant in self.combatants.values():
            for hook in self.round_end_hooks:
                hook(combatant)
        self._announce(EventKind.ROUND_ENDED, {"round": finished_round})

        self.rounds.advance()
        result = self.start_selection_phase(ctx)
        result.changes.insert(0, f"Round {finished_round} ended")
        return result

    # =========================================================================
    # Execution control
    # =========================================================================

    def handle_interruption(self, interruptor_id: str, ctx: OperationContext) -> OperationResult:
        """Let `interruptor_id` cut into the current action."""
        if not ctx.is_operator:
            return self._unauthorized("resolve interruptions")

        interruptor = self.get_combatant(interruptor_id)
        interrupted = self.current_acting
        if interruptor is None or interrupted is None:
            return self._fail(
                "Interruption needs a known interruptor and someone acting",
                ErrorCode.INVALID_INTERRUPTION,
            )
        if not interruptor.can_interrupt(interrupted):
            return self._fail(
                f"{interruptor.name} cannot interrupt {interrupted.name}",
                ErrorCode.INTERRUPT_NOT_ALLOWED,
            )
        if interrupted.action_status == ActionStatus.COMPLETED:
            return self._fail(
                f"{interrupted.name} has already completed their action",
                ErrorCode.ACTION_ALREADY_COMPLETED,
            )

        self.interruption_stack.append(interrupted.combatant_id)
        interrupted.action_status = ActionStatus.INTERRUPTED
        interrupted.interrupted_by_id = interruptor.combatant_id

        self._set_acting(interruptor)

        self._announce(EventKind.INTERRUPTION, {
            "interruptor_id": interruptor.combatant_id,
            "interruptor_name": interruptor.name,
            "interrupted_id": interrupted.combatant_id,
            "interrupted_name": interrupted.name,
        })
        logger.info(
            "Encounter %s: %s interrupts %s (stack depth %d)",
            self.encounter_id, interruptor.name, interrupted.name, len(self.interruption_stack),
        )
        return OperationResult.ok([f"{interruptor.name} interrupts {interrupted.name}"])

    def complete_current_action(self, ctx: OperationContext) -> OperationResult:
        """
        Finish the current action.

        The maneuver is revealed first if it is still hidden. Control then
        returns to the most recently interrupted combatant, if any,
        otherwise initiative order continues.
        """
        if not ctx.is_operator:
            return self._unauthorized("complete actions")

        current = self.current_acting
        if current is None:
            return OperationResult.ok()

        changes = []
        if not current.maneuver_revealed:
            reveal = self._reveal(current)
            changes.extend(reveal.changes)

        current.action_status = ActionStatus.COMPLETED
        changes.append(f"{current.name} completed their action")
        logger.info("Encounter %s: %s completed", self.encounter_id, current.name)

        resumed = self._resume_interrupted()
        if resumed is not None:
            changes.append(f"{resumed.name} resumes")
            return OperationResult.ok(changes)

        nxt = self._advance_to_next()
        if nxt is not None:
            changes.append(f"{nxt.name} acts next")
        return OperationResult.ok(changes)

    def skip_current_action(self, ctx: OperationContext) -> OperationResult:
        """Pass on the current action. Skipping never reveals the maneuver."""
        if not ctx.is_operator:
            return self._unauthorized("skip actions")

        current = self.current_acting
        if current is None:
            return OperationResult.ok()

        current.action_status = ActionStatus.SKIPPED
        changes = [f"{current.name} skipped their action"]
        logger.info("Encounter %s: %s skipped", self.encounter_id, current.name)

        nxt = self._advance_to_next()
        if nxt is not None:
            changes.append(f"{nxt.name} acts next")
        return OperationResult.ok(changes)

    # =========================================================================
    # Combatant choices
    # =========================================================================

    def select_maneuver(
        self,
        combatant_id: str,
        maneuver: SelectedManeuver,
        ctx: OperationContext,
    ) -> OperationResult:
        """Record a maneuver for a combatant. Owner or operator only."""
        combatant = self.get_combatant(combatant_id)
        if combatant is None:
            return self._not_found(combatant_id)
        if not self._may_control(combatant, ctx):
            return self._unauthorized(f"choose a maneuver for {combatant.name}")
        if self.phase != Phase.SELECTION:
            return self._fail(
                "Maneuvers can only change during the selection phase",
                ErrorCode.SELECTION_CLOSED,
            )

        result = combatant.record_selection(maneuver)
        if result.success:
            # The choice itself stays hidden until revealed
            self._announce(EventKind.MANEUVER_SELECTED, {
                "combatant_id": combatant.combatant_id,
                "combatant_name": combatant.name,
            })
        return result

    def clear_maneuver(self, combatant_id: str, ctx: OperationContext) -> OperationResult:
        combatant = self.get_combatant(combatant_id)
        if combatant is None:
            return self._not_found(combatant_id)
        if not self._may_control(combatant, ctx):
            return self._unauthorized(f"clear the maneuver of {combatant.name}")
        if self.phase != Phase.SELECTION:
            return self._fail(
                "Maneuvers can only change during the selection phase",
                ErrorCode.SELECTION_CLOSED,
            )

        combatant.clear_selection()
        return OperationResult.ok([f"{combatant.name} cleared their maneuver"])

    def reveal_maneuver(self, combatant_id: str, ctx: OperationContext) -> OperationResult:
        """Reveal the acting combatant's maneuver. Owner or operator only."""
        combatant = self.get_combatant(combatant_id)
        if combatant is None:
            return self._not_found(combatant_id)
        if not self._may_control(combatant, ctx):
            return self._unauthorized(f"reveal the maneuver of {combatant.name}")
        if combatant_id != self.current_acting_id:
            return self._fail(
                f"{combatant.name} is not the acting combatant",
                ErrorCode.NOT_ACTING,
            )
        return self._reveal(combatant)

    # =========================================================================
    # Internals
    # =========================================================================

    def demote_previous_actor(self, incoming: CombatantState) -> CombatantState | None:
        """
        Mark whoever still holds the acting slot as INTERRUPTED before
        `incoming` takes it. Returns the demoted combatant, if any.
        """
        previous = self.current_acting
        if previous is None or previous.combatant_id == incoming.combatant_id:
            return None
        if previous.action_status not in ACTIVE_STATUSES:
            return None
        previous.action_status = ActionStatus.INTERRUPTED
        return previous

    def _set_acting(self, combatant: CombatantState) -> None:
        self.demote_previous_actor(combatant)
        self.current_acting_id = combatant.combatant_id
        combatant.action_status = ActionStatus.ACTING
        self._announce(EventKind.TURN_STARTED, {
            "combatant_id": combatant.combatant_id,
            "combatant_name": combatant.name,
        })

    def _resume_interrupted(self) -> CombatantState | None:
        """Pop the interruption stack and hand control back. LIFO."""
        while self.interruption_stack:
            return_to = self.combatants.get(self.interruption_stack.pop())
            if return_to is not None:
                self._set_acting(return_to)
                return return_to
        return None

    def _advance_to_next(self) -> CombatantState | None:
        """First PENDING combatant after the current one, in initiative order."""
        ordered = self.combatants_by_initiative
        ids = [c.combatant_id for c in ordered]
        start = ids.index(self.current_acting_id) + 1 if self.current_acting_id in ids else 0

        for nxt in ordered[start:]:
            if nxt.action_status == ActionStatus.PENDING:
                self._set_acting(nxt)
                return nxt

        self.current_acting_id = None
        logger.info("Encounter %s: no pending actions left in round %d", self.encounter_id, self.round)
        return None

    def _reveal(self, combatant: CombatantState) -> OperationResult:
        result = combatant.reveal_maneuver()
        if result.success:
            maneuver = combatant.selected_maneuver
            self._announce(EventKind.MANEUVER_REVEALED, {
                "combatant_id": combatant.combatant_id,
                "combatant_name": combatant.name,
                "maneuver_name": maneuver.name,
                "maneuver": maneuver.to_dict(),
            })
        return result

    def _may_control(self, combatant: CombatantState, ctx: OperationContext) -> bool:
        return ctx.is_operator or combatant.is_owned_by(ctx.user_id)

    def _announce(self, kind: EventKind, payload: dict) -> None:
        self.announcer.announce(kind, payload)

    def _fail(self, message: str, code: ErrorCode) -> OperationResult:
        logger.debug("Encounter %s rejected: %s (%s)", self.encounter_id, message, code.value)
        return OperationResult.failure(message, code)

    def _unauthorized(self, what: str) -> OperationResult:
        logger.debug("Encounter %s rejected unauthorized attempt to %s", self.encounter_id, what)
        return OperationResult.unauthorized(what)

    def _not_found(self, combatant_id: str) -> OperationResult:
        return self._fail(f"Combatant {combatant_id} not found", ErrorCode.COMBATANT_NOT_FOUND)
