"""
Brawl CLI - Command-line interface for the engine.

Usage:
    brawl serve [--host H] [--port P]     Run the HTTP/WebSocket API
    brawl simulate <roster.json>          Play one scripted round

Roster files look like:
    {
      "name": "Dojo",
      "combatants": [
        {"combatant_id": "ryu", "name": "Ryu", "owner_id": "alice",
         "maneuver": {"maneuver_id": "jab", "name": "Jab", "speed": 4,
                      "damage": 2, "movement": 0},
         "interrupt": true}
      ]
    }

A combatant marked "interrupt" cuts in on the first turn it is allowed to.
"""

import argparse
import json
import logging
import os
import sys


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Brawl - Two-phase combat turn engine",
        prog="brawl",
    )
    parser.add_argument(
        "--log-level",
        default=os.getenv("BRAWL_LOG_LEVEL", "INFO"),
        help="Logging level (default: BRAWL_LOG_LEVEL or INFO)",
    )
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Serve command
    serve_parser = subparsers.add_parser("serve", help="Run the API server")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Bind address")
    serve_parser.add_argument("--port", type=int, default=8000, help="Bind port")
    serve_parser.add_argument("--reload", action="store_true", help="Reload on code changes")

    # Simulate command
    simulate_parser = subparsers.add_parser("simulate", help="Play one scripted round")
    simulate_parser.add_argument("roster_file", help="Path to roster JSON file")
    simulate_parser.add_argument("--json", action="store_true", help="Print the final snapshot as JSON")

    args = parser.parse_args()

    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == "serve":
        cmd_serve(args)
    elif args.command == "simulate":
        cmd_simulate(args)
    else:
        parser.print_help()
        sys.exit(1)


def cmd_serve(args):
    """Run the API with uvicorn."""
    try:
        import uvicorn
    except ImportError:
        print("Error: uvicorn not installed. Install with: pip install uvicorn")
        sys.exit(1)

    uvicorn.run("brawl.api.app:app", host=args.host, port=args.port, reload=args.reload)


def load_roster(path):
    """
    Read a roster file into combatants and their scripted maneuvers.

    Returns:
        (name, [(CombatantState, SelectedManeuver | None, interrupts)])
    """
    from .engine_core import CombatantState, FighterResources, SelectedManeuver

    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)

    entries = []
    for raw in data.get("combatants", []):
        resources = raw.get("resources")
        combatant = CombatantState(
            combatant_id=raw["combatant_id"],
            name=raw.get("name", raw["combatant_id"]),
            owner_id=raw.get("owner_id"),
            is_npc=bool(raw.get("is_npc", False)),
            actor=FighterResources.from_dict(resources) if resources else None,
        )
        maneuver = raw.get("maneuver")
        entries.append((
            combatant,
            SelectedManeuver.from_dict(maneuver) if maneuver else None,
            bool(raw.get("interrupt", False)),
        ))
    return data.get("name", path), entries


def run_round(encounter, entries, ctx):
    """
    Drive one full round: select, execute in order, end the round.

    Returns the first failed OperationResult, or None.
    """
    from .engine_core import ActionStatus

    steps = [encounter.begin, encounter.start_selection_phase]
    for step in steps:
        result = step(ctx)
        if not result.success:
            return result

    interruptors = []
    for combatant, maneuver, interrupts in entries:
        if maneuver is not None:
            result = encounter.select_maneuver(combatant.combatant_id, maneuver, ctx)
            if not result.success:
                return result
        if interrupts:
            interruptors.append(combatant.combatant_id)

    result = encounter.start_execution_phase(ctx)
    if not result.success:
        return result

    while encounter.current_acting is not None:
        current = encounter.current_acting
        for combatant_id in interruptors:
            combatant = encounter.get_combatant(combatant_id)
            if combatant.action_status == ActionStatus.PENDING and combatant.can_interrupt(current):
                encounter.handle_interruption(combatant_id, ctx)
                break
        else:
            encounter.complete_current_action(ctx)

    result = encounter.advance_to_next_turn(ctx)
    return None if result.success else result


def cmd_simulate(args):
    """Play one scripted round and print the event log."""
    from .engine_core import EncounterState, EventBus, InvalidManeuverError, OperationContext
    from .engine_core.serialization import encounter_to_dict

    try:
        name, entries = load_roster(args.roster_file)
    except FileNotFoundError:
        print(f"Error: File not found: {args.roster_file}")
        sys.exit(1)
    except (KeyError, json.JSONDecodeError, InvalidManeuverError) as e:
        print(f"Error: Invalid roster: {e}")
        sys.exit(1)

    bus = EventBus(encounter_id="simulation")
    # history() is bounded, the log is not
    events = []
    bus.subscribe(None, events.append)
    encounter = EncounterState(encounter_id="simulation", name=name, announcer=bus)
    ctx = OperationContext.operator("cli")

    for combatant, _, _ in entries:
        result = encounter.add_combatant(combatant, ctx)
        if not result.success:
            print(f"Error: {result.error}")
            sys.exit(1)

    failure = run_round(encounter, entries, ctx)

    print(f"Encounter: {name}")
    for event in events:
        print(f"  {event}")

    if args.json:
        print(json.dumps(encounter_to_dict(encounter), indent=2))

    if failure is not None:
        print(f"\nStopped: {failure.error} ({failure.error_code.value})")
        sys.exit(1)


if __name__ == "__main__":
    main()
