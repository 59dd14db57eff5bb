"""
Brawl - Two-phase combat turn engine

A rules-driven engine for tabletop fighting encounters run by an operator.
Every round, participants secretly pick a maneuver, then act in speed order.
The engine provides:
- Encounter and combatant state
- Initiative ordering and interruption resolution
- Operator-gated transitions with a relay for participant requests
- Event announcements for live trackers
"""

__version__ = "0.1.0"
