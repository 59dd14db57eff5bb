"""
Session Module - Manages live encounters.

An encounter session represents one fight:
- Created by an operator
- Holds the encounter state and its event bus
- Takes relayed requests from participants
- Dropped when the fight ends

Sessions are EPHEMERAL:
- No persistence to database
- Snapshots are the only way state leaves the process
"""

from .manager import EncounterManager, EncounterSession, SessionStatus
from .relay import CombatRelay, OperatorRegistry
from .tracker import TrackerRow, Viewer, build_tracker

__all__ = [
    "EncounterManager",
    "EncounterSession",
    "SessionStatus",
    "CombatRelay",
    "OperatorRegistry",
    "TrackerRow",
    "Viewer",
    "build_tracker",
]
