"""
API Module - Tracker client interface.

Exposes the engine via REST API and a WebSocket for live trackers.
A tracker client:
1. Opens an encounter (operator) and seats combatants
2. Picks maneuvers during selection
3. Follows the turn order and asks to interrupt, complete or skip
4. Receives combat events as they are announced

All state is encounter-scoped. No persistent user accounts required.
"""

from .schemas import (
    # Requests
    AddCombatantRequest,
    CreateEncounterRequest,
    InterruptRequest,
    # Responses
    EncounterResponse,
    OperationResponse,
    TrackerResponse,
    ErrorResponse,
    # Shared
    CombatantInfo,
    ManeuverModel,
    TrackerRowInfo,
)
from .service import APIService
from .app import create_app

__all__ = [
    # Requests
    "AddCombatantRequest",
    "CreateEncounterRequest",
    "InterruptRequest",
    # Responses
    "EncounterResponse",
    "OperationResponse",
    "TrackerResponse",
    "ErrorResponse",
    # Shared
    "CombatantInfo",
    "ManeuverModel",
    "TrackerRowInfo",
    # Service
    "APIService",
    "create_app",
]
