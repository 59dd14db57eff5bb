"""
Pydantic Schemas for API - Request/response models for OpenAPI.

These models define the exact contract between tracker clients and the
engine. All responses include explicit types for OpenAPI schema generation.

Error Codes:
- UNAUTHORIZED: Caller is not the operator (or not the combatant's owner)
- ENCOUNTER_NOT_FOUND / COMBATANT_NOT_FOUND: Unknown id
- NO_OPERATOR_AVAILABLE: A participant request found no operator to relay to
- INVALID_MANEUVER / VALIDATION_ERROR: Malformed request body
- Everything else: the encounter is not in a state that allows the operation
"""

from enum import Enum
from typing import Optional, Any
from pydantic import BaseModel, Field


# =============================================================================
# Enums
# =============================================================================

class Role(str, Enum):
    """Caller role sent in the X-Brawl-Role header."""
    OPERATOR = "operator"
    PLAYER = "player"


class PhaseName(str, Enum):
    SETUP = "setup"
    SELECTION = "selection"
    EXECUTION = "execution"


class ErrorCode(str, Enum):
    """Structured error codes."""
    UNAUTHORIZED = "UNAUTHORIZED"
    SELECTIONS_INCOMPLETE = "SELECTIONS_INCOMPLETE"
    ACTIONS_INCOMPLETE = "ACTIONS_INCOMPLETE"
    INVALID_INTERRUPTION = "INVALID_INTERRUPTION"
    INTERRUPT_NOT_ALLOWED = "INTERRUPT_NOT_ALLOWED"
    ACTION_ALREADY_COMPLETED = "ACTION_ALREADY_COMPLETED"
    NO_MANEUVER_SELECTED = "NO_MANEUVER_SELECTED"
    NOT_ACTING = "NOT_ACTING"
    SELECTION_CLOSED = "SELECTION_CLOSED"
    WRONG_PHASE = "WRONG_PHASE"
    INVALID_MANEUVER = "INVALID_MANEUVER"
    COMBATANT_NOT_FOUND = "COMBATANT_NOT_FOUND"
    DUPLICATE_COMBATANT = "DUPLICATE_COMBATANT"
    ENCOUNTER_NOT_FOUND = "ENCOUNTER_NOT_FOUND"
    UNKNOWN_OPERATION = "UNKNOWN_OPERATION"
    NO_OPERATOR_AVAILABLE = "NO_OPERATOR_AVAILABLE"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


# =============================================================================
# Shared Models
# =============================================================================

class ManeuverModel(BaseModel):
    """A maneuver as chosen for one round."""
    maneuver_id: str
    name: str
    speed: int = Field(..., description="Lower acts first")
    damage: int = Field(..., description="Damage modifier")
    movement: int = Field(..., description="Movement in hexes")
    chi_cost: int = Field(0, ge=0)
    willpower_cost: int = Field(0, ge=0)
    notes: str = ""
    category: str = ""

    model_config = {"from_attributes": True}


class PoolModel(BaseModel):
    value: int = 0
    max: int = 0


class ResourcesModel(BaseModel):
    """Fighter resource pools."""
    health: PoolModel = Field(default_factory=lambda: PoolModel(value=10, max=10))
    chi: PoolModel = Field(default_factory=PoolModel)
    willpower: PoolModel = Field(default_factory=PoolModel)
    super_meter: PoolModel = Field(default_factory=PoolModel)


class CombatantInfo(BaseModel):
    """Combatant information for display."""
    combatant_id: str
    name: str
    owner_id: Optional[str] = None
    is_npc: bool = False
    is_defeated: bool = False
    selection_status: str
    action_status: str
    maneuver_revealed: bool = False
    interrupted_by_id: Optional[str] = None
    selected_maneuver: Optional[ManeuverModel] = None
    resources: Optional[ResourcesModel] = None


class TrackerRowInfo(BaseModel):
    """One row of the combat tracker, as seen by the caller."""
    combatant_id: str
    name: str
    is_npc: bool
    is_owner: bool
    is_defeated: bool
    selection_status: str
    action_status: str
    maneuver_revealed: bool
    is_acting: bool
    speed: Optional[int] = None
    maneuver: Optional[ManeuverModel] = None
    maneuver_hidden: bool = False
    can_select: bool = False
    can_interrupt: bool = False
    status_key: str = Field(
        ..., description="ready, selecting, acting, completed, skipped, interrupted, waiting, setup"
    )

    model_config = {"from_attributes": True}


# =============================================================================
# Request Models
# =============================================================================

class CreateEncounterRequest(BaseModel):
    """Request to open a new encounter."""
    name: str = Field("", description="Display name for the encounter")


class AddCombatantRequest(BaseModel):
    """Request to join a combatant to an encounter."""
    combatant_id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    owner_id: Optional[str] = Field(None, description="User controlling this combatant")
    is_npc: bool = False
    resources: Optional[ResourcesModel] = Field(
        None, description="Omit for combatants without tracked resources"
    )


class InterruptRequest(BaseModel):
    """Request to interrupt the current actor."""
    interruptor_id: str = Field(..., min_length=1)


# =============================================================================
# Response Models
# =============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str = Field(..., description="Human-readable error message")
    error_code: ErrorCode = Field(..., description="Machine-readable error code")
    details: Optional[dict[str, Any]] = Field(None, description="Additional error context")
    api_version: str = Field("v1", description="API version")


class EncounterResponse(BaseModel):
    """Complete encounter state."""
    encounter_id: str
    name: str = ""
    phase: PhaseName
    round: int = 0
    current_acting_id: Optional[str] = None
    interruption_stack: list[str] = Field(default_factory=list)
    turn_started: bool = False
    all_selections_complete: bool = False
    all_actions_complete: bool = False
    combatants: list[CombatantInfo] = Field(default_factory=list)
    created_at: float = 0.0
    api_version: str = "v1"


class OperationResponse(BaseModel):
    """Result of an accepted operation."""
    encounter_id: str
    success: bool = True
    changes: list[str] = Field(default_factory=list)
    relayed: bool = Field(False, description="Applied by an operator on the caller's behalf")
    encounter: Optional[EncounterResponse] = None
    api_version: str = "v1"


class TrackerResponse(BaseModel):
    """The tracker view for the calling user."""
    encounter_id: str
    phase: PhaseName
    round: int
    current_acting_id: Optional[str] = None
    rows: list[TrackerRowInfo] = Field(default_factory=list)
    api_version: str = "v1"


class EncounterListResponse(BaseModel):
    """Response listing active encounters."""
    encounters: list[str]
    count: int


class EndEncounterResponse(BaseModel):
    """Response after ending an encounter."""
    success: bool
    encounter_id: str


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    service: str
    version: str
