"""
FastAPI Application - REST API for encounter trackers.

Endpoints:
    POST   /api/v1/encounters                               Open encounter
    GET    /api/v1/encounters                               List encounters
    GET    /api/v1/encounters/{id}                          Encounter state
    DELETE /api/v1/encounters/{id}                          End encounter
    POST   /api/v1/encounters/{id}/combatants               Add combatant
    DELETE /api/v1/encounters/{id}/combatants/{cid}         Remove combatant
    POST   /api/v1/encounters/{id}/begin                    Begin (reset flags)
    POST   /api/v1/encounters/{id}/selection                Start selection phase
    POST   /api/v1/encounters/{id}/execution                Start execution phase
    POST   /api/v1/encounters/{id}/next-turn                Advance to next round
    PUT    /api/v1/encounters/{id}/combatants/{cid}/maneuver   Select maneuver
    DELETE /api/v1/encounters/{id}/combatants/{cid}/maneuver   Clear maneuver
    POST   /api/v1/encounters/{id}/combatants/{cid}/reveal     Reveal maneuver
    POST   /api/v1/encounters/{id}/interrupt                Request interruption
    POST   /api/v1/encounters/{id}/complete                 Request complete action
    POST   /api/v1/encounters/{id}/skip                     Request skip action
    GET    /api/v1/encounters/{id}/tracker                  Tracker view
    WS     /api/v1/encounters/{id}/ws                       Live combat events

Callers identify themselves with the X-Brawl-User and X-Brawl-Role
headers. Participant requests to interrupt, complete or skip are relayed
to an operator connected on the WebSocket.

All responses are JSON with explicit Pydantic schemas.
"""

from typing import Annotated, Optional, Union
import json
import logging
import os

logger = logging.getLogger(__name__)

# Environment configuration
BRAWL_ENV = os.getenv("BRAWL_ENV", "development")
ALLOWED_ORIGINS = os.getenv("ALLOWED_ORIGINS", "*").split(",")
BRAWL_HIDE_PLAYER_MANEUVERS = os.getenv("BRAWL_HIDE_PLAYER_MANEUVERS", "").lower() in ("1", "true", "yes")


def status_for(error_code) -> int:
    """HTTP status for an error code."""
    from .schemas import ErrorCode

    if error_code == ErrorCode.UNAUTHORIZED:
        return 403
    if error_code in (ErrorCode.ENCOUNTER_NOT_FOUND, ErrorCode.COMBATANT_NOT_FOUND):
        return 404
    if error_code == ErrorCode.NO_OPERATOR_AVAILABLE:
        return 503
    if error_code in (ErrorCode.INVALID_MANEUVER, ErrorCode.VALIDATION_ERROR):
        return 422
    if error_code == ErrorCode.INTERNAL_ERROR:
        return 500
    return 409


def create_app(service=None):
    """
    Create the FastAPI application.

    Args:
        service: Optional APIService instance (creates new if not provided)

    Returns:
        FastAPI application instance
    """
    try:
        from fastapi import Depends, FastAPI, Header, Request, WebSocket, WebSocketDisconnect
        from fastapi.encoders import jsonable_encoder
        from fastapi.exceptions import RequestValidationError
        from fastapi.middleware.cors import CORSMiddleware
        from fastapi.responses import JSONResponse
    except ImportError:
        raise ImportError(
            "FastAPI not installed. Install with: pip install fastapi uvicorn"
        )

    from .. import __version__
    from ..engine_core.operation import OperationContext
    from ..session import Viewer
    from .service import APIService
    from .schemas import (
        # Request models
        AddCombatantRequest,
        CreateEncounterRequest,
        InterruptRequest,
        ManeuverModel,
        # Response models
        EncounterListResponse,
        EncounterResponse,
        EndEncounterResponse,
        ErrorResponse,
        HealthResponse,
        OperationResponse,
        TrackerResponse,
        # Enums
        ErrorCode,
        Role,
    )

    app = FastAPI(
        title="Brawl Engine API",
        description="""
Two-phase combat turn engine for operator-run fighting encounters.

## Round Flow

1. **Selection**: every combatant secretly picks a maneuver
   (`PUT /combatants/{cid}/maneuver`)
2. **Execution**: combatants act in ascending speed order. A faster
   combatant may interrupt the current actor; the interrupted turn
   resumes once the interruptor finishes.
3. **Next turn**: once everyone completed or skipped, end-of-round
   effects run and selection opens again.

Only the operator may move the encounter between phases. Participants
ask for interrupt/complete/skip and the request is relayed to an
operator connected on the WebSocket.

## Error Codes

| Code | HTTP | Description |
|------|------|-------------|
| `UNAUTHORIZED` | 403 | Not the operator, or not your combatant |
| `ENCOUNTER_NOT_FOUND` | 404 | Encounter does not exist |
| `COMBATANT_NOT_FOUND` | 404 | Combatant is not in the encounter |
| `NO_OPERATOR_AVAILABLE` | 503 | No operator connected to take the request |
| `INVALID_MANEUVER` | 422 | Maneuver data is incomplete |
| other | 409 | The encounter's state does not allow the operation |
        """,
        version=__version__,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
    )

    # CORS for tracker clients
    app.add_middleware(
        CORSMiddleware,
        allow_origins=ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Service instance
    api_service = service or APIService(hide_player_maneuvers=BRAWL_HIDE_PLAYER_MANEUVERS)

    # WebSocket connections
    ws_connections: dict[str, list[WebSocket]] = {}

    # =========================================================================
    # Error helpers
    # =========================================================================

    def make_error_response(
        error_code: ErrorCode,
        message: str,
        details: Optional[dict] = None,
    ) -> JSONResponse:
        """Create a standardized error response."""
        return JSONResponse(
            status_code=status_for(error_code),
            content=ErrorResponse(
                error=message,
                error_code=error_code,
                details=details,
            ).model_dump(mode="json"),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return make_error_response(
            ErrorCode.VALIDATION_ERROR,
            "Request validation failed",
            details={"errors": jsonable_encoder(exc.errors())},
        )

    async def broadcast_to_encounter(encounter_id: str, message: dict):
        """Broadcast a message to all WebSocket connections for an encounter."""
        if encounter_id in ws_connections:
            dead_connections = []
            for ws in ws_connections[encounter_id]:
                try:
                    await ws.send_json(message)
                except Exception:
                    logger.warning("Dropping dead WebSocket on encounter %s", encounter_id, exc_info=True)
                    dead_connections.append(ws)
            for ws in dead_connections:
                ws_connections[encounter_id].remove(ws)

    async def finish(encounter_id: str, response):
        """Flush announced events, then turn the service result into a response."""
        for message in api_service.drain_events(encounter_id):
            await broadcast_to_encounter(encounter_id, message)
        if isinstance(response, ErrorResponse):
            return make_error_response(response.error_code, response.error, response.details)
        return response

    def caller_context(
        x_brawl_user: Annotated[Optional[str], Header(description="Calling user id")] = None,
        x_brawl_role: Annotated[Role, Header(description="operator or player")] = Role.PLAYER,
    ) -> OperationContext:
        """Build the operation context from the identity headers."""
        if x_brawl_role == Role.OPERATOR:
            return OperationContext.operator(x_brawl_user)
        return OperationContext.player(x_brawl_user)

    Caller = Annotated[OperationContext, Depends(caller_context)]

    error_responses = {
        403: {"model": ErrorResponse, "description": "Caller may not do this"},
        404: {"model": ErrorResponse, "description": "Unknown encounter or combatant"},
        409: {"model": ErrorResponse, "description": "Encounter state does not allow it"},
    }

    # =========================================================================
    # Encounter Endpoints
    # =========================================================================

    @app.post(
        "/api/v1/encounters",
        response_model=EncounterResponse,
        responses={403: {"model": ErrorResponse}},
        tags=["Encounters"],
        summary="Open a new encounter",
    )
    async def create_encounter(
        request: CreateEncounterRequest,
        ctx: Caller,
    ) -> Union[EncounterResponse, JSONResponse]:
        """Open a new encounter in SETUP phase. Operator only."""
        response = api_service.create_encounter(request, ctx)
        if isinstance(response, ErrorResponse):
            return make_error_response(response.error_code, response.error, response.details)
        return response

    @app.get(
        "/api/v1/encounters",
        response_model=EncounterListResponse,
        tags=["Encounters"],
        summary="List active encounters",
    )
    async def list_encounters() -> EncounterListResponse:
        """List all active encounter IDs."""
        return api_service.list_encounters()

    @app.get(
        "/api/v1/encounters/{encounter_id}",
        response_model=EncounterResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["Encounters"],
        summary="Get encounter state",
    )
    async def get_encounter(encounter_id: str) -> Union[EncounterResponse, JSONResponse]:
        return await finish(encounter_id, api_service.get_encounter(encounter_id))

    @app.delete(
        "/api/v1/encounters/{encounter_id}",
        response_model=EndEncounterResponse,
        responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
        tags=["Encounters"],
        summary="End an encounter",
    )
    async def end_encounter(encounter_id: str, ctx: Caller) -> Union[EndEncounterResponse, JSONResponse]:
        """End an encounter and drop all of its state."""
        response = api_service.end_encounter(encounter_id, ctx)
        if isinstance(response, ErrorResponse):
            return make_error_response(response.error_code, response.error, response.details)
        for ws in ws_connections.pop(encounter_id, []):
            await ws.close()
        return response

    # =========================================================================
    # Roster Endpoints
    # =========================================================================

    @app.post(
        "/api/v1/encounters/{encounter_id}/combatants",
        response_model=OperationResponse,
        responses=error_responses,
        tags=["Roster"],
        summary="Add a combatant",
    )
    async def add_combatant(
        encounter_id: str,
        request: AddCombatantRequest,
        ctx: Caller,
    ) -> Union[OperationResponse, JSONResponse]:
        return await finish(encounter_id, api_service.add_combatant(encounter_id, request, ctx))

    @app.delete(
        "/api/v1/encounters/{encounter_id}/combatants/{combatant_id}",
        response_model=OperationResponse,
        responses=error_responses,
        tags=["Roster"],
        summary="Remove a combatant",
    )
    async def remove_combatant(
        encounter_id: str,
        combatant_id: str,
        ctx: Caller,
    ) -> Union[OperationResponse, JSONResponse]:
        """Remove a combatant. If it was acting, the turn passes on."""
        return await finish(encounter_id, api_service.remove_combatant(encounter_id, combatant_id, ctx))

    # =========================================================================
    # Phase Endpoints (operator only)
    # =========================================================================

    @app.post(
        "/api/v1/encounters/{encounter_id}/begin",
        response_model=OperationResponse,
        responses=error_responses,
        tags=["Phases"],
        summary="Begin the encounter",
    )
    async def begin(encounter_id: str, ctx: Caller) -> Union[OperationResponse, JSONResponse]:
        """Reset every flag and run start-of-encounter effects."""
        return await finish(encounter_id, api_service.begin(encounter_id, ctx))

    @app.post(
        "/api/v1/encounters/{encounter_id}/selection",
        response_model=OperationResponse,
        responses=error_responses,
        tags=["Phases"],
        summary="Start the selection phase",
    )
    async def start_selection(encounter_id: str, ctx: Caller) -> Union[OperationResponse, JSONResponse]:
        return await finish(encounter_id, api_service.start_selection(encounter_id, ctx))

    @app.post(
        "/api/v1/encounters/{encounter_id}/execution",
        response_model=OperationResponse,
        responses=error_responses,
        tags=["Phases"],
        summary="Start the execution phase",
    )
    async def start_execution(encounter_id: str, ctx: Caller) -> Union[OperationResponse, JSONResponse]:
        """Requires every standing combatant to have picked a maneuver."""
        return await finish(encounter_id, api_service.start_execution(encounter_id, ctx))

    @app.post(
        "/api/v1/encounters/{encounter_id}/next-turn",
        response_model=OperationResponse,
        responses=error_responses,
        tags=["Phases"],
        summary="Advance to the next round",
    )
    async def advance_turn(encounter_id: str, ctx: Caller) -> Union[OperationResponse, JSONResponse]:
        """Requires every standing combatant to have completed or skipped."""
        return await finish(encounter_id, api_service.advance_turn(encounter_id, ctx))

    # =========================================================================
    # Maneuver Endpoints (owner or operator)
    # =========================================================================

    @app.put(
        "/api/v1/encounters/{encounter_id}/combatants/{combatant_id}/maneuver",
        response_model=OperationResponse,
        responses={**error_responses, 422: {"model": ErrorResponse}},
        tags=["Maneuvers"],
        summary="Select a maneuver",
    )
    async def select_maneuver(
        encounter_id: str,
        combatant_id: str,
        maneuver: ManeuverModel,
        ctx: Caller,
    ) -> Union[OperationResponse, JSONResponse]:
        return await finish(
            encounter_id,
            api_service.select_maneuver(encounter_id, combatant_id, maneuver, ctx),
        )

    @app.delete(
        "/api/v1/encounters/{encounter_id}/combatants/{combatant_id}/maneuver",
        response_model=OperationResponse,
        responses=error_responses,
        tags=["Maneuvers"],
        summary="Clear a maneuver",
    )
    async def clear_maneuver(
        encounter_id: str,
        combatant_id: str,
        ctx: Caller,
    ) -> Union[OperationResponse, JSONResponse]:
        return await finish(encounter_id, api_service.clear_maneuver(encounter_id, combatant_id, ctx))

    @app.post(
        "/api/v1/encounters/{encounter_id}/combatants/{combatant_id}/reveal",
        response_model=OperationResponse,
        responses=error_responses,
        tags=["Maneuvers"],
        summary="Reveal the acting combatant's maneuver",
    )
    async def reveal_maneuver(
        encounter_id: str,
        combatant_id: str,
        ctx: Caller,
    ) -> Union[OperationResponse, JSONResponse]:
        return await finish(encounter_id, api_service.reveal_maneuver(encounter_id, combatant_id, ctx))

    # =========================================================================
    # Execution Endpoints (relayed for participants)
    # =========================================================================

    relay_responses = {**error_responses, 503: {"model": ErrorResponse, "description": "No operator connected"}}

    @app.post(
        "/api/v1/encounters/{encounter_id}/interrupt",
        response_model=OperationResponse,
        responses=relay_responses,
        tags=["Execution"],
        summary="Interrupt the current actor",
    )
    async def request_interruption(
        encounter_id: str,
        request: InterruptRequest,
        ctx: Caller,
    ) -> Union[OperationResponse, JSONResponse]:
        """
        Interrupt the current actor with a faster combatant.

        Participants may only interrupt with their own combatant; the
        request is applied by a connected operator.
        """
        return await finish(encounter_id, api_service.request_interruption(encounter_id, request, ctx))

    @app.post(
        "/api/v1/encounters/{encounter_id}/complete",
        response_model=OperationResponse,
        responses=relay_responses,
        tags=["Execution"],
        summary="Complete the current action",
    )
    async def request_complete_action(encounter_id: str, ctx: Caller) -> Union[OperationResponse, JSONResponse]:
        return await finish(encounter_id, api_service.request_complete_action(encounter_id, ctx))

    @app.post(
        "/api/v1/encounters/{encounter_id}/skip",
        response_model=OperationResponse,
        responses=relay_responses,
        tags=["Execution"],
        summary="Skip the current action",
    )
    async def request_skip_action(encounter_id: str, ctx: Caller) -> Union[OperationResponse, JSONResponse]:
        return await finish(encounter_id, api_service.request_skip_action(encounter_id, ctx))

    # =========================================================================
    # Tracker
    # =========================================================================

    @app.get(
        "/api/v1/encounters/{encounter_id}/tracker",
        response_model=TrackerResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["Tracker"],
        summary="Get the tracker view",
    )
    async def get_tracker(encounter_id: str, ctx: Caller) -> Union[TrackerResponse, JSONResponse]:
        """Tracker rows as seen by the caller. Hidden maneuvers come back empty."""
        viewer = Viewer(user_id=ctx.user_id, is_operator=ctx.is_operator)
        return await finish(encounter_id, api_service.get_tracker(encounter_id, viewer))

    # =========================================================================
    # WebSocket Endpoint
    # =========================================================================

    @app.websocket("/api/v1/encounters/{encounter_id}/ws")
    async def websocket_endpoint(
        websocket: WebSocket,
        encounter_id: str,
        user_id: Optional[str] = None,
        role: Role = Role.PLAYER,
    ):
        """
        WebSocket for live combat events.

        Messages from server:
        - tracker: Tracker view on connect
        - combat.*: Announced combat events
        - error: Error occurred

        Messages from client:
        - ping: Keep-alive

        An operator connection also takes relayed participant requests
        for as long as it stays open.
        """
        await websocket.accept()

        viewer = Viewer(user_id=user_id, is_operator=role == Role.OPERATOR)
        tracker = api_service.get_tracker(encounter_id, viewer)
        if isinstance(tracker, ErrorResponse):
            await websocket.send_json({"type": "error", "payload": tracker.model_dump(mode="json")})
            await websocket.close()
            return

        ws_connections.setdefault(encounter_id, []).append(websocket)
        if viewer.is_operator and user_id:
            api_service.register_operator(encounter_id, user_id)

        try:
            await websocket.send_json({"type": "tracker", "payload": tracker.model_dump(mode="json")})

            # Listen for messages
            while True:
                data = await websocket.receive_text()
                try:
                    message = json.loads(data)
                    if message.get("type") == "ping":
                        await websocket.send_json({"type": "pong"})
                except json.JSONDecodeError:
                    await websocket.send_json({
                        "type": "error",
                        "payload": {"message": "Invalid JSON"},
                    })

        except WebSocketDisconnect:
            logger.debug("WebSocket closed on encounter %s (%s)", encounter_id, user_id)
        finally:
            if viewer.is_operator and user_id:
                api_service.unregister_operator(encounter_id, user_id)
            if websocket in ws_connections.get(encounter_id, []):
                ws_connections[encounter_id].remove(websocket)

    # =========================================================================
    # Health Check
    # =========================================================================

    @app.get(
        "/health",
        response_model=HealthResponse,
        tags=["System"],
        summary="Health check",
    )
    async def health_check() -> HealthResponse:
        """Health check endpoint for load balancers."""
        return HealthResponse(
            status="healthy",
            service="brawl-engine",
            version=__version__,
        )

    @app.get("/", tags=["System"])
    async def root():
        """Root endpoint with API info."""
        return {
            "name": "Brawl Engine API",
            "version": __version__,
            "env": BRAWL_ENV,
            "docs": "/api/docs",
            "health": "/health",
        }

    return app


# For running directly: uvicorn brawl.api.app:app
app = None
try:
    app = create_app()
except ImportError:
    # FastAPI not installed
    pass
