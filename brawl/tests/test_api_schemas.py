"""
Tests for API Pydantic schemas.

Validates that:
- Request models reject malformed input
- Error codes mirror the engine's codes
- The OpenAPI schema generates with every response model
"""

import pytest
from pydantic import ValidationError

from ..api.schemas import (
    AddCombatantRequest,
    ErrorCode,
    ErrorResponse,
    InterruptRequest,
    ManeuverModel,
    TrackerRowInfo,
)
from ..engine_core.operation import ErrorCode as EngineErrorCode


class TestPydanticSchemas:
    """Tests for Pydantic schema validation."""

    def test_maneuver_requires_speed(self):
        with pytest.raises(ValidationError):
            ManeuverModel(maneuver_id="jab", name="Jab")

    @pytest.mark.parametrize("missing", ["damage", "movement"])
    def test_maneuver_requires_stats(self, missing):
        data = {"maneuver_id": "jab", "name": "Jab", "speed": 3, "damage": 1, "movement": 0}
        del data[missing]
        with pytest.raises(ValidationError):
            ManeuverModel(**data)

    def test_maneuver_rejects_negative_cost(self):
        with pytest.raises(ValidationError):
            ManeuverModel(maneuver_id="jab", name="Jab", speed=3, damage=1, movement=0, chi_cost=-1)

    def test_maneuver_dump_matches_engine_fields(self):
        data = ManeuverModel(maneuver_id="jab", name="Jab", speed=3, damage=1, movement=0).model_dump()
        assert set(data) == {
            "maneuver_id", "name", "speed", "damage", "movement",
            "chi_cost", "willpower_cost", "notes", "category",
        }

    def test_add_combatant_requires_id(self):
        with pytest.raises(ValidationError):
            AddCombatantRequest(combatant_id="", name="X")

    def test_interrupt_requires_interruptor(self):
        with pytest.raises(ValidationError):
            InterruptRequest(interruptor_id="")

    def test_error_response_schema(self):
        """ErrorResponse serializes its code as a string."""
        response = ErrorResponse(error="Only the operator can skip actions", error_code=ErrorCode.UNAUTHORIZED)
        data = response.model_dump(mode="json")
        assert data["error_code"] == "UNAUTHORIZED"
        assert data["api_version"] == "v1"

    def test_tracker_row_from_attributes(self):
        class Row:
            combatant_id = "x"
            name = "X"
            is_npc = False
            is_owner = True
            is_defeated = False
            selection_status = "ready"
            action_status = "pending"
            maneuver_revealed = False
            is_acting = False
            speed = 2
            maneuver = None
            maneuver_hidden = False
            can_select = False
            can_interrupt = False
            status_key = "ready"

        row = TrackerRowInfo.model_validate(Row())
        assert row.speed == 2


class TestErrorCodes:
    """Tests for error code coverage."""

    def test_every_engine_code_has_an_api_code(self):
        for code in EngineErrorCode:
            assert ErrorCode(code.value).value == code.value

    def test_error_code_values_are_strings(self):
        """Error codes are string enums for JSON serialization."""
        for code in ErrorCode:
            assert isinstance(code.value, str)
            assert code.value == code.value.upper()


class TestOpenAPISchema:
    """Tests for OpenAPI schema generation."""

    @pytest.fixture
    def schema(self):
        from fastapi.openapi.utils import get_openapi
        from ..api.app import create_app

        app = create_app()
        return get_openapi(title=app.title, version=app.version, routes=app.routes)

    def test_response_models_in_schema(self, schema):
        schemas = schema["components"]["schemas"]
        for name in ["EncounterResponse", "OperationResponse", "TrackerResponse", "ErrorResponse"]:
            assert name in schemas, f"Missing schema: {name}"

    def test_endpoints_present(self, schema):
        paths = schema["paths"]
        assert "post" in paths["/api/v1/encounters"]
        assert "put" in paths["/api/v1/encounters/{encounter_id}/combatants/{combatant_id}/maneuver"]
        assert "503" in paths["/api/v1/encounters/{encounter_id}/interrupt"]["post"]["responses"]
