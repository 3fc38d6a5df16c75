"""REST endpoints for telemetry ingestion and indicator queries.

Paths:
    POST /api/sessions/{session_id}/actions
    POST /api/sessions/{session_id}/inputs
    POST /api/sessions/{session_id}/combat
    GET  /api/sessions/{session_id}/indicators/frustration
    GET  /api/sessions/{session_id}/indicators/boredom

Bodies are validated at the boundary by the telemetry models; FastAPI
turns validation failures into 422 responses.  Ingestion is
fire-and-forget: the response is a bare acknowledgement.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter

from player_pulse.core.state_detector import StateDetector
from player_pulse.domain.indicators import BoredomBundle, FrustrationBundle
from player_pulse.domain.telemetry import ActionEvent, CombatResult, InputEvent

logger = logging.getLogger(__name__)


def create_telemetry_router(detector: StateDetector) -> APIRouter:
    """Factory that wires the telemetry endpoints to a StateDetector."""

    router = APIRouter(prefix="/api/sessions", tags=["telemetry"])

    @router.post("/{session_id}/actions")
    async def record_action(session_id: str, action: ActionEvent) -> dict:
        await detector.record_player_action(session_id, action)
        return {"recorded": True}

    @router.post("/{session_id}/inputs")
    async def record_input(session_id: str, input_event: InputEvent) -> dict:
        await detector.record_input_event(session_id, input_event)
        return {"recorded": True}

    @router.post("/{session_id}/combat")
    async def record_combat(session_id: str, combat: CombatResult) -> dict:
        await detector.record_combat_result(session_id, combat)
        return {"recorded": True}

    @router.get("/{session_id}/indicators/frustration")
    async def frustration_indicators(session_id: str) -> FrustrationBundle:
        return await detector.get_frustration_indicators(session_id)

    @router.get("/{session_id}/indicators/boredom")
    async def boredom_indicators(session_id: str) -> BoredomBundle:
        return await detector.get_boredom_indicators(session_id)

    return router
