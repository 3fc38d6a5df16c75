"""REST endpoints for player-state classification and interventions.

Paths:
    GET  /api/sessions/{session_id}/state
    POST /api/sessions/{session_id}/interventions
    GET  /api/sessions/{session_id}/interventions
    GET  /api/sessions/{session_id}/interventions/analytics
    GET  /api/sessions/{session_id}/interventions/{intervention_type}

Activation takes either an explicit ``frustration_level``, a forced
``level`` (mapped to that tier's threshold), or neither, in which case
the classifier's current frustration score is used.  Hidden
interventions are never returned to the client.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from player_pulse.core.intervention_engine import InterventionEngine, UnknownInterventionError
from player_pulse.core.state_classifier import PlayerStateClassifier
from player_pulse.domain.enums import InterventionTier
from player_pulse.domain.intervention import InterventionAnalytics, tier_threshold

logger = logging.getLogger(__name__)


class ActivationRequest(BaseModel):
    frustration_level: Optional[float] = Field(None, ge=0.0, le=1.0)
    level: Optional[InterventionTier] = Field(None, description="Force a tier instead of a score")
    combat_context: dict[str, Any] = Field(default_factory=dict)


def create_intervention_router(
    engine: InterventionEngine,
    classifier: PlayerStateClassifier,
) -> APIRouter:
    """Factory that wires the intervention endpoints to engine + classifier."""

    router = APIRouter(prefix="/api/sessions", tags=["interventions"])

    @router.get("/{session_id}/state")
    async def player_state(session_id: str) -> dict[str, Any]:
        state = await classifier.classify(session_id)
        status = await engine.get_intervention_status(session_id)
        return {
            "player_state": state.primary.value,
            "frustration_score": state.frustration_score,
            "boredom_score": state.boredom_score,
            "confidence": state.confidence,
            "indicators": state.indicators.model_dump(),
            "interventions": {k: v.model_dump(mode="json") for k, v in status.items()},
        }

    @router.post("/{session_id}/interventions")
    async def activate(session_id: str, request: ActivationRequest) -> dict[str, Any]:
        state = await classifier.classify(session_id)
        if request.level is not None:
            frustration_level = tier_threshold(request.level)
            context = {**request.combat_context, "forced": True, "level": request.level.value}
        elif request.frustration_level is not None:
            frustration_level = request.frustration_level
            context = request.combat_context
        else:
            frustration_level = state.frustration_score
            context = request.combat_context

        outcome = await engine.activate_intervention(session_id, frustration_level, state, context)
        return outcome.model_dump(mode="json", exclude={"hidden"})

    @router.get("/{session_id}/interventions")
    async def intervention_status(session_id: str) -> dict[str, Any]:
        status = await engine.get_intervention_status(session_id)
        return {k: v.model_dump(mode="json") for k, v in status.items()}

    @router.get("/{session_id}/interventions/analytics")
    async def intervention_analytics(session_id: str) -> InterventionAnalytics:
        return await engine.generate_intervention_analytics(session_id)

    @router.get("/{session_id}/interventions/{intervention_type}")
    async def intervention_active(session_id: str, intervention_type: str) -> dict[str, Any]:
        try:
            active = await engine.is_intervention_active(session_id, intervention_type)
        except UnknownInterventionError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        return {"type": intervention_type, "active": active}

    return router
