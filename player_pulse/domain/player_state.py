"""PlayerState — a point-in-time classification of a session.

Produced by the state classifier from the two indicator bundles and
handed to the intervention engine as context.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from player_pulse.domain.enums import PlayerStateLabel
from player_pulse.domain.indicators import BoredomBundle, FrustrationBundle


class PlayerIndicators(BaseModel):
    frustration: FrustrationBundle = Field(default_factory=FrustrationBundle)
    boredom: BoredomBundle = Field(default_factory=BoredomBundle)

    model_config = {"frozen": True}


class PlayerState(BaseModel):
    """Immutable classification of a player's affective/engagement state."""

    session_id: str
    primary: PlayerStateLabel = Field(..., description="Dominant state label")
    frustration_score: float = Field(..., ge=0.0, le=1.0)
    boredom_score: float = Field(..., ge=0.0, le=1.0)
    confidence: float = Field(..., ge=0.0, le=1.0, description="max(frustration, boredom)")
    indicators: PlayerIndicators = Field(default_factory=PlayerIndicators)

    model_config = {"frozen": True}
