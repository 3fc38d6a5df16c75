"""Indicator bundles — ephemeral outputs of the state detector.

These are pure data structures recomputed on demand and never
persisted.  They carry no thresholds and no decisions; classification
lives in the state classifier.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class FrustrationBundle(BaseModel):
    """Behavioral signals that suggest a player is struggling."""

    rapid_retries: int = Field(0, description="Retries within the short window")
    death_streak: int = Field(0, description="Consecutive deaths, newest first")
    input_variance: float = Field(
        1.0,
        description="Composite erratic-input score (timing CV + spam + movement); unbounded",
    )
    quick_quit_after_death: bool = Field(False, description="Quit/leave within 10s of a death")
    emotional_score: float = Field(0.0, ge=-1.0, le=0.0, description="Behavioral mood proxy")
    action_regression: float = Field(0.0, ge=0.0, description="Drop in mean action complexity")
    help_seeking: int = Field(0, description="Help-related actions within the short window")
    performance_drop: float = Field(0.0, ge=0.0, le=1.0, description="Blend of success and speed decline")

    model_config = {"frozen": True}


class BoredomBundle(BaseModel):
    """Behavioral signals that suggest a player is under-challenged."""

    perfect_streak: int = Field(0, description="Consecutive flawless, fast victories")
    completion_speed: float = Field(1.0, description="Recent vs historical completion time ratio")
    engagement_score: float = Field(0.0, ge=0.0, le=1.0)
    repetitive_actions: int = Field(0, description="Longest identical (type, target) run")
    inactivity_time: float = Field(0.0, ge=0.0, description="Milliseconds of >5s input gaps")
    exploration_decline: float = Field(0.0, ge=0.0, le=1.0)
    risk_taking: float = Field(0.0, ge=0.0, le=1.0)
    attention_drift: float = Field(0.0, le=1.0)

    model_config = {"frozen": True}
