"""Intervention domain — the static effect catalog, tier table and records.

Everything tunable about interventions lives here as plain data:

    - EFFECT_CATALOG: one EffectSpec per InterventionType, carrying the
      default parameters, the player-visibility flag and the fallback
      store TTL for effects without a natural duration.
    - TIER_THRESHOLDS: frustration score → tier, inclusive lower bounds.
    - TIER_EFFECTS: each tier's *own* candidate effects.  A tier's full
      candidate set is its own additions plus every lower tier's set,
      see candidates_for_tier().

The engine reads these tables; it never hardcodes effect parameters.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Optional

from pydantic import BaseModel, Field

from player_pulse.domain.enums import InterventionTier, InterventionType


# ── Effect catalog ───────────────────────────────────────────────────────────

@dataclass(frozen=True)
class EffectSpec:
    """Static description of one compensating effect."""

    type: InterventionType
    description: str
    visible: bool
    defaults: dict[str, Any] = field(default_factory=dict)
    # Store TTL for effects whose config carries no duration
    fallback_ttl_seconds: Optional[int] = None

    def ttl_seconds(self, config: dict[str, Any]) -> int:
        """Store TTL for a record built from *config*, rounded up to seconds."""
        duration = config.get("duration")
        if duration:
            return max(1, math.ceil(duration / 1000))
        if self.fallback_ttl_seconds is None:
            raise ValueError(f"{self.type.value} has neither a duration nor a fallback TTL")
        return self.fallback_ttl_seconds


EFFECT_CATALOG: dict[InterventionType, EffectSpec] = {
    InterventionType.GRACE_PERIOD: EffectSpec(
        type=InterventionType.GRACE_PERIOD,
        description="Brief invulnerability after taking damage",
        visible=False,
        defaults={"duration": 5000, "invulnerability": True},
    ),
    InterventionType.HEALTH_BOOST: EffectSpec(
        type=InterventionType.HEALTH_BOOST,
        description="Temporary health increase",
        visible=True,
        defaults={"multiplier": 1.3, "duration": 30000},
    ),
    InterventionType.DAMAGE_REDUCTION: EffectSpec(
        type=InterventionType.DAMAGE_REDUCTION,
        description="Reduced incoming damage",
        visible=False,
        defaults={"multiplier": 0.7, "duration": 60000},
    ),
    InterventionType.HINT_SYSTEM: EffectSpec(
        type=InterventionType.HINT_SYSTEM,
        description="Contextual gameplay hints",
        visible=True,
        defaults={
            "types": ["combat_tips", "strategy_hints", "weakness_reveals"],
            "frequency": "on_demand",
        },
        fallback_ttl_seconds=300,
    ),
    InterventionType.CHECKPOINT_CREATION: EffectSpec(
        type=InterventionType.CHECKPOINT_CREATION,
        description="Automatic progress saving",
        visible=True,
        defaults={"frequency": "after_death"},
        fallback_ttl_seconds=3600,
    ),
    InterventionType.ABILITY_COOLDOWN_REDUCTION: EffectSpec(
        type=InterventionType.ABILITY_COOLDOWN_REDUCTION,
        description="Faster ability recovery",
        visible=True,
        defaults={"multiplier": 0.7, "duration": 45000},
    ),
    InterventionType.ENEMY_WEAKENING: EffectSpec(
        type=InterventionType.ENEMY_WEAKENING,
        description="Temporary enemy weakness",
        visible=False,
        defaults={"health_reduction": 0.2, "ai_simplification": True},
        fallback_ttl_seconds=120,
    ),
}

# Effects that count towards "currently active" for deduplication.
# Checkpoints are excluded: they are created on every critical activation.
DURABLE_EFFECTS: tuple[InterventionType, ...] = (
    InterventionType.GRACE_PERIOD,
    InterventionType.HEALTH_BOOST,
    InterventionType.DAMAGE_REDUCTION,
    InterventionType.HINT_SYSTEM,
    InterventionType.ABILITY_COOLDOWN_REDUCTION,
    InterventionType.ENEMY_WEAKENING,
)


# ── Tier table ───────────────────────────────────────────────────────────────

# Highest first; a score maps to the first tier whose threshold it reaches.
TIER_THRESHOLDS: tuple[tuple[InterventionTier, float], ...] = (
    (InterventionTier.CRITICAL, 0.9),
    (InterventionTier.SEVERE, 0.8),
    (InterventionTier.MODERATE, 0.6),
    (InterventionTier.MILD, 0.4),
)

# Least to most severe, excluding NONE.
TIER_ORDER: tuple[InterventionTier, ...] = (
    InterventionTier.MILD,
    InterventionTier.MODERATE,
    InterventionTier.SEVERE,
    InterventionTier.CRITICAL,
)


@dataclass(frozen=True)
class CandidateEffect:
    """One entry of a tier's candidate list."""

    type: InterventionType
    overrides: dict[str, Any] = field(default_factory=dict)
    # Skip when the session already has this effect active
    dedup: bool = True
    # Only applies when the player's death streak reaches this value
    min_death_streak: int = 0

    def build_config(self) -> dict[str, Any]:
        return {**EFFECT_CATALOG[self.type].defaults, **self.overrides}


TIER_EFFECTS: dict[InterventionTier, tuple[CandidateEffect, ...]] = {
    InterventionTier.MILD: (
        CandidateEffect(InterventionType.HINT_SYSTEM, {"types": ["combat_tips"]}, dedup=False),
    ),
    InterventionTier.MODERATE: (
        CandidateEffect(InterventionType.ABILITY_COOLDOWN_REDUCTION),
        CandidateEffect(
            InterventionType.GRACE_PERIOD, {"duration": 3000}, dedup=False, min_death_streak=2,
        ),
    ),
    InterventionTier.SEVERE: (
        CandidateEffect(InterventionType.HEALTH_BOOST, {"multiplier": 1.4}),
        CandidateEffect(InterventionType.DAMAGE_REDUCTION, {"multiplier": 0.6}),
        CandidateEffect(
            InterventionType.HINT_SYSTEM,
            {"immediate": True, "types": ["weakness_reveals", "strategy_hints"]},
            dedup=False,
        ),
    ),
    InterventionTier.CRITICAL: (
        CandidateEffect(InterventionType.GRACE_PERIOD, {"duration": 8000}),
        CandidateEffect(InterventionType.ENEMY_WEAKENING, {"health_reduction": 0.4}),
        CandidateEffect(InterventionType.CHECKPOINT_CREATION, dedup=False),
    ),
}


def determine_tier(frustration_level: float) -> InterventionTier:
    """Map a frustration score to its tier.  Thresholds are inclusive."""
    for tier, threshold in TIER_THRESHOLDS:
        if frustration_level >= threshold:
            return tier
    return InterventionTier.NONE


def tier_threshold(tier: InterventionTier) -> float:
    """Lowest frustration score that still maps to *tier* (0.0 for NONE)."""
    for candidate, threshold in TIER_THRESHOLDS:
        if candidate == tier:
            return threshold
    return 0.0


def candidates_for_tier(tier: InterventionTier) -> list[CandidateEffect]:
    """Full candidate list for *tier*: its own effects, then each lower tier's.

    The most severe additions come first so that, when two tiers offer
    the same effect type, the stronger configuration wins deduplication.
    """
    if tier == InterventionTier.NONE:
        return []
    included = TIER_ORDER[: TIER_ORDER.index(tier) + 1]
    candidates: list[CandidateEffect] = []
    for level in reversed(included):
        candidates.extend(TIER_EFFECTS[level])
    return candidates


# ── Records ──────────────────────────────────────────────────────────────────

class InterventionRecord(BaseModel):
    """Persisted state of one active effect for one session.

    The store reclaims the key through its own TTL, but liveness is
    decided here against ``activated_at + duration`` because store TTLs
    have whole-second granularity.
    """

    type: InterventionType
    config: dict[str, Any] = Field(default_factory=dict)
    activated_at: int = Field(..., description="Epoch milliseconds")
    duration: Optional[int] = Field(None, description="Milliseconds; None means no decay")
    payload: dict[str, Any] = Field(default_factory=dict, description="Effect-specific state")

    def is_expired(self, now: int) -> bool:
        if self.duration is None:
            return False
        return now - self.activated_at > self.duration

    def time_remaining(self, now: int) -> Optional[int]:
        if self.duration is None:
            return None
        return max(0, self.duration - (now - self.activated_at))


class InterventionLogEntry(BaseModel):
    """One activation, kept for descriptive analytics only."""

    frustration_level: float
    intervention_level: InterventionTier
    interventions: list[InterventionType] = Field(default_factory=list)
    player_state: Optional[str] = None
    timestamp: int


class AppliedIntervention(BaseModel):
    type: InterventionType
    description: str
    config: dict[str, Any] = Field(default_factory=dict)
    result: dict[str, Any] = Field(default_factory=dict)


class InterventionFailure(BaseModel):
    type: InterventionType
    error: str


class InterventionOutcome(BaseModel):
    """Result of one activate_intervention call.

    ``interventions`` holds only the player-visible effects.  Silent
    balance adjustments are reported in ``hidden`` for in-process
    callers and must not be shown to the player.
    """

    activated: bool
    level: Optional[InterventionTier] = None
    interventions: list[AppliedIntervention] = Field(default_factory=list)
    hidden: list[AppliedIntervention] = Field(default_factory=list)
    errors: list[InterventionFailure] = Field(default_factory=list)
    error: Optional[str] = None


class InterventionStatusEntry(BaseModel):
    active: bool
    time_remaining: Optional[int] = Field(None, description="Milliseconds, clamped at zero")
    record: InterventionRecord


class InterventionAnalytics(BaseModel):
    total_interventions: int = 0
    intervention_types: dict[str, int] = Field(default_factory=dict)
    average_frustration_level: float = 0.0
    intervention_frequency: float = Field(0.0, description="Activations per minute")
    most_common_level: str = InterventionTier.NONE.value
