"""Controlled enumerations for the player-pulse domain.

Categorical fields with a closed vocabulary reference an enum defined
here.  Action and input types stay free-form strings because gameplay
code owns that vocabulary.
"""

from __future__ import annotations

from enum import Enum


class TelemetryKind(str, Enum):
    """The three per-session telemetry buffers."""

    ACTIONS = "actions"
    INPUTS = "inputs"
    COMBAT = "combat"


class CombatOutcome(str, Enum):
    VICTORY = "victory"
    DEATH = "death"


class InterventionTier(str, Enum):
    """Severity tiers, ordered from least to most severe."""

    NONE = "none"
    MILD = "mild"
    MODERATE = "moderate"
    SEVERE = "severe"
    CRITICAL = "critical"


class InterventionType(str, Enum):
    """Compensating effects the engine knows how to apply."""

    GRACE_PERIOD = "grace_period"
    HEALTH_BOOST = "health_boost"
    DAMAGE_REDUCTION = "damage_reduction"
    HINT_SYSTEM = "hint_system"
    CHECKPOINT_CREATION = "checkpoint_creation"
    ABILITY_COOLDOWN_REDUCTION = "ability_cooldown_reduction"
    ENEMY_WEAKENING = "enemy_weakening"


class PlayerStateLabel(str, Enum):
    """Primary affective/engagement classification of a player."""

    FLOW = "flow"
    FRUSTRATED = "frustrated"
    BORED = "bored"
    SUBOPTIMAL = "suboptimal"
