"""PlayerStateClassifier — turns indicator bundles into a player state.

Each bundle is scored as a weighted fraction of the indicators that
crossed their threshold:

    frustration = Σ w_i · [indicator_i crosses threshold_i] / Σ w_i

Primary state:
    frustrated  if frustration > 0.7
    bored       elif boredom > 0.7
    suboptimal  elif either > 0.4
    flow        otherwise
"""

from __future__ import annotations

from dataclasses import dataclass

from player_pulse.core.state_detector import StateDetector
from player_pulse.domain.enums import PlayerStateLabel
from player_pulse.domain.indicators import BoredomBundle, FrustrationBundle
from player_pulse.domain.player_state import PlayerIndicators, PlayerState
from player_pulse.foundation import clock


@dataclass(frozen=True)
class FrustrationThresholds:
    rapid_retries: int = 3
    death_streak: int = 3
    erratic_input_variance: float = 2.5
    negative_emotion_score: float = -0.6


@dataclass(frozen=True)
class BoredomThresholds:
    perfect_streak: int = 5
    speed_run_ratio: float = 0.7
    low_engagement: float = 0.3
    repetitive_actions: int = 10
    inactivity_ms: float = 30_000


class PlayerStateClassifier:
    """Scores a session's bundles and labels the dominant state."""

    def __init__(
        self,
        detector: StateDetector,
        frustration_thresholds: FrustrationThresholds | None = None,
        boredom_thresholds: BoredomThresholds | None = None,
        frustrated_above: float = 0.7,
        bored_above: float = 0.7,
        suboptimal_above: float = 0.4,
    ) -> None:
        self._detector = detector
        self._frustration = frustration_thresholds or FrustrationThresholds()
        self._boredom = boredom_thresholds or BoredomThresholds()
        self._frustrated_above = frustrated_above
        self._bored_above = bored_above
        self._suboptimal_above = suboptimal_above

    async def classify(self, session_id: str, now: int | None = None) -> PlayerState:
        now = clock.now_ms() if now is None else now
        frustration = await self._detector.get_frustration_indicators(session_id, now=now)
        boredom = await self._detector.get_boredom_indicators(session_id, now=now)
        return self.classify_bundles(session_id, frustration, boredom)

    def classify_bundles(
        self,
        session_id: str,
        frustration: FrustrationBundle,
        boredom: BoredomBundle,
    ) -> PlayerState:
        frustration_score = self.frustration_score(frustration)
        boredom_score = self.boredom_score(boredom)

        if frustration_score > self._frustrated_above:
            primary = PlayerStateLabel.FRUSTRATED
        elif boredom_score > self._bored_above:
            primary = PlayerStateLabel.BORED
        elif frustration_score > self._suboptimal_above or boredom_score > self._suboptimal_above:
            primary = PlayerStateLabel.SUBOPTIMAL
        else:
            primary = PlayerStateLabel.FLOW

        return PlayerState(
            session_id=session_id,
            primary=primary,
            frustration_score=round(frustration_score, 4),
            boredom_score=round(boredom_score, 4),
            confidence=round(max(frustration_score, boredom_score), 4),
            indicators=PlayerIndicators(frustration=frustration, boredom=boredom),
        )

    def frustration_score(self, bundle: FrustrationBundle) -> float:
        t = self._frustration
        return _weighted_fraction([
            (0.3, bundle.rapid_retries >= t.rapid_retries),
            (0.25, bundle.death_streak >= t.death_streak),
            (0.2, bundle.input_variance > t.erratic_input_variance),
            (0.15, bundle.quick_quit_after_death),
            (0.1, bundle.emotional_score < t.negative_emotion_score),
        ])

    def boredom_score(self, bundle: BoredomBundle) -> float:
        t = self._boredom
        return _weighted_fraction([
            (0.3, bundle.perfect_streak >= t.perfect_streak),
            (0.25, bundle.completion_speed < t.speed_run_ratio),
            (0.2, bundle.engagement_score < t.low_engagement),
            (0.15, bundle.repetitive_actions >= t.repetitive_actions),
            (0.1, bundle.inactivity_time > t.inactivity_ms),
        ])


def _weighted_fraction(terms: list[tuple[float, bool]]) -> float:
    total = sum(weight for weight, _ in terms)
    if total == 0:
        return 0.0
    return min(1.0, sum(weight for weight, hit in terms if hit) / total)
