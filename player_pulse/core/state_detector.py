"""StateDetector — behavioral indicators computed from session telemetry.

Design principles:
    1. Read-only: the detector never writes telemetry it did not receive
       through the record_* pass-throughs.
    2. Deterministic: every indicator is a pure function of the buffer
       contents and the evaluation time ``now`` (epoch ms).
    3. Best-effort: insufficient data degrades to a neutral value
       (0, 1.0 or False), never to an exception.

Time windows (relative to ``now``):
    short   [0, 30s)      retries, help seeking, input variance, repetition
    medium  [0, 120s)     "recent" half of every rate comparison
    prior   [120s, 300s)  "earlier" half of every rate comparison

input_variance is a composite heuristic:
    timing CV + click-spam score + movement-distance variance / 100
The three terms are summed without normalisation, so the result has no
upper bound.  Downstream thresholds (> 2, > 2.5) are tuned against this
exact scale; treat it as one opaque score.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Sequence

from player_pulse.domain.enums import CombatOutcome
from player_pulse.domain.indicators import BoredomBundle, FrustrationBundle
from player_pulse.domain.telemetry import ActionEvent, CombatResult, InputEvent
from player_pulse.foundation import clock
from player_pulse.store.telemetry_store import TelemetryStore

logger = logging.getLogger(__name__)


ACTION_COMPLEXITY: dict[str, int] = {
    "basic_attack": 1,
    "combo_attack": 3,
    "special_ability": 4,
    "dodge": 2,
    "block": 2,
    "strategic_move": 5,
}
DEFAULT_COMPLEXITY = 1

HELP_ACTIONS = frozenset({"check_hints", "pause_game", "open_menu", "view_tutorial", "request_help"})
QUIT_ACTIONS = frozenset({"quit", "leave"})
RISKY_ACTIONS = frozenset({"aggressive_attack", "risky_maneuver", "ignore_defense"})


@dataclass(frozen=True)
class DetectorWindows:
    """Analysis windows in milliseconds."""

    short: int = 30_000
    medium: int = 120_000
    long: int = 300_000


@dataclass(frozen=True)
class InputPatterns:
    """Thresholds for input and combat pattern analysis."""

    click_spam_threshold: float = 10.0  # clicks per second
    movement_variance_scale: float = 100.0
    pause_threshold_ms: int = 5_000
    quick_quit_ms: int = 10_000
    min_inputs: int = 10
    min_recent_inputs: int = 5
    min_window_actions: int = 10
    min_combats_for_drop: int = 10
    recent_combat_count: int = 5
    earlier_combat_count: int = 10
    perfect_time_factor: float = 0.8
    risk_level_threshold: float = 0.7
    max_input_rate: float = 5.0  # inputs per second counted as fully engaged
    input_type_variety: int = 6


class StateDetector:
    """Computes frustration and boredom indicator bundles per session.

    The detector holds no session state of its own.  Everything it knows
    comes from the TelemetryStore at evaluation time.
    """

    def __init__(
        self,
        telemetry: TelemetryStore,
        windows: DetectorWindows | None = None,
        patterns: InputPatterns | None = None,
    ) -> None:
        self._telemetry = telemetry
        self._windows = windows or DetectorWindows()
        self._patterns = patterns or InputPatterns()

    # ── Ingestion pass-throughs ──────────────────────────────────────────

    async def record_player_action(self, session_id: str, action: ActionEvent | dict[str, Any]) -> None:
        await self._telemetry.record_action(session_id, action)

    async def record_input_event(self, session_id: str, input_event: InputEvent | dict[str, Any]) -> None:
        await self._telemetry.record_input(session_id, input_event)

    async def record_combat_result(self, session_id: str, combat: CombatResult | dict[str, Any]) -> None:
        await self._telemetry.record_combat(session_id, combat)

    # ── Public API ───────────────────────────────────────────────────────

    async def get_frustration_indicators(self, session_id: str, now: int | None = None) -> FrustrationBundle:
        actions = await self._telemetry.actions(session_id)
        inputs = await self._telemetry.inputs(session_id)
        combats = await self._telemetry.combats(session_id)
        bundle = self.frustration_from(actions, inputs, combats, clock.now_ms() if now is None else now)
        logger.debug("Frustration indicators for %s: %s", session_id, bundle)
        return bundle

    async def get_boredom_indicators(self, session_id: str, now: int | None = None) -> BoredomBundle:
        actions = await self._telemetry.actions(session_id)
        inputs = await self._telemetry.inputs(session_id)
        combats = await self._telemetry.combats(session_id)
        bundle = self.boredom_from(actions, inputs, combats, clock.now_ms() if now is None else now)
        logger.debug("Boredom indicators for %s: %s", session_id, bundle)
        return bundle

    def frustration_from(
        self,
        actions: Sequence[ActionEvent],
        inputs: Sequence[InputEvent],
        combats: Sequence[CombatResult],
        now: int,
    ) -> FrustrationBundle:
        """Build the frustration bundle from already-loaded buffers."""
        rapid_retries = self.rapid_retries(actions, now)
        death_streak = self.death_streak(combats)
        input_variance = self.input_variance(inputs, now)
        return FrustrationBundle(
            rapid_retries=rapid_retries,
            death_streak=death_streak,
            input_variance=input_variance,
            quick_quit_after_death=self.quick_quit_after_death(actions),
            emotional_score=self.emotional_score(rapid_retries, death_streak, input_variance),
            action_regression=self.action_regression(actions, now),
            help_seeking=self.help_seeking(actions, now),
            performance_drop=self.performance_drop(combats),
        )

    def boredom_from(
        self,
        actions: Sequence[ActionEvent],
        inputs: Sequence[InputEvent],
        combats: Sequence[CombatResult],
        now: int,
    ) -> BoredomBundle:
        """Build the boredom bundle from already-loaded buffers."""
        return BoredomBundle(
            perfect_streak=self.perfect_streak(combats),
            completion_speed=self.completion_speed(combats),
            engagement_score=self.engagement_score(inputs, now),
            repetitive_actions=self.repetitive_actions(actions, now),
            inactivity_time=self.inactivity_time(inputs, now),
            exploration_decline=self.exploration_decline(actions, now),
            risk_taking=self.risk_taking(actions, now),
            attention_drift=self.attention_drift(inputs, now),
        )

    # ── Frustration indicators ───────────────────────────────────────────

    def rapid_retries(self, actions: Sequence[ActionEvent], now: int) -> int:
        return sum(1 for a in self._recent(actions, now, self._windows.short) if a.type == "retry")

    @staticmethod
    def death_streak(combats: Sequence[CombatResult]) -> int:
        """Consecutive deaths counted backward from the newest combat."""
        streak = 0
        for combat in reversed(combats):
            if combat.result == CombatOutcome.VICTORY:
                break
            if combat.result == CombatOutcome.DEATH:
                streak += 1
        return streak

    def input_variance(self, inputs: Sequence[InputEvent], now: int) -> float:
        p = self._patterns
        if len(inputs) < p.min_inputs:
            return 1.0

        recent = self._recent(inputs, now, self._windows.short)
        if len(recent) < p.min_recent_inputs:
            return 1.0

        intervals = [b.timestamp - a.timestamp for a, b in zip(recent, recent[1:])]
        mean_interval = _mean(intervals)
        timing_cv = math.sqrt(_variance(intervals)) / mean_interval if mean_interval > 0 else 0.0

        window_seconds = self._windows.short / 1000
        click_rate = sum(1 for i in recent if i.type == "click") / window_seconds
        spam_score = max(0.0, (click_rate - p.click_spam_threshold) / p.click_spam_threshold)

        movements = [i for i in recent if i.type == "movement" and i.data is not None]
        movement_variance = 1.0
        if len(movements) > 3:
            distances = [math.hypot(m.data.delta_x, m.data.delta_y) for m in movements]
            movement_variance = _variance(distances)

        return timing_cv + spam_score + movement_variance / p.movement_variance_scale

    def quick_quit_after_death(self, actions: Sequence[ActionEvent]) -> bool:
        """True if any quit/leave follows its nearest preceding death within the limit."""
        for i in range(len(actions) - 1, -1, -1):
            if actions[i].type not in QUIT_ACTIONS:
                continue
            for j in range(i - 1, -1, -1):
                if actions[j].type == "death":
                    if actions[i].timestamp - actions[j].timestamp < self._patterns.quick_quit_ms:
                        return True
                    break
        return False

    @staticmethod
    def emotional_score(rapid_retries: int, death_streak: int, input_variance: float) -> float:
        """Behavioral mood proxy in [-1, 0]; lower is more upset."""
        score = 0.0
        if rapid_retries > 3:
            score -= 0.3
        if death_streak > 2:
            score -= 0.4
        if input_variance > 2:
            score -= 0.3
        return max(-1.0, score)

    def action_regression(self, actions: Sequence[ActionEvent], now: int) -> float:
        recent = self._recent(actions, now, self._windows.medium)
        earlier = self._prior(actions, now)
        minimum = self._patterns.min_window_actions
        if len(recent) < minimum or len(earlier) < minimum:
            return 0.0
        return max(0.0, _action_complexity(earlier) - _action_complexity(recent))

    def help_seeking(self, actions: Sequence[ActionEvent], now: int) -> int:
        return sum(1 for a in self._recent(actions, now, self._windows.short) if a.type in HELP_ACTIONS)

    def performance_drop(self, combats: Sequence[CombatResult]) -> float:
        p = self._patterns
        if len(combats) < p.min_combats_for_drop:
            return 0.0

        recent = list(combats[-p.recent_combat_count:])
        earlier = list(combats[-(p.recent_combat_count + p.earlier_combat_count):-p.recent_combat_count])
        if not earlier:
            return 0.0

        success_drop = max(0.0, _success_rate(earlier) - _success_rate(recent))
        recent_time = _mean([c.time_to_complete for c in recent])
        earlier_time = _mean([c.time_to_complete for c in earlier])
        time_increase = max(0.0, (recent_time - earlier_time) / earlier_time) if earlier_time > 0 else 0.0

        return min(1.0, success_drop * 0.7 + time_increase * 0.3)

    # ── Boredom indicators ───────────────────────────────────────────────

    def perfect_streak(self, combats: Sequence[CombatResult]) -> int:
        """Consecutive flawless victories faster than the encounter average."""
        streak = 0
        for combat in reversed(combats):
            if (
                combat.result == CombatOutcome.VICTORY
                and combat.health_lost == 0
                and combat.time_to_complete < combat.average_time * self._patterns.perfect_time_factor
            ):
                streak += 1
            else:
                break
        return streak

    def completion_speed(self, combats: Sequence[CombatResult]) -> float:
        count = self._patterns.recent_combat_count
        if len(combats) < count:
            return 1.0
        recent = combats[-count:]
        historical = combats[:-count]
        if not historical:
            return 1.0
        historical_mean = _mean([c.time_to_complete for c in historical])
        if historical_mean == 0:
            return 1.0
        return _mean([c.time_to_complete for c in recent]) / historical_mean

    def engagement_score(self, inputs: Sequence[InputEvent], now: int) -> float:
        p = self._patterns
        recent = self._recent(inputs, now, self._windows.medium)
        if not recent:
            return 0.0

        frequency = len(recent) / (self._windows.medium / 1000)
        normalized_frequency = min(1.0, frequency / p.max_input_rate)
        variety = min(1.0, len({i.type for i in recent}) / p.input_type_variety)

        response_times = [i.response_time for i in recent if i.response_time]
        consistency = 1.0
        if len(response_times) > 3:
            mean = _mean(response_times)
            consistency = max(0.0, 1 - _variance(response_times) / (mean * mean))

        return normalized_frequency * 0.4 + variety * 0.3 + consistency * 0.3

    def repetitive_actions(self, actions: Sequence[ActionEvent], now: int) -> int:
        """Longest run of identical (type, target) pairs in the short window."""
        recent = self._recent(actions, now, self._windows.short)
        if len(recent) < 5:
            return 0

        longest = 0
        run = 1
        for previous, current in zip(recent, recent[1:]):
            if (current.type, current.target) == (previous.type, previous.target):
                run += 1
            else:
                longest = max(longest, run)
                run = 1
        return max(longest, run)

    def inactivity_time(self, inputs: Sequence[InputEvent], now: int) -> float:
        """Milliseconds spent in gaps longer than the pause threshold."""
        if len(inputs) < 2:
            return 0.0
        recent = self._recent(inputs, now, self._windows.medium)
        gaps = (b.timestamp - a.timestamp for a, b in zip(recent, recent[1:]))
        return float(sum(g for g in gaps if g > self._patterns.pause_threshold_ms))

    def exploration_decline(self, actions: Sequence[ActionEvent], now: int) -> float:
        recent = [a for a in self._recent(actions, now, self._windows.medium) if a.type == "explore"]
        earlier = [a for a in self._prior(actions, now) if a.type == "explore"]
        if not earlier:
            return 0.0

        window_seconds = self._windows.medium / 1000
        recent_rate = len(recent) / window_seconds
        earlier_rate = len(earlier) / window_seconds
        return max(0.0, (earlier_rate - recent_rate) / earlier_rate)

    def risk_taking(self, actions: Sequence[ActionEvent], now: int) -> float:
        recent = self._recent(actions, now, self._windows.medium)
        if len(recent) < self._patterns.min_window_actions:
            return 0.0
        risky = [
            a for a in recent
            if a.type in RISKY_ACTIONS
            or (a.risk_level is not None and a.risk_level > self._patterns.risk_level_threshold)
        ]
        return len(risky) / len(recent)

    def attention_drift(self, inputs: Sequence[InputEvent], now: int) -> float:
        """Blend of response-time degradation (0.6) and input-rate decline (0.4)."""
        recent = self._recent(inputs, now, self._windows.medium)
        if len(recent) < self._patterns.min_inputs:
            return 0.0

        half = len(recent) // 2
        first, second = recent[:half], recent[half:]

        first_response = _mean_response_time(first)
        second_response = _mean_response_time(second)
        degradation = (second_response - first_response) / first_response if first_response > 0 else 0.0

        half_window_seconds = self._windows.medium / 2 / 1000
        first_rate = len(first) / half_window_seconds
        second_rate = len(second) / half_window_seconds
        frequency_decline = max(0.0, (first_rate - second_rate) / first_rate)

        return min(1.0, degradation * 0.6 + frequency_decline * 0.4)

    # ── Windows ──────────────────────────────────────────────────────────

    @staticmethod
    def _recent(events: Sequence[Any], now: int, window: int) -> list[Any]:
        """Events whose age is below *window*."""
        return [e for e in events if now - e.timestamp < window]

    def _prior(self, events: Sequence[Any], now: int) -> list[Any]:
        """Events aged between the medium and the long window."""
        return [
            e for e in events
            if self._windows.medium <= now - e.timestamp < self._windows.long
        ]


# ── Helpers ──────────────────────────────────────────────────────────────────

def _mean(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    return sum(values) / len(values)


def _variance(values: Sequence[float]) -> float:
    """Population variance; 0.0 for an empty sequence."""
    if not values:
        return 0.0
    mean = _mean(values)
    return sum((v - mean) ** 2 for v in values) / len(values)


def _action_complexity(actions: Sequence[ActionEvent]) -> float:
    if not actions:
        return 0.0
    return sum(ACTION_COMPLEXITY.get(a.type, DEFAULT_COMPLEXITY) for a in actions) / len(actions)


def _success_rate(combats: Sequence[CombatResult]) -> float:
    return sum(1 for c in combats if c.result == CombatOutcome.VICTORY) / len(combats)


def _mean_response_time(inputs: Sequence[InputEvent]) -> float:
    timed = [i.response_time for i in inputs if i.response_time]
    return sum(timed) / max(len(timed), 1)
