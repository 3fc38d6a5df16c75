"""InterventionEngine — tiered, deduplicated compensating effects.

Flow of one activation:
    1. frustration score → tier (inclusive thresholds, see domain table)
    2. read the session's currently active effects
    3. build the tier's candidate list (own effects + all lower tiers)
    4. drop candidates whose type was already chosen in this activation,
       and dedup candidates whose type is already active; hint batches,
       the moderate grace period and checkpoints always re-fire
    5. persist each effect under ``anti_frustration:{type}:{session_id}``
       with a TTL, isolating failures per effect
    6. split results into visible (shown to the player) and hidden
    7. append a summary to the session's intervention log

Liveness:
    The backing store reclaims records through whole-second TTLs.  The
    engine is the source of truth for exact liveness and always compares
    ``now - activated_at`` against the record's millisecond duration,
    deleting records that outlived it.

Failure semantics:
    - A store failure while applying one effect is logged and reported in
      ``errors``; sibling effects still apply.
    - A failure anywhere else in the activation is reported as
      ``activated=False`` and never raised to the caller.
    - UnknownInterventionError is a programmer error and always propagates.

There is no lock across activations.  Two concurrent activations for one
session may both apply an effect; effects are balance nudges, so the
race is tolerated.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from pydantic import ValidationError

from player_pulse.core import analytics
from player_pulse.core.hints import HintSelector
from player_pulse.domain.enums import InterventionTier, InterventionType
from player_pulse.domain.intervention import (
    DURABLE_EFFECTS,
    EFFECT_CATALOG,
    AppliedIntervention,
    InterventionAnalytics,
    InterventionFailure,
    InterventionLogEntry,
    InterventionOutcome,
    InterventionRecord,
    InterventionStatusEntry,
    candidates_for_tier,
    determine_tier,
)
from player_pulse.domain.player_state import PlayerState
from player_pulse.foundation import clock
from player_pulse.store.kv import KeyValueStore

logger = logging.getLogger(__name__)

# Delay before the first hint of a non-immediate batch is shown
HINT_DELAY_MS = 5_000


class UnknownInterventionError(Exception):
    """Raised when an intervention type has no catalog entry or applier."""

    def __init__(self, intervention_type: Any) -> None:
        self.intervention_type = intervention_type
        super().__init__(f"Unknown intervention type: {intervention_type}")


def intervention_key(intervention_type: InterventionType, session_id: str) -> str:
    return f"anti_frustration:{intervention_type.value}:{session_id}"


def intervention_log_key(session_id: str) -> str:
    return f"anti_frustration:log:{session_id}"


@dataclass(frozen=True)
class SelectedIntervention:
    type: InterventionType
    config: dict[str, Any]
    visible: bool


_Applier = Callable[[str, dict[str, Any], int], Awaitable[dict[str, Any]]]


class InterventionEngine:
    """Selects, persists and reports anti-frustration interventions.

    Args:
        kv: Backing key-value store for records and the intervention log.
        hints: Hint selector used by the hint_system effect.
        log_cap: Maximum log entries kept per session.
        log_ttl_seconds: Intervention log TTL, reset on every append.
    """

    def __init__(
        self,
        kv: KeyValueStore,
        hints: HintSelector | None = None,
        log_cap: int = 50,
        log_ttl_seconds: int = 3600,
    ) -> None:
        self._kv = kv
        self._hints = hints or HintSelector()
        self._log_cap = log_cap
        self._log_ttl_seconds = log_ttl_seconds
        self._appliers: dict[InterventionType, _Applier] = {
            InterventionType.GRACE_PERIOD: self._activate_grace_period,
            InterventionType.HEALTH_BOOST: self._apply_health_boost,
            InterventionType.DAMAGE_REDUCTION: self._apply_damage_reduction,
            InterventionType.HINT_SYSTEM: self._activate_hint_system,
            InterventionType.CHECKPOINT_CREATION: self._create_emergency_checkpoint,
            InterventionType.ABILITY_COOLDOWN_REDUCTION: self._apply_cooldown_reduction,
            InterventionType.ENEMY_WEAKENING: self._apply_enemy_weakening,
        }

    # ── Public API ───────────────────────────────────────────────────────

    async def activate_intervention(
        self,
        session_id: str,
        frustration_level: float,
        player_state: PlayerState | None = None,
        combat_context: dict[str, Any] | None = None,
        now: int | None = None,
    ) -> InterventionOutcome:
        """Run one activation for *session_id* and report what the player sees.

        *combat_context* is accepted from the caller for logging only.
        """
        now = clock.now_ms() if now is None else now
        try:
            tier = determine_tier(frustration_level)
            active = await self.get_active_features(session_id, now=now)
            selected = self._select_interventions(tier, player_state, active)
            visible, hidden, errors = await self._apply_interventions(session_id, selected, now)

            await self._log_intervention(
                session_id,
                InterventionLogEntry(
                    frustration_level=frustration_level,
                    intervention_level=tier,
                    interventions=[s.type for s in selected],
                    player_state=player_state.primary.value if player_state else None,
                    timestamp=now,
                ),
            )
        except UnknownInterventionError:
            raise
        except Exception as exc:
            logger.error("Anti-frustration intervention failed for %s: %s", session_id, exc)
            return InterventionOutcome(activated=False, error=str(exc))

        logger.info(
            "Intervention %s for session %s (frustration=%.2f, applied=%d, errors=%d, context=%s)",
            tier.value,
            session_id,
            frustration_level,
            len(visible) + len(hidden),
            len(errors),
            sorted(combat_context) if combat_context else [],
        )
        return InterventionOutcome(
            activated=True,
            level=tier,
            interventions=visible,
            hidden=hidden,
            errors=errors,
        )

    async def apply_specific_intervention(
        self,
        session_id: str,
        intervention_type: InterventionType | str,
        config: dict[str, Any] | None = None,
        now: int | None = None,
    ) -> dict[str, Any]:
        """Persist a single effect, bypassing tier selection and deduplication.

        Raises:
            UnknownInterventionError: If the type has no applier.
        """
        itype = _coerce_type(intervention_type)
        applier = self._appliers.get(itype)
        if applier is None:
            raise UnknownInterventionError(itype)
        merged = {**EFFECT_CATALOG[itype].defaults, **(config or {})}
        return await applier(session_id, merged, clock.now_ms() if now is None else now)

    async def get_active_features(self, session_id: str, now: int | None = None) -> list[InterventionType]:
        """Durable effect types currently live for the session."""
        now = clock.now_ms() if now is None else now
        return [
            itype for itype in DURABLE_EFFECTS
            if await self._load_live(session_id, itype, now) is not None
        ]

    async def is_intervention_active(
        self,
        session_id: str,
        intervention_type: InterventionType | str,
        now: int | None = None,
    ) -> bool:
        """True if a live record exists.  Stale records are deleted."""
        itype = _coerce_type(intervention_type)
        record = await self._load_live(session_id, itype, clock.now_ms() if now is None else now)
        return record is not None

    async def get_intervention_status(
        self,
        session_id: str,
        now: int | None = None,
    ) -> dict[str, InterventionStatusEntry]:
        """Live records keyed by effect type, with milliseconds remaining."""
        now = clock.now_ms() if now is None else now
        status: dict[str, InterventionStatusEntry] = {}
        for itype in InterventionType:
            record = await self._load_live(session_id, itype, now)
            if record is None:
                continue
            status[itype.value] = InterventionStatusEntry(
                active=True,
                time_remaining=record.time_remaining(now),
                record=record,
            )
        return status

    async def generate_intervention_analytics(self, session_id: str) -> InterventionAnalytics:
        return analytics.summarize(await self.intervention_log(session_id))

    async def intervention_log(self, session_id: str) -> list[InterventionLogEntry]:
        entries = []
        for raw in await self._kv.read_list(intervention_log_key(session_id)):
            try:
                entries.append(InterventionLogEntry.model_validate_json(raw))
            except ValidationError:
                logger.warning("Skipping malformed intervention log entry for %s", session_id)
        return entries

    # ── Selection ────────────────────────────────────────────────────────

    @staticmethod
    def _select_interventions(
        tier: InterventionTier,
        player_state: PlayerState | None,
        active: list[InterventionType],
    ) -> list[SelectedIntervention]:
        death_streak = player_state.indicators.frustration.death_streak if player_state else 0
        chosen: set[InterventionType] = set()
        selected: list[SelectedIntervention] = []

        for candidate in candidates_for_tier(tier):
            if death_streak < candidate.min_death_streak:
                continue
            # First candidate of a type wins within one activation
            if candidate.type in chosen:
                continue
            if candidate.dedup and candidate.type in active:
                continue
            spec = EFFECT_CATALOG.get(candidate.type)
            if spec is None:
                raise UnknownInterventionError(candidate.type)
            chosen.add(candidate.type)
            selected.append(SelectedIntervention(candidate.type, candidate.build_config(), spec.visible))

        return selected

    # ── Application ──────────────────────────────────────────────────────

    async def _apply_interventions(
        self,
        session_id: str,
        selected: list[SelectedIntervention],
        now: int,
    ) -> tuple[list[AppliedIntervention], list[AppliedIntervention], list[InterventionFailure]]:
        visible: list[AppliedIntervention] = []
        hidden: list[AppliedIntervention] = []
        errors: list[InterventionFailure] = []

        for item in selected:
            applier = self._appliers.get(item.type)
            if applier is None:
                raise UnknownInterventionError(item.type)
            try:
                result = await applier(session_id, item.config, now)
            except Exception as exc:
                logger.error("Failed to apply intervention %s for %s: %s", item.type.value, session_id, exc)
                errors.append(InterventionFailure(type=item.type, error=str(exc)))
                continue

            applied = AppliedIntervention(
                type=item.type,
                description=EFFECT_CATALOG[item.type].description,
                config=item.config,
                result=result,
            )
            (visible if item.visible else hidden).append(applied)

        return visible, hidden, errors

    async def _persist(
        self,
        session_id: str,
        itype: InterventionType,
        config: dict[str, Any],
        now: int,
        duration: Optional[int] = None,
        payload: dict[str, Any] | None = None,
    ) -> InterventionRecord:
        record = InterventionRecord(
            type=itype,
            config=config,
            activated_at=now,
            duration=duration,
            payload=payload or {},
        )
        await self._kv.set(
            intervention_key(itype, session_id),
            record.model_dump_json(),
            EFFECT_CATALOG[itype].ttl_seconds(config),
        )
        return record

    async def _activate_grace_period(self, session_id: str, config: dict[str, Any], now: int) -> dict[str, Any]:
        await self._persist(session_id, InterventionType.GRACE_PERIOD, config, now, duration=config["duration"])
        return {
            "activated": True,
            "duration": config["duration"],
            "invulnerability": config.get("invulnerability", True),
        }

    async def _apply_health_boost(self, session_id: str, config: dict[str, Any], now: int) -> dict[str, Any]:
        await self._persist(session_id, InterventionType.HEALTH_BOOST, config, now, duration=config["duration"])
        return {"activated": True, "multiplier": config["multiplier"], "duration": config["duration"]}

    async def _apply_damage_reduction(self, session_id: str, config: dict[str, Any], now: int) -> dict[str, Any]:
        await self._persist(session_id, InterventionType.DAMAGE_REDUCTION, config, now, duration=config["duration"])
        return {
            "activated": True,
            "reduction": round(1 - config["multiplier"], 4),
            "duration": config["duration"],
        }

    async def _activate_hint_system(self, session_id: str, config: dict[str, Any], now: int) -> dict[str, Any]:
        immediate = bool(config.get("immediate", False))
        hints = self._hints.select(config.get("types", []))
        await self._persist(
            session_id,
            InterventionType.HINT_SYSTEM,
            config,
            now,
            payload={
                "hints": hints,
                "displayed_hints": [],
                "next_hint_time": now + (0 if immediate else HINT_DELAY_MS),
            },
        )
        return {
            "activated": True,
            "hints_available": len(hints),
            "immediate_hint": hints[0] if immediate and hints else None,
        }

    async def _create_emergency_checkpoint(self, session_id: str, config: dict[str, Any], now: int) -> dict[str, Any]:
        await self._persist(
            session_id,
            InterventionType.CHECKPOINT_CREATION,
            config,
            now,
            payload={"kind": "emergency", "reason": "frustration_intervention"},
        )
        return {"created": True, "timestamp": now, "type": "emergency_checkpoint"}

    async def _apply_cooldown_reduction(self, session_id: str, config: dict[str, Any], now: int) -> dict[str, Any]:
        await self._persist(
            session_id, InterventionType.ABILITY_COOLDOWN_REDUCTION, config, now, duration=config["duration"],
        )
        return {
            "activated": True,
            "reduction": round(1 - config["multiplier"], 4),
            "duration": config["duration"],
        }

    async def _apply_enemy_weakening(self, session_id: str, config: dict[str, Any], now: int) -> dict[str, Any]:
        await self._persist(session_id, InterventionType.ENEMY_WEAKENING, config, now)
        return {
            "activated": True,
            "health_reduction": config["health_reduction"],
            "ai_simplified": config["ai_simplification"],
        }

    # ── Records & log ────────────────────────────────────────────────────

    async def _load_live(self, session_id: str, itype: InterventionType, now: int) -> InterventionRecord | None:
        key = intervention_key(itype, session_id)
        raw = await self._kv.get(key)
        if raw is None:
            return None
        try:
            record = InterventionRecord.model_validate_json(raw)
        except ValidationError:
            logger.warning("Discarding malformed %s record for %s", itype.value, session_id)
            await self._kv.delete(key)
            return None
        if record.is_expired(now):
            logger.debug("Intervention %s for %s outlived its duration", itype.value, session_id)
            await self._kv.delete(key)
            return None
        return record

    async def _log_intervention(self, session_id: str, entry: InterventionLogEntry) -> None:
        await self._kv.append_capped(
            intervention_log_key(session_id),
            entry.model_dump_json(),
            self._log_cap,
            self._log_ttl_seconds,
        )


def _coerce_type(intervention_type: InterventionType | str) -> InterventionType:
    if isinstance(intervention_type, InterventionType):
        return intervention_type
    try:
        return InterventionType(intervention_type)
    except ValueError:
        raise UnknownInterventionError(intervention_type) from None
