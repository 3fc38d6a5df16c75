"""TelemetryStore — capped, append-only per-session event buffers.

Three buffers per session, one per TelemetryKind, under the keys
``dda:{kind}:{session_id}``.  Each append stamps a server timestamp,
trims the buffer to its cap (oldest first) and resets the TTL.

The store does NOT interpret events.  It only keeps them in arrival
order and forgets them when the session goes quiet.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel, ValidationError

from player_pulse.domain.enums import TelemetryKind
from player_pulse.domain.telemetry import ActionEvent, CombatResult, InputEvent, TelemetryEvent
from player_pulse.foundation import clock
from player_pulse.store.kv import KeyValueStore

logger = logging.getLogger(__name__)

_MODELS: dict[TelemetryKind, type[BaseModel]] = {
    TelemetryKind.ACTIONS: ActionEvent,
    TelemetryKind.INPUTS: InputEvent,
    TelemetryKind.COMBAT: CombatResult,
}


def telemetry_key(kind: TelemetryKind, session_id: str) -> str:
    return f"dda:{kind.value}:{session_id}"


class TelemetryStore:
    """Per-session telemetry buffers on top of a KeyValueStore.

    Args:
        kv: Backing key-value store.
        ttl_seconds: Buffer TTL, reset on every append.
        caps: Maximum entries kept per kind.
    """

    def __init__(
        self,
        kv: KeyValueStore,
        ttl_seconds: int = 3600,
        caps: dict[TelemetryKind, int] | None = None,
    ) -> None:
        self._kv = kv
        self._ttl_seconds = ttl_seconds
        self._caps = {
            TelemetryKind.ACTIONS: 1000,
            TelemetryKind.INPUTS: 2000,
            TelemetryKind.COMBAT: 100,
        }
        if caps:
            self._caps.update(caps)

    # ── Public API ───────────────────────────────────────────────────────

    async def record(
        self,
        session_id: str,
        kind: TelemetryKind,
        event: TelemetryEvent | dict[str, Any],
    ) -> TelemetryEvent:
        """Stamp *event* with the server clock and append it to its buffer.

        Raw dicts are validated against the kind's model first.
        """
        model = _MODELS[kind]
        if isinstance(event, dict):
            event = model.model_validate(event)
        elif not isinstance(event, model):
            raise TypeError(f"{type(event).__name__} cannot be recorded as {kind.value}")

        stamped = event.model_copy(update={"timestamp": clock.now_ms()})
        key = telemetry_key(kind, session_id)
        await self._kv.append_capped(
            key,
            stamped.model_dump_json(by_alias=True, exclude_none=True),
            self._caps[kind],
            self._ttl_seconds,
        )
        logger.debug("Recorded %s event for session %s", kind.value, session_id)
        return stamped

    async def read(self, session_id: str, kind: TelemetryKind) -> list[Any]:
        """Return the full buffer oldest first; a missing buffer is empty."""
        model = _MODELS[kind]
        events = []
        for raw in await self._kv.read_list(telemetry_key(kind, session_id)):
            try:
                events.append(model.model_validate_json(raw))
            except ValidationError as exc:
                logger.warning(
                    "Skipping malformed %s entry for session %s: %s",
                    kind.value, session_id, exc.error_count(),
                )
        return events

    async def record_action(self, session_id: str, action: ActionEvent | dict[str, Any]) -> ActionEvent:
        return await self.record(session_id, TelemetryKind.ACTIONS, action)

    async def record_input(self, session_id: str, input_event: InputEvent | dict[str, Any]) -> InputEvent:
        return await self.record(session_id, TelemetryKind.INPUTS, input_event)

    async def record_combat(self, session_id: str, combat: CombatResult | dict[str, Any]) -> CombatResult:
        return await self.record(session_id, TelemetryKind.COMBAT, combat)

    async def actions(self, session_id: str) -> list[ActionEvent]:
        return await self.read(session_id, TelemetryKind.ACTIONS)

    async def inputs(self, session_id: str) -> list[InputEvent]:
        return await self.read(session_id, TelemetryKind.INPUTS)

    async def combats(self, session_id: str) -> list[CombatResult]:
        return await self.read(session_id, TelemetryKind.COMBAT)
