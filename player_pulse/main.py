"""player-pulse — Player State Detection & Anti-Frustration Interventions.

This is the application entry point.  It wires the key-value backend,
TelemetryStore, StateDetector, PlayerStateClassifier, InterventionEngine
and the REST routers together.  All per-session state lives in the
backend; the app object holds only the wired components.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from player_pulse.api.interventions import create_intervention_router
from player_pulse.api.telemetry import create_telemetry_router
from player_pulse.config import Settings, settings
from player_pulse.core.intervention_engine import InterventionEngine
from player_pulse.core.state_classifier import PlayerStateClassifier
from player_pulse.core.state_detector import DetectorWindows, StateDetector
from player_pulse.domain.enums import TelemetryKind
from player_pulse.store.kv import KeyValueStore, create_store
from player_pulse.store.telemetry_store import TelemetryStore

# ── Logging ──────────────────────────────────────────────────────────────────

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)

logger = logging.getLogger(__name__)


def create_app(config: Settings = settings, kv: KeyValueStore | None = None) -> FastAPI:
    """Build a fully wired application.

    Args:
        config: Settings to wire from.
        kv: Pre-built backend (tests pass an InMemoryKeyValueStore).
    """
    kv = kv or create_store(config.store_backend, config.redis_url)

    # ── State ────────────────────────────────────────────────────────────

    telemetry = TelemetryStore(
        kv,
        ttl_seconds=config.telemetry_ttl_seconds,
        caps={
            TelemetryKind.ACTIONS: config.action_buffer_cap,
            TelemetryKind.INPUTS: config.input_buffer_cap,
            TelemetryKind.COMBAT: config.combat_buffer_cap,
        },
    )

    # ── Detection & Intervention ─────────────────────────────────────────

    detector = StateDetector(
        telemetry,
        windows=DetectorWindows(
            short=config.window_short_ms,
            medium=config.window_medium_ms,
            long=config.window_long_ms,
        ),
    )
    classifier = PlayerStateClassifier(detector)
    engine = InterventionEngine(
        kv,
        log_cap=config.intervention_log_cap,
        log_ttl_seconds=config.intervention_log_ttl_seconds,
    )

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        logger.info("Starting %s with %s backend", config.app_name, config.store_backend)
        yield
        await kv.close()
        logger.info("Backend closed")

    # ── App ──────────────────────────────────────────────────────────────

    app = FastAPI(
        title=config.app_name,
        description="Player State Detection & Anti-Frustration Interventions",
        version="0.1.0",
        debug=config.debug,
        lifespan=lifespan,
    )

    # ── Routes ───────────────────────────────────────────────────────────

    app.include_router(create_telemetry_router(detector))
    app.include_router(create_intervention_router(engine, classifier))

    # ── Health ───────────────────────────────────────────────────────────

    @app.get("/health")
    async def health() -> dict:
        return {
            "status": "ok",
            "backend": config.store_backend,
            "components": {
                "state_detector": "operational",
                "state_classifier": "operational",
                "intervention_engine": "operational",
            },
        }

    return app


app = create_app()
