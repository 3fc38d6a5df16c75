"""Telemetry event models — what gameplay code reports about a session.

Events are validated at the boundary so the detector never has to
re-check field shapes.  Field names follow the game client's camelCase
wire format through aliases; Python code uses snake_case attributes.

The ``timestamp`` is always assigned by the server when the event is
recorded.  Any value supplied by the client is overwritten.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from player_pulse.domain.enums import CombatOutcome

_WIRE_CONFIG = {"populate_by_name": True, "extra": "allow", "frozen": True}


class ActionEvent(BaseModel):
    """A discrete gameplay action (retry, death, explore, basic_attack, ...)."""

    type: str = Field(..., min_length=1, max_length=64)
    target: Optional[str] = Field(default=None, max_length=256)
    subtype: Optional[str] = Field(default=None, max_length=64)
    risk_level: Optional[float] = None
    timestamp: int = Field(default=0, description="Server epoch milliseconds")

    model_config = _WIRE_CONFIG


class InputDelta(BaseModel):
    """Pointer displacement carried by movement inputs."""

    delta_x: float = Field(default=0.0, alias="deltaX")
    delta_y: float = Field(default=0.0, alias="deltaY")

    model_config = _WIRE_CONFIG


class InputEvent(BaseModel):
    """A raw input event (click, movement, key, ...)."""

    type: str = Field(..., min_length=1, max_length=64)
    data: Optional[InputDelta] = None
    response_time: Optional[float] = Field(default=None, ge=0.0, alias="responseTime")
    timestamp: int = Field(default=0, description="Server epoch milliseconds")

    model_config = _WIRE_CONFIG


class CombatResult(BaseModel):
    """The outcome of one combat encounter."""

    result: CombatOutcome
    health_lost: float = Field(default=0.0, ge=0.0, alias="healthLost")
    time_to_complete: float = Field(default=0.0, ge=0.0, alias="timeToComplete")
    average_time: float = Field(default=0.0, ge=0.0, alias="averageTime")
    timestamp: int = Field(default=0, description="Server epoch milliseconds")

    model_config = _WIRE_CONFIG


TelemetryEvent = ActionEvent | InputEvent | CombatResult
