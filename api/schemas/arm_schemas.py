"""Arm API schemas - Request/Response DTOs for the robotic arm endpoints."""

from __future__ import annotations

from typing import Optional
from pydantic import BaseModel, Field


class ConnectRequest(BaseModel):
    """Optional serial port override for connect."""
    port: Optional[str] = Field(None, description="Serial device, e.g. /dev/ttyUSB0 or COM3")

    class Config:
        json_schema_extra = {"example": {"port": "/dev/ttyUSB0"}}


class ServoCommandRequest(BaseModel):
    """Target angle for one servo."""
    value: int = Field(..., ge=0, le=180, description="Servo angle in degrees (0-180)")

    class Config:
        json_schema_extra = {"example": {"value": 90}}


class ArmCommandResponse(BaseModel):
    """Result of an arm command."""
    success: bool = Field(..., description="Whether the command was sent or scheduled")
    command: Optional[str] = Field(None, description="Wire command, e.g. B:90")
    debounced: bool = Field(default=False, description="True when the command was scheduled, not sent yet")
    message: str = Field(..., description="Human-readable result message")

    class Config:
        json_schema_extra = {
            "example": {
                "success": True,
                "command": "B:90",
                "debounced": True,
                "message": "Command scheduled"
            }
        }


class ArmStatusResponse(BaseModel):
    """Relay status."""
    connected: bool
    unlocked: bool
    halted: bool
    controls_enabled: bool = Field(..., description="unlocked and connected and not halted")
    pending_commands: int
    debounce_ms: int
    last_command: Optional[str] = None
