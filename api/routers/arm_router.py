"""Arm router - REST endpoints for the voice-gated robotic arm."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, Path
from fastapi.responses import JSONResponse

from api.dependencies import get_command_relay
from api.schemas.arm_schemas import (
    ArmCommandResponse,
    ArmStatusResponse,
    ConnectRequest,
    ServoCommandRequest,
)
from core.exceptions import ArmLockedError, ArmNotConnectedError
from core.executors import run_io_bound
from core.metrics import arm_commands_total
from services.arm.command_relay import (
    ArmJoint,
    CLAW_CLOSE_COMMAND,
    CLAW_OPEN_COMMAND,
    STOP_COMMAND,
    CommandRelay,
)


router = APIRouter(prefix="/arm", tags=["arm"])
logger = logging.getLogger(__name__)


def _rejected(exc: Exception, kind: str) -> JSONResponse:
    status_code = 423 if isinstance(exc, ArmLockedError) else 409
    arm_commands_total.labels(kind=kind, status="rejected").inc()
    logger.warning(f"Arm command rejected ({kind}): {exc}")
    return JSONResponse(
        content={"success": False, "error": str(exc), "message": str(exc)},
        status_code=status_code,
    )


def _sent(success: bool, command: str) -> JSONResponse:
    if success:
        return JSONResponse(
            content={"success": True, "command": command, "debounced": False, "message": "Command sent"},
            status_code=200,
        )
    return JSONResponse(
        content={"success": False, "command": command, "debounced": False, "message": "Transport write failed"},
        status_code=502,
    )


@router.post(
    "/connect",
    summary="Connect to arm controller",
    response_model=ArmStatusResponse,
    responses={502: {"description": "Serial port could not be opened"}},
)
async def connect(
    body: Optional[ConnectRequest] = Body(None),
    relay: CommandRelay = Depends(get_command_relay),
):
    """Open the serial link; clears a previous emergency stop."""
    port = body.port if body is not None else None
    ok = await run_io_bound(relay.connect, port)
    status = relay.get_status()
    if not ok:
        return JSONResponse(
            content={**status, "error": "Failed to connect to arm controller"},
            status_code=502,
        )
    return JSONResponse(content=status, status_code=200)


@router.post("/disconnect", summary="Disconnect from arm controller", response_model=ArmStatusResponse)
async def disconnect(relay: CommandRelay = Depends(get_command_relay)):
    await run_io_bound(relay.disconnect)
    return JSONResponse(content=relay.get_status(), status_code=200)


@router.post(
    "/servos/{joint}",
    summary="Move a servo",
    description="Debounced: rapid updates for the same joint collapse to the last value.",
    response_model=ArmCommandResponse,
    responses={
        409: {"description": "Arm not connected"},
        423: {"description": "Voice lock engaged or emergency stop active"},
    },
)
async def move_servo(
    body: ServoCommandRequest,
    joint: ArmJoint = Path(..., description="base, mid, near or claw"),
    relay: CommandRelay = Depends(get_command_relay),
):
    try:
        command = relay.move_servo(joint, body.value)
    except (ArmLockedError, ArmNotConnectedError) as e:
        return _rejected(e, "debounced")

    return JSONResponse(
        content={"success": True, "command": command, "debounced": True, "message": "Command scheduled"},
        status_code=202,
    )


@router.post("/claw/open", summary="Open claw", response_model=ArmCommandResponse)
async def open_claw(relay: CommandRelay = Depends(get_command_relay)):
    try:
        ok = await run_io_bound(relay.open_claw)
    except (ArmLockedError, ArmNotConnectedError) as e:
        return _rejected(e, "immediate")
    return _sent(ok, CLAW_OPEN_COMMAND)


@router.post("/claw/close", summary="Close claw", response_model=ArmCommandResponse)
async def close_claw(relay: CommandRelay = Depends(get_command_relay)):
    try:
        ok = await run_io_bound(relay.close_claw)
    except (ArmLockedError, ArmNotConnectedError) as e:
        return _rejected(e, "immediate")
    return _sent(ok, CLAW_CLOSE_COMMAND)


@router.post(
    "/emergency-stop",
    summary="Emergency stop",
    description="Sends STOP, drops pending moves and halts the relay until reconnect or voice unlock.",
    response_model=ArmCommandResponse,
)
async def emergency_stop(relay: CommandRelay = Depends(get_command_relay)):
    try:
        ok = await run_io_bound(relay.emergency_stop)
    except ArmNotConnectedError as e:
        return _rejected(e, "stop")
    return _sent(ok, STOP_COMMAND)


@router.post("/reset", summary="Reset to default pose", response_model=ArmCommandResponse)
async def reset_pose(relay: CommandRelay = Depends(get_command_relay)):
    try:
        ok = await run_io_bound(relay.reset_pose)
    except (ArmLockedError, ArmNotConnectedError) as e:
        return _rejected(e, "immediate")
    if ok:
        return JSONResponse(
            content={"success": True, "command": None, "debounced": False, "message": "Arm reset to default pose"},
            status_code=200,
        )
    return JSONResponse(
        content={"success": False, "command": None, "debounced": False, "message": "Transport write failed"},
        status_code=502,
    )


@router.get("/status", summary="Relay status", response_model=ArmStatusResponse)
async def get_status(relay: CommandRelay = Depends(get_command_relay)):
    return JSONResponse(content=relay.get_status(), status_code=200)
