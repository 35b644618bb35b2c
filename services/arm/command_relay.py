"""Command relay - gated, debounced servo commands for the robotic arm.

Movement is allowed only while the voice session is unlocked, the
transport is connected, and no emergency stop is in effect. Slider-style
controls go through ``send_debounced`` so a burst of updates for one
control collapses to its last value; buttons use ``send_immediate``.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from core.exceptions import ArmLockedError, ArmNotConnectedError, TransportError
from core.metrics import arm_commands_total
from repositories.interfaces.command_transport import ICommandTransport
from services.voice.session import AuthSession

logger = logging.getLogger(__name__)

SERVO_MIN = 0
SERVO_MAX = 180

STOP_COMMAND = "STOP"
CLAW_OPEN_COMMAND = "C:0"
CLAW_CLOSE_COMMAND = "C:1"


class ArmJoint(str, Enum):
    BASE = "base"
    MID = "mid"
    NEAR = "near"
    CLAW = "claw"


JOINT_PREFIX = {
    ArmJoint.BASE: "B",
    ArmJoint.MID: "M",
    ArmJoint.NEAR: "N",
    ArmJoint.CLAW: "C",
}

DEFAULT_POSE: List[Tuple[ArmJoint, int]] = [
    (ArmJoint.BASE, 80),
    (ArmJoint.MID, 95),
    (ArmJoint.NEAR, 45),
    (ArmJoint.CLAW, 0),
]


def format_servo_command(joint: ArmJoint | str, value: int) -> str:
    """Build the wire command for one servo, e.g. ``B:90``."""
    joint = ArmJoint(joint)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"Servo value must be an integer, got {value!r}")
    if not SERVO_MIN <= value <= SERVO_MAX:
        raise ValueError(f"Servo value {value} outside [{SERVO_MIN}, {SERVO_MAX}]")
    return f"{JOINT_PREFIX[joint]}:{value}"


@dataclass
class _PendingCommand:
    command: str
    timer: Optional[threading.Timer] = None


class CommandRelay:
    """Relays arm commands to a transport once the voice lock is open."""

    def __init__(
        self,
        transport: ICommandTransport,
        session: Optional[AuthSession] = None,
        debounce_ms: int = 100,
    ) -> None:
        self.transport = transport
        self.session = session
        self._debounce_seconds = 0.0
        self.set_debounce_delay(debounce_ms)

        self._lock = threading.Lock()
        self._pending: Dict[str, _PendingCommand] = {}
        self._halted = False
        self._last_command: Optional[str] = None

        self._unsubscribe = session.subscribe(self._on_unlocked) if session is not None else None

    # ------------------------------------------------------------------
    # Connection
    # ------------------------------------------------------------------

    def connect(self, port: Optional[str] = None) -> bool:
        try:
            self.transport.connect(port)
        except TransportError as e:
            logger.error(f"Arm connection failed: {e}")
            return False
        with self._lock:
            self._halted = False
        logger.info("Arm transport connected")
        return True

    def disconnect(self) -> None:
        self._cancel_pending()
        self.transport.disconnect()
        logger.info("Arm transport disconnected")

    def is_connected(self) -> bool:
        return self.transport.is_connected()

    @property
    def halted(self) -> bool:
        return self._halted

    @property
    def unlocked(self) -> bool:
        return self.session is None or not self.session.is_locked

    def _on_unlocked(self, session: AuthSession) -> None:
        with self._lock:
            if self._halted:
                logger.info("Voice unlock cleared emergency stop")
            self._halted = False

    # ------------------------------------------------------------------
    # Gating
    # ------------------------------------------------------------------

    def _ensure_movement_allowed(self) -> None:
        if not self.unlocked:
            raise ArmLockedError("Voice lock is engaged - verify your voice first")
        if not self.is_connected():
            raise ArmNotConnectedError("Arm controller is not connected")
        if self._halted:
            raise ArmLockedError("Emergency stop is active - reconnect or unlock again")

    # ------------------------------------------------------------------
    # Sending
    # ------------------------------------------------------------------

    def _transmit(self, command: str, kind: str) -> bool:
        try:
            self.transport.send(command)
        except TransportError as e:
            arm_commands_total.labels(kind=kind, status="failed").inc()
            logger.error(f"Failed to send arm command '{command}': {e}")
            return False
        self._last_command = command
        arm_commands_total.labels(kind=kind, status="sent").inc()
        logger.debug(f"Sent arm command: {command}")
        return True

    def set_debounce_delay(self, delay_ms: int) -> None:
        if delay_ms < 0:
            raise ValueError(f"Debounce delay must be non-negative, got {delay_ms}")
        self._debounce_seconds = delay_ms / 1000.0

    @property
    def debounce_delay_ms(self) -> int:
        return int(round(self._debounce_seconds * 1000))

    def send_debounced(self, control_id: str, command: str) -> None:
        """Schedule ``command`` for ``control_id``, replacing any pending one."""
        self._ensure_movement_allowed()

        with self._lock:
            previous = self._pending.pop(control_id, None)
            if previous is not None:
                previous.timer.cancel()

            entry = _PendingCommand(command=command)
            entry.timer = threading.Timer(self._debounce_seconds, self._fire, args=(control_id, entry))
            entry.timer.daemon = True
            self._pending[control_id] = entry
            entry.timer.start()

    def _fire(self, control_id: str, entry: _PendingCommand) -> bool:
        with self._lock:
            # Superseded or cancelled while the timer was already running
            if self._pending.get(control_id) is not entry:
                return False
            self._pending.pop(control_id)

        try:
            self._ensure_movement_allowed()
        except (ArmLockedError, ArmNotConnectedError) as e:
            arm_commands_total.labels(kind="debounced", status="rejected").inc()
            logger.warning(f"Dropped pending command '{entry.command}': {e}")
            return False
        return self._transmit(entry.command, "debounced")

    def flush_pending(self) -> int:
        """Send every pending debounced command now.

        Returns:
            Number of commands transmitted
        """
        with self._lock:
            entries = list(self._pending.items())
            for _, entry in entries:
                entry.timer.cancel()

        sent = 0
        for control_id, entry in entries:
            if self._fire(control_id, entry):
                sent += 1
        return sent

    def _cancel_pending(self) -> int:
        with self._lock:
            entries = list(self._pending.values())
            self._pending.clear()
        for entry in entries:
            entry.timer.cancel()
        return len(entries)

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending)

    def send_immediate(self, command: str) -> bool:
        self._ensure_movement_allowed()
        return self._transmit(command, "immediate")

    def move_servo(self, joint: ArmJoint | str, value: int) -> str:
        """Debounced move of one joint. Returns the scheduled command."""
        joint = ArmJoint(joint)
        command = format_servo_command(joint, value)
        self.send_debounced(joint.value, command)
        return command

    def open_claw(self) -> bool:
        return self.send_immediate(CLAW_OPEN_COMMAND)

    def close_claw(self) -> bool:
        return self.send_immediate(CLAW_CLOSE_COMMAND)

    def emergency_stop(self) -> bool:
        """Send STOP, drop pending moves and halt until reconnect or unlock."""
        if not self.is_connected():
            raise ArmNotConnectedError("Arm controller is not connected")

        dropped = self._cancel_pending()
        with self._lock:
            self._halted = True
        logger.warning(f"EMERGENCY STOP ACTIVATED (dropped {dropped} pending commands)")
        return self._transmit(STOP_COMMAND, "stop")

    def reset_pose(self) -> bool:
        """Drive every joint to the default pose, in order."""
        self._ensure_movement_allowed()
        self._cancel_pending()
        ok = True
        for joint, value in DEFAULT_POSE:
            ok = self._transmit(format_servo_command(joint, value), "immediate") and ok
        return ok

    def get_status(self) -> Dict[str, Any]:
        connected = self.is_connected()
        unlocked = self.unlocked
        return {
            "connected": connected,
            "unlocked": unlocked,
            "halted": self._halted,
            "controls_enabled": unlocked and connected and not self._halted,
            "pending_commands": self.pending_count,
            "debounce_ms": self.debounce_delay_ms,
            "last_command": self._last_command,
        }

    def shutdown(self) -> None:
        """Flush pending moves and close the transport."""
        self.flush_pending()
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self.transport.disconnect()
