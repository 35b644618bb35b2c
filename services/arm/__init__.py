"""Robotic arm command relay.

Contains:
- command_relay: Debounced, lock-gated relay of servo commands to a transport
"""

from services.arm.command_relay import (
    ArmJoint,
    CommandRelay,
    DEFAULT_POSE,
    format_servo_command,
)

__all__ = [
    "ArmJoint",
    "CommandRelay",
    "DEFAULT_POSE",
    "format_servo_command",
]
