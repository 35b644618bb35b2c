"""Repositories - Data access layer."""

# Voice repositories
from repositories.voice.memory_repository import InMemoryVoiceProfileRepository

# Arm transport
from repositories.serial.serial_transport import SerialCommandTransport

# Interfaces
from repositories.interfaces import (
    IVoiceProfileRepository,
    ICommandTransport,
)

__all__ = [
    # Voice
    "InMemoryVoiceProfileRepository",
    # Transport
    "SerialCommandTransport",
    # Interfaces
    "IVoiceProfileRepository",
    "ICommandTransport",
]
