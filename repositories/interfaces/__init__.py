"""Repository interfaces for dependency inversion."""

from repositories.interfaces.voice_repository import IVoiceProfileRepository
from repositories.interfaces.command_transport import ICommandTransport

__all__ = [
    "IVoiceProfileRepository",
    "ICommandTransport",
]
