"""Voice profile repositories."""

from repositories.voice.memory_repository import InMemoryVoiceProfileRepository

__all__ = [
    "InMemoryVoiceProfileRepository",
]
