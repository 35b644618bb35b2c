"""Voice Service Interface - Abstract base for voice authentication."""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Any, Dict, TYPE_CHECKING

if TYPE_CHECKING:
    from services.audio.utils import AudioSignal
    from services.voice.session import AuthSession


class IVoiceService(ABC):
    """Interface for voice lock business logic."""

    @abstractmethod
    def enroll_sample(self, session: "AuthSession", signal: "AudioSignal") -> Dict[str, Any]:
        """
        Enroll one voice sample into the session profile.

        Args:
            session: Session whose profile receives the sample
            signal: Captured mono audio

        Returns:
            Dict with success, accepted, state, enrollment_count, message
        """
        pass

    @abstractmethod
    def verify(self, session: "AuthSession", signal: "AudioSignal") -> Dict[str, Any]:
        """
        Verify a capture against the enrolled profile (1:1 matching).

        Args:
            session: Session holding the enrolled profile
            signal: Captured mono audio

        Returns:
            Dict with verified, score, scores, confidence, state
        """
        pass

    @abstractmethod
    def reset(self, session: "AuthSession") -> Dict[str, Any]:
        """Clear the profile and lock the session."""
        pass

    @abstractmethod
    def get_status(self, session: "AuthSession") -> Dict[str, Any]:
        """Report lock state and enrollment progress."""
        pass
