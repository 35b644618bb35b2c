"""Command Transport Interface - line-oriented link to the arm controller."""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Optional


class ICommandTransport(ABC):
    """Interface for sending text commands to the servo controller."""

    @abstractmethod
    def connect(self, port: Optional[str] = None) -> None:
        """Open the link.

        Raises:
            TransportError: If the link cannot be opened
        """
        pass

    @abstractmethod
    def send(self, command: str) -> None:
        """Write one newline-terminated command.

        Raises:
            TransportError: If the link is closed or the write fails
        """
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Close the link. Safe to call when already closed."""
        pass

    @abstractmethod
    def is_connected(self) -> bool:
        """Whether the link is open."""
        pass
