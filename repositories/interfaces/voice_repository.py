"""Voice Profile Repository Interface."""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import List
import numpy as np


class IVoiceProfileRepository(ABC):
    """Interface for the enrolled embeddings of a single voice profile.

    Implementations are not synchronized; callers hold the session lock.
    """

    @abstractmethod
    def add_embedding(self, embedding: np.ndarray) -> int:
        """Append an enrolled embedding.

        Returns:
            Number of embeddings stored after the append
        """
        pass

    @abstractmethod
    def get_embeddings(self) -> List[np.ndarray]:
        """Retrieve a copy of all enrolled embeddings, oldest first."""
        pass

    @abstractmethod
    def count(self) -> int:
        """Number of enrolled embeddings."""
        pass

    @abstractmethod
    def clear(self) -> None:
        """Drop every enrolled embedding."""
        pass
