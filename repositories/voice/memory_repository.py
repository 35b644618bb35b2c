"""In-memory voice profile repository - one profile, lost on restart."""

from __future__ import annotations

import logging
from typing import List

import numpy as np

from repositories.interfaces.voice_repository import IVoiceProfileRepository

logger = logging.getLogger(__name__)


class InMemoryVoiceProfileRepository(IVoiceProfileRepository):
    """Append-only list of enrolled embeddings until cleared."""

    def __init__(self) -> None:
        self._embeddings: List[np.ndarray] = []

    def add_embedding(self, embedding: np.ndarray) -> int:
        vec = np.array(embedding, dtype=np.float64).reshape(-1)
        if vec.size == 0:
            raise ValueError("Cannot enroll an empty embedding")
        self._embeddings.append(vec)
        logger.debug(f"Stored embedding #{len(self._embeddings)} (dim={vec.size})")
        return len(self._embeddings)

    def get_embeddings(self) -> List[np.ndarray]:
        return [vec.copy() for vec in self._embeddings]

    def count(self) -> int:
        return len(self._embeddings)

    def clear(self) -> None:
        self._embeddings.clear()
