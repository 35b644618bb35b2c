"""Speaker Embedding Model - compact 1-D CNN over MFCC vectors."""

from __future__ import annotations

import logging
import time
from typing import Optional, Protocol, runtime_checkable

import numpy as np
import torch
from torch import nn

from core.exceptions import ModelLoadError, ModelUnavailableError
from core.metrics import embedding_extraction_time

logger = logging.getLogger(__name__)


@runtime_checkable
class SpeakerEmbeddingModel(Protocol):
    """Anything that maps a fixed-width feature vector to an embedding."""

    input_width: int
    embedding_dim: int
    model_tag: str

    def embed(self, features: np.ndarray) -> np.ndarray:
        ...


class _ConvEmbeddingNet(nn.Module):
    def __init__(self, embedding_dim: int = 64) -> None:
        super().__init__()
        self.features = nn.Sequential(
            nn.Conv1d(1, 32, kernel_size=3),
            nn.ReLU(),
            nn.MaxPool1d(2),
            nn.Conv1d(32, 64, kernel_size=3),
            nn.ReLU(),
            nn.AdaptiveAvgPool1d(1),
            nn.Flatten(),
        )
        self.head = nn.Sequential(
            nn.Linear(64, 128),
            nn.ReLU(),
            nn.Dropout(0.3),
            nn.Linear(128, embedding_dim),
            nn.ReLU(),
        )

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        return self.head(self.features(x))


class ConvEmbeddingModel:
    """Speaker embedding model built from a small convolutional network.

    - input: 128-wide feature vector (one channel)
    - output: 64-dimensional embedding
    - weights drawn from a fixed seed; the network runs in eval mode, so
      the same instance always returns the same embedding for a vector
    """

    def __init__(self, input_width: int = 128, embedding_dim: int = 64, seed: int = 0) -> None:
        """Initialize embedding model.

        Args:
            input_width: Length of the vector fed to the network
            embedding_dim: Size of the produced embedding
            seed: Seed for weight initialization
        """
        if input_width < 8:
            raise ModelLoadError(f"input_width {input_width} is too small for the network")

        self.input_width = input_width
        self.embedding_dim = embedding_dim
        self.model_tag = f"conv1d-mfcc-s{seed}"
        self.device = torch.device("cpu")

        try:
            # Local RNG so building a model does not disturb global torch state
            with torch.random.fork_rng(devices=[]):
                torch.manual_seed(seed)
                self._model = _ConvEmbeddingNet(embedding_dim)
            self._model.to(self.device)
            self._model.eval()
        except (RuntimeError, ValueError) as e:
            logger.exception(f"Failed to build embedding network: {e}")
            raise ModelLoadError(f"Failed to build embedding network: {e}") from e

        logger.info(f"Model loaded: {self.model_tag} (in={self.input_width}, dim={self.embedding_dim})")

    def embed(self, features: np.ndarray) -> np.ndarray:
        """Map a feature vector of length ``input_width`` to an embedding."""
        vector = np.asarray(features, dtype=np.float32).ravel()
        if vector.size != self.input_width:
            raise ModelUnavailableError(
                f"Expected {self.input_width} inputs, got {vector.size}"
            )

        tensor = torch.from_numpy(vector).view(1, 1, -1).to(self.device)
        with torch.no_grad():
            output = self._model(tensor)

        embedding = output.squeeze(0).cpu().numpy().astype(np.float64)
        if not np.all(np.isfinite(embedding)):
            raise ModelUnavailableError("Model produced a non-finite embedding")
        return embedding


def fit_to_width(features: np.ndarray, width: int) -> np.ndarray:
    """Truncate or zero-pad ``features`` to exactly ``width`` values."""
    vector = np.asarray(features, dtype=np.float64).ravel()
    if vector.size >= width:
        return vector[:width].copy()
    return np.concatenate([vector, np.zeros(width - vector.size, dtype=np.float64)])


class EmbeddingGenerator:
    """Feature vector -> embedding, falling back to identity without a model."""

    def __init__(self, model: Optional[SpeakerEmbeddingModel] = None) -> None:
        self.model = model
        self._degraded_logged = False

    @property
    def degraded(self) -> bool:
        return self.model is None

    @property
    def model_tag(self) -> str:
        return self.model.model_tag if self.model is not None else "identity"

    def generate(self, features: np.ndarray) -> np.ndarray:
        features = np.asarray(features, dtype=np.float64).ravel()

        if self.model is None:
            if not self._degraded_logged:
                logger.warning(
                    "No embedding model available - using raw MFCC vectors as embeddings (degraded mode)"
                )
                self._degraded_logged = True
            return features.copy()

        start = time.perf_counter()
        try:
            embedding = self.model.embed(fit_to_width(features, self.model.input_width))
        except (ModelUnavailableError, RuntimeError, ValueError) as e:
            logger.warning(f"Embedding model {self.model_tag} failed, using identity embedding: {e}")
            return features.copy()
        finally:
            embedding_extraction_time.observe(time.perf_counter() - start)

        return np.asarray(embedding, dtype=np.float64).ravel()
