"""Voice processing modules for the voice lock.

Contains:
- mfcc: MFCC feature extraction
- embedding_model: Speaker embedding network and generator (identity fallback)
- matcher: Cosine similarity decision against the enrolled profile
- session: Per-user lock state, profile and unlock observers
"""

from services.voice.mfcc import MFCCConfig, MFCCExtractor, extract_mfcc
from services.voice.embedding_model import (
    ConvEmbeddingModel,
    EmbeddingGenerator,
    SpeakerEmbeddingModel,
)
from services.voice.matcher import MatchResult, VoiceMatcher, cosine_similarity
from services.voice.session import AuthSession, AuthState

__all__ = [
    # Features
    "MFCCConfig",
    "MFCCExtractor",
    "extract_mfcc",
    # Embedding model
    "ConvEmbeddingModel",
    "EmbeddingGenerator",
    "SpeakerEmbeddingModel",
    # Matching
    "MatchResult",
    "VoiceMatcher",
    "cosine_similarity",
    # Session
    "AuthSession",
    "AuthState",
]
