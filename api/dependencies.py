"""API dependencies - Dependency injection for services and repositories."""

from __future__ import annotations

import logging
from functools import lru_cache

from app.config import Config

from core.exceptions import ModelLoadError
from core.metrics import lock_state
from repositories.interfaces import ICommandTransport
from repositories.serial import SerialCommandTransport
from services.arm import CommandRelay
from services.voice import (
    AuthSession,
    ConvEmbeddingModel,
    EmbeddingGenerator,
    MFCCConfig,
    MFCCExtractor,
    SpeakerEmbeddingModel,
    VoiceMatcher,
)
from services.voice_service import VoiceAuthService

from services.interfaces.i_voice_service import IVoiceService

logger = logging.getLogger(__name__)


# Singleton instances
_embedding_model: SpeakerEmbeddingModel | None = None
_auth_session: AuthSession | None = None
_voice_service: IVoiceService | None = None
_command_transport: ICommandTransport | None = None
_command_relay: CommandRelay | None = None


@lru_cache()
def get_embedding_model() -> SpeakerEmbeddingModel | None:
    """Get speaker embedding model instance, or None to run on raw MFCC vectors."""
    global _embedding_model
    if _embedding_model is None:
        if not Config.EMBEDDING_MODEL_ENABLED:
            logger.warning("Embedding model disabled by configuration")
            return None
        try:
            _embedding_model = ConvEmbeddingModel(
                input_width=Config.EMBEDDING_INPUT_WIDTH,
                embedding_dim=Config.EMBEDDING_DIM,
                seed=Config.EMBEDDING_SEED,
            )
        except ModelLoadError as e:
            logger.warning(f"Embedding model unavailable: {e}. Running in degraded mode.")
            return None
    return _embedding_model


@lru_cache()
def get_auth_session() -> AuthSession:
    """Get the process-wide default voice lock session."""
    global _auth_session
    if _auth_session is None:
        _auth_session = AuthSession(
            session_id="default",
            target_count=Config.ENROLLMENT_TARGET_COUNT,
        )
        lock_state.labels(session=_auth_session.session_id).set(1)
    return _auth_session


@lru_cache()
def get_voice_service() -> IVoiceService:
    """Get voice service instance."""
    global _voice_service
    if _voice_service is None:
        _voice_service = VoiceAuthService(
            extractor=MFCCExtractor(MFCCConfig.from_app_config()),
            embedder=EmbeddingGenerator(get_embedding_model()),
            matcher=VoiceMatcher(threshold=Config.VOICE_COSINE_THRESHOLD),
        )
    return _voice_service


@lru_cache()
def get_command_transport() -> ICommandTransport:
    """Get serial transport to the arm controller."""
    global _command_transport
    if _command_transport is None:
        _command_transport = SerialCommandTransport(
            port=Config.SERIAL_PORT,
            baud_rate=Config.SERIAL_BAUD_RATE,
            timeout=Config.SERIAL_TIMEOUT_SECONDS,
        )
    return _command_transport


@lru_cache()
def get_command_relay() -> CommandRelay:
    """Get arm command relay bound to the default session."""
    global _command_relay
    if _command_relay is None:
        _command_relay = CommandRelay(
            transport=get_command_transport(),
            session=get_auth_session(),
            debounce_ms=Config.COMMAND_DEBOUNCE_MS,
        )
    return _command_relay
