"""Application configuration and environment variables."""

from __future__ import annotations

import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def _parse_int_env(name: str, default: int) -> int:
    """Parse int from env safely, tolerating values like 'NAME=123' or quoted strings.
    Returns default on any parsing issue.
    """
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    # Accept accidental 'KEY=VALUE' format
    if "=" in raw:
        raw = raw.split("=", 1)[1]
    raw = raw.strip().strip("'").strip('"')
    try:
        return int(raw)
    except ValueError:
        return default


def _parse_bool_env(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


class Config:
    """Application configuration class."""

    # Audio
    SAMPLE_RATE: int = _parse_int_env("SAMPLE_RATE", 16000)
    MAX_AUDIO_SIZE_MB: int = _parse_int_env("MAX_AUDIO_SIZE_MB", 6)
    MAX_AUDIO_BYTES: int = MAX_AUDIO_SIZE_MB * 1024 * 1024

    # MFCC front end
    MFCC_NUM_COEFFICIENTS: int = _parse_int_env("MFCC_NUM_COEFFICIENTS", 13)
    MFCC_NUM_FILTERS: int = _parse_int_env("MFCC_NUM_FILTERS", 26)
    MFCC_FRAME_MS: float = float(os.getenv("MFCC_FRAME_MS", "25"))
    MFCC_STEP_MS: float = float(os.getenv("MFCC_STEP_MS", "10"))
    MFCC_PRE_EMPHASIS: float = float(os.getenv("MFCC_PRE_EMPHASIS", "0.97"))

    # Embedding model (disable to run on raw MFCC vectors)
    EMBEDDING_MODEL_ENABLED: bool = _parse_bool_env("EMBEDDING_MODEL_ENABLED", True)
    EMBEDDING_INPUT_WIDTH: int = _parse_int_env("EMBEDDING_INPUT_WIDTH", 128)
    EMBEDDING_DIM: int = _parse_int_env("EMBEDDING_DIM", 64)
    EMBEDDING_SEED: int = _parse_int_env("EMBEDDING_SEED", 0)

    # Voice Enrollment Settings
    ENROLLMENT_TARGET_COUNT: int = _parse_int_env("ENROLLMENT_TARGET_COUNT", 3)

    # Cosine threshold on the best-matching enrolled sample. Strictly greater
    # than this value unlocks.
    VOICE_COSINE_THRESHOLD: float = float(os.getenv("VOICE_COSINE_THRESHOLD", "0.75"))

    # Throttle on verification attempts per client
    VERIFY_RATE_LIMIT: str = os.getenv("VERIFY_RATE_LIMIT", "30/minute")

    # Arm transport (serial link to the servo controller)
    SERIAL_PORT: str = os.getenv("SERIAL_PORT", "")
    SERIAL_BAUD_RATE: int = _parse_int_env("SERIAL_BAUD_RATE", 9600)
    SERIAL_TIMEOUT_SECONDS: float = float(os.getenv("SERIAL_TIMEOUT_SECONDS", "1.0"))
    COMMAND_DEBOUNCE_MS: int = _parse_int_env("COMMAND_DEBOUNCE_MS", 100)

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

    # Application
    APP_TITLE: str = "VoiceLock Arm Service"
    APP_DESCRIPTION: str = "Voice-authenticated control of a servo robotic arm"
    APP_VERSION: str = "1.0.0"

    # CORS
    CORS_ORIGINS: list[str] = ["*"]  # Tighten in production
    CORS_ALLOW_CREDENTIALS: bool = True
    CORS_ALLOW_METHODS: list[str] = ["*"]
    CORS_ALLOW_HEADERS: list[str] = ["*"]

    @classmethod
    def validate(cls) -> None:
        """Validate required configuration."""
        if cls.SAMPLE_RATE <= 0:
            raise ValueError(f"SAMPLE_RATE must be positive, got {cls.SAMPLE_RATE}")
        if cls.ENROLLMENT_TARGET_COUNT <= 0:
            raise ValueError(
                f"ENROLLMENT_TARGET_COUNT must be positive, got {cls.ENROLLMENT_TARGET_COUNT}"
            )
        if not -1.0 <= cls.VOICE_COSINE_THRESHOLD <= 1.0:
            raise ValueError(
                f"VOICE_COSINE_THRESHOLD must lie in [-1, 1], got {cls.VOICE_COSINE_THRESHOLD}"
            )
        if cls.MFCC_NUM_COEFFICIENTS > cls.MFCC_NUM_FILTERS:
            raise ValueError("MFCC_NUM_COEFFICIENTS cannot exceed MFCC_NUM_FILTERS")


# Validate configuration on import
Config.validate()
