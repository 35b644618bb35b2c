"""Voice router - REST endpoints for the voice lock."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, File, Request, UploadFile
from fastapi.responses import JSONResponse

from api.dependencies import get_auth_session, get_voice_service
from api.rate_limit import limiter
from api.schemas.voice_schemas import (
    EnrollmentResponse,
    ErrorResponse,
    ResetResponse,
    VerificationResponse,
    VoiceStatusResponse,
)
from app.config import Config
from core.exceptions import AudioValidationError
from core.executors import run_voice_bound
from services.audio.utils import AudioSignal, decode_audio
from services.interfaces.i_voice_service import IVoiceService
from services.voice.session import AuthSession
from services.voice_service import (
    ENROLLMENT_COMPLETE,
    ENROLLMENT_INCOMPLETE,
    INVALID_INPUT,
    PROCESSING_FAILED,
    SESSION_RESET,
    PROFILE_EMPTY,
)


router = APIRouter(prefix="/voice", tags=["voice-auth"])
logger = logging.getLogger(__name__)

_ERROR_STATUS = {
    INVALID_INPUT: 400,
    PROFILE_EMPTY: 409,
    ENROLLMENT_INCOMPLETE: 409,
    ENROLLMENT_COMPLETE: 409,
    PROCESSING_FAILED: 500,
    SESSION_RESET: 409,
}


def _validate_audio_file_size(file_size: int) -> None:
    """Validate audio file size."""
    if file_size == 0:
        raise ValueError("Empty audio")
    if file_size > Config.MAX_AUDIO_BYTES:
        raise ValueError(f"Audio too large (>{Config.MAX_AUDIO_SIZE_MB}MB)")


def _status_for(result: Dict[str, Any]) -> int:
    if result.get("success"):
        return 200
    code = result.get("error_code")
    if code is None:
        # Pipeline ran, voice did not match
        return 401
    return _ERROR_STATUS.get(code, 400)


async def _read_signal(audio_file: UploadFile) -> AudioSignal:
    """Read, size-check and decode an upload.

    Raises:
        ValueError: empty or oversized upload
        AudioValidationError: undecodable audio
    """
    audio_data = await audio_file.read()
    _validate_audio_file_size(len(audio_data))
    return await run_voice_bound(decode_audio, audio_data, Config.SAMPLE_RATE)


def _invalid_audio(message: str) -> JSONResponse:
    return JSONResponse(content={"error": message, "error_code": INVALID_INPUT}, status_code=400)


@router.post(
    "/enroll",
    summary="Enroll voice sample",
    description=(
        "Add one voice sample to the profile. Enrollment completes at "
        f"{Config.ENROLLMENT_TARGET_COUNT} samples; further samples are ignored until reset."
    ),
    response_model=EnrollmentResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid audio"},
        409: {"description": "Enrollment already complete"},
        500: {"description": "Internal server error"},
    },
)
async def enroll_voice(
    audio_file: UploadFile = File(..., description="WAV (16-bit PCM) or raw 16-bit mono PCM"),
    voice_service: IVoiceService = Depends(get_voice_service),
    session: AuthSession = Depends(get_auth_session),
):
    """Enroll one voice sample into the default session.

    **REST API:** `POST /voice/enroll`

    **Process:**
    1. Decode audio and extract the MFCC vector
    2. Map it to an embedding
    3. Append to the profile; the lock becomes `ready` at the target count
    """
    try:
        try:
            signal = await _read_signal(audio_file)
        except (ValueError, AudioValidationError) as ve:
            logger.warning(f"Audio validation error: {ve}")
            return _invalid_audio(str(ve))

        result = await run_voice_bound(voice_service.enroll_sample, session, signal)

        if result.get("success"):
            logger.info(
                f"Enrollment sample accepted: {result.get('enrollment_count')}/{result.get('required_samples')}"
            )
        return JSONResponse(content=result, status_code=_status_for(result))

    except asyncio.TimeoutError:
        return JSONResponse(
            content={"error": "Enrollment processing timeout. Please try again."},
            status_code=504,
        )
    except Exception as exc:
        logger.exception(f"Unexpected error in enroll_voice: {exc}")
        return JSONResponse(
            content={"error": "Internal server error during enrollment", "details": str(exc)},
            status_code=500,
        )


@router.post(
    "/verify",
    summary="Verify voice",
    description=(
        "Match a capture against the enrolled profile. The lock opens when the best "
        "cosine similarity exceeds the configured threshold."
    ),
    response_model=VerificationResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid audio"},
        401: {"description": "Voice does not match"},
        409: {"description": "Profile empty or enrollment incomplete"},
        429: {"description": "Too many verification attempts"},
        500: {"description": "Internal server error"},
    },
)
@limiter.limit(Config.VERIFY_RATE_LIMIT)
async def verify_voice(
    request: Request,
    audio_file: UploadFile = File(..., description="WAV (16-bit PCM) or raw 16-bit mono PCM"),
    voice_service: IVoiceService = Depends(get_voice_service),
    session: AuthSession = Depends(get_auth_session),
):
    """Verify a voice sample and unlock arm control on a match.

    **REST API:** `POST /voice/verify`

    **Returns:**
    - `verified`: whether the voice matched
    - `score`: best cosine similarity, `scores`: one per enrolled sample
    - `confidence`: High / Medium / Low relative to the threshold
    """
    try:
        try:
            signal = await _read_signal(audio_file)
        except (ValueError, AudioValidationError) as ve:
            logger.warning(f"Audio validation error: {ve}")
            return _invalid_audio(str(ve))

        result = await run_voice_bound(voice_service.verify, session, signal)
        return JSONResponse(content=result, status_code=_status_for(result))

    except asyncio.TimeoutError:
        return JSONResponse(
            content={"error": "Verification processing timeout. Please try again."},
            status_code=504,
        )
    except Exception as exc:
        logger.exception(f"Error in verify_voice: {exc}")
        return JSONResponse(content={"error": str(exc)}, status_code=500)


@router.post(
    "/reset",
    summary="Reset enrollment",
    description="Clear the enrolled profile and lock arm control.",
    response_model=ResetResponse,
)
async def reset_enrollment(
    voice_service: IVoiceService = Depends(get_voice_service),
    session: AuthSession = Depends(get_auth_session),
):
    result = await run_voice_bound(voice_service.reset, session)
    return JSONResponse(content=result, status_code=200)


@router.get(
    "/status",
    summary="Get lock status",
    description="Lock state, enrollment progress and the embedding model in use.",
    response_model=VoiceStatusResponse,
)
async def get_status(
    voice_service: IVoiceService = Depends(get_voice_service),
    session: AuthSession = Depends(get_auth_session),
):
    return JSONResponse(content=voice_service.get_status(session), status_code=200)
