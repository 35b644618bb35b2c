"""Voice Service - Business logic for the voice lock (enroll, verify, reset)."""

from __future__ import annotations

import logging
from typing import Any, Dict

import numpy as np

from core.exceptions import AudioValidationError, ProfileEmptyError
from core.metrics import enrollment_total, verification_total, lock_state
from services.audio.utils import AudioSignal
from services.interfaces.i_voice_service import IVoiceService
from services.voice.embedding_model import EmbeddingGenerator
from services.voice.matcher import VoiceMatcher
from services.voice.mfcc import MFCCExtractor
from services.voice.session import AuthSession, AuthState, derive_state

logger = logging.getLogger(__name__)

# Error codes surfaced to clients
INVALID_INPUT = "INVALID_INPUT"
PROFILE_EMPTY = "PROFILE_EMPTY"
ENROLLMENT_INCOMPLETE = "ENROLLMENT_INCOMPLETE"
ENROLLMENT_COMPLETE = "ENROLLMENT_COMPLETE"
SESSION_RESET = "SESSION_RESET"
PROCESSING_FAILED = "PROCESSING_FAILED"


class VoiceAuthService(IVoiceService):
    """Voice lock business logic service.

    Runs signal -> MFCC -> embedding and either appends the embedding to
    the session profile (enrollment) or matches it against the profile
    (verification). Lock state lives on the ``AuthSession``; this service
    holds no per-user state and may serve any number of sessions.
    """

    def __init__(
        self,
        extractor: MFCCExtractor,
        embedder: EmbeddingGenerator,
        matcher: VoiceMatcher,
    ) -> None:
        """
        Initialize voice service.

        Args:
            extractor: MFCC front end
            embedder: Feature vector to embedding (model or identity)
            matcher: Cosine decision against the enrolled samples
        """
        self.extractor = extractor
        self.embedder = embedder
        self.matcher = matcher

    @property
    def threshold(self) -> float:
        return self.matcher.threshold

    def _embed(self, signal: AudioSignal) -> np.ndarray:
        features = self.extractor.extract(signal)
        return self.embedder.generate(features)

    def enroll_sample(self, session: AuthSession, signal: AudioSignal) -> Dict[str, Any]:
        """
        Enroll one voice sample (target count per session, extras ignored).

        Args:
            session: Session to enroll into
            signal: Captured mono audio

        Returns:
            Enrollment result
        """
        target = session.target_count
        snapshot = session.snapshot()
        if snapshot.unlocked or snapshot.count >= target:
            enrollment_total.labels(status="complete").inc()
            return self._enroll_complete_result(session, snapshot.count, snapshot.unlocked)

        try:
            embedding = self._embed(signal)
        except AudioValidationError as e:
            enrollment_total.labels(status="invalid_input").inc()
            logger.warning(f"Rejected enrollment sample | session={session.session_id} | {e}")
            return {
                "type": "enroll",
                "success": False,
                "accepted": False,
                "state": derive_state(snapshot.count, target, snapshot.unlocked).value,
                "enrollment_count": snapshot.count,
                "required_samples": target,
                "error_code": INVALID_INPUT,
                "error": str(e),
                "message": "Audio could not be processed. Please record again.",
            }
        except Exception as e:
            enrollment_total.labels(status="error").inc()
            logger.exception(f"Enrollment pipeline failed | session={session.session_id}")
            return {
                "type": "enroll",
                "success": False,
                "accepted": False,
                "state": derive_state(snapshot.count, target, snapshot.unlocked).value,
                "enrollment_count": snapshot.count,
                "required_samples": target,
                "error_code": PROCESSING_FAILED,
                "error": str(e),
                "message": "Failed to process audio input",
            }

        accepted, count, state = session.try_enroll(embedding, snapshot.generation)
        if not accepted and state in (AuthState.READY, AuthState.UNLOCKED):
            # Another request completed the profile while this one was extracting
            enrollment_total.labels(status="complete").inc()
            return self._enroll_complete_result(session, count, state is AuthState.UNLOCKED)
        if not accepted:
            enrollment_total.labels(status="reset").inc()
            return {
                "type": "enroll",
                "success": False,
                "accepted": False,
                "state": state.value,
                "enrollment_count": count,
                "required_samples": target,
                "error_code": SESSION_RESET,
                "message": "The profile was reset while this sample was processed. Please record again.",
            }

        enrollment_total.labels(status="accepted").inc()
        remaining = max(0, target - count)
        logger.info(
            f"Enrolled sample {count}/{target} | session={session.session_id} "
            f"| dim={embedding.size} | model={self.embedder.model_tag}"
        )

        return {
            "type": "enroll",
            "success": True,
            "accepted": True,
            "state": state.value,
            "enrollment_count": count,
            "required_samples": target,
            "remaining_samples": remaining,
            "is_complete": state is AuthState.READY,
            "message": (
                "Enrollment complete. Say the passphrase to unlock."
                if remaining == 0
                else f"Sample {count} recorded. {remaining} more needed."
            ),
        }

    def _enroll_complete_result(self, session: AuthSession, count: int, unlocked: bool) -> Dict[str, Any]:
        return {
            "type": "enroll",
            "success": False,
            "accepted": False,
            "state": derive_state(count, session.target_count, unlocked).value,
            "enrollment_count": count,
            "required_samples": session.target_count,
            "remaining_samples": 0,
            "is_complete": True,
            "error_code": ENROLLMENT_COMPLETE,
            "message": f"Already enrolled {session.target_count} samples. Reset to enroll again.",
        }

    def verify(self, session: AuthSession, signal: AudioSignal) -> Dict[str, Any]:
        """
        Verify a capture against the session profile.

        Args:
            session: Session holding the enrolled profile
            signal: Captured mono audio

        Returns:
            Verification result
        """
        target = session.target_count
        snapshot = session.snapshot()

        try:
            self._require_profile(snapshot.count)
        except ProfileEmptyError as e:
            verification_total.labels(status="profile_empty").inc()
            return self._verify_failure(
                session, snapshot.count, snapshot.unlocked, PROFILE_EMPTY,
                f"{e}. Please enroll first.",
            )

        if snapshot.count < target:
            verification_total.labels(status="incomplete").inc()
            return self._verify_failure(
                session, snapshot.count, snapshot.unlocked, ENROLLMENT_INCOMPLETE,
                f"Profile needs {target - snapshot.count} more samples. Please complete enrollment first.",
            )

        try:
            probe = self._embed(signal)
        except AudioValidationError as e:
            verification_total.labels(status="invalid_input").inc()
            logger.warning(f"Rejected verification sample | session={session.session_id} | {e}")
            result = self._verify_failure(
                session, snapshot.count, snapshot.unlocked, INVALID_INPUT,
                "Audio could not be processed. Please try again.",
            )
            result["error"] = str(e)
            return result
        except Exception as e:
            verification_total.labels(status="error").inc()
            logger.exception(f"Verification pipeline failed | session={session.session_id}")
            result = self._verify_failure(
                session, snapshot.count, snapshot.unlocked, PROCESSING_FAILED,
                "Failed to process audio input",
            )
            result["error"] = str(e)
            return result

        match = self.matcher.match(probe, snapshot.embeddings)

        unlocked_now = False
        if match.accepted:
            unlocked_now = session.try_unlock(snapshot.generation)
            if unlocked_now:
                lock_state.labels(session=session.session_id).set(0)

        verification_total.labels(status="accepted" if match.accepted else "rejected").inc()
        current = session.state

        if match.accepted and current is not AuthState.UNLOCKED:
            message = "Voice matched, but the profile was reset during verification"
        elif match.accepted:
            message = "Voice match - unlocked" if unlocked_now else "Voice match - already unlocked"
        else:
            message = "Voice does not match the enrolled profile"

        return {
            "type": "verify",
            "success": match.accepted,
            "verified": match.accepted,
            "match": match.accepted,
            "state": current.value,
            "unlocked": current is AuthState.UNLOCKED,
            "score": match.decision_score,
            "scores": match.scores,
            "mean_score": match.mean_score,
            "threshold": match.threshold,
            "confidence": match.confidence,
            "enrollment_count": snapshot.count,
            "message": message,
        }

    @staticmethod
    def _require_profile(count: int) -> None:
        if count == 0:
            raise ProfileEmptyError("No voice samples enrolled")

    def _verify_failure(
        self,
        session: AuthSession,
        count: int,
        unlocked: bool,
        error_code: str,
        message: str,
    ) -> Dict[str, Any]:
        return {
            "type": "verify",
            "success": False,
            "verified": False,
            "match": False,
            "state": derive_state(count, session.target_count, unlocked).value,
            "unlocked": unlocked,
            "enrollment_count": count,
            "required_samples": session.target_count,
            "error_code": error_code,
            "message": message,
        }

    def reset(self, session: AuthSession) -> Dict[str, Any]:
        """
        Reset enrollment - clear the profile and lock the session.

        Args:
            session: Session to reset

        Returns:
            Dict with success, state, message
        """
        session.clear()
        lock_state.labels(session=session.session_id).set(1)
        return {
            "type": "reset",
            "success": True,
            "state": AuthState.LOCKED.value,
            "enrollment_count": 0,
            "required_samples": session.target_count,
            "message": "Voice profile cleared. Enroll again to unlock.",
        }

    def get_status(self, session: AuthSession) -> Dict[str, Any]:
        snapshot = session.snapshot()
        state = derive_state(snapshot.count, session.target_count, snapshot.unlocked)
        return {
            "type": "status",
            "success": True,
            "session_id": session.session_id,
            "state": state.value,
            "locked": not snapshot.unlocked,
            "enrollment_count": snapshot.count,
            "required_samples": session.target_count,
            "remaining_samples": max(0, session.target_count - snapshot.count),
            "threshold": self.threshold,
            "model_tag": self.embedder.model_tag,
            "degraded": self.embedder.degraded,
        }
