"""Tests for services/voice_service.py - enrollment/verification state machine."""

import threading

import numpy as np
import pytest
from prometheus_client import REGISTRY

from services.voice.session import AuthSession, AuthState
from services.voice_service import (
    ENROLLMENT_COMPLETE,
    ENROLLMENT_INCOMPLETE,
    INVALID_INPUT,
    PROCESSING_FAILED,
    PROFILE_EMPTY,
    SESSION_RESET,
    VoiceAuthService,
)
from services.voice.embedding_model import EmbeddingGenerator
from services.voice.matcher import VoiceMatcher
from tests.conftest import VectorExtractor, make_tone, vector_signal


def _enroll_three(service, session):
    for v in ([1.0, 0.0, 0.0], [0.9, 0.1, 0.0], [1.0, 0.05, 0.05]):
        service.enroll_sample(session, vector_signal(*v))


class TestEnrollment:
    """LOCKED -> ENROLLING(1) -> ENROLLING(2) -> READY."""

    def test_state_sequence(self, voice_service, session):
        assert session.state is AuthState.LOCKED

        states = []
        for i in range(3):
            result = voice_service.enroll_sample(session, vector_signal(1.0, float(i), 0.0))
            assert result["success"] is True
            assert result["accepted"] is True
            states.append((result["state"], result["enrollment_count"]))

        assert states == [("enrolling", 1), ("enrolling", 2), ("ready", 3)]
        assert session.state is AuthState.READY
        assert session.is_locked

    def test_fourth_sample_is_noop(self, voice_service, session):
        _enroll_three(voice_service, session)
        before = session.profile.get_embeddings()

        result = voice_service.enroll_sample(session, vector_signal(0.0, 0.0, 1.0))

        assert result["success"] is False
        assert result["accepted"] is False
        assert result["error_code"] == ENROLLMENT_COMPLETE
        assert result["enrollment_count"] == 3
        assert result["state"] == "ready"
        after = session.profile.get_embeddings()
        assert len(after) == 3
        for a, b in zip(before, after):
            np.testing.assert_array_equal(a, b)

    def test_enroll_while_unlocked_is_noop(self, voice_service, session):
        _enroll_three(voice_service, session)
        voice_service.verify(session, vector_signal(1.0, 0.0, 0.0))

        result = voice_service.enroll_sample(session, vector_signal(1.0, 0.0, 0.0))
        assert result["error_code"] == ENROLLMENT_COMPLETE
        assert result["state"] == "unlocked"

    def test_invalid_input_leaves_profile_unchanged(self, voice_service, session):
        voice_service.enroll_sample(session, vector_signal(1.0, 0.0))
        result = voice_service.enroll_sample(session, vector_signal())

        assert result["success"] is False
        assert result["error_code"] == INVALID_INPUT
        assert result["enrollment_count"] == 1
        assert session.enrollment_count == 1

    def test_unexpected_pipeline_error_is_reported(self, session):
        class BrokenExtractor:
            def extract(self, signal):
                raise RuntimeError("boom")

        service = VoiceAuthService(BrokenExtractor(), EmbeddingGenerator(None), VoiceMatcher())
        result = service.enroll_sample(session, vector_signal(1.0))

        assert result["success"] is False
        assert result["error_code"] == PROCESSING_FAILED
        assert session.enrollment_count == 0

    def test_concurrent_enrollment_stops_at_target(self, voice_service, session):
        barrier = threading.Barrier(10)
        results = []

        def worker(i):
            barrier.wait()
            results.append(voice_service.enroll_sample(session, vector_signal(1.0, float(i))))

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(10)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert session.enrollment_count == 3
        assert sum(1 for r in results if r["accepted"]) == 3


class TestVerification:
    def test_empty_profile_guard_skips_matcher(self, voice_service, session, matcher, extractor):
        result = voice_service.verify(session, vector_signal(1.0, 0.0))

        assert result["success"] is False
        assert result["error_code"] == PROFILE_EMPTY
        assert result["state"] == "locked"
        assert matcher.calls == 0
        assert extractor.calls == 0

    def test_partial_profile_rejected(self, voice_service, session, matcher):
        voice_service.enroll_sample(session, vector_signal(1.0, 0.0))

        result = voice_service.verify(session, vector_signal(1.0, 0.0))

        assert result["error_code"] == ENROLLMENT_INCOMPLETE
        assert "needs 2 more" in result["message"]
        assert result["state"] == "enrolling"
        assert matcher.calls == 0

    def test_match_unlocks_and_notifies_once(self, voice_service, session):
        calls = []
        session.subscribe(lambda s: calls.append(s.session_id))
        _enroll_three(voice_service, session)

        first = voice_service.verify(session, vector_signal(1.0, 0.0, 0.0))
        assert first["success"] is True
        assert first["verified"] is True
        assert first["state"] == "unlocked"
        assert first["unlocked"] is True
        assert len(first["scores"]) == 3
        assert first["score"] == pytest.approx(max(first["scores"]))
        assert not session.is_locked

        second = voice_service.verify(session, vector_signal(1.0, 0.0, 0.0))
        assert second["success"] is True
        assert second["state"] == "unlocked"
        assert calls == ["test"]

    def test_mismatch_stays_ready_and_allows_retry(self, voice_service, session):
        _enroll_three(voice_service, session)

        miss = voice_service.verify(session, vector_signal(0.0, 0.0, 1.0))
        assert miss["success"] is False
        assert "error_code" not in miss
        assert miss["state"] == "ready"
        assert miss["score"] < 0.75
        assert session.is_locked

        hit = voice_service.verify(session, vector_signal(1.0, 0.0, 0.0))
        assert hit["success"] is True

    def test_invalid_probe(self, voice_service, session, matcher):
        _enroll_three(voice_service, session)
        result = voice_service.verify(session, vector_signal())
        assert result["error_code"] == INVALID_INPUT
        assert result["state"] == "ready"
        assert matcher.calls == 0

    def test_match_after_concurrent_reset_does_not_unlock(self, voice_service, session):
        _enroll_three(voice_service, session)
        stale = session.snapshot()
        voice_service.reset(session)
        _enroll_three(voice_service, session)

        assert session.try_unlock(stale.generation) is False
        assert session.is_locked

    def test_enrollment_overlapping_reset_is_dropped(self, matcher, session):
        class ResettingExtractor(VectorExtractor):
            def extract(self, signal):
                session.clear()
                return super().extract(signal)

        voice_service = VoiceAuthService(VectorExtractor(), EmbeddingGenerator(None), matcher)
        voice_service.enroll_sample(session, vector_signal(1.0, 0.0))
        voice_service.extractor = ResettingExtractor()

        result = voice_service.enroll_sample(session, vector_signal(0.0, 1.0))

        assert result["success"] is False
        assert result["accepted"] is False
        assert result["error_code"] == SESSION_RESET
        assert result["state"] == "locked"
        assert session.enrollment_count == 0
        assert session.state is AuthState.LOCKED


class TestResetAndStatus:
    def test_reset_is_idempotent(self, voice_service, session):
        _enroll_three(voice_service, session)
        first = voice_service.reset(session)
        second = voice_service.reset(session)

        for result in (first, second):
            assert result["success"] is True
            assert result["state"] == "locked"
            assert result["enrollment_count"] == 0
        assert session.state is AuthState.LOCKED

    def test_reset_relocks_after_unlock(self, voice_service, session):
        _enroll_three(voice_service, session)
        voice_service.verify(session, vector_signal(1.0, 0.0, 0.0))
        assert not session.is_locked

        voice_service.reset(session)
        assert session.is_locked
        assert voice_service.enroll_sample(session, vector_signal(1.0))["accepted"] is True

    def test_lock_gauge_is_tracked_per_session(self, voice_service):
        first = AuthSession(session_id="gauge-a", target_count=3)
        second = AuthSession(session_id="gauge-b", target_count=3)
        for s in (first, second):
            _enroll_three(voice_service, s)

        voice_service.verify(first, vector_signal(1.0, 0.0, 0.0))
        voice_service.reset(second)

        assert REGISTRY.get_sample_value("voice_lock_state", {"session": "gauge-a"}) == 0.0
        assert REGISTRY.get_sample_value("voice_lock_state", {"session": "gauge-b"}) == 1.0

    def test_status(self, voice_service, session):
        voice_service.enroll_sample(session, vector_signal(1.0, 0.0))
        status = voice_service.get_status(session)

        assert status["state"] == "enrolling"
        assert status["locked"] is True
        assert status["enrollment_count"] == 1
        assert status["remaining_samples"] == 2
        assert status["threshold"] == 0.75
        assert status["degraded"] is True
        assert status["model_tag"] == "identity"


class TestRealFrontEnd:
    """Same service with the MFCC extractor in front."""

    def test_same_tone_unlocks(self, mfcc_voice_service):
        session = AuthSession(target_count=3)
        for freq in (440.0, 445.0, 450.0):
            result = mfcc_voice_service.enroll_sample(session, make_tone(freq=freq))
            assert result["accepted"] is True

        result = mfcc_voice_service.verify(session, make_tone(freq=440.0))
        assert result["success"] is True
        assert result["score"] == pytest.approx(1.0, abs=1e-6)
        assert result["state"] == "unlocked"

    def test_too_short_capture_is_invalid(self, mfcc_voice_service):
        session = AuthSession(target_count=3)
        result = mfcc_voice_service.enroll_sample(session, make_tone(seconds=0.01))
        assert result["error_code"] == INVALID_INPUT
