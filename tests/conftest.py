"""Shared fixtures: synthetic signals, fake transport, voice services."""

import io
import sys
import wave
from pathlib import Path
from typing import List, Optional

_project_root = Path(__file__).parent.parent
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

import numpy as np
import pytest

from core.exceptions import AudioValidationError, TransportError
from repositories.interfaces.command_transport import ICommandTransport
from services.audio.utils import AudioSignal
from services.voice.embedding_model import EmbeddingGenerator
from services.voice.matcher import VoiceMatcher
from services.voice.mfcc import MFCCExtractor
from services.voice.session import AuthSession
from services.voice_service import VoiceAuthService


def pcm_to_wav(pcm: bytes, sample_rate: int = 16000, sample_width: int = 2, channels: int = 1) -> bytes:
    """Wrap raw PCM in a WAV container, as a recording client would upload it."""
    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as wf:
        wf.setnchannels(channels)
        wf.setsampwidth(sample_width)
        wf.setframerate(sample_rate)
        wf.writeframes(pcm)
    return buffer.getvalue()


def make_tone(freq: float = 220.0, seconds: float = 0.5, sample_rate: int = 16000, amplitude: float = 0.5) -> AudioSignal:
    t = np.arange(int(seconds * sample_rate)) / sample_rate
    return AudioSignal(samples=amplitude * np.sin(2 * np.pi * freq * t), sample_rate=sample_rate)


def vector_signal(*values: float) -> AudioSignal:
    """Signal whose samples are used verbatim as the feature vector by VectorExtractor."""
    return AudioSignal(samples=np.asarray(values, dtype=np.float64), sample_rate=16000)


class VectorExtractor:
    """Stand-in extractor: the signal's samples are the features."""

    def __init__(self):
        self.calls = 0

    def extract(self, signal: AudioSignal) -> np.ndarray:
        self.calls += 1
        if signal.samples.size == 0:
            raise AudioValidationError("empty signal")
        return np.asarray(signal.samples, dtype=np.float64)


class CountingMatcher(VoiceMatcher):
    def __init__(self, threshold: float = 0.75):
        super().__init__(threshold)
        self.calls = 0

    def match(self, probe, enrolled):
        self.calls += 1
        return super().match(probe, enrolled)


class FakeTransport(ICommandTransport):
    """Records commands instead of writing to a serial port."""

    def __init__(self, fail_connect: bool = False, fail_send: bool = False):
        self.sent: List[str] = []
        self.connected = False
        self.fail_connect = fail_connect
        self.fail_send = fail_send
        self.port: Optional[str] = None

    def connect(self, port: Optional[str] = None) -> None:
        if self.fail_connect:
            raise TransportError("port busy")
        self.port = port
        self.connected = True

    def send(self, command: str) -> None:
        if not self.connected:
            raise TransportError("not connected")
        if self.fail_send:
            raise TransportError("write failed")
        self.sent.append(command)

    def disconnect(self) -> None:
        self.connected = False

    def is_connected(self) -> bool:
        return self.connected


def unlock(session: AuthSession) -> None:
    """Fill the profile with a dummy embedding and open the lock."""
    while session.enrollment_count < session.target_count:
        session.try_enroll(np.ones(4), session.snapshot().generation)
    session.try_unlock(session.snapshot().generation)


@pytest.fixture
def session():
    return AuthSession(session_id="test", target_count=3)


@pytest.fixture
def extractor():
    return VectorExtractor()


@pytest.fixture
def matcher():
    return CountingMatcher(threshold=0.75)


@pytest.fixture
def voice_service(extractor, matcher):
    """Service over raw vectors: features are the signal samples, identity embedding."""
    return VoiceAuthService(extractor=extractor, embedder=EmbeddingGenerator(None), matcher=matcher)


@pytest.fixture
def mfcc_voice_service():
    """Service with the real MFCC front end and identity embedding."""
    return VoiceAuthService(
        extractor=MFCCExtractor(),
        embedder=EmbeddingGenerator(None),
        matcher=VoiceMatcher(threshold=0.75),
    )


@pytest.fixture
def transport():
    return FakeTransport()
