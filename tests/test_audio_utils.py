"""Tests for services/audio/utils.py - upload decoding."""

import io
import wave

import numpy as np
import pytest

from core.exceptions import AudioValidationError
from services.audio.utils import bytes_to_mono, decode_audio, sliding_frames
from tests.conftest import pcm_to_wav


class TestDecodeAudio:
    def test_mono_wav(self):
        pcm = np.array([0, 16384, -16384, 32767], dtype=np.int16).tobytes()
        signal = decode_audio(pcm_to_wav(pcm, sample_rate=8000))

        assert signal.sample_rate == 8000
        np.testing.assert_allclose(signal.samples, [0.0, 0.5, -0.5, 32767 / 32768])

    def test_stereo_wav_is_downmixed(self):
        interleaved = np.array([1000, -1000, 2000, 0], dtype=np.int16).tobytes()
        samples, rate = bytes_to_mono(pcm_to_wav(interleaved, sample_rate=16000, channels=2))

        assert rate == 16000
        np.testing.assert_allclose(samples, [0.0, 1000.0])

    def test_raw_pcm_uses_default_rate(self):
        pcm = np.arange(10, dtype=np.int16).tobytes()
        signal = decode_audio(pcm, default_sample_rate=22050)
        assert signal.sample_rate == 22050
        assert signal.samples.size == 10

    def test_raw_pcm_odd_byte_dropped(self):
        signal = decode_audio(np.arange(4, dtype=np.int16).tobytes() + b"\x01")
        assert signal.samples.size == 4

    def test_empty_payload_rejected(self):
        with pytest.raises(AudioValidationError):
            decode_audio(b"")

    def test_single_byte_has_no_samples(self):
        with pytest.raises(AudioValidationError):
            decode_audio(b"\x01")

    def test_corrupt_wav_rejected(self):
        with pytest.raises(AudioValidationError):
            decode_audio(b"RIFF\x00\x00\x00\x00JUNKJUNK")

    def test_8bit_wav_rejected(self):
        buffer = io.BytesIO()
        with wave.open(buffer, "wb") as wf:
            wf.setnchannels(1)
            wf.setsampwidth(1)
            wf.setframerate(8000)
            wf.writeframes(bytes(range(100)))
        with pytest.raises(AudioValidationError):
            decode_audio(buffer.getvalue())

    def test_duration(self):
        signal = decode_audio(np.zeros(16000, dtype=np.int16).tobytes())
        assert signal.duration_seconds == pytest.approx(1.0)


class TestSlidingFrames:
    def test_complete_frames_only(self):
        frames, count = sliding_frames(np.arange(10.0), 4, 3)
        assert count == 3
        np.testing.assert_array_equal(frames[2], [6.0, 7.0, 8.0, 9.0])

    def test_short_signal(self):
        frames, count = sliding_frames(np.arange(3.0), 4, 2)
        assert count == 0
        assert frames.shape == (0, 4)
