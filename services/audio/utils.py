"""Audio decoding utilities - uploaded bytes to a mono float signal."""

from __future__ import annotations

import io
import wave
from dataclasses import dataclass
from typing import Tuple

import numpy as np

from core.exceptions import AudioValidationError


@dataclass(frozen=True)
class AudioSignal:
    """A mono capture: float samples plus the rate they were taken at."""

    samples: np.ndarray
    sample_rate: int

    @property
    def duration_seconds(self) -> float:
        if self.sample_rate <= 0:
            return 0.0
        return float(self.samples.size) / float(self.sample_rate)


def sliding_frames(
    signal: np.ndarray,
    frame_len: int,
    hop: int,
) -> Tuple[np.ndarray, int]:
    """Create sliding window frames from signal.

    Only complete frames are returned; a signal shorter than one frame
    yields an empty ``(0, frame_len)`` array.
    """
    if frame_len <= 0 or hop <= 0 or signal.size < frame_len:
        return np.empty((0, max(frame_len, 0)), dtype=signal.dtype), 0

    signal = np.ascontiguousarray(signal)
    num_frames = 1 + (len(signal) - frame_len) // hop
    frames = np.lib.stride_tricks.as_strided(
        signal,
        shape=(num_frames, frame_len),
        strides=(signal.strides[0] * hop, signal.strides[0]),
        writeable=False,
    )
    return frames.copy(), num_frames


def bytes_to_mono(
    audio_bytes: bytes,
    default_sample_rate: int = 16000,
) -> Tuple[np.ndarray, int]:
    """
    Convert audio bytes (WAV or raw PCM) to mono signal.

    Args:
        audio_bytes: Audio data (16-bit WAV or raw 16-bit PCM)
        default_sample_rate: Sample rate assumed for raw PCM

    Returns:
        Tuple of (mono_signal, sample_rate)
    """
    # Check if WAV format
    if audio_bytes.startswith(b"RIFF"):
        try:
            with wave.open(io.BytesIO(audio_bytes), "rb") as wf:
                sample_rate = wf.getframerate()
                channels = wf.getnchannels()
                sample_width = wf.getsampwidth()
                frames = wf.readframes(wf.getnframes())
        except (wave.Error, EOFError) as e:
            raise AudioValidationError(f"Unreadable WAV data: {e}") from e
        if sample_width != 2:
            raise AudioValidationError(
                f"Only 16-bit PCM WAV is supported, got {sample_width * 8}-bit"
            )
    else:
        # Assume raw PCM mono at the configured rate
        sample_rate = default_sample_rate
        channels = 1
        frames = audio_bytes

    # Drop a dangling odd byte from raw uploads
    usable = len(frames) - (len(frames) % 2)
    raw = np.frombuffer(frames[:usable], dtype=np.int16).astype(np.float32)

    # Convert to mono if stereo
    if channels > 1:
        whole = raw.size - (raw.size % channels)
        raw = raw[:whole].reshape(-1, channels).mean(axis=1)

    return raw, sample_rate


def decode_audio(audio_bytes: bytes, default_sample_rate: int = 16000) -> AudioSignal:
    """Decode an upload into an ``AudioSignal`` scaled to [-1, 1]."""
    if not audio_bytes:
        raise AudioValidationError("Audio payload is empty")

    samples, sample_rate = bytes_to_mono(audio_bytes, default_sample_rate)
    if samples.size == 0:
        raise AudioValidationError("Audio payload contains no samples")

    return AudioSignal(samples=samples / 32768.0, sample_rate=int(sample_rate))
