"""MFCC feature extraction.

Turns a mono signal of any duration into a fixed-length vector of
mel-frequency cepstral coefficients, averaged over frames:

    normalize -> pre-emphasis -> framing -> Hamming window
    -> power spectrum -> mel filter bank (log) -> DCT-II -> mean
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from functools import lru_cache

import numpy as np

from core.exceptions import AudioValidationError
from core.metrics import mfcc_extraction_time
from services.audio.utils import AudioSignal, sliding_frames

logger = logging.getLogger(__name__)

EPSILON = 1e-8


@dataclass(frozen=True)
class MFCCConfig:
    """Numeric parameters of the extractor."""

    num_coefficients: int = 13
    num_filters: int = 26
    frame_ms: float = 25.0
    step_ms: float = 10.0
    pre_emphasis: float = 0.97

    @classmethod
    def from_app_config(cls) -> "MFCCConfig":
        from app.config import Config

        return cls(
            num_coefficients=Config.MFCC_NUM_COEFFICIENTS,
            num_filters=Config.MFCC_NUM_FILTERS,
            frame_ms=Config.MFCC_FRAME_MS,
            step_ms=Config.MFCC_STEP_MS,
            pre_emphasis=Config.MFCC_PRE_EMPHASIS,
        )

    def frame_length(self, sample_rate: int) -> int:
        return int(np.floor(self.frame_ms * sample_rate / 1000.0))

    def frame_step(self, sample_rate: int) -> int:
        return int(np.floor(self.step_ms * sample_rate / 1000.0))


def normalize_signal(samples: np.ndarray) -> np.ndarray:
    """Scale to unit peak amplitude. Silence stays silence."""
    samples = np.asarray(samples, dtype=np.float64)
    if samples.size == 0:
        return samples
    return samples / (np.max(np.abs(samples)) + EPSILON)


def apply_pre_emphasis(samples: np.ndarray, alpha: float = 0.97) -> np.ndarray:
    """y[0] = x[0], y[n] = x[n] - alpha * x[n-1]."""
    if samples.size == 0:
        return samples
    return np.concatenate(([samples[0]], samples[1:] - alpha * samples[:-1]))


def frame_signal(samples: np.ndarray, frame_len: int, step: int) -> np.ndarray:
    """Split into overlapping frames; the trailing partial frame is dropped."""
    frames, _ = sliding_frames(samples, frame_len, step)
    return frames


def power_spectrum(frames: np.ndarray) -> np.ndarray:
    """|DFT|^2 / N for bins [0, N/2) of each row."""
    n = frames.shape[1]
    spectrum = np.fft.rfft(frames, n=n, axis=1)[:, : n // 2]
    return (np.abs(spectrum) ** 2) / n


def hz_to_mel(hz):
    return 2595.0 * np.log10(1.0 + np.asarray(hz, dtype=np.float64) / 700.0)


def mel_to_hz(mel):
    return 700.0 * (10.0 ** (np.asarray(mel, dtype=np.float64) / 2595.0) - 1.0)


@lru_cache(maxsize=16)
def mel_filter_bank(num_filters: int, fft_size: int, sample_rate: int) -> np.ndarray:
    """Triangular filters, shape (num_filters, fft_size // 2).

    Centre points are spaced uniformly on the mel scale between 0 Hz and
    Nyquist and mapped to FFT bins with floor((fft_size + 1) * hz / sr).
    The returned array is shared between callers and must not be mutated.
    """
    num_bins = fft_size // 2
    mel_points = np.linspace(hz_to_mel(0.0), hz_to_mel(sample_rate / 2.0), num_filters + 2)
    bins = np.floor((fft_size + 1) * mel_to_hz(mel_points) / sample_rate).astype(int)

    bank = np.zeros((num_filters, num_bins), dtype=np.float64)
    for i in range(1, num_filters + 1):
        left, centre, right = bins[i - 1], bins[i], bins[i + 1]
        for k in range(left, min(centre, num_bins)):
            bank[i - 1, k] = (k - left) / (centre - left)
        for k in range(centre, min(right, num_bins)):
            bank[i - 1, k] = (right - k) / (right - centre)

    bank.setflags(write=False)
    return bank


@lru_cache(maxsize=8)
def _dct_matrix(num_inputs: int, num_outputs: int) -> np.ndarray:
    k = np.arange(num_outputs)[:, None]
    n = np.arange(num_inputs)[None, :]
    basis = np.cos(np.pi * k * (n + 0.5) / num_inputs)
    basis.setflags(write=False)
    return basis


def dct_ii(values: np.ndarray, num_outputs: int) -> np.ndarray:
    """Unnormalized DCT-II along the last axis, first ``num_outputs`` terms."""
    basis = _dct_matrix(values.shape[-1], num_outputs)
    return values @ basis.T


def extract_mfcc(signal: AudioSignal, config: MFCCConfig | None = None) -> np.ndarray:
    """Compute the frame-averaged MFCC vector of ``signal``.

    Raises:
        AudioValidationError: when the signal cannot yield a single frame
    """
    config = config or MFCCConfig()
    sample_rate = int(signal.sample_rate)
    if sample_rate <= 0:
        raise AudioValidationError(f"Invalid sample rate: {sample_rate}")

    frame_len = config.frame_length(sample_rate)
    step = config.frame_step(sample_rate)
    if frame_len < 2 or step < 1:
        raise AudioValidationError(
            f"Sample rate {sample_rate} Hz is too low to form analysis frames"
        )

    samples = np.asarray(signal.samples, dtype=np.float64).ravel()
    emphasized = apply_pre_emphasis(normalize_signal(samples), config.pre_emphasis)
    frames = frame_signal(emphasized, frame_len, step)
    if frames.shape[0] == 0:
        raise AudioValidationError(
            f"Signal of {samples.size} samples is shorter than one {frame_len}-sample frame"
        )

    windowed = frames * np.hamming(frame_len)
    power = power_spectrum(windowed)
    bank = mel_filter_bank(config.num_filters, frame_len, sample_rate)
    log_energies = np.log(power @ bank.T + EPSILON)
    cepstra = dct_ii(log_energies, config.num_coefficients)

    return cepstra.mean(axis=0)


class MFCCExtractor:
    """Extractor bound to a configuration, with timing metrics."""

    def __init__(self, config: MFCCConfig | None = None):
        self.config = config or MFCCConfig()

    @property
    def num_coefficients(self) -> int:
        return self.config.num_coefficients

    def extract(self, signal: AudioSignal) -> np.ndarray:
        start = time.perf_counter()
        features = extract_mfcc(signal, self.config)
        elapsed = time.perf_counter() - start
        mfcc_extraction_time.observe(elapsed)
        logger.debug(
            f"MFCC extracted from {signal.samples.size} samples @ {signal.sample_rate} Hz "
            f"in {elapsed * 1000:.1f}ms"
        )
        return features
