"""Audio processing utilities.

This module contains audio-related utilities:
- utils: Upload decoding (WAV / raw PCM to mono) and framing helpers
"""

from services.audio.utils import (
    AudioSignal,
    bytes_to_mono,
    decode_audio,
    sliding_frames,
)

__all__ = [
    "AudioSignal",
    "bytes_to_mono",
    "decode_audio",
    "sliding_frames",
]
