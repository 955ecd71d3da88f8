"""
voicenote/audio/waveform.py
============================
Waveform Summarizer — VoiceNote audio layer

Responsibility:
    - Downsample the first PCM channel into a fixed number of amplitude
      bytes for the voice-message waveform preview

Algorithm:
    block = floor(total_samples / samples)
    value[i] = clamp(round_half_up(mean(|x|) over block i * 255), 0, 255)

A clip shorter than ``samples`` has block size 0; every value is then 0.
Pure and deterministic: same PCM and ``samples`` → same bytes.
"""

import numpy as np

from voicenote import config
from voicenote.audio.types import PCMBuffer


def summarize_waveform(pcm: PCMBuffer, samples: int = config.WAVEFORM_SAMPLES) -> bytes:
    """
    Reduce ``pcm`` to exactly ``samples`` unsigned 8-bit amplitudes.

    Args:
        pcm:     Decoded audio. Only channel 0 is read.
        samples: Envelope length N (default 80).

    Returns:
        ``bytes`` of length ``samples``.

    Raises:
        ValueError: If ``samples`` is smaller than 1.
    """
    if samples < 1:
        raise ValueError(f"samples must be >= 1, got {samples}")

    data = np.asarray(pcm.first_channel(), dtype=np.float64)
    block = len(data) // samples
    if block == 0:
        return bytes(samples)

    blocks = np.nan_to_num(data[: block * samples], nan=0.0, posinf=0.0, neginf=0.0)
    means = np.abs(blocks).reshape(samples, block).mean(axis=1)

    # floor(x + 0.5) keeps .5 rounding upwards rather than to even
    scaled = np.floor(means * 255.0 + 0.5)
    return np.clip(scaled, 0, 255).astype(np.uint8).tobytes()
