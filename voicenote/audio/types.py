"""
voicenote/audio/types.py
=========================
Typed containers shared across the audio layer.

Kept in their own module so the decoder, summarizer and orchestrator can
import them without circular dependencies.
"""

from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True)
class PCMBuffer:
    """Decoded audio: one float32 array per channel, range [-1.0, 1.0]."""

    channels: tuple[np.ndarray, ...]
    sample_rate: int
    duration: float  # seconds

    @property
    def channel_count(self) -> int:
        return len(self.channels)

    @property
    def frame_count(self) -> int:
        return len(self.channels[0]) if self.channels else 0

    def first_channel(self) -> np.ndarray:
        """Channel 0, or an empty array when nothing was decoded."""
        if not self.channels:
            return np.zeros(0, dtype=np.float32)
        return self.channels[0]


@dataclass
class TransformResult:
    """Per-invocation accumulator; fields stay ``None`` when not obtained."""

    duration_secs: float | None = None
    waveform: str | None = None

    def is_empty(self) -> bool:
        return self.duration_secs is None and self.waveform is None
