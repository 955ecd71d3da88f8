"""
voicenote/audio/decoder.py
===========================
Sample Decoder — VoiceNote audio layer

Responsibility:
    - Decode an encoded audio buffer (mp3, ogg, m4a, wav, ...) into
      per-channel float32 PCM samples with sample rate and duration
    - Try the configured backends in order; first successful decode wins
    - Release every per-call decoding context, on success and on failure
    - Report "unavailable" (``None``) instead of raising

Backends:
    pydub — ffmpeg / avconv through ``AudioSegment.from_file``. Available only
            when one of those executables is on PATH.
    wave  — standard-library PCM WAV reader. Always available, WAV only.

This module does NOT:
    - Compute the waveform envelope (see waveform.py)
    - Probe container metadata for duration (see duration_probe.py)
    - Modify the caller's byte buffer
"""

import asyncio
import io
import logging
import wave
from abc import ABC, abstractmethod
from typing import Sequence

import numpy as np
from pydub import AudioSegment
from pydub.exceptions import CouldntDecodeError
from pydub.utils import which

from voicenote import config
from voicenote.audio.types import PCMBuffer
from voicenote.errors import DecodeFailedError, DecodeUnavailableError

logger = logging.getLogger("voicenote.audio.decoder")


# ---------------------------------------------------------------------------
# Backend contract
# ---------------------------------------------------------------------------


class DecodingContext(ABC):
    """
    Transient state for one decode call.

    Owns a private in-memory stream over a copy of the source bytes. Always
    used as a context manager so the stream is closed on every exit path.
    """

    def __init__(self, source: bytes):
        self._stream = io.BytesIO(source)
        self.closed = False

    @abstractmethod
    def decode(self) -> PCMBuffer:
        ...

    def close(self) -> None:
        if not self.closed:
            self._stream.close()
            self.closed = True

    def __enter__(self) -> "DecodingContext":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class DecoderBackend(ABC):
    """A decoding facility that may or may not be present at runtime."""

    name: str = "base"

    def is_available(self) -> bool:
        return True

    @abstractmethod
    def open(self, source: bytes) -> DecodingContext:
        ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


# ---------------------------------------------------------------------------
# pydub / ffmpeg backend
# ---------------------------------------------------------------------------


class _PydubContext(DecodingContext):

    def decode(self) -> PCMBuffer:
        try:
            segment = AudioSegment.from_file(self._stream)
        except CouldntDecodeError as exc:
            raise DecodeFailedError(f"ffmpeg could not decode audio: {exc}") from exc

        return _segment_to_pcm(segment)


class PydubBackend(DecoderBackend):
    """Decode anything ffmpeg understands."""

    name = "pydub"

    def is_available(self) -> bool:
        return bool(which("ffmpeg") or which("avconv"))

    def open(self, source: bytes) -> DecodingContext:
        return _PydubContext(source)


def _segment_to_pcm(segment: AudioSegment) -> PCMBuffer:
    """Convert interleaved integer samples of an AudioSegment to PCMBuffer."""
    n_channels = max(1, int(segment.channels))
    full_scale = float(1 << (8 * segment.sample_width - 1))

    samples = np.array(segment.get_array_of_samples(), dtype=np.float32)
    usable = len(samples) - (len(samples) % n_channels)
    frames = samples[:usable].reshape(-1, n_channels) / full_scale

    channels = tuple(
        np.ascontiguousarray(frames[:, ch], dtype=np.float32)
        for ch in range(n_channels)
    )
    return PCMBuffer(
        channels=channels,
        sample_rate=int(segment.frame_rate),
        duration=float(segment.duration_seconds),
    )


# ---------------------------------------------------------------------------
# stdlib wave backend
# ---------------------------------------------------------------------------

# sample width (bytes) → (numpy dtype, zero offset, full scale)
_WAV_FORMATS: dict[int, tuple[str, float, float]] = {
    1: ("u1", 128.0, 128.0),  # 8-bit WAV is unsigned
    2: ("<i2", 0.0, 32768.0),
    4: ("<i4", 0.0, 2147483648.0),
}


class _WaveContext(DecodingContext):

    def decode(self) -> PCMBuffer:
        try:
            with wave.open(self._stream, "rb") as wf:
                n_channels = wf.getnchannels()
                sampwidth = wf.getsampwidth()
                sample_rate = wf.getframerate()
                raw_pcm = wf.readframes(wf.getnframes())
        except (wave.Error, EOFError) as exc:
            raise DecodeFailedError(f"Not a PCM WAV stream: {exc}") from exc

        if sampwidth not in _WAV_FORMATS:
            raise DecodeFailedError(f"Unsupported WAV sample width: {sampwidth} bytes")
        if sample_rate <= 0 or n_channels <= 0:
            raise DecodeFailedError(
                f"Invalid WAV header: {n_channels} channels @ {sample_rate} Hz"
            )

        np_dtype, offset, scale = _WAV_FORMATS[sampwidth]
        frame_bytes = sampwidth * n_channels
        raw_pcm = raw_pcm[: len(raw_pcm) - (len(raw_pcm) % frame_bytes)]

        pcm = (np.frombuffer(raw_pcm, dtype=np_dtype).astype(np.float32) - offset) / scale
        frames = pcm.reshape(-1, n_channels)

        channels = tuple(
            np.ascontiguousarray(frames[:, ch]) for ch in range(n_channels)
        )
        return PCMBuffer(
            channels=channels,
            sample_rate=sample_rate,
            duration=frames.shape[0] / sample_rate,
        )


class WaveBackend(DecoderBackend):
    """Decode uncompressed PCM WAV without any native dependency."""

    name = "wave"

    def open(self, source: bytes) -> DecodingContext:
        return _WaveContext(source)


# ---------------------------------------------------------------------------
# Backend selection
# ---------------------------------------------------------------------------

_BACKEND_TYPES: dict[str, type[DecoderBackend]] = {
    PydubBackend.name: PydubBackend,
    WaveBackend.name: WaveBackend,
}


def default_backends(names: Sequence[str] | None = None) -> list[DecoderBackend]:
    """Instantiate backends in the configured order, skipping unknown names."""
    backends: list[DecoderBackend] = []
    for name in names if names is not None else config.DECODER_BACKENDS:
        backend_type = _BACKEND_TYPES.get(name)
        if backend_type is None:
            logger.warning("Unknown decoder backend '%s' — ignored.", name)
            continue
        backends.append(backend_type())
    return backends


def _is_available(backend: DecoderBackend) -> bool:
    try:
        return bool(backend.is_available())
    except Exception as exc:
        logger.warning("Availability check for '%s' failed: %s", backend.name, exc)
        return False


def _run_backend(backend: DecoderBackend, source: bytes) -> PCMBuffer:
    """Blocking decode; runs in a worker thread."""
    with backend.open(source) as context:
        pcm = context.decode()

    if pcm.frame_count == 0:
        raise DecodeFailedError("decoded stream contains no samples")
    return pcm


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def decode_audio(
    source: bytes,
    backends: Sequence[DecoderBackend] | None = None,
) -> PCMBuffer | None:
    """
    Decode ``source`` into a PCMBuffer using the first backend that succeeds.

    Args:
        source:   Encoded audio bytes. Never mutated; every backend receives
                  its own copy.
        backends: Ordered backends to try. Defaults to
                  ``VOICENOTE_DECODER_BACKENDS``.

    Returns:
        PCMBuffer on success, ``None`` when no backend is available or every
        available backend rejected the input.
    """
    if backends is None:
        backends = default_backends()

    try:
        return await _decode_with_fallback(source, backends)
    except DecodeUnavailableError as exc:
        logger.warning("Decoding unavailable: %s", exc)
    except DecodeFailedError as exc:
        logger.warning("Decoding failed: %s", exc)
    return None


async def _decode_with_fallback(
    source: bytes,
    backends: Sequence[DecoderBackend],
) -> PCMBuffer:
    available = [b for b in backends if _is_available(b)]
    if not available:
        tried = ", ".join(b.name for b in backends) or "none configured"
        raise DecodeUnavailableError(f"no decoding backend present (tried: {tried})")

    failures: list[str] = []
    for backend in available:
        try:
            pcm = await asyncio.to_thread(_run_backend, backend, bytes(source))
        except Exception as exc:
            logger.warning("Decoder '%s' rejected input: %s", backend.name, exc)
            failures.append(f"{backend.name}: {exc}")
            continue

        logger.info(
            "Decoded with '%s': %d channel(s), %d frames @ %d Hz (%.2fs).",
            backend.name,
            pcm.channel_count,
            pcm.frame_count,
            pcm.sample_rate,
            pcm.duration,
        )
        return pcm

    raise DecodeFailedError("; ".join(failures))
