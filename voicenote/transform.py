"""
voicenote/transform.py
=======================
Transform Orchestrator — VoiceNote

Responsibility:
    1. Read the item's audio bytes
    2. Decode them to PCM (voicenote.audio.decoder)
    3. Summarize + encode the waveform envelope
    4. Fall back to a metadata probe when decoding gave no duration
    5. Merge whatever was obtained into the item

Stage order:
    START → DECODING → {SUMMARIZING → ENCODING} | SKIP_SUMMARY
          → DURATION_FALLBACK (only without a duration) → MERGE → DONE

Every sub-step failure is logged and downgraded to "field not available".
``transform_item`` never raises; in the worst case the item is untouched.
"""

import logging
import math
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any, Sequence

from voicenote import config
from voicenote.audio.decoder import DecoderBackend, decode_audio
from voicenote.audio.duration_probe import probe_duration
from voicenote.audio.envelope import encode_envelope
from voicenote.audio.types import PCMBuffer, TransformResult
from voicenote.audio.waveform import summarize_waveform

logger = logging.getLogger("voicenote.transform")


class TransformStage(str, Enum):
    START = "start"
    DECODING = "decoding"
    SUMMARIZING = "summarizing"
    ENCODING = "encoding"
    SKIP_SUMMARY = "skip_summary"
    DURATION_FALLBACK = "duration_fallback"
    MERGE = "merge"
    DONE = "done"


def _enter(stage: TransformStage) -> None:
    logger.debug("Transform stage: %s", stage.value)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def round_duration(seconds: float) -> float:
    """Round to 2 decimals, halves away from zero (12.345 → 12.35)."""
    return float(Decimal(repr(float(seconds))).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def _read_source(file: Any) -> bytes | None:
    """Call the file's ``read_bytes`` accessor; ``None`` when unusable."""
    reader = getattr(file, "read_bytes", None)
    if not callable(reader):
        return None

    try:
        data = reader()
    except Exception as exc:
        logger.warning("Could not read upload bytes: %s", exc)
        return None

    if not data:
        return None
    return bytes(data)


def _usable_duration(pcm: PCMBuffer) -> float | None:
    if math.isfinite(pcm.duration) and pcm.duration > 0:
        return pcm.duration
    return None


def _summarize_and_encode(pcm: PCMBuffer, samples: int) -> str | None:
    try:
        _enter(TransformStage.SUMMARIZING)
        envelope = summarize_waveform(pcm, samples)

        _enter(TransformStage.ENCODING)
        encoded = encode_envelope(envelope)
    except Exception as exc:
        logger.warning("Waveform generation failed: %s", exc)
        return None

    return encoded or None


# ---------------------------------------------------------------------------
# Merge
# ---------------------------------------------------------------------------


def merge_result(
    item: Any,
    result: TransformResult,
    canonical_mime: str = config.CANONICAL_AUDIO_MIME,
) -> Any:
    """
    Copy obtained fields onto ``item``.

    Fields that were not obtained are left as they are. The MIME type is only
    normalized when the transform produced something and the item declares
    an audio type.
    """
    if result.is_empty():
        return item

    if result.duration_secs is not None:
        item.duration_secs = result.duration_secs
    if result.waveform:
        item.waveform = result.waveform

    mime_type = getattr(item, "mime_type", None)
    if isinstance(mime_type, str) and mime_type.startswith("audio"):
        item.mime_type = canonical_mime
    return item


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def transform_item(
    item: Any,
    file: Any = None,
    *,
    enabled: bool = config.SEND_AS_VOICE_MESSAGE,
    samples: int = config.WAVEFORM_SAMPLES,
    probe_timeout_ms: int = config.PROBE_TIMEOUT_MS,
    backends: Sequence[DecoderBackend] | None = None,
) -> TransformResult:
    """
    Compute voice-message metadata for ``item`` and merge it in place.

    Args:
        item:             Upload item (``mime_type``, ``duration_secs``,
                          ``waveform`` attributes).
        file:             Object exposing ``read_bytes()``. Defaults to
                          ``item.file``.
        enabled:          When False the call is a no-op.
        samples:          Envelope length.
        probe_timeout_ms: Bound for the fallback duration probe.
        backends:         Decoder backends to try, in order.

    Returns:
        The TransformResult that was merged (possibly empty).
    """
    result = TransformResult()
    if not enabled:
        logger.debug("Voice-message conversion disabled — item left as is.")
        return result

    if file is None:
        file = getattr(item, "file", None)

    try:
        await _run(item, file, result, samples, probe_timeout_ms, backends)
    except Exception as exc:
        logger.warning("Transform error: %s", exc, exc_info=True)
    return result


async def _run(
    item: Any,
    file: Any,
    result: TransformResult,
    samples: int,
    probe_timeout_ms: int,
    backends: Sequence[DecoderBackend] | None,
) -> None:
    _enter(TransformStage.START)
    source = _read_source(file)
    if source is None:
        logger.info("No audio bytes available — skipping transform.")
        _enter(TransformStage.DONE)
        return

    duration: float | None = None

    _enter(TransformStage.DECODING)
    pcm = await decode_audio(source, backends)
    if pcm is not None:
        duration = _usable_duration(pcm)
        result.waveform = _summarize_and_encode(pcm, samples)
    else:
        _enter(TransformStage.SKIP_SUMMARY)

    if duration is None:
        _enter(TransformStage.DURATION_FALLBACK)
        duration = await probe_duration(source, probe_timeout_ms)

    if duration is not None:
        result.duration_secs = round_duration(duration)

    _enter(TransformStage.MERGE)
    merge_result(item, result)

    logger.info(
        "Transform complete: duration=%s waveform=%s mime=%s",
        result.duration_secs,
        "yes" if result.waveform else "no",
        getattr(item, "mime_type", None),
    )
    _enter(TransformStage.DONE)
