"""
voicenote/audio/duration_probe.py
==================================
Duration Fallback Resolver — VoiceNote audio layer

Responsibility:
    - Estimate the duration of an audio buffer from container metadata
      (ffprobe / avprobe via ``pydub.utils.mediainfo_json``) when full PCM
      decoding did not produce one
    - Bound the wait: resolve to a duration or ``None`` within the timeout
    - Remove the temporary file handed to the prober once the probe settles,
      whatever the outcome

This module does NOT:
    - Decode PCM samples
    - Overwrite a duration obtained from decoding (the orchestrator only
      calls it when none was obtained)
"""

import asyncio
import logging
import math
import os
import tempfile
from concurrent.futures import ThreadPoolExecutor
from typing import Any

from pydub.utils import mediainfo_json, which

from voicenote import config
from voicenote.errors import ProbeFailedError, ProbeTimeoutError

logger = logging.getLogger("voicenote.audio.duration_probe")

# Probes run on their own threads: a hung ffprobe must not occupy the
# default executor that decoding uses. A probe still queued when its
# timeout fires is cancelled and never runs.
_PROBE_EXECUTOR = ThreadPoolExecutor(
    max_workers=config.PROBE_WORKERS,
    thread_name_prefix="voicenote-probe",
)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def probe_duration(
    source: bytes,
    timeout_ms: int = config.PROBE_TIMEOUT_MS,
) -> float | None:
    """
    Read the duration of ``source`` from its container metadata.

    Args:
        source:     Encoded audio bytes.
        timeout_ms: Upper bound on the wait, in milliseconds (default 3000).

    Returns:
        Duration in seconds, or ``None`` if the probe failed or timed out.
    """
    if not source:
        logger.debug("Duration probe skipped — empty source.")
        return None

    try:
        duration = await _probe_with_timeout(source, timeout_ms)
    except ProbeTimeoutError as exc:
        logger.warning("Duration probe gave up: %s", exc)
        return None
    except ProbeFailedError as exc:
        logger.warning("Duration probe failed: %s", exc)
        return None

    logger.info("Duration probe resolved %.3fs.", duration)
    return duration


# ---------------------------------------------------------------------------
# Internals
# ---------------------------------------------------------------------------


async def _probe_with_timeout(source: bytes, timeout_ms: int) -> float:
    loop = asyncio.get_running_loop()
    try:
        return await asyncio.wait_for(
            loop.run_in_executor(_PROBE_EXECUTOR, _probe_blocking, bytes(source)),
            timeout=timeout_ms / 1000.0,
        )
    except asyncio.TimeoutError as exc:
        raise ProbeTimeoutError(timeout_ms) from exc


def _probe_blocking(source: bytes) -> float:
    """Write ``source`` to a temp file, run the prober, always clean up."""
    if not (which("ffprobe") or which("avprobe")):
        raise ProbeFailedError("neither ffprobe nor avprobe found on PATH")

    handle = tempfile.NamedTemporaryFile(prefix="voicenote-", suffix=".audio", delete=False)
    try:
        with handle:
            handle.write(source)
        try:
            info = mediainfo_json(handle.name)
        except Exception as exc:
            raise ProbeFailedError(f"prober error: {exc}") from exc
    finally:
        _release(handle.name)

    return _extract_duration(info)


def _release(path: str) -> None:
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
    except OSError as exc:
        logger.warning("Could not remove probe file %s: %s", path, exc)


def _extract_duration(info: Any) -> float:
    """Pick ``format.duration``, else the first stream with a duration."""
    if not isinstance(info, dict):
        raise ProbeFailedError(f"unexpected prober output: {type(info).__name__}")

    candidates = [(info.get("format") or {}).get("duration")]
    for stream in info.get("streams") or []:
        if isinstance(stream, dict):
            candidates.append(stream.get("duration"))

    for raw in candidates:
        try:
            value = float(raw)
        except (TypeError, ValueError):
            continue
        if math.isfinite(value) and value > 0:
            return value

    raise ProbeFailedError("prober reported no usable duration")
