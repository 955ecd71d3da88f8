"""
voicenote/config.py
====================
Runtime Configuration — VoiceNote

Responsibility:
    - Load ``.env`` once and expose module-level settings
    - Provide defaults matching the voice-message wire format

Every value can be overridden through the environment:

    VOICENOTE_WAVEFORM_SAMPLES   envelope length (default 80)
    VOICENOTE_PROBE_TIMEOUT_MS   fallback duration probe bound (default 3000)
    VOICENOTE_PROBE_WORKERS      threads reserved for duration probes (4)
    VOICENOTE_CANONICAL_MIME     container tag for audio uploads (audio/ogg)
    VOICENOTE_DECODER_BACKENDS   comma-separated backend order (pydub,wave)
    VOICENOTE_SEND_AS_VM         global voice-message toggle (true)
"""

import os

from dotenv import load_dotenv

load_dotenv()


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_flag(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in ("true", "1", "yes")


# ---------------------------------------------------------------------------
# Waveform / transform
# ---------------------------------------------------------------------------

WAVEFORM_SAMPLES: int = max(1, _env_int("VOICENOTE_WAVEFORM_SAMPLES", 80))

PROBE_TIMEOUT_MS: int = max(1, _env_int("VOICENOTE_PROBE_TIMEOUT_MS", 3000))

# Threads reserved for duration probes, separate from the decoder threads.
PROBE_WORKERS: int = max(1, _env_int("VOICENOTE_PROBE_WORKERS", 4))

CANONICAL_AUDIO_MIME: str = (
    os.environ.get("VOICENOTE_CANONICAL_MIME", "").strip() or "audio/ogg"
)

DECODER_BACKENDS: tuple[str, ...] = tuple(
    name.strip().lower()
    for name in os.environ.get("VOICENOTE_DECODER_BACKENDS", "pydub,wave").split(",")
    if name.strip()
)

# ---------------------------------------------------------------------------
# Host integration
# ---------------------------------------------------------------------------

# Upload flag value the host uses to mark an attachment as a voice message.
VOICE_MESSAGE_FLAG: int = 8192

SEND_AS_VOICE_MESSAGE: bool = _env_flag("VOICENOTE_SEND_AS_VM", True)
