# voicenote/audio/__init__.py
# ============================
# Audio Layer — VoiceNote
#
#   decoder.py         encoded bytes → PCMBuffer (pydub / wave backends)
#   waveform.py        PCMBuffer → N amplitude bytes
#   envelope.py        amplitude bytes → base64 text
#   duration_probe.py  container metadata → duration (time-bounded)

from voicenote.audio.decoder import decode_audio  # noqa: F401
from voicenote.audio.duration_probe import probe_duration  # noqa: F401
from voicenote.audio.envelope import decode_envelope, encode_envelope  # noqa: F401
from voicenote.audio.types import PCMBuffer, TransformResult  # noqa: F401
from voicenote.audio.waveform import summarize_waveform  # noqa: F401

__all__ = [
    "decode_audio",
    "probe_duration",
    "encode_envelope",
    "decode_envelope",
    "summarize_waveform",
    "PCMBuffer",
    "TransformResult",
]
