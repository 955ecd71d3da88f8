# voicenote/__init__.py
# ======================
# VoiceNote — audio file → voice-message metadata
#
# Layers:
#   - voicenote.audio      decode, summarize, encode, duration probe
#   - voicenote.transform  per-item orchestration + merge
#   - voicenote.hooks      named hook points wrapping host entry points
#   - voicenote.interceptor / voicenote.host / voicenote.api
#                          host upload surface that runs the transform
#
# Public API:
#   transform_item(item, ...) → TransformResult

from voicenote.transform import transform_item, merge_result  # noqa: F401
from voicenote.audio.types import PCMBuffer, TransformResult  # noqa: F401
from voicenote.models import AudioFile, UploadItem, UploadRequest  # noqa: F401

__all__ = [
    "transform_item",
    "merge_result",
    "PCMBuffer",
    "TransformResult",
    "AudioFile",
    "UploadItem",
    "UploadRequest",
]
