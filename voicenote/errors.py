"""
voicenote/errors.py
====================
Exception Types — VoiceNote

The audio errors below are raised inside the component that detects them and
recovered there: callers of the public functions only ever see ``None`` or an
empty string. They exist so each failure is logged under a precise name.
"""


class VoiceNoteError(Exception):
    """Base class for all VoiceNote errors."""
    pass


class DecodeUnavailableError(VoiceNoteError):
    """Raised when no decoding backend is available."""
    pass


class DecodeFailedError(VoiceNoteError):
    """Raised when every available backend rejected the input."""
    pass


class EncodeUnavailableError(VoiceNoteError):
    """Raised when no base64 strategy could encode the envelope."""
    pass


class ProbeTimeoutError(VoiceNoteError):
    """Raised when the fallback duration probe exceeds its time bound."""

    def __init__(self, timeout_ms: int):
        self.timeout_ms = timeout_ms
        super().__init__(f"Duration probe timed out after {timeout_ms} ms")


class ProbeFailedError(VoiceNoteError):
    """Raised when the fallback duration probe reports an error."""
    pass


class HookPointNotFound(VoiceNoteError, KeyError):
    """Raised when registering a handler on an undefined hook point."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"No hook point named '{name}'")

    def __str__(self) -> str:
        return f"No hook point named '{self.name}'"
