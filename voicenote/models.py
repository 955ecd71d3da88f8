"""
voicenote/models.py
====================
Upload Objects — VoiceNote host integration

Responsibility:
    - Model the metadata records the host upload subsystem hands to its
      entry points (``UploadRequest`` → ``UploadItem`` → ``AudioFile``)
    - Expose the byte-buffer accessor the transform reads from

The transform only ever touches ``duration_secs``, ``waveform`` and
``mime_type`` on an item; ``flags`` belongs to the interceptor.
"""

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class AudioFile:
    """An uploaded file held in memory."""

    filename: str
    data: bytes
    content_type: str | None = None

    def read_bytes(self) -> bytes:
        """Return a private copy of the file contents."""
        return bytes(self.data)

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass
class UploadItem:
    """One attachment of an upload."""

    mime_type: str | None = None
    file: AudioFile | None = None
    duration_secs: float | None = None
    waveform: str | None = None
    flags: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "filename": self.file.filename if self.file else None,
            "mimeType": self.mime_type,
            "durationSecs": self.duration_secs,
            "waveform": self.waveform,
            "flags": self.flags,
        }


@dataclass
class UploadRequest:
    """Argument passed to the host's upload entry points.

    Either carries a list of ``items`` or acts as a single item itself
    (``mime_type`` + ``file`` on the request).
    """

    items: list[UploadItem] = field(default_factory=list)
    flags: int = 0
    mime_type: str | None = None
    file: AudioFile | None = None
    duration_secs: float | None = None
    waveform: str | None = None

    def primary_item(self) -> "UploadItem | UploadRequest":
        """First item when present, otherwise the request itself."""
        return self.items[0] if self.items else self

    def primary_file(self) -> AudioFile | None:
        if self.items and self.items[0].file is not None:
            return self.items[0].file
        return self.file
