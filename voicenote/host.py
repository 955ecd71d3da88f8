"""
voicenote/host.py
==================
Host Upload Surface — VoiceNote

Responsibility:
    - Provide the two upload entry points the voice-message interceptor
      wraps: ``upload_local_files`` and ``cloud_upload``
    - Wire them through a HookRegistry and install the interceptor

The entry points only accept the upload and describe it back (one metadata
dict per item). Delivery to any remote service happens elsewhere.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable

from voicenote import config
from voicenote.hooks import HookHandle, HookPoint, HookRegistry
from voicenote.interceptor import install_voice_message_hooks
from voicenote.models import UploadItem, UploadRequest

logger = logging.getLogger("voicenote.host")


def _describe(upload: UploadRequest) -> list[dict[str, Any]]:
    if upload.items:
        items = upload.items
    else:
        items = [
            UploadItem(
                mime_type=upload.mime_type,
                file=upload.file,
                duration_secs=upload.duration_secs,
                waveform=upload.waveform,
            )
        ]

    receipt = []
    for item in items:
        entry = item.to_dict()
        entry["flags"] = upload.flags
        receipt.append(entry)
    return receipt


class UploadService:
    """Native (unhooked) upload logic. Keeps no reference to the upload."""

    async def upload_local_files(self, upload: UploadRequest) -> list[dict[str, Any]]:
        logger.info("Local upload accepted: %d item(s), flags=%d", len(upload.items) or 1, upload.flags)
        return _describe(upload)

    async def cloud_upload(self, upload: UploadRequest) -> list[dict[str, Any]]:
        logger.info("Cloud upload accepted: %d item(s), flags=%d", len(upload.items) or 1, upload.flags)
        return _describe(upload)


@dataclass
class UploadPipeline:
    """Hooked entry points plus the handle that uninstalls the interceptor."""

    registry: HookRegistry
    service: UploadService
    handle: HookHandle

    @property
    def upload_local_files(self) -> HookPoint:
        return self.registry.get("upload_local_files")

    @property
    def cloud_upload(self) -> HookPoint:
        return self.registry.get("cloud_upload")

    def close(self) -> None:
        self.handle.dispose()


def build_upload_pipeline(
    enabled: bool | Callable[[], bool] = config.SEND_AS_VOICE_MESSAGE,
    service: UploadService | None = None,
) -> UploadPipeline:
    """Define both upload hook points and install the voice-message hooks."""
    service = service or UploadService()
    registry = HookRegistry()
    registry.define("upload_local_files", service.upload_local_files)
    registry.define("cloud_upload", service.cloud_upload)

    handle = install_voice_message_hooks(registry, enabled=enabled)
    return UploadPipeline(registry=registry, service=service, handle=handle)
