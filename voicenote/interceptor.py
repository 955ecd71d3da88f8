"""
voicenote/interceptor.py
=========================
Voice-message Interceptor — VoiceNote host integration

Responsibility:
    - Run the transform on audio uploads before the host's upload logic
    - Tag the upload with the voice-message flag so a re-entry into the
      upload path does not process it twice
    - Install itself on the host's two upload entry points and hand back a
      single handle that uninstalls it

This module does NOT:
    - Decode or analyse audio (voicenote.transform does)
    - Transport uploads anywhere
"""

import logging
from typing import Any, Awaitable, Callable, Sequence

from voicenote import config
from voicenote.errors import HookPointNotFound
from voicenote.hooks import HookHandle, HookRegistry
from voicenote.transform import transform_item

logger = logging.getLogger("voicenote.interceptor")

VOICE_MESSAGE_FLAG: int = config.VOICE_MESSAGE_FLAG

UPLOAD_HOOK_NAMES: tuple[str, ...] = ("upload_local_files", "cloud_upload")

Transform = Callable[..., Awaitable[Any]]


def _resolve_item_and_file(upload: Any) -> tuple[Any, Any]:
    """First item (and its file) when the upload has items, else the upload."""
    items = getattr(upload, "items", None) or []
    first = items[0] if items else None

    item = first if first is not None else upload
    file = getattr(first, "file", None) if first is not None else None
    if file is None:
        file = getattr(upload, "file", None)
    return item, file


def is_voice_message(upload: Any) -> bool:
    return bool((getattr(upload, "flags", 0) or 0) & VOICE_MESSAGE_FLAG)


def mark_voice_message(upload: Any) -> None:
    upload.flags = (getattr(upload, "flags", 0) or 0) | VOICE_MESSAGE_FLAG


def make_voice_message_handler(
    enabled: bool | Callable[[], bool] = config.SEND_AS_VOICE_MESSAGE,
    transform: Transform = transform_item,
) -> Callable[[tuple[Any, ...], dict[str, Any]], Awaitable[None]]:
    """
    Build the before-handler installed on the upload entry points.

    Args:
        enabled:   Voice-message toggle, or a zero-argument callable read on
                   every upload so the host can flip it at runtime.
        transform: Coroutine ``transform(item, file, enabled=...)``.
    """

    def _is_enabled() -> bool:
        return bool(enabled()) if callable(enabled) else bool(enabled)

    async def handler(args: tuple[Any, ...], kwargs: dict[str, Any]) -> None:
        upload = args[0] if args else kwargs.get("upload")
        if upload is None:
            return
        if not _is_enabled():
            logger.debug("Voice-message conversion disabled — upload passed through.")
            return
        if is_voice_message(upload):
            logger.debug("Upload already flagged as voice message — skipping.")
            return

        item, file = _resolve_item_and_file(upload)
        mime_type = getattr(item, "mime_type", None)
        if not (isinstance(mime_type, str) and mime_type.startswith("audio")):
            return

        # flag first: a re-entrant upload call must see it while we await
        mark_voice_message(upload)
        await transform(item, file, enabled=True)
        mark_voice_message(upload)

        logger.info(
            "Upload converted to voice message (mime=%s, duration=%s).",
            getattr(item, "mime_type", None),
            getattr(item, "duration_secs", None),
        )

    return handler


def install_voice_message_hooks(
    registry: HookRegistry,
    *,
    enabled: bool | Callable[[], bool] = config.SEND_AS_VOICE_MESSAGE,
    transform: Transform = transform_item,
    hook_names: Sequence[str] = UPLOAD_HOOK_NAMES,
) -> HookHandle:
    """
    Register the voice-message handler on every available upload entry point.

    A missing hook point is logged and skipped; the others are still
    installed. Dispose the returned handle to uninstall everything.
    """
    handler = make_voice_message_handler(enabled=enabled, transform=transform)

    handles: list[HookHandle] = []
    for name in hook_names:
        try:
            handles.append(registry.before(name, handler))
        except HookPointNotFound as exc:
            logger.warning("Voice-message hook not installed: %s", exc)

    handle = HookHandle.combine(handles)
    logger.info("Voice-message hooks installed on: %s", ", ".join(handle.hook_names) or "nothing")
    return handle
