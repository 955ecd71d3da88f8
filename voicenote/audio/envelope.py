"""
voicenote/audio/envelope.py
============================
Envelope Encoder — VoiceNote audio layer

Responsibility:
    - Serialize waveform bytes to standard, ``=``-padded base64 text
    - Try an ordered chain of encoding strategies; first success wins
    - Return "" (and log) when no strategy works — callers treat "" as
      "no envelope available"
"""

import base64
import binascii
import logging
from typing import Callable, Sequence

from voicenote.errors import EncodeUnavailableError

logger = logging.getLogger("voicenote.audio.envelope")

EncodeStrategy = Callable[[bytes], str]


def _b64encode(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def _b2a_base64(data: bytes) -> str:
    return binascii.b2a_base64(data, newline=False).decode("ascii")


DEFAULT_STRATEGIES: tuple[EncodeStrategy, ...] = (_b64encode, _b2a_base64)


def encode_envelope(
    data: bytes,
    strategies: Sequence[EncodeStrategy] | None = None,
) -> str:
    """
    Encode ``data`` as base64 text.

    Args:
        data:       Envelope bytes.
        strategies: Encoders to try in order. Defaults to the stdlib
                    ``base64`` module, then ``binascii``.

    Returns:
        Base64 text, or "" if every strategy failed.
    """
    if strategies is None:
        strategies = DEFAULT_STRATEGIES

    try:
        return _encode_with_fallback(bytes(data), strategies)
    except EncodeUnavailableError as exc:
        logger.warning("No base64 encoder available: %s", exc)
        return ""


def _encode_with_fallback(data: bytes, strategies: Sequence[EncodeStrategy]) -> str:
    failures: list[str] = []
    for strategy in strategies:
        name = getattr(strategy, "__name__", repr(strategy))
        try:
            return strategy(data)
        except Exception as exc:
            logger.debug("Encoder %s failed: %s", name, exc)
            failures.append(f"{name}: {exc}")

    raise EncodeUnavailableError("; ".join(failures) or "no strategies configured")


def decode_envelope(text: str) -> bytes:
    """
    Decode base64 envelope text back to bytes.

    Raises:
        ValueError: If ``text`` is not valid standard base64.
    """
    try:
        return base64.b64decode(text, validate=True)
    except binascii.Error as exc:
        raise ValueError(f"Invalid envelope encoding: {exc}") from exc
