"""
tests/test_duration_probe.py
=============================
Duration Fallback Resolver Tests

Test categories:
    1. Success — format duration, stream duration fallback
    2. Failure — no prober, prober error, unusable metadata
    3. Time bound — a hanging prober resolves to None within the timeout
    4. Cleanup — the temporary probe file never outlives the probe
    5. Isolation — hung probes do not hold up decoding of other uploads

ffprobe is never executed; ``mediainfo_json`` is patched.
"""

import asyncio
import io
import os
import sys
import time
import unittest
import wave
from unittest.mock import patch

import numpy as np

# Ensure project root is on sys.path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from voicenote import config
from voicenote.audio.decoder import WaveBackend, decode_audio
from voicenote.audio.duration_probe import probe_duration

_WHICH = "voicenote.audio.duration_probe.which"
_MEDIAINFO = "voicenote.audio.duration_probe.mediainfo_json"


class _Prober:
    """Stand-in for mediainfo_json that remembers the probed path."""

    def __init__(self, info=None, error: Exception | None = None, delay: float = 0.0):
        self.info = info
        self.error = error
        self.delay = delay
        self.paths: list[str] = []
        self.contents: list[bytes] = []

    def __call__(self, path: str):
        self.paths.append(path)
        with open(path, "rb") as fh:
            self.contents.append(fh.read())
        if self.delay:
            time.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.info


class TestProbeSuccess(unittest.IsolatedAsyncioTestCase):

    async def test_format_duration(self):
        prober = _Prober({"format": {"duration": "12.345"}, "streams": []})
        with patch(_WHICH, return_value="/usr/bin/ffprobe"), patch(_MEDIAINFO, prober):
            duration = await probe_duration(b"ID3 mp3 payload", timeout_ms=3000)

        self.assertAlmostEqual(duration, 12.345)
        self.assertEqual(prober.contents, [b"ID3 mp3 payload"])

    async def test_stream_duration_when_format_missing(self):
        info = {"format": {"duration": "N/A"}, "streams": [{"codec_type": "audio", "duration": "4.5"}]}
        with patch(_WHICH, return_value="/usr/bin/ffprobe"), patch(_MEDIAINFO, _Prober(info)):
            self.assertEqual(await probe_duration(b"data"), 4.5)

    async def test_temp_file_removed_after_success(self):
        prober = _Prober({"format": {"duration": "1.0"}})
        with patch(_WHICH, return_value="/usr/bin/ffprobe"), patch(_MEDIAINFO, prober):
            await probe_duration(b"data")

        self.assertEqual(len(prober.paths), 1)
        self.assertFalse(os.path.exists(prober.paths[0]))


class TestProbeFailure(unittest.IsolatedAsyncioTestCase):

    async def test_no_prober_installed(self):
        prober = _Prober({"format": {"duration": "1.0"}})
        with patch(_WHICH, return_value=None), patch(_MEDIAINFO, prober):
            with self.assertLogs("voicenote.audio.duration_probe", level="WARNING"):
                self.assertIsNone(await probe_duration(b"data"))
        self.assertEqual(prober.paths, [])

    async def test_prober_error(self):
        prober = _Prober(error=ValueError("Expecting value: line 1 column 1"))
        with patch(_WHICH, return_value="/usr/bin/ffprobe"), patch(_MEDIAINFO, prober):
            with self.assertLogs("voicenote.audio.duration_probe", level="WARNING"):
                self.assertIsNone(await probe_duration(b"data"))
        self.assertFalse(os.path.exists(prober.paths[0]))

    async def test_zero_duration_unusable(self):
        with patch(_WHICH, return_value="/usr/bin/ffprobe"), \
                patch(_MEDIAINFO, _Prober({"format": {"duration": "0.000000"}})):
            self.assertIsNone(await probe_duration(b"data"))

    async def test_missing_metadata(self):
        with patch(_WHICH, return_value="/usr/bin/ffprobe"), patch(_MEDIAINFO, _Prober({})):
            self.assertIsNone(await probe_duration(b"data"))

    async def test_empty_source_skips_probe(self):
        prober = _Prober({"format": {"duration": "1.0"}})
        with patch(_WHICH, return_value="/usr/bin/ffprobe"), patch(_MEDIAINFO, prober):
            self.assertIsNone(await probe_duration(b""))
        self.assertEqual(prober.paths, [])


class TestProbeTimeout(unittest.IsolatedAsyncioTestCase):

    async def test_hanging_probe_resolves_to_none(self):
        prober = _Prober({"format": {"duration": "9.0"}}, delay=0.5)
        with patch(_WHICH, return_value="/usr/bin/ffprobe"), patch(_MEDIAINFO, prober):
            started = time.monotonic()
            with self.assertLogs("voicenote.audio.duration_probe", level="WARNING") as logs:
                duration = await probe_duration(b"data", timeout_ms=50)
            elapsed = time.monotonic() - started

            self.assertIsNone(duration)
            self.assertLess(elapsed, 0.45)
            self.assertTrue(any("timed out" in line for line in logs.output))

            # the abandoned probe still cleans up once it settles
            await asyncio.sleep(0.8)

        self.assertEqual(len(prober.paths), 1)
        self.assertFalse(os.path.exists(prober.paths[0]))


class TestProbeIsolation(unittest.IsolatedAsyncioTestCase):

    @staticmethod
    def _one_second_wav() -> bytes:
        buf = io.BytesIO()
        with wave.open(buf, "wb") as wf:
            wf.setnchannels(1)
            wf.setsampwidth(2)
            wf.setframerate(8000)
            wf.writeframes(np.zeros(8000, dtype="<i2").tobytes())
        return buf.getvalue()

    async def test_hung_probes_do_not_stall_decoding(self):
        prober = _Prober({"format": {"duration": "9.0"}}, delay=0.6)
        with patch(_WHICH, return_value="/usr/bin/ffprobe"), patch(_MEDIAINFO, prober):
            results = await asyncio.gather(
                *(probe_duration(b"data", timeout_ms=50) for _ in range(40))
            )
            self.assertEqual(results, [None] * 40)

            started = time.monotonic()
            pcm = await decode_audio(self._one_second_wav(), [WaveBackend()])
            elapsed = time.monotonic() - started

            self.assertIsNotNone(pcm)
            self.assertAlmostEqual(pcm.duration, 1.0)
            self.assertLess(elapsed, 0.4)

            # queued probes were cancelled; only the busy workers ran
            self.assertLessEqual(len(prober.paths), config.PROBE_WORKERS)

            await asyncio.sleep(0.9)

        for path in prober.paths:
            self.assertFalse(os.path.exists(path))


if __name__ == "__main__":
    unittest.main()
