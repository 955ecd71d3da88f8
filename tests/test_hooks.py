"""
tests/test_hooks.py
====================
Interceptor Registry Tests

Test categories:
    1. Hook points — handlers run before the operation and may mutate args
    2. Handles — dispose removes exactly what was registered
    3. Fault tolerance — a failing handler never blocks the operation
"""

import os
import sys
import unittest

# Ensure project root is on sys.path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from voicenote.errors import HookPointNotFound
from voicenote.hooks import HookHandle, HookRegistry


class _Box:
    def __init__(self):
        self.value = 0
        self.trace: list[str] = []


async def _async_operation(box: _Box) -> int:
    box.trace.append("operation")
    return box.value


class TestHookPoints(unittest.IsolatedAsyncioTestCase):

    async def test_operation_runs_without_handlers(self):
        registry = HookRegistry()
        registry.define("op", _async_operation)
        box = _Box()
        self.assertEqual(await registry.call("op", box), 0)
        self.assertEqual(box.trace, ["operation"])

    async def test_handler_runs_first_and_mutates_args(self):
        registry = HookRegistry()
        point = registry.define("op", _async_operation)

        def handler(args, kwargs):
            args[0].trace.append("handler")
            args[0].value = 42

        registry.before("op", handler)
        box = _Box()

        self.assertEqual(await point(box), 42)
        self.assertEqual(box.trace, ["handler", "operation"])

    async def test_async_handlers_awaited_in_order(self):
        registry = HookRegistry()
        point = registry.define("op", _async_operation)

        async def first(args, kwargs):
            args[0].trace.append("first")

        async def second(args, kwargs):
            args[0].trace.append("second")

        registry.before("op", first)
        registry.before("op", second)
        box = _Box()
        await point(box)
        self.assertEqual(box.trace, ["first", "second", "operation"])

    async def test_sync_operation_supported(self):
        registry = HookRegistry()
        point = registry.define("add", lambda a, b: a + b)
        self.assertEqual(await point(2, b=3), 5)

    async def test_kwargs_passed_to_handler(self):
        registry = HookRegistry()
        point = registry.define("op", lambda upload=None: upload)
        seen = []
        registry.before("op", lambda args, kwargs: seen.append(kwargs.get("upload")))
        await point(upload="u")
        self.assertEqual(seen, ["u"])

    def test_unknown_hook_point(self):
        registry = HookRegistry()
        with self.assertRaises(HookPointNotFound):
            registry.before("missing", lambda args, kwargs: None)
        with self.assertRaises(KeyError):
            registry.before("missing", lambda args, kwargs: None)

    def test_duplicate_definition_rejected(self):
        registry = HookRegistry()
        registry.define("op", _async_operation)
        with self.assertRaises(ValueError):
            registry.define("op", _async_operation)

    def test_names(self):
        registry = HookRegistry()
        registry.define("a", _async_operation)
        registry.define("b", _async_operation)
        self.assertEqual(registry.names(), ["a", "b"])
        self.assertIsNone(registry.get("c"))


class TestHandles(unittest.IsolatedAsyncioTestCase):

    async def test_dispose_restores_operation(self):
        registry = HookRegistry()
        point = registry.define("op", _async_operation)
        handle = registry.before("op", lambda args, kwargs: args[0].trace.append("handler"))

        handle.dispose()
        box = _Box()
        await point(box)

        self.assertEqual(box.trace, ["operation"])
        self.assertTrue(handle.disposed)
        self.assertEqual(point.handlers, ())

    async def test_dispose_is_idempotent_and_scoped(self):
        registry = HookRegistry()
        point = registry.define("op", _async_operation)

        def keep(args, kwargs):
            return None

        def drop(args, kwargs):
            return None

        registry.before("op", keep)
        handle = registry.before("op", drop)
        handle.dispose()
        handle.dispose()

        self.assertEqual(point.handlers, (keep,))

    async def test_context_manager(self):
        registry = HookRegistry()
        point = registry.define("op", _async_operation)

        with registry.before("op", lambda args, kwargs: args[0].trace.append("handler")):
            box = _Box()
            await point(box)
            self.assertEqual(box.trace, ["handler", "operation"])

        self.assertEqual(point.handlers, ())

    def test_combined_handle(self):
        registry = HookRegistry()
        a = registry.define("a", _async_operation)
        b = registry.define("b", _async_operation)

        def handler(args, kwargs):
            return None

        combined = HookHandle.combine([registry.before("a", handler), registry.before("b", handler)])
        self.assertEqual(combined.hook_names, ["a", "b"])

        combined.dispose()
        self.assertEqual(a.handlers, ())
        self.assertEqual(b.handlers, ())


class TestFaultTolerance(unittest.IsolatedAsyncioTestCase):

    async def test_failing_handler_does_not_block_operation(self):
        registry = HookRegistry()
        point = registry.define("op", _async_operation)

        def broken(args, kwargs):
            raise RuntimeError("handler bug")

        registry.before("op", broken)
        registry.before("op", lambda args, kwargs: args[0].trace.append("after"))

        box = _Box()
        with self.assertLogs("voicenote.hooks", level="WARNING"):
            await point(box)
        self.assertEqual(box.trace, ["after", "operation"])


if __name__ == "__main__":
    unittest.main()
