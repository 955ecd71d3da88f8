"""
voicenote/hooks.py
===================
Interceptor Registry — VoiceNote host integration

Responsibility:
    - Wrap named host operations in ``HookPoint`` objects
    - Let callers register "before" handlers that receive the operation's
      arguments (and may mutate them) before the operation runs
    - Hand back a ``HookHandle`` per registration whose ``dispose()``
      removes exactly the handlers it added

Usage::

    registry = HookRegistry()
    upload = registry.define("upload_local_files", service.upload_local_files)

    with registry.before("upload_local_files", handler):
        await upload(request)       # handler runs first

    await upload(request)           # handler gone again

A handler that raises is logged and skipped; the host operation always runs.
"""

import inspect
import logging
from typing import Any, Callable, Iterable

from voicenote.errors import HookPointNotFound

logger = logging.getLogger("voicenote.hooks")

# handler(args, kwargs) — may be a coroutine function
BeforeHandler = Callable[[tuple[Any, ...], dict[str, Any]], Any]


class HookPoint:
    """A named operation plus its ordered list of before-handlers."""

    def __init__(self, name: str, operation: Callable[..., Any]):
        self.name = name
        self.operation = operation
        self._handlers: list[BeforeHandler] = []

    @property
    def handlers(self) -> tuple[BeforeHandler, ...]:
        return tuple(self._handlers)

    def add(self, handler: BeforeHandler) -> None:
        self._handlers.append(handler)

    def remove(self, handler: BeforeHandler) -> bool:
        try:
            self._handlers.remove(handler)
        except ValueError:
            return False
        return True

    async def __call__(self, *args: Any, **kwargs: Any) -> Any:
        for handler in list(self._handlers):
            try:
                outcome = handler(args, kwargs)
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception as exc:
                logger.warning(
                    "Hook handler on '%s' failed: %s", self.name, exc, exc_info=True,
                )

        result = self.operation(*args, **kwargs)
        if inspect.isawaitable(result):
            result = await result
        return result

    def __repr__(self) -> str:
        return f"HookPoint(name={self.name!r}, handlers={len(self._handlers)})"


class HookHandle:
    """Reverses exactly the registrations it was created for."""

    def __init__(self, registrations: Iterable[tuple[HookPoint, BeforeHandler]] = ()):
        self._registrations = list(registrations)
        self._disposed = False

    @classmethod
    def combine(cls, handles: Iterable["HookHandle"]) -> "HookHandle":
        registrations: list[tuple[HookPoint, BeforeHandler]] = []
        for handle in handles:
            registrations.extend(handle._registrations)
            handle._disposed = True  # ownership moves to the combined handle
        return cls(registrations)

    @property
    def hook_names(self) -> list[str]:
        return [point.name for point, _ in self._registrations]

    @property
    def disposed(self) -> bool:
        return self._disposed

    def dispose(self) -> None:
        if self._disposed:
            return
        for point, handler in reversed(self._registrations):
            point.remove(handler)
        self._disposed = True
        logger.debug("Disposed hooks on: %s", ", ".join(self.hook_names) or "nothing")

    def __enter__(self) -> "HookHandle":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.dispose()


class HookRegistry:
    """Named hook points; one registry per host instance."""

    def __init__(self) -> None:
        self._points: dict[str, HookPoint] = {}

    def define(self, name: str, operation: Callable[..., Any]) -> HookPoint:
        if name in self._points:
            raise ValueError(f"Hook point '{name}' is already defined")
        point = HookPoint(name, operation)
        self._points[name] = point
        return point

    def get(self, name: str) -> HookPoint | None:
        return self._points.get(name)

    def names(self) -> list[str]:
        return list(self._points)

    def before(self, name: str, handler: BeforeHandler) -> HookHandle:
        """
        Run ``handler(args, kwargs)`` before the operation named ``name``.

        Raises:
            HookPointNotFound: If no hook point called ``name`` exists.
        """
        point = self._points.get(name)
        if point is None:
            raise HookPointNotFound(name)
        point.add(handler)
        return HookHandle([(point, handler)])

    async def call(self, name: str, *args: Any, **kwargs: Any) -> Any:
        point = self._points.get(name)
        if point is None:
            raise HookPointNotFound(name)
        return await point(*args, **kwargs)
