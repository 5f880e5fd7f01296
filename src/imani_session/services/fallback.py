"""
imani_session.services.fallback

Demo-Mode Fallback Controller.

Responsibilities:
- Hold the backend every service talks to (hosted or demo) behind one accessor.
- Switch to a freshly seeded `DemoBackend` explicitly, or reactively when a call
  fails for environmental reasons (network, row-level security, policy).
- Notify listeners (the session store) when demo mode is entered.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import TypeVar

from imani_session.backends.base import Backend
from imani_session.backends.demo import DemoBackend
from imani_session.domain.errors import is_environmental
from imani_session.observability.logging import get_logger
from imani_session.settings import Settings

log = get_logger(__name__)

T = TypeVar("T")

DemoListener = Callable[[DemoBackend, str], None]


class FallbackController:
    def __init__(
        self,
        *,
        settings: Settings,
        real: Backend,
        demo_factory: Callable[[], DemoBackend] | None = None,
    ) -> None:
        self._settings = settings
        self._real = real
        self._demo: DemoBackend | None = None
        self._demo_factory = demo_factory or (lambda: DemoBackend(settings=settings))
        self._listeners: list[DemoListener] = []

    @property
    def backend(self) -> Backend:
        return self._demo if self._demo is not None else self._real

    @property
    def real(self) -> Backend:
        return self._real

    @property
    def demo(self) -> DemoBackend | None:
        return self._demo

    @property
    def demo_active(self) -> bool:
        return self._demo is not None

    def add_listener(self, listener: DemoListener) -> Callable[[], None]:
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def activate_demo(self, *, reason: str) -> DemoBackend:
        """
        Enter demo mode. Idempotent: while already active the current demo backend
        (and its accumulated writes) is kept.
        """

        if self._demo is not None:
            return self._demo
        self._demo = self._demo_factory()
        log.warning("demo_mode.activated", reason=reason)
        for listener in list(self._listeners):
            listener(self._demo, reason)
        return self._demo

    def deactivate_demo(self) -> None:
        if self._demo is None:
            return
        self._demo = None
        log.info("demo_mode.deactivated")

    async def run(self, op: Callable[[Backend], Awaitable[T]], *, operation: str) -> T:
        """
        Run `op` against the active backend. An environmental failure on the hosted
        backend switches to demo mode and `op` is re-run against the demo backend, so
        the caller receives demo data instead of an error.
        """

        backend = self.backend
        try:
            return await op(backend)
        except Exception as e:
            if backend is self._demo or not is_environmental(e):
                raise
            log.warning("backend.environmental_failure", operation=operation, error=str(e))
            demo = self.activate_demo(reason=f"{operation}: {e}")
            return await op(demo)

    async def aclose(self) -> None:
        self._demo = None
        await self._real.aclose()


# --- Module Notes -----------------------------------------------------------
# This is the only place that knows two backends exist; everything downstream asks
# for `controller.backend` or goes through `controller.run`.
