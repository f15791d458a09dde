"""
Protocol event pump.

Playwright delivers every CDP response through its connection reader; the
pump is the supervised consumer on top of it. It drains connection-level
notifications for the lifetime of the process and turns a lost connection
into an explicit shutdown signal instead of a crash.
"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any

from svgpdf.shared.logging import get_logger

logger = get_logger(__name__)

DISCONNECTED = "browser.disconnected"


@dataclass
class ProtocolEvent:
    """A notification received from the browser connection."""
    name: str
    payload: Any = None
    received_at: float = field(default_factory=time.monotonic)


class EventPump:
    """Background task that services browser notifications."""

    def __init__(self, name: str = "svgpdf-event-pump"):
        self._name = name
        self._queue: asyncio.Queue[ProtocolEvent | None] = asyncio.Queue()
        self._closed = asyncio.Event()
        self._task: asyncio.Task | None = None
        self.events_processed = 0
        self.close_reason: str | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def attach(self, browser: Any) -> None:
        """Subscribe to the browser's connection-level events."""
        browser.on("disconnected", lambda _browser: self.emit(DISCONNECTED))

    def emit(self, name: str, payload: Any = None) -> None:
        """Queue a notification. Safe to call from Playwright event callbacks."""
        if self.closed:
            return
        self._queue.put_nowait(ProtocolEvent(name, payload))

    def start(self) -> None:
        if self._task is not None:
            raise RuntimeError("Event pump already started")
        self._task = asyncio.create_task(self._run(), name=self._name)
        self._task.add_done_callback(self._on_task_done)
        logger.debug("Event pump started")

    async def wait_closed(self) -> None:
        await self._closed.wait()

    async def stop(self) -> None:
        """Stop draining events. Idempotent."""
        if self._task is None or self._task.done():
            self._mark_closed("stopped")
            return

        self._queue.put_nowait(None)
        try:
            await asyncio.wait_for(asyncio.shield(self._task), timeout=5)
        except asyncio.TimeoutError:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._mark_closed("stopped")

    async def _run(self) -> None:
        while True:
            event = await self._queue.get()
            if event is None:
                logger.debug("Event pump received end of stream")
                self._mark_closed("stream ended")
                return

            self.events_processed += 1
            if event.name == DISCONNECTED:
                logger.error("Browser connection closed; signalling shutdown")
                self._mark_closed("browser disconnected")
                return

            logger.debug(f"Protocol event: {event.name}")

    def _on_task_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            self._mark_closed("cancelled")
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"Event pump failed: {exc!r}")
            self._mark_closed(f"pump failed: {exc}")

    def _mark_closed(self, reason: str) -> None:
        if not self._closed.is_set():
            self.close_reason = reason
            self._closed.set()
