"""
Bridge Service - Session Events to Router and Dashboard
========================================================

The messaging backend raises events on its own thread. They are handed to a
bounded asyncio queue and consumed by a single loop, so inbound messages are
answered one at a time in arrival order.

DEPLOYMENT NOTE:
    logout() ends the process after unlinking the device. Run the bridge
    under a supervisor (systemd, docker `restart: always`, ...) so it comes
    back up and shows a fresh QR code.
"""

import asyncio
import logging
import os
import signal
from typing import Any, Callable, Dict, Optional

from fastapi.concurrency import run_in_threadpool

from ..domain.models import ConnectionState, SessionEvent, SessionEventKind
from ..infrastructure.whatsapp.messaging_provider import MessagingProvider
from .router import MessageRouter

logger = logging.getLogger(__name__)


def terminate_process() -> None:
    """Ask the server to exit the way Ctrl+C / `docker stop` would."""
    logger.warning("Terminating process after logout; a supervisor must restart it")
    os.kill(os.getpid(), signal.SIGTERM)


class BridgeService:
    """
    Owns the connection state and the event loop feeding the router.

    Usage:
        bridge = BridgeService(provider, router, notifier)
        await bridge.start()      # launches the provider and the consumer task
        bridge.status()           # {"status": "ok", "connectionState": ..., "hasQr": ...}
        await bridge.stop()
    """

    def __init__(
        self,
        provider: MessagingProvider,
        router: MessageRouter,
        notifier,
        queue_size: int = 100,
        shutdown: Callable[[], None] = terminate_process,
    ):
        self._provider = provider
        self._router = router
        self._notifier = notifier
        self._queue_size = queue_size
        self._shutdown = shutdown

        self._state = ConnectionState.INITIALIZING
        self._qr: Optional[Dict[str, Any]] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._queue: Optional[asyncio.Queue] = None
        self._consumer: Optional[asyncio.Task] = None

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def qr(self) -> Optional[Dict[str, Any]]:
        return self._qr

    def status(self) -> Dict[str, Any]:
        return {
            "status": "ok",
            "connectionState": self._state.value,
            "hasQr": self._qr is not None,
        }

    # ── Lifecycle ──────────────────────────────────────────────────

    async def start(self) -> None:
        self._loop = asyncio.get_running_loop()
        self._queue = asyncio.Queue(maxsize=self._queue_size)
        self._consumer = asyncio.create_task(self.run(), name="bridge-consumer")
        try:
            await run_in_threadpool(self._provider.start, self.publish)
        except Exception:
            await self._cancel_consumer()
            raise
        logger.info("Bridge started")

    async def stop(self) -> None:
        await self._cancel_consumer()
        await run_in_threadpool(self._provider.close)
        logger.info("Bridge stopped")

    async def _cancel_consumer(self) -> None:
        if self._consumer is not None:
            self._consumer.cancel()
            try:
                await self._consumer
            except asyncio.CancelledError:
                pass
            self._consumer = None

    async def request_qr(self) -> None:
        """Restart the WhatsApp session so a new QR challenge is produced."""
        self._state = ConnectionState.INITIALIZING
        self._qr = None
        await run_in_threadpool(self._provider.start, self.publish)
        logger.info("New QR code requested")

    async def logout(self) -> None:
        """Unlink the device and drop the stored session. Raises on failure."""
        await run_in_threadpool(self._provider.logout)
        self._state = ConnectionState.DISCONNECTED
        self._qr = None
        logger.info("WhatsApp session logged out")

    def terminate(self) -> None:
        self._shutdown()

    # ── Event channel ──────────────────────────────────────────────

    def publish(self, event: SessionEvent) -> None:
        """
        Queue an event for the consumer loop. Safe to call from any thread.

        From a foreign thread this blocks while the queue is full.
        """
        loop = self._loop
        if loop is None or self._queue is None or loop.is_closed():
            logger.warning(f"Dropping {event.kind.value} event: bridge not started")
            return

        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if running is loop:
            try:
                self._queue.put_nowait(event)
            except asyncio.QueueFull:
                logger.warning(f"Event queue full, dropping {event.kind.value} event")
            return

        asyncio.run_coroutine_threadsafe(self._queue.put(event), loop).result()

    async def join(self) -> None:
        """Wait until every queued event has been handled."""
        if self._queue is not None:
            await self._queue.join()

    async def run(self) -> None:
        while True:
            event = await self._queue.get()
            try:
                await self._dispatch(event)
            except Exception as e:
                logger.exception(f"Error handling {event.kind.value} event: {e}")
            finally:
                self._queue.task_done()

    async def _dispatch(self, event: SessionEvent) -> None:
        kind = event.kind

        if kind is SessionEventKind.MESSAGE:
            await self._router.handle(event.payload)

        elif kind is SessionEventKind.QR:
            self._state = ConnectionState.QR_PENDING
            self._qr = event.payload
            await self._notifier.qr_code_updated(event.payload)

        elif kind is SessionEventKind.AUTHENTICATED:
            self._state = ConnectionState.AUTHENTICATED
            logger.info("WhatsApp authenticated")
            await self._notifier.authenticated()

        elif kind is SessionEventKind.READY:
            self._state = ConnectionState.READY
            self._qr = None
            logger.info("WhatsApp connected")
            await self._notifier.ready()

        elif kind is SessionEventKind.DISCONNECTED:
            self._state = ConnectionState.DISCONNECTED
            logger.warning("WhatsApp disconnected")
            await self._notifier.disconnected()
