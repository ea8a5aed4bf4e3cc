"""
Messaging Provider - Abstraction Layer for WhatsApp Messaging
==============================================================

Provides a unified interface for the WhatsApp session: lifecycle events and
inbound messages flow out through an `emit` callback, replies go in through
`send_message`. Currently backed by Selenium WhatsApp Web automation.

USAGE:
    provider = SeleniumProvider(headless=True)
    provider.start(emit=bridge.publish)
    provider.send_message("905551112233@c.us", "Merhaba!")
"""

import logging
import threading
from abc import ABC, abstractmethod
from collections import OrderedDict
from pathlib import Path
from typing import Callable, List, Optional

from selenium.common.exceptions import WebDriverException

from ...domain.models import SessionEvent, SessionEventKind
from .whatsapp_client import WhatsAppClient, WhatsAppClientError

logger = logging.getLogger(__name__)

EventSink = Callable[[SessionEvent], None]


class MessagingProvider(ABC):
    """
    Abstract base class for WhatsApp messaging providers.
    Implement this interface to add new messaging backends.
    """

    @abstractmethod
    def start(self, emit: EventSink) -> None:
        """Start (or restart) the session. Events are delivered through `emit`."""
        ...

    @abstractmethod
    def is_connected(self) -> bool:
        """Check if provider is currently connected and ready."""
        ...

    @abstractmethod
    def send_message(self, address: str, text: str) -> bool:
        """Send a text message to a WhatsApp address. Returns True if sent."""
        ...

    @abstractmethod
    def logout(self) -> None:
        """Unlink the device and drop the stored session."""
        ...

    @abstractmethod
    def close(self) -> None:
        """Clean up resources."""
        ...


class SeleniumProvider(MessagingProvider):
    """
    Selenium-based WhatsApp Web automation.

    A background thread owns the polling loop: it watches for QR changes,
    login/logout transitions and unread chats. All driver access, from the
    poller or from send_message, goes through one lock.
    """

    def __init__(
        self,
        headless: bool = True,
        profile_dir: Path = Path("whatsapp_profile"),
        poll_interval: float = 2.0,
        max_seen_ids: int = 500,
        client_factory: Callable[..., WhatsAppClient] = WhatsAppClient,
    ):
        self._headless = headless
        self._profile_dir = Path(profile_dir)
        self._poll_interval = poll_interval
        self._max_seen_ids = max_seen_ids
        self._client_factory = client_factory

        self._client: Optional[WhatsAppClient] = None
        self._connected = False
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._seen_ids: "OrderedDict[str, None]" = OrderedDict()

    def start(self, emit: EventSink) -> None:
        """Launch the browser on a poller thread, replacing any running session."""
        self._shutdown_session()
        self._stop = threading.Event()
        self._thread = threading.Thread(
            target=self._run,
            args=(emit, self._stop),
            name="whatsapp-poller",
            daemon=True,
        )
        self._thread.start()

    def is_connected(self) -> bool:
        return self._connected and self._client is not None

    def send_message(self, address: str, text: str) -> bool:
        """Open the sender's chat and type the reply."""
        with self._lock:
            if not self._client:
                logger.error("Cannot send: WhatsApp session not started")
                return False
            return self._client.send_to(address, text)

    def logout(self) -> None:
        self._stop_poller()
        with self._lock:
            client = self._client
            if client is None:
                raise WhatsAppClientError("No active WhatsApp session")
            try:
                client.logout()
            finally:
                client.close()
                client.clear_profile()
                self._client = None
                self._connected = False

    def close(self) -> None:
        self._shutdown_session()

    # ── Internals ──────────────────────────────────────────────────

    def _stop_poller(self) -> None:
        self._stop.set()
        thread = self._thread
        if thread and thread.is_alive() and thread is not threading.current_thread():
            thread.join(timeout=self._poll_interval * 2 + 5)
        self._thread = None

    def _shutdown_session(self) -> None:
        self._stop_poller()
        with self._lock:
            if self._client:
                self._client.close()
            self._client = None
            self._connected = False

    def _remember(self, message_id: str) -> bool:
        """Record a message id; False if it was already handled."""
        if not message_id:
            return True
        if message_id in self._seen_ids:
            return False
        self._seen_ids[message_id] = None
        while len(self._seen_ids) > self._max_seen_ids:
            self._seen_ids.popitem(last=False)
        return True

    def _run(self, emit: EventSink, stop: threading.Event) -> None:
        try:
            client = self._client_factory(headless=self._headless, profile_dir=self._profile_dir)
        except Exception as e:
            logger.exception(f"Failed to launch WhatsApp Web: {e}")
            emit(SessionEvent(SessionEventKind.DISCONNECTED))
            return

        with self._lock:
            if stop.is_set():
                client.close()
                return
            self._client = client

        last_qr_ref = None
        while not stop.is_set():
            # Events are emitted outside the lock: emit may block on a full
            # queue whose consumer is waiting on send_message.
            pending: List[SessionEvent] = []
            try:
                with self._lock:
                    if self._client is not client:
                        break
                    if client.is_logged_in():
                        if not self._connected:
                            self._connected = True
                            last_qr_ref = None
                            logger.info("WhatsApp session ready")
                            pending.append(SessionEvent(SessionEventKind.AUTHENTICATED))
                            pending.append(SessionEvent(SessionEventKind.READY))
                        # The open chat is scanned too: its new messages carry no badge
                        inbound = client.read_unread_messages() + client.read_open_chat_messages()
                        for message in inbound:
                            if self._remember(message.message_id):
                                pending.append(SessionEvent(SessionEventKind.MESSAGE, message))
                    else:
                        if self._connected:
                            self._connected = False
                            logger.warning("WhatsApp session lost")
                            pending.append(SessionEvent(SessionEventKind.DISCONNECTED))
                        qr = client.read_qr()
                        if qr and qr["ref"] != last_qr_ref:
                            last_qr_ref = qr["ref"]
                            logger.info("QR code generated")
                            pending.append(SessionEvent(SessionEventKind.QR, qr))
            except WebDriverException as e:
                logger.exception(f"WhatsApp Web driver failed: {e}")
                with self._lock:
                    if self._client is client:
                        client.close()
                        self._client = None
                    self._connected = False
                emit(SessionEvent(SessionEventKind.DISCONNECTED))
                return

            for event in pending:
                emit(event)

            stop.wait(self._poll_interval)
