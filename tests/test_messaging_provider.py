# =============================================================================
# Tests for the Selenium provider polling loop and WhatsApp id helpers
# =============================================================================
# The WhatsAppClient is replaced by a scripted fake; no browser is started.
# =============================================================================

import threading

import pytest
from selenium.common.exceptions import WebDriverException

from wabridge.domain.models import InboundMessage, SessionEventKind
from wabridge.infrastructure.whatsapp import SeleniumProvider, WhatsAppClientError
from wabridge.infrastructure.whatsapp.whatsapp_client import WhatsAppClient, address_to_phone, parse_message_id


class ScriptedClient:
    """Logged out for the first `qr_polls` polls, then logged in."""

    def __init__(self, qr_polls=2, unread=None, **kwargs):
        self.kwargs = kwargs
        self.polls = 0
        self.qr_polls = qr_polls
        self.unread = list(unread or [])
        self.open_chat = []
        self.sent = []
        self.closed = False
        self.logged_out = False
        self.profile_cleared = False

    def is_logged_in(self):
        self.polls += 1
        return self.polls > self.qr_polls

    def read_qr(self):
        return {"ref": "2@same-qr", "image": "data:image/png;base64,AAA"}

    def read_unread_messages(self):
        # Same messages reported on every poll; the provider must dedupe
        return list(self.unread)

    def read_open_chat_messages(self):
        return list(self.open_chat)

    def send_to(self, address, text):
        self.sent.append((address, text))
        return True

    def logout(self):
        self.logged_out = True

    def clear_profile(self):
        self.profile_cleared = True

    def close(self):
        self.closed = True


class EventCollector:
    """Thread-safe emit sink that signals once `until` kinds were seen."""

    def __init__(self, until):
        self.events = []
        self.until = set(until)
        self.done = threading.Event()
        self._lock = threading.Lock()

    def __call__(self, event):
        with self._lock:
            self.events.append(event)
            if self.until <= {e.kind for e in self.events}:
                self.done.set()

    def kinds(self):
        with self._lock:
            return [e.kind for e in self.events]


def _provider(client, **kwargs):
    return SeleniumProvider(
        poll_interval=0.5,
        client_factory=lambda **kw: client,
        **kwargs,
    )


class TestMessageIdParsing:

    def test_incoming(self):
        assert parse_message_id("false_905551112233@c.us_3EB0C4A1B2") == (
            False, "905551112233@c.us", "3EB0C4A1B2",
        )

    def test_outgoing(self):
        from_me, jid, _ = parse_message_id("true_905551112233@c.us_ABCDEF")
        assert from_me is True
        assert jid == "905551112233@c.us"

    def test_garbage(self):
        assert parse_message_id("") is None
        assert parse_message_id(None) is None
        assert parse_message_id("chat-list-item") is None

    def test_address_to_phone(self):
        assert address_to_phone("905551112233@c.us") == "905551112233"
        assert address_to_phone("905551112233") == "905551112233"


class TestSeleniumProvider:

    def test_qr_then_ready_then_messages(self):
        message = InboundMessage("905551112233@c.us", "merhaba", "MSG1")
        client = ScriptedClient(qr_polls=2, unread=[message])
        provider = _provider(client)
        collector = EventCollector(until=[SessionEventKind.READY, SessionEventKind.MESSAGE])

        provider.start(collector)
        try:
            assert collector.done.wait(timeout=10)
            # Let a few more polls run so duplicates would show up
            threading.Event().wait(1.2)
        finally:
            provider.close()

        kinds = collector.kinds()
        # Identical QR on consecutive polls is reported once
        assert kinds.count(SessionEventKind.QR) == 1
        assert kinds.index(SessionEventKind.QR) < kinds.index(SessionEventKind.AUTHENTICATED)
        assert kinds.index(SessionEventKind.AUTHENTICATED) < kinds.index(SessionEventKind.READY)
        assert kinds.count(SessionEventKind.MESSAGE) == 1
        assert client.closed is True

    def test_send_goes_through_client(self):
        client = ScriptedClient(qr_polls=0)
        provider = _provider(client)
        collector = EventCollector(until=[SessionEventKind.READY])

        provider.start(collector)
        try:
            assert collector.done.wait(timeout=10)
            assert provider.is_connected() is True
            assert provider.send_message("905551112233@c.us", "Hoş geldiniz") is True
        finally:
            provider.close()

        assert client.sent == [("905551112233@c.us", "Hoş geldiniz")]

    def test_follow_up_in_open_chat_is_emitted(self):
        first = InboundMessage("905551112233@c.us", "merhaba", "MSG1")
        client = ScriptedClient(qr_polls=0, unread=[first])
        provider = _provider(client)
        collector = EventCollector(until=[SessionEventKind.MESSAGE])

        provider.start(collector)
        try:
            assert collector.done.wait(timeout=10)
            # After the reply the chat stays open; the next message has no badge
            assert provider.send_message(first.sender, "Hoş geldiniz") is True
            client.unread = []
            client.open_chat = [first, InboundMessage(first.sender, "fiyat nedir?", "MSG2")]

            pause = threading.Event()
            for _ in range(20):
                if collector.kinds().count(SessionEventKind.MESSAGE) >= 2:
                    break
                pause.wait(0.5)
        finally:
            provider.close()

        bodies = [e.payload.body for e in collector.events if e.kind is SessionEventKind.MESSAGE]
        assert bodies == ["merhaba", "fiyat nedir?"]

    def test_driver_crash_closes_client(self):
        class CrashingClient(ScriptedClient):
            def is_logged_in(self):
                raise WebDriverException("chrome crashed")

        client = CrashingClient()
        provider = _provider(client)
        collector = EventCollector(until=[SessionEventKind.DISCONNECTED])

        provider.start(collector)
        assert collector.done.wait(timeout=10)

        assert client.closed is True
        assert provider.is_connected() is False
        assert provider.send_message("905551112233@c.us", "hi") is False
        provider.close()

    def test_send_without_session(self):
        provider = _provider(ScriptedClient())
        assert provider.send_message("a@c.us", "hi") is False

    def test_logout_clears_session(self):
        client = ScriptedClient(qr_polls=0)
        provider = _provider(client)
        collector = EventCollector(until=[SessionEventKind.READY])

        provider.start(collector)
        assert collector.done.wait(timeout=10)
        provider.logout()

        assert client.logged_out is True
        assert client.closed is True
        assert client.profile_cleared is True
        assert provider.is_connected() is False

    def test_logout_without_session(self):
        provider = _provider(ScriptedClient())
        with pytest.raises(WhatsAppClientError):
            provider.logout()

    def test_launch_failure_reports_disconnect(self):
        def broken_factory(**kwargs):
            raise RuntimeError("chrome not found")

        provider = SeleniumProvider(poll_interval=0.5, client_factory=broken_factory)
        collector = EventCollector(until=[SessionEventKind.DISCONNECTED])

        provider.start(collector)
        assert collector.done.wait(timeout=10)
        provider.close()

    def test_seen_ids_bounded(self):
        provider = SeleniumProvider(max_seen_ids=2, client_factory=ScriptedClient)
        assert provider._remember("a") is True
        assert provider._remember("a") is False
        provider._remember("b")
        provider._remember("c")
        # "a" was evicted, so it counts as new again
        assert provider._remember("a") is True
        assert provider._remember("") is True
        assert provider._remember("") is True


class TestOpenChatScan:

    def _client(self, rows):
        # Bypass __init__ so no browser is launched
        client = WhatsAppClient.__new__(WhatsAppClient)
        client._get_message_elements = lambda: rows
        client._extract_text_from_message = lambda element: element
        return client

    def test_only_messages_after_last_reply(self):
        jid = "905551112233@c.us"
        client = self._client([
            ("merhaba", True, jid, "IN1"),
            ("Hoş geldiniz", False, jid, "OUT1"),
            ("fiyat nedir?", True, jid, "IN2"),
            ("", True, jid, "IN3"),
        ])

        messages = client.read_open_chat_messages()
        assert messages == [InboundMessage(jid, "fiyat nedir?", "IN2")]

    def test_no_reply_yet(self):
        jid = "905551112233@c.us"
        client = self._client([("merhaba", True, jid, "IN1")])
        assert [m.message_id for m in client.read_open_chat_messages()] == ["IN1"]

    def test_empty_chat(self):
        assert self._client([]).read_open_chat_messages() == []
