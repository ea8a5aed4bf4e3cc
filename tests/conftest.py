# =============================================================================
# Shared fixtures: fake WhatsApp provider, fake completion backend,
# recording notifier and temp-file settings.
# =============================================================================

from typing import List, Optional

import pytest

from wabridge.domain.history import ConversationHistory
from wabridge.infrastructure.config import Settings, StorageSettings
from wabridge.infrastructure.llm import CompletionServiceError
from wabridge.infrastructure.persistence import PersonaConfig, TemplateStore
from wabridge.infrastructure.whatsapp.messaging_provider import MessagingProvider
from wabridge.application.router import MessageRouter


class FakeProvider(MessagingProvider):
    """Records outbound messages instead of driving a browser."""

    def __init__(self, send_result: bool = True, logout_error: Optional[Exception] = None):
        self.sent: List[tuple] = []
        self.send_result = send_result
        self.send_error: Optional[Exception] = None
        self.logout_error = logout_error
        self.start_calls = 0
        self.logged_out = False
        self.closed = False
        self.emit = None

    def start(self, emit):
        self.start_calls += 1
        self.emit = emit

    def is_connected(self) -> bool:
        return self.emit is not None

    def send_message(self, address: str, text: str) -> bool:
        if self.send_error is not None:
            raise self.send_error
        self.sent.append((address, text))
        return self.send_result

    def logout(self) -> None:
        if self.logout_error is not None:
            raise self.logout_error
        self.logged_out = True

    def close(self) -> None:
        self.closed = True


class FakeCompletion:
    """Returns a canned reply (or raises) and records every request."""

    def __init__(self, reply: Optional[str] = "AI reply", error: Optional[Exception] = None):
        self.reply = reply
        self.error = error
        self.requests: List[list] = []

    def complete(self, messages):
        self.requests.append(list(messages))
        if self.error is not None:
            raise self.error
        return self.reply


class RecordingNotifier:
    """Collects notifier calls as (event, data) tuples."""

    def __init__(self):
        self.events: List[tuple] = []

    async def qr_code_updated(self, payload):
        self.events.append(("qr_code_updated", payload))

    async def authenticated(self):
        self.events.append(("authenticated", None))

    async def ready(self):
        self.events.append(("ready", None))

    async def disconnected(self):
        self.events.append(("disconnected", None))

    async def message_exchanged(self, sender, inbound, outbound):
        self.events.append(
            ("message_exchanged", {"sender": sender, "inbound": inbound, "outbound": outbound})
        )


@pytest.fixture
def settings(tmp_path):
    return Settings(
        storage=StorageSettings(
            templates_file=tmp_path / "templates.json",
            persona_file=tmp_path / "persona.json",
        )
    )


@pytest.fixture
def template_store(settings):
    return TemplateStore(settings.storage.templates_file)


@pytest.fixture
def persona_config(settings):
    return PersonaConfig(settings.storage.persona_file)


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def completion():
    return FakeCompletion()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def router(template_store, persona_config, completion, provider, notifier):
    return MessageRouter(
        templates=template_store,
        persona=persona_config,
        completion=completion,
        provider=provider,
        notifier=notifier,
        history=ConversationHistory(limit=20),
    )


@pytest.fixture
def failing_completion():
    return FakeCompletion(error=CompletionServiceError("quota exceeded"))
