"""
Domain Models - Templates, Persona, Conversation Turns
=======================================================

Plain records shared by every layer. No I/O happens here.
"""

from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Dict, Optional


DEFAULT_BRAND = "XYZ Şirketi"
DEFAULT_ADDRESS = "Örnek Mah. 123, İstanbul"
DEFAULT_TONE = "Samimi, kısa ve anlaşılır"
DEFAULT_EXTRA_INSTRUCTIONS = "Asla spam yapma, her zaman yardımcı ol."


class ConnectionState(Enum):
    """Lifecycle of the WhatsApp Web session."""
    INITIALIZING = "initializing"
    QR_PENDING = "qr_pending"
    AUTHENTICATED = "authenticated"
    READY = "ready"
    DISCONNECTED = "disconnected"


class Role(Enum):
    USER = "user"
    ASSISTANT = "assistant"


@dataclass
class Template:
    """Canned reply sent when `trigger` appears in an inbound message."""
    trigger: str
    reply: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Template":
        return cls(trigger=str(data.get("trigger", "")), reply=str(data.get("reply", "")))

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)


@dataclass
class Persona:
    """Brand voice used to build the system prompt for AI replies."""
    brand: str = DEFAULT_BRAND
    address: str = DEFAULT_ADDRESS
    tone: str = DEFAULT_TONE
    extra_instructions: str = DEFAULT_EXTRA_INSTRUCTIONS

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Persona":
        return cls(
            brand=str(data.get("brand", DEFAULT_BRAND)),
            address=str(data.get("address", DEFAULT_ADDRESS)),
            tone=str(data.get("tone", DEFAULT_TONE)),
            extra_instructions=str(data.get("extra_instructions", DEFAULT_EXTRA_INSTRUCTIONS)),
        )

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)


@dataclass(frozen=True)
class ConversationTurn:
    role: Role
    content: str

    def to_message(self) -> Dict[str, str]:
        """Shape expected by chat-completion APIs and the dashboard."""
        return {"role": self.role.value, "content": self.content}


@dataclass(frozen=True)
class InboundMessage:
    """A message received from WhatsApp."""
    sender: str
    body: str
    message_id: str = ""


class SessionEventKind(Enum):
    QR = "qr"
    AUTHENTICATED = "authenticated"
    READY = "ready"
    DISCONNECTED = "disconnected"
    MESSAGE = "message"


@dataclass(frozen=True)
class SessionEvent:
    """Event raised by the messaging backend and consumed by the bridge loop."""
    kind: SessionEventKind
    payload: Optional[Any] = field(default=None)
