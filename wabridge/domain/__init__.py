# Domain Layer
# ============
# Pure business records and rules, no external dependencies:
# - models: templates, persona, turns, connection state, session events
# - history: bounded per-sender conversation log
# - matching: template trigger lookup
# - prompt: persona -> system prompt

from .models import (
    ConnectionState,
    ConversationTurn,
    InboundMessage,
    Persona,
    Role,
    SessionEvent,
    SessionEventKind,
    Template,
)
from .history import ConversationHistory
from .matching import find_matching_template
from .prompt import build_system_prompt
