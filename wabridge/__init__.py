# WhatsApp AI Bridge - Auto-Reply System for Business WhatsApp Accounts
# =====================================================================
# Connects a WhatsApp Web session to an LLM chat-completion backend using
# a Layered Architecture:
#
# ARCHITECTURE LAYERS:
# - Presentation:   FastAPI dashboard + WebSocket push channel (web/)
# - Application:    Message routing and session event loop (application/)
# - Domain:         Templates, persona, conversation history (domain/)
# - Infrastructure: External services (WhatsApp Web, LLM API, JSON files)
#
# Inbound messages are answered from reply templates when a trigger
# matches, otherwise by the LLM seeded with the brand persona.
