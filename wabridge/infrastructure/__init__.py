# Infrastructure Layer
# ====================
# Contains all external service integrations:
# - whatsapp/: Selenium-based WhatsApp Web automation
# - llm/: OpenAI-compatible chat completion client (Groq by default)
# - persistence/: JSON file stores for templates and persona
# - config/: Environment and settings management
#
# This layer can be replaced entirely without affecting domain/application layers.
