from .whatsapp_client import WhatsAppClient, WhatsAppClientError, WhatsAppBlockedError
from .messaging_provider import MessagingProvider, SeleniumProvider

__all__ = [
    "WhatsAppClient",
    "WhatsAppClientError",
    "WhatsAppBlockedError",
    "MessagingProvider",
    "SeleniumProvider",
]
