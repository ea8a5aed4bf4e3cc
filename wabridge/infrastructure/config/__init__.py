from .settings import (
    Settings,
    WhatsAppSettings,
    LLMSettings,
    StorageSettings,
    ServerSettings,
    get_settings,
    configure_logging,
)

__all__ = [
    "Settings",
    "WhatsAppSettings",
    "LLMSettings",
    "StorageSettings",
    "ServerSettings",
    "get_settings",
    "configure_logging",
]
