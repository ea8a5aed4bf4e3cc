"""
Settings Module - Centralized Configuration Management
=======================================================

ARCHITECTURAL DECISION:
- All configuration is loaded from environment variables (no hardcoded secrets)
- Settings are immutable dataclass for safety and clarity
- Single source of truth for all configurable values

EXTENSIBILITY:
- To switch LLM provider: point LLM_API_URL at any OpenAI-compatible endpoint
- To move the data files: set TEMPLATES_FILE / PERSONA_FILE
"""

import os
import sys
import logging
from dataclasses import dataclass, field
from typing import List
from pathlib import Path
from functools import lru_cache

from dotenv import load_dotenv

# Load .env file if present (development convenience)
load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, "").strip())
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, "").strip())
    except ValueError:
        return default


@dataclass(frozen=True)
class WhatsAppSettings:
    """WhatsApp Web automation settings."""

    # QR codes are forwarded to the dashboard, so the browser can run headless
    headless: bool = field(default_factory=lambda: _env_bool("WHATSAPP_HEADLESS", True))

    # Chrome profile holding the logged-in session (removed on logout)
    profile_dir: Path = field(
        default_factory=lambda: Path(os.getenv("WHATSAPP_PROFILE_DIR", "whatsapp_profile"))
    )

    # Seconds between polls for QR changes and unread chats
    poll_interval: float = field(
        default_factory=lambda: max(0.5, _env_float("WHATSAPP_POLL_INTERVAL", 2.0))
    )

    # Message ids remembered to avoid answering the same message twice
    max_seen_ids: int = 500


@dataclass(frozen=True)
class LLMSettings:
    """Chat completion backend settings (Groq, OpenAI-compatible API)."""

    api_key: str = field(default_factory=lambda: os.getenv("GROQ_API_KEY", ""))
    api_url: str = field(
        default_factory=lambda: os.getenv(
            "LLM_API_URL", "https://api.groq.com/openai/v1/chat/completions"
        )
    )
    model: str = field(default_factory=lambda: os.getenv("LLM_MODEL", "llama-3.3-70b-versatile"))

    # Same ceiling the vendor SDK applies by default
    timeout_seconds: int = field(default_factory=lambda: _env_int("LLM_TIMEOUT_SECONDS", 60))

    # Sent when the model answers with nothing
    fallback_reply: str = "Anlayamadım 😅"

    # Sent when the completion call fails
    error_reply: str = "AI servisine şu anda ulaşılamıyor. Daha sonra tekrar deneyin."


@dataclass(frozen=True)
class StorageSettings:
    """Flat JSON files backing the dashboard-managed data."""

    templates_file: Path = field(
        default_factory=lambda: Path(os.getenv("TEMPLATES_FILE", "templates.json"))
    )
    persona_file: Path = field(
        default_factory=lambda: Path(os.getenv("PERSONA_FILE", "persona.json"))
    )


@dataclass(frozen=True)
class ServerSettings:
    """HTTP / WebSocket server settings."""

    host: str = field(default_factory=lambda: os.getenv("HOST", "0.0.0.0"))
    port: int = field(default_factory=lambda: _env_int("PORT", 3000))
    cors_origins: List[str] = field(
        default_factory=lambda: [
            origin.strip()
            for origin in os.getenv("CORS_ORIGINS", "*").split(",")
            if origin.strip()
        ]
    )
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO").upper())


@dataclass(frozen=True)
class Settings:
    """
    Root settings container - Single source of truth for all configuration.

    Usage:
        from wabridge.infrastructure.config import get_settings
        settings = get_settings()
        print(settings.llm.model)
    """

    # Sub-settings groups
    whatsapp: WhatsAppSettings = field(default_factory=WhatsAppSettings)
    llm: LLMSettings = field(default_factory=LLMSettings)
    storage: StorageSettings = field(default_factory=StorageSettings)
    server: ServerSettings = field(default_factory=ServerSettings)

    # Turns kept per sender for the completion context
    history_limit: int = field(default_factory=lambda: max(1, _env_int("HISTORY_LIMIT", 20)))

    # Pending session events before the Selenium poller blocks
    event_queue_size: int = field(
        default_factory=lambda: max(1, _env_int("EVENT_QUEUE_SIZE", 100))
    )

    def validate(self) -> list[str]:
        """
        Validate settings and return list of warnings/errors.
        Returns empty list if all settings are valid.
        """
        issues = []

        if not self.llm.api_key:
            issues.append(
                "WARNING: GROQ_API_KEY not set. "
                "Messages without a matching template will get the error reply."
            )

        if not self.storage.templates_file.exists():
            issues.append(
                f"WARNING: Templates file not found: {self.storage.templates_file}. "
                "Starting with no templates."
            )

        if not self.storage.persona_file.exists():
            issues.append(
                f"WARNING: Persona file not found: {self.storage.persona_file}. "
                "Using the default persona."
            )

        return issues


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Get singleton Settings instance.
    Cached to ensure consistent settings throughout application lifecycle.
    """
    return Settings()


def configure_logging(level_name: str = "INFO") -> None:
    """Configure root logging once at startup."""
    level = getattr(logging, level_name.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stdout,
        force=True,
    )
