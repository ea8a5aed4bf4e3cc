"""System prompt construction from the brand persona."""

from .models import Persona

SYSTEM_PROMPT_TEMPLATE = (
    "Sen {brand} markasının resmi WhatsApp asistanısın.\n"
    "Adres: {address}\n"
    "Tarz: {tone}\n"
    "{extra_instructions}\n"
)


def build_system_prompt(persona: Persona) -> str:
    return SYSTEM_PROMPT_TEMPLATE.format(
        brand=persona.brand,
        address=persona.address,
        tone=persona.tone,
        extra_instructions=persona.extra_instructions,
    )
