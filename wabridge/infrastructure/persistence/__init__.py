from .json_store import (
    JsonDocumentStore,
    PersonaConfig,
    StoreCorruptedError,
    StoreError,
    TemplateStore,
)

__all__ = [
    "JsonDocumentStore",
    "PersonaConfig",
    "StoreCorruptedError",
    "StoreError",
    "TemplateStore",
]
