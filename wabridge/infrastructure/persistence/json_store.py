"""
JSON File Stores - Templates and Persona Persistence
=====================================================

Two flat JSON documents, read once at startup and rewritten wholesale on
every mutation. A crash mid-write can leave a truncated file behind; the
next startup then fails with StoreCorruptedError until the file is fixed.
"""

import json
import logging
from pathlib import Path
from typing import Any, List, Union

from ...domain.models import Persona, Template

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """Base exception for persistence errors."""
    pass


class StoreCorruptedError(StoreError):
    """Raised when a store file exists but cannot be parsed."""
    pass


class JsonDocumentStore:
    """
    Load/save a single JSON document.

    A missing file yields the caller's default; a malformed one raises
    StoreCorruptedError instead of being silently replaced.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def load(self, default: Any) -> Any:
        if not self.path.exists():
            logger.info(f"{self.path} not found, using defaults")
            return default

        try:
            with self.path.open("r", encoding="utf-8") as fh:
                return json.load(fh)
        except json.JSONDecodeError as e:
            raise StoreCorruptedError(f"Malformed JSON in {self.path}: {e}") from e
        except OSError as e:
            raise StoreError(f"Could not read {self.path}: {e}") from e

    def save(self, document: Any) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("w", encoding="utf-8") as fh:
                json.dump(document, fh, indent=2, ensure_ascii=False)
        except OSError as e:
            raise StoreError(f"Could not write {self.path}: {e}") from e


class TemplateStore:
    """
    Ordered list of reply templates.

    Usage:
        store = TemplateStore("templates.json")
        store.add("merhaba", "Hoş geldiniz")
        store.list()     # [Template(trigger='merhaba', reply='Hoş geldiniz')]
        store.remove(0)
    """

    def __init__(self, path: Union[str, Path]):
        self._document = JsonDocumentStore(path)
        raw = self._document.load(default=[])
        if not isinstance(raw, list):
            raise StoreCorruptedError(
                f"Expected a JSON array in {self._document.path}, got {type(raw).__name__}"
            )
        self._templates: List[Template] = [Template.from_dict(item) for item in raw]
        logger.info(f"Loaded {len(self._templates)} templates")

    def list(self) -> List[Template]:
        return list(self._templates)

    def add(self, trigger: str, reply: str) -> Template:
        template = Template(trigger=trigger, reply=reply)
        self._templates.append(template)
        self._save()
        logger.info(f"Template added: {trigger!r}")
        return template

    def remove(self, index: int) -> bool:
        """
        Delete the template at `index`.

        Out-of-range indexes (negative ones included) are ignored; the file
        is rewritten either way. Returns True if something was removed.
        """
        removed = False
        if 0 <= index < len(self._templates):
            template = self._templates.pop(index)
            removed = True
            logger.info(f"Template removed: {template.trigger!r}")
        else:
            logger.debug(f"Ignoring delete of out-of-range template index {index}")
        self._save()
        return removed

    def _save(self) -> None:
        self._document.save([t.to_dict() for t in self._templates])


class PersonaConfig:
    """Singleton persona record, replaced wholesale on update."""

    def __init__(self, path: Union[str, Path]):
        self._document = JsonDocumentStore(path)
        raw = self._document.load(default=None)
        if raw is None:
            self._persona = Persona()
        elif isinstance(raw, dict):
            self._persona = Persona.from_dict(raw)
        else:
            raise StoreCorruptedError(
                f"Expected a JSON object in {self._document.path}, got {type(raw).__name__}"
            )

    def get(self) -> Persona:
        return self._persona

    def set(self, persona: Persona) -> None:
        self._persona = persona
        self._document.save(persona.to_dict())
        logger.info(f"Persona updated: {persona.brand}")
