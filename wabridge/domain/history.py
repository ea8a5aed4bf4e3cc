"""
Conversation History - Short-Term Context per Sender
=====================================================

Keeps the last N turns for every sender so the completion call has some
context. Lives in process memory only; a restart forgets everything.
"""

import logging
from collections import deque
from datetime import datetime, timezone
from typing import Deque, Dict, List, Optional

from .models import ConversationTurn, Role

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 20


class ConversationHistory:
    """
    Bounded, per-sender log of user/assistant turns.

    Usage:
        history = ConversationHistory(limit=20)
        history.append("905551112233@c.us", Role.USER, "fiyat nedir")
        history.turns("905551112233@c.us")

    Once a sender has `limit` turns, each append evicts the oldest one.
    """

    def __init__(self, limit: int = DEFAULT_HISTORY_LIMIT):
        if limit < 1:
            raise ValueError("History limit must be at least 1")
        self._limit = limit
        self._turns: Dict[str, Deque[ConversationTurn]] = {}
        self._last_activity: Dict[str, datetime] = {}

    @property
    def limit(self) -> int:
        return self._limit

    def append(self, sender: str, role: Role, content: str) -> None:
        turns = self._turns.get(sender)
        if turns is None:
            turns = deque(maxlen=self._limit)
            self._turns[sender] = turns
        turns.append(ConversationTurn(role=role, content=content))
        self._last_activity[sender] = datetime.now(timezone.utc)

    def record_exchange(self, sender: str, inbound: str, outbound: str) -> None:
        """Append an inbound message and its reply."""
        self.append(sender, Role.USER, inbound)
        self.append(sender, Role.ASSISTANT, outbound)

    def turns(self, sender: str) -> List[ConversationTurn]:
        """Retained turns for a sender, oldest first."""
        return list(self._turns.get(sender, ()))

    def messages(self, sender: str) -> List[Dict[str, str]]:
        return [turn.to_message() for turn in self.turns(sender)]

    def senders(self) -> List[str]:
        return list(self._turns.keys())

    def __contains__(self, sender: str) -> bool:
        return sender in self._turns

    def __len__(self) -> int:
        return len(self._turns)

    # ── Dashboard views ────────────────────────────────────────────

    def summary(self, sender: str) -> Optional[Dict[str, object]]:
        turns = self._turns.get(sender)
        if turns is None:
            return None
        return {
            "phone": sender,
            "lastMessage": turns[-1].content if turns else "",
            "lastMessageTime": self._last_activity[sender].isoformat(),
            "messageCount": len(turns),
        }

    def summaries(self) -> Dict[str, Dict[str, object]]:
        return {sender: self.summary(sender) for sender in self._turns}

    def detail(self, sender: str) -> Optional[Dict[str, object]]:
        turns = self._turns.get(sender)
        if turns is None:
            return None
        return {
            "phone": sender,
            "messageCount": len(turns),
            "history": self.messages(sender),
        }

    def forget(self, sender: str) -> bool:
        """Drop one sender's history. Returns False if there was none."""
        self._last_activity.pop(sender, None)
        removed = self._turns.pop(sender, None) is not None
        if removed:
            logger.info(f"Cleared conversation history for {sender}")
        return removed

    def clear(self) -> None:
        count = len(self._turns)
        self._turns.clear()
        self._last_activity.clear()
        logger.info(f"Cleared conversation history for {count} senders")
