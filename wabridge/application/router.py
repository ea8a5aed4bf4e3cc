"""
Message Router - Template Short-Circuit or AI Reply
====================================================

For every inbound message:
1. If a template trigger appears in the body, send the canned reply.
   The completion backend is not called and the persona/history play no part.
2. Otherwise append the message to the sender's history, ask the completion
   backend with persona + history, and send whatever it returns.

One attempt per message. A failed completion call produces the fixed
error reply; nothing is retried.
"""

import logging
from typing import Dict, List, Optional

from fastapi.concurrency import run_in_threadpool

from ..domain.history import ConversationHistory
from ..domain.matching import find_matching_template
from ..domain.models import InboundMessage, Role, Template
from ..domain.prompt import build_system_prompt
from ..infrastructure.llm import CompletionService
from ..infrastructure.persistence import PersonaConfig, TemplateStore
from ..infrastructure.whatsapp.messaging_provider import MessagingProvider

logger = logging.getLogger(__name__)

DEFAULT_FALLBACK_REPLY = "Anlayamadım 😅"
DEFAULT_ERROR_REPLY = "AI servisine şu anda ulaşılamıyor. Daha sonra tekrar deneyin."


class MessageRouter:
    """
    Decides how to answer an inbound message and dispatches the reply.

    The router owns the ConversationHistory handed to it; nothing else
    appends to it.
    """

    def __init__(
        self,
        templates: TemplateStore,
        persona: PersonaConfig,
        completion: CompletionService,
        provider: MessagingProvider,
        notifier,
        history: Optional[ConversationHistory] = None,
        fallback_reply: str = DEFAULT_FALLBACK_REPLY,
        error_reply: str = DEFAULT_ERROR_REPLY,
    ):
        self._templates = templates
        self._persona = persona
        self._completion = completion
        self._provider = provider
        self._notifier = notifier
        self.history = history if history is not None else ConversationHistory()
        self._fallback_reply = fallback_reply
        self._error_reply = error_reply

    async def handle(self, message: InboundMessage) -> Optional[str]:
        """
        Answer one inbound message.

        Returns the text that was sent, or None if sending failed.
        """
        template = find_matching_template(self._templates.list(), message.body)
        if template is not None:
            return await self._reply_with_template(message, template)
        return await self._reply_with_ai(message)

    async def _reply_with_template(self, message: InboundMessage, template: Template) -> Optional[str]:
        logger.info(f"Template {template.trigger!r} matched message from {message.sender}")

        # No apology here: error_reply covers completion failures only, and
        # a second send to a session that just failed would fail the same way
        if not await self._send(message.sender, template.reply):
            return None

        self.history.record_exchange(message.sender, message.body, template.reply)
        await self._notifier.message_exchanged(message.sender, message.body, template.reply)
        return template.reply

    async def _reply_with_ai(self, message: InboundMessage) -> Optional[str]:
        logger.info(f"New message from {message.sender}: {message.body[:50]}")

        self.history.append(message.sender, Role.USER, message.body)
        request = self._build_request(message.sender)

        try:
            text = await run_in_threadpool(self._completion.complete, request)
        except Exception as e:
            logger.exception(f"Completion failed for {message.sender}: {e}")
            if await self._send(message.sender, self._error_reply):
                return self._error_reply
            return None

        reply = text or self._fallback_reply

        if not await self._send(message.sender, reply):
            return None

        self.history.append(message.sender, Role.ASSISTANT, reply)
        await self._notifier.message_exchanged(message.sender, message.body, reply)
        return reply

    def _build_request(self, sender: str) -> List[Dict[str, str]]:
        """System instruction first, then the sender's retained turns in order."""
        system_prompt = build_system_prompt(self._persona.get())
        return [{"role": "system", "content": system_prompt}] + self.history.messages(sender)

    async def _send(self, address: str, text: str) -> bool:
        try:
            sent = await run_in_threadpool(self._provider.send_message, address, text)
        except Exception as e:
            logger.exception(f"Failed to send reply to {address}: {e}")
            return False

        if not sent:
            logger.error(f"WhatsApp did not accept the reply to {address}")
        return bool(sent)
