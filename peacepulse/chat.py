"""
The chat send flow.

A chat session records the user's message, classifies it into a logged mood
and suggested todos, asks the assistant for a reply and records that reply.
The session never stays pending: every assistant call resolves to either a
live result or a fallback.
"""

import logging
from collections.abc import Callable
from datetime import datetime

from .assistant import Assistant
from .models import ChatMessage, ReplyResult, new_id
from .store import WellnessStore

logger = logging.getLogger(__name__)

AUTO_MOOD_NOTE = "Auto-detected from chat"


def _now_local() -> datetime:
    return datetime.now().astimezone()


class ChatSession:
    """Connects the chat transcript in a store to an assistant."""

    def __init__(
        self,
        store: WellnessStore,
        assistant: Assistant,
        clock: Callable[[], datetime] = _now_local,
    ) -> None:
        self.store = store
        self.assistant = assistant
        self._clock = clock
        self.last_error: str | None = None

    @property
    def assistant_enabled(self) -> bool:
        return self.assistant.enabled

    async def send(self, text: str) -> ChatMessage | None:
        """
        Send a user message and record the bot's reply.

        Args:
            text: The user's message; blank messages are ignored

        Returns:
            The recorded bot message, or ``None`` for a blank message
        """
        text = text.strip()
        if not text:
            return None

        history = self.store.chat_messages
        self.store.add_chat_message(self._message(text, "user"))

        analysis = await self.assistant.classify(text)
        self.store.add_mood_entry(analysis.mood, AUTO_MOOD_NOTE)
        if analysis.todos:
            self.store.add_todos(analysis.todos)

        result: ReplyResult = await self.assistant.reply(history, text)
        self.last_error = result.error
        if result.error:
            logger.info("Chat reply fell back: %s", result.error)

        return self.store.add_chat_message(self._message(result.text, "bot"))

    def _message(self, text: str, sender: str) -> ChatMessage:
        return ChatMessage(
            id=new_id(), text=text, sender=sender, timestamp=self._clock()
        )
