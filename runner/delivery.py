"""
Delivery of rendered fragments.

Replies go to the invoking session and may be recalled after a delay.
Topic-mode commands publish to a topic through the host's topic service.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, Protocol

from config import DEFAULT_TOPIC_PREFIX, CommandSource
from core.elements import Element
from core.platform import ChatSession

logger = logging.getLogger(__name__)


class TopicService(Protocol):
    """Host service distributing messages to subscribed channels."""

    async def subscribe(
        self, platform: str, self_id: str, channel_id: str, topic: str, enable: bool
    ) -> None:
        ...

    async def publish(
        self, topic: str, fragments: list[Element], retract_after: Optional[float] = None
    ) -> None:
        """Publish; ``retract_after`` is in seconds."""
        ...


class Scheduler(Protocol):
    """Host cron service."""

    def register(self, cron: str, callback: Callable[[], Awaitable[None]]) -> Any:
        """Schedule ``callback``; may return a callable that unregisters it."""
        ...


def topic_key(source: CommandSource) -> str:
    return source.msg_topic or DEFAULT_TOPIC_PREFIX + source.command


class Delivery:
    """Sends, publishes and recalls messages.

    Recall tasks are tracked so ``dispose`` can cancel the pending ones.
    """

    def __init__(self, topics: Optional[TopicService] = None):
        self.topics = topics
        self._recalls: set[asyncio.Task] = set()

    async def reply(self, session: ChatSession, fragments: Any, recall_minutes: float = 0) -> list[str]:
        message_ids = await session.send(fragments)
        if recall_minutes > 0 and message_ids:
            self.schedule_recall(session, message_ids, recall_minutes * 60)
        return message_ids

    async def publish(self, source: CommandSource, fragments: list[Element]) -> None:
        if self.topics is None:
            raise RuntimeError("No topic service available")
        retract_after = source.recall * 60 if source.recall > 0 else None
        await self.topics.publish(topic_key(source), fragments, retract_after)
        logger.info(f"{source.command}: published to {topic_key(source)}")

    async def delete(self, session: ChatSession, message_ids: list[str]) -> None:
        for message_id in message_ids:
            try:
                await session.bot.delete_message(session.channel_id, message_id)
            except Exception as e:
                logger.warning(f"Failed to delete message {message_id}: {e}")

    def schedule_recall(self, session: ChatSession, message_ids: list[str], delay_s: float) -> None:
        async def recall() -> None:
            await asyncio.sleep(delay_s)
            await self.delete(session, message_ids)

        task = asyncio.create_task(recall())
        self._recalls.add(task)
        task.add_done_callback(self._recalls.discard)
        logger.debug(f"Recall of {message_ids} scheduled in {delay_s}s")

    def dispose(self) -> None:
        for task in list(self._recalls):
            task.cancel()
        self._recalls.clear()
