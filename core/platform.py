"""
Chat platform collaborator interfaces and lookups.

The chat platform (sessions, bots, message sending) lives outside this
package. These protocols describe what the pipeline needs from it; the
lookup helpers page through member/channel/role lists.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional, Protocol

from .context import ChannelRecord, MemberRecord

logger = logging.getLogger(__name__)


@dataclass
class ListPage:
    """One page of a paginated platform listing."""

    data: list[dict[str, Any]] = field(default_factory=list)
    next: Optional[str] = None


class Bot(Protocol):
    """Platform bot account."""

    platform: str
    self_id: str

    async def get_guild_member_list(self, guild_id: str, next: Optional[str] = None) -> ListPage:
        ...

    async def get_guild_role_list(self, guild_id: str, next: Optional[str] = None) -> ListPage:
        ...

    async def get_channel_list(self, guild_id: str, next: Optional[str] = None) -> ListPage:
        ...

    async def delete_message(self, channel_id: str, message_id: str) -> None:
        ...


class ChatSession(Protocol):
    """Live conversation an invocation came from."""

    id: str
    platform: str
    channel_id: str
    guild_id: Optional[str]
    content: str
    event: dict[str, Any]
    bot: Bot

    async def send(self, fragment: Any) -> list[str]:
        """Send a message, returning the platform message ids."""
        ...

    async def execute(self, content: str) -> None:
        """Run another command as if the user had typed it."""
        ...


ItemVisitor = Callable[[dict[str, Any]], Any]


async def for_list(
    visit: ItemVisitor,
    list_fn: Callable[..., Awaitable[ListPage]],
    *args: Any,
) -> None:
    """Call ``visit`` on every item of a paginated listing.

    Pages are fetched until exhausted or until ``visit`` returns ``False``.
    A failing page fetch is logged and ends the walk.
    """
    next_token: Optional[str] = None
    while True:
        try:
            page = await list_fn(*args, next_token)
        except Exception as e:
            logger.error(f"Failed to fetch list page: {e}")
            return
        if not isinstance(page.data, list):
            return
        for item in page.data:
            result = visit(item)
            if hasattr(result, "__await__"):
                result = await result
            if result is False:
                return
        next_token = page.next
        if not next_token:
            return


async def get_guild_member(session: Optional[ChatSession], user_id: str) -> MemberRecord:
    """Find a member by id, nick or name; falls back to an unresolved record."""
    found: list[MemberRecord] = []

    def visit(member: dict[str, Any]) -> Optional[bool]:
        user = member.get("user") or {}
        nick = member.get("nick") or user.get("nick")
        name = member.get("name") or user.get("name")
        if user_id not in (user.get("id"), nick, name):
            return None
        found.append(MemberRecord(id=user.get("id"), name=name, nick=nick, data=member))
        return False

    if session is not None and session.guild_id:
        await for_list(visit, session.bot.get_guild_member_list, session.guild_id)
    if found:
        return found[0]
    return MemberRecord(name=user_id)


async def get_channel(session: Optional[ChatSession], channel_id: str) -> ChannelRecord:
    """Find a channel by id or name; falls back to an unresolved record."""
    found: list[ChannelRecord] = []

    def visit(channel: dict[str, Any]) -> Optional[bool]:
        if channel_id not in (channel.get("id"), channel.get("name")):
            return None
        found.append(ChannelRecord(id=channel.get("id"), name=channel.get("name"), data=channel))
        return False

    if session is not None and session.guild_id:
        await for_list(visit, session.bot.get_channel_list, session.guild_id)
    if found:
        return found[0]
    return ChannelRecord(name=channel_id)


async def get_role_name(session: Optional[ChatSession], role_id: str) -> Optional[str]:
    """Name of a guild role, or None when it cannot be found."""
    names: list[str] = []

    def visit(role: dict[str, Any]) -> Optional[bool]:
        if role.get("id") != role_id:
            return None
        names.append(role.get("name") or role_id)
        return False

    if session is not None and session.guild_id:
        await for_list(visit, session.bot.get_guild_role_list, session.guild_id)
    return names[0] if names else None

