"""
Resolution of invocation arguments and options.

Raw values are wrapped into OptionInfo records, enriched by type: user and
channel references are looked up on the platform, and inline media markup
is unwrapped to its URL.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Awaitable, Callable, Optional, Union

from config import CommandArg, CommandOption, CommandSource

from .context import Argv, ChannelRecord, MemberRecord, OptionInfo, OptionInfoMap
from .elements import parse
from .objects import is_blank
from .platform import ChatSession, get_channel, get_guild_member

logger = logging.getLogger(__name__)

_MEDIA_MARKUP = re.compile(r"^<(img|audio|video|file)")
_ESCAPED_MEDIA_MARKUP = re.compile(r"&lt;(img|audio|video|file)")

MemberLookup = Callable[[Optional[ChatSession], str], Awaitable[MemberRecord]]
ChannelLookup = Callable[[Optional[ChatSession], str], Awaitable[ChannelRecord]]


class OptionResolver:
    """Builds the OptionInfoMap of one invocation.

    Options are resolved first, then positional arguments in declaration
    order. Each argument is also exposed as ``$<index>``.
    """

    def __init__(
        self,
        member_lookup: MemberLookup = get_guild_member,
        channel_lookup: ChannelLookup = get_channel,
    ):
        self.member_lookup = member_lookup
        self.channel_lookup = channel_lookup

    async def resolve(
        self,
        source: CommandSource,
        argv: Argv,
        session: Optional[ChatSession] = None,
    ) -> OptionInfoMap:
        result = OptionInfoMap()
        expert = source.expert_or_none
        if expert is None:
            return result

        for option in expert.command_options:
            info = await self.build_info(argv.options.get(option.name), option, argv, session)
            result.put(option.name, info)

        for index, arg in enumerate(expert.command_args):
            raw = argv.args[index] if index < len(argv.args) else None
            info = await self.build_info(raw, arg, argv, session)
            result.put(arg.name, info)
            result.put(f"${index}", info)

        logger.debug(f"Resolved options of {source.command}: {result.map}")
        return result

    async def build_info(
        self,
        value: Any,
        spec: Union[CommandArg, CommandOption],
        argv: Argv,
        session: Optional[ChatSession] = None,
    ) -> OptionInfo:
        info = OptionInfo(
            value=value,
            auto_overwrite=spec.auto_overwrite,
            overwrite_key=spec.overwrite_key,
        )
        if not isinstance(value, str):
            return info

        text = value.strip()
        if spec.type == "user":
            identifier = text.split(":")[-1]
            if not is_blank(identifier):
                info.value = await self.member_lookup(session, identifier)
        elif spec.type == "channel":
            identifier = text.split(":")[-1]
            if not is_blank(identifier):
                info.value = await self.channel_lookup(session, identifier)
        elif _MEDIA_MARKUP.match(text) and not _ESCAPED_MEDIA_MARKUP.search(argv.source):
            elements = parse(text)
            src = elements[0].attrs.get("src") if elements else None
            if not is_blank(src):
                info.value = src
                info.is_file_url = True
                for key, attr in elements[0].attrs.items():
                    if "file" in key.lower():
                        info.file_name = str(attr).strip()
                        break
        return info
