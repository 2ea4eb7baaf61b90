"""Per-invocation data structures.

Defines the values that flow through one command invocation:
- OptionInfo / OptionInfoMap: resolved arguments and options
- MemberRecord / ChannelRecord: resolved user and channel references
- ExecutionContext: everything a pipeline step needs, passed by reference
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Optional, Union

from config import CommandSource

if TYPE_CHECKING:
    from .platform import ChatSession
    from .presets import PresetPool

# Output of the parse step: structured JSON, a list of text items or one text
ParsedData = Union[dict[str, Any], list[Any], str]


@dataclass
class MemberRecord:
    """A guild member resolved from a ``platform:id-or-name`` argument.

    ``str()`` gives ``id:nick-or-name``; unresolved lookups keep the raw
    identifier as name and render as ``:name``.
    """

    id: Optional[str] = None
    name: Optional[str] = None
    nick: Optional[str] = None
    data: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        return f"{self.id or ''}:{self.nick or self.name or ''}"


@dataclass
class ChannelRecord:
    """A channel resolved from a ``platform:id-or-name`` argument."""

    id: Optional[str] = None
    name: Optional[str] = None
    data: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        return f"{self.id or ''}:{self.name or ''}"


@dataclass
class OptionInfo:
    """Resolved value of one argument or option.

    Attributes:
        value: Primitive, resolved record, or extracted media URL
        auto_overwrite: Copied from the argument/option definition
        overwrite_key: Copied from the argument/option definition
        file_name: File name carried by an inline media element
        is_file_url: True when ``value`` was unwrapped from inline media
    """

    value: Any = None
    auto_overwrite: bool = False
    overwrite_key: Optional[str] = None
    file_name: Optional[str] = None
    is_file_url: bool = False


@dataclass
class OptionInfoMap:
    """Values by name (plus ``$0``, ``$1`` aliases for positional args)."""

    map: dict[str, Any] = field(default_factory=dict)
    info_map: dict[str, OptionInfo] = field(default_factory=dict)

    def put(self, name: str, info: OptionInfo) -> None:
        self.map[name] = info.value
        self.info_map[name] = info


@dataclass
class Argv:
    """Parsed invocation: positional args, named options and the raw text."""

    args: list[Any] = field(default_factory=list)
    options: dict[str, Any] = field(default_factory=dict)
    source: str = ""
    name: str = ""


@dataclass
class ExecutionContext:
    """Aggregate passed through every step of one invocation.

    Attributes:
        source: The command being run
        preset_pool: Shared preset constants and functions (read-only here)
        option_info_map: Resolved arguments and options
        session: Live chat session, None for scheduled invocations
        event: Event data exposed to expressions as ``_e``
        platform: Platform the invocation came from
        content: Raw message content of the invocation
        tmp_pool: Scratch values shared by steps, exposed as ``_tmp_pool``
        is_user_call: False for scheduled or forwarded invocations
    """

    source: CommandSource
    preset_pool: "PresetPool"
    option_info_map: OptionInfoMap = field(default_factory=OptionInfoMap)
    session: Optional["ChatSession"] = None
    event: dict[str, Any] = field(default_factory=dict)
    platform: str = ""
    content: str = ""
    tmp_pool: dict[str, Any] = field(default_factory=dict)
    is_user_call: bool = True

    @property
    def command(self) -> str:
        return self.source.command
