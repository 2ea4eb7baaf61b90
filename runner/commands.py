"""
Command registration and invocation.

Maps command names and aliases to their sources, parses invocation lines
into Argv and registers scheduled tasks with the host's cron service.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Optional

from config import DEFAULT_COMMAND_GROUP, CommandOption, CommandSource
from core.context import Argv
from core.exceptions import ArgumentError
from core.objects import is_blank
from core.platform import ChatSession

from .delivery import Scheduler, TopicService
from .pipeline import PipelineOrchestrator

logger = logging.getLogger(__name__)

# Inline markup, quoted strings, or bare words
_TOKEN = re.compile(r"<[^>]*>|\"[^\"]*\"|'[^']*'|\S+")


def tokenize(content: str) -> list[str]:
    tokens = []
    for token in _TOKEN.findall(content):
        if len(token) >= 2 and token[0] == token[-1] and token[0] in "\"'":
            token = token[1:-1]
        tokens.append(token)
    return tokens


def coerce(value: str, value_type: str) -> Any:
    """Convert a token to the declared type."""
    if value_type == "number":
        try:
            return int(value)
        except ValueError:
            try:
                return float(value)
            except ValueError:
                raise ArgumentError(f"Expected a number, got {value}") from None
    return value


def signature(source: CommandSource) -> str:
    """Usage line, e.g. ``weather <city:string> [days:number]``."""
    parts = [source.command]
    expert = source.expert_or_none
    for arg in expert.command_args if expert else []:
        inner = f"{arg.name}:{arg.type}"
        parts.append(f"<{inner}>" if arg.required else f"[{inner}]")
    return " ".join(parts)


class CommandRegistry:
    """Registry of configured data commands.

    Attributes:
        pipeline: Orchestrator running invocations
        group: Parent command; ``<group> <command> ...`` runs a data command
            and the bare group lists them
    """

    def __init__(
        self,
        pipeline: PipelineOrchestrator,
        sources: Optional[list[CommandSource]] = None,
        group: str = DEFAULT_COMMAND_GROUP,
    ):
        self.pipeline = pipeline
        self.group = group
        self._sources: dict[str, CommandSource] = {}
        self._names: dict[str, str] = {}
        self._task_handles: list[Any] = []
        self.load(sources or [])

    def load(self, sources: list[CommandSource]) -> None:
        """Replace every registered command."""
        self._sources.clear()
        self._names.clear()
        for source in sources:
            if source.command in self._sources:
                logger.warning(f"Duplicate command {source.command}, keeping the first one")
                continue
            self._sources[source.command] = source
            for name in source.names:
                self._names.setdefault(name, source.command)
        logger.info(f"Registered {len(self._sources)} commands")

    def get_command(self, name: str) -> Optional[CommandSource]:
        """Command by name or alias."""
        command = self._names.get(name)
        return self._sources.get(command) if command else None

    def list_commands(self) -> list[CommandSource]:
        return list(self._sources.values())

    def has_command(self, name: str) -> bool:
        return name in self._names

    def parse(self, source: CommandSource, content: str) -> Argv:
        """Parse an invocation line; a leading command name or alias is skipped.

        Raises:
            ArgumentError: Unknown option, missing required argument or bad number
        """
        tokens = tokenize(content)
        name = source.command
        if tokens and tokens[0] in source.names:
            name = tokens.pop(0)

        expert = source.expert_or_none
        options_by_flag: dict[str, CommandOption] = {}
        for option in expert.command_options if expert else []:
            options_by_flag[option.name] = option
            if option.acronym:
                options_by_flag[option.acronym] = option

        args: list[Any] = []
        options: dict[str, Any] = {}
        index = 0
        while index < len(tokens):
            token = tokens[index]
            index += 1
            if not token.startswith("-") or token == "-" or re.match(r"^-\d", token):
                args.append(token)
                continue
            flag, _, inline_value = token.lstrip("-").partition("=")
            if source.msg_send_mode == "topic" and flag in ("topic-on", "topic-off"):
                options["topic"] = flag == "topic-on"
                continue
            negated = flag.startswith("no-") and flag[3:] in options_by_flag
            option = options_by_flag.get(flag[3:] if negated else flag)
            if option is None:
                raise ArgumentError(f"Unknown option: {token}")
            if negated:
                options[option.name] = False
            elif option.value is not None:
                options[option.name] = option.value
            elif option.type == "boolean":
                options[option.name] = True
            else:
                if not inline_value:
                    if index >= len(tokens):
                        raise ArgumentError(f"Option {token} needs a value")
                    inline_value = tokens[index]
                    index += 1
                options[option.name] = coerce(inline_value, option.type)

        resolved: list[Any] = []
        for position, arg in enumerate(expert.command_args if expert else []):
            if position >= len(args):
                if arg.required:
                    raise ArgumentError(f"Missing argument: {arg.name}")
                continue
            if arg.type == "text":
                resolved.append(" ".join(str(value) for value in args[position:]))
                break
            resolved.append(coerce(args[position], arg.type))

        return Argv(args=resolved, options=options, source=content, name=name)

    async def execute(self, name: str, session: ChatSession, content: str) -> None:
        """Run a command for a user; failures are logged and reported in the chat."""
        source = self.get_command(name)
        if source is None:
            if name == self.group:
                await self.execute_grouped(session, content)
                return
            logger.debug(f"Not a data command: {name}")
            return
        try:
            argv = self.parse(source, content)
            await self.pipeline.invoke(source, session, argv)
        except ArgumentError as e:
            await session.send(f"{e}\nUsage: {signature(source)}")
        except Exception:
            logger.exception(f"Failed to execute command {source.command}")
            await session.send(f"Failed to execute command {source.command}")

    async def execute_grouped(self, session: ChatSession, content: str) -> None:
        """Run ``<group> <command> ...``; the bare group replies with every usage line."""
        parts = content.split(None, 1)
        rest = parts[1].strip() if len(parts) > 1 else ""
        if not rest:
            usages = [signature(source) for source in self.list_commands()]
            await session.send("\n".join(usages) if usages else "No data commands configured")
            return
        await self.execute(rest.split()[0], session, rest)

    def register_tasks(self, scheduler: Optional[Scheduler], topics: Optional[TopicService]) -> int:
        """Register scheduled tasks; returns how many were registered."""
        self.clear_tasks()
        count = 0
        for source in self._sources.values():
            expert = source.expert_or_none
            if expert is None or not expert.scheduled_task:
                continue
            if is_blank(expert.cron) or is_blank(expert.scheduled_task_content):
                continue
            refusal = self._task_refusal(source, scheduler, topics)
            if refusal:
                logger.info(f"Command {source.command}: scheduled task not registered: {refusal}")
                continue
            self._task_handles.append(scheduler.register(expert.cron, self._task_callback(source)))
            count += 1
        return count

    def clear_tasks(self) -> None:
        """Unregister tasks whose scheduler handle is a disposer."""
        for handle in self._task_handles:
            if callable(handle):
                handle()
        self._task_handles.clear()

    def _task_refusal(
        self,
        source: CommandSource,
        scheduler: Optional[Scheduler],
        topics: Optional[TopicService],
    ) -> Optional[str]:
        if scheduler is None:
            return "no scheduler available"
        if topics is None:
            return "no topic service available"
        if source.msg_send_mode != "topic":
            return "message send mode is not topic"
        if source.send_type == "cmdLink":
            return "send type cannot be cmdLink"
        try:
            self.parse(source, source.expert.scheduled_task_content)
        except ArgumentError as e:
            return f"task content does not parse: {e}"
        return None

    def _task_callback(self, source: CommandSource):
        async def run() -> None:
            try:
                argv = self.parse(source, source.expert.scheduled_task_content)
                await self.pipeline.run_task(source, argv)
            except Exception:
                logger.exception(f"Scheduled task of {source.command} failed")

        return run
