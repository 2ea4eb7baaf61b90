"""
Fetch and parse steps.

A command's data comes from nowhere (``none``), an HTTP request (``url``)
or the output of other commands run in the same session (``cmd``).
"""

from __future__ import annotations

import logging
import re
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Generator, Optional

import httpx

from core.context import ExecutionContext, ParsedData
from core.elements import Element, normalize, to_text
from core.exceptions import CoreError
from core.objects import is_blank
from core.template import TemplateEngine
from hooks import HookGate, HookPoint
from network import RequestBuilder, ResponseParser
from network.response import as_container

logger = logging.getLogger(__name__)


@dataclass
class SourceResult:
    """Raw output of the fetch step."""

    type: str
    response: Optional[httpx.Response] = None
    elements: list[Element] = field(default_factory=list)


@dataclass
class _Capture:
    elements: list[Element] = field(default_factory=list)
    last_command: Optional[str] = None


class OutputCapture:
    """Collects what sub-commands send while a ``cmd`` source runs.

    Entries are keyed by ``<session id>-<command>``. Two concurrent runs of
    the same command in the same session share one entry.
    """

    def __init__(self):
        self._pool: dict[str, _Capture] = {}

    @staticmethod
    def key(session_id: str, command: str) -> str:
        return f"{session_id}-{command}"

    @contextmanager
    def collect(self, key: str) -> Generator[list[Element], None, None]:
        capture = _Capture()
        self._pool[key] = capture
        try:
            yield capture.elements
        finally:
            self._pool.pop(key, None)

    def before_send(self, session_id: str, command: str, sub_command: str, fragment: Any) -> bool:
        """Offer an outgoing message to an active capture.

        Args:
            session_id: Session the outer command was invoked in
            command: Outer command name
            sub_command: Command that produced the message
            fragment: The outgoing message

        Returns:
            True when the message was captured and must not be sent
        """
        capture = self._pool.get(self.key(session_id, command))
        if capture is None:
            return False
        if capture.last_command and capture.last_command != sub_command:
            capture.elements.append(Element("br"))
        capture.last_command = sub_command
        capture.elements.extend(normalize(fragment))
        return True


class SourceFetcher:
    """Runs the fetch step and turns its result into parsed data."""

    def __init__(
        self,
        engine: TemplateEngine,
        hooks: HookGate,
        requests: RequestBuilder,
        parser: ResponseParser,
        capture: OutputCapture,
    ):
        self.engine = engine
        self.hooks = hooks
        self.requests = requests
        self.parser = parser
        self.capture = capture

    async def fetch(self, ctx: ExecutionContext) -> SourceResult:
        await self.hooks.run(ctx, HookPoint.SOURCE_GET_BEFORE)
        source_type = ctx.source.source_type
        if source_type == "url":
            return SourceResult(source_type, response=await self.requests.send(ctx))
        if source_type == "cmd":
            return SourceResult(source_type, elements=await self._run_commands(ctx))
        return SourceResult(source_type)

    async def _run_commands(self, ctx: ExecutionContext) -> list[Element]:
        if ctx.session is None:
            raise CoreError(f"Command {ctx.command} needs a chat session to run sub-commands")
        content = await self.engine.substitute(ctx, ctx.source.source_cmd)
        commands = re.split(r"[\r\n]+", content) if ctx.source.source_multiple_cmd else [content]
        with self.capture.collect(OutputCapture.key(ctx.session.id, ctx.command)) as elements:
            for command in commands:
                if not is_blank(command):
                    await ctx.session.execute(command.strip())
            return list(elements)

    async def parse(self, ctx: ExecutionContext, result: SourceResult) -> ParsedData:
        if result.type == "url":
            return await self.parser.parse(ctx, result.response)
        if result.type == "cmd":
            return [line for line in to_text(result.elements).splitlines() if not is_blank(line)]
        if is_blank(ctx.source.data_function):
            return []
        return as_container(await self.engine.run_code(ctx, ctx.source.data_function))
