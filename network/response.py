"""
Parse step for HTTP responses.

Turns a response into structured data according to the command's data
type, then records change detection state for the next request.
"""

from __future__ import annotations

import hashlib
import json
import logging
import re
from typing import Any, Awaitable, Callable, Union

import httpx
from bs4 import BeautifulSoup

from core.cache import RESPONSE_HEADERS, ConditionalCache
from core.context import ExecutionContext, ParsedData
from core.exceptions import ConfigError, CoreError, PipelineAbort
from core.objects import get_value, is_blank, is_container
from core.template import TemplateEngine
from hooks import HookGate, HookPoint

from .request_builder import conditional_mode

logger = logging.getLogger(__name__)

_KEY_NOISE = re.compile(r"[;{}]")

Processor = Callable[[ExecutionContext, httpx.Response], Union[Any, Awaitable[Any]]]


def as_container(data: Any) -> Union[dict, list]:
    """Wrap a scalar into a one-item list."""
    return data if is_container(data) else [data]


def data_hash(data: Any) -> str:
    dumped = json.dumps(data, ensure_ascii=False, default=str, separators=(",", ":"))
    return hashlib.md5(dumped.encode("utf-8")).hexdigest()


class ResponseParser:
    """Per data type processors plus change detection bookkeeping."""

    def __init__(self, engine: TemplateEngine, hooks: HookGate, cache: ConditionalCache):
        self.engine = engine
        self.hooks = hooks
        self.cache = cache
        self.processors: dict[str, Processor] = {
            "json": self._json,
            "plain": self._plain,
            "txt": self._txt,
            "html": self._html,
            "resource": self._resource,
            "function": self._function,
        }

    async def parse(self, ctx: ExecutionContext, response: httpx.Response) -> ParsedData:
        """Parse ``response`` per the command's data type.

        Raises:
            ConfigError: Unknown data type
            CoreError: The processor produced no data
            PipelineAbort: Data hash unchanged since the last run
        """
        processor = self.processors.get(ctx.source.data_type)
        if processor is None:
            raise ConfigError(f"Unknown data type: {ctx.source.data_type}")

        await self.hooks.run(ctx, HookPoint.RES_DATA_BEFORE, {"response": response})
        data = processor(ctx, response)
        if hasattr(data, "__await__"):
            data = await data
        if data is None:
            raise CoreError("No data was fetched")

        await self.record_modified(ctx, response, data)
        return data

    async def record_modified(self, ctx: ExecutionContext, response: httpx.Response, data: Any) -> None:
        """Store validators of this response for the next conditional request."""
        mode = conditional_mode(ctx)
        if mode is None:
            return
        if mode in RESPONSE_HEADERS:
            value = response.headers.get(RESPONSE_HEADERS[mode])
            if value:
                await self.cache.set(mode, ctx.command, value)
        elif mode == "resDataHash":
            current = data_hash(data)
            cached = await self.cache.get(mode, ctx.command)
            if cached and cached == current:
                raise PipelineAbort("resDataHash unmodified", "resModified")
            await self.cache.set(mode, ctx.command, current)

    def _json(self, ctx: ExecutionContext, response: httpx.Response) -> Any:
        data = response.json()
        if ctx.source.json_key:
            data = get_value(data, _KEY_NOISE.sub("", ctx.source.json_key))
        return as_container(data)

    def _plain(self, ctx: ExecutionContext, response: httpx.Response) -> Any:
        return response.json()

    def _txt(self, ctx: ExecutionContext, response: httpx.Response) -> list[str]:
        return [line for line in re.split(r"[\r\n]+", response.text) if not is_blank(line)]

    def _html(self, ctx: ExecutionContext, response: httpx.Response) -> list[str]:
        soup = BeautifulSoup(response.text, "html.parser")
        selector = ctx.source.css_selector or "p"
        if ctx.source.attribute:
            values = [element.get(ctx.source.attribute) for element in soup.select(selector)]
        else:
            values = [element.get_text("\n", strip=True) for element in soup.select(selector)]
        return [str(value) for value in values if not is_blank(value)]

    def _resource(self, ctx: ExecutionContext, response: httpx.Response) -> list[str]:
        return [str(response.url)]

    async def _function(self, ctx: ExecutionContext, response: httpx.Response) -> Any:
        if is_blank(ctx.source.data_function):
            return None
        data = await self.engine.run_code(ctx, ctx.source.data_function, {"response": response})
        return as_container(data)
