"""Text based render strategies: plain paragraphs, templates, command links and markup."""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from core.context import ExecutionContext
from core.elements import Element, normalize, parse
from core.objects import flatten, is_blank

from .base import Renderer, pick_one, stringify

logger = logging.getLogger(__name__)


class TextRenderer(Renderer):
    """One ``<p>`` per item; a non-list value becomes a single paragraph."""

    def prepare(self, ctx: ExecutionContext, data: Any) -> list[Any]:
        if isinstance(data, list):
            items = flatten(data)
        elif isinstance(data, dict):
            items = [json.dumps(data, ensure_ascii=False, default=str)]
        else:
            items = [data]
        if ctx.source.pick_one_randomly:
            return pick_one(items)
        return items

    async def render(self, ctx: ExecutionContext, data: list[Any]) -> list[Element]:
        return [Element("p", children=parse(stringify(item))) for item in data]


class EjsRenderer(Renderer):
    """Renders the command's Jinja2 template with the data in scope as ``data``."""

    async def render(self, ctx: ExecutionContext, data: Any) -> list[Element]:
        template = ctx.source.ejs_template
        if is_blank(template):
            return [Element.text(json.dumps(data, ensure_ascii=False, default=str))]
        try:
            markup = await self.engine.render_markup(ctx, template, {"data": data})
        except Exception:
            logger.exception(f"Failed to render template of command {ctx.command}")
            raise
        return parse(markup)


class CmdLinkRenderer(Renderer):
    """Runs follow-up commands built from the data; produces no output itself."""

    async def render(self, ctx: ExecutionContext, data: Any) -> list[Element]:
        if is_blank(ctx.source.cmd_link):
            return []
        if ctx.session is None:
            logger.warning(f"Command {ctx.command} has no session to run its command link in")
            return []
        content = await self.engine.substitute(ctx, ctx.source.cmd_link, {"data": data})
        commands = re.split(r"[\r\n]+", content) if ctx.source.multiple_cmd else [content]
        for command in commands:
            if not is_blank(command):
                await ctx.session.execute(command.strip())
        return []


class ElementsRenderer(Renderer):
    """Passes message markup through; the values of a mapping are used as items."""

    def prepare(self, ctx: ExecutionContext, data: Any) -> Any:
        if isinstance(data, dict):
            data = flatten(data)
        return super().prepare(ctx, data)

    async def render(self, ctx: ExecutionContext, data: Any) -> list[Element]:
        if isinstance(data, list):
            return normalize([item if isinstance(item, (str, Element)) else stringify(item) for item in data])
        return normalize(data if isinstance(data, (str, Element)) else stringify(data))
