"""Render dispatch and message packing."""

from __future__ import annotations

import logging
from typing import Any, Optional

from config import CommandSource, Config
from core.context import ExecutionContext
from core.elements import Element
from core.exceptions import RenderError
from core.template import TemplateEngine
from hooks import HookGate, HookPoint
from network.gateway import HttpGateway

from .base import Renderer
from .browser import Browser, BrowserRenderer
from .media import MediaRenderer
from .raster import RasterBackend, RasterRenderer
from .text import CmdLinkRenderer, EjsRenderer, ElementsRenderer, TextRenderer

logger = logging.getLogger(__name__)


def pack(fragments: list[Element], packing_type: str) -> list[Element]:
    """Wrap fragments into one forwarded message.

    ``none`` keeps them as they are, ``multiple`` packs only two or more,
    ``all`` packs any non-empty list.
    """
    if not fragments or packing_type == "none":
        return fragments
    if packing_type == "multiple" and len(fragments) < 2:
        return fragments
    return [Element("message", {"forward": True}, [Element("message", children=[f]) for f in fragments])]


class RendererDispatcher:
    """Routes parsed data to the strategy of the command's send type.

    Args:
        config: Operator configuration (default packing type)
        engine: Template engine
        gateway: Downloads for media inlining
        hooks: Hook gate for ``renderedBefore``
        browser: Headless browser for ``puppeteer``
        raster_backends: Rasterisers by send type (``vercelSatori``, ``takumi``)
    """

    def __init__(
        self,
        config: Config,
        engine: TemplateEngine,
        gateway: HttpGateway,
        hooks: HookGate,
        browser: Optional[Browser] = None,
        raster_backends: Optional[dict[str, RasterBackend]] = None,
    ):
        self.config = config
        self.hooks = hooks
        backends = raster_backends or {}
        self.renderers: dict[str, Renderer] = {
            "text": TextRenderer(engine, gateway),
            "image": MediaRenderer(engine, gateway, "img", "data:image/"),
            "audio": MediaRenderer(engine, gateway, "audio", "data:audio/"),
            "video": MediaRenderer(engine, gateway, "video", "data:video/"),
            "file": MediaRenderer(engine, gateway, "file", "data:"),
            "ejs": EjsRenderer(engine, gateway),
            "cmdLink": CmdLinkRenderer(engine, gateway),
            "koishiElements": ElementsRenderer(engine, gateway),
            "puppeteer": BrowserRenderer(engine, gateway, browser),
            "vercelSatori": RasterRenderer(engine, gateway, backends.get("vercelSatori"), "vercelSatori"),
            "takumi": RasterRenderer(engine, gateway, backends.get("takumi"), "takumi"),
        }

    def reload(self, config: Config) -> None:
        self.config = config

    def packing_type(self, source: CommandSource) -> str:
        if source.message_packing_type == "inherit":
            return self.config.message_packing_type
        return source.message_packing_type

    async def render(self, ctx: ExecutionContext, data: Any) -> list[Element]:
        """Filter, hook, render and pack.

        Raises:
            RenderError: Unsupported send type or nothing to render
            PipelineAbort, HookMessage: From ``renderedBefore`` hooks
        """
        renderer = self.renderers.get(ctx.source.send_type)
        if renderer is None:
            raise RenderError(f"Unsupported send type: {ctx.source.send_type}")

        prepared = renderer.prepare(ctx, data)
        await self.hooks.run(ctx, HookPoint.RENDERED_BEFORE, {"data": prepared})
        fragments = await renderer.render(ctx, prepared)
        logger.debug(f"Rendered {len(fragments)} fragments for {ctx.command}")
        return pack(fragments, self.packing_type(ctx.source))
