"""Media render strategies: image, audio, video and file."""

from __future__ import annotations

import logging
from typing import Any

from core.context import ExecutionContext
from core.elements import Element, media
from core.exceptions import RenderError
from core.objects import flatten

from .base import Renderer, media_inlining_enabled, pick_one, renderer_headers

logger = logging.getLogger(__name__)


class MediaRenderer(Renderer):
    """Wraps URLs or data URIs into media elements.

    Attributes:
        element_type: ``img``, ``audio``, ``video`` or ``file``
        data_prefix: Accepted data URI prefix, e.g. ``data:image/``
    """

    def __init__(self, engine, gateway, element_type: str, data_prefix: str):
        super().__init__(engine, gateway)
        self.element_type = element_type
        self.data_prefix = data_prefix

    def verify(self, item: Any) -> bool:
        return isinstance(item, str) and (item.startswith("http") or item.startswith(self.data_prefix))

    def prepare(self, ctx: ExecutionContext, data: Any) -> list[str]:
        """Keep qualifying items, then optionally pick one.

        Raises:
            RenderError: No item qualifies
        """
        items = [item for item in flatten(data) if self.verify(item)]
        if not items:
            raise RenderError("No qualifying result")
        if ctx.source.pick_one_randomly:
            return pick_one(items)
        return items

    async def render(self, ctx: ExecutionContext, data: list[str]) -> list[Element]:
        inline = media_inlining_enabled(ctx)
        headers = renderer_headers(ctx)
        elements: list[Element] = []
        for item in data:
            if inline and item.startswith("http"):
                item = await self.gateway.url_to_base64(ctx, item, headers)
            elements.append(media(self.element_type, item))
        return elements
