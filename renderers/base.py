"""Base class of render strategies."""

from __future__ import annotations

import json
import random
from typing import Any, TYPE_CHECKING

from core.context import ExecutionContext
from core.elements import Element
from core.objects import flatten

if TYPE_CHECKING:
    from core.template import TemplateEngine
    from network.gateway import HttpGateway


class Renderer:
    """Turns parsed data into message elements.

    ``prepare`` filters the data and applies ``pick_one_randomly``; the
    prepared value is what ``renderedBefore`` hooks see and what ``render``
    receives.
    """

    def __init__(self, engine: "TemplateEngine", gateway: "HttpGateway"):
        self.engine = engine
        self.gateway = gateway

    def prepare(self, ctx: ExecutionContext, data: Any) -> Any:
        if ctx.source.pick_one_randomly:
            return pick_one(flatten(data))
        return data

    async def render(self, ctx: ExecutionContext, data: Any) -> list[Element]:
        raise NotImplementedError


def pick_one(items: list[Any]) -> list[Any]:
    return [random.choice(items)] if items else []


def stringify(item: Any) -> str:
    """Text of one data item; containers are dumped as JSON."""
    if item is None:
        return ""
    if isinstance(item, str):
        return item
    if isinstance(item, (dict, list)):
        return json.dumps(item, ensure_ascii=False, default=str)
    return str(item)


def media_inlining_enabled(ctx: ExecutionContext) -> bool:
    """Whether rendered media URLs are downloaded into data URIs."""
    expert = ctx.source.expert_or_none
    return expert is None or expert.rendered_media_url_to_base64


def renderer_headers(ctx: ExecutionContext) -> dict[str, str]:
    expert = ctx.source.expert_or_none
    return dict(expert.renderer_request_headers) if expert else {}
