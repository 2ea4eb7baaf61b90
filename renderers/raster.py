"""
Markup-to-image render strategies (``vercelSatori`` and ``takumi``).

Markup is converted into a portable element tree of
``{"type": tag, "props": {..., "style": {...}, "children": [...]}}`` nodes
(text nodes are plain strings) and handed to a rasterisation backend
together with the canvas size.
"""

from __future__ import annotations

import base64
import logging
import re
from typing import Any, Optional, Protocol, Union

from core.context import ExecutionContext
from core.elements import TEXT, Element, normalize, parse
from core.exceptions import RenderError
from core.objects import is_blank

from .base import Renderer, media_inlining_enabled, renderer_headers, stringify
from .markup import parse_style, preprocess

logger = logging.getLogger(__name__)

_PIXELS = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*(px)?\s*$")

Node = Union[str, dict[str, Any]]


class RasterBackend(Protocol):
    """External markup rasteriser."""

    async def render(self, tree: dict[str, Any], options: dict[str, Any]) -> bytes:
        """Render ``tree`` with ``options`` (``width``, ``height``) to PNG bytes."""
        ...


def camel_case(name: str) -> str:
    head, *rest = name.split("-")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


def to_node(element: Element) -> Node:
    if element.type == TEXT:
        return element.content
    props: dict[str, Any] = {}
    for key, value in element.attrs.items():
        if key == "style":
            props["style"] = {camel_case(name): val for name, val in parse_style(value).items()}
        else:
            props[key] = value
    props["children"] = [to_node(child) for child in element.children]
    return {"type": element.type, "props": props}


def to_tree(elements: list[Element]) -> dict[str, Any]:
    """Portable tree; several top-level elements are wrapped in a column ``div``."""
    if len(elements) == 1 and elements[0].type != TEXT:
        return to_node(elements[0])  # type: ignore[return-value]
    return {
        "type": "div",
        "props": {
            "style": {"display": "flex", "flexDirection": "column"},
            "children": [to_node(element) for element in elements],
        },
    }


def pixels(value: Any) -> Optional[int]:
    """Pixel size from ``300``, ``"300"`` or ``"300px"``; percentages give None."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return int(value)
    if isinstance(value, str):
        match = _PIXELS.match(value)
        if match:
            return int(float(match.group(1)))
    return None


def infer_size(tree: dict[str, Any], name: str) -> Optional[int]:
    props = tree.get("props", {})
    size = pixels(props.get("style", {}).get(name))
    if size is None:
        size = pixels(props.get(name))
    return size


async def inline_images(gateway, ctx: ExecutionContext, node: Node) -> None:
    """Replace remote ``img`` sources in the tree with data URIs."""
    if not isinstance(node, dict):
        return
    props = node.get("props", {})
    src = props.get("src")
    if node.get("type") == "img" and isinstance(src, str) and src.startswith("http"):
        props["src"] = await gateway.url_to_base64(ctx, src, renderer_headers(ctx))
    for child in props.get("children", []):
        await inline_images(gateway, ctx, child)


class RasterRenderer(Renderer):
    """Rasterises a template or the data's markup through a backend.

    Attributes:
        backend: Rasteriser, None when the host did not provide one
        name: Send type served, used in messages
    """

    def __init__(self, engine, gateway, backend: Optional[RasterBackend], name: str):
        super().__init__(engine, gateway)
        self.backend = backend
        self.name = name

    async def elements_of(self, ctx: ExecutionContext, data: Any) -> list[Element]:
        spec = ctx.source.renderer_raster
        if not is_blank(spec.template):
            markup = await self.engine.render_markup(ctx, spec.template, {"data": data})
            return await preprocess(ctx, parse(markup))
        items = data if isinstance(data, list) else [data]
        elements = normalize([item if isinstance(item, (str, Element)) else stringify(item) for item in items])
        return await preprocess(ctx, elements)

    async def render(self, ctx: ExecutionContext, data: Any) -> list[Element]:
        if self.backend is None:
            raise RenderError(f"No {self.name} backend available")
        elements = await self.elements_of(ctx, data)
        if not elements:
            raise RenderError("No qualifying result")

        tree = to_tree(elements)
        if media_inlining_enabled(ctx):
            await inline_images(self.gateway, ctx, tree)
        spec = ctx.source.renderer_raster
        options = {
            "width": spec.width or infer_size(tree, "width"),
            "height": spec.height or infer_size(tree, "height"),
        }
        logger.debug(f"Rasterising {ctx.command} with {self.name} at {options}")
        image = await self.backend.render(tree, options)
        return [Element("img", {"src": "data:image/png;base64," + base64.b64encode(image).decode("ascii")})]
