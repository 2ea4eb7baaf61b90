"""
Pre-processing of message markup before it is rasterised.

- ``img`` elements get a ``max-width`` so they fit the canvas
- mentions (``at``) become ``@name `` text, looked up on the platform when
  only an id is present
- literal newlines inside text become ``br`` elements
"""

from __future__ import annotations

import logging
import re
from typing import Optional

from config.defaults import DEFAULT_IMAGE_MAX_WIDTH
from core.context import ExecutionContext
from core.elements import TEXT, Element
from core.objects import is_blank
from core.platform import get_channel, get_guild_member, get_role_name

logger = logging.getLogger(__name__)

_STYLE_SPLIT = re.compile(r";(?![^(]*\))")


def parse_style(style: Optional[str]) -> dict[str, str]:
    """``"max-width: 10px; color: red"`` to ``{"max-width": "10px", "color": "red"}``."""
    result: dict[str, str] = {}
    for declaration in _STYLE_SPLIT.split(style or ""):
        name, sep, value = declaration.partition(":")
        if sep and name.strip():
            result[name.strip().lower()] = value.strip()
    return result


def format_style(style: dict[str, str]) -> str:
    return "; ".join(f"{name}: {value}" for name, value in style.items())


def merge_max_width(element: Element, max_width: str = DEFAULT_IMAGE_MAX_WIDTH) -> None:
    style = parse_style(element.attrs.get("style"))
    style.setdefault("max-width", max_width)
    element.attrs["style"] = format_style(style)


async def mention_name(ctx: ExecutionContext, element: Element) -> str:
    """Display name of an ``at`` (or ``sharp`` channel) element."""
    attrs = element.attrs
    if not is_blank(attrs.get("name")):
        return str(attrs["name"])
    if attrs.get("type") in ("all", "here"):
        return str(attrs["type"])
    if element.type == "sharp" and attrs.get("id"):
        channel = await get_channel(ctx.session, str(attrs["id"]))
        return channel.name or str(attrs["id"])
    if attrs.get("role"):
        return await get_role_name(ctx.session, str(attrs["role"])) or str(attrs["role"])
    if attrs.get("id"):
        member = await get_guild_member(ctx.session, str(attrs["id"]))
        return member.nick or member.name or str(attrs["id"])
    return ""


def split_newlines(element: Element) -> list[Element]:
    """A text element with newlines as alternating text and ``br`` elements."""
    if "\n" not in element.content:
        return [element]
    result: list[Element] = []
    for index, line in enumerate(element.content.split("\n")):
        if index:
            result.append(Element("br"))
        if line:
            result.append(Element.text(line))
    return result


async def preprocess(ctx: ExecutionContext, elements: list[Element]) -> list[Element]:
    """Apply image sizing, mention rewriting and newline conversion recursively."""
    result: list[Element] = []
    for element in elements:
        if element.type == TEXT:
            result.extend(split_newlines(element))
            continue
        if element.type in ("at", "sharp"):
            result.append(Element.text(f"@{await mention_name(ctx, element)} "))
            continue
        if element.type == "img":
            merge_max_width(element)
        element.children = await preprocess(ctx, element.children)
        result.append(element)
    return result
