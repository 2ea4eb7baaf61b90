"""Message markup fragments.

Chat messages are trees of elements: ``text`` leaves plus tags such as
``p``, ``img``, ``audio``, ``at`` or ``message``. Markup strings are parsed
with BeautifulSoup's ``html.parser`` and serialised back with ``str()``.
"""

from __future__ import annotations

import html
from dataclasses import dataclass, field
from typing import Any, Iterable, Union

from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.element import Comment

TEXT = "text"
MEDIA_TYPES = ("img", "audio", "video", "file")


@dataclass
class Element:
    """One node of a message tree."""

    type: str
    attrs: dict[str, Any] = field(default_factory=dict)
    children: list["Element"] = field(default_factory=list)

    @classmethod
    def text(cls, content: Any) -> "Element":
        return cls(TEXT, {"content": "" if content is None else str(content)})

    @property
    def content(self) -> str:
        return str(self.attrs.get("content", ""))

    def __str__(self) -> str:
        if self.type == TEXT:
            return html.escape(self.content, quote=False)
        attrs = "".join(_format_attr(key, value) for key, value in self.attrs.items())
        if not self.children:
            return f"<{self.type}{attrs}/>"
        inner = "".join(str(child) for child in self.children)
        return f"<{self.type}{attrs}>{inner}</{self.type}>"


Fragment = Union[str, Element, Iterable[Element], None]


def _format_attr(key: str, value: Any) -> str:
    if value is None or value is False:
        return ""
    if value is True:
        return f" {key}"
    return f' {key}="{html.escape(str(value), quote=True)}"'


def h(type: str, attrs: dict[str, Any] | None = None, *children: Element) -> Element:
    """Build an element."""
    return Element(type, dict(attrs or {}), list(children))


def media(type: str, src: str) -> Element:
    """Build an ``img``/``audio``/``video``/``file`` element."""
    return Element(type, {"src": src})


def _convert(node: Any) -> Element | None:
    if isinstance(node, Comment):
        return None
    if isinstance(node, NavigableString):
        text = str(node)
        return Element.text(text) if text else None
    if isinstance(node, Tag):
        children = [child for child in (_convert(c) for c in node.children) if child is not None]
        return Element(node.name, dict(node.attrs), children)
    return None


def parse(markup: Any) -> list[Element]:
    """Parse a markup string into elements; non-strings become one text element."""
    if markup is None:
        return []
    if isinstance(markup, Element):
        return [markup]
    if not isinstance(markup, str):
        return [Element.text(markup)]
    soup = BeautifulSoup(markup, "html.parser", multi_valued_attributes=None)
    return [element for element in (_convert(node) for node in soup.contents) if element is not None]


def normalize(fragment: Fragment) -> list[Element]:
    """Turn any fragment shape into a flat list of elements."""
    if fragment is None:
        return []
    if isinstance(fragment, str):
        return parse(fragment)
    if isinstance(fragment, Element):
        return [fragment]
    if not isinstance(fragment, (list, tuple)):
        return [Element.text(fragment)]
    result: list[Element] = []
    for item in fragment:
        result.extend(normalize(item))
    return result


def to_markup(elements: Iterable[Element]) -> str:
    return "".join(str(element) for element in elements)


def to_text(elements: Iterable[Element]) -> str:
    """Plain text of a tree; ``br`` and block ``p`` boundaries become newlines."""
    parts: list[str] = []

    def visit(element: Element) -> None:
        if element.type == TEXT:
            parts.append(element.content)
            return
        if element.type == "br":
            parts.append("\n")
            return
        for child in element.children:
            visit(child)
        if element.type in ("p", "message"):
            parts.append("\n")

    for element in elements:
        visit(element)
    return "".join(parts)
