"""
Headless browser capture (``puppeteer`` send type).

The page is loaded from a URL, raw HTML or a Jinja2 template, with the
fetched data exposed to page scripts as ``window.data``. After the
configured wait the chosen element is captured as a PNG.
"""

from __future__ import annotations

import base64
import json
import logging
from typing import Any, Optional, Protocol

from core.context import ExecutionContext
from core.elements import Element
from core.exceptions import RenderError
from core.objects import is_blank

from .base import Renderer

logger = logging.getLogger(__name__)


class Locator(Protocol):
    async def screenshot(self, *, omit_background: bool = False, type: str = "png") -> bytes:
        ...


class Page(Protocol):
    """Browser page, shaped after Playwright's async API."""

    async def add_init_script(self, script: str) -> None:
        ...

    async def goto(self, url: str, *, wait_until: str = "load", timeout: Optional[float] = None) -> Any:
        ...

    async def set_content(self, html: str, *, wait_until: str = "load", timeout: Optional[float] = None) -> None:
        ...

    async def wait_for_selector(self, selector: str, *, timeout: Optional[float] = None) -> Any:
        ...

    async def wait_for_function(self, expression: str, *, timeout: Optional[float] = None) -> Any:
        ...

    async def wait_for_timeout(self, timeout: float) -> None:
        ...

    def locator(self, selector: str) -> Locator:
        ...

    async def close(self) -> None:
        ...


class Browser(Protocol):
    async def new_page(self) -> Page:
        ...


class BrowserRenderer(Renderer):
    """Captures a rendered page as an image."""

    def __init__(self, engine, gateway, browser: Optional[Browser]):
        super().__init__(engine, gateway)
        self.browser = browser

    async def render(self, ctx: ExecutionContext, data: Any) -> list[Element]:
        if self.browser is None:
            raise RenderError("No browser available for page capture")
        spec = ctx.source.renderer_puppeteer
        wait_until = "networkidle" if spec.wait_type == "networkidle" else "load"

        page = await self.browser.new_page()
        try:
            await page.add_init_script(f"window.data = {json.dumps(data, ensure_ascii=False, default=str)};")
            if spec.renderer_type == "url":
                url = await self.engine.substitute(ctx, spec.url or "", {"data": data})
                if is_blank(url):
                    raise RenderError("Page capture needs a URL")
                await page.goto(url, wait_until=wait_until, timeout=spec.wait_timeout)
            else:
                if spec.renderer_type == "ejs":
                    html = await self.engine.render_markup(ctx, spec.ejs_template or "", {"data": data})
                else:
                    html = await self.engine.substitute(ctx, spec.html or "", {"data": data})
                await page.set_content(html, wait_until=wait_until, timeout=spec.wait_timeout)

            if spec.wait_type == "selector" and not is_blank(spec.wait_selector):
                await page.wait_for_selector(spec.wait_selector, timeout=spec.wait_timeout)
            elif spec.wait_type == "function" and not is_blank(spec.wait_fn):
                await page.wait_for_function(spec.wait_fn, timeout=spec.wait_timeout)
            elif spec.wait_type == "sleep":
                await page.wait_for_timeout(spec.wait_time)

            image = await page.locator(spec.screenshot_selector).screenshot(
                omit_background=spec.screenshot_omit_background, type="png"
            )
        finally:
            await page.close()

        logger.debug(f"Captured page for {ctx.command}: {len(image)} bytes")
        return [Element("img", {"src": "data:image/png;base64," + base64.b64encode(image).decode("ascii")})]
