"""
HTTP gateway.

Selects the HTTP client for a command or for media hosted by a chat
platform, downloads URLs and converts them for use in templates.
"""

from __future__ import annotations

import base64
import logging
from typing import Any, Optional
from urllib.parse import urlsplit

import httpx

from config import CommandSource, Config, PlatformResource
from core.context import ExecutionContext
from core.overwrite import format_obj_option
from core.template import TemplateEngine

from .client import HttpClient, build_http_client

logger = logging.getLogger(__name__)


def url_origin(url: str) -> str:
    parts = urlsplit(url)
    return f"{parts.scheme}://{parts.netloc}"


class HttpGateway:
    """Chooses clients by proxy policy and performs downloads.

    Command requests use the operator's expert proxy policy (or the ambient
    client), optionally re-routed through the command's own proxy. Media that
    came in with the invocation (an option unwrapped from inline markup) is
    downloaded with the client and headers configured for its platform.

    Args:
        config: Operator configuration
        engine: Template engine used to interpolate header values; the
            gateway registers its download helpers on it
        base: Ambient client every policy derives from
    """

    def __init__(self, config: Config, engine: TemplateEngine, base: Optional[HttpClient] = None):
        self.config = config
        self.engine = engine
        self.base = base or HttpClient()
        self._platform_clients: dict[str, tuple[HttpClient, Optional[PlatformResource]]] = {}

        engine.register_helper("_url_to_string", self.url_to_string)
        engine.register_helper("_url_to_base64", self.url_to_base64)
        engine.register_module("_http", self.base)

    def reload(self, config: Config) -> None:
        self.config = config
        self._platform_clients.clear()

    def get_cmd_client(self, source: CommandSource) -> HttpClient:
        """Client for a command's own requests."""
        client = build_http_client(self.base, self.config.expert_or_none)
        expert = source.expert_or_none
        if expert is None or not (expert.proxy_agent or "").strip():
            return client
        return client.extend(proxy=expert.proxy_agent.strip())

    def get_platform_client(self, platform: str) -> tuple[HttpClient, Optional[PlatformResource]]:
        """Client and resource settings for media hosted by ``platform``."""
        expert = self.config.expert_or_none
        if expert is None:
            return self.base, None
        if platform not in self._platform_clients:
            resource = next(
                (item for item in expert.platform_resource_list if item.name == platform),
                None,
            )
            client = build_http_client(self.base, resource) if resource else self.base
            self._platform_clients[platform] = (client, resource)
        return self._platform_clients[platform]

    @staticmethod
    def is_platform_url(ctx: ExecutionContext, url: str) -> bool:
        """True when ``url`` came in as inline media of this invocation."""
        return any(
            info.is_file_url and info.value == url
            for info in ctx.option_info_map.info_map.values()
        )

    async def load_url(
        self,
        ctx: ExecutionContext,
        url: str,
        headers: Optional[dict[str, Any]] = None,
        **kwargs: Any,
    ) -> httpx.Response:
        """GET ``url`` with the client matching where it came from.

        Headers are layered as ``Referer`` (the URL's origin), platform
        defaults, then ``headers``; later layers win.

        Raises:
            httpx.HTTPError: On transport failure or a non-2xx status
        """
        merged: dict[str, Any] = {}
        if self.is_platform_url(ctx, url):
            client, resource = self.get_platform_client(ctx.platform)
            if resource is not None:
                merged.update(resource.request_headers)
        else:
            client = self.get_cmd_client(ctx.source)
        merged.update(headers or {})
        if merged:
            await format_obj_option(self.engine, ctx, merged, True)

        response = await client.get(url, headers={"Referer": url_origin(url), **merged}, **kwargs)
        response.raise_for_status()
        return response

    async def url_to_base64(
        self,
        ctx: ExecutionContext,
        url: str,
        headers: Optional[dict[str, Any]] = None,
        **kwargs: Any,
    ) -> str:
        """Download ``url`` as a ``data:<content-type>;base64,...`` URI."""
        response = await self.load_url(ctx, url, headers, **kwargs)
        content_type = response.headers.get("Content-Type", "application/octet-stream")
        return f"data:{content_type};base64," + base64.b64encode(response.content).decode("ascii")

    async def url_to_string(
        self,
        ctx: ExecutionContext,
        url: str,
        headers: Optional[dict[str, Any]] = None,
        **kwargs: Any,
    ) -> str:
        """Download ``url`` as text; binary payloads are decoded as Latin-1."""
        response = await self.load_url(ctx, url, headers, **kwargs)
        if _is_text(response):
            return response.text
        return response.content.decode("latin-1")


def _is_text(response: httpx.Response) -> bool:
    content_type = response.headers.get("Content-Type", "").lower()
    if not content_type:
        return False
    return (
        content_type.startswith("text/")
        or "json" in content_type
        or "xml" in content_type
        or "javascript" in content_type
        or "charset=" in content_type
    )
