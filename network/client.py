"""
HTTP client settings and proxy policy.

An HttpClient is an immutable bundle of transport settings. Each request
opens a short-lived ``httpx.AsyncClient`` configured from it, and
``extend`` derives a new client with some settings overridden.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field
from typing import Any, Optional

import httpx

from config import DEFAULT_TIMEOUT_S, ProxyConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HttpClient:
    """Transport settings for outgoing requests.

    Attributes:
        timeout: Request timeout in seconds
        proxy: Proxy URL, None for a direct connection
        headers: Default request headers
        transport: Explicit transport (tests use ``httpx.MockTransport``);
            when set, ``proxy`` is not applied
        follow_redirects: Whether redirects are followed
    """

    timeout: float = DEFAULT_TIMEOUT_S
    proxy: Optional[str] = None
    headers: dict[str, str] = field(default_factory=dict)
    transport: Optional[httpx.AsyncBaseTransport] = None
    follow_redirects: bool = True

    def extend(self, **changes: Any) -> "HttpClient":
        """Derive a client with some settings replaced."""
        return dataclasses.replace(self, **changes)

    def _client_kwargs(self) -> dict[str, Any]:
        kwargs: dict[str, Any] = {
            "timeout": self.timeout,
            "headers": self.headers,
            "follow_redirects": self.follow_redirects,
        }
        if self.transport is not None:
            kwargs["transport"] = self.transport
        elif self.proxy:
            kwargs["proxy"] = self.proxy
        return kwargs

    async def request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Send a request; the response body is fully read before returning."""
        async with httpx.AsyncClient(**self._client_kwargs()) as client:
            return await client.request(method, url, **kwargs)

    async def get(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("GET", url, **kwargs)

    async def post(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("POST", url, **kwargs)


def build_http_client(base: HttpClient, config: Optional[ProxyConfig]) -> HttpClient:
    """Apply a proxy policy on top of ``base``.

    NONE connects directly with the configured timeout, MANUAL uses the
    configured proxy and timeout, GLOBAL (or no policy) keeps ``base``.
    """
    if config is None or config.proxy_type == "GLOBAL":
        return base
    if config.proxy_type == "NONE":
        return base.extend(timeout=config.timeout, proxy=None)
    if not config.proxy_agent:
        logger.warning("MANUAL proxy policy without proxy_agent, connecting directly")
    return base.extend(timeout=config.timeout, proxy=config.proxy_agent)
