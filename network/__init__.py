"""
HTTP layer: client policy, downloads, request assembly and response parsing.
"""

from .client import HttpClient, build_http_client
from .gateway import HttpGateway
from .request_builder import RequestBuilder, conditional_mode
from .response import ResponseParser

__all__ = [
    "HttpClient",
    "build_http_client",
    "HttpGateway",
    "RequestBuilder",
    "conditional_mode",
    "ResponseParser",
]
