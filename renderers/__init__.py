"""
Render strategies keyed by send type, plus message packing.
"""

from .base import Renderer
from .browser import Browser, BrowserRenderer, Page
from .dispatcher import RendererDispatcher, pack
from .media import MediaRenderer
from .raster import RasterBackend, RasterRenderer
from .text import CmdLinkRenderer, EjsRenderer, ElementsRenderer, TextRenderer

__all__ = [
    "Renderer",
    "RendererDispatcher",
    "pack",
    "TextRenderer",
    "EjsRenderer",
    "CmdLinkRenderer",
    "ElementsRenderer",
    "MediaRenderer",
    "Browser",
    "Page",
    "BrowserRenderer",
    "RasterBackend",
    "RasterRenderer",
]
