"""
Service composition.

Builds every component in dependency order from the operator
configuration and the host collaborators, and tears them down in reverse.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from config import Config
from core.cache import ConditionalCache, KeyValueCache
from core.logging_config import setup_logging
from core.options import OptionResolver
from core.platform import ChatSession
from core.presets import PresetPool
from core.template import TemplateEngine
from hooks import HookGate
from network import HttpClient, HttpGateway, RequestBuilder, ResponseParser
from renderers import Browser, RasterBackend, RendererDispatcher

from .commands import CommandRegistry
from .delivery import Delivery, Scheduler, TopicService
from .pipeline import PipelineOrchestrator
from .source_get import OutputCapture, SourceFetcher

logger = logging.getLogger(__name__)


class NetGetService:
    """The data command plugin wired together.

    Args:
        config: Operator configuration
        http: Ambient HTTP client every proxy policy derives from
        cache: Persistent key-value store for conditional request state
        topics: Topic distribution service
        scheduler: Cron service for scheduled tasks
        browser: Headless browser for page capture
        raster_backends: Markup rasterisers by send type
    """

    def __init__(
        self,
        config: Config,
        http: Optional[HttpClient] = None,
        cache: Optional[KeyValueCache] = None,
        topics: Optional[TopicService] = None,
        scheduler: Optional[Scheduler] = None,
        browser: Optional[Browser] = None,
        raster_backends: Optional[dict[str, RasterBackend]] = None,
    ):
        self.config = config
        self.scheduler = scheduler

        self.engine = TemplateEngine({"_cache": cache})
        self.preset_pool = PresetPool(self.engine.modules)
        self.cache = ConditionalCache(cache)
        self.resolver = OptionResolver()
        self.gateway = HttpGateway(config, self.engine, http)
        self.hooks = HookGate(self.engine)
        self.requests = RequestBuilder(self.gateway, self.hooks, self.cache)
        self.parser = ResponseParser(self.engine, self.hooks, self.cache)
        self.capture = OutputCapture()
        self.fetcher = SourceFetcher(self.engine, self.hooks, self.requests, self.parser, self.capture)
        self.renderer = RendererDispatcher(
            config, self.engine, self.gateway, self.hooks, browser, raster_backends
        )
        self.delivery = Delivery(topics)
        self.pipeline = PipelineOrchestrator(
            config,
            self.engine,
            self.preset_pool,
            self.resolver,
            self.fetcher,
            self.renderer,
            self.delivery,
        )
        self.commands = CommandRegistry(self.pipeline, group=config.command_group)

    def start(self) -> None:
        """Load presets and commands and register scheduled tasks.

        Root logging is configured first when ``log_level`` is set.
        """
        if self.config.log_level:
            setup_logging(self.config.log_level)
        self.preset_pool.load(self.config)
        self.commands.load(self.config.sources)
        registered = self.commands.register_tasks(self.scheduler, self.delivery.topics)
        logger.info(f"Started with {len(self.config.sources)} commands, {registered} scheduled tasks")

    async def reload(self, config: Config) -> None:
        """Swap in a new configuration; commands are replaced wholesale."""
        self.delivery.dispose()
        self.config = config
        self.gateway.reload(config)
        self.renderer.reload(config)
        self.pipeline.reload(config)
        self.commands.group = config.command_group
        await self.preset_pool.reload(config)
        self.commands.load(config.sources)
        self.commands.register_tasks(self.scheduler, self.delivery.topics)
        logger.info("Configuration reloaded")

    def dispose(self) -> None:
        """Cancel pending recalls and unregister scheduled tasks."""
        self.delivery.dispose()
        self.commands.clear_tasks()
        logger.info("Disposed")

    async def execute(self, name: str, session: ChatSession, content: str) -> None:
        """Entry point for a user invocation."""
        await self.commands.execute(name, session, content)

    def before_send(self, session_id: str, command: str, sub_command: str, fragment: Any) -> bool:
        """Entry point for the host's outgoing message hook; True suppresses sending."""
        return self.capture.before_send(session_id, command, sub_command, fragment)
