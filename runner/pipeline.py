"""
Per-invocation pipeline.

resolve options, SourceGetBefore hooks, fetch, parse, render, pack, then
deliver as a reply or to a topic, with optional recall.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

import httpx

from config import CommandSource, Config
from core.context import Argv, ExecutionContext
from core.elements import Element, parse
from core.exceptions import HookMessage, PipelineAbort, RenderError
from core.logging_config import log_timing
from core.options import OptionResolver
from core.platform import ChatSession
from core.presets import PresetPool
from core.template import TemplateEngine
from renderers import RendererDispatcher

from .delivery import Delivery, topic_key
from .source_get import SourceFetcher

logger = logging.getLogger(__name__)

TASK_PLATFORM = "net-get"


class PipelineOrchestrator:
    """Runs commands for user calls and scheduled tasks."""

    def __init__(
        self,
        config: Config,
        engine: TemplateEngine,
        preset_pool: PresetPool,
        resolver: OptionResolver,
        fetcher: SourceFetcher,
        renderer: RendererDispatcher,
        delivery: Delivery,
    ):
        self.config = config
        self.engine = engine
        self.preset_pool = preset_pool
        self.resolver = resolver
        self.fetcher = fetcher
        self.renderer = renderer
        self.delivery = delivery

    def reload(self, config: Config) -> None:
        self.config = config

    def new_context(
        self,
        source: CommandSource,
        argv: Argv,
        session: Optional[ChatSession] = None,
    ) -> ExecutionContext:
        if session is not None:
            return ExecutionContext(
                source=source,
                preset_pool=self.preset_pool,
                session=session,
                event=session.event,
                platform=session.platform,
                content=session.content,
                is_user_call=True,
            )
        return ExecutionContext(
            source=source,
            preset_pool=self.preset_pool,
            event={
                "type": "runTask",
                "platform": TASK_PLATFORM,
                "argv": {"name": argv.name, "arguments": argv.args, "options": argv.options},
            },
            platform=TASK_PLATFORM,
            content=argv.source,
            is_user_call=False,
        )

    async def run(self, ctx: ExecutionContext, argv: Argv) -> list[Element]:
        """Run every step up to packed fragments.

        Raises:
            PipelineAbort: Hook veto or unmodified data
            HookMessage: A hook replied
            httpx.HTTPError: The fetch failed
            RenderError: Nothing could be rendered
        """
        ctx.option_info_map = await self.resolver.resolve(ctx.source, argv, ctx.session)
        with log_timing(logger, f"{ctx.command} fetch"):
            result = await self.fetcher.fetch(ctx)
        data = await self.fetcher.parse(ctx, result)
        with log_timing(logger, f"{ctx.command} render"):
            return await self.renderer.render(ctx, data)

    async def invoke(self, source: CommandSource, session: ChatSession, argv: Argv) -> None:
        """Handle a user call end to end."""
        logger.debug(f"{source.command} args: {argv.args} options: {argv.options}")
        if source.msg_send_mode == "topic" and isinstance(argv.options.get("topic"), bool):
            await self.subscribe(source, session, argv.options["topic"])
            return

        expert = source.expert_or_none
        if expert is not None and expert.disable_user_call:
            logger.info(f"{source.command}: direct calls are disabled")
            return

        tips_ids: list[str] = []
        if self.config.getting_tips != source.reverse_getting_tips:
            tips_ids = await session.send(f"Fetching {source.command}, please wait...")

        ctx = self.new_context(source, argv, session)
        try:
            fragments, is_error = await self._outcome(ctx, argv)
        finally:
            await self.delivery.delete(session, tips_ids)
        if not fragments:
            return

        direct = source.msg_topic_mode_user_call_direct
        if not is_error and source.msg_send_mode == "topic" and not direct and self.delivery.topics:
            await self.delivery.publish(source, fragments)
            fragments = "Message published"
        await self.delivery.reply(session, fragments, source.recall)

    async def _outcome(self, ctx: ExecutionContext, argv: Argv) -> tuple[Any, bool]:
        """Fragments to deliver and whether they report a failure."""
        try:
            return await self.run(ctx, argv), False
        except PipelineAbort as e:
            logger.info(f"{ctx.command} ended: {e} ({e.reason})")
            return None, False
        except HookMessage as e:
            return parse(e.text), True
        except Exception as e:
            return await self.error_reply(ctx, e), True

    async def subscribe(self, source: CommandSource, session: ChatSession, enable: bool) -> None:
        if self.delivery.topics is None:
            await session.send("Topic subscription is not available")
            return
        await self.delivery.topics.subscribe(
            session.bot.platform,
            session.bot.self_id,
            session.channel_id,
            topic_key(source),
            enable,
        )
        await session.send("Subscribed" if enable else "Unsubscribed")

    async def run_task(self, source: CommandSource, argv: Argv) -> None:
        """Handle a scheduled invocation; results can only go to a topic."""
        ctx = self.new_context(source, argv)
        try:
            fragments = await self.run(ctx, argv)
        except PipelineAbort as e:
            logger.info(f"{source.command} task ended: {e} ({e.reason})")
            return
        if not fragments:
            return
        await self.delivery.publish(source, fragments)

    def error_policy(self, source: CommandSource) -> str:
        if source.http_error_show_to_msg == "inherit":
            return self.config.http_error_show_to_msg
        return source.http_error_show_to_msg

    async def error_reply(self, ctx: ExecutionContext, error: Exception) -> list[Element]:
        """Reply for a failed fetch or render according to the error policy.

        Raises:
            Exception: ``error`` itself when the policy hides it or it is
                neither an HTTP error nor a render error
        """
        if not isinstance(error, (httpx.HTTPError, RenderError)):
            raise error
        source = ctx.source
        policy = self.error_policy(source)
        message = f"Failed to execute command {source.command}: "
        response = error.response if isinstance(error, httpx.HTTPStatusError) else None

        if policy == "show":
            if response is None:
                message += str(error)
            else:
                message += response.reason_phrase or ""
                body = _response_body(response)
                if body:
                    message += " " + body
        elif policy == "function" and source.http_error_show_to_msg_fn:
            result = await self.engine.run_code(
                ctx, source.http_error_show_to_msg_fn, {"response": response, "error": error}
            )
            message += "" if result is None else str(result)
        else:
            raise error
        return parse(message)


def _response_body(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text
    if isinstance(data, (dict, list)):
        return json.dumps(data, ensure_ascii=False)
    return str(data)
