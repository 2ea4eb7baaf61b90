"""Hook gate for user-defined lifecycle hooks.

Commands in expert mode can attach Python code blocks to named points of
the pipeline. Hooks run in declaration order; their return value decides
whether the pipeline goes on:

- ``False`` ends the invocation silently
- a string ends the invocation and becomes the reply
- anything else lets the pipeline continue
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Optional

from core.context import ExecutionContext
from core.exceptions import HookMessage, PipelineAbort
from core.objects import is_blank
from core.template import TemplateEngine

logger = logging.getLogger(__name__)


class HookPoint(str, Enum):
    """Lifecycle points hooks can attach to."""

    SOURCE_GET_BEFORE = "SourceGetBefore"
    URL_REQ_BEFORE = "urlReqBefore"
    RES_DATA_BEFORE = "resDataBefore"
    RENDERED_BEFORE = "renderedBefore"


class HookGate:
    """Runs the hooks of a lifecycle point.

    Attributes:
        engine: Template engine running the hook bodies
    """

    def __init__(self, engine: TemplateEngine):
        self.engine = engine

    async def run(
        self,
        ctx: ExecutionContext,
        point: HookPoint,
        extra: Optional[dict[str, Any]] = None,
    ) -> None:
        """Run every hook registered for ``point``.

        Args:
            ctx: Invocation context
            point: Lifecycle point
            extra: Point-specific values, bound as ``_<name>``

        Raises:
            PipelineAbort: A hook returned ``False``
            HookMessage: A hook returned a string
            Exception: A hook body failed
        """
        expert = ctx.source.expert_or_none
        if expert is None:
            return

        hooks = [hook for hook in expert.hook_fns if hook.type == point.value and not is_blank(hook.fn)]
        for hook in hooks:
            result = await self.engine.run_code(ctx, hook.fn, extra)
            if result is False:
                logger.info(f"Hook {point.value} blocked command {ctx.command}")
                raise PipelineAbort(f"hook {point.value} block", "hookBlock")
            if isinstance(result, str):
                logger.debug(f"Hook {point.value} of {ctx.command} replied: {result}")
                raise HookMessage(result)
