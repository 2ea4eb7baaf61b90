"""
Tests for the hook gate.
"""

import pytest

from core.exceptions import HookMessage, PipelineAbort
from hooks import HookGate, HookPoint


def hook_source(make_source, *hooks, expert_mode: bool = True):
    return make_source(
        expert={"hook_fns": [{"type": point, "fn": fn} for point, fn in hooks]},
        expert_mode=expert_mode,
    )


class TestHookGate:
    """Hook return values decide whether the pipeline goes on."""

    @pytest.mark.asyncio
    async def test_false_blocks_silently(self, hooks: HookGate, make_source, make_ctx):
        ctx = make_ctx(hook_source(make_source, ("SourceGetBefore", "return False")))
        with pytest.raises(PipelineAbort) as exc_info:
            await hooks.run(ctx, HookPoint.SOURCE_GET_BEFORE)
        assert exc_info.value.reason == "hookBlock"

    @pytest.mark.asyncio
    async def test_string_becomes_reply(self, hooks: HookGate, make_source, make_ctx):
        ctx = make_ctx(hook_source(make_source, ("SourceGetBefore", "'Not today'")))
        with pytest.raises(HookMessage) as exc_info:
            await hooks.run(ctx, HookPoint.SOURCE_GET_BEFORE)
        assert exc_info.value.text == "Not today"

    @pytest.mark.asyncio
    async def test_other_values_continue(self, hooks: HookGate, make_source, make_ctx):
        ctx = make_ctx(
            hook_source(
                make_source,
                ("SourceGetBefore", "_tmp_pool['runs'] = 1"),
                ("SourceGetBefore", "return True"),
                ("SourceGetBefore", "   "),
                ("SourceGetBefore", "return {'ok': 1}"),
            )
        )
        await hooks.run(ctx, HookPoint.SOURCE_GET_BEFORE)
        assert ctx.tmp_pool == {"runs": 1}

    @pytest.mark.asyncio
    async def test_only_matching_point_runs(self, hooks: HookGate, make_source, make_ctx):
        ctx = make_ctx(hook_source(make_source, ("renderedBefore", "return False")))
        await hooks.run(ctx, HookPoint.SOURCE_GET_BEFORE)

    @pytest.mark.asyncio
    async def test_ignored_without_expert_mode(self, hooks: HookGate, make_source, make_ctx):
        ctx = make_ctx(hook_source(make_source, ("SourceGetBefore", "return False"), expert_mode=False))
        await hooks.run(ctx, HookPoint.SOURCE_GET_BEFORE)

    @pytest.mark.asyncio
    async def test_declaration_order(self, hooks: HookGate, make_source, make_ctx):
        ctx = make_ctx(
            hook_source(
                make_source,
                ("urlReqBefore", "_tmp_pool.setdefault('order', []).append(1)"),
                ("urlReqBefore", "return False"),
                ("urlReqBefore", "_tmp_pool.setdefault('order', []).append(3)"),
            )
        )
        with pytest.raises(PipelineAbort):
            await hooks.run(ctx, HookPoint.URL_REQ_BEFORE)
        assert ctx.tmp_pool["order"] == [1]

    @pytest.mark.asyncio
    async def test_extras_bound(self, hooks: HookGate, make_source, make_ctx):
        ctx = make_ctx(hook_source(make_source, ("renderedBefore", "if not _data:\n    return 'Nothing new'")))
        await hooks.run(ctx, HookPoint.RENDERED_BEFORE, {"data": ["a"]})
        with pytest.raises(HookMessage, match="Nothing new"):
            await hooks.run(ctx, HookPoint.RENDERED_BEFORE, {"data": []})

    @pytest.mark.asyncio
    async def test_errors_propagate(self, hooks: HookGate, make_source, make_ctx):
        ctx = make_ctx(hook_source(make_source, ("resDataBefore", "raise RuntimeError('hook failed')")))
        with pytest.raises(RuntimeError, match="hook failed"):
            await hooks.run(ctx, HookPoint.RES_DATA_BEFORE)
