"""
Tests for the parse step.
"""

import httpx
import pytest

from core.cache import ConditionalCache
from core.exceptions import ConfigError, CoreError, HookMessage, PipelineAbort
from network import ResponseParser


def response(status: int = 200, url: str = "https://api.example.com/data", **kwargs) -> httpx.Response:
    return httpx.Response(status, request=httpx.Request("GET", url), **kwargs)


@pytest.fixture
def parser(engine, hooks, conditional_cache) -> ResponseParser:
    return ResponseParser(engine, hooks, conditional_cache)


class TestProcessors:
    """One processor per data type."""

    @pytest.mark.asyncio
    async def test_json_with_iterating_key(self, parser, make_source, make_ctx):
        ctx = make_ctx(make_source(json_key="list[]"))
        assert await parser.parse(ctx, response(json={"list": ["x", "y", "z"]})) == ["x", "y", "z"]

    @pytest.mark.asyncio
    async def test_json_key_noise_stripped(self, parser, make_source, make_ctx):
        ctx = make_ctx(make_source(json_key="{data.items[].name};"))
        data = {"data": {"items": [{"name": "a"}, {"name": "b"}]}}
        assert await parser.parse(ctx, response(json=data)) == ["a", "b"]

    @pytest.mark.asyncio
    async def test_json_scalar_wrapped(self, parser, make_source, make_ctx):
        ctx = make_ctx(make_source(json_key="count"))
        assert await parser.parse(ctx, response(json={"count": 5})) == [5]

    @pytest.mark.asyncio
    async def test_json_without_key(self, parser, make_source, make_ctx):
        ctx = make_ctx(make_source())
        assert await parser.parse(ctx, response(json={"a": 1})) == {"a": 1}

    @pytest.mark.asyncio
    async def test_plain(self, parser, make_source, make_ctx):
        ctx = make_ctx(make_source(data_type="plain"))
        assert await parser.parse(ctx, response(json="hello")) == "hello"

    @pytest.mark.asyncio
    async def test_txt(self, parser, make_source, make_ctx):
        ctx = make_ctx(make_source(data_type="txt"))
        assert await parser.parse(ctx, response(text="a\r\n\r\n  \nb\n")) == ["a", "b"]

    @pytest.mark.asyncio
    async def test_html_text(self, parser, make_source, make_ctx):
        ctx = make_ctx(make_source(data_type="html"))
        html = "<div><p>first</p><p> </p><p>second <b>bold</b></p></div>"
        assert await parser.parse(ctx, response(html=html)) == ["first", "second\nbold"]

    @pytest.mark.asyncio
    async def test_html_attribute(self, parser, make_source, make_ctx):
        ctx = make_ctx(make_source(data_type="html", css_selector="img.pic", attribute="src"))
        html = '<img class="pic" src="https://x/1.png"><img class="pic"><img src="https://x/2.png">'
        assert await parser.parse(ctx, response(html=html)) == ["https://x/1.png"]

    @pytest.mark.asyncio
    async def test_resource(self, parser, make_source, make_ctx):
        ctx = make_ctx(make_source(data_type="resource"))
        result = await parser.parse(ctx, response(url="https://img.example.com/final.png", content=b"img"))
        assert result == ["https://img.example.com/final.png"]

    @pytest.mark.asyncio
    async def test_function(self, parser, make_source, make_ctx):
        ctx = make_ctx(make_source(data_type="function", data_function="_response.json()['v'].upper()"))
        assert await parser.parse(ctx, response(json={"v": "ok"})) == ["OK"]

    @pytest.mark.asyncio
    async def test_function_without_body(self, parser, make_source, make_ctx):
        ctx = make_ctx(make_source(data_type="function"))
        with pytest.raises(CoreError, match="No data was fetched"):
            await parser.parse(ctx, response(json={}))

    @pytest.mark.asyncio
    async def test_unknown_type(self, parser, make_source, make_ctx):
        source = make_source().model_copy(update={"data_type": "xml"})
        with pytest.raises(ConfigError):
            await parser.parse(make_ctx(source), response(text="<a/>"))


class TestHooks:
    @pytest.mark.asyncio
    async def test_res_data_before_sees_response(self, parser, make_source, make_ctx):
        source = make_source(
            expert={"hook_fns": [{"type": "resDataBefore", "fn": "'status ' + str(_response.status_code)"}]}
        )
        with pytest.raises(HookMessage, match="status 200"):
            await parser.parse(make_ctx(source), response(json=[]))


class TestChangeDetection:
    @pytest.mark.asyncio
    async def test_etag_recorded(self, parser, make_source, make_ctx, conditional_cache):
        ctx = make_ctx(make_source(expert={"res_modified": {"type": "ETag"}}))
        await parser.parse(ctx, response(json=[1], headers={"ETag": '"v2"'}))
        assert await conditional_cache.get("ETag", "test") == '"v2"'

    @pytest.mark.asyncio
    async def test_last_modified_recorded(self, parser, make_source, make_ctx, conditional_cache):
        ctx = make_ctx(make_source(expert={"res_modified": {"type": "LastModified"}}))
        stamp = "Wed, 21 Oct 2026 07:28:00 GMT"
        await parser.parse(ctx, response(json=[1], headers={"Last-Modified": stamp}))
        assert await conditional_cache.get("LastModified", "test") == stamp

    @pytest.mark.asyncio
    async def test_data_hash_unchanged_aborts(self, parser, make_source, make_ctx):
        ctx = make_ctx(make_source(json_key="list[]", expert={"res_modified": {"type": "resDataHash"}}))
        assert await parser.parse(ctx, response(json={"list": ["a"]})) == ["a"]

        with pytest.raises(PipelineAbort) as exc_info:
            await parser.parse(ctx, response(json={"list": ["a"]}))
        assert exc_info.value.reason == "resModified"

        assert await parser.parse(ctx, response(json={"list": ["b"]})) == ["b"]

    @pytest.mark.asyncio
    async def test_backend_mirrors_entries(self, engine, hooks, kv_cache, make_source, make_ctx):
        parser = ResponseParser(engine, hooks, ConditionalCache(kv_cache))
        ctx = make_ctx(make_source(expert={"res_modified": {"type": "ETag"}}))
        await parser.parse(ctx, response(json=[1], headers={"ETag": "abc"}))
        assert kv_cache.data == {"ETag_test": "abc"}
