"""
Tests for preset constants and functions.
"""

from pathlib import Path

import pytest

from config import EXAMPLE_PRESET_FNS, Config, ConfigExpert, PresetConstant, PresetFn
from core.presets import PresetPool
from core.template import TemplateEngine


def expert_config(base_dir: Path = Path("."), constants=(), fns=()) -> Config:
    return Config(
        base_dir=str(base_dir),
        expert_mode=True,
        expert=ConfigExpert(preset_constants=list(constants), preset_fns=list(fns)),
    )


class TestConstants:
    def test_typed_values(self, preset_pool: PresetPool):
        preset_pool.load(
            expert_config(
                constants=[
                    PresetConstant(name="debug", type="boolean", value="true"),
                    PresetConstant(name="retries", type="number", value="3"),
                    PresetConstant(name="ratio", type="number", value="1.5"),
                    PresetConstant(name="token", type="string", value=123),
                ]
            )
        )
        assert preset_pool.constants == {"debug": True, "retries": 3, "ratio": 1.5, "token": "123"}

    def test_file_constant_read_lazily(self, preset_pool: PresetPool, temp_dir: Path):
        preset_pool.load(
            expert_config(temp_dir, constants=[PresetConstant(name="key", type="file", value="key.pem")])
        )
        # Written after load: the read happens on first access
        (temp_dir / "key.pem").write_text("secret")
        assert preset_pool.constants["key"] == "secret"

        (temp_dir / "key.pem").write_text("changed")
        assert preset_pool.constants["key"] == "secret"

    def test_missing_file_gives_none(self, preset_pool: PresetPool, temp_dir: Path):
        preset_pool.load(
            expert_config(temp_dir, constants=[PresetConstant(name="key", type="file", value="nope.pem")])
        )
        assert preset_pool.constants["key"] is None

    def test_not_loaded_without_expert_mode(self, preset_pool: PresetPool):
        config = expert_config(constants=[PresetConstant(name="a", value="1")])
        preset_pool.load(config.model_copy(update={"expert_mode": False}))
        assert preset_pool.scope() == {}


class TestFunctions:
    def test_sync_function(self, preset_pool: PresetPool):
        preset_pool.load(expert_config(fns=[PresetFn(name="double", args="x", body="return x * 2")]))
        assert preset_pool.functions["double"](21) == 42

    def test_function_sees_modules_constants_and_functions(self, preset_pool: PresetPool):
        preset_pool.load(
            expert_config(
                constants=[PresetConstant(name="salt", value="s")],
                fns=[
                    PresetFn(name="md5", args="content", body="return _hashlib.md5(content.encode()).hexdigest()"),
                    PresetFn(name="signed", args="content", body="return md5(salt + content)"),
                ],
            )
        )
        assert preset_pool.functions["signed"]("a") == preset_pool.functions["md5"]("sa")

    @pytest.mark.asyncio
    async def test_async_function(self, preset_pool: PresetPool):
        body = """
        total = 0
        for value in values:
            total += value
        return total
        """
        preset_pool.load(expert_config(fns=[PresetFn(name="total", args="*values", body=body, is_async=True)]))
        assert await preset_pool.functions["total"](1, 2, 3) == 6

    def test_broken_function_skipped(self, preset_pool: PresetPool, caplog):
        preset_pool.load(
            expert_config(
                fns=[
                    PresetFn(name="broken", body="return ("),
                    PresetFn(name="ok", body="return 1"),
                ]
            )
        )
        assert list(preset_pool.functions) == ["ok"]
        assert "broken" in caplog.text

    @pytest.mark.asyncio
    async def test_reload_replaces_everything(self, preset_pool: PresetPool):
        preset_pool.load(expert_config(constants=[PresetConstant(name="a", value="1")]))
        await preset_pool.reload(expert_config(constants=[PresetConstant(name="b", value="2")]))
        assert preset_pool.constants == {"b": "2"}


class TestPresetsInExpressions:
    @pytest.mark.asyncio
    async def test_available_in_scope(self, engine: TemplateEngine, preset_pool: PresetPool, make_source, make_ctx):
        preset_pool.load(
            expert_config(
                constants=[PresetConstant(name="api_key", value="k1")],
                fns=[PresetFn(name="double", args="x", body="return x * 2")],
            )
        )
        ctx = make_ctx(make_source())
        assert await engine.substitute(ctx, "<%= api_key %>/<%= double(4) %>") == "k1/8"

    @pytest.mark.asyncio
    async def test_options_shadow_presets(self, engine: TemplateEngine, preset_pool: PresetPool, make_source, make_ctx):
        preset_pool.load(expert_config(constants=[PresetConstant(name="city", value="berlin")]))
        ctx = make_ctx(make_source(), {"city": "paris"})
        assert await engine.substitute(ctx, "<%= city %>") == "paris"


class TestExamplePresets:
    """The example functions operators copy into their configuration."""

    @pytest.mark.asyncio
    async def test_examples_compile_and_run(self, preset_pool: PresetPool):
        preset_pool.load(expert_config(fns=[PresetFn(**fn) for fn in EXAMPLE_PRESET_FNS]))
        functions = preset_pool.functions

        assert set(functions) == {"hmac_sha256", "md5", "get_url"}
        assert functions["md5"]("abc") == "900150983cd24fb0d6963f7d28e17f72"
        assert len(functions["hmac_sha256"]("key", "content")) == 64
