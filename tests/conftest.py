"""
Shared pytest fixtures for all tests.
"""
import tempfile
from pathlib import Path
from typing import Any, Callable, Iterator, Optional

import httpx
import pytest

from config import CommandSource, Config, SourceExpert
from core.cache import ConditionalCache
from core.context import ExecutionContext, OptionInfo, OptionInfoMap
from core.platform import ListPage
from core.presets import PresetPool
from core.template import TemplateEngine
from hooks import HookGate
from network import HttpClient, HttpGateway


class FakeBot:
    """Bot with fixed member, channel and role listings."""

    def __init__(
        self,
        members: Optional[list[dict[str, Any]]] = None,
        channels: Optional[list[dict[str, Any]]] = None,
        roles: Optional[list[dict[str, Any]]] = None,
    ):
        self.platform = "discord"
        self.self_id = "bot-1"
        self.members = members or []
        self.channels = channels or []
        self.roles = roles or []
        self.deleted: list[tuple[str, str]] = []

    async def get_guild_member_list(self, guild_id: str, next: Optional[str] = None) -> ListPage:
        return ListPage(data=self.members)

    async def get_guild_role_list(self, guild_id: str, next: Optional[str] = None) -> ListPage:
        return ListPage(data=self.roles)

    async def get_channel_list(self, guild_id: str, next: Optional[str] = None) -> ListPage:
        return ListPage(data=self.channels)

    async def delete_message(self, channel_id: str, message_id: str) -> None:
        self.deleted.append((channel_id, message_id))


class FakeSession:
    """Session recording what was sent and which commands were executed."""

    def __init__(self, bot: Optional[FakeBot] = None, content: str = ""):
        self.id = "session-1"
        self.platform = "discord"
        self.channel_id = "channel-1"
        self.guild_id = "guild-1"
        self.content = content
        self.event = {"type": "message-created", "user": {"id": "user-1"}}
        self.bot = bot or FakeBot()
        self.sent: list[Any] = []
        self.executed: list[str] = []
        self.on_execute: Optional[Callable[[str], Any]] = None

    async def send(self, fragment: Any) -> list[str]:
        self.sent.append(fragment)
        return [f"msg-{len(self.sent)}"]

    async def execute(self, content: str) -> None:
        self.executed.append(content)
        if self.on_execute is not None:
            await self.on_execute(content)


class FakeKeyValueCache:
    """In-memory stand-in for the host's persistent cache."""

    def __init__(self):
        self.data: dict[str, Any] = {}

    async def get(self, key: str) -> Any:
        return self.data.get(key)

    async def set(self, key: str, value: Any) -> None:
        self.data[key] = value


@pytest.fixture
def temp_dir() -> Iterator[Path]:
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def bot() -> FakeBot:
    return FakeBot(
        members=[
            {"user": {"id": "42", "name": "alice"}, "nick": "Al"},
            {"user": {"id": "43", "name": "bob"}},
        ],
        channels=[{"id": "c1", "name": "general"}],
        roles=[{"id": "r1", "name": "admins"}],
    )


@pytest.fixture
def session(bot: FakeBot) -> FakeSession:
    return FakeSession(bot)


@pytest.fixture
def kv_cache() -> FakeKeyValueCache:
    return FakeKeyValueCache()


@pytest.fixture
def config() -> Config:
    return Config(getting_tips=False)


@pytest.fixture
def engine() -> TemplateEngine:
    return TemplateEngine()


@pytest.fixture
def preset_pool(engine: TemplateEngine) -> PresetPool:
    return PresetPool(engine.modules)


@pytest.fixture
def hooks(engine: TemplateEngine) -> HookGate:
    return HookGate(engine)


@pytest.fixture
def conditional_cache() -> ConditionalCache:
    return ConditionalCache()


@pytest.fixture
def make_source() -> Callable[..., CommandSource]:
    """Build a command; passing ``expert`` settings turns expert mode on."""

    def make(command: str = "test", expert: Optional[dict[str, Any]] = None, **kwargs: Any) -> CommandSource:
        if expert is not None:
            kwargs.setdefault("expert_mode", True)
            kwargs["expert"] = SourceExpert(**expert)
        return CommandSource(command=command, **kwargs)

    return make


@pytest.fixture
def make_ctx(preset_pool: PresetPool) -> Callable[..., ExecutionContext]:
    """Build an invocation context; plain values are wrapped into OptionInfo."""

    def make(source: CommandSource, values: Optional[dict[str, Any]] = None, **kwargs: Any) -> ExecutionContext:
        option_info_map = OptionInfoMap()
        for name, value in (values or {}).items():
            option_info_map.put(name, value if isinstance(value, OptionInfo) else OptionInfo(value=value))
        return ExecutionContext(
            source=source,
            preset_pool=preset_pool,
            option_info_map=option_info_map,
            **kwargs,
        )

    return make


@pytest.fixture
def mock_http() -> Callable[[Callable[[httpx.Request], httpx.Response]], HttpClient]:
    """HTTP client answering every request with ``handler``."""

    def make(handler: Callable[[httpx.Request], httpx.Response]) -> HttpClient:
        return HttpClient(transport=httpx.MockTransport(handler))

    return make


@pytest.fixture
def make_gateway(config: Config, engine: TemplateEngine, mock_http) -> Callable[..., HttpGateway]:
    def make(handler: Callable[[httpx.Request], httpx.Response], gateway_config: Optional[Config] = None) -> HttpGateway:
        return HttpGateway(gateway_config or config, engine, mock_http(handler))

    return make
