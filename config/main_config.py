"""Main Config model."""

from typing import Literal, Optional

from pydantic import BaseModel, Field

from .defaults import DEFAULT_COMMAND_GROUP, DEFAULT_TIMEOUT_S
from .source_config import CommandSource, MessagePackingType, OptionValue

ProxyType = Literal["NONE", "GLOBAL", "MANUAL"]


class ProxyConfig(BaseModel):
    """Network policy of an HTTP client.

    NONE connects directly with its own timeout, GLOBAL inherits the ambient
    client unchanged, MANUAL uses an explicit proxy address and timeout.
    """

    proxy_type: ProxyType = Field(default="GLOBAL", description="Proxy policy")
    proxy_agent: Optional[str] = Field(default=None, description="Proxy address (MANUAL)")
    timeout: float = Field(default=DEFAULT_TIMEOUT_S, description="Request timeout in seconds")


class PlatformResource(ProxyConfig):
    """Download settings for media hosted by a chat platform."""

    name: str = Field(description="Platform name, e.g. discord or telegram")
    request_headers: dict[str, str] = Field(default_factory=dict)


class PresetConstant(BaseModel):
    """Named constant available to every expression."""

    name: str
    type: Literal["boolean", "string", "number", "file"] = Field(default="string")
    value: Optional[OptionValue] = Field(
        default=None,
        description="Constant value; for file constants a path relative to the base directory",
    )


class PresetFn(BaseModel):
    """Named function available to every expression."""

    name: str
    args: str = Field(default="", description="Parameter list, e.g. a, b=1")
    body: str = Field(description="Python function body")
    is_async: bool = Field(default=False, description="Define the function as async")


class ConfigExpert(ProxyConfig):
    """Operator-wide extended settings."""

    show_debug_info: bool = Field(default=False, description="Log request dumps at INFO")
    platform_resource_list: list[PlatformResource] = Field(default_factory=list)
    preset_constants: list[PresetConstant] = Field(default_factory=list)
    preset_fns: list[PresetFn] = Field(default_factory=list)


class Config(BaseModel):
    """Main configuration model."""

    getting_tips: bool = Field(default=True, description="Send a 'please wait' message")
    message_packing_type: MessagePackingType = Field(default="none")
    http_error_show_to_msg: Literal["hide", "show"] = Field(default="hide")
    command_group: str = Field(
        default=DEFAULT_COMMAND_GROUP,
        description="Parent command listing and running the data commands",
    )
    log_level: Optional[str] = Field(
        default=None,
        description="Configure root logging at this level on start; None leaves logging to the host",
    )
    base_dir: str = Field(default=".", description="Directory relative file paths resolve against")
    expert_mode: bool = Field(default=False)
    expert: Optional[ConfigExpert] = Field(default=None)
    sources: list[CommandSource] = Field(default_factory=list)

    @property
    def expert_or_none(self) -> Optional[ConfigExpert]:
        """Extended settings, only when expert mode is enabled."""
        if not self.expert_mode:
            return None
        return self.expert
