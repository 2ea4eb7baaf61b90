"""Per-command configuration models.

A CommandSource declares one data command: where its data comes from, how the
raw response is parsed, how the parsed data is rendered and how the result is
delivered. Instances are frozen once loaded; a reload replaces them wholesale.
"""

from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from .defaults import (
    DEFAULT_SCREENSHOT_SELECTOR,
    DEFAULT_WAIT_TIME_MS,
    DEFAULT_WAIT_TIMEOUT_MS,
)

OptionValue = Union[bool, int, float, str]

ArgType = Literal["string", "number", "user", "channel", "text"]
SourceType = Literal["none", "url", "cmd"]
DataType = Literal["json", "plain", "txt", "html", "resource", "function"]
SendType = Literal[
    "text",
    "image",
    "audio",
    "video",
    "file",
    "ejs",
    "cmdLink",
    "koishiElements",
    "puppeteer",
    "vercelSatori",
    "takumi",
]
RequestDataType = Literal["empty", "form-data", "x-www-form-urlencoded", "raw"]
MessagePackingType = Literal["none", "multiple", "all"]
HookPointName = Literal["SourceGetBefore", "urlReqBefore", "resDataBefore", "renderedBefore"]
ResModifiedType = Literal["none", "LastModified", "ETag", "resDataHash"]


class CommandArg(BaseModel):
    """Positional argument of a command."""

    name: str = Field(description="Argument name, also bound in expressions")
    desc: str = Field(default="", description="Argument description")
    type: ArgType = Field(default="string", description="Value type")
    required: bool = Field(default=False, description="Whether the argument is required")
    auto_overwrite: bool = Field(
        default=False,
        description="Overwrite the same-named key in headers/body when present",
    )
    overwrite_key: Optional[str] = Field(
        default=None,
        description="Path (a.b[0].c) to overwrite instead of the argument name",
    )


class CommandOption(BaseModel):
    """Named option of a command."""

    name: str = Field(description="Option name, also bound in expressions")
    acronym: Optional[str] = Field(default=None, description="Short flag")
    desc: str = Field(default="", description="Option description")
    type: Literal["boolean", "string", "number", "user", "channel", "text"] = Field(
        default="boolean",
        description="Value type",
    )
    value: Optional[OptionValue] = Field(
        default=None,
        description="Fixed value the option carries when given",
    )
    auto_overwrite: bool = Field(default=False, description="See CommandArg.auto_overwrite")
    overwrite_key: Optional[str] = Field(default=None, description="See CommandArg.overwrite_key")


class HookFn(BaseModel):
    """User-defined hook body run at a lifecycle point."""

    type: HookPointName = Field(description="Lifecycle point")
    fn: str = Field(default="", description="Python code block")


class ResModified(BaseModel):
    """Conditional-request settings."""

    type: ResModifiedType = Field(default="none", description="Change detection mode")
    ignore_user_call: bool = Field(
        default=False,
        description="Skip change detection for commands called directly by a user",
    )


class PuppeteerSpec(BaseModel):
    """Settings of the headless-browser capture renderer."""

    renderer_type: Literal["html", "url", "ejs"] = Field(
        default="html",
        description="What the page is loaded from",
    )
    url: Optional[str] = Field(default=None, description="Page URL template (renderer_type=url)")
    html: Optional[str] = Field(default=None, description="HTML template (renderer_type=html)")
    ejs_template: Optional[str] = Field(
        default=None,
        description="Jinja2 template rendered to HTML (renderer_type=ejs)",
    )
    wait_type: Literal["networkidle", "selector", "function", "sleep"] = Field(
        default="networkidle",
        description="How to wait for the page to settle",
    )
    wait_selector: Optional[str] = Field(default=None, description="CSS selector to wait for")
    wait_fn: Optional[str] = Field(
        default=None,
        description="Page-side function; waiting ends once it returns a truthy value",
    )
    wait_timeout: int = Field(default=DEFAULT_WAIT_TIMEOUT_MS, description="Wait timeout (ms)")
    wait_time: int = Field(default=DEFAULT_WAIT_TIME_MS, description="Fixed sleep (ms)")
    screenshot_selector: str = Field(
        default=DEFAULT_SCREENSHOT_SELECTOR,
        description="Element to capture",
    )
    screenshot_omit_background: bool = Field(default=False, description="Transparent background")


class RasterSpec(BaseModel):
    """Settings of the markup-to-image renderers."""

    template: Optional[str] = Field(
        default=None,
        description="Jinja2 markup template; the fetched data is used as markup when empty",
    )
    width: Optional[int] = Field(default=None, description="Image width, inferred when empty")
    height: Optional[int] = Field(default=None, description="Image height, inferred when empty")


class SourceExpert(BaseModel):
    """Extended command configuration."""

    scheduled_task: bool = Field(default=False, description="Run on a cron schedule")
    cron: Optional[str] = Field(default=None, description="Cron expression")
    scheduled_task_content: Optional[str] = Field(
        default=None,
        description="Command line executed by the scheduled task",
    )
    command_args: list[CommandArg] = Field(default_factory=list)
    command_options: list[CommandOption] = Field(default_factory=list)
    request_headers: dict[str, str] = Field(default_factory=dict)
    request_data_type: RequestDataType = Field(default="empty")
    request_raw: Optional[str] = Field(default=None, description="Raw body template")
    request_form: dict[str, str] = Field(default_factory=dict)
    request_form_files: dict[str, str] = Field(
        default_factory=dict,
        description="Multipart file fields, paths relative to the base directory",
    )
    request_json: bool = Field(default=True, description="Treat the raw body as JSON")
    proxy_agent: Optional[str] = Field(default=None, description="Proxy used by this command only")
    rendered_media_url_to_base64: bool = Field(
        default=True,
        description="Download rendered media and inline it as data URIs",
    )
    renderer_request_headers: dict[str, str] = Field(default_factory=dict)
    res_modified: ResModified = Field(default_factory=ResModified)
    disable_user_call: bool = Field(default=False, description="Refuse direct user calls")
    hook_fns: list[HookFn] = Field(default_factory=list)


class CommandSource(BaseModel):
    """One configured data command."""

    model_config = ConfigDict(frozen=True)

    command: str = Field(description="Command name")
    alias: list[str] = Field(default_factory=list)
    desc: str = Field(default="")
    reverse_getting_tips: bool = Field(default=False)
    message_packing_type: Union[Literal["inherit"], MessagePackingType] = Field(default="inherit")
    recall: float = Field(default=0, description="Minutes before the reply is deleted, 0 keeps it")

    source_type: SourceType = Field(default="url")
    source_url: str = Field(default="")
    source_cmd: str = Field(default="", description="Sub-command template (source_type=cmd)")
    source_multiple_cmd: bool = Field(default=False, description="One sub-command per line")
    request_method: str = Field(default="GET")

    data_type: DataType = Field(default="json")
    json_key: Optional[str] = Field(default=None, description="Nested key, [] iterates")
    css_selector: Optional[str] = Field(default=None)
    attribute: Optional[str] = Field(default=None)
    data_function: Optional[str] = Field(default=None, description="Python code block")

    send_type: SendType = Field(default="text")
    pick_one_randomly: bool = Field(default=False)
    ejs_template: Optional[str] = Field(default=None, description="Jinja2 template")
    multiple_cmd: bool = Field(default=False, description="cmdLink: one command per line")
    cmd_link: Optional[str] = Field(default=None)
    renderer_puppeteer: PuppeteerSpec = Field(default_factory=PuppeteerSpec)
    renderer_raster: RasterSpec = Field(default_factory=RasterSpec)

    msg_send_mode: Literal["direct", "topic"] = Field(default="direct")
    msg_topic: Optional[str] = Field(default=None)
    msg_topic_mode_user_call_direct: bool = Field(default=False)

    http_error_show_to_msg: Literal["inherit", "hide", "show", "function"] = Field(default="inherit")
    http_error_show_to_msg_fn: Optional[str] = Field(default=None)

    expert_mode: bool = Field(default=False)
    expert: Optional[SourceExpert] = Field(default=None)

    @property
    def names(self) -> list[str]:
        """Command name followed by its aliases."""
        return [self.command, *self.alias]

    @property
    def expert_or_none(self) -> Optional[SourceExpert]:
        """Extended settings, only when the command opted into them."""
        if not self.expert_mode:
            return None
        return self.expert
