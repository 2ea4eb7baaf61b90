"""
Configuration module for the data command plugin.

Exports the configuration models and loader functions used throughout the application.
"""

from .defaults import DEFAULT_COMMAND_GROUP, DEFAULT_TIMEOUT_S, DEFAULT_TOPIC_PREFIX, EXAMPLE_PRESET_FNS
from .loader import get_config, load_config, load_config_file, merge_configs, strip_jsonc_comments
from .main_config import (
    Config,
    ConfigExpert,
    PlatformResource,
    PresetConstant,
    PresetFn,
    ProxyConfig,
)
from .source_config import (
    CommandArg,
    CommandOption,
    CommandSource,
    HookFn,
    PuppeteerSpec,
    RasterSpec,
    ResModified,
    SourceExpert,
)

__all__ = [
    # Constants
    "DEFAULT_COMMAND_GROUP",
    "DEFAULT_TIMEOUT_S",
    "DEFAULT_TOPIC_PREFIX",
    "EXAMPLE_PRESET_FNS",
    # Config models
    "Config",
    "ConfigExpert",
    "PlatformResource",
    "PresetConstant",
    "PresetFn",
    "ProxyConfig",
    "CommandArg",
    "CommandOption",
    "CommandSource",
    "HookFn",
    "PuppeteerSpec",
    "RasterSpec",
    "ResModified",
    "SourceExpert",
    # Loader functions
    "load_config",
    "get_config",
    "load_config_file",
    "merge_configs",
    "strip_jsonc_comments",
]
