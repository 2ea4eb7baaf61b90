"""
Core business logic package.

This package contains the transport-agnostic pieces of a data command:
invocation context, markup elements, the expression engine and preset
pool, option resolution and object auto-overwrite. The network, renderers
and runner packages build the pipeline around these.
"""

from .cache import CONDITIONAL_HEADERS, RESPONSE_HEADERS, ConditionalCache, KeyValueCache
from .context import (
    Argv,
    ChannelRecord,
    ExecutionContext,
    MemberRecord,
    OptionInfo,
    OptionInfoMap,
)
from .elements import Element, h, media, normalize, parse, to_markup, to_text
from .exceptions import (
    ArgumentError,
    ConfigError,
    CoreError,
    HookMessage,
    PipelineAbort,
    RenderError,
)
from .logging_config import debug_info, log_timing, setup_logging
from .objects import flatten, get_path, get_value, has_path, is_blank, set_path, walk_leaves
from .options import OptionResolver
from .overwrite import apply_overwrite, format_obj_option
from .presets import PresetPool
from .template import TemplateEngine, scope_name

__all__ = [
    # Exceptions
    "CoreError",
    "ConfigError",
    "ArgumentError",
    "PipelineAbort",
    "HookMessage",
    "RenderError",
    # Context
    "Argv",
    "ExecutionContext",
    "MemberRecord",
    "ChannelRecord",
    "OptionInfo",
    "OptionInfoMap",
    # Elements
    "Element",
    "h",
    "media",
    "parse",
    "normalize",
    "to_markup",
    "to_text",
    # Objects
    "is_blank",
    "get_path",
    "has_path",
    "set_path",
    "get_value",
    "walk_leaves",
    "flatten",
    # Expressions and presets
    "TemplateEngine",
    "scope_name",
    "PresetPool",
    # Options
    "OptionResolver",
    "apply_overwrite",
    "format_obj_option",
    # Conditional requests
    "ConditionalCache",
    "KeyValueCache",
    "CONDITIONAL_HEADERS",
    "RESPONSE_HEADERS",
    # Logging
    "setup_logging",
    "log_timing",
    "debug_info",
]
