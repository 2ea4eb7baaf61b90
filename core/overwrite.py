"""
Auto-overwrite of request structures.

Request headers, form fields and JSON bodies are templates: every string
leaf is interpolated, then options flagged ``auto_overwrite`` replace the
value at their path. A path is only overwritten when the target already
has a value there, so templates can declare optional placeholder fields.
"""

from __future__ import annotations

import dataclasses
import logging
from typing import Any

from .context import ExecutionContext, OptionInfoMap
from .objects import has_path, set_path, walk_leaves
from .template import TemplateEngine

logger = logging.getLogger(__name__)


def plain_value(value: Any) -> Any:
    """Resolved member and channel records become mappings for JSON bodies."""
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    return value


def apply_overwrite(target: Any, option_info_map: OptionInfoMap, compel_string: bool) -> Any:
    """Overwrite existing paths of ``target`` with auto-overwrite option values.

    Never adds keys. A failing assignment is logged and skipped; the other
    options still apply.
    """
    for name, info in option_info_map.info_map.items():
        if name.startswith("$") or not info.auto_overwrite or info.value is None:
            continue
        path = info.overwrite_key or name
        try:
            if not has_path(target, path):
                continue
            set_path(target, path, str(info.value) if compel_string else plain_value(info.value))
        except (KeyError, IndexError, TypeError, ValueError) as e:
            logger.debug(f"Skipped overwrite of {path}: {e}")
    return target


async def format_obj_option(
    engine: TemplateEngine,
    ctx: ExecutionContext,
    obj: Any,
    compel_string: bool,
) -> Any:
    """Interpolate every string leaf of ``obj`` in place, then apply overwrites."""
    scope = engine.build_scope(ctx)

    async def visit(value: Any, key: Any, container: Any) -> None:
        if isinstance(value, str):
            container[key] = await engine.substitute(ctx, value, scope=scope)

    await walk_leaves(obj, visit)
    return apply_overwrite(obj, ctx.option_info_map, compel_string)
