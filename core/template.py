"""
Expression evaluation against a per-invocation scope.

Two modes are offered:

- Marker substitution: every ``<%= expr %>`` in a text template is replaced
  by the string value of the Python expression. A failing expression is
  logged and substituted with an empty string.
- Code blocks: a multi-line Python function body run as a fresh
  ``async def``. Its return value is handed back unchanged and any exception
  propagates to the caller.

The scope is a plain dict built per call from the invocation context; the
evaluated code sees nothing else besides Python builtins.
"""

from __future__ import annotations

import ast
import base64
import hashlib
import hmac
import inspect
import json
import logging
import random
import re
import textwrap
import time
from functools import partial
from typing import Any, Callable, Optional

from jinja2 import Environment

from .context import ExecutionContext

logger = logging.getLogger(__name__)

MARKER = re.compile(r"<%=([\s\S]+?)%>")
_RETURN = re.compile(r"^return\b")

# Modules every expression can use
DEFAULT_MODULES: dict[str, Any] = {
    "_hashlib": hashlib,
    "_hmac": hmac,
    "_base64": base64,
    "_json": json,
    "_re": re,
    "_time": time,
    "_random": random,
    "_logger": logging.getLogger("netget.expressions"),
}

ScopeFactory = Callable[[ExecutionContext], Any]


def scope_name(name: str) -> str:
    """Identifier under which a value is bound (``$0`` becomes ``_0``)."""
    return "_" + name[1:] if name.startswith("$") else name


def to_text(value: Any) -> str:
    """String form of an expression result."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False, default=str)
    return str(value)


def _is_expression(line: str) -> bool:
    try:
        compile(line, "<code-block>", "eval", ast.PyCF_ONLY_AST | ast.PyCF_ALLOW_TOP_LEVEL_AWAIT)
    except SyntaxError:
        return False
    return True


def prepare_code_block(code: str) -> str:
    """Normalise a code block body.

    Surrounding blank lines are dropped and the body is dedented. A lone
    expression line without ``return`` gets one, so ``x > 1`` behaves like
    ``return x > 1``.
    """
    lines = textwrap.dedent(code).splitlines()
    while lines and not lines[-1].strip():
        lines.pop()
    while lines and not lines[0].strip():
        lines.pop(0)
    if not lines:
        return "pass"
    if len(lines) == 1:
        line = lines[0].strip()
        if not _RETURN.match(line) and _is_expression(line):
            return f"return {line}"
    return "\n".join(lines)


class TemplateEngine:
    """Evaluates operator-written Python against an invocation scope.

    Other components contribute context-bound helpers (for example the URL
    download helpers) through ``register_helper`` and static values through
    ``register_module``.
    """

    def __init__(self, modules: Optional[dict[str, Any]] = None):
        self.modules: dict[str, Any] = {**DEFAULT_MODULES, **(modules or {})}
        self._helpers: dict[str, ScopeFactory] = {}
        self._jinja = Environment(enable_async=True, autoescape=False)

    def register_module(self, name: str, value: Any) -> None:
        self.modules[name] = value

    def register_helper(self, name: str, fn: Callable[..., Any]) -> None:
        """Bind ``fn(ctx, *args)`` as ``name(*args)`` in every scope."""
        self._helpers[name] = lambda ctx: partial(fn, ctx)

    def register_binding(self, name: str, factory: ScopeFactory) -> None:
        """Bind ``factory(ctx)`` as ``name`` in every scope."""
        self._helpers[name] = factory

    def build_scope(
        self, ctx: ExecutionContext, extra: Optional[dict[str, Any]] = None
    ) -> dict[str, Any]:
        """Fresh name bindings for one evaluation.

        Later entries shadow earlier ones: modules, preset constants and
        functions, helpers, event data, options, then the extra payload.
        """
        scope: dict[str, Any] = dict(self.modules)
        scope.update(ctx.preset_pool.scope())
        for name, factory in self._helpers.items():
            scope[name] = factory(ctx)
        scope["_e"] = ctx.event
        scope["_tmp_pool"] = ctx.tmp_pool
        for name, value in ctx.option_info_map.map.items():
            scope[scope_name(name)] = value
        for name, value in (extra or {}).items():
            scope[f"_{name}"] = value
        return scope

    async def evaluate(self, expr: str, scope: dict[str, Any]) -> Any:
        """Evaluate one expression; ``await`` is allowed at top level."""
        code = compile(
            expr.strip(), "<template>", "eval", flags=ast.PyCF_ALLOW_TOP_LEVEL_AWAIT
        )
        result = eval(code, scope)
        if code.co_flags & inspect.CO_COROUTINE:
            result = await result
        if inspect.isawaitable(result):
            result = await result
        return result

    async def substitute(
        self,
        ctx: ExecutionContext,
        template: Any,
        extra: Optional[dict[str, Any]] = None,
        scope: Optional[dict[str, Any]] = None,
    ) -> Any:
        """Replace every marker in ``template``.

        Each marker occurrence is evaluated on its own, in order, even when
        the same expression text appears several times. Non-string templates
        and templates without markers are returned unchanged.
        """
        if not isinstance(template, str):
            return template
        matches = list(MARKER.finditer(template))
        if not matches:
            return template
        if scope is None:
            scope = self.build_scope(ctx, extra)

        values: list[str] = []
        for match in matches:
            expr = match.group(1)
            try:
                values.append(to_text(await self.evaluate(expr, scope)))
            except Exception as e:
                logger.warning(f"Expression failed in command {ctx.command}: {expr.strip()}: {e}")
                values.append("")

        parts: list[str] = []
        last = 0
        for match, value in zip(matches, values):
            parts.append(template[last:match.start()])
            parts.append(value)
            last = match.end()
        parts.append(template[last:])
        return "".join(parts)

    async def run_code(
        self,
        ctx: ExecutionContext,
        code: str,
        extra: Optional[dict[str, Any]] = None,
    ) -> Any:
        """Run a code block and return its result.

        Raises:
            SyntaxError: If the body does not compile
            Exception: Whatever the body raises
        """
        scope = self.build_scope(ctx, extra)
        source = "async def __code_block__():\n" + textwrap.indent(prepare_code_block(code), "    ")
        exec(compile(source, "<code-block>", "exec"), scope)
        return await scope["__code_block__"]()

    async def render_markup(
        self,
        ctx: ExecutionContext,
        template: str,
        extra: Optional[dict[str, Any]] = None,
    ) -> str:
        """Render a Jinja2 template with the invocation scope, dropping blank lines.

        Values in ``extra`` are bound both as ``_<name>`` and as ``<name>``.
        """
        scope = self.build_scope(ctx, extra)
        scope.update(extra or {})
        rendered = await self._jinja.from_string(template).render_async(**scope)
        return "\n".join(line for line in rendered.splitlines() if line.strip())
