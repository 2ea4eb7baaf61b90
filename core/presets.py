"""
Process-wide preset constants and functions.

Built from the operator configuration at startup and rebuilt wholesale on
reload. File constants are read from disk the first time a scope needs
them and cached until the next reload.
"""

from __future__ import annotations

import asyncio
import logging
import textwrap
from pathlib import Path
from typing import Any, Callable, Optional

from config import Config, PresetConstant, PresetFn

logger = logging.getLogger(__name__)


class _FileConstant:
    """Deferred file read, cached after the first access."""

    def __init__(self, path: Path):
        self.path = path
        self._loaded = False
        self._value: Optional[str] = None

    def get(self) -> Optional[str]:
        if not self._loaded:
            try:
                self._value = self.path.read_text(encoding="utf-8")
            except OSError as e:
                logger.warning(f"Failed to read preset file {self.path}: {e}")
                self._value = None
            self._loaded = True
        return self._value


def _coerce_constant(constant: PresetConstant) -> Any:
    value = constant.value
    if constant.type == "boolean":
        if isinstance(value, str):
            return value.strip().lower() in ("true", "1", "yes")
        return bool(value)
    if constant.type == "number":
        if isinstance(value, str):
            return float(value) if "." in value else int(value)
        return value
    return "" if value is None else str(value)


class PresetPool:
    """Named constants and functions shared by every invocation.

    Args:
        modules: Static bindings visible to preset function bodies, usually
            the template engine's module table. Read on every call, so later
            registrations are picked up.
    """

    def __init__(self, modules: Optional[dict[str, Any]] = None):
        self.modules: dict[str, Any] = modules if modules is not None else {}
        self._constants: dict[str, Any] = {}
        self._functions: dict[str, Callable[..., Any]] = {}
        self._lock = asyncio.Lock()

    @property
    def constants(self) -> dict[str, Any]:
        """Constant values, resolving deferred file constants."""
        return {
            name: value.get() if isinstance(value, _FileConstant) else value
            for name, value in self._constants.items()
        }

    @property
    def functions(self) -> dict[str, Callable[..., Any]]:
        return dict(self._functions)

    def scope(self) -> dict[str, Any]:
        """Bindings contributed to expression scopes."""
        return {**self.constants, **self._functions}

    def load(self, config: Config) -> None:
        """Replace every constant and function from ``config``."""
        constants: dict[str, Any] = {}
        functions: dict[str, Callable[..., Any]] = {}
        expert = config.expert_or_none
        base_dir = Path(config.base_dir)

        for constant in expert.preset_constants if expert else []:
            if constant.type == "file":
                constants[constant.name] = _FileConstant(base_dir / str(constant.value or ""))
            else:
                constants[constant.name] = _coerce_constant(constant)

        self._constants = constants
        for fn in expert.preset_fns if expert else []:
            try:
                functions[fn.name] = self._build_function(fn)
            except SyntaxError as e:
                logger.error(f"Preset function {fn.name} does not compile: {e}")
        self._functions = functions
        logger.info(f"Loaded {len(constants)} preset constants and {len(functions)} preset functions")

    async def reload(self, config: Config) -> None:
        async with self._lock:
            self.load(config)

    def _namespace(self) -> dict[str, Any]:
        return {**self.modules, **self.constants, **self._functions}

    def _build_function(self, preset: PresetFn) -> Callable[..., Any]:
        keyword = "async def" if preset.is_async else "def"
        body = preset.body.strip("\n") or "pass"
        source = f"{keyword} {preset.name}({preset.args}):\n" + textwrap.indent(
            textwrap.dedent(body), "    "
        )
        namespace: dict[str, Any] = {}
        exec(compile(source, f"<preset {preset.name}>", "exec"), namespace)
        fn = namespace[preset.name]

        def call(*args: Any, **kwargs: Any) -> Any:
            namespace.update(self._namespace())
            return fn(*args, **kwargs)

        call.__name__ = preset.name
        call.__doc__ = f"Preset function {preset.name}({preset.args})"
        return call
