"""Configuration loading.

A global file (``~/.netget/netget.yaml``) and the first project file found
(see ``CONFIG_FILENAMES``) are deep-merged, the project file winning.
Commands are merged by name so a project can override single commands of
the global file.
"""

import json
import logging
import re
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml

from .defaults import CONFIG_FILENAMES, GLOBAL_CONFIG_DIR
from .main_config import Config

logger = logging.getLogger(__name__)


def strip_jsonc_comments(content: str) -> str:
    """
    Strip ``//`` and ``/* */`` comments from JSONC content.

    A ``//`` preceded by a colon is kept so URLs survive.
    """
    content = re.sub(r"(?<!:)//.*?$", "", content, flags=re.MULTILINE)
    return re.sub(r"/\*.*?\*/", "", content, flags=re.DOTALL)


def load_config_file(path: Path) -> dict[str, Any] | None:
    """
    Read one config file by its suffix (.json, .jsonc, .yaml, .yml).

    Returns:
        The parsed mapping, or None when the file is missing, unreadable or
        does not hold a mapping
    """
    if not path.exists():
        return None

    try:
        content = path.read_text(encoding="utf-8")
        if path.suffix in (".yaml", ".yml"):
            data = yaml.safe_load(content) or {}
        else:
            data = json.loads(strip_jsonc_comments(content) if path.suffix == ".jsonc" else content)
    except (json.JSONDecodeError, yaml.YAMLError, OSError) as e:
        logger.warning(f"Failed to load config from {path}: {e}")
        return None

    if not isinstance(data, dict):
        logger.warning(f"Ignoring {path}: top level is not a mapping")
        return None
    return data


def merge_configs(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep merge two mappings; ``override`` wins and lists are replaced."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = merge_configs(result[key], value)
        else:
            result[key] = value
    return result


def merge_sources(base: list[dict[str, Any]], override: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Merge command lists by ``command``; overriding entries replace whole commands."""
    merged = {source.get("command"): source for source in base}
    for source in override:
        merged[source.get("command")] = source
    return list(merged.values())


def load_config(project_root: Path | None = None) -> Config:
    """
    Load the global and project configuration.

    Relative ``base_dir`` values are resolved against the project root.

    Args:
        project_root: Project root directory (defaults to current working directory)
    """
    if project_root is None:
        project_root = Path.cwd()

    config_data = load_config_file(Path.home() / GLOBAL_CONFIG_DIR / "netget.yaml") or {}

    for filename in CONFIG_FILENAMES:
        project_config = load_config_file(project_root / filename)
        if project_config is None:
            continue
        sources = merge_sources(config_data.get("sources", []), project_config.get("sources", []))
        config_data = merge_configs(config_data, project_config)
        if sources:
            config_data["sources"] = sources
        logger.debug(f"Loaded project config {filename}")
        break

    base_dir = Path(config_data.get("base_dir", "."))
    if not base_dir.is_absolute():
        config_data["base_dir"] = str(project_root / base_dir)

    return Config(**config_data)


@lru_cache(maxsize=1)
def get_config(project_root: Path | None = None) -> Config:
    """
    Cached ``load_config``.

    Call ``get_config.cache_clear()`` before reloading.
    """
    return load_config(project_root or Path.cwd())
