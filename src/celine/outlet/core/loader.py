# celine/outlet/core/loader.py
"""
Helpers for YAML configuration files and dynamic imports.
"""
from __future__ import annotations

import importlib
import logging
import os
import re
from glob import glob
from pathlib import Path
from typing import Any, Iterable, Mapping

import yaml

logger = logging.getLogger(__name__)

# ${VAR} or ${VAR:-default}
ENV_VAR_PATTERN = re.compile(r"\$\{([^}:]+)(?::-([^}]*))?\}")


def import_attr(path: str) -> Any:
    """
    Import ``module.path:attribute``.

    Raises:
        ValueError: If path format is invalid
        ImportError: If module cannot be imported
        AttributeError: If attribute doesn't exist
    """
    if ":" not in path:
        raise ValueError(f"Invalid import path '{path}', expected 'module:attr'")

    mod_name, attr = path.split(":", 1)

    try:
        mod = importlib.import_module(mod_name)
    except ImportError as exc:
        logger.error("Failed to import module '%s'", mod_name)
        raise ImportError(f"Cannot import module '{mod_name}'") from exc

    try:
        return getattr(mod, attr)
    except AttributeError as exc:
        logger.error("Module '%s' has no attribute '%s'", mod_name, attr)
        raise AttributeError(f"Module '{mod_name}' has no attribute '{attr}'") from exc


def substitute_env_vars(value: Any) -> Any:
    """
    Recursively substitute ``${VAR}`` and ``${VAR:-default}`` in strings.

    Raises:
        ValueError: If a variable is unset and has no default
    """
    if isinstance(value, str):
        return _substitute_string(value)
    if isinstance(value, dict):
        return {k: substitute_env_vars(v) for k, v in value.items()}
    if isinstance(value, list):
        return [substitute_env_vars(item) for item in value]
    return value


def _substitute_string(value: str) -> str:
    def replacer(match: re.Match) -> str:
        var_name = match.group(1)
        default = match.group(2)

        env_value = os.environ.get(var_name)
        if env_value is not None:
            return env_value
        if default is not None:
            return default
        raise ValueError(
            f"Environment variable '{var_name}' is not set and no default provided"
        )

    return ENV_VAR_PATTERN.sub(replacer, value)


def load_yaml_files(patterns: Iterable[str]) -> list[dict[str, Any]]:
    """
    Load every YAML file matching the glob patterns, in sorted path order.

    Empty files load as ``{}``.
    """
    patterns = list(patterns)
    files: set[Path] = set()

    for pattern in patterns:
        files.update(Path(m).resolve() for m in glob(pattern))

    if not files:
        logger.warning("No config files found matching patterns: %s", patterns)
        return []

    ordered = sorted(files)
    logger.info("Loading config files: %s", [str(f) for f in ordered])

    out: list[dict[str, Any]] = []
    for f in ordered:
        with f.open("r", encoding="utf-8") as fh:
            content = yaml.safe_load(fh) or {}
        if not isinstance(content, dict):
            raise ValueError(f"Config file '{f}' must contain a mapping at top level")
        out.append(content)

    return out


def merge_dicts(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """Deep-merge ``override`` into a copy of ``base``."""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), Mapping):
            merged[key] = merge_dicts(merged[key], value)
        else:
            merged[key] = value
    return merged
