"""coreworld configuration — project-level .coreworldrc.yml support.

Read by the command line only; the kernel functions take every setting as
an explicit argument.

Example .coreworldrc.yml:
    fuel: 5000              # reduction budget per request
    record_trace: true      # keep derivation traces in proofs
    strict_closed: false    # reject input terms with free variables
    max_free: 8             # or cap their free indices
    format: json            # "json" or "text"
    log_level: WARNING
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

import yaml

from coreworld.errors import ConfigError
from coreworld.reduction import DEFAULT_FUEL

_FORMATS = ("json", "text")


@dataclass
class KernelConfig:
    fuel: int = DEFAULT_FUEL
    record_trace: bool = True
    strict_closed: bool = False
    max_free: Optional[int] = None
    format: str = "json"
    log_level: str = "WARNING"


_CONFIG_FILES = [
    ".coreworldrc.yml",
    ".coreworldrc.yaml",
    ".coreworldrc.json",
    "coreworld.config.yml",
    "coreworld.config.json",
]


def find_config(start_dir: str = ".") -> Optional[str]:
    """The first of ``_CONFIG_FILES`` present in ``start_dir`` or its nearest ancestor."""
    directory = os.path.abspath(start_dir)
    parent = None
    while directory != parent:
        for name in _CONFIG_FILES:
            candidate = os.path.join(directory, name)
            if os.path.isfile(candidate):
                return candidate
        directory, parent = os.path.dirname(directory), directory
    return None


def load_config(path: Optional[str] = None, start_dir: str = ".") -> KernelConfig:
    """Load configuration from a file.

    If no path is given, searches for a config file starting from start_dir.
    If no config file is found, returns defaults.
    """
    if path is None:
        path = find_config(start_dir)

    if path is None:
        return KernelConfig()

    try:
        with open(path, "r", encoding="utf-8") as f:
            content = f.read()
    except OSError as exc:
        raise ConfigError(f"cannot read config: {exc}", path) from exc

    try:
        if path.endswith(".json"):
            data = json.loads(content)
        else:
            data = yaml.safe_load(content)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ConfigError(f"cannot parse config: {exc}", path) from exc

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError("config must be a mapping", path)
    return _dict_to_config(data, path)


def _int_setting(data: Dict[str, Any], key: str, path: Optional[str]) -> int:
    value = data[key]
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ConfigError(f"'{key}' must be a non-negative integer, got {value!r}", path)
    return value


def _bool_setting(data: Dict[str, Any], key: str, path: Optional[str]) -> bool:
    value = data[key]
    if not isinstance(value, bool):
        raise ConfigError(f"'{key}' must be true or false, got {value!r}", path)
    return value


def _dict_to_config(data: Dict[str, Any], path: Optional[str] = None) -> KernelConfig:
    """Convert a parsed dict to KernelConfig."""
    config = KernelConfig()

    unknown = sorted(set(data) - set(KernelConfig.__dataclass_fields__))
    if unknown:
        raise ConfigError(f"unknown setting(s): {', '.join(unknown)}", path)

    if "fuel" in data:
        config.fuel = _int_setting(data, "fuel", path)
    if "record_trace" in data:
        config.record_trace = _bool_setting(data, "record_trace", path)
    if "strict_closed" in data:
        config.strict_closed = _bool_setting(data, "strict_closed", path)
    if data.get("max_free") is not None:
        config.max_free = _int_setting(data, "max_free", path)
    if "format" in data:
        if data["format"] not in _FORMATS:
            raise ConfigError(f"'format' must be one of {', '.join(_FORMATS)}", path)
        config.format = data["format"]
    if "log_level" in data:
        level = str(data["log_level"]).upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ConfigError(f"unknown log level {data['log_level']!r}", path)
        config.log_level = level

    return config
