"""Shared helpers for loading configuration mappings from disk."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Dict, Mapping

import json
import tomllib

try:  # Optional dependency for YAML support
    import yaml
except ModuleNotFoundError:  # pragma: no cover - exercised when PyYAML absent
    yaml = None


ConfigLoader = Callable[[Any], Mapping[str, Any]]


def _raise_yaml_missing() -> Mapping[str, Any]:
    raise RuntimeError(
        "PyYAML is required to load YAML configuration files. Install with `pip install PyYAML`."
    )


FILE_LOADERS: Dict[str, ConfigLoader] = {
    ".toml": lambda stream: tomllib.load(stream),
    ".json": lambda stream: json.load(stream),
    ".yaml": lambda stream: yaml.safe_load(stream) if yaml else _raise_yaml_missing(),
    ".yml": lambda stream: yaml.safe_load(stream) if yaml else _raise_yaml_missing(),
}
"""Mapping of file suffixes to loader callables."""


def register_loader(suffix: str, loader: ConfigLoader) -> None:
    """Register ``loader`` for files ending with ``suffix``."""

    normalized = suffix.lower()
    if not normalized.startswith("."):
        raise ValueError("Suffix must start with '.'")
    FILE_LOADERS[normalized] = loader


def load_config_file(path: Path) -> Mapping[str, Any]:
    """Load and decode a configuration mapping from ``path``."""

    suffix = path.suffix.lower()
    loader = FILE_LOADERS.get(suffix)
    if loader is None:
        supported = ", ".join(sorted(FILE_LOADERS)) or "<none>"
        raise ValueError(
            f"Unsupported configuration file extension: {suffix}. Supported: {supported}"
        )

    mode = "rb" if suffix == ".toml" else "r"
    kwargs: Dict[str, Any] = {}
    if mode == "r":
        kwargs["encoding"] = "utf-8"

    with path.open(mode, **kwargs) as handle:
        data = loader(handle)

    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise TypeError(f"Configuration file '{path}' must contain a mapping at the root")

    return data


def _scalar_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return ",".join(_scalar_text(item) for item in value)
    return str(value)


def flatten_mapping(data: Mapping[str, Any], *, prefix: str = "") -> Dict[str, str]:
    """Flatten nested tables into ``area.name`` keys with string values.

    ``{"bach": {"offline": True}}`` becomes ``{"bach.offline": "true"}``.
    Lists are joined with commas.
    """

    flat: Dict[str, str] = {}
    for key, value in data.items():
        name = f"{prefix}.{key}" if prefix else str(key)
        if isinstance(value, Mapping):
            flat.update(flatten_mapping(value, prefix=name))
        elif value is not None:
            flat[name] = _scalar_text(value)
    return flat


def load_flat_config(path: Path) -> Dict[str, str]:
    """Load ``path`` as a flat key/value store; a missing file yields ``{}``."""

    if not path.is_file():
        return {}
    return flatten_mapping(load_config_file(path))


__all__ = [
    "ConfigLoader",
    "FILE_LOADERS",
    "flatten_mapping",
    "load_config_file",
    "load_flat_config",
    "register_loader",
]
