"""Three-tier property lookup: runtime override, persisted project config, default."""
from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Dict, List, Mapping, MutableMapping
import re

from core.config_loader import load_flat_config

ENVIRONMENT_PREFIX = "BACH_"

_MAVEN_REPOSITORY = "https://repo1.maven.org/maven2"


class Property(Enum):
    """Known property keys and their built-in defaults."""

    PROPERTIES = ("bach.properties", "bach.toml")
    BASE = ("bach.base", ".")
    LOG_LEVEL = ("bach.log.level", "info")
    OFFLINE = ("bach.offline", "false")
    MAVEN_REPOSITORY = ("bach.maven.repository", _MAVEN_REPOSITORY)
    PROJECT_NAME = ("bach.project.name", "project")
    PROJECT_VERSION = ("bach.project.version", "1.0.0-SNAPSHOT")
    PROJECT_LAUNCH_MODULE = ("bach.project.launch.module", "<module>[/<main-class>]")
    PROJECT_LAUNCH_OPTIONS = ("bach.project.launch.options", "")
    RUN_REDIRECT_TYPE = ("bach.run.redirect.type", "INHERIT")
    RUN_REDIRECT_FILE = ("bach.run.redirect.file", "")
    TOOL_HOME = ("bach.tool.home", str(Path.home() / ".bach" / "tool"))
    TOOL_URI_FORMAT = (
        "bach.tool.uri.format",
        "https://github.com/google/google-java-format/releases/download/"
        "google-java-format-1.7/google-java-format-1.7-all-deps.jar",
    )
    TOOL_URI_JUNIT = (
        "bach.tool.uri.junit",
        f"{_MAVEN_REPOSITORY}/org/junit/platform/junit-platform-console-standalone/1.4.0/"
        "junit-platform-console-standalone-1.4.0.jar",
    )
    TOOL_URI_MAVEN = (
        "bach.tool.uri.maven",
        "https://archive.apache.org/dist/maven/maven-3/3.6.0/binaries/apache-maven-3.6.0-bin.zip",
    )
    ASSEMBLE_FORMAT = ("bach.assemble.format", "true")

    def __init__(self, key: str, default: str) -> None:
        self.key = key
        self.default = default


def overrides_from_environment(environ: Mapping[str, str]) -> Dict[str, str]:
    """Translate ``BACH_RUN_REDIRECT_TYPE=FILE`` into ``bach.run.redirect.type=FILE``."""

    overrides: Dict[str, str] = {}
    for name, value in environ.items():
        if not name.startswith(ENVIRONMENT_PREFIX) or name == ENVIRONMENT_PREFIX:
            continue
        suffix = name[len(ENVIRONMENT_PREFIX):].lower().replace("_", ".")
        overrides[f"bach.{suffix}"] = value
    return overrides


class Configuration:
    """Resolve property values for a single run.

    The persisted tier is loaded once. Its only mutation is the lazy
    allocation of the redirect file path, see :meth:`set`.
    """

    def __init__(
        self,
        persisted: Mapping[str, str] | None = None,
        *,
        overrides: Mapping[str, str] | None = None,
    ) -> None:
        self._persisted: MutableMapping[str, str] = dict(persisted or {})
        self._overrides: Dict[str, str] = dict(overrides or {})

    @classmethod
    def load(cls, base: Path, *, overrides: Mapping[str, str] | None = None) -> "Configuration":
        overrides = dict(overrides or {})
        file_name = overrides.get(Property.PROPERTIES.key, Property.PROPERTIES.default)
        path = Path(file_name)
        if not path.is_absolute():
            path = base / path
        try:
            persisted = load_flat_config(path)
        except (OSError, RuntimeError, ValueError, TypeError) as exc:
            raise ValueError(f"Loading properties failed: {path}") from exc
        return cls(persisted, overrides=overrides)

    def get(self, key: Property | str, default: str | None = None) -> str:
        if isinstance(key, Property):
            name = key.key
            fallback = key.default if default is None else default
        else:
            name = key
            fallback = "" if default is None else default
        if name in self._overrides:
            return self._overrides[name]
        return self._persisted.get(name, fallback)

    def get_values(self, key: Property | str, separator: str) -> List[str]:
        """Split the resolved value by the ``separator`` pattern and strip each part."""

        value = self.get(key)
        if not value.strip():
            return []
        return [part.strip() for part in re.split(separator, value)]

    def get_bool(self, key: Property | str, default: str | None = None) -> bool:
        return self.get(key, default).strip().lower() == "true"

    def set(self, key: Property | str, value: str) -> None:
        """Store ``value`` in the tier ``get`` reads first for ``key``."""

        name = key.key if isinstance(key, Property) else key
        if name in self._overrides:
            self._overrides[name] = value
        else:
            self._persisted[name] = value


__all__ = [
    "Configuration",
    "ENVIRONMENT_PREFIX",
    "Property",
    "overrides_from_environment",
]
