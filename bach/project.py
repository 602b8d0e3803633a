"""Project layout and realms derived from the base directory and configuration."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List

from core.tree import find_directories, join_paths

from .context import Context
from .modules import DESCRIPTOR_NAME
from .properties import Property


@dataclass(slots=True)
class Realm:
    """A named source set compiled against its own module path."""

    name: str
    source: Path
    target: Path
    module_path: List[Path] = field(default_factory=list)

    def module_names(self) -> List[str]:
        """Names of the child directories of ``source`` that hold a module descriptor."""

        return [path.name for path in find_directories(self.source) if (path / DESCRIPTOR_NAME).is_file()]

    def module_path_string(self) -> str:
        return join_paths(self.module_path)


@dataclass(slots=True)
class Project:
    name: str
    version: str
    base: Path
    bin: Path
    lib: Path
    cache: Path
    main: Realm
    test: Realm

    @property
    def cached_modules(self) -> Path:
        return self.cache / "modules"

    @property
    def packaged_modules(self) -> Path:
        return self.bin / "modules"

    @property
    def realms(self) -> List[Realm]:
        return [self.main, self.test]

    @classmethod
    def from_context(cls, context: Context) -> "Project":
        base = context.base
        config = context.config
        default_name = base.name or Property.PROJECT_NAME.default
        name = config.get(Property.PROJECT_NAME, default_name)
        version = config.get(Property.PROJECT_VERSION)

        bin_dir = base / "bin"
        lib = base / "lib"
        cache = base / ".bach"
        cached_modules = cache / "modules"

        main = Realm(
            name="main",
            source=base / "src",
            target=bin_dir / "realm" / "main",
            module_path=[lib, cached_modules],
        )
        test = Realm(
            name="test",
            source=base / "src" / "test" / "java",
            target=bin_dir / "realm" / "test",
            module_path=[main.target, lib, cached_modules],
        )
        return cls(
            name=name,
            version=version,
            base=base,
            bin=bin_dir,
            lib=lib,
            cache=cache,
            main=main,
            test=test,
        )


__all__ = ["Project", "Realm"]
