"""Module descriptor scanning and external module computation.

Descriptors are scanned with a handful of regular expressions rather than a
grammar. Known brittleness: the declaration header must sit on one line, and
commented-out ``requires`` clauses are still picked up.
"""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Callable, FrozenSet, Iterable, List, Set
import re
import shutil

from core.command_runner import CommandRunner, SubprocessCommandRunner
from core.tree import is_java_file, walk

DESCRIPTOR_NAME = "module-info.java"
MAIN_SIGNATURE = "static void main(String"

_NAME = re.compile(r"(module)\s+(.+)\s*\{.*")
_PACKAGE = re.compile(r"package\s+(.+?);", re.DOTALL)
_REQUIRES = re.compile(r"requires\s+(.+?);", re.DOTALL)
_TYPE = re.compile(r"(class|interface|enum)\s+(.+)\s*\{.*")

SystemModuleCatalog = Callable[[], Iterable[str]]


class ModuleDescriptorError(ValueError):
    """Raised when a descriptor or compilation unit lacks an expected declaration."""


@dataclass(frozen=True, slots=True)
class ModuleDescriptor:
    name: str
    requires: FrozenSet[str]
    path: Path | None = None

    @property
    def sorted_requires(self) -> List[str]:
        return sorted(self.requires)


def parse_descriptor(source: str, *, path: Path | None = None) -> ModuleDescriptor:
    """Extract the module name and required module names from descriptor text."""

    match = _NAME.search(source)
    if match is None:
        where = f" in {path}" if path else ""
        raise ModuleDescriptorError(f"expected java module descriptor unit{where}, but got: {source}")
    name = match.group(2).strip()

    requires: Set[str] = set()
    for clause in _REQUIRES.finditer(source):
        # "requires transitive static foo" -> "foo"
        requires.add(clause.group(1).split()[-1])
    return ModuleDescriptor(name=name, requires=frozenset(requires), path=path)


def read_descriptor(path: Path) -> ModuleDescriptor:
    """Read the descriptor at ``path``, or inside ``path`` when it is a directory."""

    path = Path(path)
    if path.is_dir():
        path = path / DESCRIPTOR_NAME
    try:
        source = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ModuleDescriptorError(f"reading '{path}' failed") from exc
    return parse_descriptor(source, path=path)


def find_descriptors(roots: Iterable[Path]) -> List[Path]:
    paths: List[Path] = []
    for root in roots:
        for path in walk(Path(root)):
            if path.name == DESCRIPTOR_NAME and path.is_file():
                paths.append(path)
    return paths


def find_system_module_names(runner: CommandRunner | None = None) -> FrozenSet[str]:
    """Ask the host ``java`` launcher for its builtin modules; empty when there is none."""

    if not shutil.which("java"):
        return frozenset()
    result = (runner or SubprocessCommandRunner()).run(["java", "--list-modules"])
    names = set()
    for line in result.stdout.splitlines():
        line = line.strip()
        if line:
            names.add(line.split("@", 1)[0])
    return frozenset(names)


def find_external_module_names(
    roots: Iterable[Path],
    system_modules: SystemModuleCatalog | None = None,
) -> Set[str]:
    """Return required module names declared by no descriptor beneath ``roots``.

    Builtin modules reported by ``system_modules`` are excluded. The catalog
    is queried on every call.
    """

    declared: Set[str] = set()
    required: Set[str] = set()
    for path in find_descriptors(roots):
        descriptor = read_descriptor(path)
        declared.add(descriptor.name)
        required.update(descriptor.requires)
    catalog = system_modules or find_system_module_names
    return required - declared - set(catalog())


def _enclosing_module(path: Path) -> str:
    directory = path.parent
    while True:
        if (directory / DESCRIPTOR_NAME).is_file():
            return read_descriptor(directory).name
        if directory.parent == directory:
            raise ModuleDescriptorError(f"expected '{DESCRIPTOR_NAME}' in parents of {path}")
        directory = directory.parent


def find_programs(root: Path, first: bool = False) -> List[str]:
    """Find ``<module>/<package>.<type>`` names of units declaring a main method."""

    programs: List[str] = []
    for path in walk(Path(root)):
        if not is_java_file(path):
            continue
        source = path.read_text(encoding="utf-8")
        if MAIN_SIGNATURE not in source:
            continue
        module = _enclosing_module(path)
        package = _PACKAGE.search(source)
        if package is None:
            raise ModuleDescriptorError(f"expected package to be declared in {path}")
        type_match = _TYPE.search(source)
        if type_match is None:
            raise ModuleDescriptorError(f"expected java compilation unit, but got: {path}")
        type_name = type_match.group(2).strip().split(" ")[0]
        programs.append(f"{module}/{package.group(1)}.{type_name}")
        if first:
            break
    return programs


def find_program(root: Path) -> str | None:
    """Return the first program found beneath ``root``, or ``None``."""

    programs = find_programs(root, first=True)
    return programs[0] if programs else None


__all__ = [
    "DESCRIPTOR_NAME",
    "MAIN_SIGNATURE",
    "ModuleDescriptor",
    "ModuleDescriptorError",
    "find_descriptors",
    "find_external_module_names",
    "find_program",
    "find_programs",
    "find_system_module_names",
    "parse_descriptor",
    "read_descriptor",
]
