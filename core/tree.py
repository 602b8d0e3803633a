"""Filtered recursive copy, delete and search over directory trees."""
from __future__ import annotations

from pathlib import Path
from typing import Callable, Iterable, Iterator, List
import os
import shutil

PathFilter = Callable[[Path], bool]


def _accept_all(_: Path) -> bool:
    return True


def walk(root: Path) -> Iterator[Path]:
    """Yield ``root`` and everything beneath it, depth first, in sorted order."""

    yield root
    if root.is_dir() and not root.is_symlink():
        for child in sorted(root.iterdir()):
            yield from walk(child)


def is_java_file(path: Path) -> bool:
    """Return ``True`` for regular ``*.java`` files with a single dot in their name."""

    if not path.is_file():
        return False
    name = path.name
    return name.endswith(".java") and name.count(".") == 1


def find_files(roots: Iterable[Path], accept: PathFilter = _accept_all) -> List[Path]:
    """List all regular files beneath ``roots`` accepted by ``accept``."""

    files: List[Path] = []
    for root in roots:
        for path in walk(Path(root)):
            if path.is_file() and accept(path):
                files.append(path)
    return files


def find_java_files(root: Path) -> List[Path]:
    return find_files([root], is_java_file)


def find_directories(root: Path) -> List[Path]:
    """Return the child directories directly present in ``root``."""

    if not root.exists():
        return []
    return sorted(path for path in root.iterdir() if path.is_dir())


def find_directory_names(root: Path) -> List[str]:
    return [path.name for path in find_directories(root)]


def join_paths(paths: Iterable[object]) -> str:
    """Join ``paths`` with the platform's path separator."""

    return os.pathsep.join(str(path) for path in paths)


def tree_copy(source: Path, target: Path, accept: PathFilter = _accept_all) -> None:
    """Copy files accepted by ``accept`` from ``source`` into ``target``.

    Directories are always recreated. A file whose modification time already
    matches the destination's is skipped.
    """

    source = Path(source)
    target = Path(target)
    if not source.exists():
        raise ValueError(f"source must exist: {source}")
    if not source.is_dir():
        raise ValueError(f"source must be a directory: {source}")
    if target.exists():
        if not target.is_dir():
            raise ValueError(f"target must be a directory: {target}")
        if target.resolve() == source.resolve():
            return
        if target.resolve().is_relative_to(source.resolve()):
            raise ValueError(f"target must not be a child of source: {target}")

    for path in walk(source):
        destination = target / path.relative_to(source)
        if path.is_dir():
            destination.mkdir(parents=True, exist_ok=True)
            continue
        if not accept(path):
            continue
        if destination.exists() and destination.stat().st_mtime_ns == path.stat().st_mtime_ns:
            continue
        shutil.copy2(path, destination)


def tree_delete(root: Path, accept: PathFilter = _accept_all) -> None:
    """Delete ``root`` and everything beneath it accepted by ``accept``, deepest first."""

    root = Path(root)
    if not root.exists() and not root.is_symlink():
        return
    if accept(root):
        if root.is_file() or root.is_symlink():
            root.unlink()
            return
        if root.is_dir() and not any(root.iterdir()):
            root.rmdir()
            return

    for path in sorted(walk(root), reverse=True):
        if not accept(path):
            continue
        if path.is_dir() and not path.is_symlink():
            if not any(path.iterdir()):
                path.rmdir()
        else:
            path.unlink(missing_ok=True)


def tree_walk(root: Path) -> List[str]:
    """Return a sorted listing of ``root`` relative paths using ``/`` separators."""

    root = Path(root)
    return [path.relative_to(root).as_posix() or "." for path in walk(root)]


__all__ = [
    "PathFilter",
    "find_directories",
    "find_directory_names",
    "find_files",
    "find_java_files",
    "is_java_file",
    "join_paths",
    "tree_copy",
    "tree_delete",
    "tree_walk",
    "walk",
]
