"""Archive extraction utilities reusable across projects."""
from __future__ import annotations

from pathlib import Path
from typing import Protocol, runtime_checkable
import tarfile
import zipfile

import zstandard as zstd

_SUFFIX_FORMATS: list[tuple[str, str]] = [
    (".tar.zst", "zst"),
    (".tzst", "zst"),
    (".tar.gz", "gztar"),
    (".tgz", "gztar"),
    (".tar.bz2", "bztar"),
    (".tbz", "bztar"),
    (".tar.xz", "xztar"),
    (".txz", "xztar"),
    (".tar", "tar"),
    (".zip", "zip"),
]

_FORMAT_ALIASES: dict[str, str] = {
    "zst": "zst",
    "tar.zst": "zst",
    "tzst": "zst",
    "gztar": "gztar",
    "gz": "gztar",
    "tar.gz": "gztar",
    "tgz": "gztar",
    "bztar": "bztar",
    "bz2": "bztar",
    "tar.bz2": "bztar",
    "xztar": "xztar",
    "xz": "xztar",
    "tar.xz": "xztar",
    "tar": "tar",
    "zip": "zip",
}

_TAR_MODES: dict[str, str] = {
    "gztar": "r:gz",
    "bztar": "r:bz2",
    "xztar": "r:xz",
    "tar": "r:",
}


def _top_level(name: str) -> str:
    parts = [part for part in name.split("/") if part not in ("", ".")]
    return parts[0] if parts else ""


@runtime_checkable
class ArchiveConsole(Protocol):
    """Minimal console interface required by :class:`ArchiveManager`."""

    def debug(self, message: str) -> None:
        ...

    def error(self, message: str) -> None:
        ...


class ArchiveManager:
    """Extract downloaded distributions."""

    def __init__(self, console: ArchiveConsole) -> None:
        self._console = console

    @staticmethod
    def resolve_archive_format(target: Path, format_hint: str | None = None) -> str:
        if format_hint:
            normalized = format_hint.strip().lower()
            if normalized in _FORMAT_ALIASES:
                return _FORMAT_ALIASES[normalized]
            raise ValueError(f"Unsupported archive format hint '{format_hint}'")

        filename = target.name.lower()
        for suffix, fmt in sorted(_SUFFIX_FORMATS, key=lambda item: len(item[0]), reverse=True):
            if filename.endswith(suffix):
                return fmt

        raise ValueError(
            "Unable to determine archive format from path. "
            "Provide an explicit format_hint or use a supported suffix."
        )

    def extract_archive(
        self,
        *,
        archive_path: Path | str,
        destination_dir: Path | str | None = None,
        format_hint: str | None = None,
    ) -> Path:
        """Extract an archive and return the directory holding its content.

        Parameters
        ----------
        archive_path:
            Path to the archive file.
        destination_dir:
            Directory where contents should be extracted. Defaults to the
            archive's own directory.
        format_hint:
            Optional explicit archive format.

        When the archive holds a single top-level directory, that directory
        is returned instead of ``destination_dir``.
        """
        archive = Path(archive_path).expanduser()
        dest = Path(destination_dir).expanduser() if destination_dir else archive.absolute().parent

        if not archive.exists():
            raise FileNotFoundError(f"Archive '{archive}' does not exist")

        dest.mkdir(parents=True, exist_ok=True)
        archive_format = self.resolve_archive_format(archive, format_hint)

        if archive_format == "zst":
            roots = self._extract_zst(archive, dest)
        elif archive_format == "zip":
            with zipfile.ZipFile(archive, "r") as zip_ref:
                roots = {_top_level(name) for name in zip_ref.namelist()} - {""}
                zip_ref.extractall(dest)
        elif archive_format in _TAR_MODES:
            with tarfile.open(archive, _TAR_MODES[archive_format]) as tar:
                roots = {_top_level(member.name) for member in tar.getmembers()} - {""}
                tar.extractall(path=dest, filter="data")
        else:
            raise ValueError(f"Unsupported archive format: {archive_format}")

        self._console.debug(f"Extracted {archive} to {dest}")
        if len(roots) == 1:
            singleton = dest / next(iter(roots))
            if singleton.is_dir():
                return singleton
        return dest

    def _extract_zst(self, archive: Path, dest: Path) -> set[str]:
        roots: set[str] = set()
        dctx = zstd.ZstdDecompressor()
        with archive.open("rb") as ifh:
            with dctx.stream_reader(ifh) as reader:
                with tarfile.open(fileobj=reader, mode="r|") as tar:
                    for member in tar:
                        roots.add(_top_level(member.name))
                        tar.extract(member, path=dest, filter="data")
        roots.discard("")
        return roots


__all__ = [
    "ArchiveConsole",
    "ArchiveManager",
]
