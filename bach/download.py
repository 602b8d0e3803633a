"""Fetch artifacts by URI into a local cache, keyed by last-modified timestamps."""
from __future__ import annotations

from email.utils import parsedate_to_datetime
from pathlib import Path
from typing import Any
from urllib.parse import urlsplit
import os
import time

import requests

from .context import Console, Context
from .properties import Property

CHUNK_SIZE = 64 * 1024


class DownloadError(RuntimeError):
    """Raised when an artifact cannot be fetched or stored."""


class OfflineArtifactMissing(DownloadError):
    """Raised when offline mode is active and the target file does not exist."""

    def __init__(self, target: Path) -> None:
        super().__init__(f"Target is missing and being offline: {target}")
        self.target = target


def extract_file_name(uri: str) -> str:
    """Return the last path element of ``uri``, ignoring query and fragment."""

    path = urlsplit(uri).path
    return path[path.rfind("/") + 1:]


def _remote_timestamp(response: Any) -> int:
    header = response.headers.get("Last-Modified") if response.headers else None
    if header:
        try:
            return int(parsedate_to_datetime(header).timestamp())
        except (TypeError, ValueError):
            pass
    return int(time.time())


class Downloader:
    """Download files, skipping the transfer when the local copy is current.

    A local file whose modification time equals the remote ``Last-Modified``
    value is considered identical to the remote content.
    """

    def __init__(
        self,
        console: Console,
        *,
        offline: bool = False,
        session: Any = None,
        timeout: float = 60.0,
    ) -> None:
        self._console = console
        self.offline = offline
        self._session = session
        self._timeout = timeout

    @classmethod
    def from_context(cls, context: Context) -> "Downloader":
        return cls(context.console, offline=context.offline, session=context.session)

    @property
    def session(self) -> Any:
        if self._session is None:
            self._session = requests.Session()
        return self._session

    def download(self, destination: Path, uri: str) -> Path:
        """Download ``uri`` into the ``destination`` directory and return the local file."""

        log = self._console.debug
        log(f"download({uri})")
        file_name = extract_file_name(uri)
        target = Path(destination) / file_name

        if self.offline:
            if target.exists():
                log("Offline mode is active and target already exists.")
                return target
            raise OfflineArtifactMissing(target)

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with self.session.get(uri, stream=True, timeout=self._timeout) as response:
                response.raise_for_status()
                last_modified = _remote_timestamp(response)
                if target.exists():
                    log("Local target file exists. Comparing last modified timestamps...")
                    file_modified = target.stat().st_mtime_ns // 1_000_000_000
                    log(f" o Remote Last Modified -> {last_modified}")
                    log(f" o Target Last Modified -> {file_modified}")
                    if target.stat().st_mtime_ns == last_modified * 1_000_000_000:
                        log(f"Already downloaded {file_name} previously.")
                        return target
                    log("Local target file differs from remote source -- replacing it...")
                log(f"Transferring {uri}")
                with target.open("wb") as handle:
                    for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                        if chunk:
                            handle.write(chunk)
            os.utime(target, ns=(last_modified * 1_000_000_000, last_modified * 1_000_000_000))
        except (requests.RequestException, OSError) as exc:
            raise DownloadError(f"Downloading {uri} to {target} failed: {exc}") from exc

        log(f" o Remote   -> {uri}")
        log(f" o Target   -> {target.as_uri()}")
        log(f" o Modified -> {last_modified}")
        log(f" o Size     -> {target.stat().st_size} bytes")
        self._console.info(f"Downloaded {file_name} successfully.")
        return target


def download_tool(context: Context, uri_property: Property) -> Path:
    """Download the artifact named by a ``bach.tool.uri.<name>`` property into the tool home."""

    prefix = "bach.tool.uri."
    if not uri_property.key.startswith(prefix):
        raise ValueError(f"Not a tool URI property: {uri_property.key}")
    name = uri_property.key[len(prefix):]
    home = Path(context.config.get(Property.TOOL_HOME)).expanduser()
    return Downloader.from_context(context).download(home / name, context.config.get(uri_property))


__all__ = [
    "Downloader",
    "DownloadError",
    "OfflineArtifactMissing",
    "download_tool",
    "extract_file_name",
]
