from __future__ import annotations

from email.utils import formatdate
from io import StringIO
from pathlib import Path
from typing import Dict, List, Mapping
import textwrap

from bach.context import Console, Context
from core.command_runner import RecordingCommandRunner

LAST_MODIFIED = 1_445_412_480  # Wed, 21 Oct 2015 07:28:00 GMT


class FakeResponse:
    def __init__(self, session: "FakeSession", uri: str) -> None:
        self._session = session
        self._uri = uri
        self.headers: Dict[str, str] = {}
        if session.last_modified is not None:
            self.headers["Last-Modified"] = formatdate(session.last_modified, usegmt=True)

    def __enter__(self) -> "FakeResponse":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self._session.closed += 1

    def raise_for_status(self) -> None:
        if self._session.error is not None:
            raise self._session.error

    def iter_content(self, chunk_size: int = 1):
        self._session.transfers.append(self._uri)
        yield self._session.body


class FakeSession:
    """Stands in for :class:`requests.Session`, counting content transfers."""

    def __init__(
        self,
        body: bytes = b"artifact",
        *,
        last_modified: int | None = LAST_MODIFIED,
        error: Exception | None = None,
    ) -> None:
        self.body = body
        self.last_modified = last_modified
        self.error = error
        self.requests: List[str] = []
        self.transfers: List[str] = []
        self.closed = 0

    def get(self, uri: str, stream: bool = False, timeout: float | None = None) -> FakeResponse:
        self.requests.append(uri)
        return FakeResponse(self, uri)


def make_context(
    base: Path,
    *,
    overrides: Mapping[str, str] | None = None,
    runner: RecordingCommandRunner | None = None,
    session: FakeSession | None = None,
    level: str = "debug",
) -> Context:
    console = Console(level, out=StringIO(), err=StringIO())
    return Context.create(
        base,
        overrides=overrides,
        console=console,
        runner=runner or RecordingCommandRunner(),
        session=session or FakeSession(),
    )


def out_lines(context: Context) -> List[str]:
    return context.console.out.getvalue().splitlines()


def err_lines(context: Context) -> List[str]:
    return context.console.err.getvalue().splitlines()


def write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(textwrap.dedent(text).lstrip(), encoding="utf-8")
    return path
