"""Utilities for executing external commands under a stream redirect policy."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Dict, List, Mapping, Sequence
import shlex
import subprocess


class RedirectMode(str, Enum):
    """How a subprocess's output and error streams are handled."""

    INHERIT = "INHERIT"
    DISCARD = "DISCARD"
    FILE = "FILE"
    PIPE = "PIPE"

    @classmethod
    def parse(cls, value: str | None) -> "RedirectMode":
        """Return the mode named by ``value``; unknown names fall back to PIPE."""

        text = (value or "").strip().upper()
        try:
            return cls(text)
        except ValueError:
            return cls.PIPE


@dataclass
class CommandResult:
    """Represents the outcome of an executed command."""

    command: Sequence[str]
    returncode: int
    stdout: str
    stderr: str
    redirect: RedirectMode = RedirectMode.PIPE

    @property
    def captured(self) -> bool:
        return self.redirect is RedirectMode.PIPE


def format_command(command: Sequence[str]) -> str:
    return " ".join(shlex.quote(str(part)) for part in command)


class CommandError(RuntimeError):
    """Raised when a command fails."""

    def __init__(self, result: CommandResult):
        message = f"Command failed with exit code {result.returncode}: {format_command(result.command)}"
        if result.captured:
            message = (
                f"{message}\n"
                f"stdout: {result.stdout}\n"
                f"stderr: {result.stderr}"
            )
        else:
            message = f"{message}\noutput was redirected ({result.redirect.value.lower()})."
        super().__init__(message)
        self.result = result


class CommandRunner:
    """Abstract command runner interface."""

    def run(
        self,
        command: Sequence[str],
        *,
        cwd: Path | None = None,
        check: bool = True,
        redirect: RedirectMode = RedirectMode.PIPE,
        redirect_file: Path | None = None,
    ) -> CommandResult:
        raise NotImplementedError


class SubprocessCommandRunner(CommandRunner):
    """Command runner that executes commands via :mod:`subprocess`.

    The calling thread blocks until the child exits. There is no timeout.
    """

    def _finalize(self, result: CommandResult, *, check: bool) -> CommandResult:
        if check and result.returncode != 0:
            raise CommandError(result)
        return result

    def run(
        self,
        command: Sequence[str],
        *,
        cwd: Path | None = None,
        check: bool = True,
        redirect: RedirectMode = RedirectMode.PIPE,
        redirect_file: Path | None = None,
    ) -> CommandResult:
        args = [str(part) for part in command]
        kwargs = {
            "cwd": str(cwd) if cwd else None,
            "check": False,
        }

        if redirect is RedirectMode.PIPE:
            process = subprocess.run(args, capture_output=True, encoding="utf-8", errors="replace", **kwargs)
            stdout, stderr = process.stdout, process.stderr
        elif redirect is RedirectMode.DISCARD:
            process = subprocess.run(args, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL, **kwargs)
            stdout, stderr = "", ""
        elif redirect is RedirectMode.FILE:
            if redirect_file is None:
                raise ValueError("FILE redirect requires a target file")
            with Path(redirect_file).open("ab") as handle:
                process = subprocess.run(args, stdout=handle, stderr=subprocess.STDOUT, **kwargs)
            stdout, stderr = "", ""
        else:
            process = subprocess.run(args, **kwargs)
            stdout, stderr = "", ""

        return self._finalize(
            CommandResult(
                command=args,
                returncode=process.returncode,
                stdout=stdout,
                stderr=stderr,
                redirect=redirect,
            ),
            check=check,
        )


@dataclass(slots=True)
class RecordedCommand:
    command: List[str]
    cwd: str | None
    redirect: RedirectMode
    redirect_file: str | None = None


class RecordingCommandRunner(CommandRunner):
    """Command runner that records commands instead of executing them.

    ``returncodes`` maps a program name to the exit code reported for it;
    unlisted programs report success.
    """

    def __init__(self, returncodes: Mapping[str, int] | None = None) -> None:
        self.commands: List[RecordedCommand] = []
        self.returncodes: Dict[str, int] = dict(returncodes or {})

    def run(
        self,
        command: Sequence[str],
        *,
        cwd: Path | None = None,
        check: bool = True,
        redirect: RedirectMode = RedirectMode.PIPE,
        redirect_file: Path | None = None,
    ) -> CommandResult:
        args = [str(part) for part in command]
        self.commands.append(
            RecordedCommand(
                command=args,
                cwd=str(cwd) if cwd else None,
                redirect=redirect,
                redirect_file=str(redirect_file) if redirect_file else None,
            )
        )
        returncode = self.returncodes.get(args[0], 0) if args else 0
        result = CommandResult(command=args, returncode=returncode, stdout="", stderr="", redirect=redirect)
        if check and returncode != 0:
            raise CommandError(result)
        return result

    def programs(self) -> List[str]:
        return [record.command[0] for record in self.commands if record.command]


__all__ = [
    "CommandError",
    "CommandResult",
    "CommandRunner",
    "RecordedCommand",
    "RecordingCommandRunner",
    "RedirectMode",
    "SubprocessCommandRunner",
    "format_command",
]
