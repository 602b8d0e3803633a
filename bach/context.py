"""Console and per-run context shared by every subsystem."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Sequence, TextIO
import os
import sys

from core.command_runner import CommandRunner, SubprocessCommandRunner

from .properties import Configuration, Property

ToolProvider = Callable[[Sequence[str]], int]
"""In-process tool: receives its arguments and returns an exit code."""


class Console:
    """Simple console output handler with configurable log level.

    Levels: none < error < info < debug
    """

    LEVELS = {
        "none": 0,
        "error": 1,
        "info": 2,
        "debug": 3,
    }

    def __init__(
        self,
        level: str = "info",
        *,
        out: TextIO | None = None,
        err: TextIO | None = None,
    ) -> None:
        self.level_name = level.lower()
        self.level = self.LEVELS.get(self.level_name, self.LEVELS["info"])
        self._out = out
        self._err = err

    @property
    def out(self) -> TextIO:
        return self._out if self._out is not None else sys.stdout

    @property
    def err(self) -> TextIO:
        return self._err if self._err is not None else sys.stderr

    def write(self, message: str) -> None:
        print(message, file=self.out)

    def info(self, message: str) -> None:
        if self.level >= self.LEVELS["info"]:
            print(message, file=self.out)

    def error(self, message: str) -> None:
        if self.level >= self.LEVELS["error"]:
            print(message, file=self.err)

    def debug(self, message: str) -> None:
        if self.level >= self.LEVELS["debug"]:
            print(message, file=self.out)


@dataclass
class Context:
    """Everything one invocation owns: base directory, configuration, console and runners.

    ``session`` is a :mod:`requests`-compatible HTTP session used for
    downloads; ``providers`` holds in-process tools registered for this run.
    """

    base: Path
    config: Configuration
    console: Console
    runner: CommandRunner = field(default_factory=SubprocessCommandRunner)
    session: Any = None
    providers: Dict[str, ToolProvider] = field(default_factory=dict)

    @classmethod
    def create(
        cls,
        base: Path | None = None,
        *,
        overrides: Mapping[str, str] | None = None,
        console: Console | None = None,
        runner: CommandRunner | None = None,
        session: Any = None,
    ) -> "Context":
        overrides = dict(overrides or {})
        if base is None:
            base = Path(overrides.get(Property.BASE.key, Property.BASE.default))
        base = Path(os.path.abspath(Path(base).expanduser()))
        config = Configuration.load(base, overrides=overrides)
        if console is None:
            console = Console(config.get(Property.LOG_LEVEL))
        return cls(
            base=base,
            config=config,
            console=console,
            runner=runner or SubprocessCommandRunner(),
            session=session,
        )

    @property
    def offline(self) -> bool:
        return self.config.get_bool(Property.OFFLINE)


__all__ = ["Console", "Context", "ToolProvider"]
