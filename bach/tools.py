"""Uniform tool execution: in-process providers, mapped tools, external processes."""
from __future__ import annotations

from importlib.metadata import entry_points
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Mapping, Sequence
import os
import tempfile

from core.archive import ArchiveManager
from core.command_runner import RedirectMode, format_command
from core.tree import find_java_files

from .context import Context, ToolProvider
from .download import download_tool
from .properties import Property

PROVIDER_GROUP = "bach.tools"

MappedTool = Callable[[Context, Sequence[str]], None]


class ToolError(RuntimeError):
    """Raised when a tool cannot be run or reports an unexpected exit code."""


def find_tool_provider(context: Context, name: str) -> ToolProvider | None:
    """Return an in-process provider registered for this run or installed under ``bach.tools``."""

    provider = context.providers.get(name)
    if provider is not None:
        return provider
    for entry_point in entry_points(group=PROVIDER_GROUP):
        if entry_point.name == name:
            return entry_point.load()
    return None


class ToolRunner:
    """Run named tools and report their exit codes.

    Resolution order: in-process provider, mapped tool, external process.
    """

    def __init__(self, context: Context, tools: Mapping[str, MappedTool] | None = None) -> None:
        self.context = context
        self.tools: Dict[str, MappedTool] = dict(MAPPED_TOOLS if tools is None else tools)

    def run(self, name: str, *arguments: object) -> int:
        console = self.context.console
        args = [str(argument) for argument in arguments]
        console.debug(f"run({name}, {args})")

        provider = find_tool_provider(self.context, name)
        if provider is not None:
            console.debug(f"Running provided tool in-process: {name}")
            return provider(args)

        tool = self.tools.get(name)
        if tool is not None:
            console.debug(f"Running mapped tool in-process: {name}")
            try:
                tool(self.context, args)
            except Exception as exc:
                raise ToolError(f"Running tool {name} failed!") from exc
            return 0

        return self._run_process(name, args)

    def run_expect(self, expected: int, name: str, *arguments: object) -> None:
        """Run ``name`` and raise :class:`ToolError` unless it exits with ``expected``."""

        actual = self.run(name, *arguments)
        if actual != expected:
            command = format_command([name, *arguments])
            raise ToolError(f"Expected {expected}, but got {actual} as result of: {command}")

    def redirect_file(self) -> Path:
        """Return the FILE redirect target, allocating and remembering a temporary file once."""

        config = self.context.config
        configured = config.get(Property.RUN_REDIRECT_FILE)
        if configured:
            return Path(configured)
        handle, name = tempfile.mkstemp(prefix="bach-run-", suffix=".txt")
        os.close(handle)
        config.set(Property.RUN_REDIRECT_FILE, name)
        self.context.console.debug(f"Allocated redirect file {name}")
        return Path(name)

    def _run_process(self, name: str, args: List[str]) -> int:
        console = self.context.console
        redirect = RedirectMode.parse(self.context.config.get(Property.RUN_REDIRECT_TYPE))
        target = self.redirect_file() if redirect is RedirectMode.FILE else None
        console.debug(f"Redirect: {redirect.value}" + (f" {target}" if target else ""))
        try:
            result = self.context.runner.run(
                [name, *args],
                cwd=self.context.base,
                check=False,
                redirect=redirect,
                redirect_file=target,
            )
        except OSError as exc:
            raise ToolError(f"Running tool {name} failed: {exc}") from exc
        if result.captured:
            for line in (result.stdout + result.stderr).splitlines():
                console.debug(f"  {line}")
        return result.returncode


def format_tool(context: Context, args: Sequence[str]) -> None:
    """Run the Java formatter jar with raw ``args``."""

    context.console.debug(f"format({list(args)})")
    jar = download_tool(context, Property.TOOL_URI_FORMAT)
    ToolRunner(context).run_expect(0, "java", "-jar", jar, *args)


def format_roots(context: Context, replace: bool, roots: Iterable[Path]) -> None:
    """Format, or check the formatting of, every compilation unit beneath ``roots``."""

    files: List[Path] = []
    for root in roots:
        if Path(root).is_dir():
            files.extend(find_java_files(Path(root)))
    if not files:
        return
    mode = ["--replace"] if replace else ["--dry-run", "--set-exit-if-changed"]
    format_tool(context, [*mode, *(str(path) for path in files)])


def junit_tool(context: Context, args: Sequence[str]) -> None:
    """Run the JUnit Platform console launcher."""

    context.console.debug(f"junit({list(args)})")
    jar = download_tool(context, Property.TOOL_URI_JUNIT)
    ToolRunner(context).run_expect(
        0, "java", "--class-path", jar, "org.junit.platform.console.ConsoleLauncher", *args
    )


def maven_tool(context: Context, args: Sequence[str]) -> None:
    """Download and unpack a Maven distribution, then run its launcher script."""

    context.console.debug(f"maven({list(args)})")
    archive = download_tool(context, Property.TOOL_URI_MAVEN)
    home = ArchiveManager(context.console).extract_archive(archive_path=archive)
    executable = home / "bin" / ("mvn.cmd" if os.name == "nt" else "mvn")
    executable.chmod(executable.stat().st_mode | 0o111)
    ToolRunner(context).run_expect(0, str(executable), *args)


MAPPED_TOOLS: Dict[str, MappedTool] = {
    "format": format_tool,
    "junit": junit_tool,
    "maven": maven_tool,
}


__all__ = [
    "MAPPED_TOOLS",
    "MappedTool",
    "PROVIDER_GROUP",
    "ToolError",
    "ToolRunner",
    "find_tool_provider",
    "format_roots",
    "format_tool",
    "junit_tool",
    "maven_tool",
]
