"""Turn CLI tokens into a gated, sequential list of actions and run them."""
from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Sequence, Tuple

from core.tree import join_paths, tree_delete

from .build import BuildPipeline
from .context import Context
from .modules import DESCRIPTOR_NAME, find_program
from .project import Project
from .properties import Property
from .tools import ToolRunner

USAGE = "Usage: bach [<action>...]"


class ActionKind(str, Enum):
    BUILD = "build"
    CLEAN = "clean"
    ERASE = "erase"
    HELP = "help"
    LAUNCH = "launch"
    SCAFFOLD = "scaffold"
    TOOL = "tool"

    @property
    def description(self) -> Tuple[str, ...]:
        return _DESCRIPTIONS[self]

    @property
    def gate_key(self) -> str:
        return f"bach.action.{self.value}.enabled"


_DESCRIPTIONS = {
    ActionKind.BUILD: ("Build modular Java project in base directory.",),
    ActionKind.CLEAN: ("Delete all generated assets - but keep caches intact.",),
    ActionKind.ERASE: ("Delete all generated assets - and also delete caches.",),
    ActionKind.HELP: ("Print this help screen on standard out... F1, F1, F1!",),
    ActionKind.LAUNCH: ("Start project's main program.",),
    ActionKind.SCAFFOLD: ("Create modular Java sample project in base directory.",),
    ActionKind.TOOL: (
        "Run named tool consuming all remaining arguments:",
        "  tool <name> <args...>",
        "  tool java --show-version Program.java",
    ),
}


class ActionError(ValueError):
    """Raised when a token does not name an action."""


class BuildError(RuntimeError):
    """Fatal failure of one action; the remaining actions were not run."""

    def __init__(self, action: "Action", cause: BaseException) -> None:
        super().__init__(f"Action failed: {action}")
        self.action = action
        self.cause = cause


@dataclass(frozen=True, slots=True)
class Action:
    kind: ActionKind
    tool_name: str | None = None
    tool_args: Tuple[str, ...] = ()

    def __str__(self) -> str:
        if self.kind is ActionKind.TOOL:
            return f"TOOL {self.tool_name} {list(self.tool_args)}"
        return self.kind.name


def parse_actions(tokens: Sequence[str]) -> List[Action]:
    """Parse ``tokens`` into actions; no tokens means a single build."""

    if not tokens:
        return [Action(ActionKind.BUILD)]

    actions: List[Action] = []
    remaining = deque(tokens)
    while remaining:
        token = remaining.popleft()
        try:
            kind = ActionKind(token.strip().lower())
        except ValueError:
            raise ActionError(f"Unknown action: {token}") from None
        if kind is ActionKind.TOOL:
            if not remaining:
                raise ActionError("Action 'tool' requires a tool name")
            name = remaining.popleft()
            actions.append(Action(kind, tool_name=name, tool_args=tuple(remaining)))
            remaining.clear()
        else:
            actions.append(Action(kind))
    return actions


def is_enabled(context: Context, action: Action) -> bool:
    return context.config.get_bool(action.kind.gate_key, "true")


def perform(context: Context, action: Action) -> None:
    """Run one action unless its ``bach.action.<name>.enabled`` gate is off."""

    if not is_enabled(context, action):
        context.console.info(f"Action {action.kind.name} disabled.")
        return

    kind = action.kind
    if kind is ActionKind.BUILD:
        BuildPipeline(context).build()
    elif kind is ActionKind.CLEAN:
        clean(context)
    elif kind is ActionKind.ERASE:
        erase(context)
    elif kind is ActionKind.HELP:
        print_help(context)
    elif kind is ActionKind.LAUNCH:
        launch(context)
    elif kind is ActionKind.SCAFFOLD:
        scaffold(context)
    elif kind is ActionKind.TOOL:
        code = ToolRunner(context).run(action.tool_name, *action.tool_args)
        context.console.info(f"Tool {action.tool_name} exited with code {code}.")
    else:  # pragma: no cover - enum is exhaustive
        raise ActionError(f"Unsupported action: {kind}")


def run_actions(context: Context, actions: Iterable[Action]) -> None:
    """Perform ``actions`` in order, aborting on the first failure."""

    actions = list(actions)
    console = context.console
    console.debug(f"Performing {len(actions)} action(s)...")
    for action in actions:
        try:
            console.debug(f">> {action}")
            perform(context, action)
            console.debug(f"<< {action}")
        except Exception as exc:
            console.error(str(exc) or type(exc).__name__)
            raise BuildError(action, exc) from exc


def clean(context: Context) -> None:
    """Delete generated binaries, keeping caches."""

    context.console.debug("clean()")
    tree_delete(Project.from_context(context).bin)


def erase(context: Context) -> None:
    """Delete generated binaries and the local build cache."""

    context.console.debug("erase()")
    clean(context)
    tree_delete(Project.from_context(context).cache)


def print_help(context: Context) -> None:
    console = context.console
    console.debug("help()")
    console.write("")
    console.write(USAGE)
    console.write("Available default actions are:")
    for kind in ActionKind:
        first, *rest = kind.description
        console.write(f" {kind.value:<9}    {first}")
        for line in rest:
            console.write(" " * 14 + line)
    console.write("")


def launch(context: Context) -> None:
    """Start the project's main program on the main realm's module path."""

    console = context.console
    console.debug("launch()")
    project = Project.from_context(context)
    program = context.config.get(Property.PROJECT_LAUNCH_MODULE)
    if program == Property.PROJECT_LAUNCH_MODULE.default:
        program = find_program(project.main.source) if project.main.source.is_dir() else None
    if not program:
        console.info(f"No {Property.PROJECT_LAUNCH_MODULE.default} supplied, no launch.")
        return
    console.info(f"Launching {program}...")
    options = context.config.get_values(Property.PROJECT_LAUNCH_OPTIONS, ",")
    module_path = join_paths([project.main.target, *project.main.module_path])
    ToolRunner(context).run_expect(0, "java", "--module-path", module_path, "--module", program, *options)


_SCAFFOLD_DESCRIPTOR = "module demo {\n}\n"

_SCAFFOLD_PROGRAM = """package demo;

public class Program {
  public static void main(String... args) {
    System.out.println("Hello from " + Program.class.getModule());
  }
}
"""


def scaffold(context: Context) -> None:
    """Write a single-module sample program under ``src/``; existing files are kept."""

    context.console.debug("scaffold()")
    module = Project.from_context(context).main.source / "demo"
    files = {
        module / DESCRIPTOR_NAME: _SCAFFOLD_DESCRIPTOR,
        module / "demo" / "Program.java": _SCAFFOLD_PROGRAM,
    }
    for path, text in files.items():
        if path.exists():
            context.console.info(f"Keeping existing {path}")
            continue
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        context.console.info(f"Created {path}")


__all__ = [
    "Action",
    "ActionError",
    "ActionKind",
    "BuildError",
    "clean",
    "erase",
    "print_help",
    "launch",
    "parse_actions",
    "perform",
    "run_actions",
    "scaffold",
]
