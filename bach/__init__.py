"""Build orchestrator for modular Java projects driven by an action list."""

from .actions import Action, ActionKind, BuildError, parse_actions, run_actions
from .cli import main
from .context import Console, Context

__all__ = [
    "Action",
    "ActionKind",
    "BuildError",
    "Console",
    "Context",
    "main",
    "parse_actions",
    "run_actions",
]
