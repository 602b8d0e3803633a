"""Command line interface for the bach build orchestrator."""
from __future__ import annotations

from argparse import REMAINDER, ArgumentParser, Namespace, RawDescriptionHelpFormatter
from typing import Iterable, List, Mapping
import os
import sys

from .actions import ActionError, ActionKind, BuildError, parse_actions, run_actions
from .context import Console, Context
from .properties import Property, overrides_from_environment


def _parse_arguments(argv: Iterable[str]) -> Namespace:
    epilog = "\n".join(f"  {kind.value:<9} {kind.description[0]}" for kind in ActionKind)
    parser = ArgumentParser(
        prog="bach",
        description="Build orchestrator for modular Java projects",
        epilog=f"actions:\n{epilog}\n\nOverrides are read from BACH_* environment variables.",
        formatter_class=RawDescriptionHelpFormatter,
        add_help=False,
    )
    parser.add_argument("tokens", nargs=REMAINDER, metavar="ACTION", help="Actions to perform in order")
    return parser.parse_args(list(argv))


def main(argv: List[str] | None = None, *, environ: Mapping[str, str] | None = None) -> int:
    args = _parse_arguments(sys.argv[1:] if argv is None else argv)
    overrides = overrides_from_environment(os.environ if environ is None else environ)

    try:
        actions = parse_actions(args.tokens)
    except ActionError as exc:
        Console().error(str(exc))
        return 2

    try:
        context = Context.create(overrides=overrides)
    except ValueError as exc:
        Console().error(str(exc))
        return 1

    context.console.debug(f"base = {context.base}")
    context.console.debug(f"{Property.LOG_LEVEL.key} = {context.console.level_name}")
    try:
        run_actions(context, actions)
    except BuildError as exc:
        context.console.error(str(exc))
        return 1
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
