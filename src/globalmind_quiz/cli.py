"""`globalmind` entry point: dispatches subcommands to their own CLIs."""

from __future__ import annotations

import inspect
import sys
from dataclasses import dataclass
from importlib import import_module, metadata
from typing import Callable, Dict, List, Optional, Sequence

DISTRIBUTION = "globalmind-quiz"


@dataclass(frozen=True)
class CommandSpec:
    """A subcommand and the ``module:function`` that implements it."""

    name: str
    summary: str
    target: str
    is_tui: bool = False

    @property
    def prog(self) -> str:
        return f"globalmind {self.name}"

    def run(self, argv: Sequence[str]) -> int:
        module_name, func_name = self.target.split(":", 1)
        func = getattr(import_module(module_name), func_name)
        return _call_entry_point(func, self.prog, argv)


COMMANDS: Dict[str, CommandSpec] = {
    spec.name: spec
    for spec in (
        CommandSpec(
            "init",
            "Bootstrap the GlobalMind Quiz workspace.",
            "globalmind_quiz.workspace.cli:main",
        ),
        CommandSpec(
            "config",
            "Create, validate or locate the configuration file.",
            "globalmind_quiz.quiz.cli:config_main",
        ),
        CommandSpec(
            "auth",
            "Register, sign in, play as guest or sign out.",
            "globalmind_quiz.auth.cli:main",
        ),
        CommandSpec(
            "play",
            "Play an adaptive quiz session.",
            "globalmind_quiz.quiz.cli:play_main",
            is_tui=True,
        ),
        CommandSpec(
            "leaderboard",
            "Show or clear the local leaderboard.",
            "globalmind_quiz.quiz.cli:leaderboard_main",
        ),
    )
}


def format_command_table() -> str:
    width = max(len(name) for name in COMMANDS)
    rows: List[str] = ["Available commands:"]
    for spec in COMMANDS.values():
        tag = " (TUI)" if spec.is_tui else ""
        rows.append(f"  {spec.name:<{width}}  {spec.summary}{tag}")
    return "\n".join(rows)


def format_usage() -> str:
    return (
        "Usage: globalmind <command> [args...]\n"
        "Run `globalmind list` for commands or `globalmind help <name>` "
        "for details.\n\n" + format_command_table()
    )


def _out(text: str) -> None:
    sys.stdout.write(text + "\n")


def _err(text: str) -> None:
    sys.stderr.write(text + "\n")


def _unknown(name: str) -> int:
    _err(f"Unknown command '{name}'.")
    _err(format_command_table())
    return 2


def _version() -> str:
    try:
        return metadata.version(DISTRIBUTION)
    except metadata.PackageNotFoundError:
        return "unknown"


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = list(sys.argv[1:] if argv is None else argv)
    if not args:
        _out(format_usage())
        return 2

    head, rest = args[0], args[1:]
    if head in ("-h", "--help") or (head == "help" and not rest):
        _out(format_usage())
        return 0
    if head in ("-V", "--version", "version"):
        _out(_version())
        return 0
    if head == "list":
        _out(format_command_table())
        return 0
    if head == "help":
        spec = COMMANDS.get(rest[0])
        if spec is None:
            return _unknown(rest[0])
        _out(f"{spec.name}: {spec.summary}")
        _out(f"Run `{spec.prog} --help` for CLI-specific options.")
        return 0

    spec = COMMANDS.get(head)
    if spec is None:
        return _unknown(head)
    return spec.run(rest)


def _call_entry_point(
    func: Callable[..., object], prog: str, argv: Sequence[str]
) -> int:
    """Run a subcommand's main with ``sys.argv`` patched for argparse.

    Mains that take no arguments read ``sys.argv`` themselves. A
    ``SystemExit`` is turned into an exit code; non-int results count as 0.
    """

    saved = sys.argv
    sys.argv = [prog, *argv]
    try:
        takes_argv = _takes_positional(func)
        result = func(list(argv)) if takes_argv else func()
    except SystemExit as exc:
        if exc.code is None or isinstance(exc.code, int):
            return exc.code or 0
        _err(str(exc.code))
        return 1
    finally:
        sys.argv = saved
    return result if isinstance(result, int) else 0


def _takes_positional(func: Callable[..., object]) -> bool:
    try:
        params = inspect.signature(func).parameters.values()
    except (TypeError, ValueError):
        return False
    positional = (
        inspect.Parameter.POSITIONAL_ONLY,
        inspect.Parameter.POSITIONAL_OR_KEYWORD,
        inspect.Parameter.VAR_POSITIONAL,
    )
    return any(param.kind in positional for param in params)


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
