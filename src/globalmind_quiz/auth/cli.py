"""Command-line entry points for local accounts."""

from __future__ import annotations

import argparse
import getpass
import sys
from typing import Callable, Optional, Sequence

from globalmind_quiz.core import workspace as workspace_mod

from .identity import AuthError, Identity, LocalIdentityProvider

PasswordPrompt = Callable[[str], str]


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="globalmind auth",
        description="Manage the signed-in GlobalMind Quiz player.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    for name, help_text in (
        ("register", "Create a local account and sign in with it."),
        ("login", "Sign in with email and password."),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("--email", required=True, help="Account email.")
        sub.add_argument(
            "--password",
            help="Account password (prompted for when omitted).",
        )
        if name == "register":
            sub.add_argument(
                "--name",
                help="Display name shown on the leaderboard.",
            )

    subparsers.add_parser("guest", help="Continue as a guest player.")
    subparsers.add_parser("logout", help="Sign out the current player.")
    subparsers.add_parser("whoami", help="Show the signed-in player.")
    return parser


def _print_error(message: str) -> None:
    sys.stderr.write(f"Error: {message}\n")


def _describe(identity: Identity) -> str:
    if identity.is_guest:
        return f"{identity.display_name} (guest)"
    return f"{identity.display_name} <{identity.email}>"


def _provider() -> LocalIdentityProvider:
    layout = workspace_mod.ensure_workspace()
    return LocalIdentityProvider(layout.path_for("auth"))


def main(
    argv: Optional[Sequence[str]] = None,
    *,
    prompt: PasswordPrompt = getpass.getpass,
) -> int:
    parser = _build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    try:
        provider = _provider()
    except workspace_mod.WorkspaceError as exc:
        _print_error(str(exc))
        return 2

    try:
        if args.command in ("register", "login"):
            password = args.password
            if password is None:
                password = prompt("Senha: ")
            if args.command == "register":
                provider.register(args.email, password, display_name=args.name)
            identity = provider.sign_in(args.email, password)
            print(f"Signed in as {_describe(identity)}")
            return 0
        if args.command == "guest":
            identity = provider.sign_in_guest()
            print(f"Signed in as {_describe(identity)}")
            return 0
        if args.command == "logout":
            if provider.sign_out():
                print("Signed out.")
            else:
                print("No player was signed in.")
            return 0
        if args.command == "whoami":
            current = provider.current_user()
            if current is None:
                print(
                    "Not signed in. Run `globalmind auth login` or "
                    "`globalmind auth guest`."
                )
                return 1
            print(_describe(current))
            return 0
    except AuthError as exc:
        _print_error(str(exc))
        return 2
    raise RuntimeError(f"Unhandled auth command: {args.command}")


if __name__ == "__main__":  # pragma: no cover - module CLI guard
    raise SystemExit(main())
