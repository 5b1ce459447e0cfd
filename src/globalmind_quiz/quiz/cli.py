"""Command-line entry points for playing and managing the quiz."""

from __future__ import annotations

import argparse
import asyncio
import logging
import random
import sys
from pathlib import Path
from typing import Any, Callable, Optional, Sequence

from rich.console import Console

from globalmind_quiz.auth import LocalIdentityProvider
from globalmind_quiz.core import configure_logger, load_client
from globalmind_quiz.core import workspace as workspace_mod

from . import config as config_mod
from .collaborators import (
    Collaborators,
    PlaceholderImageGenerator,
    QuestionBank,
    RuleBasedDifficultyAdaptor,
)
from .controller import SessionController, SessionSettings
from .flows import (
    OpenAIDifficultyAdaptor,
    OpenAIHintGenerator,
    OpenAIImageGenerator,
    OpenAIQuestionGenerator,
    OpenAITranslator,
)
from .leaderboard import JsonLeaderboardStore, LeaderboardError
from .models import LANGUAGES, QuestionValidationError
from .view.console import render_leaderboard, run_console_session

ClientFactory = Callable[..., Any]


def _print_error(message: str) -> None:
    sys.stderr.write(f"Error: {message}\n")


def _to_path(value: str | None) -> Path | None:
    if value is None:
        return None
    return Path(value).expanduser().resolve()


# -- config ----------------------------------------------------------------


def _build_config_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="globalmind config",
        description="Manage the GlobalMind Quiz configuration file.",
    )
    where = argparse.ArgumentParser(add_help=False)
    where.add_argument(
        "--path",
        type=str,
        help="Config TOML to use instead of GLOBALMIND_CONFIG.",
    )
    actions = parser.add_subparsers(dest="config_command", required=True)

    init = actions.add_parser(
        "init", parents=[where], help="Write a commented default config."
    )
    init.add_argument(
        "--force", action="store_true", help="Replace an existing file."
    )
    check = actions.add_parser(
        "validate", parents=[where], help="Load and check the config file."
    )
    check.add_argument(
        "--quiet", action="store_true", help="Only report problems."
    )
    actions.add_parser(
        "path", parents=[where], help="Show which config file is used."
    )
    return parser


def _summarize(cfg: config_mod.QuizConfig) -> list[str]:
    return [
        "Configuration OK",
        f"  questions: {cfg.providers.questions}",
        f"  adaptation: {cfg.providers.adaptation}",
        f"  chat_model: {cfg.providers.openai.chat_model}",
        f"  session_length: {cfg.game.session_length}",
    ]


def config_main(argv: Optional[Sequence[str]] = None) -> int:
    args = _build_config_parser().parse_args(
        None if argv is None else list(argv)
    )
    target = _to_path(args.path)
    try:
        if args.config_command == "init":
            written = config_mod.write_template(
                config_mod.resolve_config_path(explicit_path=target),
                overwrite=args.force,
            )
            print(f"Wrote config template to {written}")
        elif args.config_command == "validate":
            cfg = config_mod.load_config(
                explicit_path=target, require_file=True
            )
            if not args.quiet:
                print("\n".join(_summarize(cfg)))
        else:
            print(config_mod.resolve_config_path(explicit_path=target))
    except (config_mod.ConfigError, workspace_mod.WorkspaceError) as exc:
        _print_error(str(exc))
        return 2
    return 0


# -- play ------------------------------------------------------------------


def _build_play_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="globalmind play",
        description="Play an adaptive GlobalMind Quiz session.",
    )
    parser.add_argument(
        "--tui",
        action="store_true",
        help="Use the Textual interface instead of the console loop.",
    )
    parser.add_argument(
        "--bank",
        type=str,
        help="Serve questions from a JSONL question bank instead of the model.",
    )
    parser.add_argument(
        "--language",
        choices=sorted(LANGUAGES),
        help="Interface language to start in.",
    )
    parser.add_argument(
        "--config",
        type=str,
        help="Config TOML (defaults to GLOBALMIND_CONFIG or the data home).",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Mirror debug logs to stderr.",
    )
    return parser


def build_collaborators(
    cfg: config_mod.QuizConfig,
    *,
    leaderboard_dir: Path,
    bank_path: Path | None = None,
    client_factory: ClientFactory = load_client,
    rng: random.Random | None = None,
) -> Collaborators:
    """Wire collaborators according to the ``[providers]`` settings."""

    openai_cfg = cfg.providers.openai
    client = client_factory(
        api_base=openai_cfg.api_base,
        timeout=float(openai_cfg.request_timeout_seconds),
    )
    chat_kwargs = {
        "model": openai_cfg.chat_model,
        "temperature": openai_cfg.temperature,
    }

    source = bank_path or (
        cfg.providers.bank_path if cfg.providers.questions == "bank" else None
    )
    if source is not None:
        questions: Any = QuestionBank.from_jsonl(source, rng=rng)
    else:
        questions = OpenAIQuestionGenerator(
            client, max_tokens=openai_cfg.max_output_tokens, **chat_kwargs
        )

    if cfg.providers.adaptation == "rules":
        adaptor: Any = RuleBasedDifficultyAdaptor()
    else:
        adaptor = OpenAIDifficultyAdaptor(client, **chat_kwargs)

    if cfg.providers.images:
        images: Any = OpenAIImageGenerator(client, model=openai_cfg.image_model)
    else:
        images = PlaceholderImageGenerator(cfg.game.placeholder_image)

    return Collaborators(
        questions=questions,
        images=images,
        translator=OpenAITranslator(client, **chat_kwargs),
        adaptor=adaptor,
        hints=OpenAIHintGenerator(client, **chat_kwargs),
        leaderboard=JsonLeaderboardStore(
            leaderboard_dir, limit=cfg.leaderboard.limit
        ),
    )


async def _play_console(
    controller: SessionController,
    console: Console,
    language: Optional[str],
) -> int:
    if language:
        await controller.change_language(language)
    result = await run_console_session(
        controller, console, lambda: console.input("[bold cyan]> [/]")
    )
    return 0 if result.exit_action != "aborted" else 1


def play_main(
    argv: Optional[Sequence[str]] = None,
    *,
    client_factory: ClientFactory = load_client,
    console: Console | None = None,
) -> int:
    parser = _build_play_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    try:
        cfg = config_mod.load_config(explicit_path=_to_path(args.config))
        layout = workspace_mod.ensure_workspace()
    except (config_mod.ConfigError, workspace_mod.WorkspaceError) as exc:
        _print_error(str(exc))
        return 2

    identity = LocalIdentityProvider(layout.path_for("auth")).current_user()
    if identity is None:
        _print_error(
            "No player is signed in. Run `globalmind auth login` "
            "(or `globalmind auth guest`) first."
        )
        return 2

    logger, log_path = configure_logger(
        "globalmind_quiz",
        log_dir=layout.path_for("logs"),
        level=cfg.logging.level,
        verbose=args.verbose or cfg.logging.verbose,
    )
    logger.info(
        "Starting play",
        extra={"player": identity.display_name, "tui": args.tui},
    )

    bank_path = _to_path(args.bank)
    if bank_path is not None and not bank_path.is_file():
        _print_error(f"Question bank not found: {bank_path}")
        return 2
    try:
        collaborators = build_collaborators(
            cfg,
            leaderboard_dir=layout.path_for("leaderboard"),
            bank_path=bank_path,
            client_factory=client_factory,
        )
    except (OSError, QuestionValidationError) as exc:
        _print_error(f"Could not load question bank: {exc}")
        return 2
    except RuntimeError as exc:
        _print_error(str(exc))
        return 2

    controller = SessionController(
        collaborators,
        settings=SessionSettings.from_config(cfg),
        player_name=identity.display_name,
        logger=logging.getLogger("globalmind_quiz.session"),
    )

    if args.tui:
        from .view.tui import QuizApp

        if args.language:
            asyncio.run(controller.change_language(args.language))
        QuizApp(controller).run()
        return 0

    rich_console = console or Console()
    rich_console.print(f"[dim]Logs: {log_path}[/]")
    return asyncio.run(_play_console(controller, rich_console, args.language))


# -- leaderboard -----------------------------------------------------------


def _build_leaderboard_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="globalmind leaderboard",
        description="Show or reset the local leaderboard.",
    )
    parser.add_argument(
        "action",
        nargs="?",
        choices=("show", "clear"),
        default="show",
        help="Action to perform (default: show).",
    )
    parser.add_argument(
        "--config",
        type=str,
        help="Path to the config TOML.",
    )
    return parser


def leaderboard_main(
    argv: Optional[Sequence[str]] = None,
    *,
    console: Console | None = None,
) -> int:
    parser = _build_leaderboard_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    try:
        cfg = config_mod.load_config(explicit_path=_to_path(args.config))
        layout = workspace_mod.ensure_workspace()
    except (config_mod.ConfigError, workspace_mod.WorkspaceError) as exc:
        _print_error(str(exc))
        return 2

    store = JsonLeaderboardStore(
        layout.path_for("leaderboard"), limit=cfg.leaderboard.limit
    )
    if args.action == "clear":
        try:
            store.clear()
        except LeaderboardError as exc:
            _print_error(str(exc))
            return 2
        print("Leaderboard cleared.")
        return 0

    try:
        entries = store.read_all()
    except LeaderboardError as exc:
        sys.stderr.write(f"Warning: {exc}\n")
        entries = []
    render_leaderboard(console or Console(), entries)
    return 0
