"""Rich console front-end for the session controller.

The loop reads one command per prompt through an injectable ``input_provider``
so tests can script a whole session. Rendering only reads controller state;
every transition goes through the controller's public operations.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Callable, Literal

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ..controller import SessionController
from ..models import LANGUAGES, Notice, PlayerScore, Question, SessionState

InputProvider = Callable[[], str]
ExitAction = Literal["finished", "quit", "aborted"]

_KEYS = "ABCD"


@dataclass(frozen=True)
class SessionCommand:
    """Normalized user command parsed from console input."""

    type: Literal["select", "hint", "language", "next", "quit"]
    value: str | None = None


@dataclass(frozen=True)
class ConsoleSessionResult:
    exit_action: ExitAction
    score: int
    correct: int
    incorrect: int
    longest_streak: int


def parse_session_command(raw: str | None) -> SessionCommand | None:
    """Parse raw console input; ``None`` means the input was not understood."""

    if raw is None:
        return None
    text = raw.strip()
    lowered = text.lower()
    if lowered in {"", "n", "next", "proxima", "próxima"}:
        return SessionCommand("next")
    if lowered in {"q", "quit", "exit", "sair"}:
        return SessionCommand("quit")
    if lowered in {"h", "hint", "dica"}:
        return SessionCommand("hint")
    if lowered.startswith(("l ", "lang ", "idioma ")):
        code = lowered.split(None, 1)[1].strip()
        return SessionCommand("language", code)
    if len(text) == 1 and text.upper() in _KEYS:
        return SessionCommand("select", text.upper())
    if text.isdigit() and 1 <= int(text) <= len(_KEYS):
        return SessionCommand("select", _KEYS[int(text) - 1])
    return None


def option_for_key(question: Question, key: str) -> str | None:
    index = _KEYS.find(key.strip().upper()[:1])
    if index < 0 or index >= len(question.options):
        return None
    return question.options[index]


async def run_console_session(
    controller: SessionController,
    console: Console,
    input_provider: InputProvider,
) -> ConsoleSessionResult:
    """Play one session to completion, abandonment or abort."""

    console.print(Text(f"Jogador: {controller.player_name}", style="dim"))
    with console.status("Gerando pergunta..."):
        await controller.start()
    exit_action: ExitAction = "aborted"

    while True:
        render_notices(console, controller.drain_notices())
        state = controller.state
        if state.phase == "finished":
            render_summary(console, state)
            render_leaderboard(console, controller.leaderboard)
            exit_action = "finished"
            break
        if state.phase == "welcome":
            exit_action = "aborted"
            break

        render_state(console, state)
        try:
            raw = input_provider()
        except (EOFError, KeyboardInterrupt, StopIteration):
            console.print("\n[bold yellow]Sessão interrompida.[/]")
            controller.abandon()
            exit_action = "quit"
            break
        command = parse_session_command(raw)
        if command is None:
            console.print("[red]Comando não reconhecido. Tente novamente.[/]")
            continue
        if command.type == "quit":
            controller.abandon()
            console.print("\n[bold yellow]Sessão encerrada sem salvar.[/]")
            exit_action = "quit"
            break
        await _apply_command(controller, console, command)

    state = controller.state
    return ConsoleSessionResult(
        exit_action=exit_action,
        score=state.score,
        correct=state.correct_count,
        incorrect=state.incorrect_count,
        longest_streak=state.longest_streak,
    )


async def _apply_command(
    controller: SessionController,
    console: Console,
    command: SessionCommand,
) -> None:
    state = controller.state
    if command.type == "select" and command.value:
        displayed = state.displayed
        if displayed is None or state.phase != "playing":
            console.print("[red]Nenhuma pergunta aguardando resposta.[/]")
            return
        option = option_for_key(displayed, command.value)
        if option is None:
            console.print(
                "[red]'%s' não é uma opção válida para esta pergunta.[/red]"
                % command.value,
            )
            return
        controller.select_answer(option)
    elif command.type == "next":
        if state.phase != "feedback":
            return
        with console.status("Gerando pergunta..."):
            await controller.advance()
    elif command.type == "hint":
        with console.status("Pensando em uma dica..."):
            await controller.request_hint()
    elif command.type == "language" and command.value:
        if command.value not in LANGUAGES:
            console.print(
                f"[red]Idioma desconhecido. Use: {', '.join(LANGUAGES)}.[/]"
            )
            return
        with console.status("Traduzindo..."):
            await controller.change_language(command.value)


def render_notices(console: Console, notices: Sequence[Notice]) -> None:
    for notice in notices:
        border = "red" if notice.level == "error" else "cyan"
        console.print(
            Panel(notice.message, title=notice.title, border_style=border)
        )


def render_state(console: Console, state: SessionState) -> None:
    question = state.displayed
    if question is None:
        return
    header = Text.assemble(
        (f"Pergunta {question.id}", "bold cyan"),
        (f"  {question.category} · {state.difficulty}", "dim"),
    )
    console.print()
    console.rule(header)
    if question.image:
        console.print(Text(_image_label(question.image), style="dim"))
    console.print(Text(question.question, style="bold"))

    table = Table(show_header=False, box=box.SIMPLE, expand=True)
    table.add_column("Key", justify="center", style="cyan")
    table.add_column("Option")
    for key, option in zip(_KEYS, question.options):
        row = Text(option)
        if state.phase == "feedback":
            if option == question.answer:
                row.stylize("bold green")
            elif option == state.selected_option:
                row.stylize("bold red")
        table.add_row(key, row)
    console.print(table)

    if state.hint:
        console.print(Panel(state.hint, title="Dica", border_style="yellow"))

    if state.phase == "feedback":
        if state.is_correct:
            console.print("[bold green]Correto![/]")
        else:
            console.print(
                f"[bold red]Incorreto.[/] A resposta certa é "
                f"[bold]{question.answer}[/]."
            )
        if question.explanation:
            console.print(Text(question.explanation, style="italic"))
        hint = "Enter (próxima), l <idioma>, quit"
    else:
        keys = ", ".join(_KEYS[: len(question.options)])
        hint = f"Comandos: [{keys}], h (dica), l <idioma>, quit"
    console.print(
        Text(
            f"Pontos: {state.score} | Sequência: {state.current_streak} | "
            f"Idioma: {state.language} | {hint}",
            style="dim",
        )
    )


def render_summary(console: Console, state: SessionState) -> None:
    console.print()
    console.rule(Text("Quiz Finalizado!", style="bold magenta"))
    overview = Table(show_header=False, box=box.MINIMAL_DOUBLE_HEAD)
    overview.add_column("Metric", style="bold")
    overview.add_column("Value", justify="right")
    overview.add_row("Pontuação", str(state.score))
    overview.add_row("Acertos", str(state.correct_count))
    overview.add_row("Erros", str(state.incorrect_count))
    overview.add_row("Maior sequência", str(state.longest_streak))
    console.print(overview)


def render_leaderboard(console: Console, entries: Sequence[PlayerScore]) -> None:
    if not entries:
        console.print(
            Panel(
                "Nenhuma pontuação registrada ainda.",
                title="Placar",
                border_style="yellow",
            )
        )
        return
    table = Table(title="Placar", box=box.SIMPLE, expand=False)
    table.add_column("#", justify="right")
    table.add_column("Nome")
    table.add_column("Pontos", justify="right")
    table.add_column("Data")
    for idx, entry in enumerate(entries, start=1):
        table.add_row(str(idx), entry.name, str(entry.score), entry.date[:10])
    console.print(table)


def _image_label(reference: str) -> str:
    if reference.startswith("data:"):
        return "[imagem gerada]"
    return f"Imagem: {reference}"
