"""Textual front-end driving the same session controller as the console loop."""

from __future__ import annotations

from typing import Dict, List, Optional

from textual.app import App, ComposeResult
from textual.containers import Container, Vertical
from textual.css.query import NoMatches
from textual.widgets import Button, Footer, Static

from ..controller import SessionController
from ..models import LANGUAGES, Notice, SessionState

_KEYS = "ABCD"
_LANGUAGE_CYCLE: List[str] = list(LANGUAGES)


def status_line(state: SessionState, total: int) -> str:
    if state.generating:
        return "Gerando pergunta..."
    if state.translating:
        return "Traduzindo..."
    question = state.displayed
    progress = f"{question.id}/{total}" if question else f"-/{total}"
    return (
        f"Pergunta {progress} | Pontos: {state.score} | "
        f"Sequência: {state.current_streak} | Nível: {state.difficulty} | "
        f"Idioma: {state.language}"
    )


def feedback_line(state: SessionState) -> str:
    question = state.displayed
    if state.phase == "finished":
        return (
            f"Quiz finalizado! Pontuação: {state.score} "
            f"({state.correct_count} acertos, maior sequência "
            f"{state.longest_streak}). Pressione r para jogar de novo."
        )
    if state.phase != "feedback" or question is None:
        return ""
    if state.is_correct:
        verdict = "Correto!"
    else:
        verdict = f"Incorreto. Resposta: {question.answer}."
    if question.explanation:
        verdict = f"{verdict} {question.explanation}"
    return f"{verdict} Pressione n para continuar."


def next_language(current: str) -> str:
    index = _LANGUAGE_CYCLE.index(current) if current in LANGUAGES else -1
    return _LANGUAGE_CYCLE[(index + 1) % len(_LANGUAGE_CYCLE)]


class QuizApp(App):
    CSS_PATH = None
    CSS = """
#choices Button.correct { background: $success; }
#choices Button.wrong { background: $error; }
#status { color: $text-muted; }
#hint { color: $warning; }
"""
    BINDINGS = [
        ("a", "select('A')", "A"),
        ("b", "select('B')", "B"),
        ("c", "select('C')", "C"),
        ("d", "select('D')", "D"),
        ("n", "advance", "Próxima"),
        ("h", "hint", "Dica"),
        ("l", "language", "Idioma"),
        ("r", "restart", "Reiniciar"),
        ("q", "quit", "Sair"),
    ]

    def __init__(self, controller: SessionController):
        super().__init__()
        self.controller = controller
        self.shown_notices: List[Notice] = []

    def compose(self) -> ComposeResult:
        with Container(id="stage"):
            yield Static("", id="status")
            yield Static("", id="image")
            yield Static("", id="question")
            yield Vertical(id="choices")
            yield Static("", id="hint")
            yield Static("", id="feedback")
        yield Footer()

    async def on_mount(self) -> None:
        self.run_worker(self.start_session())

    # Controller-facing helpers; each refreshes the view afterwards and is
    # safe to call before the app is mounted.
    async def start_session(self) -> bool:
        self._refresh_view()
        started = await self.controller.start()
        self._refresh_view()
        return started

    def choose(self, key: str) -> bool:
        question = self.controller.state.displayed
        if question is None:
            return False
        index = _KEYS.find(key.strip().upper()[:1])
        if index < 0 or index >= len(question.options):
            return False
        applied = self.controller.select_answer(question.options[index])
        self._refresh_view()
        return applied

    async def next_question(self) -> bool:
        applied = await self.controller.advance()
        self._refresh_view()
        return applied

    async def ask_hint(self) -> bool:
        applied = await self.controller.request_hint()
        self._refresh_view()
        return applied

    async def cycle_language(self) -> bool:
        target = next_language(self.controller.state.language)
        applied = await self.controller.change_language(target)
        self._refresh_view()
        return applied

    def action_select(self, key: str) -> None:
        self.choose(key)

    def action_advance(self) -> None:
        self.run_worker(self.next_question())

    def action_hint(self) -> None:
        self.run_worker(self.ask_hint())

    def action_language(self) -> None:
        self.run_worker(self.cycle_language())

    def action_restart(self) -> None:
        if self.controller.state.phase in ("welcome", "finished"):
            self.run_worker(self.start_session())

    def on_button_pressed(self, event: Button.Pressed) -> None:
        name = event.button.name or ""
        if name.startswith("choice-"):
            self.choose(name[-1])

    def _flush_notices(self) -> None:
        for notice in self.controller.drain_notices():
            self.shown_notices.append(notice)
            if not self.is_running:
                continue
            severity = "error" if notice.level == "error" else "information"
            self.notify(notice.message, title=notice.title, severity=severity)

    def _refresh_view(self) -> None:
        state = self.controller.state
        if not self.is_running:
            self._flush_notices()
            return
        try:
            self.query_one("#status", Static).update(
                status_line(state, self.controller.settings.session_length)
            )
            question = state.displayed
            self.query_one("#question", Static).update(
                question.question if question else ""
            )
            image = question.image if question and question.image else ""
            if image.startswith("data:"):
                image = "[imagem gerada]"
            self.query_one("#image", Static).update(image)
            self.query_one("#hint", Static).update(
                f"Dica: {state.hint}" if state.hint else ""
            )
            self.query_one("#feedback", Static).update(feedback_line(state))
            choices = self.query_one("#choices", Vertical)
        except NoMatches:
            self._flush_notices()
            return
        choices.remove_children()
        if question is not None:
            choices.mount(*self._choice_buttons(state))
        self._flush_notices()

    def _choice_buttons(self, state: SessionState) -> List[Button]:
        question = state.displayed
        buttons: List[Button] = []
        if question is None:
            return buttons
        marks: Dict[str, Optional[str]] = {}
        if state.phase == "feedback":
            marks[question.answer] = "correct"
            chosen = state.selected_option
            if chosen is not None and chosen != question.answer:
                marks[chosen] = "wrong"
        for key, option in zip(_KEYS, question.options):
            button = Button(
                f"{key}) {option}",
                name=f"choice-{key}",
                disabled=state.phase != "playing" or state.busy,
            )
            css_class = marks.get(option)
            if css_class:
                button.add_class(css_class)
            buttons.append(button)
        return buttons
