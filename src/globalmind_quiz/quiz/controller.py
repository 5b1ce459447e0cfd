"""Adaptive quiz session controller.

The controller owns :class:`~globalmind_quiz.quiz.models.SessionState` and is
the only code that mutates it. Front-ends call the public operations and
re-render from ``controller.state``; transient messages arrive through
``controller.notices`` (and the optional ``on_notice`` callback).

Every awaited collaborator call captures the session epoch and the question
sequence number before suspending. A result whose epoch or sequence no longer
matches the live session is dropped, so an abandoned or restarted session is
never touched by work started on its behalf.
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass, replace
from typing import Awaitable, Callable, Optional, TypeVar

from ..core.logging import SessionLogAdapter
from .collaborators import Collaborators
from .config import QuizConfig
from .leaderboard import DEFAULT_LIMIT, record_score
from .models import (
    CATEGORIES,
    LANGUAGES,
    PLACEHOLDER_IMAGE,
    SOURCE_LANGUAGE,
    AdaptationRequest,
    Difficulty,
    HintRequest,
    Notice,
    NoticeLevel,
    PlayerScore,
    Question,
    QuestionRequest,
    QuestionValidationError,
    SessionState,
    language_name,
    points,
)

__all__ = ["SessionController", "SessionSettings"]

T = TypeVar("T")

NoticeCallback = Callable[[Notice], None]


@dataclass(frozen=True)
class SessionSettings:
    session_length: int = 10
    adapt_every: int = 3
    starting_difficulty: Difficulty = "easy"
    source_language: str = SOURCE_LANGUAGE
    placeholder_image: str = PLACEHOLDER_IMAGE
    images: bool = True
    request_timeout: Optional[float] = 30.0
    leaderboard_limit: int = DEFAULT_LIMIT

    @classmethod
    def from_config(cls, config: QuizConfig) -> "SessionSettings":
        return cls(
            session_length=config.game.session_length,
            adapt_every=config.game.adapt_every,
            starting_difficulty=config.game.starting_difficulty,
            source_language=config.game.source_language,
            placeholder_image=config.game.placeholder_image,
            images=config.providers.images,
            request_timeout=float(
                config.providers.openai.request_timeout_seconds
            ),
            leaderboard_limit=config.leaderboard.limit,
        )


class SessionController:
    """Drive one player's quiz sessions against a set of collaborators."""

    def __init__(
        self,
        collaborators: Collaborators,
        *,
        settings: SessionSettings | None = None,
        player_name: str = "Convidado",
        rng: random.Random | None = None,
        on_notice: NoticeCallback | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._collaborators = collaborators
        self.settings = settings or SessionSettings()
        self.player_name = player_name
        self._rng = rng or random.Random()
        self._on_notice = on_notice
        self._epoch = 0
        self._score_saved = False
        self.state = self._fresh_state(self.settings.source_language)
        self.notices: list[Notice] = []
        self.leaderboard: list[PlayerScore] = []
        self._log = SessionLogAdapter(
            logger or logging.getLogger("globalmind_quiz.session"),
            lambda: {
                "session_epoch": self._epoch,
                "sequence": self.state.sequence,
            },
        )

    @property
    def epoch(self) -> int:
        return self._epoch

    # -- public operations -------------------------------------------------

    async def start(self) -> bool:
        """Reset the session and load the first question."""

        if self.state.phase not in ("welcome", "finished"):
            return False
        if self.state.generating:
            return False
        self._epoch += 1
        self._score_saved = False
        self.state = self._fresh_state(self.state.language)
        self._log.info(
            "Session started",
            extra={
                "difficulty": self.state.difficulty,
                "player": self.player_name,
            },
        )
        return await self._load_next_question()

    def select_answer(self, choice: str) -> bool:
        """Grade ``choice`` against the displayed question."""

        state = self.state
        displayed = state.displayed
        if state.phase != "playing" or state.busy or displayed is None:
            return False
        correct = choice == displayed.answer
        if correct:
            state.correct_count += 1
            state.current_streak += 1
            state.longest_streak = max(
                state.longest_streak, state.current_streak
            )
            state.score += points(displayed.difficulty)
        else:
            state.incorrect_count += 1
            state.current_streak = 0
        state.selected_answer = choice
        state.selected_index = (
            displayed.options.index(choice)
            if choice in displayed.options
            else None
        )
        state.is_correct = correct
        state.phase = "feedback"
        self._log.info(
            "Answer graded",
            extra={"correct": correct, "score": state.score},
        )
        return True

    async def advance(self) -> bool:
        """Move past feedback: finish, or adapt and load the next question."""

        state = self.state
        if state.phase != "feedback" or state.busy:
            return False
        count = state.presented_count
        if count >= self.settings.session_length:
            self._finish()
            return True

        epoch = self._epoch
        state.selected_answer = None
        state.selected_index = None
        state.is_correct = None
        state.hint = None
        state.hinting = False
        state.current = None
        state.translated = None
        state.phase = "playing"
        state.generating = True
        if count > 0 and count % self.settings.adapt_every == 0:
            await self._adapt(epoch)
            if epoch != self._epoch:
                self._log.debug("Dropping stale adaptation")
                return False
        return await self._load_next_question()

    async def change_language(self, language: str) -> bool:
        """Switch the display language, translating the active question."""

        if language not in LANGUAGES:
            raise ValueError(f"Unsupported language code '{language}'.")
        state = self.state
        if state.translating:
            return False
        if language == self.settings.source_language:
            state.language = language
            state.translated = None
            return True
        if language == state.language and state.translated is not None:
            return False
        state.language = language
        if state.current is None:
            return True
        return await self._translate_current(self._epoch, state.sequence)

    async def request_hint(self) -> bool:
        """Ask for a hint on the displayed question; at most one per question."""

        state = self.state
        displayed = state.displayed
        if state.phase != "playing" or state.busy or displayed is None:
            return False
        if state.hinting or state.hint is not None:
            return False
        epoch, sequence = self._epoch, state.sequence
        state.hinting = True
        request = HintRequest(
            question=displayed.question,
            options=displayed.options,
            answer=displayed.answer,
        )
        try:
            hint = await self._bounded(
                self._collaborators.hints.generate(request)
            )
        except Exception as exc:
            if self._is_stale(epoch, sequence):
                self._log.debug("Dropping stale hint failure")
                return False
            state.hinting = False
            self._log.warning("Hint generation failed", extra={"error": str(exc)})
            self._notify(
                "error",
                "Erro na Dica",
                "Não foi possível gerar uma dica. Tente novamente.",
            )
            return False
        if self._is_stale(epoch, sequence):
            self._log.debug("Dropping stale hint")
            return False
        state.hinting = False
        state.hint = hint
        return True

    def abandon(self) -> bool:
        """Return to the welcome screen, orphaning any outstanding work."""

        if self.state.phase == "welcome" and not self.state.busy:
            return False
        self._epoch += 1
        self.state = self._fresh_state(self.state.language)
        self._log.info("Session abandoned")
        return True

    def drain_notices(self) -> list[Notice]:
        pending, self.notices = self.notices, []
        return pending

    # -- internals ---------------------------------------------------------

    def _fresh_state(self, language: str) -> SessionState:
        return SessionState(
            difficulty=self.settings.starting_difficulty,
            language=language,
        )

    def _is_stale(self, epoch: int, sequence: int) -> bool:
        return epoch != self._epoch or sequence != self.state.sequence

    async def _bounded(self, awaitable: Awaitable[T]) -> T:
        return await asyncio.wait_for(
            awaitable, timeout=self.settings.request_timeout
        )

    def _notify(self, level: NoticeLevel, title: str, message: str) -> None:
        notice = Notice(level, title, message)
        self.notices.append(notice)
        if self._on_notice is not None:
            self._on_notice(notice)

    async def _adapt(self, epoch: int) -> None:
        state = self.state
        request = AdaptationRequest(
            correct_answers=state.correct_count,
            total_questions=self.settings.session_length,
            questions_answered=state.presented_count,
        )
        try:
            result = await self._bounded(
                self._collaborators.adaptor.recommend(request)
            )
        except Exception as exc:
            self._log.warning(
                "Difficulty adaptation failed; keeping current level",
                extra={"error": str(exc), "difficulty": state.difficulty},
            )
            return
        if epoch != self._epoch:
            return
        self._log.info(
            "Difficulty adapted",
            extra={"previous": state.difficulty, "difficulty": result.difficulty},
        )
        state.difficulty = result.difficulty
        state.adaptation = result
        if result.reasoning:
            self._notify("info", "IA Adaptativa", result.reasoning)

    async def _load_next_question(self) -> bool:
        state = self.state
        state.sequence += 1
        state.generating = True
        epoch, sequence = self._epoch, state.sequence
        request = QuestionRequest(
            difficulty=state.difficulty,
            category=self._rng.choice(CATEGORIES),
            previous_questions=state.history(),
        )
        try:
            draft = await self._bounded(
                self._collaborators.questions.generate(request)
            )
        except Exception as exc:
            if self._is_stale(epoch, sequence):
                self._log.debug("Dropping stale generation failure")
                return False
            self._log.error(
                "Question generation failed", extra={"error": str(exc)}
            )
            self._abort(
                "Erro ao gerar pergunta",
                "Não foi possível carregar a próxima pergunta. "
                "A sessão foi encerrada.",
            )
            return False
        if self._is_stale(epoch, sequence):
            self._log.debug("Dropping stale question")
            return False

        image = await self._resolve_image(draft)
        if self._is_stale(epoch, sequence):
            self._log.debug("Dropping stale question image")
            return False

        question = replace(draft, id=state.presented_count + 1, image=image)
        state.current = question
        state.translated = None
        state.hint = None
        state.selected_answer = None
        state.selected_index = None
        state.is_correct = None
        state.presented.append(question)
        state.generating = False
        state.phase = "playing"
        self._log.info(
            "Question presented",
            extra={
                "question_id": question.id,
                "difficulty": question.difficulty,
                "category": question.category,
            },
        )
        if state.language != self.settings.source_language:
            await self._translate_current(epoch, sequence)
        return True

    async def _resolve_image(self, draft: Question) -> str:
        if draft.image:
            return draft.image
        if not self.settings.images or not draft.image_hint:
            return self.settings.placeholder_image
        try:
            return await self._bounded(
                self._collaborators.images.generate(draft.image_hint)
            )
        except Exception as exc:
            self._log.warning(
                "Image generation failed; using placeholder",
                extra={"error": str(exc), "hint": draft.image_hint},
            )
            return self.settings.placeholder_image

    async def _translate_current(self, epoch: int, sequence: int) -> bool:
        state = self.state
        question = state.current
        if question is None:
            return False
        target = language_name(state.language)
        translator = self._collaborators.translator
        texts = [
            question.question,
            *question.options,
            question.explanation,
            question.answer,
        ]
        state.translating = True
        try:
            results = await self._bounded(
                asyncio.gather(
                    *(translator.translate(text, target) for text in texts)
                )
            )
        except Exception as exc:
            if self._is_stale(epoch, sequence):
                self._log.debug("Dropping stale translation failure")
                return False
            self._rollback_translation(str(exc))
            return False
        if self._is_stale(epoch, sequence):
            self._log.debug("Dropping stale translation")
            return False

        count = len(question.options)
        try:
            translated = question.with_text(
                question=results[0],
                options=results[1 : count + 1],
                explanation=results[count + 1],
                answer=results[count + 2],
            )
        except QuestionValidationError as exc:
            self._rollback_translation(str(exc))
            return False
        state.translated = translated
        state.translating = False
        self._log.info("Question translated", extra={"language": state.language})
        return True

    def _rollback_translation(self, reason: str) -> None:
        state = self.state
        self._log.warning(
            "Translation failed; reverting to source language",
            extra={"error": reason, "language": state.language},
        )
        state.translated = None
        state.translating = False
        state.language = self.settings.source_language
        self._notify(
            "error",
            "Erro de Tradução",
            "Não foi possível traduzir a pergunta. Exibindo o texto original.",
        )

    def _abort(self, title: str, message: str) -> None:
        self._epoch += 1
        self.state = self._fresh_state(self.state.language)
        self._notify("error", title, message)

    def _finish(self) -> None:
        state = self.state
        state.phase = "finished"
        self._log.info(
            "Session finished",
            extra={
                "score": state.score,
                "correct": state.correct_count,
                "incorrect": state.incorrect_count,
                "longest_streak": state.longest_streak,
            },
        )
        if self._score_saved:
            return
        self._score_saved = True
        entry = PlayerScore(name=self.player_name, score=state.score)
        try:
            self.leaderboard = record_score(
                self._collaborators.leaderboard,
                entry,
                limit=self.settings.leaderboard_limit,
            )
        except Exception as exc:
            self._log.error("Failed to record score", extra={"error": str(exc)})
