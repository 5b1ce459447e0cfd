"""Collaborator contracts for the session controller plus offline providers.

The controller only ever talks to these protocols. The OpenAI-backed flows
live in :mod:`globalmind_quiz.quiz.flows`; the classes here need no network
and back the ``bank`` / ``rules`` provider settings and the test suite.
"""

from __future__ import annotations

import json
import random
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, Sequence

from .models import (
    PLACEHOLDER_IMAGE,
    AdaptationRequest,
    AdaptationResult,
    Difficulty,
    HintRequest,
    PlayerScore,
    Question,
    QuestionRequest,
    QuestionValidationError,
)
from .utils import read_jsonl

__all__ = [
    "Collaborators",
    "QuestionGenerator",
    "ImageGenerator",
    "Translator",
    "DifficultyAdaptor",
    "HintGenerator",
    "LeaderboardStore",
    "QuestionPoolExhausted",
    "QuestionBank",
    "RuleBasedDifficultyAdaptor",
    "PlaceholderImageGenerator",
]


class QuestionPoolExhausted(RuntimeError):
    """Raised when a generator has no further question to offer."""


class QuestionGenerator(Protocol):
    async def generate(self, request: QuestionRequest) -> Question:
        """Return one question; ``id`` and ``image`` are filled by the caller."""


class ImageGenerator(Protocol):
    async def generate(self, hint: str) -> str:
        """Return an image reference (URL or data URI) for ``hint``."""


class Translator(Protocol):
    async def translate(self, text: str, target_language: str) -> str:
        """Translate ``text`` into the language named ``target_language``."""


class DifficultyAdaptor(Protocol):
    async def recommend(self, request: AdaptationRequest) -> AdaptationResult:
        """Recommend the difficulty for the next question."""


class HintGenerator(Protocol):
    async def generate(self, request: HintRequest) -> str:
        """Return a hint that nudges toward the answer without naming it."""


class LeaderboardStore(Protocol):
    def read_all(self) -> list[PlayerScore]: ...

    def write_all(self, entries: Sequence[PlayerScore]) -> None: ...


class QuestionBank:
    """Serve questions from a fixed pool, usually loaded from JSONL.

    Prefers an unseen question at the requested difficulty and falls back to
    any unseen question. Categories are not enforced, since a small bank
    rarely covers every difficulty/category pair.
    """

    def __init__(
        self,
        questions: Sequence[Question],
        *,
        rng: random.Random | None = None,
    ) -> None:
        self._questions = list(questions)
        self._rng = rng or random.Random()

    @classmethod
    def from_jsonl(
        cls, path: Path, *, rng: random.Random | None = None
    ) -> "QuestionBank":
        try:
            rows = read_jsonl(path)
        except json.JSONDecodeError as exc:
            raise QuestionValidationError(
                f"Question bank {path} is not valid JSONL: {exc}"
            ) from exc
        questions = [
            Question.from_payload(row, id=index)
            for index, row in enumerate(rows, start=1)
        ]
        return cls(questions, rng=rng)

    def __len__(self) -> int:
        return len(self._questions)

    async def generate(self, request: QuestionRequest) -> Question:
        seen = set(request.previous_questions)
        available = [q for q in self._questions if q.question not in seen]
        if not available:
            raise QuestionPoolExhausted("No unseen questions left in the bank.")
        pool = [q for q in available if q.difficulty == request.difficulty]
        return self._rng.choice(pool or available)


class RuleBasedDifficultyAdaptor:
    """Accuracy-band adaptation, usable without a model.

    Below 40% accuracy recommends ``easy``, up to 75% ``medium``, above
    that ``hard``. With fewer than three answers the result is capped at
    ``medium``.
    """

    async def recommend(self, request: AdaptationRequest) -> AdaptationResult:
        return recommend_by_accuracy(request)


def recommend_by_accuracy(request: AdaptationRequest) -> AdaptationResult:
    if request.questions_answered <= 0:
        return AdaptationResult("easy", "Vamos começar com calma.")
    accuracy = request.accuracy
    level: Difficulty
    if accuracy < 0.40:
        level = "easy"
        reasoning = "Vamos tentar uma um pouco mais fácil para pegar o ritmo."
    elif accuracy <= 0.75:
        level = "medium"
        reasoning = "Bom trabalho! Vamos manter um desafio equilibrado."
    else:
        level = "hard"
        reasoning = "Você está indo muito bem! Vamos aumentar o desafio."
    if request.questions_answered < 3 and level == "hard":
        level = "medium"
        reasoning = "Ótimo começo! Vamos subir o nível aos poucos."
    return AdaptationResult(level, reasoning)


class PlaceholderImageGenerator:
    def __init__(self, reference: str = PLACEHOLDER_IMAGE) -> None:
        self._reference = reference

    async def generate(self, hint: str) -> str:  # noqa: ARG002
        return self._reference


@dataclass(frozen=True)
class Collaborators:
    """The full set of services a controller is wired to."""

    questions: QuestionGenerator
    images: ImageGenerator
    translator: Translator
    adaptor: DifficultyAdaptor
    hints: HintGenerator
    leaderboard: LeaderboardStore
