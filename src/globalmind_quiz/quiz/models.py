"""Typed records shared by the session controller and its collaborators.

Questions arrive from untrusted sources (model output, JSONL banks), so
:meth:`Question.from_payload` validates shape and membership rules before a
record is built. Everything the controller hands to collaborators is an
explicit request record rather than a loose dict.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Literal, Mapping, MutableMapping, Sequence, get_args

Difficulty = Literal["easy", "medium", "hard"]
Category = Literal["Cultura", "Idioma", "Sistemas Educacionais"]
QuestionType = Literal["multiple-choice", "true-false"]
Phase = Literal["welcome", "playing", "feedback", "finished"]
NoticeLevel = Literal["info", "error"]

DIFFICULTIES: tuple[Difficulty, ...] = get_args(Difficulty)
CATEGORIES: tuple[Category, ...] = get_args(Category)
QUESTION_TYPES: tuple[QuestionType, ...] = get_args(QuestionType)

POINTS: Mapping[Difficulty, int] = {"easy": 10, "medium": 15, "hard": 20}

_OPTION_COUNTS: Mapping[QuestionType, int] = {
    "multiple-choice": 4,
    "true-false": 2,
}

SOURCE_LANGUAGE = "pt"
LANGUAGES: Mapping[str, str] = {
    "pt": "Português (Brasil)",
    "en": "English",
    "es": "Español",
    "fr": "Français",
}

PLACEHOLDER_IMAGE = "https://placehold.co/600x400.png"


class QuestionValidationError(ValueError):
    """Raised when a question payload breaks the shape or answer rules."""


def points(difficulty: Difficulty) -> int:
    """Return the score awarded for a correct answer at ``difficulty``."""

    return POINTS[difficulty]


def language_name(code: str) -> str:
    try:
        return LANGUAGES[code]
    except KeyError as exc:
        raise KeyError(f"Unsupported language code '{code}'.") from exc


@dataclass(frozen=True)
class Question:
    """One immutable trivia item."""

    id: int
    question: str
    options: tuple[str, ...]
    answer: str
    type: QuestionType
    difficulty: Difficulty
    category: Category
    explanation: str
    image: str | None = None
    image_hint: str = ""

    def __post_init__(self) -> None:
        _validate_question(self)

    @classmethod
    def from_payload(
        cls, payload: Mapping[str, Any], *, id: int = 0
    ) -> "Question":
        """Build a question from a loose mapping (model output or bank row)."""

        if not isinstance(payload, Mapping):
            raise QuestionValidationError("question payload must be a mapping")
        raw_options = payload.get("options")
        if not isinstance(raw_options, Sequence) or isinstance(
            raw_options, (str, bytes)
        ):
            raise QuestionValidationError("options must be a list of strings")
        options = tuple(str(option).strip() for option in raw_options)
        image = payload.get("image")

        def text(key: str) -> Any:
            return str(payload.get(key, "") or "").strip()

        return cls(
            id=int(payload.get("id", id) or id),
            question=text("question"),
            options=options,
            answer=text("answer"),
            type=text("type"),
            difficulty=text("difficulty"),
            category=text("category"),
            explanation=text("explanation"),
            image=str(image) if image else None,
            image_hint=str(
                payload.get("image_hint", payload.get("imageHint", "")) or ""
            ).strip(),
        )

    def to_dict(self) -> MutableMapping[str, Any]:
        return {
            "id": self.id,
            "question": self.question,
            "options": list(self.options),
            "answer": self.answer,
            "type": self.type,
            "difficulty": self.difficulty,
            "category": self.category,
            "explanation": self.explanation,
            "image": self.image,
            "image_hint": self.image_hint,
        }

    def with_text(
        self,
        *,
        question: str,
        options: Sequence[str],
        answer: str,
        explanation: str,
    ) -> "Question":
        """Return a copy carrying translated text; validation re-runs."""

        return replace(
            self,
            question=question,
            options=tuple(options),
            answer=answer,
            explanation=explanation,
        )


def _validate_question(question: Question) -> None:
    if not question.question:
        raise QuestionValidationError("question text is required")
    if question.type not in QUESTION_TYPES:
        raise QuestionValidationError(
            f"type must be one of {', '.join(QUESTION_TYPES)}"
        )
    if question.difficulty not in DIFFICULTIES:
        raise QuestionValidationError(
            f"difficulty must be one of {', '.join(DIFFICULTIES)}"
        )
    if question.category not in CATEGORIES:
        raise QuestionValidationError(
            f"category must be one of {', '.join(CATEGORIES)}"
        )
    expected = _OPTION_COUNTS[question.type]
    if len(question.options) != expected:
        raise QuestionValidationError(
            f"{question.type} questions need exactly {expected} options"
        )
    if not all(question.options):
        raise QuestionValidationError("option text must be non-empty")
    if question.answer not in question.options:
        raise QuestionValidationError("answer must match one of the options")


@dataclass(frozen=True)
class PlayerScore:
    """A leaderboard entry."""

    name: str
    score: int
    date: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )

    def to_dict(self) -> MutableMapping[str, Any]:
        return {"name": self.name, "score": self.score, "date": self.date}

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "PlayerScore":
        try:
            return cls(
                name=str(payload["name"]),
                score=int(payload["score"]),
                date=str(payload.get("date", "")),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise ValueError(f"Malformed leaderboard entry: {payload!r}") from exc


@dataclass(frozen=True)
class QuestionRequest:
    difficulty: Difficulty
    category: Category
    previous_questions: tuple[str, ...] = ()


@dataclass(frozen=True)
class AdaptationRequest:
    correct_answers: int
    total_questions: int
    questions_answered: int

    @property
    def accuracy(self) -> float:
        if self.questions_answered <= 0:
            return 0.0
        return self.correct_answers / self.questions_answered


@dataclass(frozen=True)
class AdaptationResult:
    difficulty: Difficulty
    reasoning: str


@dataclass(frozen=True)
class HintRequest:
    question: str
    options: tuple[str, ...]
    answer: str


@dataclass(frozen=True)
class Notice:
    """Transient message the front-end shows as a toast."""

    level: NoticeLevel
    title: str
    message: str


@dataclass
class SessionState:
    """Mutable record owned by the session controller.

    Front-ends read it; only the controller writes to it.
    """

    phase: Phase = "welcome"
    difficulty: Difficulty = "easy"
    language: str = SOURCE_LANGUAGE
    generating: bool = False
    translating: bool = False
    hinting: bool = False
    current: Question | None = None
    translated: Question | None = None
    presented: list[Question] = field(default_factory=list)
    score: int = 0
    correct_count: int = 0
    incorrect_count: int = 0
    current_streak: int = 0
    longest_streak: int = 0
    selected_answer: str | None = None
    selected_index: int | None = None
    is_correct: bool | None = None
    hint: str | None = None
    adaptation: AdaptationResult | None = None
    sequence: int = 0

    @property
    def displayed(self) -> Question | None:
        """The question the player sees: translated when available."""

        if self.current is None:
            return None
        return self.translated or self.current

    @property
    def selected_option(self) -> str | None:
        """The chosen option as worded in the displayed language."""

        question = self.displayed
        if question is None or self.selected_index is None:
            return None
        return question.options[self.selected_index]

    @property
    def presented_count(self) -> int:
        return len(self.presented)

    @property
    def busy(self) -> bool:
        return self.generating or self.translating

    def history(self) -> tuple[str, ...]:
        return tuple(item.question for item in self.presented)
