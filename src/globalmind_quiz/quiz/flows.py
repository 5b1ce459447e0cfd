"""OpenAI-backed collaborator implementations.

Each flow builds a prompt, runs a blocking chat (or image) completion in a
worker thread, and validates the model output into a typed record. Output
that cannot be validated raises :class:`FlowError`; the controller decides
whether that failure is fatal.
"""

from __future__ import annotations

import asyncio
from typing import Any, Optional, Tuple

from openai import OpenAIError

from .models import (
    DIFFICULTIES,
    AdaptationRequest,
    AdaptationResult,
    HintRequest,
    Question,
    QuestionRequest,
    QuestionValidationError,
)
from .utils import extract_json_object, strip_quotes

__all__ = [
    "FlowError",
    "OpenAIQuestionGenerator",
    "OpenAIImageGenerator",
    "OpenAITranslator",
    "OpenAIDifficultyAdaptor",
    "OpenAIHintGenerator",
]


class FlowError(RuntimeError):
    """Raised when a model call fails or returns unusable output."""


def _chat_completion_content(
    client: Any,
    *,
    model: str,
    system_prompt: str,
    user_prompt: str,
    temperature: float,
    max_tokens: int,
    json_mode: bool = False,
) -> str:
    kwargs: dict[str, Any] = {
        "model": model,
        "messages": [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ],
        "temperature": temperature,
        "max_tokens": max_tokens,
    }
    if json_mode:
        kwargs["response_format"] = {"type": "json_object"}
    try:
        resp = client.chat.completions.create(**kwargs)
    except OpenAIError as exc:
        raise FlowError(f"Chat completion failed: {exc}") from exc
    raw_content = resp.choices[0].message.content
    content = (raw_content or "").strip()
    if not content:
        raise FlowError("Model returned an empty response.")
    return content


class _ChatFlow:
    """Shared wiring for flows that speak to the chat completions API."""

    max_tokens = 600

    def __init__(
        self,
        client: Any,
        *,
        model: str = "gpt-4o-mini",
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
    ) -> None:
        self._client = client
        self._model = model
        self._temperature = temperature
        if max_tokens is not None:
            self.max_tokens = max_tokens

    async def _complete(
        self, system_prompt: str, user_prompt: str, *, json_mode: bool = False
    ) -> str:
        return await asyncio.to_thread(
            _chat_completion_content,
            self._client,
            model=self._model,
            system_prompt=system_prompt,
            user_prompt=user_prompt,
            temperature=self._temperature,
            max_tokens=self.max_tokens,
            json_mode=json_mode,
        )

    async def _complete_json(self, system_prompt: str, user_prompt: str) -> dict:
        content = await self._complete(system_prompt, user_prompt, json_mode=True)
        data = extract_json_object(content)
        if data is None:
            raise FlowError("Model output did not contain a JSON object.")
        return data


def _build_question_prompts(request: QuestionRequest) -> Tuple[str, str]:
    sys_prompt = (
        'You are a creative quiz master for "GlobalMind Quiz", a game about '
        "global cultures, languages and educational systems. You write every "
        "question in Brazilian Portuguese."
    )
    if request.previous_questions:
        history = "\n".join(f'- "{text}"' for text in request.previous_questions)
    else:
        history = "- (none yet)"
    schema_line = (
        '{"question": str, "options": [str], "answer": str, '
        '"type": "multiple-choice" | "true-false", '
        '"difficulty": "easy" | "medium" | "hard", '
        '"category": "Cultura" | "Idioma" | "Sistemas Educacionais", '
        '"explanation": str, "imageHint": str}'
    )
    user_prompt = (
        "Generate one unique quiz question as a JSON object.\n\n"
        f"Schema:\n{schema_line}\n\n"
        f"Difficulty: {request.difficulty}\n"
        f"Category: {request.category}\n"
        "Type: choose 'multiple-choice' (exactly 4 distinct options) or "
        "'true-false' (options exactly \"Verdadeiro\" and \"Falso\").\n"
        "The 'answer' must EXACTLY match one of the strings in 'options'.\n"
        "'imageHint' is a two-word English hint for an illustrative image "
        '(e.g. "Eiffel Tower").\n'
        f"Do NOT repeat any of these previously asked questions:\n{history}"
    )
    return sys_prompt, user_prompt


class OpenAIQuestionGenerator(_ChatFlow):
    max_tokens = 700

    async def generate(self, request: QuestionRequest) -> Question:
        sys_prompt, user_prompt = _build_question_prompts(request)
        data = await self._complete_json(sys_prompt, user_prompt)
        data.setdefault("difficulty", request.difficulty)
        data.setdefault("category", request.category)
        try:
            return Question.from_payload(data)
        except QuestionValidationError as exc:
            raise FlowError(f"Generated question rejected: {exc}") from exc


class OpenAIImageGenerator:
    """Render an illustrative image through the images API."""

    def __init__(
        self,
        client: Any,
        *,
        model: str = "gpt-image-1",
        size: str = "1024x1024",
    ) -> None:
        self._client = client
        self._model = model
        self._size = size

    async def generate(self, hint: str) -> str:
        if not hint.strip():
            raise FlowError("Image hint is empty.")
        prompt = (
            "A vibrant, high-quality, photorealistic image for a quiz game, "
            f"representing the concept: {hint}. The image should be visually "
            "appealing and clear. No text or logos."
        )
        return await asyncio.to_thread(self._render, prompt)

    def _render(self, prompt: str) -> str:
        try:
            resp = self._client.images.generate(
                model=self._model, prompt=prompt, size=self._size, n=1
            )
        except OpenAIError as exc:
            raise FlowError(f"Image generation failed: {exc}") from exc
        if not resp.data:
            raise FlowError("Image generation returned no data.")
        item = resp.data[0]
        encoded = getattr(item, "b64_json", None)
        if encoded:
            return f"data:image/png;base64,{encoded}"
        url = getattr(item, "url", None)
        if url:
            return str(url)
        raise FlowError("Image generation returned neither data nor URL.")


class OpenAITranslator(_ChatFlow):
    max_tokens = 400

    async def translate(self, text: str, target_language: str) -> str:
        if not text.strip():
            return text
        content = await self._complete(
            "You are an expert translator.",
            f"Translate the following text into {target_language}.\n"
            "Provide ONLY the translated text, without any introductory "
            "phrases, explanations, or quotation marks.\n\n"
            f'Text to translate:\n"{text}"',
        )
        translated = strip_quotes(content)
        if not translated:
            raise FlowError("Translation came back empty.")
        return translated


class OpenAIDifficultyAdaptor(_ChatFlow):
    max_tokens = 200

    async def recommend(self, request: AdaptationRequest) -> AdaptationResult:
        data = await self._complete_json(
            "You are the difficulty engine of a quiz game. Reply with JSON "
            '{"difficulty": "easy" | "medium" | "hard", "reasoning": str}.',
            "Performance data:\n"
            f"- Correct answers: {request.correct_answers}\n"
            f"- Total questions in quiz: {request.total_questions}\n"
            f"- Questions answered so far: {request.questions_answered}\n\n"
            "Compute accuracy = correct / answered. Below 40% recommend "
            "'easy', 40% to 75% 'medium', above 75% 'hard'. With fewer than "
            "3 answers be conservative about raising difficulty. Give a "
            "brief, encouraging reasoning in Brazilian Portuguese.",
        )
        raw_level = data.get("difficulty", data.get("difficultyLevel", ""))
        level = str(raw_level).strip().lower()
        if level not in DIFFICULTIES:
            raise FlowError(f"Unknown difficulty recommended: {level!r}")
        reasoning = str(data.get("reasoning", "")).strip()
        return AdaptationResult(level, reasoning)  # type: ignore[arg-type]


class OpenAIHintGenerator(_ChatFlow):
    max_tokens = 200

    async def generate(self, request: HintRequest) -> str:
        options = "\n".join(f"- {option}" for option in request.options)
        content = await self._complete(
            "You are a helpful quiz assistant. You give one subtle hint in "
            "Brazilian Portuguese. Never reveal the answer or name any option.",
            f'Question: "{request.question}"\n'
            f"Options:\n{options}\n"
            f'Correct answer: "{request.answer}"\n\n'
            "Write the hint now. Reply with the hint only.",
        )
        hint = strip_quotes(content)
        if request.answer.lower() in hint.lower():
            raise FlowError("Hint gave away the answer.")
        return hint
