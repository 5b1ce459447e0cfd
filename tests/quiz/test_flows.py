from __future__ import annotations

import asyncio
import json

import pytest
from openai import OpenAIError

from globalmind_quiz.quiz import flows
from globalmind_quiz.quiz.models import (
    AdaptationRequest,
    HintRequest,
    QuestionRequest,
)

QUESTION_JSON = {
    "question": "Qual é a língua oficial do Brasil?",
    "options": ["Português", "Espanhol", "Inglês", "Francês"],
    "answer": "Português",
    "type": "multiple-choice",
    "difficulty": "easy",
    "category": "Idioma",
    "explanation": "O Brasil fala português.",
    "imageHint": "Brazil flag",
}


def _request():
    return QuestionRequest(
        difficulty="easy",
        category="Idioma",
        previous_questions=("Qual é a capital do Peru?",),
    )


def test_question_generator_parses_json(openai_stub):
    openai_stub.queue_response(json.dumps(QUESTION_JSON, ensure_ascii=False))
    generator = flows.OpenAIQuestionGenerator(openai_stub, model="gpt-test")

    question = asyncio.run(generator.generate(_request()))

    assert question.answer == "Português"
    assert question.image_hint == "Brazil flag"
    call = openai_stub.calls[0]
    assert call["model"] == "gpt-test"
    assert call["response_format"] == {"type": "json_object"}
    user_prompt = call["messages"][1]["content"]
    assert "Qual é a capital do Peru?" in user_prompt
    assert "Idioma" in user_prompt


def test_question_generator_accepts_fenced_json_and_fills_tags(openai_stub):
    payload = dict(QUESTION_JSON)
    del payload["difficulty"]
    del payload["category"]
    openai_stub.queue_response("```json\n" + json.dumps(payload) + "\n```")
    generator = flows.OpenAIQuestionGenerator(openai_stub)

    question = asyncio.run(
        generator.generate(QuestionRequest("hard", "Cultura"))
    )

    assert question.difficulty == "hard"
    assert question.category == "Cultura"


def test_question_generator_rejects_answer_outside_options(openai_stub):
    payload = dict(QUESTION_JSON, answer="Tupi")
    openai_stub.queue_response(json.dumps(payload))
    generator = flows.OpenAIQuestionGenerator(openai_stub)

    with pytest.raises(flows.FlowError, match="rejected"):
        asyncio.run(generator.generate(_request()))


@pytest.mark.parametrize("content", ["", None, "no json here"])
def test_question_generator_rejects_unusable_output(openai_stub, content):
    openai_stub.queue_response(content)
    generator = flows.OpenAIQuestionGenerator(openai_stub)

    with pytest.raises(flows.FlowError):
        asyncio.run(generator.generate(_request()))


def test_client_errors_become_flow_errors(openai_stub):
    def boom(_kwargs):
        raise OpenAIError("service unavailable")

    openai_stub.side_effect = boom
    translator = flows.OpenAITranslator(openai_stub)

    with pytest.raises(flows.FlowError, match="service unavailable"):
        asyncio.run(translator.translate("Olá", "English"))


def test_translator_strips_quotes(openai_stub):
    openai_stub.queue_response('"Hello"')
    translator = flows.OpenAITranslator(openai_stub)

    assert asyncio.run(translator.translate("Olá", "English")) == "Hello"
    assert "English" in openai_stub.calls[0]["messages"][1]["content"]


def test_translator_passes_empty_text_through(openai_stub):
    translator = flows.OpenAITranslator(openai_stub)

    assert asyncio.run(translator.translate("  ", "English")) == "  "
    assert openai_stub.calls == []


def test_adaptor_reads_difficulty_and_reasoning(openai_stub):
    openai_stub.queue_response(
        json.dumps({"difficultyLevel": "Hard", "reasoning": "Muito bem!"})
    )
    adaptor = flows.OpenAIDifficultyAdaptor(openai_stub)

    result = asyncio.run(adaptor.recommend(AdaptationRequest(3, 10, 3)))

    assert result.difficulty == "hard"
    assert result.reasoning == "Muito bem!"
    prompt = openai_stub.calls[0]["messages"][1]["content"]
    assert "Correct answers: 3" in prompt


def test_adaptor_rejects_unknown_level(openai_stub):
    openai_stub.queue_response(json.dumps({"difficulty": "legendary"}))
    adaptor = flows.OpenAIDifficultyAdaptor(openai_stub)

    with pytest.raises(flows.FlowError):
        asyncio.run(adaptor.recommend(AdaptationRequest(3, 10, 3)))


def test_hint_generator_returns_hint(openai_stub):
    openai_stub.queue_response("Pense no idioma de Portugal.")
    hints = flows.OpenAIHintGenerator(openai_stub)
    request = HintRequest(
        question=QUESTION_JSON["question"],
        options=tuple(QUESTION_JSON["options"]),
        answer="Português",
    )

    assert asyncio.run(hints.generate(request)) == "Pense no idioma de Portugal."


def test_hint_generator_refuses_to_reveal_answer(openai_stub):
    openai_stub.queue_response("A resposta é português.")
    hints = flows.OpenAIHintGenerator(openai_stub)
    request = HintRequest("Q?", ("Português", "Espanhol"), "Português")

    with pytest.raises(flows.FlowError, match="gave away"):
        asyncio.run(hints.generate(request))


def test_image_generator_returns_data_uri(openai_stub):
    openai_stub.queue_image(b64_json="QUJD")
    images = flows.OpenAIImageGenerator(openai_stub, model="img-test")

    reference = asyncio.run(images.generate("Eiffel Tower"))

    assert reference == "data:image/png;base64,QUJD"
    call = openai_stub.image_calls[0]
    assert call["model"] == "img-test"
    assert "Eiffel Tower" in call["prompt"]


def test_image_generator_falls_back_to_url(openai_stub):
    openai_stub.queue_image(url="https://img.test/1.png")
    images = flows.OpenAIImageGenerator(openai_stub)

    assert asyncio.run(images.generate("Louvre")) == "https://img.test/1.png"


def test_image_generator_requires_data(openai_stub):
    images = flows.OpenAIImageGenerator(openai_stub)

    with pytest.raises(flows.FlowError):
        asyncio.run(images.generate("Louvre"))
    with pytest.raises(flows.FlowError):
        asyncio.run(images.generate(" "))
