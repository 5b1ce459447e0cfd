from __future__ import annotations

import asyncio
import random

import pytest

from fixtures import (
    FakeAdaptor,
    FakeHints,
    FakeImages,
    MemoryLeaderboard,
    ScriptedQuestions,
    build_collaborators,
    make_question,
)
from globalmind_quiz.quiz.collaborators import QuestionBank
from globalmind_quiz.quiz.controller import SessionController, SessionSettings
from globalmind_quiz.quiz.flows import FlowError
from globalmind_quiz.quiz.models import CATEGORIES, AdaptationResult


def _controller(collaborators=None, **settings) -> SessionController:
    settings.setdefault("request_timeout", None)
    return SessionController(
        collaborators or build_collaborators(),
        settings=SessionSettings(**settings),
        player_name="Ana",
        rng=random.Random(7),
    )


def _choose(controller: SessionController, correct: bool) -> bool:
    question = controller.state.displayed
    assert question is not None
    if correct:
        return controller.select_answer(question.answer)
    wrong = next(opt for opt in question.options if opt != question.answer)
    return controller.select_answer(wrong)


async def _play(controller: SessionController, outcomes) -> None:
    await controller.start()
    for outcome in outcomes:
        assert _choose(controller, outcome)
        await controller.advance()


def test_start_presents_first_question():
    questions = ScriptedQuestions()
    images = FakeImages("data:image/png;base64,XYZ")
    controller = _controller(
        build_collaborators(questions=questions, images=images)
    )

    assert asyncio.run(controller.start()) is True

    state = controller.state
    assert state.phase == "playing"
    assert not state.generating
    assert state.current.id == 1
    assert state.current.image == "data:image/png;base64,XYZ"
    assert state.presented == [state.current]
    request = questions.requests[0]
    assert request.difficulty == "easy"
    assert request.previous_questions == ()
    assert request.category in CATEGORIES


def test_start_only_from_welcome_or_finished():
    controller = _controller()
    asyncio.run(controller.start())

    assert asyncio.run(controller.start()) is False
    assert controller.state.current.id == 1


def test_score_follows_difficulty_points():
    adaptor = FakeAdaptor(AdaptationResult("hard", "Você está indo bem!"))
    controller = _controller(build_collaborators(adaptor=adaptor))

    async def scenario():
        await _play(controller, [True, True, False])
        assert controller.state.difficulty == "hard"
        _choose(controller, True)

    asyncio.run(scenario())

    state = controller.state
    assert state.score == 2 * 10 + 20
    assert state.correct_count == 3
    assert state.incorrect_count == 1
    assert state.current_streak == 1
    assert state.longest_streak == 2


def test_score_uses_answered_question_difficulty():
    questions = ScriptedQuestions(
        [make_question(difficulty="hard"), make_question(difficulty="medium")]
    )
    controller = _controller(build_collaborators(questions=questions))

    async def scenario():
        await _play(controller, [True])
        assert controller.state.difficulty == "easy"
        _choose(controller, True)

    asyncio.run(scenario())

    assert controller.state.score == 20 + 15


def test_streak_never_exceeds_longest():
    controller = _controller()
    outcomes = [True, False, True, True, True, False, True]

    async def scenario():
        await controller.start()
        for outcome in outcomes:
            _choose(controller, outcome)
            state = controller.state
            assert state.current_streak <= state.longest_streak
            if not outcome:
                assert state.current_streak == 0
            await controller.advance()

    asyncio.run(scenario())

    assert controller.state.longest_streak == 3


def test_second_selection_is_ignored():
    controller = _controller()
    asyncio.run(controller.start())

    assert _choose(controller, True) is True
    assert _choose(controller, False) is False

    state = controller.state
    assert state.phase == "feedback"
    assert state.is_correct is True
    assert state.score == 10
    assert state.incorrect_count == 0


def test_select_answer_requires_playing_phase():
    controller = _controller()

    assert controller.select_answer("Paris") is False
    assert controller.state.phase == "welcome"


def test_advance_only_from_feedback():
    controller = _controller()
    asyncio.run(controller.start())

    assert asyncio.run(controller.advance()) is False
    assert controller.state.current.id == 1


def test_advance_sends_history_and_clears_selection():
    questions = ScriptedQuestions([make_question("Primeira?")])
    controller = _controller(build_collaborators(questions=questions))

    asyncio.run(_play(controller, [True]))

    state = controller.state
    assert questions.requests[1].previous_questions == ("Primeira?",)
    assert state.phase == "playing"
    assert state.current.id == 2
    assert state.selected_answer is None
    assert state.is_correct is None


def test_full_session_adapts_every_third_answer_and_saves_once():
    adaptor = FakeAdaptor(AdaptationResult("medium", ""))
    board = MemoryLeaderboard()
    controller = _controller(
        build_collaborators(adaptor=adaptor, leaderboard=board)
    )
    outcomes = [True, False, True, True, True, False, True, True, False, True]

    asyncio.run(_play(controller, outcomes))

    state = controller.state
    assert state.phase == "finished"
    assert state.presented_count == 10
    assert [r.questions_answered for r in adaptor.requests] == [3, 6, 9]
    assert all(r.total_questions == 10 for r in adaptor.requests)
    assert adaptor.requests[0].correct_answers == 2
    assert len(board.writes) == 1
    saved = board.entries[0]
    assert saved.name == "Ana"
    assert saved.score == state.score
    assert controller.leaderboard == board.entries

    assert asyncio.run(controller.advance()) is False
    assert len(board.writes) == 1


def test_adaptation_rationale_becomes_info_notice():
    adaptor = FakeAdaptor(AdaptationResult("hard", "Vamos aumentar o desafio."))
    controller = _controller(build_collaborators(adaptor=adaptor))

    asyncio.run(_play(controller, [True, True, True]))

    assert controller.state.difficulty == "hard"
    assert controller.state.adaptation.reasoning == "Vamos aumentar o desafio."
    assert [(n.level, n.message) for n in controller.notices] == [
        ("info", "Vamos aumentar o desafio.")
    ]


def test_adaptation_failure_keeps_difficulty_silently():
    adaptor = FakeAdaptor(error=FlowError("bad json"))
    questions = ScriptedQuestions()
    controller = _controller(
        build_collaborators(adaptor=adaptor, questions=questions)
    )

    asyncio.run(_play(controller, [True, True, True]))

    assert controller.state.difficulty == "easy"
    assert controller.state.phase == "playing"
    assert controller.notices == []
    assert questions.requests[-1].difficulty == "easy"


def test_generation_failure_aborts_to_welcome():
    questions = ScriptedQuestions([make_question(), FlowError("model down")])
    controller = _controller(build_collaborators(questions=questions))

    asyncio.run(_play(controller, [True]))

    state = controller.state
    assert state.phase == "welcome"
    assert state.current is None
    assert not state.generating
    assert [n.level for n in controller.notices] == ["error"]


def test_exhausted_bank_aborts_to_welcome(rng):
    bank = QuestionBank([make_question("Única?")], rng=rng)
    controller = _controller(build_collaborators(questions=bank))

    asyncio.run(_play(controller, [True]))

    assert controller.state.phase == "welcome"
    assert len(controller.drain_notices()) == 1
    assert controller.notices == []


def test_generation_timeout_aborts_to_welcome():
    questions = ScriptedQuestions()
    questions.gate = asyncio.Event()
    controller = _controller(
        build_collaborators(questions=questions), request_timeout=0.05
    )

    assert asyncio.run(controller.start()) is False

    assert controller.state.phase == "welcome"
    assert controller.notices[0].level == "error"


def test_image_failure_uses_placeholder():
    images = FakeImages()
    images.error = FlowError("no image")
    controller = _controller(
        build_collaborators(images=images),
        placeholder_image="https://placehold.test/q.png",
    )

    asyncio.run(controller.start())

    assert controller.state.current.image == "https://placehold.test/q.png"
    assert controller.notices == []


def test_images_disabled_skips_generator():
    images = FakeImages()
    controller = _controller(build_collaborators(images=images), images=False)

    asyncio.run(controller.start())

    assert images.hints == []
    assert controller.state.current.image == controller.settings.placeholder_image


def test_hint_request_once_per_question():
    hints = FakeHints("Pense na Torre Eiffel.")
    controller = _controller(build_collaborators(hints=hints))

    async def scenario():
        await controller.start()
        assert await controller.request_hint() is True
        assert await controller.request_hint() is False

    asyncio.run(scenario())

    assert controller.state.hint == "Pense na Torre Eiffel."
    assert len(hints.requests) == 1
    assert hints.requests[0].answer == controller.state.current.answer


def test_hint_cleared_on_next_question():
    controller = _controller()

    async def scenario():
        await controller.start()
        await controller.request_hint()
        _choose(controller, True)
        assert await controller.request_hint() is False
        await controller.advance()

    asyncio.run(scenario())

    assert controller.state.hint is None


def test_hint_failure_emits_single_error_notice():
    hints = FakeHints()
    hints.error = FlowError("nope")
    controller = _controller(build_collaborators(hints=hints))

    async def scenario():
        await controller.start()
        return await controller.request_hint()

    assert asyncio.run(scenario()) is False
    assert controller.state.hint is None
    assert controller.state.phase == "playing"
    assert [n.level for n in controller.notices] == ["error"]


def test_abandon_discards_pending_question():
    questions = ScriptedQuestions()
    questions.gate = asyncio.Event()
    controller = _controller(build_collaborators(questions=questions))

    async def scenario():
        task = asyncio.create_task(controller.start())
        await asyncio.sleep(0)
        assert controller.state.generating
        assert controller.abandon() is True
        questions.gate.set()
        return await task

    assert asyncio.run(scenario()) is False
    state = controller.state
    assert state.phase == "welcome"
    assert state.current is None
    assert not state.generating
    assert controller.notices == []


def test_abandon_is_noop_on_idle_welcome():
    controller = _controller()
    epoch = controller.epoch

    assert controller.abandon() is False
    assert controller.epoch == epoch


def test_restart_from_finished_resets_counters():
    board = MemoryLeaderboard()
    controller = _controller(
        build_collaborators(leaderboard=board), session_length=2
    )

    async def scenario():
        await _play(controller, [True, True])
        assert controller.state.phase == "finished"
        assert await controller.start() is True

    asyncio.run(scenario())

    state = controller.state
    assert state.phase == "playing"
    assert state.score == 0
    assert state.presented_count == 1
    assert state.difficulty == "easy"
    assert len(board.writes) == 1


def test_leaderboard_failure_is_not_fatal(caplog):
    class BrokenBoard(MemoryLeaderboard):
        def write_all(self, entries):
            raise OSError("disk full")

    controller = _controller(
        build_collaborators(leaderboard=BrokenBoard()), session_length=1
    )

    with caplog.at_level("ERROR", logger="globalmind_quiz.session"):
        asyncio.run(_play(controller, [True]))

    assert controller.state.phase == "finished"
    assert "Failed to record score" in caplog.text


@pytest.mark.parametrize("adapt_every, expected", [(2, [2, 4]), (5, [])])
def test_adapt_every_setting(adapt_every, expected):
    adaptor = FakeAdaptor(AdaptationResult("easy", ""))
    controller = _controller(
        build_collaborators(adaptor=adaptor),
        session_length=5,
        adapt_every=adapt_every,
    )

    asyncio.run(_play(controller, [True] * 5))

    assert [r.questions_answered for r in adaptor.requests] == expected


def test_settings_from_config():
    from globalmind_quiz.quiz import config as config_mod

    cfg = config_mod._build_config(config_mod.default_tree())

    settings = SessionSettings.from_config(cfg)

    assert settings.session_length == 10
    assert settings.adapt_every == 3
    assert settings.request_timeout == 30.0
    assert settings.leaderboard_limit == 10
