"""Shared testing fixtures and fakes for the globalmind_quiz test suite."""

from .collaborators import (  # noqa: F401
    FakeAdaptor,
    FakeHints,
    FakeImages,
    FakeTranslator,
    MemoryLeaderboard,
    ScriptedQuestions,
    build_collaborators,
    make_question,
)
from .openai import OpenAIStub, OpenAIStubFactory  # noqa: F401

__all__ = [
    "FakeAdaptor",
    "FakeHints",
    "FakeImages",
    "FakeTranslator",
    "MemoryLeaderboard",
    "OpenAIStub",
    "OpenAIStubFactory",
    "ScriptedQuestions",
    "build_collaborators",
    "make_question",
]
