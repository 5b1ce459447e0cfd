from __future__ import annotations

import logging
import random
import sys
from pathlib import Path

import pytest

TESTS_DIR = Path(__file__).resolve().parent
ROOT = TESTS_DIR.parent
# Make src/ and the shared fixtures importable without an editable install
for extra in (TESTS_DIR, ROOT / "src"):
    path_str = str(extra)
    if path_str not in sys.path:
        sys.path.insert(0, path_str)

from fixtures import OpenAIStub, OpenAIStubFactory  # noqa: E402


@pytest.fixture
def openai_stub() -> OpenAIStub:
    """A fresh OpenAI client stand-in to hand to flows."""

    return OpenAIStub()


@pytest.fixture
def openai_factory() -> OpenAIStubFactory:
    return OpenAIStubFactory()


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture
def data_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point the workspace at a per-test directory."""

    home = tmp_path / "globalmind-home"
    monkeypatch.setenv("GLOBALMIND_DATA_HOME", str(home))
    monkeypatch.delenv("GLOBALMIND_CONFIG", raising=False)
    return home


@pytest.fixture(autouse=True)
def _reset_package_logger():
    """Undo ``configure_logger`` side effects so caplog keeps seeing records."""

    yield
    logger = logging.getLogger("globalmind_quiz")
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
