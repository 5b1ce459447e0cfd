"""Configuration for the GlobalMind quiz.

The TOML file is optional: every key has a default, and a file only needs to
list what it overrides. Unknown keys are rejected so typos fail loudly.
"""

from __future__ import annotations

import copy
import os
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from ..core import workspace
from .models import DIFFICULTIES, LANGUAGES, PLACEHOLDER_IMAGE, Difficulty

CONFIG_PATH_ENV = "GLOBALMIND_CONFIG"
CONFIG_FILENAME = "globalmind.toml"


class ConfigError(RuntimeError):
    """Raised when configuration parsing or validation fails."""


@dataclass(frozen=True)
class GameConfig:
    session_length: int
    adapt_every: int
    starting_difficulty: Difficulty
    source_language: str
    placeholder_image: str


@dataclass(frozen=True)
class OpenAIConfig:
    chat_model: str
    image_model: str
    temperature: float
    max_output_tokens: int
    request_timeout_seconds: int
    api_base: Optional[str]


@dataclass(frozen=True)
class ProvidersConfig:
    questions: str
    bank_path: Optional[Path]
    adaptation: str
    images: bool
    openai: OpenAIConfig


@dataclass(frozen=True)
class LeaderboardConfig:
    limit: int


@dataclass(frozen=True)
class LoggingConfig:
    level: str
    verbose: bool


@dataclass(frozen=True)
class QuizConfig:
    game: GameConfig
    providers: ProvidersConfig
    leaderboard: LeaderboardConfig
    logging: LoggingConfig


def _require_positive_int(value: Any, *, field: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ConfigError(f"'{field}' must be a positive integer.")
    return value


def _require_bool(value: Any, *, field: str) -> bool:
    if not isinstance(value, bool):
        raise ConfigError(f"'{field}' must be a boolean.")
    return value


def _require_string(value: Any, *, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(f"'{field}' must be a non-empty string.")
    return value.strip()


def _require_choice(value: Any, *, field: str, choices: tuple[str, ...]) -> str:
    text = _require_string(value, field=field).lower()
    if text not in choices:
        raise ConfigError(f"'{field}' must be one of {', '.join(choices)}.")
    return text


def _coerce_optional_string(value: Any, *, field: str) -> Optional[str]:
    if value is None:
        return None
    return _require_string(value, field=field)


def _build_game(section: Mapping[str, Any]) -> GameConfig:
    session_length = _require_positive_int(
        section.get("session_length"), field="game.session_length"
    )
    adapt_every = _require_positive_int(
        section.get("adapt_every"), field="game.adapt_every"
    )
    starting = _require_choice(
        section.get("starting_difficulty"),
        field="game.starting_difficulty",
        choices=DIFFICULTIES,
    )
    source_language = _require_choice(
        section.get("source_language"),
        field="game.source_language",
        choices=tuple(LANGUAGES),
    )
    placeholder = _require_string(
        section.get("placeholder_image"), field="game.placeholder_image"
    )
    return GameConfig(
        session_length=session_length,
        adapt_every=adapt_every,
        starting_difficulty=starting,  # type: ignore[arg-type]
        source_language=source_language,
        placeholder_image=placeholder,
    )


def _build_openai(section: Mapping[str, Any]) -> OpenAIConfig:
    temperature = section.get("temperature")
    if isinstance(temperature, bool) or not isinstance(temperature, (int, float)):
        raise ConfigError("'providers.openai.temperature' must be a number.")
    if not 0.0 <= float(temperature) <= 2.0:
        raise ConfigError(
            "'providers.openai.temperature' must be between 0.0 and 2.0."
        )
    return OpenAIConfig(
        chat_model=_require_string(
            section.get("chat_model"), field="providers.openai.chat_model"
        ),
        image_model=_require_string(
            section.get("image_model"), field="providers.openai.image_model"
        ),
        temperature=float(temperature),
        max_output_tokens=_require_positive_int(
            section.get("max_output_tokens"),
            field="providers.openai.max_output_tokens",
        ),
        request_timeout_seconds=_require_positive_int(
            section.get("request_timeout_seconds"),
            field="providers.openai.request_timeout_seconds",
        ),
        api_base=_coerce_optional_string(
            section.get("api_base"), field="providers.openai.api_base"
        ),
    )


def _build_providers(section: Mapping[str, Any]) -> ProvidersConfig:
    questions = _require_choice(
        section.get("questions"),
        field="providers.questions",
        choices=("openai", "bank"),
    )
    raw_bank = _coerce_optional_string(
        section.get("bank_path"), field="providers.bank_path"
    )
    bank_path = Path(raw_bank).expanduser().resolve() if raw_bank else None
    if questions == "bank" and bank_path is None:
        raise ConfigError(
            "providers.bank_path is required when providers.questions = 'bank'."
        )
    adaptation = _require_choice(
        section.get("adaptation"),
        field="providers.adaptation",
        choices=("openai", "rules"),
    )
    images = _require_bool(section.get("images"), field="providers.images")
    openai_section = section.get("openai")
    if not isinstance(openai_section, Mapping):
        raise ConfigError("providers.openai table is required.")
    return ProvidersConfig(
        questions=questions,
        bank_path=bank_path,
        adaptation=adaptation,
        images=images,
        openai=_build_openai(openai_section),
    )


def _build_logging(section: Mapping[str, Any]) -> LoggingConfig:
    level = _require_string(section.get("level"), field="logging.level").upper()
    if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
        raise ConfigError(
            "logging.level must be one of DEBUG, INFO, WARNING, ERROR, CRITICAL."
        )
    verbose = _require_bool(section.get("verbose"), field="logging.verbose")
    return LoggingConfig(level=level, verbose=verbose)


def _build_config(tree: Mapping[str, Any]) -> QuizConfig:
    leaderboard = tree["leaderboard"]
    return QuizConfig(
        game=_build_game(tree["game"]),
        providers=_build_providers(tree["providers"]),
        leaderboard=LeaderboardConfig(
            limit=_require_positive_int(
                leaderboard.get("limit"), field="leaderboard.limit"
            )
        ),
        logging=_build_logging(tree["logging"]),
    )


def resolve_config_path(
    *,
    explicit_path: Optional[Path] = None,
    env: Mapping[str, str] | None = None,
) -> Path:
    env_map = os.environ if env is None else env
    if explicit_path is not None:
        return explicit_path.expanduser().resolve()
    env_override = env_map.get(CONFIG_PATH_ENV)
    if env_override:
        return Path(env_override).expanduser().resolve()
    layout = workspace.ensure_workspace(env=env_map)
    return layout.path_for("config") / CONFIG_FILENAME


def load_config(
    *,
    explicit_path: Optional[Path] = None,
    env: Mapping[str, str] | None = None,
    require_file: bool = False,
) -> QuizConfig:
    """Load the config, applying defaults and validation.

    A missing file yields the defaults unless ``require_file`` is set.
    """

    path = resolve_config_path(explicit_path=explicit_path, env=env)
    tree = default_tree()
    if path.exists() or require_file:
        _apply_overrides(tree, _read_toml(path))
    return _build_config(tree)


def _read_toml(path: Path) -> Mapping[str, Any]:
    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")
    try:
        return tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Could not parse {path.name}: {exc}") from exc


def _apply_overrides(
    tree: Dict[str, Any], overrides: Mapping[str, Any], prefix: str = ""
) -> None:
    """Copy ``overrides`` onto the defaults tree; only known keys are allowed."""

    for key, value in overrides.items():
        name = prefix + key
        if key not in tree:
            raise ConfigError(f"Unknown configuration key '{name}'.")
        if not isinstance(tree[key], dict):
            tree[key] = value
        elif isinstance(value, Mapping):
            _apply_overrides(tree[key], value, prefix=f"{name}.")
        else:
            raise ConfigError(f"'{name}' must be a table, not a plain value.")


def default_tree() -> Dict[str, Any]:
    """Return a copy of the default configuration tree."""

    return copy.deepcopy(_DEFAULTS)


def config_template() -> str:
    return _CONFIG_TEMPLATE.strip() + "\n"


def write_template(path: Path, *, overwrite: bool = False) -> Path:
    """Write the commented default config; owner-only permissions."""

    if path.exists() and not overwrite:
        raise ConfigError(
            f"{path} already exists; pass --force to replace it."
        )
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(config_template(), encoding="utf-8")
        path.chmod(0o600)
    except OSError as exc:
        raise ConfigError(f"Could not write {path}: {exc}") from exc
    return path


_DEFAULTS: Dict[str, Any] = {
    "game": {
        "session_length": 10,
        "adapt_every": 3,
        "starting_difficulty": "easy",
        "source_language": "pt",
        "placeholder_image": PLACEHOLDER_IMAGE,
    },
    "providers": {
        "questions": "openai",
        "bank_path": None,
        "adaptation": "openai",
        "images": True,
        "openai": {
            "chat_model": "gpt-4o-mini",
            "image_model": "gpt-image-1",
            "temperature": 0.7,
            "max_output_tokens": 700,
            "request_timeout_seconds": 30,
            "api_base": None,
        },
    },
    "leaderboard": {
        "limit": 10,
    },
    "logging": {
        "level": "INFO",
        "verbose": False,
    },
}


_CONFIG_TEMPLATE = """
# GlobalMind Quiz configuration

[game]
# Questions per session
session_length = 10
# Ask for a difficulty re-evaluation every N answered questions
adapt_every = 3
# easy | medium | hard
starting_difficulty = "easy"
# Language questions are generated in (pt, en, es, fr)
source_language = "pt"
placeholder_image = "https://placehold.co/600x400.png"

[providers]
# "openai" generates questions on demand; "bank" reads them from bank_path
questions = "openai"
# bank_path = "~/globalmind/questions.jsonl"
# "openai" asks the model; "rules" uses accuracy bands locally
adaptation = "openai"
# Generate an illustrative image per question
images = true

[providers.openai]
chat_model = "gpt-4o-mini"
image_model = "gpt-image-1"
temperature = 0.7
max_output_tokens = 700
# Every model call is abandoned after this many seconds
request_timeout_seconds = 30
# api_base = "https://api.openai.com/v1"

[leaderboard]
limit = 10

[logging]
level = "INFO"
verbose = false
"""
