from .collaborators import (
    Collaborators,
    PlaceholderImageGenerator,
    QuestionBank,
    QuestionPoolExhausted,
    RuleBasedDifficultyAdaptor,
)
from .config import ConfigError, QuizConfig, load_config
from .controller import SessionController, SessionSettings
from .flows import FlowError
from .leaderboard import JsonLeaderboardStore, LeaderboardError, rank_scores
from .models import (
    Notice,
    PlayerScore,
    Question,
    QuestionValidationError,
    SessionState,
    points,
)

__all__ = [
    "Collaborators",
    "PlaceholderImageGenerator",
    "QuestionBank",
    "QuestionPoolExhausted",
    "RuleBasedDifficultyAdaptor",
    "ConfigError",
    "QuizConfig",
    "load_config",
    "SessionController",
    "SessionSettings",
    "FlowError",
    "JsonLeaderboardStore",
    "LeaderboardError",
    "rank_scores",
    "Notice",
    "PlayerScore",
    "Question",
    "QuestionValidationError",
    "SessionState",
    "points",
]
