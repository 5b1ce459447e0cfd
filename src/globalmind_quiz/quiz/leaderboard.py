"""Leaderboard persistence and ranking."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Sequence

from .collaborators import LeaderboardStore
from .models import PlayerScore

__all__ = [
    "DEFAULT_LIMIT",
    "JsonLeaderboardStore",
    "LeaderboardError",
    "rank_scores",
    "record_score",
]

DEFAULT_LIMIT = 10
_FILENAME = "leaderboard.json"

logger = logging.getLogger("globalmind_quiz.leaderboard")


class LeaderboardError(RuntimeError):
    """Raised when the leaderboard cannot be read or explicitly maintained."""


def rank_scores(
    entries: Sequence[PlayerScore], *, limit: int = DEFAULT_LIMIT
) -> list[PlayerScore]:
    """Order ``entries`` by descending score and keep the top ``limit``.

    ``sorted`` is stable, so equal scores keep their insertion order.
    """

    return sorted(entries, key=lambda entry: entry.score, reverse=True)[:limit]


def record_score(
    store: LeaderboardStore,
    entry: PlayerScore,
    *,
    limit: int = DEFAULT_LIMIT,
) -> list[PlayerScore]:
    """Append ``entry``, re-rank, persist, and return the new board.

    An unreadable store is left untouched and an empty board is returned;
    rewriting it from ``entry`` alone would drop every stored score.
    """

    try:
        existing = store.read_all()
    except LeaderboardError as exc:
        logger.error(
            "Leaderboard unreadable; score not saved",
            extra={
                "player": entry.name,
                "score": entry.score,
                "error": str(exc),
            },
        )
        return []
    board = rank_scores([*existing, entry], limit=limit)
    store.write_all(board)
    return board


class JsonLeaderboardStore:
    """Leaderboard kept as a JSON array on disk.

    Reads raise :class:`LeaderboardError` when the file cannot be read or
    parsed; individual malformed rows are logged and skipped. Failed writes
    are logged and dropped.
    """

    def __init__(self, directory: Path, *, limit: int = DEFAULT_LIMIT) -> None:
        self._path = directory / _FILENAME
        self.limit = limit

    @property
    def path(self) -> Path:
        return self._path

    def read_all(self) -> list[PlayerScore]:
        if not self._path.exists():
            return []
        try:
            payload = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise LeaderboardError(
                f"Could not read leaderboard at {self._path}: {exc}"
            ) from exc
        if not isinstance(payload, list):
            raise LeaderboardError(
                f"Leaderboard at {self._path} must hold a JSON array."
            )

        entries: list[PlayerScore] = []
        for index, item in enumerate(payload):
            try:
                entries.append(PlayerScore.from_dict(item))
            except ValueError as exc:
                logger.warning(
                    "Skipping malformed leaderboard row",
                    extra={
                        "path": self._path,
                        "row": index,
                        "error": str(exc),
                    },
                )
        return entries

    def write_all(self, entries: Sequence[PlayerScore]) -> None:
        try:
            _atomic_write_json(self._path, [entry.to_dict() for entry in entries])
        except OSError as exc:
            logger.error(
                "Failed to save leaderboard",
                extra={"path": self._path, "error": str(exc)},
            )

    def save(self, entry: PlayerScore) -> list[PlayerScore]:
        return record_score(self, entry, limit=self.limit)

    def clear(self) -> None:
        try:
            self._path.unlink(missing_ok=True)
        except OSError as exc:
            raise LeaderboardError(
                f"Could not clear leaderboard at {self._path}: {exc}"
            ) from exc


def _atomic_write_json(path: Path, payload: object) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    handle = tempfile.NamedTemporaryFile(
        "w",
        delete=False,
        encoding="utf-8",
        dir=str(path.parent),
    )
    try:
        json.dump(payload, handle, indent=2, ensure_ascii=False)
        handle.flush()
        os.fsync(handle.fileno())
    finally:
        handle.close()
    os.replace(handle.name, path)
