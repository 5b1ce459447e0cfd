"""Workspace bootstrap helpers for the GlobalMind quiz.

Every persistent artifact (config, logs, leaderboard, local accounts) lives
under a single data home so the game can be reset by deleting one directory.
"""

from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Mapping


WORKSPACE_ENV = "GLOBALMIND_DATA_HOME"
DEFAULT_WORKSPACE = Path.home() / ".globalmind-quiz"

# key -> directory name under the data home
SUBDIRECTORIES: Mapping[str, str] = MappingProxyType(
    {
        "config": "config",
        "logs": "logs",
        "leaderboard": "leaderboard",
        "auth": "auth",
    }
)


class WorkspaceError(RuntimeError):
    """Raised when the workspace layout cannot be prepared."""


@dataclass(frozen=True)
class WorkspaceLayout:
    """The data home, its subdirectories and which of them were just made."""

    home: Path
    directories: Mapping[str, Path]
    created: Mapping[str, bool]

    def path_for(self, key: str) -> Path:
        if key not in self.directories:
            raise KeyError(f"Unknown workspace directory '{key}'.")
        return self.directories[key]

    def items(self) -> tuple[tuple[str, Path], ...]:
        return tuple(self.directories.items())


def ensure_workspace(
    *,
    env: Mapping[str, str] | None = None,
    path: Path | None = None,
    create: bool = True,
) -> WorkspaceLayout:
    """Ensure the data home exists and return its layout.

    ``path`` wins over ``GLOBALMIND_DATA_HOME``, which wins over the default
    home. Only the default home falls back to a temp directory when it is
    not writable; an explicit location either works or raises.
    """

    base, explicit = _resolve_base(os.environ if env is None else env, path)
    bases = [base]
    if create and not explicit and _fallback_base() != base:
        bases.append(_fallback_base())

    denied: PermissionError | None = None
    for candidate in bases:
        try:
            return _materialize_layout(base=candidate, create=create)
        except PermissionError as exc:
            denied = exc
    raise WorkspaceError(f"Unable to prepare workspace at {base}") from denied


def _resolve_base(
    env: Mapping[str, str], override: Path | None
) -> tuple[Path, bool]:
    if override is not None:
        return override.expanduser().absolute(), True
    from_env = (env.get(WORKSPACE_ENV) or "").strip()
    if from_env:
        return Path(from_env).expanduser().absolute(), True
    return DEFAULT_WORKSPACE, False


def _fallback_base() -> Path:
    return Path(tempfile.gettempdir()) / "globalmind-quiz"


def _materialize_layout(*, base: Path, create: bool) -> WorkspaceLayout:
    if base.exists() and not base.is_dir():
        raise WorkspaceError(f"Workspace path is not a directory: {base}")

    directories = {key: base / name for key, name in SUBDIRECTORIES.items()}
    created: Dict[str, bool] = {"home": False}
    created.update(dict.fromkeys(directories, False))
    if create:
        created["home"] = _make_private_dir(base)
        for key, directory in directories.items():
            created[key] = _make_private_dir(directory)
    else:
        for key, directory in directories.items():
            if directory.exists() and not directory.is_dir():
                raise WorkspaceError(
                    f"Workspace entry '{key}' is a file, not a directory: "
                    f"{directory}"
                )

    return WorkspaceLayout(
        home=base,
        directories=MappingProxyType(directories),
        created=MappingProxyType(created),
    )


def _make_private_dir(path: Path) -> bool:
    """Create ``path`` with 0700 permissions; report whether it was new."""

    if path.exists():
        if not path.is_dir():
            raise WorkspaceError(f"Expected a directory at {path}")
        return False
    path.mkdir(mode=0o700, parents=True)
    return True
