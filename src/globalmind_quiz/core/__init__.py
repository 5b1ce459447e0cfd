"""Core shared helpers for the GlobalMind quiz."""

from __future__ import annotations

from .ai import load_client
from .logging import JsonLogFormatter, SessionLogAdapter, configure_logger
from .workspace import (
    WORKSPACE_ENV,
    WorkspaceError,
    WorkspaceLayout,
    ensure_workspace,
)

__all__ = [
    "load_client",
    "JsonLogFormatter",
    "SessionLogAdapter",
    "configure_logger",
    "WORKSPACE_ENV",
    "WorkspaceError",
    "WorkspaceLayout",
    "ensure_workspace",
]
