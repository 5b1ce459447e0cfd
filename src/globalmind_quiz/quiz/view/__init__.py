from .console import run_console_session

__all__ = ["run_console_session"]
