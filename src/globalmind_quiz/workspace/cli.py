"""`globalmind init`: create the data home and report its layout."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from globalmind_quiz.core import workspace as workspace_mod


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="globalmind init",
        description=(
            "Create the GlobalMind Quiz data home with its config, logs, "
            "leaderboard and auth directories."
        ),
    )
    parser.add_argument(
        "--path",
        type=Path,
        help=(
            "Data home to use instead of GLOBALMIND_DATA_HOME "
            "or ~/.globalmind-quiz."
        ),
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Print nothing unless something goes wrong.",
    )
    return parser


def describe(layout: workspace_mod.WorkspaceLayout) -> List[str]:
    def state(key: str) -> str:
        return "created" if layout.created.get(key) else "exists"

    pad = max(len(key) for key in layout.directories)
    report = [
        f"Workspace ready at {layout.home} ({state('home')})",
        "Subdirectories:",
    ]
    report.extend(
        f"  {key:<{pad}}  {directory} ({state(key)})"
        for key, directory in layout.items()
    )
    return report


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _parser().parse_args(None if argv is None else list(argv))
    try:
        layout = workspace_mod.ensure_workspace(path=args.path)
    except workspace_mod.WorkspaceError as exc:
        sys.stderr.write(f"Error: {exc}\n")
        return 2
    if not args.quiet:
        print("\n".join(describe(layout)))
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
