#!/usr/bin/env -S uv run python
"""Development task runner for the pairwise ranker.

Usage:
    ./dev.py <command> [args...]

Commands:
    serve [--host H] [--port N] [--no-reload]
                            Run the API with uvicorn in the foreground
    fmt [python|markdown] [--check]
                            Format with ruff / rumdl
    lint [python|markdown] [--fix]
                            Lint with ruff / rumdl
    typecheck               Run mypy over src/
    test [pytest args...]   Run the test suite
    check                   fmt --check, lint and typecheck together
    db-migrate              Create tables if missing
    db-reset                Delete the database and start over
    rankings <context> [-n N]
                            Print the leaderboard for a context
    help                    Show this message
"""

from __future__ import annotations

import hashlib
import os
import subprocess
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).parent

DEFAULT_ENV = {
    "RANKER_LOG_LEVEL": "DEBUG",
}

TARGETS = ("python", "markdown")

LEADERBOARD_SCRIPT = """
import sys
from ranker.db.repository import RatingRepository

context, limit = sys.argv[1], int(sys.argv[2])
records = RatingRepository().fetch_ratings(context, limit=limit)
if not records:
    print(f"No ratings for {context}")
for rank, r in enumerate(records, 1):
    print(f"{rank:>3}. {r.item_id:<24} {r.rating:7.1f}  {r.wins}-{r.losses}-{r.ties}")
"""


def checkout_port() -> int:
    """Port in 8000-8999 derived from the checkout path, stable per clone."""
    digest = hashlib.sha256(str(PROJECT_ROOT).encode()).digest()
    return 8000 + int.from_bytes(digest[:2], "big") % 1000


def dev_env() -> dict[str, str]:
    return {**DEFAULT_ENV, **os.environ}


def run(cmd: list[str]) -> int:
    """Echo and run a command from the project root, returning its exit code."""
    print(f"\n→ {' '.join(cmd)}")
    return subprocess.run(cmd, cwd=PROJECT_ROOT, env=dev_env(), check=False).returncode


def run_steps(steps: list[list[str]]) -> int:
    """Run every step even after a failure; non-zero if any failed."""
    codes = [run(step) for step in steps]
    return 1 if any(codes) else 0


def pick_targets(args: list[str]) -> list[str]:
    chosen = [a for a in args if a in TARGETS]
    return chosen or list(TARGETS)


# Server


def cmd_serve(host: str, port: int | None, reload: bool) -> int:
    port = port or checkout_port()
    print(f"Serving on http://{host}:{port}")
    cmd = ["uv", "run", "uvicorn", "ranker.web.app:app", "--host", host, "--port", str(port)]
    if reload:
        cmd.append("--reload")
    return run(cmd)


# Quality


def cmd_fmt(targets: list[str], check: bool) -> int:
    steps: list[list[str]] = []
    if "python" in targets:
        steps.append(["uv", "run", "ruff", "format", *(["--check"] if check else []), "."])
    if "markdown" in targets:
        steps.append(["uvx", "rumdl", "check" if check else "fmt", "."])
    return run_steps(steps)


def cmd_lint(targets: list[str], fix: bool) -> int:
    steps: list[list[str]] = []
    if "python" in targets:
        steps.append(["uv", "run", "ruff", "check", *(["--fix"] if fix else []), "."])
    if "markdown" in targets:
        steps.append(["uvx", "rumdl", "check", "."])
    return run_steps(steps)


def cmd_typecheck() -> int:
    return run(["uv", "run", "mypy", "src"])


def cmd_check() -> int:
    codes = [
        cmd_fmt(list(TARGETS), check=True),
        cmd_lint(list(TARGETS), fix=False),
        cmd_typecheck(),
    ]
    if any(codes):
        print("\n✗ Some checks failed")
        return 1
    print("\n✓ All checks passed")
    return 0


# Database


def cmd_db_reset() -> int:
    answer = input("⚠️  Delete all ratings and sessions? [y/N] ").strip().lower()
    if answer != "y":
        print("Aborted.")
        return 1
    return run(["uv", "run", "python", "-m", "ranker.db.reset"])


def cmd_rankings(args: list[str]) -> int:
    limit = 20
    if "-n" in args:
        i = args.index("-n")
        limit = int(args[i + 1])
        args = args[:i] + args[i + 2 :]
    if not args:
        print("Usage: ./dev.py rankings <context> [-n N]")
        return 1
    return run(["uv", "run", "python", "-c", LEADERBOARD_SCRIPT, args[0], str(limit)])


def option(args: list[str], name: str) -> str | None:
    if name in args and args.index(name) + 1 < len(args):
        return args[args.index(name) + 1]
    return None


def main() -> int:
    command, args = (sys.argv[1], sys.argv[2:]) if len(sys.argv) > 1 else ("help", [])

    match command:
        case "serve":
            port = option(args, "--port")
            return cmd_serve(
                host=option(args, "--host") or "127.0.0.1",
                port=int(port) if port else None,
                reload="--no-reload" not in args,
            )
        case "fmt":
            return cmd_fmt(pick_targets(args), check="--check" in args)
        case "lint":
            return cmd_lint(pick_targets(args), fix="--fix" in args)
        case "typecheck":
            return cmd_typecheck()
        case "test":
            return run(["uv", "run", "pytest", *args])
        case "check":
            return cmd_check()
        case "db-migrate":
            return run(["uv", "run", "python", "-m", "ranker.db.migrate"])
        case "db-reset":
            return cmd_db_reset()
        case "rankings":
            return cmd_rankings(args)
        case "help" | "--help" | "-h":
            print(__doc__)
            return 0
        case _:
            print(f"Unknown command: {command}")
            print(__doc__)
            return 1


if __name__ == "__main__":
    sys.exit(main())
