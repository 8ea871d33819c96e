"""Lightweight .env loader for manage.py and WSGI entrypoints."""

from __future__ import annotations

import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent


def _candidate_paths(env_file: str, base_dir: Path) -> list[Path]:
    return [
        base_dir / env_file,
        base_dir / "pos_portal" / env_file,
    ]


def load_env_file(env_file: str = ".env", *, base_dir: Path | None = None) -> Path | None:
    """
    Load environment variables from `.env`.

    Search order:
    1) repo-root `.env`
    2) `pos_portal/.env`

    Variables already present in the process environment win. Returns the
    file that was read, or None when no file exists.
    """
    root = base_dir if base_dir is not None else BASE_DIR
    env_path = next((path for path in _candidate_paths(env_file, root) if path.exists()), None)
    if env_path is None:
        return None

    try:
        with open(env_path, "r", encoding="utf-8") as handle:
            for raw_line in handle:
                line = raw_line.strip()
                if not line or line.startswith("#") or "=" not in line:
                    continue

                key, value = line.split("=", 1)
                key = key.strip()
                value = value.strip()
                if value.startswith('"') and value.endswith('"'):
                    value = value[1:-1]
                elif value.startswith("'") and value.endswith("'"):
                    value = value[1:-1]

                if key and key not in os.environ:
                    os.environ[key] = value
    except OSError:
        # Non-fatal: fall back to the process environment.
        return None
    return env_path
