"""Utility helpers for loading environment variables from a project `.env` file."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

_ENV_LOADED = False


def _find_env_file() -> Optional[Path]:
    """Locate the nearest `.env` file walking up from the working directory."""
    cwd = Path.cwd().resolve()
    for parent in (cwd, *cwd.parents):
        candidate = parent / ".env"
        if candidate.exists():
            return candidate
    return None


def load_env_file(path: Optional[Path] = None) -> None:
    """Load key/value pairs from the `.env` file into the process environment."""
    global _ENV_LOADED
    if _ENV_LOADED and path is None:
        return

    env_path = path or _find_env_file()
    if not env_path:
        _ENV_LOADED = True
        return

    with env_path.open("r", encoding="utf-8") as env_file:
        for raw_line in env_file:
            line = raw_line.strip()
            if not line or line.startswith("#"):
                continue
            if "=" not in line:
                continue
            key, value = line.split("=", 1)
            key = key.strip()
            value = value.strip().strip("\"'")
            os.environ.setdefault(key, value)

    _ENV_LOADED = True


def env_str(name: str, default: Optional[str] = None) -> Optional[str]:
    load_env_file()
    value = os.getenv(name)
    return value if value else default


def env_int(name: str, default: int) -> int:
    value = env_str(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError as exc:
        raise RuntimeError(f"Environment variable `{name}` must be an integer, got {value!r}.") from exc


def env_float(name: str, default: float) -> float:
    value = env_str(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError as exc:
        raise RuntimeError(f"Environment variable `{name}` must be a number, got {value!r}.") from exc


__all__ = ["load_env_file", "env_str", "env_int", "env_float"]
