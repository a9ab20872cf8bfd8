# src/package_tracker/config/env.py
from __future__ import annotations

import os
from pathlib import Path
from typing import Optional, Tuple, Dict

from dotenv import dotenv_values, find_dotenv, load_dotenv

from package_tracker.models import EnvCfg


class EnvError(RuntimeError):
    """Raised when required environment variables are missing."""


# Needed for live extraction only; replay/list/toggle work without it
REQUIRED_KEYS: Tuple[str, ...] = (
    "GEMINI_API_KEY",
)

_DEFAULTS = EnvCfg()


def load_project_dotenv(start: Optional[Path] = None, *, override: bool = False) -> Path:
    """
    Load variables from the nearest `.env` file (searching upward from `start` or CWD).
    Does NOT override existing env vars unless `override=True`.
    Returns the resolved Path to the .env file if found; otherwise Path().
    """
    if start is None:
        found = find_dotenv(filename=".env", usecwd=True)
        dotenv_path = Path(found) if found else Path()
    else:
        dotenv_path = Path()
        start_path = Path(start)
        for p in (start_path, *start_path.parents):
            candidate = p / ".env"
            if candidate.is_file():
                dotenv_path = candidate
                break

    if not dotenv_path.is_file():
        return Path()

    load_dotenv(dotenv_path=dotenv_path, override=override)
    return dotenv_path.resolve()


def env(name: str, *, default: Optional[str] = None, required: bool = False, cast=None):
    """
    Test-friendly accessor.

    - If `required=True` and var is missing, raise KeyError(name).
    - If `cast` is provided, apply it to the raw string and propagate cast errors.
    - Returns `default` when missing and not required.
    """
    raw = os.getenv(name)
    if raw is None:
        if required:
            raise KeyError(name)
        return default

    if cast is not None:
        return cast(raw)
    return raw


def load_env(
    dotenv_path: Optional[Path] = None,
    *,
    override: bool = False,
    required_keys: Tuple[str, ...] = (),
    strict: bool = False,
) -> Dict[str, str]:
    """
    Load env vars from a .env file into the process environment and return a dict
    of key/value pairs found in that file.

    - If `dotenv_path` is provided, load exactly that file.
    - Otherwise, auto-discover the nearest .env via `load_project_dotenv`.
    - If `strict=True`, every key in `required_keys` must be set afterwards or
      EnvError is raised.
    """
    path: Optional[Path]
    if dotenv_path:
        path = Path(dotenv_path)
        if path.is_file():
            load_dotenv(dotenv_path=path, override=override)
        else:
            path = None
    else:
        found = load_project_dotenv(override=override)
        path = found if found.is_file() else None

    loaded: Dict[str, str] = {}
    if path is not None:
        loaded = {k: v for k, v in dotenv_values(path).items() if v is not None}

    if strict and required_keys:
        missing = [k for k in required_keys if not os.getenv(k)]
        if missing:
            raise EnvError(
                f"Missing required environment variable(s): {', '.join(missing)}")

    return loaded


def get_app_env(dotenv_path: Path | str | None = ".env", *, strict: bool = False) -> EnvCfg:
    """
    Load application variables and return a typed config object.

    - `dotenv_path` may be a Path/str pointing to a specific .env file or None to
      auto-discover the nearest one.
    - Existing process env wins over .env values (prefers CI/host settings).
    - When `strict=True` this validates REQUIRED_KEYS and raises on missing values.
    """
    load_env(
        Path(dotenv_path) if dotenv_path else None,
        override=False,
        required_keys=REQUIRED_KEYS,
        strict=strict,
    )

    return EnvCfg(
        GEMINI_API_KEY=env("GEMINI_API_KEY", default=""),
        GEMINI_MODEL=env("GEMINI_MODEL") or _DEFAULTS.GEMINI_MODEL,
        GEMINI_BASE_URL=env("GEMINI_BASE_URL") or _DEFAULTS.GEMINI_BASE_URL,
        OUTLOOK_ACCESS_TOKEN=env("OUTLOOK_ACCESS_TOKEN", default=""),
    )


__all__ = [
    "EnvError",
    "REQUIRED_KEYS",
    "load_project_dotenv",
    "load_env",
    "env",
    "get_app_env",
]
