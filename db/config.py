"""
Database settings for the dashboard store: `.env` loading and URL handling.

The store only needs a database when ``DASHBOARD_STORE=database``; the URL
comes from ``DATABASE_URL`` and falls back to ``LOCAL_DATABASE_URL`` for
developer machines.
"""

from __future__ import annotations

import os
from pathlib import Path

from sqlalchemy.engine import make_url

PROJECT_ROOT = Path(__file__).resolve().parents[1]
ENV_FILENAMES = (".env", ".env.local")
DATABASE_URL_VARS = ("DATABASE_URL", "LOCAL_DATABASE_URL")

_POSTGRES_DRIVERS = frozenset({"postgres", "postgresql"})


def parse_env_line(line: str) -> tuple[str, str] | None:
    """
    Split one `.env` line into ``(key, value)``.

    Blank lines, comments and lines without ``=`` yield ``None``. A leading
    ``export`` is dropped and one pair of matching quotes is removed.
    """

    text = line.strip()
    if not text or text.startswith("#") or "=" not in text:
        return None
    key, value = text.split("=", 1)
    key = key.removeprefix("export ").strip()
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
        value = value[1:-1]
    if not key:
        return None
    return key, value


def load_env_files(project_root: Path | None = None) -> list[Path]:
    """
    Copy variables from `.env` then `.env.local` into ``os.environ``.

    Variables already set in the process win. Returns the files read.
    """

    root = project_root or PROJECT_ROOT
    loaded: list[Path] = []
    for filename in ENV_FILENAMES:
        env_path = root / filename
        if not env_path.is_file():
            continue
        for raw_line in env_path.read_text(encoding="utf-8").splitlines():
            pair = parse_env_line(raw_line)
            if pair is not None:
                os.environ.setdefault(*pair)
        loaded.append(env_path)
    return loaded


def normalize_database_url(url: str) -> str:
    """
    Point bare postgres URLs at the psycopg 3 driver; other URLs are returned
    as given.
    """

    url = url.strip()
    parsed = make_url(url)
    if parsed.drivername not in _POSTGRES_DRIVERS:
        return url
    return parsed.set(drivername="postgresql+psycopg").render_as_string(hide_password=False)


def is_sqlite_url(url: str) -> bool:
    return make_url(url).get_backend_name() == "sqlite"


def resolve_database_url() -> str:
    """First non-blank of ``DATABASE_URL`` and ``LOCAL_DATABASE_URL``, normalised."""
    load_env_files()

    for name in DATABASE_URL_VARS:
        value = (os.getenv(name) or "").strip()
        if value:
            return normalize_database_url(value)

    raise RuntimeError(
        "No database URL configured. Set DATABASE_URL (or LOCAL_DATABASE_URL) "
        "when DASHBOARD_STORE=database."
    )
