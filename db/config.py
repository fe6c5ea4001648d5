"""
Shared environment-driven database configuration helpers.
"""

from __future__ import annotations

import os
from pathlib import Path

_PROJECT_ROOT = Path(__file__).resolve().parents[1]
_ENV_FILENAMES: tuple[str, ...] = (".env", ".env.local")
_CLOUD_LIKE_ENVIRONMENTS = {"prod", "production", "staging", "cloud"}


def _parse_env_line(raw_line: str) -> tuple[str, str] | None:
    line = raw_line.strip()
    if not line or line.startswith("#") or "=" not in line:
        return None
    if line.startswith("export "):
        line = line[len("export "):].lstrip()

    key, value = line.split("=", 1)
    key = key.strip()
    if not key:
        return None
    return key, value.strip().strip('"').strip("'")


def load_env_files(root: Path | None = None) -> None:
    """
    Load KEY=VALUE pairs from `.env` and `.env.local` (if present).
    Existing process environment variables are not overwritten.
    """

    base = root or _PROJECT_ROOT
    for filename in _ENV_FILENAMES:
        env_path = base / filename
        if not env_path.exists():
            continue

        for raw_line in env_path.read_text(encoding="utf-8").splitlines():
            parsed = _parse_env_line(raw_line)
            if parsed is None:
                continue
            key, value = parsed
            os.environ.setdefault(key, value)


def normalize_postgres_url(url: str) -> str:
    """
    Rewrite postgres URLs to SQLAlchemy's psycopg (v3) driver form.
    """

    for prefix in ("postgres://", "postgresql://"):
        if url.startswith(prefix):
            return "postgresql+psycopg://" + url[len(prefix):]
    return url


def resolve_database_url() -> str:
    """
    Resolve the database URL from the environment.

    Priority:
    1) DATABASE_URL
    2) CLOUD_DATABASE_URL when ENVIRONMENT is cloud-like
    3) LOCAL_DATABASE_URL
    """

    load_env_files()

    candidates: list[str | None] = [os.getenv("DATABASE_URL")]
    environment = os.getenv("ENVIRONMENT", "local").strip().lower()
    if environment in _CLOUD_LIKE_ENVIRONMENTS:
        candidates.append(os.getenv("CLOUD_DATABASE_URL"))
    candidates.append(os.getenv("LOCAL_DATABASE_URL"))

    for candidate in candidates:
        if candidate and candidate.strip():
            return normalize_postgres_url(candidate.strip())

    raise RuntimeError(
        "No database URL configured. Set DATABASE_URL, or configure "
        "LOCAL_DATABASE_URL / CLOUD_DATABASE_URL."
    )


def resolve_migration_url(override: str | None = None, ini_url: str | None = None) -> str:
    """
    Database URL for Alembic runs.

    ``-x db_url=...`` wins, then ALEMBIC_DATABASE_URL, then ``sqlalchemy.url``
    from alembic.ini, then the application's own resolution.
    """

    load_env_files()

    for candidate in (override, os.getenv("ALEMBIC_DATABASE_URL"), ini_url):
        if candidate and candidate.strip():
            url = normalize_postgres_url(candidate.strip())
            break
    else:
        url = resolve_database_url()

    if not url.startswith("postgresql"):
        raise RuntimeError("Migrations target PostgreSQL only.")
    return url
