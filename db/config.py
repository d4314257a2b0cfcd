"""
Environment-driven configuration for the commerce event-store connection.
"""

from __future__ import annotations

import os
from pathlib import Path

_PROJECT_ROOT = Path(__file__).resolve().parents[1]


def load_env_files(project_root: Path | None = None) -> None:
    """
    Load simple KEY=VALUE pairs from `.env` and `.env.local` (if present).
    Existing process environment variables are not overwritten.
    """

    root = project_root or _PROJECT_ROOT
    for filename in (".env", ".env.local"):
        env_path = root / filename
        if not env_path.exists():
            continue

        for raw_line in env_path.read_text(encoding="utf-8").splitlines():
            line = raw_line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue

            key, value = line.split("=", 1)
            key = key.strip()
            value = value.strip().strip('"').strip("'")
            if key and key not in os.environ:
                os.environ[key] = value


def normalize_database_url(url: str) -> str:
    """
    Normalize postgres URLs to SQLAlchemy's psycopg driver form.
    Other dialects are returned unchanged.
    """

    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+psycopg://", 1)
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+psycopg://", 1)
    return url


def resolve_database_url() -> str:
    """
    Resolve the event-store database URL from the environment.

    Priority:
    1) COMMERCE_DATABASE_URL (read replica of the commerce platform)
    2) DATABASE_URL
    3) CLOUD_DATABASE_URL when ENVIRONMENT is cloud-like
    4) LOCAL_DATABASE_URL

    Raises RuntimeError when none is configured; callers that must not fail
    (the availability probe) treat that as "platform unavailable".
    """

    load_env_files()

    for name in ("COMMERCE_DATABASE_URL", "DATABASE_URL"):
        direct_url = os.getenv(name, "").strip()
        if direct_url:
            return normalize_database_url(direct_url)

    environment = os.getenv("ENVIRONMENT", "local").strip().lower()
    cloud_like_envs = {"prod", "production", "staging", "cloud"}

    cloud_url = os.getenv("CLOUD_DATABASE_URL", "").strip()
    if environment in cloud_like_envs and cloud_url:
        return normalize_database_url(cloud_url)

    local_url = os.getenv("LOCAL_DATABASE_URL", "").strip()
    if local_url:
        return normalize_database_url(local_url)

    raise RuntimeError(
        "No database URL configured. Set COMMERCE_DATABASE_URL or DATABASE_URL, "
        "or configure LOCAL_DATABASE_URL / CLOUD_DATABASE_URL."
    )
