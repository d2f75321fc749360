# hackmate/config.py
"""
Central configuration.

- .env is loaded once from the repository root (never overrides real env vars)
- every setting is a module-level constant read from the environment
- secrets never leave this module through `config_diag_safe()`
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv


def _find_repo_root(start: Path) -> Path:
    markers = (".env", "pyproject.toml")
    for p in [start, *start.parents]:
        if any((p / m).exists() for m in markers):
            return p
    return start.parents[1]


REPO_ROOT = _find_repo_root(Path(__file__).resolve())
load_dotenv(dotenv_path=REPO_ROOT / ".env", override=False)


def _bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes"}


# ---------------- DATABASE ----------------
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./hackmate.db")
SQL_ECHO = _bool("SQL_ECHO")

# ---------------- AUTH ----------------
SECRET_KEY = os.getenv("SECRET_KEY", "")
ALGORITHM = os.getenv("ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60"))
GOOGLE_CLIENT_ID = os.getenv("GOOGLE_CLIENT_ID", "").strip()
GOOGLE_TOKENINFO_URL = os.getenv(
    "GOOGLE_TOKENINFO_URL", "https://oauth2.googleapis.com/tokeninfo"
).strip()

# ---------------- SYNC ----------------
# One-shot reads race the store against these bounds (seconds)
FETCH_TIMEOUT_SECONDS = float(os.getenv("FETCH_TIMEOUT_SECONDS", "3"))
JOIN_LOOKUP_TIMEOUT_SECONDS = float(os.getenv("JOIN_LOOKUP_TIMEOUT_SECONDS", "5"))

# ---------------- AI ----------------
AI_PROVIDER = os.getenv("AI_PROVIDER", "placeholder").strip().lower()
if AI_PROVIDER not in {"placeholder", "openai"}:
    raise RuntimeError(
        f"Invalid AI_PROVIDER='{AI_PROVIDER}'. Expected placeholder|openai."
    )
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "").strip()
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini").strip()
AI_TIMEOUT_SECONDS = float(os.getenv("AI_TIMEOUT_SECONDS", "30"))
AI_GATEWAY_URL = os.getenv("AI_GATEWAY_URL", "http://localhost:8000/api/ai").strip()

# ---------------- HTTP ----------------
FRONTEND_ORIGIN = os.getenv("FRONTEND_ORIGIN", "").strip()
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").strip().upper()


def validate_auth_config() -> None:
    if not SECRET_KEY:
        raise RuntimeError("SECRET_KEY missing in .env!")


def config_diag_safe() -> dict:
    """Diagnostics without secrets."""
    return {
        "repo_root": str(REPO_ROOT),
        "database_url": DATABASE_URL.split("@")[-1],
        "fetch_timeout_seconds": FETCH_TIMEOUT_SECONDS,
        "join_lookup_timeout_seconds": JOIN_LOOKUP_TIMEOUT_SECONDS,
        "ai_provider": AI_PROVIDER,
        "ai_model": OPENAI_MODEL if AI_PROVIDER == "openai" else None,
        "has_openai_key": bool(OPENAI_API_KEY),
        "has_secret_key": bool(SECRET_KEY),
        "google_sign_in": bool(GOOGLE_CLIENT_ID),
    }
