# order_api/config.py
from __future__ import annotations

import os

from dotenv import load_dotenv
from pydantic import BaseModel

# Load .env locally (safe in prod too)
load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() not in {"0", "false", "no"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


# -------------------
# Config (env-driven)
# -------------------
class Settings(BaseModel):
    project_name: str = os.getenv("PROJECT_NAME", "Order API")
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./pedidos.db")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    jwt_secret: str = os.getenv("JWT_SECRET", "dev-secret-change-me")
    jwt_alg: str = os.getenv("JWT_ALG", "HS256")
    jwt_expire_min: int = _env_int("JWT_EXPIRE_MIN", 60)

    smtp_host: str = os.getenv("SMTP_HOST", "").strip()
    smtp_port: int = _env_int("SMTP_PORT", 587)
    smtp_user: str = os.getenv("SMTP_USER", "").strip()
    smtp_pass: str = os.getenv("SMTP_PASS", "")
    smtp_from: str = os.getenv("SMTP_FROM", "no-reply@pedidos.local").strip()
    smtp_starttls: bool = _env_bool("SMTP_STARTTLS", "1")
    smtp_timeout: int = _env_int("SMTP_TIMEOUT", 10)

    recovery_code_ttl_min: int = _env_int("RECOVERY_CODE_TTL_MIN", 15)


settings = Settings()
