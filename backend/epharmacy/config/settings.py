from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path


def _backend_root() -> Path:
    # backend/epharmacy/config/settings.py -> backend/
    return Path(__file__).resolve().parents[2]


BACKEND_DIR = _backend_root()
DEFAULT_SQLITE_PATH = (BACKEND_DIR / "epharmacy.db").resolve()
DEFAULT_DATABASE_URL = f"sqlite:///{DEFAULT_SQLITE_PATH.as_posix()}"


@dataclass(frozen=True)
class Settings:
    database_url: str = DEFAULT_DATABASE_URL
    db_echo: bool = False

    secret_key: str = "dev-secret-change-me"
    access_token_expire_minutes: int = 60 * 24 * 7
    jwt_issuer: str = "epharmacy-backend"
    jwt_audience: str = "epharmacy-users"

    api_prefix: str = "/api/v1"
    api_version: str = "1.0.0"
    cors_origins: tuple[str, ...] = ()

    upload_dir: Path = BACKEND_DIR / "uploads"
    max_upload_bytes: int = 10 * 1024 * 1024

    log_level: str = "INFO"

    host: str = "0.0.0.0"
    port: int = 5000

    payment_card_success_rate: float = 0.9
    payment_mobile_money_success_rate: float = 0.95
    payment_simulated_delay_seconds: float = 0.0

    @property
    def prescriptions_dir(self) -> Path:
        return self.upload_dir / "prescriptions"


def _env_bool(key: str, *, default: bool) -> bool:
    raw = os.getenv(key)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(key: str, default: int) -> int:
    raw = (os.getenv(key) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(key: str, default: float) -> float:
    raw = (os.getenv(key) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _split_csv(value: str | None) -> list[str]:
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


def _cors_origins() -> tuple[str, ...]:
    explicit = _split_csv(os.getenv("CORS_ORIGINS"))
    if explicit:
        return tuple(explicit)
    return (
        os.getenv("CLIENT_FRONTEND_URL") or "http://localhost:8080",
        os.getenv("ADMIN_FRONTEND_URL") or "http://localhost:8081",
        "http://localhost:3000",
    )


def _normalize_prefix(value: str) -> str:
    prefix = "/" + value.strip().strip("/")
    return "" if prefix == "/" else prefix


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    upload_dir = os.getenv("UPLOAD_DIR")
    return Settings(
        database_url=os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL),
        db_echo=_env_bool("DB_ECHO", default=False),
        secret_key=os.getenv("SECRET_KEY") or os.getenv("JWT_SECRET") or "dev-secret-change-me",
        access_token_expire_minutes=_env_int("ACCESS_TOKEN_EXPIRE_MINUTES", 60 * 24 * 7),
        jwt_issuer=os.getenv("JWT_ISSUER", "epharmacy-backend"),
        jwt_audience=os.getenv("JWT_AUDIENCE", "epharmacy-users"),
        api_prefix=_normalize_prefix(os.getenv("API_PREFIX", "/api/v1")),
        api_version=os.getenv("API_VERSION", "1.0.0"),
        cors_origins=_cors_origins(),
        upload_dir=Path(upload_dir) if upload_dir else BACKEND_DIR / "uploads",
        max_upload_bytes=_env_int("MAX_UPLOAD_BYTES", 10 * 1024 * 1024),
        log_level=(os.getenv("LOG_LEVEL") or "INFO").strip().upper(),
        host=os.getenv("HOST") or "0.0.0.0",
        port=_env_int("PORT", 5000),
        payment_card_success_rate=_env_float("PAYMENT_CARD_SUCCESS_RATE", 0.9),
        payment_mobile_money_success_rate=_env_float("PAYMENT_MOBILE_MONEY_SUCCESS_RATE", 0.95),
        payment_simulated_delay_seconds=_env_float("PAYMENT_SIMULATED_DELAY_SECONDS", 0.0),
    )


def env_flag(name: str, *, default: bool) -> bool:
    return _env_bool(name, default=default)
