"""Configuration helpers for the callout service."""

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

MIN_SECRET_LENGTH = 32


@dataclass(slots=True)
class Settings:
    """Runtime configuration values loaded from environment variables."""

    jwt_secret: str
    jwt_expiry_hours: int = 12
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "info"
    cors_origins: list[str] = field(
        default_factory=lambda: ["http://localhost:5173"]
    )
    lease_timeout_seconds: float = 10.0
    seed_path: Path | None = None


def _int_env(name: str, default: str) -> int:
    raw = os.getenv(name, default)
    try:
        return int(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}") from exc


def _float_env(name: str, default: str) -> float:
    raw = os.getenv(name, default)
    try:
        return float(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be a number, got {raw!r}") from exc


def load_settings(env_file: str | None = None) -> Settings:
    """Load settings from the environment, optionally from a specific file."""

    if env_file:
        load_dotenv(env_file)
    else:
        load_dotenv()

    jwt_secret = os.getenv("JWT_SECRET")
    if not jwt_secret:
        raise RuntimeError("JWT_SECRET must be configured")
    if len(jwt_secret) < MIN_SECRET_LENGTH:
        raise RuntimeError(
            f"JWT_SECRET must be at least {MIN_SECRET_LENGTH} characters"
        )
    if "change_me" in jwt_secret:
        raise RuntimeError("JWT_SECRET contains a placeholder value")

    lease_timeout = _float_env("LEASE_TIMEOUT_SECONDS", "10")
    if lease_timeout <= 0:
        raise RuntimeError("LEASE_TIMEOUT_SECONDS must be positive")

    cors_origins = [
        origin.strip()
        for origin in os.getenv("CORS_ORIGINS", "http://localhost:5173").split(",")
        if origin.strip()
    ]
    seed_path = os.getenv("SEED_PATH")

    return Settings(
        jwt_secret=jwt_secret,
        jwt_expiry_hours=_int_env("JWT_EXPIRY_HOURS", "12"),
        host=os.getenv("HOST", "0.0.0.0"),
        port=_int_env("PORT", "8000"),
        log_level=os.getenv("LOG_LEVEL", "info"),
        cors_origins=cors_origins,
        lease_timeout_seconds=lease_timeout,
        seed_path=Path(seed_path).expanduser() if seed_path else None,
    )


__all__ = ["Settings", "load_settings"]
