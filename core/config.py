# core/config.py
import os
from dataclasses import dataclass, field
from typing import Optional


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)))
    except ValueError:
        return default


@dataclass
class Settings:
    # Storage
    database_url: str = field(default_factory=lambda: os.getenv("BIBLIOPI_DATABASE_URL", "sqlite:///bibliopi.db"))
    storage_key: str = field(default_factory=lambda: os.getenv("BIBLIOPI_STORAGE_KEY", "home_librarian_v5"))

    # Backups
    backup_dir: str = field(default_factory=lambda: os.getenv("BIBLIOPI_BACKUP_DIR", "backups"))
    min_backup_free_mb: int = field(default_factory=lambda: _env_int("BIBLIOPI_MIN_BACKUP_FREE_MB", 50))

    # External services
    http_timeout: float = field(default_factory=lambda: _env_float("BIBLIOPI_HTTP_TIMEOUT", 10.0))
    ai_timeout: float = field(default_factory=lambda: _env_float("BIBLIOPI_AI_TIMEOUT", 60.0))
    gemini_api_key: Optional[str] = field(default_factory=lambda: os.getenv("GEMINI_API_KEY"))
    gemini_model: str = field(default_factory=lambda: os.getenv("GEMINI_MODEL", "gemini-2.0-flash"))

    # Logging
    log_level: str = field(default_factory=lambda: os.getenv("BIBLIOPI_LOG_LEVEL", "WARNING"))


def get_settings() -> Settings:
    """Read settings from the current environment"""
    return Settings()
