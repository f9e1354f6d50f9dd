import logging
import os
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings


def _get_version() -> str:
    """Read version from pyproject.toml or environment variable."""
    # First check environment variable (for Docker/CI overrides)
    if env_version := os.getenv("FORUM_VERSION"):
        return env_version

    # Try to read from pyproject.toml
    pyproject_path = Path(__file__).parent.parent.parent.parent / "pyproject.toml"
    try:
        if pyproject_path.exists():
            for line in pyproject_path.read_text().split("\n"):
                if line.startswith("version"):
                    # Parse: version = "0.1.0"
                    return line.split("=")[1].strip().strip('"').strip("'")
    except OSError:
        pass

    return "0.0.0-dev"


# Application version - read from pyproject.toml, env var, or default to dev
APP_VERSION = _get_version()


class Settings(BaseSettings):
    # Database (embedded SQLite by default)
    DATABASE_URL: str = "sqlite+aiosqlite:///./forum.db"
    DATABASE_ECHO: bool = False

    # App
    APP_NAME: str = "Forum"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Login brute-force protection
    LOGIN_LOCKOUT_ENABLED: bool = True
    LOGIN_MAX_ATTEMPTS: int = 5
    LOGIN_LOCKOUT_MINUTES: int = 15
    # Sweep cadence is independent of the lockout window
    LOGIN_ATTEMPT_SWEEP_INTERVAL_MINUTES: int = 60

    # Registration
    PASSWORD_MIN_LENGTH: int = 8

    # Trusted proxies (for X-Forwarded-For / X-Real-IP)
    # Comma separated peer addresses, "*" to trust any peer, empty to ignore proxy headers
    TRUSTED_PROXIES: str = ""

    @field_validator("LOGIN_MAX_ATTEMPTS", "LOGIN_LOCKOUT_MINUTES", "LOGIN_ATTEMPT_SWEEP_INTERVAL_MINUTES")
    @classmethod
    def validate_positive(cls, v: int, info) -> int:
        if v < 1:
            raise ValueError(f"{info.field_name} must be at least 1")
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"LOG_LEVEL must be a standard logging level name, got {v!r}")
        return level

    @property
    def trusted_proxies(self) -> set[str]:
        return {p.strip() for p in self.TRUSTED_PROXIES.split(",") if p.strip()}

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
