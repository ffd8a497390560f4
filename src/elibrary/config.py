"""Configuration management for elibrary.

Loads configuration from environment variables and provides defaults.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load .env file if present
load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.environ.get(name, default).lower() in ("true", "1", "yes")


@dataclass
class Config:
    """Application configuration."""

    # Database
    db_path: Path

    # Lending policy
    lending_days: int
    fine_per_day: int  # currency units

    # API server
    host: str
    port: int

    # Logging
    log_level: str
    log_format: str  # "standard" or "json"

    # Reminders
    notifier_enabled: bool
    smtp_host: Optional[str]
    smtp_port: int
    smtp_username: Optional[str]
    smtp_password: Optional[str]
    mail_from: str

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables."""
        db_path_str = os.environ.get(
            "ELIBRARY_DB_PATH",
            str(Path.home() / ".elibrary" / "library.db"),
        )
        db_path = Path(db_path_str).expanduser()

        return cls(
            db_path=db_path,
            lending_days=int(os.environ.get("ELIBRARY_LENDING_DAYS", "14")),
            fine_per_day=int(os.environ.get("ELIBRARY_FINE_PER_DAY", "5")),
            host=os.environ.get("ELIBRARY_HOST", "127.0.0.1"),
            port=int(os.environ.get("ELIBRARY_PORT", "5000")),
            log_level=os.environ.get("ELIBRARY_LOG_LEVEL", "INFO"),
            log_format=os.environ.get("ELIBRARY_LOG_FORMAT", "standard"),
            notifier_enabled=_env_bool("ELIBRARY_NOTIFIER_ENABLED", "true"),
            smtp_host=os.environ.get("SMTP_HOST"),
            smtp_port=int(os.environ.get("SMTP_PORT", "587")),
            smtp_username=os.environ.get("SMTP_USERNAME"),
            smtp_password=os.environ.get("SMTP_PASSWORD"),
            mail_from=os.environ.get("SMTP_FROM", "noreply@elibrary.local"),
        )

    def validate(self) -> list[str]:
        """Validate configuration, return list of errors."""
        errors = []

        if str(self.db_path) != ":memory:" and not self.db_path.parent.exists():
            try:
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
            except PermissionError:
                errors.append(f"Cannot create database directory: {self.db_path.parent}")

        if self.lending_days <= 0:
            errors.append("ELIBRARY_LENDING_DAYS must be positive")
        if self.fine_per_day < 0:
            errors.append("ELIBRARY_FINE_PER_DAY cannot be negative")
        if self.log_format not in ("standard", "json"):
            errors.append(f"Unknown log format: {self.log_format}")

        return errors

    def has_smtp_config(self) -> bool:
        """Check if outgoing mail is configured."""
        return bool(self.smtp_host)


# Global config instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get or create the global config instance."""
    global _config
    if _config is None:
        _config = Config.from_env()
    return _config


def reset_config() -> None:
    """Reset the global config instance. Used for testing."""
    global _config
    _config = None
