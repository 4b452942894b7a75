"""Server configuration — reads settings from environment variables.

All settings have sensible defaults for local development except
``TELEGRAM_BOT_TOKEN``, which the application refuses to start without.
"""

import os
from dataclasses import dataclass, field

from intake_db.config import DatabaseSettings, load_database_settings

# --- Pagination defaults ---
# Module-level constants read at import time so FastAPI Query() defaults
# can reference them (Query defaults must be static at decoration time).
DEFAULT_PAGE_LIMIT = int(os.getenv("DEFAULT_PAGE_LIMIT", "20"))
MAX_PAGE_LIMIT = int(os.getenv("MAX_PAGE_LIMIT", "100"))

TELEGRAM_MODES = ("webhook", "polling")


def _as_bool(value: str | None, default: bool) -> bool:
    if value is None or value == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class ServerSettings:
    """Immutable server configuration read from environment at startup."""

    # Network
    host: str = "0.0.0.0"
    port: int = 8080

    # CORS: comma-separated origins, or "*" for wide-open dev mode
    cors_origins: list[str] = field(default_factory=lambda: ["*"])

    # Logging
    log_level: str = "INFO"

    # Admin API keys: shared secrets for admin endpoints (None = disabled).
    # The HR key may manage question sets but not change the default.
    admin_api_key: str | None = None
    hr_api_key: str | None = None

    # Telegram
    telegram_bot_token: str | None = None
    telegram_mode: str = "polling"
    telegram_webhook_url: str | None = None
    # Echoed by Telegram in X-Telegram-Bot-Api-Secret-Token on every webhook call
    telegram_webhook_secret: str | None = None
    telegram_api_base: str = "https://api.telegram.org"

    # Attachments are written under this directory
    upload_dir: str = "uploads/resumes"

    # Screening handoff (None = completed applications are not forwarded)
    screening_service_url: str | None = None
    screening_timeout_seconds: float = 30.0

    # Seed "Standard Hiring Questions" at startup when no default exists
    seed_default_set: bool = True

    # Database URL and pool (INTAKE_DATABASE_URL / DATABASE_URL / PG_*)
    database: DatabaseSettings = field(default_factory=DatabaseSettings)


def load_settings() -> ServerSettings:
    """Build settings from environment variables."""
    raw_origins = os.getenv("SERVER_CORS_ORIGINS", "*")
    origins = [o.strip() for o in raw_origins.split(",") if o.strip()]

    mode = os.getenv("TELEGRAM_MODE", "polling").strip().lower()
    if mode not in TELEGRAM_MODES:
        raise ValueError(f"TELEGRAM_MODE must be one of {TELEGRAM_MODES}, got {mode!r}")

    return ServerSettings(
        host=os.getenv("SERVER_HOST", "0.0.0.0"),
        port=int(os.getenv("SERVER_PORT", "8080")),
        cors_origins=origins,
        log_level=os.getenv("SERVER_LOG_LEVEL", "INFO").upper(),
        admin_api_key=os.getenv("ADMIN_API_KEY") or None,
        hr_api_key=os.getenv("HR_API_KEY") or None,
        telegram_bot_token=os.getenv("TELEGRAM_BOT_TOKEN") or None,
        telegram_mode=mode,
        telegram_webhook_url=os.getenv("TELEGRAM_WEBHOOK_URL") or None,
        telegram_webhook_secret=os.getenv("TELEGRAM_WEBHOOK_SECRET") or None,
        telegram_api_base=os.getenv("TELEGRAM_API_BASE", "https://api.telegram.org"),
        upload_dir=os.getenv("UPLOAD_DIR", "uploads/resumes"),
        screening_service_url=os.getenv("SCREENING_SERVICE_URL") or None,
        screening_timeout_seconds=float(os.getenv("SCREENING_TIMEOUT_SECONDS", "30")),
        seed_default_set=_as_bool(os.getenv("SEED_DEFAULT_SET"), True),
        database=load_database_settings(),
    )
