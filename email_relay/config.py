import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"

ACTIVITY_STORES = ("supabase", "database", "disabled")

# The relay is called straight from the mobile/web clients, so every origin is allowed
CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
}
ACTIVITY_CORS_HEADERS = {**CORS_HEADERS, "Access-Control-Allow-Methods": "GET, OPTIONS"}


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


@dataclass(frozen=True)
class Settings:
    """
    Runtime configuration for the relay.

    Built once at startup and handed to create_app(); handlers and clients
    receive it from app.state instead of reading the environment themselves.
    """

    # Resend Email Configuration
    resend_api_key: Optional[str] = None
    resend_api_url: str = "https://api.resend.com/emails"

    # Supabase (identity, profiles, activity log)
    supabase_url: str = ""
    supabase_anon_key: str = ""

    # Sender enrichment and footer
    product_name: str = "LANCELOT"
    fallback_sender_email: str = "noreply@resend.dev"
    footer_text: str = "Sent via LANCELOT"

    http_timeout_seconds: float = 15.0

    # "supabase", "database" or "disabled"
    activity_store: str = "supabase"
    database_url: Optional[str] = None

    bulk_send_max: int = 50
    bulk_send_delay_ms: int = 100

    # Per-user send limit; 0 disables rate limiting
    email_rate_limit: int = 0
    email_rate_limit_window: int = 3600
    redis_url: Optional[str] = None

    security_headers_enabled: bool = True
    environment: str = "development"
    log_level: str = "INFO"

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @classmethod
    def from_env(cls, load_dotenv_file: bool = True) -> "Settings":
        """Build settings from the process environment (and .env when present)"""
        if load_dotenv_file:
            load_dotenv(dotenv_path=env_path)

        activity_store = os.getenv("ACTIVITY_STORE", "supabase").lower()
        if activity_store not in ACTIVITY_STORES:
            raise ValueError(
                f"ACTIVITY_STORE must be one of {', '.join(ACTIVITY_STORES)}, got '{activity_store}'"
            )

        return cls(
            resend_api_key=os.getenv("RESEND_API_KEY") or None,
            resend_api_url=os.getenv("RESEND_API_URL", "https://api.resend.com/emails"),
            supabase_url=os.getenv("SUPABASE_URL", "").rstrip("/"),
            supabase_anon_key=os.getenv("SUPABASE_ANON_KEY", ""),
            product_name=os.getenv("EMAIL_PRODUCT_NAME", "LANCELOT"),
            fallback_sender_email=os.getenv("EMAIL_FALLBACK_SENDER", "noreply@resend.dev"),
            footer_text=os.getenv("EMAIL_FOOTER_TEXT", "Sent via LANCELOT"),
            http_timeout_seconds=float(os.getenv("HTTP_TIMEOUT_SECONDS", "15")),
            activity_store=activity_store,
            database_url=os.getenv("DATABASE_URL") or None,
            bulk_send_max=int(os.getenv("BULK_SEND_MAX", "50")),
            bulk_send_delay_ms=int(os.getenv("BULK_SEND_DELAY_MS", "100")),
            email_rate_limit=int(os.getenv("EMAIL_RATE_LIMIT", "0")),
            email_rate_limit_window=int(os.getenv("EMAIL_RATE_LIMIT_WINDOW", "3600")),
            redis_url=os.getenv("REDIS_URL") or None,
            security_headers_enabled=_env_bool("SECURITY_HEADERS_ENABLED", "true"),
            environment=os.getenv("ENVIRONMENT", "development"),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )
