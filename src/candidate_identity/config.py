"""Candidate identity service — configuration loaded from environment."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application-wide settings, loaded from .env or environment variables."""

    # ── Database ──────────────────────────────────────────
    database_url: str = "sqlite+aiosqlite:///./candidate_identity.db"

    # ── Phone numbers ─────────────────────────────────────
    # "IN", "US" or empty for the generic 10-15 digit rule
    phone_region: str = ""

    # ── OTP ───────────────────────────────────────────────
    otp_ttl_minutes: int = 10

    # ── Email (SMTP) ──────────────────────────────────────
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_username: str = ""
    smtp_password: str = ""
    email_from: str = ""

    # ── SMS (Twilio) ──────────────────────────────────────
    twilio_account_sid: str = ""
    twilio_auth_token: str = ""
    twilio_phone_number: str = ""
    twilio_api_base_url: str = "https://api.twilio.com/2010-04-01"

    # ── Identity provider (Firebase) ──────────────────────
    firebase_project_id: str = ""
    firebase_service_account_path: str = ""
    firebase_client_email: str = ""
    firebase_private_key: str = ""

    # ── Outbound calls ────────────────────────────────────
    outbound_timeout_seconds: float = 10.0

    # ── Notifications ─────────────────────────────────────
    admin_notify_email: str = ""

    # ── App ───────────────────────────────────────────────
    app_name: str = "Candidate Portal"
    debug: bool = True

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    @property
    def email_configured(self) -> bool:
        return bool(self.smtp_host and self.email_from)

    @property
    def sms_configured(self) -> bool:
        return bool(
            self.twilio_account_sid and self.twilio_auth_token and self.twilio_phone_number
        )


# Singleton settings instance
settings = Settings()
