from __future__ import annotations

import os
from pathlib import Path
from typing import List


def _env_bool(name: str, default: bool = False) -> bool:
    raw = (os.environ.get(name) or "").strip()
    if not raw:
        return default
    return raw in {"1", "true", "True", "yes"}


class Settings:
    """Centralized configuration for the Thryve backend."""

    def __init__(self) -> None:
        base_dir = Path(__file__).resolve().parent
        repo_root = base_dir.parent
        data_root_default = repo_root / "data"

        self.data_root: Path = Path(
            os.environ.get("THRYVE_DATA_ROOT") or data_root_default
        ).expanduser()
        self.app_db_path: Path = Path(
            os.environ.get("THRYVE_DB_PATH") or (self.data_root / "thryve.db")
        ).expanduser()
        self.log_level: str = (os.environ.get("THRYVE_LOG_LEVEL") or "INFO").upper()

        # ---- Auth ----
        # In production you MUST set THRYVE_JWT_SECRET. We fall back to a dev secret to keep local
        # demos easy, but this is not safe for public deployments.
        self.jwt_secret: str = os.environ.get("THRYVE_JWT_SECRET") or "dev-secret-change-me"
        self.token_ttl_days: int = int(os.environ.get("THRYVE_TOKEN_TTL_DAYS") or "7")
        self.cookie_secure: bool = _env_bool("THRYVE_COOKIE_SECURE")

        # ---- Sharing ----
        self.allow_rerequest_after_decline: bool = _env_bool("THRYVE_ALLOW_REREQUEST_AFTER_DECLINE")

        # ---- Delivery queue ----
        # Empty token disables the internal dispatch endpoint entirely.
        self.dispatch_token: str = os.environ.get("THRYVE_DISPATCH_TOKEN") or ""
        self.delivery_batch_size: int = min(int(os.environ.get("THRYVE_DELIVERY_BATCH_SIZE") or "50"), 50)
        self.delivery_timeout: float = float(os.environ.get("THRYVE_DELIVERY_TIMEOUT") or "10")
        self.delivery_max_attempts: int = max(int(os.environ.get("THRYVE_DELIVERY_MAX_ATTEMPTS") or "1"), 1)
        self.delivery_backoff_base: float = float(os.environ.get("THRYVE_DELIVERY_BACKOFF_BASE") or "60")
        self.delivery_claim_ttl: float = float(os.environ.get("THRYVE_DELIVERY_CLAIM_TTL") or "300")

        # ---- Channels ----
        self.push_gateway_url: str = os.environ.get("THRYVE_PUSH_GATEWAY_URL") or ""
        self.resend_api_key: str | None = os.environ.get("RESEND_API_KEY")
        self.resend_base_url: str = os.environ.get("RESEND_BASE_URL", "https://api.resend.com")
        self.email_from: str = os.environ.get("THRYVE_EMAIL_FROM", "Thryve <notifications@thryve.app>")
        self.twilio_account_sid: str | None = os.environ.get("TWILIO_ACCOUNT_SID")
        self.twilio_auth_token: str | None = os.environ.get("TWILIO_AUTH_TOKEN")
        self.twilio_whatsapp_number: str | None = os.environ.get("TWILIO_WHATSAPP_NUMBER")
        self.twilio_base_url: str = os.environ.get("TWILIO_BASE_URL", "https://api.twilio.com")
        self.app_url: str = os.environ.get("THRYVE_APP_URL", "https://thryve.app")

        # ---- AI assistant (OpenAI-compatible chat completions) ----
        self.assistant_api_key: str | None = os.environ.get("THRYVE_ASSISTANT_API_KEY")
        self.assistant_base_url: str = os.environ.get(
            "THRYVE_ASSISTANT_BASE_URL", "https://api.openai.com/v1"
        )
        self.assistant_model: str = os.environ.get("THRYVE_ASSISTANT_MODEL", "gpt-4o-mini")
        self.assistant_timeout: float = float(os.environ.get("THRYVE_ASSISTANT_TIMEOUT", "30"))
        self.assistant_max_tokens: int = int(os.environ.get("THRYVE_ASSISTANT_MAX_TOKENS", "300"))
        self.assistant_temperature: float = float(os.environ.get("THRYVE_ASSISTANT_TEMPERATURE", "0.7"))

        cors = os.environ.get("THRYVE_CORS_ORIGINS", "*")
        if cors.strip() == "*":
            self.cors_origins: List[str] = ["*"]
        else:
            self.cors_origins = [
                origin.strip() for origin in cors.split(",") if origin.strip()
            ]


settings = Settings()
