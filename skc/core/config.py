import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


class Settings:
    """Centralised application configuration sourced from environment variables."""

    def __init__(self) -> None:
        load_dotenv()
        self.database_path = Path(os.getenv("DATABASE_PATH", "data/skc.db")).resolve()
        self.jwt_secret = os.getenv("JWT_SECRET") or None
        self.jwt_base64_secret = os.getenv("JWT_BASE64_SECRET") or None
        if not self.jwt_secret and not self.jwt_base64_secret:
            raise RuntimeError("Missing required environment variable: JWT_SECRET or JWT_BASE64_SECRET")
        self.token_validity_seconds = self._get_int("JWT_TOKEN_VALIDITY_SECONDS")
        self.token_validity_seconds_for_remember_me = self._get_int(
            "JWT_TOKEN_VALIDITY_SECONDS_REMEMBER_ME"
        )
        self.password_min_length = self._get_int("PASSWORD_MIN_LENGTH", default=4)
        self.password_max_length = self._get_int("PASSWORD_MAX_LENGTH", default=100)
        if self.password_min_length > self.password_max_length:
            raise RuntimeError("PASSWORD_MIN_LENGTH must not exceed PASSWORD_MAX_LENGTH")
        self.reset_key_validity_hours = self._get_int("RESET_KEY_VALIDITY_HOURS", default=24)
        self.unactivated_retention_days = self._get_int("UNACTIVATED_RETENTION_DAYS", default=3)
        self.purge_hour_utc = self._get_int("PURGE_HOUR_UTC", default=1)
        self.user_cache_ttl_seconds = self._get_int("USER_CACHE_TTL_SECONDS", default=3600)
        self.bcrypt_rounds = self._get_int("BCRYPT_ROUNDS", default=10)
        self.default_language = os.getenv("DEFAULT_LANGUAGE", "en")
        self.mail_base_url = os.getenv("MAIL_BASE_URL", "http://localhost:8080")
        self.smtp_host = os.getenv("SMTP_HOST")
        self.smtp_port = self._get_int("SMTP_PORT", default=587)
        self.smtp_username = os.getenv("SMTP_USERNAME")
        self.smtp_password = os.getenv("SMTP_PASSWORD")
        self.smtp_from_email = os.getenv("SMTP_FROM_EMAIL")
        self.admin_default_login = os.getenv("ADMIN_LOGIN")
        self.admin_default_email = os.getenv("ADMIN_EMAIL")
        self.admin_default_password = os.getenv("ADMIN_PASSWORD")
        origins = os.getenv("CORS_ALLOW_ORIGINS")
        if origins:
            self.cors_allow_origins = [item.strip() for item in origins.split(",") if item.strip()]
        else:
            self.cors_allow_origins = ["*"]

    @staticmethod
    def _get_int(key: str, default: Optional[int] = None) -> int:
        value = os.getenv(key)
        if value is None:
            if default is None:
                raise RuntimeError(f"Missing required environment variable: {key}")
            return default
        try:
            return int(value)
        except ValueError as exc:
            raise RuntimeError(f"Environment variable {key} must be an integer") from exc
