"""
Runtime configuration

Settings are read from the environment (and an optional .env file) once at
startup and handed to the app factory. Handlers receive them through the
`get_settings` dependency instead of reading os.environ themselves.
"""

import os
from typing import List, Optional

from dotenv import load_dotenv
from fastapi import Request
from pydantic import BaseModel, Field


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


class Settings(BaseModel):
    database_url: Optional[str] = None
    database_name: Optional[str] = None

    jwt_secret: str = "dev-secret-change"
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = Field(60 * 24 * 7, ge=1)  # 7 days

    cors_origins: List[str] = Field(default_factory=lambda: ["http://localhost:3001"])
    frontend_url: str = "http://localhost:3001"

    email_host: Optional[str] = None
    email_port: int = 587
    email_secure: bool = False
    email_user: Optional[str] = None
    email_pass: Optional[str] = None
    email_from: Optional[str] = None

    brevo_api_key: Optional[str] = None
    sms_from: str = "SHARK"

    payment_webhook_secret: Optional[str] = None

    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        load_dotenv()
        origins = [o.strip() for o in os.getenv("CORS_ORIGIN", "http://localhost:3001").split(",") if o.strip()]
        return cls(
            database_url=os.getenv("DATABASE_URL"),
            database_name=os.getenv("DATABASE_NAME"),
            jwt_secret=os.getenv("JWT_SECRET", "dev-secret-change"),
            jwt_expire_minutes=int(os.getenv("JWT_EXPIRE_MINUTES", 60 * 24 * 7)),
            cors_origins=origins,
            frontend_url=os.getenv("FRONTEND_URL", "http://localhost:3001"),
            email_host=os.getenv("EMAIL_HOST"),
            email_port=int(os.getenv("EMAIL_PORT", 587)),
            email_secure=_env_bool("EMAIL_SECURE"),
            email_user=os.getenv("EMAIL_USER"),
            email_pass=os.getenv("EMAIL_PASS"),
            email_from=os.getenv("EMAIL_FROM") or os.getenv("EMAIL_USER"),
            brevo_api_key=os.getenv("BREVO_API_KEY"),
            sms_from=os.getenv("SMS_FROM", "SHARK"),
            payment_webhook_secret=os.getenv("PAYMENT_WEBHOOK_SECRET"),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )


def get_settings(request: Request) -> Settings:
    return request.app.state.settings
