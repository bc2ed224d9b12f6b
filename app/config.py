"""
Application settings (Pydantic Settings).
"""
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# .env at the project root (parent of app/)
_env_path = Path(__file__).resolve().parent.parent / ".env"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=_env_path, extra="ignore")

    database_url: str = "sqlite:///./hours_cache.db"
    # Webhook endpoints: HOURS_ENDPOINT / ADMIN_*_ENDPOINT in .env
    hours_endpoint: str = "https://your-n8n-instance.com/webhook/penuel-hours"
    admin_auth_endpoint: str = "https://your-n8n-instance.com/webhook/penuel-admin-auth"
    admin_verify_endpoint: str = "https://your-n8n-instance.com/webhook/penuel-admin-verify"
    admin_save_endpoint: str = "https://your-n8n-instance.com/webhook/penuel-admin-save"
    api_key: str = ""
    timezone: str = "UTC"
    request_timeout_seconds: float = 10.0
    status_interval_seconds: int = 60

    @field_validator(
        "api_key",
        "hours_endpoint",
        "admin_auth_endpoint",
        "admin_verify_endpoint",
        "admin_save_endpoint",
        mode="after",
    )
    @classmethod
    def strip_values(cls, v: str) -> str:
        return (v or "").strip()


settings = Settings()
