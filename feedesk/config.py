from functools import lru_cache
from typing import List

from pydantic import AnyHttpUrl, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    app_name: str = Field(default="FeeDesk")
    cors_origins: List[AnyHttpUrl] = Field(
        default_factory=lambda: [
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        ]
    )
    backend_url: AnyHttpUrl | None = Field(default=None)
    backend_anon_key: str | None = Field(default=None)
    backend_timeout: float = Field(default=10.0)
    use_mock_data: bool = Field(default=True)
    reminders_function: str = Field(default="send-reminders")

    reminder_days_ahead: int = Field(default=3, ge=1, le=30)
    pay_link_base_url: str = Field(default="https://your-payment-link.com/pay")
    chat_base_url: str = Field(default="https://wa.me")
    country_prefix: str = Field(default="92")
    currency: str = Field(default="PKR")

    model_config = SettingsConfigDict(env_prefix="FEEDESK_", case_sensitive=False)

    @field_validator("cors_origins", mode="before")
    def _split_origins(cls, value):
        if isinstance(value, str):
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return value

    @field_validator("pay_link_base_url", "chat_base_url")
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached application settings."""

    return Settings()
