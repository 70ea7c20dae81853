from __future__ import annotations

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Loads keys from process env, and also from a local .env file for convenience.
    model_config = SettingsConfigDict(env_prefix="THUMB_", extra="ignore", env_file=".env", env_file_encoding="utf-8")

    # Keys
    gemini_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("GEMINI_API_KEY", "API_KEY", "THUMB_GEMINI_API_KEY"),
    )

    # Models
    gemini_text_model: str = "gemini-2.5-flash"
    gemini_image_model: str = "gemini-2.5-flash-image"
    analysis_temperature: float = 0.7
    template_count: int = 4

    # Skip the API entirely and serve canned blueprints (UI testing).
    demo_mode: bool = False

    # Rendering
    canvas_size: tuple[int, int] = (800, 450)
    export_size: tuple[int, int] = (1280, 720)

    # Intake
    max_upload_bytes: int = 5 * 1024 * 1024

    session_cookie: str = "thumb_session"
    session_max_idle_seconds: int = 6 * 3600
    log_level: str = "INFO"


settings = Settings()
