# app/config.py
from typing import List, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore")

    # App
    APP_HOST: str = Field("0.0.0.0", description="Host to bind the app")
    APP_PORT: int = Field(4000, description="Port to run the app")
    ENV: str = Field("dev", description="Environment (dev|prod)")
    ALLOWED_ORIGINS: str = Field(
        "http://localhost:3000,https://d-igital-bot.vercel.app",
        description="Comma separated list of origins allowed by CORS",
    )

    # Storage
    DB_URL: str = Field("sqlite:///./data/callcenter.db", description="Database URL")

    # Exotel
    EXOTEL_BASE_URL: str = Field("https://api.exotel.com", description="Exotel API base URL")
    EXOTEL_SID: Optional[str] = Field(None, description="Exotel account SID")
    EXOTEL_USER: Optional[str] = Field(None, description="Exotel API key")
    EXOTEL_TOKEN: Optional[str] = Field(None, description="Exotel API token")
    EXOTEL_NUMBER: Optional[str] = Field(None, description="Exotel virtual number used as caller id")
    CALLFLOW_SID: Optional[str] = Field(None, description="Exotel call flow for outbound calls")
    HTTP_TIMEOUT_SECONDS: float = Field(30.0, description="Timeout for provider HTTP calls")

    # OpenAI
    LLM_API_KEY: Optional[str] = Field(None, description="API key for the OpenAI provider")
    LLM_MODEL: str = Field("gpt-4o-mini", description="Chat model used for lead extraction and summaries")
    ASR_MODEL: str = Field("whisper-1", description="Speech-to-text model for recordings")

    # Auth
    JWT_SECRET: str = Field("changeme", description="Secret used to sign bearer tokens")
    JWT_EXPIRES_HOURS: int = Field(24, description="Bearer token validity window")

    # Scheduled jobs
    SCHEDULER_ENABLED: bool = Field(True, description="Run the sync and notification jobs on startup")
    SYNC_INTERVAL_SECONDS: float = Field(300, description="Exotel call sync interval")
    NOTIFY_INTERVAL_SECONDS: float = Field(5, description="Transcription broadcast interval")

    # Logging / misc
    LOG_LEVEL: str = Field("info", description="Logging level")

    @property
    def allowed_origins(self) -> List[str]:
        return [o.strip() for o in self.ALLOWED_ORIGINS.split(",") if o.strip()]


# Singleton settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """
    Return a singleton Settings instance (loads from .env automatically).
    Use `get_settings()` instead of importing Settings() directly so other modules
    share the same instance.
    """
    global _settings
    if _settings is None:
        _settings = Settings()  # loads from environment / .env
    return _settings
