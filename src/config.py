"""Application configuration using Pydantic Settings."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Google Cloud / Firestore
    google_cloud_project: str = ""
    sessions_collection: str = "chat_agent_logs"

    # Vertex AI (conversation analysis)
    vertex_region: str = "europe-west1"
    analysis_model: str = "gemini-2.0-flash"
    analysis_batch_size: int = 3
    analysis_batch_delay_seconds: float = 1.0

    # Reports
    default_report_hours: int = 24

    # Application
    app_env: str = "development"
    app_debug: bool = True
    app_host: str = "0.0.0.0"
    app_port: int = 8080
    log_level: str = "INFO"

    # CORS
    cors_origins: str = "http://localhost:3000,http://localhost:8080"

    # Rate limiting for AI analysis endpoints
    ai_rate_limit: str = "5/minute"

    @property
    def cors_origins_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",")]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
